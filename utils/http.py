import time
import requests
from requests.auth import AuthBase
from typing import Dict, Optional

from utils.logger import get_logger

logger = get_logger(__name__)


class Http:
    def __init__(self, timeout: float = 30, session: Optional[requests.Session] = None):
        self.timeout = timeout
        self.session = session or requests.Session()

    def get(self, url: str, headers: Optional[Dict] = None, params: Optional[Dict] = None, auth: Optional[AuthBase] = None):
        """GET and decode a JSON body. Transport errors and non-2xx statuses raise."""
        start = time.monotonic()
        r = self.session.get(url, headers=headers, params=params, auth=auth, timeout=self.timeout)
        logger.debug("GET %s -> %s in %.0fms", r.url, r.status_code, (time.monotonic() - start) * 1000)
        r.raise_for_status()
        return r.json()
