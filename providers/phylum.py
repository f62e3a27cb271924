from typing import Any, Optional

from utils.http import Http
from utils.logger import get_logger
from schemas import CursorPage, ThreatEntry
from . import provider_name

logger = get_logger(__name__)

PHYLUM_BASE = "https://threats.phylum.io/"


@provider_name("phylum")
class PhylumThreatFeed:
    """Cursor-paginated feed of known-malicious package versions."""

    def __init__(self, api_token: str, http: Http, base_url: str = PHYLUM_BASE, per_page: int = 50):
        self.api_token = api_token
        self.http = http
        self.base_url = base_url
        self.per_page = per_page
        self.requests_made = 0

    def fetch_page(self, cursor: Optional[Any] = None) -> CursorPage:
        params = {"per_page": self.per_page}
        if cursor:
            params["cursor"] = cursor
        headers = {"Authorization": f"Bearer {self.api_token}", "Content-Type": "application/json"}
        self.requests_made += 1
        logger.info("Making request %d to: %s (cursor=%s)", self.requests_made, self.base_url, cursor)
        data = self.http.get(self.base_url, headers=headers, params=params)
        if not isinstance(data, dict) or not isinstance(data.get("packages") or [], list):
            raise ValueError(f"malformed threat feed page: {type(data).__name__}")
        logger.debug("has_next=%s has_previous=%s cursor=%s", data.get("has_next"), data.get("has_previous"), data.get("cursor"))
        return CursorPage(
            items=[ThreatEntry.model_validate(p) for p in data.get("packages") or []],
            next_cursor=data.get("cursor"),
        )
