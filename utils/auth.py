import hashlib
import hmac
import secrets
import time
from typing import Callable
from urllib.parse import urlsplit

from requests.auth import AuthBase

SCHEME = "VERACODE-HMAC-SHA-256"
REQUEST_VERSION = b"vcode_request_version_1"


def _hmac(key: bytes, msg: bytes) -> bytes:
    return hmac.new(key, msg, hashlib.sha256).digest()


def signature(api_key: str, nonce: str, timestamp: str, data: str) -> str:
    key_nonce = _hmac(bytes.fromhex(api_key), bytes.fromhex(nonce))
    key_date = _hmac(key_nonce, timestamp.encode())
    signing_key = _hmac(key_date, REQUEST_VERSION)
    return hmac.new(signing_key, data.encode(), hashlib.sha256).hexdigest()


def authorization_header(api_id: str, api_key: str, host: str, url: str, method: str,
                         nonce: str, timestamp: str) -> str:
    data = f"id={api_id}&host={host}&url={url}&method={method.upper()}"
    sig = signature(api_key, nonce, timestamp, data)
    return f"{SCHEME} id={api_id},ts={timestamp},nonce={nonce},sig={sig}"


class VeracodeHmacAuth(AuthBase):
    """Signs each outgoing request for the Veracode REST APIs.

    The signed url is the path plus query string of the prepared request, so
    pagination parameters are covered by the signature.
    """

    def __init__(self, api_id: str, api_key: str,
                 nonce_factory: Callable[[], str] = lambda: secrets.token_hex(16),
                 clock: Callable[[], str] = lambda: str(int(time.time() * 1000))):
        self.api_id = api_id
        self.api_key = api_key
        self.nonce_factory = nonce_factory
        self.clock = clock

    def __call__(self, r):
        parts = urlsplit(r.url)
        url = parts.path + (f"?{parts.query}" if parts.query else "")
        r.headers["Authorization"] = authorization_header(
            self.api_id, self.api_key, parts.hostname, url, r.method,
            self.nonce_factory(), self.clock(),
        )
        return r
