from typing import Dict, List, Type

from pydantic import BaseModel

from utils.auth import VeracodeHmacAuth
from utils.http import Http
from utils.logger import get_logger
from schemas import LibraryRecord, NumberedPage, Project, Workspace
from . import provider_name

logger = get_logger(__name__)

VERACODE_HOST = "api.veracode.com"
VERACODE_BASE_PATH = "/srcclr/v3"


def to_page(payload: Dict, key: str, model: Type[BaseModel], requested: int) -> NumberedPage:
    """Map a HAL-style Veracode listing onto the page-number envelope.

    Raises ValueError when the body is not shaped like a listing.
    """
    if not isinstance(payload, dict):
        raise ValueError(f"expected a JSON object for {key}, got {type(payload).__name__}")
    embedded = payload.get("_embedded") or {}
    page = payload.get("page") or {}
    if not isinstance(embedded, dict) or not isinstance(page, dict):
        raise ValueError(f"malformed {key} listing: _embedded and page must be objects")
    rows = embedded.get(key) or []
    if not isinstance(rows, list):
        raise ValueError(f"malformed {key} listing: _embedded.{key} must be a list")
    items: List[BaseModel] = [model.model_validate(x) for x in rows]
    number = page.get("number")
    return NumberedPage(
        items=items,
        page_index=requested if number is None else number,
        total_pages=page.get("totalPages"),
    )


@provider_name("veracode")
class VeracodeInventory:
    """Page-number listings of the SCA inventory: workspaces, projects, libraries."""

    def __init__(self, api_id: str, api_key: str, http: Http, host: str = VERACODE_HOST,
                 base_path: str = VERACODE_BASE_PATH, page_size: int = 100):
        self.http = http
        self.auth = VeracodeHmacAuth(api_id, api_key)
        self.host = host
        self.base_path = base_path.rstrip("/")
        self.page_size = page_size

    def _list(self, path: str, key: str, model: Type[BaseModel], page_index: int) -> NumberedPage:
        url = f"https://{self.host}{self.base_path}{path}"
        params = {"page": page_index, "size": self.page_size}
        logger.debug("Fetching %s page %d: %s", key, page_index, url)
        data = self.http.get(url, headers={"Content-Type": "application/json"}, params=params, auth=self.auth)
        return to_page(data, key, model, page_index)

    def list_workspaces(self, page_index: int) -> NumberedPage:
        return self._list("/workspaces", "workspaces", Workspace, page_index)

    def list_projects(self, workspace_id: str, page_index: int) -> NumberedPage:
        return self._list(f"/workspaces/{workspace_id}/projects", "projects", Project, page_index)

    def list_libraries(self, workspace_id: str, project_id: str, page_index: int) -> NumberedPage:
        return self._list(f"/workspaces/{workspace_id}/projects/{project_id}/libraries", "libraries", LibraryRecord, page_index)
