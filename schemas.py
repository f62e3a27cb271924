from pydantic import BaseModel, BeforeValidator, ConfigDict, Field
from typing import Annotated, Any, List, Dict, Optional


def none_as_empty(v: Any) -> Any:
    # upstream sends null for unknown names and versions
    return "" if v is None else v

# str that also accepts null
Text = Annotated[str, BeforeValidator(none_as_empty)]

class ThreatHash(BaseModel):
    archive: Optional[str] = None
    hash: Optional[str] = None
    type: Optional[str] = None

class ThreatEntry(BaseModel):
    created: Optional[str] = None      # kept verbatim, reports print it as sent
    ecosystem: Optional[str] = None    # e.g., npm/pypi/maven
    name: Text = ""
    version: Text = ""
    indicators: Optional[Dict[str, Any]] = None
    hashes: Optional[List[ThreatHash]] = None

class Workspace(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: Text = ""
    created: Optional[str] = None
    last_updated: Optional[str] = Field(default=None, alias="lastUpdated")

class Project(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: Text = ""
    workspace_id: Optional[str] = Field(default=None, alias="workspaceId")
    created: Optional[str] = None
    last_updated: Optional[str] = Field(default=None, alias="lastUpdated")

class LibraryRecord(BaseModel):
    id: str
    name: Text = ""
    version: Text = ""
    ecosystem: Optional[str] = None
    license: Optional[str] = None
    vulnerabilities: Optional[List[Any]] = None   # only the count is reported

class InventoryTriple(BaseModel):
    library: LibraryRecord
    project: Project
    workspace: Workspace

class VulnerableMatch(BaseModel):
    threat: ThreatEntry
    library: LibraryRecord
    project: Project
    workspace: Workspace

class CursorPage(BaseModel):
    items: List[Any] = []
    next_cursor: Any = None    # opaque; any falsy value ends the feed

class NumberedPage(BaseModel):
    items: List[Any] = []
    page_index: int = 0        # as reported by the server, logged only
    total_pages: Optional[int] = None

class Credentials(BaseModel):
    phylum_api_token: str
    veracode_api_id: str
    veracode_api_key: str
    debug: bool = False

class RunResult(BaseModel):
    match_count: int
    threat_count: int
    library_count: int
    summary_file: str
    malicious_packages_file: str
