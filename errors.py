"""Error taxonomy for a threat check run."""
from typing import Optional


class ThreatCheckError(Exception):
    """Base class for failures that end a run with a non-zero exit."""


class ConfigError(ThreatCheckError):
    """A required credential or input is missing."""


class FetchError(ThreatCheckError):
    """A single page fetch failed.

    Args:
        stage: Which listing was being drained (e.g. "threat-feed", "projects")
        page_index: Zero-based index of the failing page (request count for cursor feeds)
        cause: The underlying transport or payload error
    """

    def __init__(self, stage: str, page_index: int, cause: Optional[BaseException] = None) -> None:
        self.stage = stage
        self.page_index = page_index
        self.cause = cause
        message = f"{stage} fetch failed on page {page_index}"
        if cause is not None:
            message += f": {cause}"
        super().__init__(message)


class ThreatFeedFetchError(FetchError):
    def __init__(self, page_index: int, cause: Optional[BaseException] = None) -> None:
        super().__init__("threat-feed", page_index, cause)


class InventoryPageError(FetchError):
    """An inventory listing page failed. Recovered locally unless the listing is the root."""


class RunError(ThreatCheckError):
    """Unexpected failure while orchestrating a run."""
