"""Pytest configuration and shared fixtures."""
from typing import Any, Dict, List, Optional, Set, Tuple

import pytest
import requests

from schemas import (
    CursorPage,
    InventoryTriple,
    LibraryRecord,
    NumberedPage,
    Project,
    ThreatEntry,
    Workspace,
)


class FakeFeed:
    """Cursor feed serving canned pages; page i is reached with cursor pages[i-1][1]."""

    def __init__(self, pages: List[Tuple[List[Any], Any]], fail_on: Optional[int] = None, error: Optional[Exception] = None):
        self.pages = pages
        self.fail_on = fail_on
        self.error = error or requests.ConnectionError("connection reset")
        self.calls: List[Any] = []

    def fetch_page(self, cursor=None) -> CursorPage:
        index = len(self.calls)
        self.calls.append(cursor)
        if index == self.fail_on:
            raise self.error
        items, next_cursor = self.pages[index]
        return CursorPage(items=items, next_cursor=next_cursor)


class FakeInventory:
    """In-memory inventory with per-resource page lists and injectable page failures.

    failures holds (kind, key, page_index) tuples, where key is None for
    workspaces, the workspace id for projects, and (workspace id, project id)
    for libraries.
    """

    def __init__(self, workspaces: List[List[Workspace]],
                 projects: Optional[Dict[str, List[List[Project]]]] = None,
                 libraries: Optional[Dict[Tuple[str, str], List[List[LibraryRecord]]]] = None,
                 failures: Optional[Set[Tuple[str, Any, int]]] = None):
        self.workspaces = workspaces
        self.projects = projects or {}
        self.libraries = libraries or {}
        self.failures = failures or set()
        self.calls: List[Tuple[str, Any, int]] = []

    def _serve(self, kind: str, key: Any, pages: List[List[Any]], page_index: int) -> NumberedPage:
        self.calls.append((kind, key, page_index))
        if (kind, key, page_index) in self.failures:
            raise requests.HTTPError(f"500 Server Error for {kind} page {page_index}")
        return NumberedPage(items=pages[page_index], page_index=page_index, total_pages=len(pages))

    def list_workspaces(self, page_index: int) -> NumberedPage:
        return self._serve("workspaces", None, self.workspaces, page_index)

    def list_projects(self, workspace_id: str, page_index: int) -> NumberedPage:
        return self._serve("projects", workspace_id, self.projects.get(workspace_id, [[]]), page_index)

    def list_libraries(self, workspace_id: str, project_id: str, page_index: int) -> NumberedPage:
        key = (workspace_id, project_id)
        return self._serve("libraries", key, self.libraries.get(key, [[]]), page_index)


def threat(name: str, version: str, created: str = "2024-01-01T00:00:00Z", ecosystem: str = "npm",
           indicators: Optional[Dict[str, Any]] = None) -> ThreatEntry:
    return ThreatEntry(
        created=created,
        ecosystem=ecosystem,
        name=name,
        version=version,
        indicators={"install_script": True} if indicators is None else indicators,
    )


def library(lib_id: str, name: str, version: str, license: str = "MIT", vulnerabilities: int = 0) -> LibraryRecord:
    return LibraryRecord(id=lib_id, name=name, version=version, ecosystem="npm",
                         license=license, vulnerabilities=[{}] * vulnerabilities)


def triple(lib: LibraryRecord, project_id: str = "p1", workspace_id: str = "w1") -> InventoryTriple:
    return InventoryTriple(
        library=lib,
        project=Project(id=project_id, name=f"project-{project_id}", workspaceId=workspace_id),
        workspace=Workspace(id=workspace_id, name=f"workspace-{workspace_id}"),
    )


@pytest.fixture
def sample_inventory() -> FakeInventory:
    """Two workspaces, three projects, libraries spread over several pages."""
    w1 = Workspace(id="w1", name="Platform")
    w2 = Workspace(id="w2", name="Payments")
    p1 = Project(id="p1", name="api", workspaceId="w1")
    p2 = Project(id="p2", name="web", workspaceId="w1")
    p3 = Project(id="p3", name="ledger", workspaceId="w2")
    return FakeInventory(
        workspaces=[[w1], [w2]],
        projects={"w1": [[p1], [p2]], "w2": [[p3]]},
        libraries={
            ("w1", "p1"): [[library("l1", "left-pad", "1.3.0")], [library("l2", "lodash", "4.17.21")]],
            ("w1", "p2"): [[library("l3", "left-pad", "1.3.0"), library("l4", "react", "18.2.0")]],
            ("w2", "p3"): [[library("l5", "event-stream", "3.3.6")]],
        },
    )
