from __future__ import annotations

import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1]))

import pytest

from finreport.application import reset_report_state
from finreport.core.schema import (
    Dataset,
    DatasetVersion,
    PersistedReport,
    SessionRecord,
    WorkspaceData,
)
from finreport.core.settings import reset_settings
from finreport.infrastructure import reset_llm_client
from finreport.infrastructure.backend_api import BackendError

REVENUE_CSV = "Region,Revenue\nNorth,1200\nSouth,800\n"
COSTS_CSV = "Item,Cost\nRent,300\nPayroll,900\n"


class FakeBackend:
    """In-memory stand-in for the backend client that records every call."""

    def __init__(self) -> None:
        self.workspaces: dict[str, WorkspaceData] = {}
        self.records: dict[tuple[str, str], PersistedReport | SessionRecord] = {}
        self.saved: list[tuple[str, str, PersistedReport]] = []
        self.calls: list[str] = []
        self.fail_workspace = False
        self.fail_save = False
        self.tokens: set[str] | None = None

    def add_workspace(self, ws_id: str, name: str, files: dict[str, str]) -> WorkspaceData:
        datasets = [
            Dataset(id=f"ds-{index}", name=file_name, versions=[DatasetVersion(content=content, file_name=file_name, type="csv")])
            for index, (file_name, content) in enumerate(files.items(), start=1)
        ]
        workspace = WorkspaceData(_id=ws_id, name=name, datasets=datasets)
        self.workspaces[ws_id] = workspace
        return workspace

    async def get_workspace(self, ws_id: str, token: str) -> WorkspaceData:
        self.calls.append("get_workspace")
        if self.tokens is not None and token not in self.tokens:
            raise BackendError("Failed to fetch workspace data", status_code=401)
        if self.fail_workspace or ws_id not in self.workspaces:
            raise BackendError("Failed to fetch workspace data", status_code=500)
        return self.workspaces[ws_id]

    async def get_report_record(self, ws_id: str, report_id: str, token: str):
        self.calls.append("get_report_record")
        return self.records.get((ws_id, report_id))

    async def save_report(self, ws_id: str, report_id: str, token: str, record: PersistedReport) -> None:
        self.calls.append("save_report")
        if self.fail_save:
            raise BackendError("Failed to save report data", status_code=503)
        self.saved.append((ws_id, report_id, record))
        self.records[(ws_id, report_id)] = record


class CountingModel:
    """Language model double that answers every prompt with a fixed reply."""

    def __init__(self, reply: str = "BUSINESS CONTEXT:\nGenerated context.\nKEY TRENDS:\nGenerated trend.") -> None:
        self.reply = reply
        self.calls = 0

    async def generate(self, prompt: str) -> str:
        self.calls += 1
        return self.reply


@pytest.fixture()
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture()
def model() -> CountingModel:
    return CountingModel()


@pytest.fixture()
def sample_files() -> dict[str, str]:
    return {"revenue.csv": REVENUE_CSV, "costs.csv": COSTS_CSV}


@pytest.fixture(autouse=True)
def reset_state():
    reset_settings()
    reset_llm_client()
    yield
    reset_report_state()
    reset_llm_client()
    reset_settings()
