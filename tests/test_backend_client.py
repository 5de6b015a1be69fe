from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1]))

import httpx
import pytest

from finreport.core.schema import EnhancedReportData, PersistedReport, SessionInfo, SessionRecord
from finreport.infrastructure.backend_api import BackendClient, BackendError


def _client(handler) -> BackendClient:
    return BackendClient("https://api.test", http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))


def test_get_workspace_unwraps_data_and_sends_token():
    seen: dict[str, str] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["auth"] = request.headers["Authorization"]
        seen["path"] = request.url.path
        return httpx.Response(
            200,
            json={
                "data": {
                    "_id": "ws-1",
                    "name": "Acme",
                    "datasets": [
                        {"id": "d1", "name": "Q1", "versions": [{"content": "a,b", "fileName": "q1.csv", "type": "csv"}]}
                    ],
                }
            },
        )

    workspace = asyncio.run(_client(handler).get_workspace("ws-1", "tok"))

    assert seen == {"auth": "Bearer tok", "path": "/api/workspaces/ws-1"}
    assert workspace.id == "ws-1"
    assert workspace.name == "Acme"
    assert workspace.datasets[0].latest_version.file_name == "q1.csv"


def test_get_workspace_failure_raises():
    client = _client(lambda request: httpx.Response(500, json={"message": "boom"}))

    with pytest.raises(BackendError) as excinfo:
        asyncio.run(client.get_workspace("ws-1", "tok"))
    assert excinfo.value.status_code == 500


def test_report_record_variants():
    records = {
        "persisted": {"data": {"reportData": {"summary": "Saved", "tables": []}, "workspaceName": "Acme"}},
        "session": {"data": {"uploadedFiles": [{"content": "a,b", "fileName": "u.csv", "type": "csv"}]}},
        "insight": {
            "data": {
                "isFromSavedInsight": True,
                "savedInsightData": {"summary": "S", "insights": "single", "recommendations": ["r1"]},
            }
        },
        "empty": {"data": None},
    }

    def handler(request: httpx.Request) -> httpx.Response:
        report_id = request.url.path.rsplit("/", 1)[-1]
        if report_id in records:
            return httpx.Response(200, json=records[report_id])
        if report_id == "broken":
            return httpx.Response(502, text="bad gateway")
        return httpx.Response(404, json={"message": "not found"})

    client = _client(handler)

    persisted = asyncio.run(client.get_report_record("ws", "persisted", "tok"))
    session = asyncio.run(client.get_report_record("ws", "session", "tok"))
    insight = asyncio.run(client.get_report_record("ws", "insight", "tok"))

    assert isinstance(persisted, PersistedReport)
    assert persisted.report_data.summary == "Saved"
    assert isinstance(session, SessionRecord)
    assert session.uploaded_files[0].file_name == "u.csv"
    assert isinstance(insight, SessionRecord)
    assert insight.saved_insight_data.insights == ["single"]
    assert asyncio.run(client.get_report_record("ws", "empty", "tok")) is None
    assert asyncio.run(client.get_report_record("ws", "missing", "tok")) is None
    assert asyncio.run(client.get_report_record("ws", "broken", "tok")) is None


def test_save_report_posts_camel_case_payload():
    captured: dict[str, object] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["method"] = request.method
        captured["body"] = json.loads(request.content.decode("utf-8"))
        return httpx.Response(201, json={"data": {}})

    record = PersistedReport(
        report_data=EnhancedReportData(summary="Fresh"),
        generated_at="2026-10-18T00:00:00+00:00",
        workspace_name="Acme",
        session_info=SessionInfo(used_session_data=False, session_data_type="workspaceDatasets", file_count=1),
    )
    asyncio.run(_client(handler).save_report("ws", "r1", "tok", record))

    data = captured["body"]["data"]
    assert captured["method"] == "POST"
    assert data["reportData"]["summary"] == "Fresh"
    assert data["reportData"]["detailedAnalysis"] == {}
    assert data["workspaceName"] == "Acme"
    assert data["sessionInfo"] == {"usedSessionData": False, "sessionDataType": "workspaceDatasets", "fileCount": 1}


def test_save_report_failure_raises():
    client = _client(lambda request: httpx.Response(503, json={}))

    with pytest.raises(BackendError):
        asyncio.run(client.save_report("ws", "r1", "tok", PersistedReport(report_data=EnhancedReportData())))
