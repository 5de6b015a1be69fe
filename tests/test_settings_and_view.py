from __future__ import annotations

import sys
from datetime import datetime, timezone
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1]))

import pytest

from finreport.core.report_view import build_tabs, cell_class, render_view, row_class, visible_tables
from finreport.core.schema import EnhancedReportData, SummaryTable, TableColumn
from finreport.core.settings import load_settings
from finreport.domain import Failed, Ready, ReportSession


def test_yaml_defaults_and_environment_overrides(tmp_path, monkeypatch):
    config = tmp_path / "report.yaml"
    config.write_text(
        "backend:\n  api_base: https://backend.test\n"
        "enrichment:\n  concurrency: 3\n"
        "branding:\n  product_name: ACME\n  logo_path: logo.png\n  colors:\n    brand: [1, 2, 3]\n",
        encoding="utf-8",
    )
    monkeypatch.setenv("GEMINI_API_KEY", "key")
    monkeypatch.setenv("REPORT_LOGIN_PATH", "/auth/login")
    monkeypatch.delenv("FINAXIAL_API_BASE", raising=False)
    monkeypatch.delenv("REPORT_ENRICH_CONCURRENCY", raising=False)
    monkeypatch.delenv("REPORT_LOGO_PATH", raising=False)

    settings = load_settings(config)

    assert settings.backend_api_base == "https://backend.test"
    assert settings.enrich_concurrency == 3
    assert settings.gemini_api_key == "key"
    assert settings.login_path == "/auth/login"
    assert settings.branding.product_name == "ACME"
    assert settings.branding.color("brand") == (1, 2, 3)
    assert settings.branding.logo_path.endswith("logo.png")
    assert Path(settings.branding.logo_path).is_absolute()


def test_session_cap_from_yaml_and_environment(tmp_path, monkeypatch):
    config = tmp_path / "report.yaml"
    config.write_text("sessions:\n  max_entries: 12\n", encoding="utf-8")
    monkeypatch.delenv("REPORT_MAX_SESSIONS", raising=False)

    assert load_settings(config).max_sessions == 12

    monkeypatch.setenv("REPORT_MAX_SESSIONS", "3")
    assert load_settings(config).max_sessions == 3


def _report() -> EnhancedReportData:
    columns = [TableColumn(header="Name", accessor="name"), TableColumn(header="Amount", accessor="amount", is_numeric=True, is_currency=True)]
    return EnhancedReportData(
        summary="Summary",
        tables=[
            SummaryTable(id="table-1", title="One", columns=columns, data=[{"name": "a", "amount": 100000}]),
            SummaryTable(id="table-2", title="Two", columns=columns, data=[{"name": "Total", "amount": -5, "isTotal": True}]),
        ],
    )


def test_tabs_and_visible_tables():
    report = _report()

    assert [tab.id for tab in build_tabs(report)] == ["overview", "table-1", "table-2"]
    assert [table.id for table in visible_tables(report, "overview")] == ["table-1", "table-2"]
    assert [table.id for table in visible_tables(report, "table-2")] == ["table-2"]
    assert visible_tables(report, "missing") == []


def test_cell_and_row_classes():
    assert cell_class(10, True) == "number positive"
    assert cell_class(-1, True) == "number negative"
    assert cell_class(0, True) == "number neutral"
    assert cell_class("text") == ""
    assert cell_class(None, True) == ""
    assert row_class({"isSubTotal": True}) == "total"
    assert row_class({"name": "x"}) == ""


def test_ready_view_formats_rupees():
    session = ReportSession(ws_id="ws", report_id="r1")
    session.start_loading()
    session.finish(
        Ready(
            report=_report(),
            workspace_name="Acme",
            source="workspace_datasets",
            report_date=datetime(2026, 3, 5, tzinfo=timezone.utc),
        )
    )
    session.active_tab = "table-1"

    view = render_view(session)

    assert view["reportDate"] == "March 5, 2026"
    assert view["tables"][0]["rows"][0]["cells"][1] == {"value": "₹1,00,000", "className": "number positive"}


def test_loading_and_error_views():
    session = ReportSession(ws_id="ws", report_id="r1")
    session.start_loading()
    assert render_view(session)["message"] == "Generating financial report..."

    session.finish(Failed(kind="no_data", message="nothing"))
    view = render_view(session)
    assert view["error"] == {"title": "Unable to Generate Report", "kind": "no_data", "message": "nothing"}


@pytest.mark.parametrize(
    ("moment", "expected"),
    [
        (datetime(2026, 1, 1, tzinfo=timezone.utc), "January 1, 2026"),
        (datetime(2026, 10, 20, tzinfo=timezone.utc), "October 20, 2026"),
        (datetime(2030, 7, 30, tzinfo=timezone.utc), "July 30, 2030"),
    ],
)
def test_report_date_has_no_zero_padding(moment, expected):
    session = ReportSession(ws_id="ws", report_id="r1")
    session.start_loading()
    session.finish(Ready(report=_report(), workspace_name="Acme", source="persisted", report_date=moment))

    assert render_view(session)["reportDate"] == expected
