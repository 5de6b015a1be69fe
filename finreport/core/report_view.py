"""View model for the tabbed report page."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from finreport.core.formatting import format_currency, format_number
from finreport.core.schema import EnhancedReportData, SummaryTable, TableColumn, row_is_summary
from finreport.domain import OVERVIEW_TAB, Failed, Ready, Redirect, ReportSession


@dataclass(slots=True)
class TabItem:
    id: str
    title: str
    icon: str
    table_refs: list[str] = field(default_factory=list)


def build_tabs(report: EnhancedReportData | None) -> list[TabItem]:
    tabs = [TabItem(id=OVERVIEW_TAB, title="Overview", icon="overview")]
    if report is not None:
        for table in report.tables:
            tabs.append(TabItem(id=table.id, title=table.title, icon="table", table_refs=[table.id]))
    return tabs


def resolve_tab(report: EnhancedReportData | None, tab_id: str | None) -> str:
    """Return ``tab_id`` when it names a tab, the overview otherwise."""

    if tab_id and any(tab.id == tab_id for tab in build_tabs(report)):
        return tab_id
    return OVERVIEW_TAB


def visible_tables(report: EnhancedReportData | None, active_tab: str) -> list[SummaryTable]:
    if report is None:
        return []
    if active_tab == OVERVIEW_TAB:
        return list(report.tables)
    tab = next((item for item in build_tabs(report) if item.id == active_tab), None)
    if tab is None:
        return []
    return [table for table in report.tables if table.id in tab.table_refs]


def cell_class(value: Any, is_numeric: bool = False) -> str:
    if value is None:
        return ""
    classes = ["number"] if is_numeric else []
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        if value > 0:
            classes.append("positive")
        elif value < 0:
            classes.append("negative")
        else:
            classes.append("neutral")
    return " ".join(classes)


def row_class(row: dict[str, Any]) -> str:
    if row_is_summary(row):
        return "total"
    return ""


def format_cell(value: Any, column: TableColumn) -> str:
    if column.is_numeric and column.is_currency and isinstance(value, (int, float)) and not isinstance(value, bool):
        return format_currency(value)
    if column.is_numeric:
        return format_number(value)
    if value is None or value == "":
        return ""
    return str(value)


def render_table(table: SummaryTable, report: EnhancedReportData) -> dict[str, Any]:
    analysis = report.detailed_analysis.get(table.id)
    return {
        "id": table.id,
        "title": table.title,
        "description": table.description,
        "columns": [
            {"header": column.header, "accessor": column.accessor, "className": "number" if column.is_numeric else ""}
            for column in table.columns
        ],
        "rows": [
            {
                "className": row_class(row),
                "cells": [
                    {
                        "value": format_cell(row.get(column.accessor), column),
                        "className": cell_class(row.get(column.accessor), column.is_numeric),
                    }
                    for column in table.columns
                ],
            }
            for row in table.data
        ],
        "detailedAnalysis": analysis.to_wire() if analysis is not None else None,
    }


def render_overview(report: EnhancedReportData) -> dict[str, Any]:
    return {
        "summary": report.summary,
        "insights": list(report.insights),
        "recommendations": list(report.recommendations),
        "tableCards": [
            {
                "id": table.id,
                "title": table.title,
                "description": table.description,
                "stats": f"{len(table.data)} rows • {len(table.columns)} columns",
            }
            for table in report.tables
        ],
    }


def render_view(session: ReportSession) -> dict[str, Any]:
    """Describe what the page shows for the session's current state."""

    state = session.state
    view: dict[str, Any] = {
        "status": state.status,
        "workspaceId": session.ws_id,
        "reportId": session.report_id,
        "backUrl": f"/workspace/{session.ws_id}",
        "reportName": "Financial Report",
        "tabs": [{"id": tab.id, "title": tab.title, "icon": tab.icon} for tab in build_tabs(None)],
        "activeTab": OVERVIEW_TAB,
    }

    if isinstance(state, Redirect):
        view["location"] = state.location
        return view
    if isinstance(state, Failed):
        view["error"] = {"title": "Unable to Generate Report", "kind": state.kind, "message": state.message}
        return view
    if not isinstance(state, Ready):
        view["message"] = "Generating financial report..."
        return view

    report = state.report
    moment = state.report_date
    active_tab = resolve_tab(report, session.active_tab)
    view.update(
        {
            "reportName": state.report_name,
            "reportDate": f"{moment:%B} {moment.day}, {moment.year}",
            "source": state.source,
            "tabs": [
                {"id": tab.id, "title": tab.title, "icon": tab.icon} for tab in build_tabs(report)
            ],
            "activeTab": active_tab,
        }
    )
    if active_tab == OVERVIEW_TAB:
        view["overview"] = render_overview(report)
    else:
        view["tables"] = [render_table(table, report) for table in visible_tables(report, active_tab)]
    return view
