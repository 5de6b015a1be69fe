from __future__ import annotations

import asyncio
import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1]))

from finreport.application.enrichment import AnalysisEnricher
from finreport.application.resolution import (
    NO_DATASETS_MESSAGE,
    NO_SESSION_DATA_MESSAGE,
    ReportResolver,
    Resolution,
    report_from_insight,
)
from finreport.core.schema import (
    EnhancedReportData,
    PersistedReport,
    SavedInsight,
    SessionRecord,
    SourceFile,
)
from finreport.core.summary_tables import summarize_sources
from finreport.domain import Failed


def _resolver(backend, model) -> ReportResolver:
    return ReportResolver(backend, AnalysisEnricher(model))


def test_persisted_report_is_returned_without_generation(backend, model, sample_files):
    backend.add_workspace("ws", "Acme", sample_files)
    stored = EnhancedReportData(summary="Stored summary")
    backend.records[("ws", "r1")] = PersistedReport(report_data=stored, workspace_name="Acme")

    outcome = asyncio.run(_resolver(backend, model).resolve("ws", "r1", "tok"))

    assert isinstance(outcome, Resolution)
    assert outcome.source == "persisted"
    assert outcome.report == stored
    assert not outcome.should_persist
    assert model.calls == 0


def test_saved_insight_builds_minimal_report(backend, model, sample_files):
    backend.add_workspace("ws", "Acme", sample_files)
    backend.records[("ws", "r1")] = SessionRecord(
        is_from_saved_insight=True,
        saved_insight_data=SavedInsight(summary="Insight summary", insights=["i1"], recommendations=["r1"]),
    )

    outcome = asyncio.run(_resolver(backend, model).resolve("ws", "r1", "tok"))

    assert outcome.source == "saved_insight"
    assert outcome.report.summary == "Insight summary"
    assert outcome.report.tables == []
    assert outcome.report.detailed_analysis == {}
    assert model.calls == 0


def test_uploaded_files_are_used_instead_of_datasets(backend, model, sample_files):
    backend.add_workspace("ws", "Acme", sample_files)
    backend.records[("ws", "r1")] = SessionRecord(
        uploaded_files=[SourceFile(content="Month,Sales\nJan,10\n", file_name="upload.csv", type="csv")]
    )
    seen: list[list[str]] = []

    def summarizer(files):
        seen.append([item.file_name for item in files])
        return summarize_sources(files)

    resolver = ReportResolver(backend, AnalysisEnricher(model), summarizer=summarizer)
    outcome = asyncio.run(resolver.resolve("ws", "r1", "tok"))

    assert seen == [["upload.csv"]]
    assert outcome.source == "uploaded_files"
    assert outcome.session_info.session_data_type == "uploadedFiles"
    assert outcome.session_info.used_session_data is True
    assert [table.title for table in outcome.report.tables] == ["upload"]
    assert model.calls == 1


def test_workspace_datasets_are_summarised_and_enriched(backend, model, sample_files):
    backend.add_workspace("ws", "Acme", sample_files)

    outcome = asyncio.run(_resolver(backend, model).resolve("ws", "r1", "tok"))

    assert outcome.source == "workspace_datasets"
    assert outcome.should_persist
    assert outcome.session_info.file_count == 2
    assert set(outcome.report.detailed_analysis) == {table.id for table in outcome.report.tables}
    assert model.calls == len(outcome.report.tables) == 2


def test_workspace_without_datasets_fails_with_no_data(backend, model):
    backend.add_workspace("ws", "Empty", {})

    outcome = asyncio.run(_resolver(backend, model).resolve("ws", "r1", "tok"))

    assert isinstance(outcome, Failed)
    assert outcome.kind == "no_data"
    assert outcome.message == NO_DATASETS_MESSAGE


def test_empty_session_record_without_datasets_mentions_session(backend, model):
    backend.add_workspace("ws", "Empty", {})
    backend.records[("ws", "r1")] = SessionRecord(uploaded_files=[])

    outcome = asyncio.run(_resolver(backend, model).resolve("ws", "r1", "tok"))

    assert isinstance(outcome, Failed)
    assert outcome.message == NO_SESSION_DATA_MESSAGE


def test_workspace_fetch_failure_is_a_load_error(backend, model):
    backend.fail_workspace = True

    outcome = asyncio.run(_resolver(backend, model).resolve("ws", "r1", "tok"))

    assert isinstance(outcome, Failed)
    assert outcome.kind == "load_error"
    assert backend.calls == ["get_workspace"]


def test_insight_flag_without_insight_data_uses_workspace(backend, model, sample_files):
    backend.add_workspace("ws", "Acme", sample_files)
    backend.records[("ws", "r1")] = SessionRecord(is_from_saved_insight=True)

    outcome = asyncio.run(_resolver(backend, model).resolve("ws", "r1", "tok"))

    assert outcome.source == "workspace_datasets"
    assert len(outcome.report.tables) == 2


def test_report_from_insight_copies_lists():
    insight = SavedInsight(summary="S", insights=["a"], recommendations=["b"])

    report = report_from_insight(insight)
    report.insights.append("c")

    assert insight.insights == ["a"]
    assert report.recommendations == ["b"]
