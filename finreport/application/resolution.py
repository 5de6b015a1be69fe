"""Decides where a report's content comes from and produces it."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Sequence

from finreport.application.enrichment import AnalysisEnricher
from finreport.core.schema import (
    EnhancedReportData,
    PersistedReport,
    ReportData,
    SavedInsight,
    SessionInfo,
    SessionRecord,
    SourceFile,
    WorkspaceData,
)
from finreport.core.summary_tables import summarize_sources
from finreport.domain import Failed, ReportSource
from finreport.infrastructure.backend_api import BackendClient, BackendError

logger = logging.getLogger(__name__)

NO_DATASETS_MESSAGE = "No datasets found in this workspace. Please upload financial data first."
NO_SESSION_DATA_MESSAGE = (
    "No session data available to generate this report. "
    "Please upload files first and try generating the report again."
)
NO_DATA_MESSAGE = "No data available to generate this report. The session data may have been lost or expired."

Summarizer = Callable[[Sequence[SourceFile]], ReportData]


@dataclass(slots=True)
class Resolution:
    workspace: WorkspaceData
    report: EnhancedReportData
    source: ReportSource
    session_info: SessionInfo | None = None

    @property
    def should_persist(self) -> bool:
        """Only freshly generated reports are written back."""

        return self.session_info is not None


def latest_dataset_files(workspace: WorkspaceData) -> list[SourceFile]:
    """Current version of every dataset; datasets without versions are skipped."""

    files: list[SourceFile] = []
    for dataset in workspace.datasets:
        version = dataset.latest_version
        if version is None:
            continue
        files.append(SourceFile(content=version.content, file_name=version.file_name, type=version.type))
    return files


def report_from_insight(insight: SavedInsight) -> EnhancedReportData:
    return EnhancedReportData(
        summary=insight.summary,
        insights=list(insight.insights),
        recommendations=list(insight.recommendations),
        tables=[],
        detailed_analysis={},
    )


class ReportResolver:
    """Resolves one report through the persisted → session → workspace chain."""

    def __init__(
        self,
        backend: BackendClient,
        enricher: AnalysisEnricher,
        *,
        summarizer: Summarizer = summarize_sources,
    ) -> None:
        self._backend = backend
        self._enricher = enricher
        self._summarizer = summarizer

    async def resolve(self, ws_id: str, report_id: str, token: str) -> Resolution | Failed:
        try:
            workspace = await self._backend.get_workspace(ws_id, token)
        except BackendError as exc:
            logger.error("Error loading report data for workspace %s: %s", ws_id, exc)
            return Failed(kind="load_error", message=str(exc) or "Failed to load report data")

        record = await self._backend.get_report_record(ws_id, report_id, token)

        if isinstance(record, PersistedReport):
            logger.info("Using persisted report %s", report_id)
            return Resolution(workspace=workspace, report=record.report_data, source="persisted")

        files: list[SourceFile] = []
        session_used = False
        if isinstance(record, SessionRecord):
            insight = record.saved_insight_data
            if record.is_from_saved_insight and insight is not None:
                logger.info("Report %s built from a saved insight", report_id)
                return Resolution(workspace=workspace, report=report_from_insight(insight), source="saved_insight")
            if record.uploaded_files:
                files = list(record.uploaded_files)
                session_used = True
                logger.info("Report %s uses %d session uploaded file(s)", report_id, len(files))
            else:
                logger.warning("Session record for report %s has no uploaded files, using workspace datasets", report_id)

        if not session_used:
            if not workspace.datasets:
                if isinstance(record, SessionRecord):
                    return Failed(kind="no_data", message=NO_SESSION_DATA_MESSAGE)
                return Failed(kind="no_data", message=NO_DATASETS_MESSAGE)
            files = latest_dataset_files(workspace)

        if not files:
            logger.error("No data available to generate report %s", report_id)
            message = NO_SESSION_DATA_MESSAGE if isinstance(record, SessionRecord) else NO_DATA_MESSAGE
            return Failed(kind="no_data", message=message)

        summary = await asyncio.to_thread(self._summarizer, files)
        report = await self._enricher.enrich(summary, files)
        if session_used:
            info = SessionInfo(used_session_data=True, session_data_type="uploadedFiles", file_count=len(files))
            source: ReportSource = "uploaded_files"
        else:
            info = SessionInfo(used_session_data=False, session_data_type="workspaceDatasets", file_count=len(files))
            source = "workspace_datasets"
        return Resolution(workspace=workspace, report=report, source=source, session_info=info)
