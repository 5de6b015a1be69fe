"""Application service driving the report page lifecycle."""
from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator

from finreport.application.enrichment import AnalysisEnricher
from finreport.application.resolution import ReportResolver, Resolution
from finreport.core.report_view import resolve_tab
from finreport.core.schema import PersistedReport
from finreport.core.settings import Settings, get_settings
from finreport.domain import Failed, Ready, ReportSession
from finreport.exporters.pdf_report import PdfExport, export_report_pdf
from finreport.infrastructure import (
    BackendClient,
    BackendError,
    InMemoryReportSessionRepository,
    ReportSessionRepository,
    get_llm_client,
)
from finreport.infrastructure.sessions import caller_key

logger = logging.getLogger(__name__)

LOAD_ERROR_MESSAGE = "Failed to load report data"


class ReportNotReady(RuntimeError):
    """Raised when an action needs a report that has not finished loading."""


class ReportService:
    """Coordinates loading, tab selection and export for report pages."""

    def __init__(
        self,
        repository: ReportSessionRepository,
        resolver: ReportResolver,
        backend: BackendClient,
        settings: Settings,
    ) -> None:
        self._repository = repository
        self._resolver = resolver
        self._backend = backend
        self._settings = settings
        self._locks: dict[tuple[str, str], asyncio.Lock] = {}
        self._waiting: dict[tuple[str, str], int] = {}

    @property
    def login_path(self) -> str:
        return self._settings.login_path

    def reset(self) -> None:
        self._repository.reset()
        self._locks.clear()
        self._waiting.clear()

    @asynccontextmanager
    async def _report_lock(self, ws_id: str, report_id: str) -> AsyncIterator[None]:
        """Serialise loads of one report; the lock is dropped once nobody waits on it."""

        key = (ws_id, report_id)
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._waiting[key] = self._waiting.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._waiting[key] -= 1
            if not self._waiting[key]:
                del self._waiting[key]
                self._locks.pop(key, None)

    # ------------------------------------------------------------------
    # loading
    # ------------------------------------------------------------------
    async def load(self, ws_id: str, report_id: str, token: str | None) -> ReportSession:
        """Bring the caller's session for ``(ws_id, report_id)`` to a settled state.

        Sessions are scoped to the caller's token, so a cached report is only
        handed back to the token that loaded it through the backend.
        """

        if not token:
            session = ReportSession(ws_id=ws_id, report_id=report_id)
            session.redirect(self.login_path)
            return session

        session = self._repository.get_or_create(ws_id, report_id, caller_key(token))
        async with self._report_lock(ws_id, report_id):
            if session.is_ready:
                return session
            session.start_loading()
            try:
                outcome = await self._resolver.resolve(ws_id, report_id, token)
            except Exception:
                logger.exception("Error loading report data for %s/%s", ws_id, report_id)
                session.finish(Failed(kind="load_error", message=LOAD_ERROR_MESSAGE))
                return session

            if isinstance(outcome, Failed):
                logger.info("Report %s/%s failed: %s", ws_id, report_id, outcome.message)
                session.finish(outcome)
                return session

            if outcome.should_persist:
                await self._persist(ws_id, report_id, token, outcome)
            session.finish(
                Ready(
                    report=outcome.report,
                    workspace_name=outcome.workspace.name or "Financial Workspace",
                    source=outcome.source,
                )
            )
            return session

    async def _persist(self, ws_id: str, report_id: str, token: str, resolution: Resolution) -> None:
        record = PersistedReport(
            report_data=resolution.report,
            generated_at=datetime.now(timezone.utc).isoformat(),
            workspace_name=resolution.workspace.name,
            session_info=resolution.session_info,
        )
        try:
            await self._backend.save_report(ws_id, report_id, token, record)
        except BackendError as exc:
            logger.warning("Failed to persist report %s/%s: %s", ws_id, report_id, exc)
        else:
            logger.info("Report %s/%s persisted", ws_id, report_id)

    # ------------------------------------------------------------------
    # interaction
    # ------------------------------------------------------------------
    def select_tab(self, ws_id: str, report_id: str, token: str, tab_id: str | None) -> ReportSession:
        session = self._repository.get_or_create(ws_id, report_id, caller_key(token))
        report = session.state.report if isinstance(session.state, Ready) else None
        session.active_tab = resolve_tab(report, tab_id)
        return session

    async def export_pdf(self, ws_id: str, report_id: str, token: str) -> PdfExport:
        session = self._repository.get(ws_id, report_id, caller_key(token))
        if session is None or not isinstance(session.state, Ready):
            raise ReportNotReady(f"report {report_id} is not ready")
        state = session.state
        settings = self._settings
        return await asyncio.to_thread(
            export_report_pdf,
            state.report,
            state.workspace_name,
            branding=settings.branding,
            margin_mm=settings.pdf_margin_mm,
            footer_offset_mm=settings.pdf_footer_offset_mm,
        )


def build_report_service(
    settings: Settings | None = None,
    *,
    backend: BackendClient | None = None,
    repository: ReportSessionRepository | None = None,
) -> ReportService:
    """Assemble a service from settings and the configured language model."""

    settings = settings or get_settings()
    backend = backend or BackendClient(settings.backend_api_base, timeout=settings.backend_timeout)
    enricher = AnalysisEnricher(get_llm_client(), concurrency=settings.enrich_concurrency)
    resolver = ReportResolver(backend, enricher)
    repository = repository or InMemoryReportSessionRepository(settings.max_sessions)
    return ReportService(repository, resolver, backend, settings)


_service: ReportService | None = None


def configure_report_service(service: ReportService) -> None:
    global _service
    _service = service


def get_report_service() -> ReportService:
    """Return the singleton report service for the process."""

    global _service
    if _service is None:
        _service = build_report_service()
    return _service


def reset_report_state() -> None:
    """Reset the in-memory sessions (used in tests)."""

    if _service is not None:
        _service.reset()
