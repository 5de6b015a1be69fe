"""HTTP client for the Finaxial backend REST API."""
from __future__ import annotations

import logging
from typing import Any
from urllib.parse import urlparse

import httpx
from pydantic import ValidationError

from finreport.core.schema import PersistedReport, SessionRecord, WorkspaceData

logger = logging.getLogger(__name__)


class BackendError(RuntimeError):
    """Raised when the backend answers with a non-success status."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class BackendClient:
    """Reads workspaces and report records, writes generated reports."""

    def __init__(
        self,
        api_base: str,
        *,
        timeout: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        parsed = urlparse(api_base)
        if not parsed.scheme or not parsed.netloc:
            raise ValueError("api_base must include scheme and host")
        self._api_base = api_base.rstrip("/")
        self._client = http_client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = http_client is None

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------
    def _url(self, path: str) -> str:
        return f"{self._api_base}/{path.lstrip('/')}"

    @staticmethod
    def _headers(token: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {token}"}

    @staticmethod
    def _unwrap(response: httpx.Response) -> Any:
        try:
            body = response.json()
        except ValueError as exc:
            raise BackendError("backend returned a non-JSON body", status_code=response.status_code) from exc
        if isinstance(body, dict) and "data" in body:
            return body["data"]
        return body

    # ------------------------------------------------------------------
    # public API
    # ------------------------------------------------------------------
    async def get_workspace(self, ws_id: str, token: str) -> WorkspaceData:
        try:
            response = await self._client.get(self._url(f"api/workspaces/{ws_id}"), headers=self._headers(token))
        except httpx.HTTPError as exc:
            raise BackendError(f"Failed to fetch workspace data: {exc}") from exc
        if response.status_code >= 400:
            raise BackendError("Failed to fetch workspace data", status_code=response.status_code)

        payload = self._unwrap(response)
        try:
            return WorkspaceData.model_validate(payload or {})
        except ValidationError as exc:
            raise BackendError("Workspace payload is malformed", status_code=response.status_code) from exc

    async def get_report_record(
        self,
        ws_id: str,
        report_id: str,
        token: str,
    ) -> PersistedReport | SessionRecord | None:
        """Return the stored report or session record, ``None`` when absent.

        Lookup failures are not fatal: the page regenerates the report from
        workspace data instead.
        """

        url = self._url(f"api/workspaces/{ws_id}/report/{report_id}")
        try:
            response = await self._client.get(url, headers=self._headers(token))
        except httpx.HTTPError as exc:
            logger.info("No existing report found for %s (%s), will generate a new one", report_id, exc)
            return None
        if response.status_code >= 400:
            if response.status_code != 404:
                logger.warning("Report lookup for %s returned HTTP %s", report_id, response.status_code)
            return None

        try:
            record = self._unwrap(response)
        except BackendError as exc:
            logger.warning("Ignoring unreadable report record %s: %s", report_id, exc)
            return None
        if not isinstance(record, dict) or not record:
            return None

        try:
            if record.get("reportData"):
                return PersistedReport.model_validate(record)
            return SessionRecord.model_validate(record)
        except ValidationError as exc:
            logger.warning("Ignoring malformed report record %s: %s", report_id, exc)
            return None

    async def save_report(self, ws_id: str, report_id: str, token: str, record: PersistedReport) -> None:
        url = self._url(f"api/workspaces/{ws_id}/report/{report_id}")
        try:
            response = await self._client.post(
                url,
                headers=self._headers(token),
                json={"data": record.to_wire()},
            )
        except httpx.HTTPError as exc:
            raise BackendError(f"Failed to save report data: {exc}") from exc
        if response.status_code >= 400:
            raise BackendError("Failed to save report data", status_code=response.status_code)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


__all__ = ["BackendClient", "BackendError"]
