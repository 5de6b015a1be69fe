from __future__ import annotations

import logging
from urllib.parse import quote

from fastapi import APIRouter, Cookie, Header, HTTPException
from fastapi.responses import RedirectResponse, Response

from finreport.application import ReportNotReady, get_report_service
from finreport.core.report_view import render_view
from finreport.domain import Redirect
from finreport.exporters.pdf_report import PdfExportError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/workspaces", tags=["reports"])

PDF_FAILURE_MESSAGE = "Failed to generate PDF report. Please try again."


def _token(authorization: str | None, cookie_token: str | None) -> str | None:
    if authorization:
        scheme, _, value = authorization.partition(" ")
        if scheme.lower() == "bearer" and value.strip():
            return value.strip()
    return cookie_token or None


@router.get("/{ws_id}/reports/{report_id}", response_model=None)
async def get_report(
    ws_id: str,
    report_id: str,
    authorization: str | None = Header(default=None),
    token: str | None = Cookie(default=None),
) -> dict | RedirectResponse:
    service = get_report_service()
    session = await service.load(ws_id, report_id, _token(authorization, token))
    if isinstance(session.state, Redirect):
        return RedirectResponse(session.state.location, status_code=307)
    return render_view(session)


@router.put("/{ws_id}/reports/{report_id}/tab", response_model=None)
async def select_report_tab(
    ws_id: str,
    report_id: str,
    payload: dict,
    authorization: str | None = Header(default=None),
    token: str | None = Cookie(default=None),
) -> dict | RedirectResponse:
    tab = payload.get("tab")
    if tab is not None and not isinstance(tab, str):
        raise HTTPException(status_code=400, detail="tab must be a string")
    service = get_report_service()
    caller = _token(authorization, token)
    if not caller:
        return RedirectResponse(service.login_path, status_code=307)
    session = service.select_tab(ws_id, report_id, caller, tab)
    return render_view(session)


@router.get("/{ws_id}/reports/{report_id}/pdf", response_model=None)
async def download_report_pdf(
    ws_id: str,
    report_id: str,
    authorization: str | None = Header(default=None),
    token: str | None = Cookie(default=None),
) -> Response:
    service = get_report_service()
    caller = _token(authorization, token)
    if not caller:
        return RedirectResponse(service.login_path, status_code=307)
    try:
        export = await service.export_pdf(ws_id, report_id, caller)
    except ReportNotReady as exc:
        raise HTTPException(status_code=409, detail="report is not ready") from exc
    except PdfExportError as exc:
        logger.exception("Error generating PDF for %s/%s", ws_id, report_id)
        raise HTTPException(status_code=500, detail=PDF_FAILURE_MESSAGE) from exc

    disposition = f"attachment; filename*=UTF-8''{quote(export.filename)}"
    return Response(
        content=export.content,
        media_type="application/pdf",
        headers={"Content-Disposition": disposition, "X-Page-Count": str(export.page_count)},
    )
