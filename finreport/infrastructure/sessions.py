"""Infrastructure layer for report page sessions."""
from __future__ import annotations

import hashlib
from collections import OrderedDict
from typing import Protocol

from finreport.domain import ReportSession

DEFAULT_MAX_SESSIONS = 256

SessionKey = tuple[str, str, str]


def caller_key(token: str) -> str:
    """Digest of a bearer token, so raw tokens are never kept as keys."""

    return hashlib.sha256(token.encode("utf-8")).hexdigest()


class ReportSessionRepository(Protocol):
    """Persistence contract for report page state, scoped to one caller."""

    def get_or_create(self, ws_id: str, report_id: str, caller: str) -> ReportSession: ...

    def get(self, ws_id: str, report_id: str, caller: str) -> ReportSession | None: ...

    def reset(self) -> None: ...


class InMemoryReportSessionRepository:
    """Keeps the most recently used sessions, one per caller and report."""

    def __init__(self, max_sessions: int = DEFAULT_MAX_SESSIONS) -> None:
        self._sessions: OrderedDict[SessionKey, ReportSession] = OrderedDict()
        self._max_sessions = max(1, max_sessions)

    def __len__(self) -> int:
        return len(self._sessions)

    def get_or_create(self, ws_id: str, report_id: str, caller: str) -> ReportSession:
        key = (ws_id, report_id, caller)
        session = self._sessions.get(key)
        if session is None:
            session = ReportSession(ws_id=ws_id, report_id=report_id)
            self._sessions[key] = session
            while len(self._sessions) > self._max_sessions:
                self._sessions.popitem(last=False)
        else:
            self._sessions.move_to_end(key)
        return session

    def get(self, ws_id: str, report_id: str, caller: str) -> ReportSession | None:
        key = (ws_id, report_id, caller)
        session = self._sessions.get(key)
        if session is not None:
            self._sessions.move_to_end(key)
        return session

    def reset(self) -> None:
        self._sessions.clear()
