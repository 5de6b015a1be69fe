"""Domain entities describing the lifecycle of one report page."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Literal, Union

from finreport.core.schema import EnhancedReportData

OVERVIEW_TAB = "overview"

ReportSource = Literal["persisted", "saved_insight", "uploaded_files", "workspace_datasets"]
FailureKind = Literal["load_error", "no_data"]


class InvalidTransition(RuntimeError):
    """Raised when a report session is moved to a state it cannot reach."""


@dataclass(slots=True)
class Idle:
    status: Literal["idle"] = "idle"


@dataclass(slots=True)
class Loading:
    status: Literal["loading"] = "loading"


@dataclass(slots=True)
class Ready:
    report: EnhancedReportData
    workspace_name: str
    source: ReportSource
    report_date: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    status: Literal["ready"] = "ready"

    @property
    def report_name(self) -> str:
        return f"{self.workspace_name} - Financial Report"


@dataclass(slots=True)
class Failed:
    kind: FailureKind
    message: str
    status: Literal["error"] = "error"


@dataclass(slots=True)
class Redirect:
    location: str
    status: Literal["redirect"] = "redirect"


ReportState = Union[Idle, Loading, Ready, Failed, Redirect]

_ALLOWED: dict[str, set[str]] = {
    "idle": {"loading", "redirect"},
    "loading": {"ready", "error"},
    # a failed or redirected page can be loaded again on the next visit
    "error": {"loading", "redirect"},
    "redirect": {"loading", "redirect"},
    "ready": set(),
}


@dataclass(slots=True)
class ReportSession:
    """State container for one ``(workspace, report)`` page."""

    ws_id: str
    report_id: str
    state: ReportState = field(default_factory=Idle)
    active_tab: str = OVERVIEW_TAB

    def transition(self, new_state: ReportState) -> ReportState:
        if new_state.status not in _ALLOWED[self.state.status]:
            raise InvalidTransition(f"cannot move report {self.report_id} from {self.state.status} to {new_state.status}")
        self.state = new_state
        return new_state

    def start_loading(self) -> Loading:
        return self.transition(Loading())  # type: ignore[return-value]

    def finish(self, outcome: Ready | Failed) -> ReportState:
        return self.transition(outcome)

    def redirect(self, location: str) -> Redirect:
        return self.transition(Redirect(location=location))  # type: ignore[return-value]

    @property
    def is_ready(self) -> bool:
        return isinstance(self.state, Ready)
