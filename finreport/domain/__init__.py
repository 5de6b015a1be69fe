"""Domain layer definitions."""

from .reports import (
    OVERVIEW_TAB,
    Failed,
    Idle,
    InvalidTransition,
    Loading,
    Ready,
    Redirect,
    ReportSession,
    ReportSource,
    ReportState,
)

__all__ = [
    "OVERVIEW_TAB",
    "Failed",
    "Idle",
    "InvalidTransition",
    "Loading",
    "Ready",
    "Redirect",
    "ReportSession",
    "ReportSource",
    "ReportState",
]
