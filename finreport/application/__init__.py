"""Application services."""

from .enrichment import AnalysisEnricher
from .reports import (
    ReportNotReady,
    ReportService,
    build_report_service,
    configure_report_service,
    get_report_service,
    reset_report_state,
)
from .resolution import ReportResolver, Resolution

__all__ = [
    "AnalysisEnricher",
    "ReportNotReady",
    "ReportResolver",
    "ReportService",
    "Resolution",
    "build_report_service",
    "configure_report_service",
    "get_report_service",
    "reset_report_state",
]
