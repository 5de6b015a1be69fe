from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

ROW_FLAGS = ("isTotal", "isSubTotal", "isHeader")


class WireModel(BaseModel):
    """Base model speaking the camelCase JSON used by the Finaxial backend."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


# ----------------------------------------------------------------------
# workspace records
# ----------------------------------------------------------------------
class DatasetVersion(WireModel):
    id: str = ""
    content: str = ""
    file_name: str = ""
    type: Literal["csv", "excel"] = "csv"
    created_at: str | None = None


class Dataset(WireModel):
    id: str = ""
    name: str = ""
    versions: list[DatasetVersion] = Field(default_factory=list)

    @property
    def latest_version(self) -> DatasetVersion | None:
        return self.versions[-1] if self.versions else None


class WorkspaceData(WireModel):
    id: str = Field(default="", alias="_id")
    name: str = ""
    datasets: list[Dataset] = Field(default_factory=list)

    @field_validator("datasets", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> Any:
        return [] if value is None else value


# ----------------------------------------------------------------------
# report content
# ----------------------------------------------------------------------
class TableColumn(WireModel):
    header: str
    accessor: str
    is_numeric: bool = False
    is_currency: bool = False


class SummaryTable(WireModel):
    id: str
    title: str = ""
    description: str = ""
    columns: list[TableColumn] = Field(default_factory=list)
    data: list[dict[str, Any]] = Field(default_factory=list)


class ReportData(WireModel):
    summary: str = ""
    insights: list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
    tables: list[SummaryTable] = Field(default_factory=list)


class DetailedTableAnalysis(WireModel):
    business_context: str
    key_trends: list[str]
    financial_implications: str
    risk_factors: list[str]
    opportunities: list[str]
    recommendations: list[str]
    industry_benchmark: str
    forecast_insights: str


class EnhancedReportData(ReportData):
    detailed_analysis: dict[str, DetailedTableAnalysis] = Field(default_factory=dict)


# ----------------------------------------------------------------------
# session and persistence records
# ----------------------------------------------------------------------
class SourceFile(WireModel):
    content: str = ""
    file_name: str = ""
    type: Literal["csv", "excel"] | None = None


def _as_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, list):
        return [str(item) for item in value]
    return [str(value)]


class SavedInsight(WireModel):
    summary: str = ""
    insights: list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)

    @field_validator("insights", "recommendations", mode="before")
    @classmethod
    def _wrap_scalar(cls, value: Any) -> list[str]:
        return _as_list(value)


class SessionRecord(WireModel):
    uploaded_files: list[SourceFile] | None = None
    is_from_saved_insight: bool = False
    saved_insight_data: SavedInsight | None = None


class SessionInfo(WireModel):
    used_session_data: bool
    session_data_type: Literal["savedInsight", "uploadedFiles", "workspaceDatasets"]
    file_count: int


class PersistedReport(WireModel):
    report_data: EnhancedReportData
    generated_at: str | None = None
    workspace_name: str | None = None
    session_info: SessionInfo | None = None


def is_flag_key(key: str) -> bool:
    return key in ROW_FLAGS


def row_is_summary(row: dict[str, Any]) -> bool:
    """True for total, subtotal and header rows."""

    return any(bool(row.get(flag)) for flag in ROW_FLAGS)
