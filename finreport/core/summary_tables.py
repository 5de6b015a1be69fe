"""Summary tables built from raw CSV or Excel-as-JSON dataset content.

The production page hands this step to a separate AI summarisation service.
This module provides the deterministic local version the report service uses:
every parsed sheet becomes one summary table with a trailing total row.
"""
from __future__ import annotations

import io
import json
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable

import pandas as pd

from finreport.core.formatting import format_number
from finreport.core.schema import ReportData, SourceFile, SummaryTable, TableColumn

logger = logging.getLogger(__name__)

CURRENCY_KEYWORDS = [
    "amount",
    "revenue",
    "sales",
    "income",
    "expense",
    "cost",
    "price",
    "profit",
    "balance",
    "cash",
    "salary",
    "payment",
    "value",
    "total",
    "₹",
    "$",
    "inr",
    "usd",
]

DEFAULT_RECOMMENDATIONS = [
    "Review the largest line items for cost optimisation opportunities.",
    "Track these metrics monthly to surface emerging trends early.",
    "Reconcile the totals against the general ledger before external reporting.",
]


@dataclass
class ParsedSheet:
    title: str
    frame: pd.DataFrame
    file_name: str


def _slug(text: str) -> str:
    slug = re.sub(r"[^0-9a-zA-Z]+", "_", text.strip().lower()).strip("_")
    return slug or "column"


def _frame_from_rows(rows: Any) -> pd.DataFrame | None:
    if not isinstance(rows, list) or not rows:
        return None
    if all(isinstance(row, dict) for row in rows):
        return pd.DataFrame(rows)
    if all(isinstance(row, list) for row in rows):
        header, *body = rows
        columns = [str(cell) if cell not in (None, "") else f"Column {index + 1}" for index, cell in enumerate(header)]
        width = len(columns)
        padded = [list(row[:width]) + [None] * (width - len(row)) for row in body]
        return pd.DataFrame(padded, columns=columns)
    return None


def _unique_headers(headers: Iterable[Any]) -> list[str]:
    """Repeated headers become ``Amount``, ``Amount (2)`` and so on."""

    seen: set[str] = set()
    unique: list[str] = []
    for header in headers:
        base = str(header).strip() or "Column"
        candidate, suffix = base, 2
        while candidate in seen:
            candidate = f"{base} ({suffix})"
            suffix += 1
        seen.add(candidate)
        unique.append(candidate)
    return unique


def _coerce_numeric(frame: pd.DataFrame) -> pd.DataFrame:
    frame = frame.copy()
    frame.columns = _unique_headers(frame.columns)
    frame = frame.dropna(how="all")
    for column in frame.columns:
        series = frame[column]
        if pd.api.types.is_numeric_dtype(series):
            continue
        cleaned = series.astype(str).str.replace(r"[,₹$\s]", "", regex=True)
        converted = pd.to_numeric(cleaned, errors="coerce")
        present = series.notna() & (series.astype(str).str.strip() != "")
        if present.any() and converted[present].notna().all():
            frame[column] = converted
    return frame


def load_sheets(source: SourceFile) -> list[ParsedSheet]:
    """Parse one source file into frames, one per sheet."""

    stem = Path(source.file_name or "Dataset").stem or "Dataset"
    text = source.content or ""
    looks_json = text.lstrip().startswith(("{", "["))

    if source.type == "excel" or (source.type is None and looks_json):
        try:
            payload = json.loads(text)
        except json.JSONDecodeError:
            payload = None
        if isinstance(payload, dict):
            sheets = []
            for sheet_name, rows in payload.items():
                frame = _frame_from_rows(rows)
                if frame is not None and not frame.empty:
                    sheets.append(ParsedSheet(f"{stem} - {sheet_name}", _coerce_numeric(frame), source.file_name))
            return sheets
        frame = _frame_from_rows(payload)
        if frame is not None and not frame.empty:
            return [ParsedSheet(stem, _coerce_numeric(frame), source.file_name)]
        if source.type == "excel":
            return []

    if not text.strip():
        return []
    frame = pd.read_csv(io.StringIO(text))
    if frame.empty:
        return []
    return [ParsedSheet(stem, _coerce_numeric(frame), source.file_name)]


def _is_currency(header: str) -> bool:
    lowered = header.lower()
    return any(keyword in lowered for keyword in CURRENCY_KEYWORDS)


def _plain(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, float) and pd.isna(value):
        return None
    if hasattr(value, "item"):
        value = value.item()
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def build_table(sheet: ParsedSheet, table_id: str) -> SummaryTable:
    frame = sheet.frame
    columns: list[TableColumn] = []
    accessors: dict[str, str] = {}
    for header in frame.columns:
        accessor = _slug(header)
        while accessor in accessors.values():
            accessor = f"{accessor}_"
        accessors[header] = accessor
        numeric = pd.api.types.is_numeric_dtype(frame[header]) and not pd.api.types.is_bool_dtype(frame[header])
        columns.append(
            TableColumn(
                header=header,
                accessor=accessor,
                is_numeric=bool(numeric),
                is_currency=bool(numeric and _is_currency(header)),
            )
        )

    rows: list[dict[str, Any]] = []
    for record in frame.to_dict(orient="records"):
        rows.append({accessors[header]: _plain(value) for header, value in record.items()})

    numeric_columns = [column for column in columns if column.is_numeric]
    if numeric_columns and rows:
        total: dict[str, Any] = {column.accessor: None for column in columns}
        label_column = next((column for column in columns if not column.is_numeric), None)
        if label_column is not None:
            total[label_column.accessor] = "Total"
        for column in numeric_columns:
            header = next(key for key, value in accessors.items() if value == column.accessor)
            total[column.accessor] = _plain(frame[header].sum(skipna=True))
        total["isTotal"] = True
        rows.append(total)

    description = f"Summary of {len(frame)} records across {len(columns)} columns from {sheet.file_name or 'the dataset'}."
    return SummaryTable(id=table_id, title=sheet.title, description=description, columns=columns, data=rows)


def _insights(tables: list[SummaryTable]) -> list[str]:
    insights: list[str] = []
    for table in tables:
        total_row = next((row for row in table.data if row.get("isTotal")), None)
        if total_row is None:
            continue
        for column in table.columns:
            if column.is_numeric and total_row.get(column.accessor) is not None:
                insights.append(f"{table.title}: total {column.header} is {format_number(total_row[column.accessor])}.")
    return insights


def summarize_sources(sources: Iterable[SourceFile]) -> ReportData:
    """Turn raw source files into a :class:`ReportData` with one table per sheet.

    A source that cannot be parsed or tabulated is logged and skipped; the
    remaining sources still produce their tables.
    """

    tables: list[SummaryTable] = []
    file_count = 0
    for source in sources:
        file_count += 1
        try:
            built = [
                build_table(sheet, f"table-{len(tables) + offset}")
                for offset, sheet in enumerate(load_sheets(source), start=1)
            ]
        except Exception as exc:
            logger.warning("Skipping unreadable source %s: %s", source.file_name, exc)
            continue
        tables.extend(built)

    record_count = sum(sum(1 for row in table.data if not row.get("isTotal")) for table in tables)
    summary = (
        f"This report summarises {file_count} source file{'s' if file_count != 1 else ''} "
        f"into {len(tables)} financial table{'s' if len(tables) != 1 else ''} covering {record_count} records."
    )
    return ReportData(
        summary=summary,
        insights=_insights(tables),
        recommendations=list(DEFAULT_RECOMMENDATIONS) if tables else [],
        tables=tables,
    )
