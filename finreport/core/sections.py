"""Extraction of the eight analysis sections from a free-text model reply.

The reply is expected to follow the template requested in the prompt::

    BUSINESS CONTEXT:
    ...
    KEY TRENDS:
    ...

Nothing enforces that template, so the scanner below accepts replies with
missing, reordered or decorated sections and falls back field by field.
"""
from __future__ import annotations

import re
from dataclasses import dataclass

from finreport.core.schema import DetailedTableAnalysis


@dataclass(frozen=True, slots=True)
class Section:
    field: str
    marker: str
    default: str
    limit: int | None = None
    stop_words: tuple[str, ...] = ()

    @property
    def is_list(self) -> bool:
        return self.limit is not None


SECTIONS: tuple[Section, ...] = (
    Section(
        "business_context",
        "BUSINESS CONTEXT",
        "This table provides important financial metrics for business analysis.",
    ),
    Section(
        "key_trends",
        "KEY TRENDS",
        "Data analysis reveals important patterns and trends.",
        limit=5,
        stop_words=("key trends", "trends", "trend"),
    ),
    Section(
        "financial_implications",
        "FINANCIAL IMPLICATIONS",
        "The data indicates important financial implications for business strategy.",
    ),
    Section(
        "risk_factors",
        "RISK FACTORS",
        "Consider potential risks in financial planning.",
        limit=4,
        stop_words=("risk factors", "risks", "risk"),
    ),
    Section(
        "opportunities",
        "OPPORTUNITIES",
        "Identify growth opportunities in the data.",
        limit=4,
        stop_words=("opportunities", "opportunity"),
    ),
    Section(
        "recommendations",
        "RECOMMENDATIONS",
        "Develop strategic recommendations based on analysis.",
        limit=5,
        stop_words=("recommendations", "recommendation"),
    ),
    Section(
        "industry_benchmark",
        "INDUSTRY BENCHMARK",
        "Compare performance against industry standards and benchmarks.",
    ),
    Section(
        "forecast_insights",
        "FORECAST INSIGHTS",
        "Project future trends and performance based on current data.",
    ),
)

# tolerates bold markup between the marker and its colon, as in "**KEY TRENDS**:"
_MARKER_PATTERNS = {
    section.marker: re.compile(re.escape(section.marker) + r"\*{0,2}\s*:", re.IGNORECASE) for section in SECTIONS
}

_ASTERISKS = re.compile(r"\*+")
_HEADINGS = re.compile(r"#+\s*")
_WHITESPACE = re.compile(r"\s+")
_LEADING_BULLETS = re.compile(r"^(?:[-•·▪–]\s*)+")
_PLACEHOLDER = re.compile(r"^write\s+(?:your|trend|risk|opportunit|recommendation)", re.IGNORECASE)
_LINE_BREAKS = re.compile(r"\r\n|\r|\n")


def clean_text(text: str) -> str:
    """Strip emphasis markup, collapse whitespace and drop leading bullets."""

    cleaned = _ASTERISKS.sub("", text)
    cleaned = _HEADINGS.sub("", cleaned)
    cleaned = _WHITESPACE.sub(" ", cleaned).strip()
    cleaned = _LEADING_BULLETS.sub("", cleaned)
    return cleaned.strip()


def find_spans(text: str) -> dict[str, str | None]:
    """Return the raw span following each marker, or ``None`` when absent.

    A span starts after ``<MARKER>:`` and stops at the nearest marker of any
    other section found after it, so sections may come in any order. A
    repeated heading of the same section stays inside its span. The final
    section in the reply runs to the end of the text.
    """

    spans: dict[str, str | None] = {}
    for section in SECTIONS:
        match = _MARKER_PATTERNS[section.marker].search(text)
        if match is None:
            spans[section.field] = None
            continue

        start = match.end()
        end = len(text)
        for marker, pattern in _MARKER_PATTERNS.items():
            if marker == section.marker:
                continue
            following = pattern.search(text, start)
            if following is not None and following.start() < end:
                end = following.start()
        spans[section.field] = text[start:end]
    return spans


def _is_noise(line: str, section: Section) -> bool:
    lowered = line.lower().rstrip(":").strip()
    if lowered in section.stop_words or lowered == section.marker.lower():
        return True
    return bool(_PLACEHOLDER.match(line))


def split_items(span: str, section: Section) -> list[str]:
    items: list[str] = []
    for raw_line in _LINE_BREAKS.split(span):
        line = clean_text(raw_line)
        if not line or _is_noise(line, section):
            continue
        items.append(line)
    return items[: section.limit]


def fallback_analysis() -> DetailedTableAnalysis:
    values: dict[str, object] = {}
    for section in SECTIONS:
        values[section.field] = [section.default] if section.is_list else section.default
    return DetailedTableAnalysis(**values)


def parse_analysis(text: str | None) -> DetailedTableAnalysis:
    """Build a fully populated analysis from a model reply.

    Never raises: missing or empty sections take their default sentence.
    """

    spans = find_spans(text or "")
    values: dict[str, object] = {}
    for section in SECTIONS:
        span = spans[section.field]
        if section.is_list:
            items = split_items(span, section) if span is not None else []
            values[section.field] = items or [section.default]
        else:
            cleaned = clean_text(span) if span is not None else ""
            values[section.field] = cleaned or section.default
    return DetailedTableAnalysis(**values)


__all__ = ["SECTIONS", "Section", "clean_text", "fallback_analysis", "find_spans", "parse_analysis", "split_items"]
