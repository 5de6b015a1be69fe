"""Paginated A4 export of a financial report.

Pages are laid out top-down in millimetres. Every drawing step receives a
:class:`LayoutState` and returns the state it leaves behind, so the vertical
cursor and page number flow explicitly from the title page to the closing
synthesis. Footers are stamped by :class:`NumberedCanvas` once the final page
count is known.
"""
from __future__ import annotations

import io
import logging
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any, Sequence
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.enums import TA_LEFT, TA_RIGHT
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader, simpleSplit
from reportlab.pdfbase.pdfmetrics import stringWidth
from reportlab.pdfgen import canvas
from reportlab.platypus import Paragraph, Table, TableStyle

from finreport.core.formatting import format_us_number, format_usd_currency
from finreport.core.schema import DetailedTableAnalysis, EnhancedReportData, SummaryTable, TableColumn, row_is_summary
from finreport.core.settings import Branding

logger = logging.getLogger(__name__)

FONT = "Helvetica"
FONT_BOLD = "Helvetica-Bold"
TOP_MM = 40.0
PT_TO_MM = 0.3528
SUMMARY_PAGE = 3

DEFAULT_COLORS: dict[str, tuple[int, int, int]] = {
    "brand": (102, 126, 234),
    "heading": (45, 55, 72),
    "body": (75, 85, 99),
    "muted": (107, 114, 128),
    "faint": (156, 163, 175),
    "rule": (229, 231, 235),
    "risk": (220, 53, 69),
    "stripe": (248, 250, 252),
}

ANALYSIS_LABELS = (
    ("Business Context", "business_context"),
    ("Key Trends", "key_trends"),
    ("Financial Implications", "financial_implications"),
    ("Risk Factors", "risk_factors"),
    ("Opportunities", "opportunities"),
    ("Recommendations", "recommendations"),
    ("Industry Benchmark", "industry_benchmark"),
    ("Forecast Insights", "forecast_insights"),
)

KEY_FINDINGS = [
    "Identified strategic opportunities for performance improvement",
    "Assessed financial health against industry benchmarks",
    "Highlighted critical risk factors requiring attention",
    "Provided actionable recommendations for strategic implementation",
]


class PdfExportError(RuntimeError):
    """Raised when the PDF document cannot be produced."""


@dataclass(frozen=True, slots=True)
class LayoutState:
    page: int
    y: float
    page_height: float
    bottom: float

    def advance(self, delta: float) -> "LayoutState":
        return replace(self, y=self.y + delta)

    def at(self, y: float) -> "LayoutState":
        return replace(self, y=y)

    def fits(self, height: float) -> bool:
        return self.y + height <= self.bottom

    @property
    def remaining(self) -> float:
        return max(0.0, self.bottom - self.y)


@dataclass(frozen=True, slots=True)
class TocEntry:
    title: str
    page: int


@dataclass(slots=True)
class PdfExport:
    filename: str
    content: bytes
    page_count: int


def build_table_of_contents(tables: Sequence[SummaryTable]) -> list[TocEntry]:
    """Nominal page numbers: one page per table after the executive summary.

    The closing synthesis continues on the last content page, so it shares the
    page number of the last table (or of the summary when there are no tables).
    """

    page = SUMMARY_PAGE
    entries = [TocEntry("Executive Summary", page)]
    if tables:
        entries.append(TocEntry("Financial Tables Analysis", page + 1))
    for index, table in enumerate(tables, start=1):
        page += 1
        entries.append(TocEntry(f"{index}. {table.title}", page))
    entries.append(TocEntry("Comprehensive Financial Analysis", page))
    return entries


def report_filename(workspace_name: str | None, generated_at: datetime) -> str:
    return f"{workspace_name or 'Financial'}-Report-{generated_at.date().isoformat()}.pdf"


def _long_date(moment: datetime) -> str:
    return f"{moment:%A}, {moment:%B} {moment.day}, {moment.year}"


def _rgb(value: tuple[int, int, int]) -> colors.Color:
    red, green, blue = value
    return colors.Color(red / 255.0, green / 255.0, blue / 255.0)


class NumberedCanvas(canvas.Canvas):
    """Canvas that defers footers until every page has been drawn."""

    def __init__(self, *args: Any, footer_text: str = "", margin: float = 20 * mm,
                 footer_offset: float = 15 * mm, rule_color: colors.Color = colors.lightgrey,
                 text_color: colors.Color = colors.grey, **kwargs: Any) -> None:
        canvas.Canvas.__init__(self, *args, **kwargs)
        self._saved_page_states: list[dict[str, Any]] = []
        self._footer_text = footer_text
        self._footer_margin = margin
        self._footer_offset = footer_offset
        self._rule_color = rule_color
        self._footer_color = text_color
        self.page_count = 0

    def showPage(self) -> None:
        self._saved_page_states.append(dict(self.__dict__))
        self._startPage()

    def save(self) -> None:
        total = len(self._saved_page_states)
        for index, state in enumerate(self._saved_page_states, start=1):
            self.__dict__.update(state)
            self.draw_footer(index, total)
            canvas.Canvas.showPage(self)
        self.page_count = total
        canvas.Canvas.save(self)

    def draw_footer(self, page_number: int, total: int) -> None:
        width = self._pagesize[0]
        footer_y = self._footer_offset
        self.saveState()
        self.setLineWidth(0.3 * mm)
        self.setStrokeColor(self._rule_color)
        self.line(self._footer_margin, footer_y + 5 * mm, width - self._footer_margin, footer_y + 5 * mm)
        self.setFont(FONT, 8)
        self.setFillColor(self._footer_color)
        if page_number == 1:
            self.drawCentredString(width / 2, footer_y, self._footer_text)
        else:
            self.drawString(self._footer_margin, footer_y, self._footer_text)
            self.drawRightString(width - self._footer_margin, footer_y, f"Page {page_number} of {total}")
        self.restoreState()


class ReportPdfBuilder:
    def __init__(
        self,
        report: EnhancedReportData,
        workspace_name: str,
        *,
        branding: Branding | None = None,
        margin_mm: float = 20.0,
        footer_offset_mm: float = 15.0,
        generated_at: datetime | None = None,
    ) -> None:
        self.report = report
        self.raw_workspace_name = workspace_name
        self.workspace_name = workspace_name or "Financial Workspace"
        self.branding = branding or Branding()
        self.generated_at = generated_at or datetime.now(timezone.utc)
        self.page_width = A4[0] / mm
        self.page_height = A4[1] / mm
        self.margin = margin_mm
        self.content_width = self.page_width - 2 * margin_mm
        self.footer_offset = footer_offset_mm
        self._canvas: NumberedCanvas | None = None

    # ------------------------------------------------------------------
    # primitives
    # ------------------------------------------------------------------
    @property
    def c(self) -> NumberedCanvas:
        assert self._canvas is not None, "build() has not started"
        return self._canvas

    def color(self, name: str) -> colors.Color:
        return _rgb(self.branding.color(name, DEFAULT_COLORS[name]))

    def _y(self, y_mm: float) -> float:
        return (self.page_height - y_mm) * mm

    def _first_state(self) -> LayoutState:
        return LayoutState(page=1, y=TOP_MM, page_height=self.page_height, bottom=self.page_height - 40.0)

    def new_page(self, state: LayoutState) -> LayoutState:
        self.c.showPage()
        return replace(state, page=state.page + 1, y=TOP_MM)

    def ensure_space(self, state: LayoutState, height: float) -> LayoutState:
        if state.fits(height) or state.y <= TOP_MM:
            return state
        return self.new_page(state)

    @staticmethod
    def line_height(size: float) -> float:
        return size * PT_TO_MM * 1.25

    def _set_text(self, font: str, size: float, color: str) -> None:
        self.c.setFont(font, size)
        self.c.setFillColor(self.color(color))

    def _rule(self, y_mm: float, color: str = "brand", width_mm: float = 0.5) -> None:
        self.c.setLineWidth(width_mm * mm)
        self.c.setStrokeColor(self.color(color))
        self.c.line(self.margin * mm, self._y(y_mm), (self.page_width - self.margin) * mm, self._y(y_mm))

    def _centred(self, text: str, y_mm: float, font: str, size: float, color: str) -> None:
        self._set_text(font, size, color)
        self.c.drawCentredString(self.page_width / 2 * mm, self._y(y_mm), text)

    def wrap(self, text: str, font: str, size: float, width_mm: float) -> list[str]:
        return simpleSplit(text or "", font, size, width_mm * mm) or [""]

    def paragraph(
        self,
        state: LayoutState,
        text: str,
        *,
        size: float = 10,
        font: str = FONT,
        color: str = "body",
        indent: float = 0.0,
        after: float = 8.0,
    ) -> LayoutState:
        height = self.line_height(size)
        for line in self.wrap(text, font, size, self.content_width - indent):
            state = self.ensure_space(state, height)
            self._set_text(font, size, color)
            self.c.drawString((self.margin + indent) * mm, self._y(state.y), line)
            state = state.advance(height)
        return state.advance(after)

    def bullets(
        self,
        state: LayoutState,
        items: Sequence[str],
        *,
        size: float = 10,
        color: str = "body",
        spacing: float = 3.0,
    ) -> LayoutState:
        height = self.line_height(size)
        for item in items:
            lines = self.wrap(f"• {item}", FONT, size, self.content_width - 10)
            state = self.ensure_space(state, height * min(len(lines), 3))
            for line in lines:
                state = self.ensure_space(state, height)
                self._set_text(FONT, size, color)
                self.c.drawString((self.margin + 5) * mm, self._y(state.y), line)
                state = state.advance(height)
            state = state.advance(spacing)
        return state

    def heading(self, state: LayoutState, text: str, *, size: float = 14, color: str = "heading",
                after: float = 10.0, keep_with: float = 15.0) -> LayoutState:
        state = self.ensure_space(state, keep_with)
        self._set_text(FONT_BOLD, size, color)
        self.c.drawString(self.margin * mm, self._y(state.y), text)
        return state.advance(after)

    def page_title(self, state: LayoutState, text: str, *, size: float = 20) -> LayoutState:
        self._set_text(FONT_BOLD, size, "heading")
        self.c.drawString(self.margin * mm, self._y(state.y), text)
        self._rule(state.y + 5)
        return state.advance(20)

    # ------------------------------------------------------------------
    # title page
    # ------------------------------------------------------------------
    def _load_logo(self) -> ImageReader | None:
        path = self.branding.logo_path
        if not path:
            return None
        try:
            reader = ImageReader(path)
            reader.getSize()
        except Exception as exc:
            logger.warning("Failed to load logo image %s: %s", path, exc)
            return None
        return reader

    def _draw_logo_placeholder(self) -> None:
        self.c.setFillColor(self.color("brand"))
        self.c.circle(self.page_width / 2 * mm, self._y(60), 15 * mm, stroke=0, fill=1)
        self.c.setFont(FONT_BOLD, 20)
        self.c.setFillColor(colors.white)
        self.c.drawCentredString(self.page_width / 2 * mm, self._y(65), "F")

    def draw_logo(self) -> None:
        logo = self._load_logo()
        if logo is None:
            self._draw_logo_placeholder()
            return
        width, height = 40.0, 20.0
        x = (self.page_width - width) / 2
        try:
            self.c.drawImage(logo, x * mm, self._y(40 + height), width * mm, height * mm, mask="auto")
        except Exception as exc:
            logger.warning("Error adding logo to PDF: %s", exc)
            self._draw_logo_placeholder()

    def title_page(self, state: LayoutState) -> LayoutState:
        self.draw_logo()
        self._centred(self.branding.product_name, 95, FONT_BOLD, 32, "brand")
        self._centred(self.branding.report_title, 120, FONT, 20, "heading")
        self._centred(self.workspace_name, 140, FONT_BOLD, 16, "heading")
        self._centred(f"Generated on: {_long_date(self.generated_at)}", 160, FONT, 12, "muted")
        self._rule(180)

        note_y = 210.0
        for line in self.wrap(self.branding.confidentiality_note, FONT, 10, self.content_width - 40):
            self._centred(line, note_y, FONT, 10, "body")
            note_y += self.line_height(10)
        return state.at(note_y)

    # ------------------------------------------------------------------
    # table of contents
    # ------------------------------------------------------------------
    def _fit(self, text: str, font: str, size: float, width_mm: float) -> str:
        if stringWidth(text, font, size) <= width_mm * mm:
            return text
        while text and stringWidth(f"{text}...", font, size) > width_mm * mm:
            text = text[:-1]
        return f"{text.rstrip()}..."

    def contents_page(self, state: LayoutState) -> LayoutState:
        state = self.new_page(state)
        state = self.page_title(state, "TABLE OF CONTENTS", size=24)
        state = state.at(65)
        size = 12
        for entry in build_table_of_contents(self.report.tables):
            state = self.ensure_space(state, 8)
            number = str(entry.page)
            number_width = stringWidth(number, FONT, size) / mm
            title = self._fit(entry.title, FONT, size, self.content_width - number_width - 20)
            title_width = stringWidth(title, FONT, size) / mm
            dots_width = self.content_width - title_width - number_width - 10
            dot_width = stringWidth(".", FONT, size) / mm
            dots = "." * max(0, int(dots_width / dot_width)) if dot_width else ""

            baseline = self._y(state.y)
            self._set_text(FONT, size, "heading")
            self.c.drawString(self.margin * mm, baseline, title)
            self._set_text(FONT, size, "faint")
            self.c.drawString((self.margin + title_width + 5) * mm, baseline, dots)
            self._set_text(FONT, size, "heading")
            self.c.drawRightString((self.page_width - self.margin) * mm, baseline, number)
            state = state.advance(8)
        return state

    # ------------------------------------------------------------------
    # executive summary
    # ------------------------------------------------------------------
    def summary_page(self, state: LayoutState) -> LayoutState:
        state = self.new_page(state)
        state = self.page_title(state, "EXECUTIVE SUMMARY")
        if self.report.summary:
            state = self.paragraph(state, self.report.summary, size=11, after=12)
        if self.report.insights:
            state = self.heading(state, "Key Insights")
            state = self.bullets(state, self.report.insights)
        if self.report.recommendations:
            state = self.heading(state.advance(5), "Strategic Recommendations", keep_with=25)
            state = self.bullets(state, self.report.recommendations)
        return state

    # ------------------------------------------------------------------
    # table pages
    # ------------------------------------------------------------------
    @staticmethod
    def format_cell(value: Any, column: TableColumn) -> str:
        is_number = isinstance(value, (int, float)) and not isinstance(value, bool)
        if column.is_currency and is_number:
            return format_usd_currency(value)
        if column.is_numeric and is_number:
            return format_us_number(value)
        return "" if value is None else str(value)

    def _grid(self, table: SummaryTable) -> Table:
        header_style = ParagraphStyle("GridHeader", fontName=FONT_BOLD, fontSize=9, leading=11,
                                      textColor=colors.white, alignment=TA_LEFT)
        body_style = ParagraphStyle("GridBody", fontName=FONT, fontSize=9, leading=11,
                                    textColor=self.color("heading"), alignment=TA_LEFT)
        number_style = ParagraphStyle("GridNumber", parent=body_style, alignment=TA_RIGHT)
        total_style = ParagraphStyle("GridTotal", parent=body_style, fontName=FONT_BOLD)
        total_number_style = ParagraphStyle("GridTotalNumber", parent=number_style, fontName=FONT_BOLD)

        data: list[list[Paragraph]] = [[Paragraph(escape(column.header), header_style) for column in table.columns]]
        style_commands: list[tuple[Any, ...]] = [
            ("BACKGROUND", (0, 0), (-1, 0), self.color("brand")),
            ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, self.color("stripe")]),
            ("GRID", (0, 0), (-1, -1), 0.1 * mm, self.color("rule")),
            ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
            ("TOPPADDING", (0, 0), (-1, -1), 4),
            ("BOTTOMPADDING", (0, 0), (-1, -1), 4),
            ("LEFTPADDING", (0, 0), (-1, -1), 4),
            ("RIGHTPADDING", (0, 0), (-1, -1), 4),
        ]
        for row in table.data:
            emphasised = row_is_summary(row)
            cells = []
            for column in table.columns:
                if column.is_numeric:
                    style = total_number_style if emphasised else number_style
                else:
                    style = total_style if emphasised else body_style
                cells.append(Paragraph(escape(self.format_cell(row.get(column.accessor), column)), style))
            data.append(cells)

        width = self.content_width / len(table.columns) * mm
        return Table(data, colWidths=[width] * len(table.columns), repeatRows=1, style=TableStyle(style_commands))

    def draw_grid(self, state: LayoutState, table: SummaryTable) -> LayoutState:
        if not table.columns:
            return self.paragraph(state, "No tabular data available for this table.", color="muted")

        width = self.content_width * mm
        pending: list[Table] = [self._grid(table)]
        while pending:
            part = pending.pop(0)
            available = state.remaining * mm
            _, height = part.wrapOn(self.c, width, available)
            if height <= available:
                part.drawOn(self.c, self.margin * mm, self._y(state.y) - height)
                state = state.advance(height / mm)
                continue

            pieces = part.split(width, available)
            if len(pieces) < 2:
                if state.y > TOP_MM:
                    state = self.new_page(state)
                    pending.insert(0, part)
                    continue
                # a single block taller than a page is drawn as is
                part.drawOn(self.c, self.margin * mm, self._y(state.y) - height)
                state = self.new_page(state)
                continue

            first, *rest = pieces
            _, first_height = first.wrapOn(self.c, width, available)
            first.drawOn(self.c, self.margin * mm, self._y(state.y) - first_height)
            state = self.new_page(state)
            pending = list(rest) + pending
        return state

    def analysis_block(self, state: LayoutState, analysis: DetailedTableAnalysis) -> LayoutState:
        state = state.advance(20)
        if not state.fits(40):
            state = self.new_page(state)
        state = self.heading(state, "Detailed Analysis", after=12)

        for label, field_name in ANALYSIS_LABELS:
            value = getattr(analysis, field_name)
            if not value:
                continue
            color = "risk" if field_name == "risk_factors" else "brand"
            state = self.heading(state, label, size=12, color=color, after=6)
            if isinstance(value, list):
                state = self.bullets(state, value, spacing=2)
            else:
                state = self.paragraph(state, value, after=5)
        return state

    def table_page(self, state: LayoutState, table: SummaryTable) -> LayoutState:
        state = self.new_page(state)
        for line in self.wrap(table.title, FONT_BOLD, 18, self.content_width):
            self._set_text(FONT_BOLD, 18, "heading")
            self.c.drawString(self.margin * mm, self._y(state.y), line)
            state = state.advance(self.line_height(18))
        state = state.advance(4)
        if table.description:
            state = self.paragraph(state, table.description, color="muted", after=4)
        state = state.at(max(state.y, 70.0))
        state = self.draw_grid(state, table)

        analysis = self.report.detailed_analysis.get(table.id)
        if analysis is not None:
            state = self.analysis_block(state, analysis)
        return state

    # ------------------------------------------------------------------
    # closing synthesis
    # ------------------------------------------------------------------
    def closing_section(self, state: LayoutState) -> LayoutState:
        state = state.advance(15)
        if not state.fits(80):
            state = self.new_page(state)
        state = self.page_title(state, "COMPREHENSIVE FINANCIAL ANALYSIS")

        count = len(self.report.tables)
        state = self.heading(state, "Overall Assessment", color="brand")
        overall = (
            f"This comprehensive financial analysis encompasses {count} key financial areas, "
            "providing detailed insights into business performance, financial health, and strategic positioning. "
            "The analysis considers industry benchmarks, identifies key risk factors, and provides actionable "
            "recommendations for enhanced financial performance and strategic decision-making."
        )
        state = self.paragraph(state, overall, after=15)

        state = self.heading(state, "Key Findings", color="brand")
        findings = [f"Analyzed {count} comprehensive financial datasets", *KEY_FINDINGS]
        return self.bullets(state, findings, spacing=2)

    # ------------------------------------------------------------------
    # assembly
    # ------------------------------------------------------------------
    def build(self) -> PdfExport:
        buffer = io.BytesIO()
        self._canvas = NumberedCanvas(
            buffer,
            pagesize=A4,
            footer_text=self.branding.footer_text,
            margin=self.margin * mm,
            footer_offset=self.footer_offset * mm,
            rule_color=self.color("rule"),
            text_color=self.color("faint"),
        )
        self.c.setTitle(f"{self.workspace_name} - Financial Report")
        self.c.setSubject("Comprehensive Financial Analysis Report")
        self.c.setAuthor(self.branding.author)
        self.c.setCreator(f"{self.branding.author} Application")
        self.c.setKeywords("financial, analysis, report")

        state = self._first_state()
        state = self.title_page(state)
        state = self.contents_page(state)
        state = self.summary_page(state)
        for table in self.report.tables:
            state = self.table_page(state, table)
        state = self.closing_section(state)

        self.c.showPage()
        self.c.save()
        return PdfExport(
            filename=report_filename(self.raw_workspace_name, self.generated_at),
            content=buffer.getvalue(),
            page_count=self.c.page_count,
        )


def export_report_pdf(
    report: EnhancedReportData,
    workspace_name: str,
    *,
    branding: Branding | None = None,
    margin_mm: float = 20.0,
    footer_offset_mm: float = 15.0,
    generated_at: datetime | None = None,
) -> PdfExport:
    """Render ``report`` to PDF bytes."""

    builder = ReportPdfBuilder(
        report,
        workspace_name,
        branding=branding,
        margin_mm=margin_mm,
        footer_offset_mm=footer_offset_mm,
        generated_at=generated_at,
    )
    try:
        return builder.build()
    except Exception as exc:
        raise PdfExportError(f"Failed to generate PDF report: {exc}") from exc


__all__ = [
    "LayoutState",
    "NumberedCanvas",
    "PdfExport",
    "PdfExportError",
    "ReportPdfBuilder",
    "TocEntry",
    "build_table_of_contents",
    "export_report_pdf",
    "report_filename",
]
