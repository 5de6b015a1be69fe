"""Per-table analysis enrichment through a language model."""
from __future__ import annotations

import asyncio
import logging
from typing import Sequence

from finreport.core.prompts import build_analysis_prompt
from finreport.core.schema import (
    DetailedTableAnalysis,
    EnhancedReportData,
    ReportData,
    SourceFile,
    SummaryTable,
)
from finreport.core.sections import fallback_analysis, parse_analysis
from finreport.infrastructure.llm import LanguageModelClient

logger = logging.getLogger(__name__)

MULTIPLE_FILES = "Multiple Files"


def combined_source(sources: Sequence[SourceFile]) -> tuple[str, str]:
    """Raw text and file name sent alongside every table of a report."""

    if len(sources) == 1:
        return sources[0].content, sources[0].file_name
    return "\n\n".join(source.content for source in sources), MULTIPLE_FILES


class AnalysisEnricher:
    """Requests one detailed analysis per summary table.

    Calls are independent: each runs under a shared semaphore and a failure
    only replaces that table's analysis with the fallback content.
    """

    def __init__(self, llm_client: LanguageModelClient, *, concurrency: int = 1) -> None:
        self._llm = llm_client
        self._semaphore_size = max(1, concurrency)

    async def analyse_table(self, table: SummaryTable, raw_source: str, file_name: str) -> DetailedTableAnalysis:
        prompt = build_analysis_prompt(table, raw_source, file_name)
        try:
            reply = await self._llm.generate(prompt)
        except Exception as exc:
            logger.warning("Error generating detailed analysis for table %s: %s", table.id, exc)
            return fallback_analysis()
        return parse_analysis(reply)

    async def enrich(self, report: ReportData, sources: Sequence[SourceFile]) -> EnhancedReportData:
        raw_source, file_name = combined_source(sources)
        semaphore = asyncio.Semaphore(self._semaphore_size)

        async def run(table: SummaryTable) -> DetailedTableAnalysis:
            async with semaphore:
                return await self.analyse_table(table, raw_source, file_name)

        results = await asyncio.gather(*(run(table) for table in report.tables))
        detailed = {table.id: analysis for table, analysis in zip(report.tables, results)}
        return EnhancedReportData(**report.model_dump(exclude={"detailed_analysis"}), detailed_analysis=detailed)
