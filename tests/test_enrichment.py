from __future__ import annotations

import asyncio
import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1]))

from finreport.application.enrichment import MULTIPLE_FILES, AnalysisEnricher, combined_source
from finreport.core.schema import ReportData, SourceFile, SummaryTable, TableColumn
from finreport.core.sections import fallback_analysis
from finreport.infrastructure.llm import LanguageModelError, UnconfiguredLanguageModel


def _report(count: int) -> ReportData:
    tables = [
        SummaryTable(
            id=f"table-{index}",
            title=f"Table {index}",
            columns=[TableColumn(header="Value", accessor="value", is_numeric=True)],
            data=[{"value": index}],
        )
        for index in range(1, count + 1)
    ]
    return ReportData(summary="Summary", insights=["one"], recommendations=["do"], tables=tables)


class ScriptedModel:
    """Answers per table title; titles listed in ``failing`` raise."""

    def __init__(self, failing: set[str] | None = None, delay: float = 0.0) -> None:
        self.failing = failing or set()
        self.delay = delay
        self.prompts: list[str] = []
        self.active = 0
        self.peak = 0

    async def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        self.active += 1
        self.peak = max(self.peak, self.active)
        try:
            await asyncio.sleep(self.delay)
            title = next(line for line in prompt.splitlines() if line.startswith("Title: "))[len("Title: "):]
            if title in self.failing:
                raise LanguageModelError("quota exceeded")
            return f"BUSINESS CONTEXT:\nContext for {title}.\nKEY TRENDS:\nTrend for {title}."
        finally:
            self.active -= 1


def test_every_table_gets_an_analysis_in_table_order():
    model = ScriptedModel()
    enricher = AnalysisEnricher(model, concurrency=2)

    result = asyncio.run(enricher.enrich(_report(3), [SourceFile(content="a,b", file_name="data.csv")]))

    assert list(result.detailed_analysis) == ["table-1", "table-2", "table-3"]
    assert result.detailed_analysis["table-2"].business_context == "Context for Table 2."
    assert result.summary == "Summary"
    assert len(model.prompts) == 3


def test_failed_table_gets_fallback_without_affecting_others():
    model = ScriptedModel(failing={"Table 2"})
    enricher = AnalysisEnricher(model, concurrency=3)

    result = asyncio.run(enricher.enrich(_report(3), [SourceFile(content="a,b", file_name="data.csv")]))

    assert result.detailed_analysis["table-2"] == fallback_analysis()
    assert result.detailed_analysis["table-1"].key_trends == ["Trend for Table 1."]
    assert result.detailed_analysis["table-3"].key_trends == ["Trend for Table 3."]


def test_concurrency_is_bounded():
    model = ScriptedModel(delay=0.01)
    enricher = AnalysisEnricher(model, concurrency=2)

    asyncio.run(enricher.enrich(_report(6), [SourceFile(content="x", file_name="x.csv")]))

    assert model.peak <= 2
    assert len(model.prompts) == 6


def test_unconfigured_model_falls_back_for_every_table():
    enricher = AnalysisEnricher(UnconfiguredLanguageModel())

    result = asyncio.run(enricher.enrich(_report(2), [SourceFile(content="x", file_name="x.csv")]))

    assert all(analysis == fallback_analysis() for analysis in result.detailed_analysis.values())


def test_no_tables_means_no_requests():
    model = ScriptedModel()
    result = asyncio.run(AnalysisEnricher(model).enrich(_report(0), [SourceFile(content="x", file_name="x.csv")]))

    assert result.detailed_analysis == {}
    assert model.prompts == []


def test_combined_source_joins_multiple_files():
    single = combined_source([SourceFile(content="one", file_name="one.csv")])
    multiple = combined_source([SourceFile(content="one", file_name="a.csv"), SourceFile(content="two", file_name="b.csv")])

    assert single == ("one", "one.csv")
    assert multiple == ("one\n\ntwo", MULTIPLE_FILES)
