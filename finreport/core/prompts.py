from __future__ import annotations

from finreport.core.schema import SummaryTable, is_flag_key
from finreport.core.sections import SECTIONS

SECTION_INSTRUCTIONS = {
    "BUSINESS CONTEXT": (
        "Explain what this table represents in the context of financial reporting and business "
        "operations. Use professional financial terminology."
    ),
    "KEY TRENDS": (
        "Identify 3-5 important trends or patterns in the data. Focus on significant changes, "
        "growth patterns, or anomalies."
    ),
    "FINANCIAL IMPLICATIONS": (
        "Explain what this data means for the business's financial health, performance, and "
        "strategic position."
    ),
    "RISK FACTORS": "Identify 2-4 potential risks or concerns based on this data analysis.",
    "OPPORTUNITIES": "Identify 2-4 potential opportunities or positive indicators from this data.",
    "RECOMMENDATIONS": "Provide 3-5 specific, actionable recommendations based on this analysis.",
    "INDUSTRY BENCHMARK": "Compare this data to industry standards or benchmarks where applicable.",
    "FORECAST INSIGHTS": "Provide forward-looking insights and projections based on the current data trends.",
}

TEMPLATE_LINES = {
    "BUSINESS CONTEXT": ["Write your business context analysis here in plain sentences without any formatting symbols."],
    "KEY TRENDS": [
        "Write trend 1 as a complete sentence.",
        "Write trend 2 as a complete sentence.",
        "Write trend 3 as a complete sentence.",
    ],
    "FINANCIAL IMPLICATIONS": [
        "Write your financial implications analysis here in plain sentences without any formatting symbols."
    ],
    "RISK FACTORS": ["Write risk 1 as a complete sentence.", "Write risk 2 as a complete sentence."],
    "OPPORTUNITIES": [
        "Write opportunity 1 as a complete sentence.",
        "Write opportunity 2 as a complete sentence.",
    ],
    "RECOMMENDATIONS": [
        "Write recommendation 1 as a complete sentence.",
        "Write recommendation 2 as a complete sentence.",
        "Write recommendation 3 as a complete sentence.",
    ],
    "INDUSTRY BENCHMARK": [
        "Write your industry benchmark analysis here in plain sentences without any formatting symbols."
    ],
    "FORECAST INSIGHTS": ["Write your forecast insights here in plain sentences without any formatting symbols."],
}

FORMATTING_RULES = """CRITICAL FORMATTING REQUIREMENTS:
- Write in PLAIN TEXT only - no markdown, no formatting symbols
- NEVER use asterisks (*) or any special characters for emphasis
- NEVER use double asterisks (**) for bold text
- Use only regular sentences and paragraphs
- For lists, use simple numbered points or write as sentences
- Write professionally without any formatting markup"""


def flatten_rows(table: SummaryTable) -> str:
    """Render table rows as ``accessor: value`` lines, skipping row flags."""

    lines: list[str] = []
    for row in table.data:
        pairs = [f"{key}: {_stringify(value)}" for key, value in row.items() if not is_flag_key(key)]
        lines.append(", ".join(pairs))
    return "\n".join(lines)


def _stringify(value: object) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def build_analysis_prompt(table: SummaryTable, raw_source: str, file_name: str) -> str:
    columns = ", ".join(column.header for column in table.columns)
    numbered = "\n\n".join(
        f"{index}. {section.marker}: {SECTION_INSTRUCTIONS[section.marker]}"
        for index, section in enumerate(SECTIONS, start=1)
    )
    template = "\n\n".join(
        "\n".join([f"{section.marker}:", *TEMPLATE_LINES[section.marker]]) for section in SECTIONS
    )

    return f"""
You are a senior financial analyst preparing a detailed analysis for a financial table in an annual report. Analyze the following financial table and provide comprehensive insights.

TABLE INFORMATION:
Title: {table.title}
Description: {table.description}
Columns: {columns}

TABLE DATA:
{flatten_rows(table)}

ORIGINAL CSV DATA:
{raw_source}

FILE NAME: {file_name}

Please provide a detailed financial analysis with the following sections:

{numbered}

{FORMATTING_RULES}

Format your response exactly as follows (use plain text only):

{template}

Remember: Use ONLY plain text. NO asterisks, NO bold formatting, NO markdown. Write as if you are writing a formal business document.
"""
