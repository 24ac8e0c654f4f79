"""AI-assisted attachment analysis.

Objective:
    Answer a free-form question about a stored attachment (typically a
    financial spreadsheet) with the Groq LLM.

Core strategy:
    1. Spreadsheets (``.xlsx``, ``.xls``, ``.csv``) are read with pandas.
       Revenue, profit, period and margin columns are identified from their
       headers, their values parsed from currency/percentage strings, and the
       result rendered into a compact context block with Indian-style
       currency formatting (``₹x.xx Cr`` / ``₹x.xx L``).
    2. HTML and plain text attachments are decoded and sanitized.
    3. The context and the question are sent to Groq chat completions with a
       financial-analyst system prompt.

High-level call tree:
    - :class:`AttachmentAnalyzer`
        - :meth:`AttachmentAnalyzer.analyze`
            - :func:`extract_content_text`
                - :func:`read_sheets` -> :func:`extract_metrics`
                    - :func:`identify_columns`
                    - :func:`parse_number`
                - :func:`prepare_analysis_context`
                    - :func:`format_currency`
                - :func:`src.attachment_organizer.sanitizer.sanitize_content`
            - Groq chat completion
"""

import io
import logging
import re
from pathlib import PurePath
from typing import Any, Optional

import pandas as pd
from groq import Groq, GroqError
from pydantic import BaseModel, Field

from .config import Settings
from .errors import AnalysisError, ConfigurationError
from .sanitizer import sanitize_content

logger = logging.getLogger(__name__)

SPREADSHEET_EXTENSIONS = (".xlsx", ".xls", ".csv")
CSV_MIME_TYPES = ("text/csv", "application/csv")

COLUMN_PATTERNS = {
    "revenue": re.compile(r"(revenue|sales|income|turnover)", re.IGNORECASE),
    "profit": re.compile(r"(profit|earnings|ebitda|net income)", re.IGNORECASE),
    "period": re.compile(r"(period|date|month|quarter|year)", re.IGNORECASE),
    "margins": re.compile(r"(margin|profit %|markup)", re.IGNORECASE),
}

NO_PERIOD_CONTEXT = "No time period information found in the data."

SYSTEM_PROMPT = """You are a financial analyst expert. Analyze the following financial data and provide insights.
Focus on:
- Revenue trends and growth rates
- Profit margins and their changes
- Key performance indicators
- Notable patterns or anomalies
- Business insights and recommendations

Provide specific numbers and percentages when relevant. Be concise but thorough.
If the data doesn't contain certain metrics, focus on the available information."""


class FinancialMetrics(BaseModel):
    """Columns extracted from a spreadsheet, aligned by row."""

    periods: list[str] = Field(default_factory=list)
    revenue: list[float] = Field(default_factory=list)
    profit: list[float] = Field(default_factory=list)
    margins: list[float] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.periods or self.revenue or self.profit or self.margins)


def is_spreadsheet(filename: str, mime_type: str = "") -> bool:
    """Whether the attachment should be read as a spreadsheet."""
    suffix = PurePath(filename or "").suffix.lower()
    if suffix in SPREADSHEET_EXTENSIONS:
        return True
    return (mime_type or "").lower() in CSV_MIME_TYPES or "spreadsheet" in (mime_type or "")


def read_sheets(content: bytes, filename: str, mime_type: str = "") -> dict[str, pd.DataFrame]:
    """Load every sheet of a workbook (a CSV is one sheet).

    Args:
        content: File bytes.
        filename: Filename used to pick the reader.
        mime_type: Declared MIME type.

    Returns:
        dict[str, pd.DataFrame]: Sheets by name, blank rows dropped.

    Raises:
        AnalysisError: If the file cannot be parsed.
    """
    suffix = PurePath(filename or "").suffix.lower()
    buffer = io.BytesIO(content)

    try:
        if suffix == ".csv" or (mime_type or "").lower() in CSV_MIME_TYPES:
            sheets = {"Sheet1": pd.read_csv(buffer, dtype=object)}
        else:
            sheets = pd.read_excel(buffer, sheet_name=None, dtype=object)
    except Exception as e:
        raise AnalysisError(f"Failed to read spreadsheet {filename}: {e}") from e

    logger.debug(f"Read {len(sheets)} sheet(s) from {filename}")
    return {name: df.dropna(how="all") for name, df in sheets.items()}


def identify_columns(headers: list[Any]) -> dict[str, Any]:
    """Map metric names to the header that holds them.

    When several headers match a metric the last one wins.

    Args:
        headers: Column headers.

    Returns:
        dict[str, Any]: Metric name -> column header.
    """
    columns: dict[str, Any] = {}
    for header in headers:
        if not isinstance(header, str):
            continue
        for key, pattern in COLUMN_PATTERNS.items():
            if pattern.search(header):
                columns[key] = header
    return columns


def parse_number(value: Any) -> float:
    """Parse a cell into a float.

    Currency symbols, commas and whitespace are stripped; ``"12%"`` becomes
    ``0.12``. Anything unparsable becomes ``0.0``.
    """
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return 0.0 if pd.isna(value) else float(value)
    if isinstance(value, str):
        cleaned = re.sub(r"[₹$,\s]", "", value)
        is_percent = cleaned.endswith("%")
        if is_percent:
            cleaned = cleaned[:-1]
        try:
            number = float(cleaned)
        except ValueError:
            return 0.0
        return number / 100 if is_percent else number
    return 0.0


def extract_metrics(sheets: dict[str, pd.DataFrame]) -> FinancialMetrics:
    """Extract metric columns from every sheet.

    Later sheets overwrite metrics found in earlier ones.

    Args:
        sheets: Sheets by name.

    Returns:
        FinancialMetrics: Extracted metrics.
    """
    metrics = FinancialMetrics()

    for name, df in sheets.items():
        if df.empty:
            logger.debug(f"Sheet {name} is empty, skipping")
            continue

        columns = identify_columns(list(df.columns))
        if not columns:
            logger.debug(f"No relevant columns identified in sheet {name}")
            continue

        if "period" in columns:
            metrics.periods = [
                "" if pd.isna(v) else str(v) for v in df[columns["period"]].tolist()
            ]
        for key in ("revenue", "profit", "margins"):
            if key in columns:
                setattr(metrics, key, [parse_number(v) for v in df[columns[key]].tolist()])

    return metrics


def format_currency(value: float) -> str:
    """Format a rupee amount in crores / lakhs.

      25000000 -> "₹2.50 Cr"
      250000   -> "₹2.50 L"
      2500     -> "₹2500.00"
    """
    if value >= 10_000_000:
        return f"₹{value / 10_000_000:.2f} Cr"
    if value >= 100_000:
        return f"₹{value / 100_000:.2f} L"
    return f"₹{value:.2f}"


def prepare_analysis_context(metrics: FinancialMetrics) -> str:
    """Render metrics into the text block sent to the LLM.

    Args:
        metrics: Extracted metrics.

    Returns:
        str: Context text; a fixed notice when no period column was found.
    """
    if not metrics.periods:
        return NO_PERIOD_CONTEXT

    lines = ["Financial Data Analysis:", "", "Time Periods:", ", ".join(metrics.periods), ""]

    sections = (
        ("Revenue Data:", metrics.revenue, format_currency),
        ("Profit Data:", metrics.profit, format_currency),
        ("Profit Margins:", metrics.margins, lambda v: f"{v * 100:.2f}%"),
    )
    for title, values, render in sections:
        if not values:
            continue
        lines.append(title)
        for period, value in zip(metrics.periods, values):
            lines.append(f"{period}: {render(value)}")
        lines.append("")

    return "\n".join(lines)


def extract_content_text(
    content: bytes, filename: str, mime_type: str = "", max_chars: int = 12000
) -> str:
    """Turn attachment bytes into analysis context.

    Args:
        content: Attachment bytes.
        filename: Attachment filename.
        mime_type: Declared MIME type.
        max_chars: Truncation limit for text content.

    Returns:
        str: Context text (may be empty for empty text files).

    Raises:
        AnalysisError: If a spreadsheet cannot be read or has no metrics.
    """
    if is_spreadsheet(filename, mime_type):
        metrics = extract_metrics(read_sheets(content, filename, mime_type))
        if metrics.is_empty:
            raise AnalysisError(f"No financial metrics found in {filename}")
        return prepare_analysis_context(metrics)[:max_chars]

    text = content.decode("utf-8", errors="replace")
    suffix = PurePath(filename or "").suffix.lower()
    content_type = "html" if "html" in (mime_type or "") or suffix in (".html", ".htm") else "text"
    return sanitize_content(text, content_type, max_length=max_chars)


class AttachmentAnalyzer:
    """
    Groq-backed analyzer for attachment content.

    Attributes:
        settings: Application settings.
        client: Groq API client.
    """

    def __init__(self, settings: Settings) -> None:
        """
        Initialize analyzer with settings.

        Args:
            settings: Application settings with Groq API key.

        Raises:
            ConfigurationError: If no Groq API key is configured.
        """
        if not settings.groq_api_key:
            raise ConfigurationError("GROQ_API_KEY is not configured")
        self.settings = settings
        self.client = Groq(api_key=settings.groq_api_key)

    def _build_user_prompt(self, context: str, query: str) -> str:
        return (
            f"Here is the financial data:\n\n{context}\n\n"
            f"Analyze this data and answer: {query}"
        )

    def analyze(
        self, content: bytes, filename: str, query: str, mime_type: str = ""
    ) -> str:
        """
        Answer ``query`` about one attachment.

        Args:
            content: Attachment bytes.
            filename: Attachment filename.
            query: User question.
            mime_type: Declared MIME type.

        Returns:
            str: The model's answer.

        Raises:
            AnalysisError: If no context could be extracted, the Groq call
                fails, or the model returns nothing.
        """
        context = extract_content_text(
            content, filename, mime_type, max_chars=self.settings.analysis_max_chars
        )
        if not context.strip():
            raise AnalysisError(f"Could not prepare analysis context from {filename}")

        try:
            response = self.client.chat.completions.create(
                model=self.settings.groq_model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": self._build_user_prompt(context, query)},
                ],
                temperature=0.3,
                max_tokens=1000,
            )
        except GroqError as e:
            logger.warning(f"Analysis request failed for {filename}: {e}")
            raise AnalysisError(f"Failed to analyze {filename}: {e}") from e

        analysis: Optional[str] = (response.choices[0].message.content or "").strip()
        if not analysis:
            raise AnalysisError(f"No analysis received for {filename}")

        logger.info(f"Analyzed {filename} ({len(analysis)} chars)")
        return analysis
