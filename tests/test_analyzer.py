from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from groq import GroqError

from src.attachment_organizer import analyzer as analyzer_module
from src.attachment_organizer.analyzer import (
    NO_PERIOD_CONTEXT,
    AttachmentAnalyzer,
    extract_content_text,
    format_currency,
    identify_columns,
    parse_number,
)
from src.attachment_organizer.config import Settings
from src.attachment_organizer.errors import AnalysisError, ConfigurationError

CSV = (
    "Month,Revenue,Net Profit,Margin %\n"
    'Jan 2024,"₹2,50,00,000","₹5,00,000",12%\n'
    "Feb 2024,1500000,250000,8.5%\n"
).encode("utf-8")


def _groq_response(text):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=text))])


@pytest.fixture
def fake_groq(monkeypatch) -> MagicMock:
    client = MagicMock()
    monkeypatch.setattr(analyzer_module, "Groq", MagicMock(return_value=client))
    return client


def test_csv_is_rendered_with_indian_currency() -> None:
    context = extract_content_text(CSV, "mis.csv", "text/csv")

    assert "Time Periods:\nJan 2024, Feb 2024" in context
    assert "Revenue Data:\nJan 2024: ₹2.50 Cr\nFeb 2024: ₹15.00 L" in context
    assert "Profit Data:\nJan 2024: ₹5.00 L\nFeb 2024: ₹2.50 L" in context
    assert "Profit Margins:\nJan 2024: 12.00%\nFeb 2024: 8.50%" in context


def test_sheet_without_metric_columns_is_rejected() -> None:
    with pytest.raises(AnalysisError):
        extract_content_text(b"Name,City\nA,B\n", "people.csv")


def test_sheet_without_period_column_gets_notice() -> None:
    assert extract_content_text(b"Revenue\n100\n", "r.csv") == NO_PERIOD_CONTEXT


def test_identify_columns_last_match_wins() -> None:
    columns = identify_columns(["Date", "Sales", "Gross Revenue", 3])

    assert columns == {"period": "Date", "revenue": "Gross Revenue"}


@pytest.mark.parametrize(
    "value,expected",
    [
        ("$1,234.50", 1234.5),
        ("₹ 10,000", 10000.0),
        ("12.5%", 0.125),
        ("n/a", 0.0),
        (7, 7.0),
        (float("nan"), 0.0),
        (None, 0.0),
    ],
)
def test_parse_number(value, expected) -> None:
    assert parse_number(value) == pytest.approx(expected)


def test_format_currency_thresholds() -> None:
    assert format_currency(25_000_000) == "₹2.50 Cr"
    assert format_currency(250_000) == "₹2.50 L"
    assert format_currency(2_500) == "₹2500.00"


def test_html_content_is_sanitized() -> None:
    html = b"<html><script>steal()</script><p>Revenue grew <b>12%</b></p></html>"

    text = extract_content_text(html, "note.html", "text/html")

    assert "Revenue grew 12%" in text
    assert "steal" not in text


def test_analyze_sends_context_to_groq(fake_groq) -> None:
    fake_groq.chat.completions.create.return_value = _groq_response(" Revenue is up. ")
    analyzer = AttachmentAnalyzer(Settings(groq_api_key="gsk", groq_model="test-model"))

    answer = analyzer.analyze(CSV, "mis.csv", "How is revenue trending?")

    assert answer == "Revenue is up."
    kwargs = fake_groq.chat.completions.create.call_args.kwargs
    assert kwargs["model"] == "test-model"
    assert kwargs["messages"][0]["role"] == "system"
    user = kwargs["messages"][1]["content"]
    assert "₹2.50 Cr" in user
    assert user.endswith("Analyze this data and answer: How is revenue trending?")


def test_analyzer_requires_api_key() -> None:
    with pytest.raises(ConfigurationError):
        AttachmentAnalyzer(Settings(groq_api_key=None))


def test_analyze_wraps_groq_errors(fake_groq) -> None:
    fake_groq.chat.completions.create.side_effect = GroqError("down")
    analyzer = AttachmentAnalyzer(Settings(groq_api_key="gsk"))

    with pytest.raises(AnalysisError):
        analyzer.analyze(CSV, "mis.csv", "?")


def test_analyze_rejects_empty_content_and_answers(fake_groq) -> None:
    analyzer = AttachmentAnalyzer(Settings(groq_api_key="gsk"))

    with pytest.raises(AnalysisError):
        analyzer.analyze(b"", "empty.txt", "?")
    fake_groq.chat.completions.create.assert_not_called()

    fake_groq.chat.completions.create.return_value = _groq_response("")
    with pytest.raises(AnalysisError):
        analyzer.analyze(b"some notes", "notes.txt", "?")
