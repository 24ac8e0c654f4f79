import re

import pytest

from src.attachment_organizer.file_categorizer import (
    CategoryPattern,
    FileCategorizer,
    categorize_file,
)


def test_business_unit_with_date() -> None:
    """Business-unit acronyms outrank every other category."""

    result = categorize_file("MBO_Inventory_Report_Mar2024.xlsx")

    assert result.path == "2024/March/MBO/General"
    assert result.segments == ["2024", "March", "MBO", "General"]


@pytest.mark.parametrize(
    "filename,expected",
    [
        ("Sales_Mar2024.xlsx", "2024/March"),
        ("summary march_24.pdf", "2024/March"),
        ("Deposit-Sept-2023.csv", "2023/September"),
        ("2024-Jan statement.pdf", "2024/January"),
        ("mis_2023_11.xlsx", "2023/November"),
        ("mis 07-2022.xlsx", "2022/July"),
        ("daily_05-12-2024.csv", "2024/December"),
        ("stock_statement.xlsx", "No-Date"),
        ("summary_2024.pdf", "No-Date"),
    ],
)
def test_date_path_extraction(filename: str, expected: str) -> None:
    assert FileCategorizer().extract_date_path(filename) == expected


def test_financial_subcategories() -> None:
    assert categorize_file("Inventory Statement Apr 2024.xlsx").path == (
        "2024/April/Financial/Assets"
    )
    assert categorize_file("payment_advice.pdf").path == "No-Date/Financial/Transactions"


def test_profit_and_loss_regex() -> None:
    assert categorize_file("P & L Q1.xlsx").category == "Financial"
    assert categorize_file("p&l.xlsx").category == "Financial"


def test_priority_wins_regardless_of_token_order() -> None:
    """Financial (90) beats Reports (80) wherever the tokens appear."""

    assert categorize_file("report_payment.pdf").category == "Financial"
    assert categorize_file("payment_report.pdf").category == "Financial"


def test_reports_and_sales_subcategories() -> None:
    assert categorize_file("MIS_Feb_2024.xlsx").path == "2024/February/Reports/MIS"
    assert categorize_file("detailed analysis.pdf").sub_category == "Analysis"
    assert categorize_file("Like to Like sales.xlsx").path == (
        "No-Date/Sales/Comparisons"
    )
    assert categorize_file("store wise sales.xlsx").path == (
        "No-Date/Sales/Store-Performance"
    )


def test_storewise_maps_to_store_performance() -> None:
    assert categorize_file("storewise_revenue.xlsx").path == (
        "No-Date/Sales/Store-Performance"
    )


def test_unknown_file_is_other_general() -> None:
    assert categorize_file("photo.jpg").path == "No-Date/Other/General"


def test_business_unit_prefers_whole_token() -> None:
    """``FOFO`` as a token wins over ``ebo`` hidden inside another word."""

    assert categorize_file("rebooking_fofo_v2.xlsx").category == "FOFO"
    assert categorize_file("rebooking.xlsx").category == "EBO"


def test_custom_tables_are_respected() -> None:
    categorizer = FileCategorizer(
        category_patterns=[
            CategoryPattern(category="Low", priority=1, terms=("bill",)),
            CategoryPattern(category="High", priority=5, regex=re.compile(r"urgent")),
        ],
        sub_category_patterns=[
            CategoryPattern(category="High", sub_category="Now", priority=1, terms=("urgent",)),
        ],
    )

    assert categorizer.categorize("bill_urgent.pdf").path == "No-Date/High/Now"
    assert categorizer.categorize("bill.pdf").path == "No-Date/Low/General"


def test_categorization_is_deterministic() -> None:
    first = categorize_file("EBO_Sales_Jun-23.xlsx")
    second = categorize_file("EBO_Sales_Jun-23.xlsx")

    assert first == second
    assert first.path == "2023/June/EBO/General"
