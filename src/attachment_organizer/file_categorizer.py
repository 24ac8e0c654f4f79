"""Filename-based attachment categorization.

Objective:
    Map an attachment filename to a
    :class:`src.attachment_organizer.models.CategoryPath`
    (``YYYY/MonthName/Category/SubCategory``) without any network state.

Core strategy:
    1. Normalize the filename (lower-case) and split it into tokens on
       whitespace, underscores and hyphens.
    2. Infer a date path from month/year tokens.
    3. Walk the category table in descending priority; the first entry whose
       term appears as a token or substring (or whose regex matches) wins.
       The business-unit entry yields the matched acronym itself.
    4. Resolve the subcategory the same way, restricted to entries declared
       for the resolved main category.

High-level call tree:
    - :func:`categorize_file`
        - :meth:`FileCategorizer.categorize`
            - :meth:`FileCategorizer.extract_date_path`
            - :meth:`FileCategorizer.find_match`
            - :meth:`FileCategorizer.find_business_unit`

Operational notes:
    - Categorization is deterministic: patterns with equal priority keep their
      table order.
    - Keep rules simple and ordered by priority. When adding new ones, give
      them a priority relative to the existing entries rather than relying on
      table position.
"""

import calendar
import re
from dataclasses import dataclass
from typing import Optional, Pattern, Sequence

from .models import CategoryPath

NO_DATE = "No-Date"
OTHER_CATEGORY = "Other"
GENERAL_SUBCATEGORY = "General"

# Sentinel: the category is the matched term, upper-cased.
MATCH_EXACT = "match_exact"

_MONTHS = (
    r"jan(?:uary)?|feb(?:ruary)?|mar(?:ch)?|apr(?:il)?|may|june?|july?"
    r"|aug(?:ust)?|sep(?:t(?:ember)?)?|oct(?:ober)?|nov(?:ember)?|dec(?:ember)?"
)
_SEP = r"[\s_-]*"

# Evaluated in order; each returns (month, year) groups via named groups.
DATE_PATTERNS: tuple[Pattern[str], ...] = (
    re.compile(rf"(?<![a-z])(?P<month>{_MONTHS}){_SEP}(?P<year>20\d{{2}}|\d{{2}})(?!\d)"),
    re.compile(rf"(?<!\d)(?P<year>20\d{{2}}|\d{{2}}){_SEP}(?P<month>{_MONTHS})(?![a-z])"),
    re.compile(r"(?<!\d)(?P<year>20\d{2})[-_](?P<month>0[1-9]|1[0-2])(?!\d)"),
    re.compile(r"(?<!\d)(?P<month>0[1-9]|1[0-2])[-_](?P<year>20\d{2}|\d{2})(?!\d|[-_]\d)"),
)

_MONTH_NUMBERS = {
    calendar.month_abbr[i].lower(): i for i in range(1, 13)
}


@dataclass(frozen=True)
class CategoryPattern:
    """One row of a category table.

    Args:
        category: Main category (or :data:`MATCH_EXACT`).
        priority: Higher wins.
        terms: Terms matched as tokens or substrings.
        regex: Alternative to ``terms``.
        sub_category: Subcategory label for subcategory tables.
    """

    category: str
    priority: int
    terms: tuple[str, ...] = ()
    regex: Optional[Pattern[str]] = None
    sub_category: Optional[str] = None


CATEGORY_PATTERNS: tuple[CategoryPattern, ...] = (
    # Business units
    CategoryPattern(
        category=MATCH_EXACT,
        priority=100,
        terms=("ebo", "mbo", "lfs", "fofo"),
    ),
    CategoryPattern(
        category="Financial",
        priority=90,
        terms=(
            "inventory",
            "receivable",
            "deposit",
            "payment",
            "invoice",
            "balance sheet",
            "profit",
            "loss",
        ),
    ),
    CategoryPattern(
        category="Financial",
        priority=90,
        regex=re.compile(r"p\s*(?:&|and)\s*l(?![a-z])"),
    ),
    CategoryPattern(
        category="Reports",
        priority=80,
        terms=("mis", "report", "analysis", "summary", "review", "performance"),
    ),
    CategoryPattern(
        category="Sales",
        priority=70,
        terms=("sale", "revenue", "transaction", "store wise", "like to like", "ltl", "sssg"),
    ),
    CategoryPattern(
        category="Metrics",
        priority=60,
        terms=("count", "metrics", "kpi", "statistics", "footfall", "conversion"),
    ),
)

SUB_CATEGORY_PATTERNS: tuple[CategoryPattern, ...] = (
    CategoryPattern(
        category="Financial",
        sub_category="Assets",
        priority=90,
        terms=("inventory", "receivable", "stock"),
    ),
    CategoryPattern(
        category="Financial",
        sub_category="Transactions",
        priority=90,
        terms=("deposit", "payment"),
    ),
    CategoryPattern(
        category="Sales",
        sub_category="Comparisons",
        priority=80,
        terms=("like to like", "ltl", "comparison"),
    ),
    CategoryPattern(
        category="Sales",
        sub_category="Store-Performance",
        priority=70,
        terms=("store wise", "storewise"),
    ),
    CategoryPattern(
        category="Reports",
        sub_category="MIS",
        priority=90,
        terms=("mis",),
    ),
    CategoryPattern(
        category="Reports",
        sub_category="Analysis",
        priority=80,
        terms=("analysis", "detailed"),
    ),
)


def normalize_filename(filename: str) -> str:
    return (filename or "").lower().strip()


def tokenize(normalized: str) -> list[str]:
    return [t for t in re.split(r"[\s_-]+", normalized) if t]


class FileCategorizer:
    """
    Pure filename categorizer.

    The tables are injectable for testing; the module-level defaults are used
    otherwise.

    Attributes:
        category_patterns: Main category table.
        sub_category_patterns: Subcategory table.
    """

    def __init__(
        self,
        category_patterns: Sequence[CategoryPattern] = CATEGORY_PATTERNS,
        sub_category_patterns: Sequence[CategoryPattern] = SUB_CATEGORY_PATTERNS,
    ) -> None:
        # sorted() is stable, so equal priorities keep table order.
        self.category_patterns = sorted(category_patterns, key=lambda p: -p.priority)
        self.sub_category_patterns = sorted(sub_category_patterns, key=lambda p: -p.priority)

    def extract_date_path(self, filename: str) -> str:
        """Infer ``YYYY/MonthName`` from the filename.

        Recognized forms: ``Mar2024``, ``march_24``, ``2024-Mar``,
        ``2024_03``, ``03-2024``. Two-digit years get a ``20`` prefix.

        Args:
            filename: Attachment filename.

        Returns:
            str: ``YYYY/MonthName`` or :data:`NO_DATE`.
        """
        normalized = normalize_filename(filename)

        for pattern in DATE_PATTERNS:
            match = pattern.search(normalized)
            if not match:
                continue

            month_text = match.group("month")
            year = match.group("year")
            if month_text.isdigit():
                month_number = int(month_text)
            else:
                month_number = _MONTH_NUMBERS[month_text[:3]]

            if len(year) == 2:
                year = f"20{year}"

            return f"{year}/{calendar.month_name[month_number]}"

        return NO_DATE

    @staticmethod
    def _matches(pattern: CategoryPattern, normalized: str, words: list[str]) -> bool:
        if pattern.regex is not None:
            return bool(pattern.regex.search(normalized))
        return any(term in words or term in normalized for term in pattern.terms)

    def find_match(
        self, filename: str, patterns: Sequence[CategoryPattern]
    ) -> Optional[CategoryPattern]:
        """Return the highest-priority pattern matching ``filename``.

        Args:
            filename: Attachment filename.
            patterns: Candidate patterns, already sorted by priority.

        Returns:
            Optional[CategoryPattern]: First match, or None.
        """
        normalized = normalize_filename(filename)
        words = tokenize(normalized)

        for pattern in patterns:
            if self._matches(pattern, normalized, words):
                return pattern
        return None

    @staticmethod
    def find_business_unit(filename: str, pattern: CategoryPattern) -> str:
        """Return the matched business-unit acronym, upper-cased.

        Whole tokens are preferred over substrings; table order breaks ties.

        Args:
            filename: Attachment filename.
            pattern: The matched :data:`MATCH_EXACT` pattern.

        Returns:
            str: Upper-cased acronym.
        """
        normalized = normalize_filename(filename)
        words = tokenize(normalized)

        for term in pattern.terms:
            if term in words:
                return term.upper()
        for term in pattern.terms:
            if term in normalized:
                return term.upper()
        return OTHER_CATEGORY

    def categorize(self, filename: str) -> CategoryPath:
        """Categorize one filename.

        Args:
            filename: Attachment filename.

        Returns:
            CategoryPath: Date path, category and subcategory.
        """
        date_path = self.extract_date_path(filename)

        main_match = self.find_match(filename, self.category_patterns)
        if main_match is None:
            category = OTHER_CATEGORY
        elif main_match.category == MATCH_EXACT:
            category = self.find_business_unit(filename, main_match)
        else:
            category = main_match.category

        candidates = [p for p in self.sub_category_patterns if p.category == category]
        sub_match = self.find_match(filename, candidates)
        sub_category = (sub_match.sub_category if sub_match else None) or GENERAL_SUBCATEGORY

        return CategoryPath(date_path=date_path, category=category, sub_category=sub_category)


_default_categorizer = FileCategorizer()


def categorize_file(filename: str) -> CategoryPath:
    """Categorize ``filename`` with the default tables."""
    return _default_categorizer.categorize(filename)
