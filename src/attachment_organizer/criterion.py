"""Sender criterion validation and search predicate construction.

Objective:
    Turn a free-form user string (email address, domain or bare company name)
    into a :class:`src.attachment_organizer.models.SearchCriterion` and the
    Gmail ``from:`` predicate for it.

High-level call tree:
    - :func:`resolve_criterion` -> :class:`SearchCriterion`
    - :func:`build_predicate` -> ``str``
        - :func:`company_domain_candidates` (company names only)

Operational notes:
    - Company names are expanded against a fixed list of common domain
      suffixes. This is a best-effort guess of a company's sending domains
      without a WHOIS/MX lookup; it can over- or under-match. Replace
      :func:`build_predicate` to plug in a real domain lookup.
"""

import logging
import re

from .errors import CriterionValidationError
from .models import CriterionKind, SearchCriterion

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[A-Za-z0-9._%+'-]+@[A-Za-z0-9]+([-.][A-Za-z0-9]+)*\.[A-Za-z]{2,}$")
DOMAIN_PATTERN = re.compile(r"^[A-Za-z0-9]+([-.][A-Za-z0-9]+)*\.[A-Za-z]{2,}$")
COMPANY_PATTERN = re.compile(r"^[A-Za-z0-9]+(?:[ -][A-Za-z0-9]+)*$")

# Order matters only for readability of the generated query.
COMPANY_DOMAIN_SUFFIXES = (
    ".com",
    ".in",
    ".co.in",
    ".net",
    ".org",
    ".co",
    ".io",
    ".biz",
    ".info",
    ".net.in",
    ".org.in",
    ".firm.in",
    ".co.uk",
    ".us",
    ".ca",
    ".com.au",
    ".ae",
    ".sg",
    ".asia",
    ".ai",
    ".tech",
    ".global",
)


def resolve_criterion(raw_value: str) -> SearchCriterion:
    """Validate user input and classify it.

    Validation order:
        1. Full email address.
        2. Bare domain (``label(.label)*.tld``, TLD of two or more letters).
        3. Company name: alphanumeric tokens separated by a space or hyphen.

    Args:
        raw_value: Raw user input.

    Returns:
        SearchCriterion: Normalized criterion.

    Raises:
        CriterionValidationError: If none of the rules match.
    """
    value = (raw_value or "").strip()

    if EMAIL_PATTERN.match(value):
        return SearchCriterion(kind=CriterionKind.EMAIL_ADDRESS, value=value.lower())

    if DOMAIN_PATTERN.match(value):
        return SearchCriterion(kind=CriterionKind.DOMAIN, value=value.lower())

    if COMPANY_PATTERN.match(value):
        base = re.sub(r"[^a-z0-9]", "", value.lower())
        return SearchCriterion(kind=CriterionKind.COMPANY_NAME, value=base)

    logger.debug("Rejected search criterion: %r", raw_value)
    raise CriterionValidationError(raw_value)


def company_domain_candidates(base: str) -> list[str]:
    """Guess likely domains for a company base name.

    Args:
        base: Lower-cased alphanumeric company name.

    Returns:
        list[str]: ``base`` joined with each suffix.
    """
    return [f"{base}{suffix}" for suffix in COMPANY_DOMAIN_SUFFIXES]


def build_predicate(criterion: SearchCriterion) -> str:
    """Build the Gmail sender predicate for a criterion.

    Args:
        criterion: Validated criterion.

    Returns:
        str: ``from:`` predicate (an OR-group for company names).
    """
    if criterion.kind == CriterionKind.EMAIL_ADDRESS:
        return f"from:{criterion.value}"

    if criterion.kind == CriterionKind.DOMAIN:
        return f"from:*@{criterion.value}"

    terms = [f"from:*@{domain}" for domain in company_domain_candidates(criterion.value)]
    return "(" + " OR ".join(terms) + ")"
