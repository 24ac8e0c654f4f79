import pytest

from src.attachment_organizer.criterion import (
    COMPANY_DOMAIN_SUFFIXES,
    build_predicate,
    resolve_criterion,
)
from src.attachment_organizer.errors import CriterionValidationError
from src.attachment_organizer.models import CriterionKind, SearchCriterion


def test_email_address_is_lowercased() -> None:
    """Full addresses are accepted first and normalized to lower case."""

    criterion = resolve_criterion("  Ops@Gruhas.COM ")

    assert criterion.kind == CriterionKind.EMAIL_ADDRESS
    assert criterion.value == "ops@gruhas.com"
    assert build_predicate(criterion) == "from:ops@gruhas.com"


def test_domain_builds_wildcard_predicate() -> None:
    """A bare domain matches every sender of that domain."""

    criterion = resolve_criterion("gruhas.com")

    assert criterion.kind == CriterionKind.DOMAIN
    assert build_predicate(criterion) == "from:*@gruhas.com"


def test_multi_label_domain_is_accepted() -> None:
    criterion = resolve_criterion("mail.gruhas-tech.co.in")

    assert criterion.kind == CriterionKind.DOMAIN
    assert criterion.value == "mail.gruhas-tech.co.in"


def test_company_name_expands_to_domain_guesses() -> None:
    """Company names become an OR-group over common domain suffixes."""

    criterion = resolve_criterion("Gruhas Proptech")

    assert criterion.kind == CriterionKind.COMPANY_NAME
    assert criterion.value == "gruhasproptech"

    predicate = build_predicate(criterion)
    assert predicate.startswith("(") and predicate.endswith(")")
    terms = predicate[1:-1].split(" OR ")
    assert len(terms) == len(COMPANY_DOMAIN_SUFFIXES)
    assert terms[0] == "from:*@gruhasproptech.com"
    assert "from:*@gruhasproptech.co.in" in terms


@pytest.mark.parametrize(
    "raw",
    ["", "   ", "@gruhas.com", "ops@", "gruhas..com", "hello!", "a_b c"],
)
def test_invalid_inputs_are_rejected(raw: str) -> None:
    with pytest.raises(CriterionValidationError) as exc_info:
        resolve_criterion(raw)

    assert exc_info.value.raw_value == raw
    assert "valid email address" in str(exc_info.value)


def test_validation_error_is_a_value_error() -> None:
    with pytest.raises(ValueError):
        resolve_criterion("not valid!")


def test_predicate_for_constructed_criterion() -> None:
    criterion = SearchCriterion(kind=CriterionKind.DOMAIN, value="example.org")

    assert build_predicate(criterion) == "from:*@example.org"
