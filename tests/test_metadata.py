from src.attachment_organizer.metadata import (
    build_email_detail,
    compute_sort_key,
    format_display_date,
    get_header,
    localize,
    parse_sender,
    sort_emails,
)
from src.attachment_organizer.models import EmailDetail, GmailMessage, MessageHeader


def test_get_header_is_exact_and_first_wins() -> None:
    headers = [
        MessageHeader(name="subject", value="lower"),
        MessageHeader(name="Subject", value="first"),
        MessageHeader(name="Subject", value="second"),
    ]

    assert get_header(headers, "Subject") == "first"
    assert get_header(headers, "Date") is None


def test_parse_sender_variants() -> None:
    assert parse_sender("Ops Team <ops@gruhas.com>") == ("Ops Team", "ops@gruhas.com")
    assert parse_sender("ops@gruhas.com") == ("ops@gruhas.com", "")
    assert parse_sender("<ops@gruhas.com>") == ("Unknown sender", "ops@gruhas.com")
    assert parse_sender(None) == ("Unknown sender", "")


def test_display_date_is_india_standard_time() -> None:
    """10:00 UTC is 15:30 IST on the same day."""

    display = format_display_date("Fri, 15 Mar 2024 10:00:00 +0000")

    assert display == "15 Mar 2024 (Friday), 03:30 PM"


def test_display_date_weekday_uses_local_day() -> None:
    """20:00 UTC Friday is already Saturday in IST."""

    display = format_display_date("Fri, 15 Mar 2024 20:00:00 +0000")

    assert display.startswith("16 Mar 2024 (Saturday)")


def test_display_date_falls_back_to_raw_value() -> None:
    assert format_display_date("sometime last week") == "sometime last week"
    assert format_display_date("") == ""


def test_date_past_local_range_keeps_raw_value() -> None:
    """23:00 UTC on 31 Dec 9999 has no IST equivalent."""

    raw = "Fri, 31 Dec 9999 23:00:00 +0000"

    assert localize(raw) is None
    assert format_display_date(raw) == raw

    message = GmailMessage.model_validate(
        {"id": "m1", "payload": {"headers": [{"name": "Date", "value": raw}]}}
    )
    detail = build_email_detail(message, [])

    assert detail.display_date == raw
    assert detail.sort_key is not None


def test_iso_dates_are_parsed() -> None:
    assert compute_sort_key("2024-03-15T10:00:00Z") == compute_sort_key(
        "Fri, 15 Mar 2024 10:00:00 +0000"
    )


def test_build_email_detail_defaults() -> None:
    message = GmailMessage.model_validate({"id": "m1", "payload": {"headers": []}})

    detail = build_email_detail(message, [])

    assert detail.subject == "No subject"
    assert detail.from_name == "Unknown sender"
    assert detail.raw_date == "Unknown date"
    assert detail.display_date == "Unknown date"
    assert detail.sort_key is None


def test_sort_is_descending_with_unparsable_last() -> None:
    emails = [
        EmailDetail(message_id="old", raw_date="Mon, 01 Jan 2024 00:00:00 +0000",
                    sort_key=compute_sort_key("Mon, 01 Jan 2024 00:00:00 +0000")),
        EmailDetail(message_id="bad1", raw_date="??", sort_key=None),
        EmailDetail(message_id="new", raw_date="Fri, 15 Mar 2024 10:00:00 +0000",
                    sort_key=compute_sort_key("Fri, 15 Mar 2024 10:00:00 +0000")),
        EmailDetail(message_id="bad2", raw_date="", sort_key=None),
    ]

    ordered = [e.message_id for e in sort_emails(emails)]

    assert ordered == ["new", "old", "bad1", "bad2"]
