"""Message header normalization.

Objective:
    Derive the display fields of an
    :class:`src.attachment_organizer.models.EmailDetail` from a raw Gmail
    message payload.

Responsibilities:
    - Exact-name header lookup (first match wins).
    - Sender display name / address split.
    - Date parsing into a numeric sort key.
    - Timezone-localized display date (India Standard Time by default).
    - Deterministic descending sort with unparsable dates last.

High-level call tree:
    - :func:`build_email_detail`
        - :func:`get_header`
        - :func:`parse_sender`
        - :func:`compute_sort_key` -> :func:`parse_date`
        - :func:`format_display_date` -> :func:`parse_date`
    - :func:`sort_emails`

Operational notes:
    - None of the functions here raise on malformed input; they fall back to
      placeholder strings or the raw value.
"""

import logging
from datetime import datetime, timedelta, timezone, tzinfo
from email.utils import parsedate_to_datetime
from typing import Iterable, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .models import AttachmentDescriptor, EmailDetail, GmailMessage, MessageHeader

logger = logging.getLogger(__name__)

DEFAULT_TIMEZONE = "Asia/Kolkata"

NO_SUBJECT = "No subject"
UNKNOWN_SENDER = "Unknown sender"
UNKNOWN_DATE = "Unknown date"

# IST has no DST, so a fixed offset is exact when tz data is unavailable.
_IST = timezone(timedelta(hours=5, minutes=30), "IST")


def get_header(headers: Iterable[MessageHeader], name: str) -> Optional[str]:
    """Return the value of the first header named exactly ``name``.

    The match is case-sensitive on the header key as delivered.

    Args:
        headers: Message headers.
        name: Header name, e.g. ``"Subject"``.

    Returns:
        Optional[str]: Header value, or None if absent.
    """
    for header in headers:
        if header.name == name:
            return header.value
    return None


def parse_sender(from_value: Optional[str]) -> tuple[str, str]:
    """Split a ``From`` header into display name and address.

    The name is the text before the first ``<`` (trimmed); the address is
    the text inside the first ``<...>`` pair, or empty.

      "Ops Team <ops@gruhas.com>" -> ("Ops Team", "ops@gruhas.com")
      "ops@gruhas.com"            -> ("ops@gruhas.com", "")
      "<ops@gruhas.com>"          -> ("Unknown sender", "ops@gruhas.com")

    Args:
        from_value: Raw ``From`` header value.

    Returns:
        tuple[str, str]: (display name, address).
    """
    if not from_value:
        return UNKNOWN_SENDER, ""

    name = from_value.split("<", 1)[0].strip()

    address = ""
    start = from_value.find("<")
    if start != -1:
        end = from_value.find(">", start + 1)
        if end != -1:
            address = from_value[start + 1 : end].strip()

    return name or UNKNOWN_SENDER, address


def parse_date(raw_date: Optional[str]) -> Optional[datetime]:
    """Parse a ``Date`` header into an aware datetime.

    RFC 2822 is tried first, then ISO 8601. Naive results are treated as UTC.

    Args:
        raw_date: Raw header value.

    Returns:
        Optional[datetime]: Parsed datetime, or None if unparsable.
    """
    if not raw_date or not raw_date.strip():
        return None

    value = raw_date.strip()
    parsed: Optional[datetime] = None
    try:
        parsed = parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None

    if parsed is None:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def compute_sort_key(raw_date: Optional[str]) -> Optional[float]:
    """Epoch timestamp of ``raw_date``, or None when unparsable."""
    parsed = parse_date(raw_date)
    return parsed.timestamp() if parsed else None


def resolve_timezone(name: str) -> tzinfo:
    """Look up an IANA timezone, falling back when tz data is missing.

    Args:
        name: IANA timezone name.

    Returns:
        tzinfo: Zone object.
    """
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Timezone %r not available; using fixed offset", name)
        return _IST if name == DEFAULT_TIMEZONE else timezone.utc


def localize(raw_date: Optional[str], tz_name: str = DEFAULT_TIMEZONE) -> Optional[datetime]:
    """Parse ``raw_date`` and convert it to ``tz_name``.

    Returns None when the date is unparsable or falls outside the
    representable range once shifted into ``tz_name``.
    """
    parsed = parse_date(raw_date)
    if parsed is None:
        return None
    try:
        return parsed.astimezone(resolve_timezone(tz_name))
    except (OverflowError, ValueError):
        logger.debug("Date %r out of range in %s", raw_date, tz_name)
        return None


def format_display_date(raw_date: Optional[str], tz_name: str = DEFAULT_TIMEZONE) -> str:
    """Format a date for display, e.g. ``"15 Mar 2024 (Friday), 03:30 PM"``.

    The weekday is computed in the display timezone. Unparsable input is
    returned unmodified.

    Args:
        raw_date: Raw ``Date`` header value.
        tz_name: IANA timezone name.

    Returns:
        str: Display date.
    """
    local = localize(raw_date, tz_name)
    if local is None:
        return raw_date or ""
    return f"{local:%d %b %Y} ({local:%A}), {local:%I:%M %p}"


def build_email_detail(
    message: GmailMessage,
    attachments: list[AttachmentDescriptor],
    tz_name: str = DEFAULT_TIMEZONE,
) -> EmailDetail:
    """Build the normalized record for one message.

    Args:
        message: Full Gmail message.
        attachments: Attachments flattened from the message's part tree.
        tz_name: Display timezone.

    Returns:
        EmailDetail: Normalized record.
    """
    headers = message.payload.headers
    from_name, from_email = parse_sender(get_header(headers, "From"))
    raw_date = get_header(headers, "Date") or UNKNOWN_DATE

    return EmailDetail(
        message_id=message.id,
        subject=get_header(headers, "Subject") or NO_SUBJECT,
        from_name=from_name,
        from_email=from_email,
        raw_date=raw_date,
        sort_key=compute_sort_key(raw_date),
        display_date=format_display_date(raw_date, tz_name),
        attachments=attachments,
    )


def sort_emails(emails: Iterable[EmailDetail]) -> list[EmailDetail]:
    """Sort newest first; unparsable dates go last in input order.

    Args:
        emails: Records to sort.

    Returns:
        list[EmailDetail]: Sorted copy.
    """
    return sorted(
        emails,
        key=lambda e: (e.sort_key is None, -(e.sort_key or 0.0)),
    )
