"""Exception taxonomy shared by all components.

Per-item failures inside a batch are not exceptions; they are recorded as
:class:`src.attachment_organizer.models.ItemFailure` entries so the batch can
continue.
"""

from typing import Optional


class OrganizerError(Exception):
    """Base class for errors raised by this package."""


class CriterionValidationError(OrganizerError, ValueError):
    """Raised when a search criterion is not an email, domain or company name.

    Args:
        raw_value: The rejected user input.
    """

    USER_MESSAGE = (
        'Please enter a valid email address (e.g., "ops@gruhas.com"), '
        'company name (e.g., "Gruhas") or domain (e.g., "gruhas.com")'
    )

    def __init__(self, raw_value: str) -> None:
        super().__init__(self.USER_MESSAGE)
        self.raw_value = raw_value


class FetchError(OrganizerError):
    """Raised when a remote call returns a non-success response.

    Transport failures (connection reset, DNS, ...) are reported through the
    same type with ``status_code=None``.

    Args:
        message: Human readable description.
        status_code: HTTP status code, if a response was received.
        url: Request URL.
        detail: Response body or underlying error text.
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        url: str = "",
        detail: str = "",
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.url = url
        self.detail = detail


class ConfigurationError(OrganizerError):
    """Raised when a credential or required setting is missing."""


class AnalysisError(OrganizerError):
    """Raised when an attachment cannot be turned into analysis input."""
