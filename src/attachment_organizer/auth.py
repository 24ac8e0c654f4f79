"""Google API bearer credential handling.

Objective:
    Provide ready-to-use HTTP headers for Gmail and Drive requests from an
    access token acquired outside this application (browser sign-in, gcloud,
    a token broker, ...).

Responsibilities:
    - Hold the opaque bearer token; never inspect or refresh it.
    - Fail fast with :class:`src.attachment_organizer.errors.ConfigurationError`
      before any network call when no token is configured.
    - Document the scopes the token must carry.

High-level call tree:
    - :class:`BearerTokenAuth`
        - :meth:`BearerTokenAuth.get_auth_headers`
            - :meth:`BearerTokenAuth.get_access_token`
        - :meth:`BearerTokenAuth.ensure_configured`
        - :meth:`BearerTokenAuth.from_authorization_header`

Operational notes:
    - The CLI reads ``GOOGLE_ACCESS_TOKEN`` from the environment / ``.env``.
    - The web API reads the ``Authorization: Bearer ...`` request header.
"""

import logging
from typing import Optional

from .config import Settings
from .errors import ConfigurationError

logger = logging.getLogger(__name__)


class BearerTokenAuth:
    """
    Supplies the Authorization header for Google REST calls.

    Attributes:
        settings: Application settings holding the access token.
    """

    # Scopes the externally acquired token is expected to carry.
    GOOGLE_SCOPES = [
        "https://www.googleapis.com/auth/gmail.readonly",
        "https://www.googleapis.com/auth/drive.file",
        "https://www.googleapis.com/auth/drive",
        "https://www.googleapis.com/auth/userinfo.email",
    ]

    def __init__(self, settings: Settings) -> None:
        """
        Initialize the authenticator with settings.

        Args:
            settings: Application settings with the access token.
        """
        self.settings = settings

    @staticmethod
    def parse_authorization_header(value: Optional[str]) -> Optional[str]:
        """Extract the token from an ``Authorization`` header value.

        Args:
            value: Raw header value, e.g. ``"Bearer ya29..."``.

        Returns:
            Optional[str]: The token, or None when absent or not a bearer
            header.
        """
        if not value:
            return None
        scheme, _, token = value.strip().partition(" ")
        if scheme.lower() != "bearer" or not token.strip():
            return None
        return token.strip()

    @classmethod
    def from_authorization_header(
        cls, settings: Settings, value: Optional[str]
    ) -> "BearerTokenAuth":
        """Build an authenticator for a token received in a request header.

        Args:
            settings: Base settings.
            value: Raw ``Authorization`` header value.

        Returns:
            BearerTokenAuth: Authenticator carrying that token.
        """
        token = cls.parse_authorization_header(value)
        return cls(settings.with_access_token(token))

    def ensure_configured(self) -> None:
        """Raise unless an access token is available.

        Raises:
            ConfigurationError: If no token is configured.
        """
        if not self.settings.has_credential:
            raise ConfigurationError(
                "No Google access token configured. Set GOOGLE_ACCESS_TOKEN "
                "or send an 'Authorization: Bearer <token>' header."
            )

    def get_access_token(self) -> str:
        """
        Return the configured access token.

        Returns:
            str: Bearer token.

        Raises:
            ConfigurationError: If no token is configured.
        """
        self.ensure_configured()
        return (self.settings.google_access_token or "").strip()

    def get_auth_headers(self) -> dict[str, str]:
        """
        Get HTTP headers with authorization for Google API requests.

        Returns:
            dict[str, str]: Headers dictionary with Bearer token.
        """
        token = self.get_access_token()
        return {
            "Authorization": f"Bearer {token}",
            "Accept": "application/json",
        }
