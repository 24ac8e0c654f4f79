"""Application configuration and settings.

Objective:
    Provide a single source of truth for runtime configuration used across the
    application (Google credential, Gmail paging, concurrency, display
    timezone, Groq analysis).

Responsibilities:
    - Load environment-driven settings via :class:`Settings` (Pydantic
      BaseSettings).
    - Provide small convenience helpers for frequently used derived settings.

High-level call tree:
    - :func:`get_settings` -> returns :class:`Settings`
    - :class:`Settings`
        - :attr:`Settings.has_credential`
        - :meth:`Settings.with_access_token`

Operational notes:
    - ``Settings`` loads from ``.env`` by default via ``pydantic-settings``.
    - Nothing is required at load time. A missing access token only becomes a
      :class:`src.attachment_organizer.errors.ConfigurationError` when a
      component is about to make a network call.
"""

from typing import Optional
import logging

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Attributes:
        google_access_token: OAuth bearer token with Gmail read and Drive
            write scopes. Acquired outside this application.
        gmail_user_id: Gmail user id used in API paths.
        gmail_page_size: Message references requested per search page.
        fetch_workers: Worker threads for concurrent message/file fetches.
        display_timezone: IANA timezone used for display dates and for the
            year/month grouping of the dated organize mode.
        request_timeout: Optional per-request timeout in seconds.
        groq_api_key: Groq API key for attachment analysis.
        groq_model: Groq model used for attachment analysis.
        analysis_max_chars: Maximum characters of extracted content sent to
            the model.
        log_level: Logging level.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Google
    google_access_token: Optional[str] = Field(
        default=None,
        description="Bearer token for Gmail (readonly) and Drive (read/write)",
    )
    gmail_user_id: str = Field(default="me", description="Gmail user id")
    gmail_page_size: int = Field(
        default=100, ge=1, le=500, description="Message references per search page"
    )

    # Processing Settings
    fetch_workers: int = Field(
        default=8, ge=1, le=32, description="Concurrent message detail fetches"
    )
    display_timezone: str = Field(
        default="Asia/Kolkata", description="Timezone for display dates and grouping"
    )
    request_timeout: Optional[float] = Field(
        default=None,
        description="Per-request timeout in seconds. Unset means wait indefinitely.",
    )

    # Groq Configuration
    groq_api_key: Optional[str] = Field(default=None, description="Groq API key")
    groq_model: str = Field(
        default="openai/gpt-oss-120b", description="Groq model name"
    )
    analysis_max_chars: int = Field(
        default=12000, ge=500, description="Max characters of extracted content per analysis"
    )

    log_level: str = Field(default="INFO", description="Logging level")

    @property
    def has_credential(self) -> bool:
        """Whether a non-blank access token is configured.

        Returns:
            bool: True when ``google_access_token`` is set.
        """
        return bool((self.google_access_token or "").strip())

    def with_access_token(self, token: Optional[str]) -> "Settings":
        """Return a copy of these settings carrying ``token``.

        The web API receives the bearer token per request; this keeps the
        process-wide settings object untouched.

        Args:
            token: Bearer token (may be None).

        Returns:
            Settings: Updated copy.
        """
        return self.model_copy(update={"google_access_token": token})


def get_settings() -> Settings:
    """
    Load and return application settings.

    For tests, construct a :class:`Settings` instance directly or pass a
    mocked settings object.

    Returns:
        Settings: Application settings instance.

    Raises:
        ValidationError: If an environment variable has an invalid value.
    """
    return Settings()
