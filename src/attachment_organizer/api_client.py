"""Authenticated REST helper shared by the Gmail and Drive clients.

Objective:
    Centralize HTTP request construction, authentication headers, and error
    translation for Google REST endpoints.

Responsibilities:
    - Issue authenticated HTTP requests (via :mod:`requests`).
    - Translate non-2xx responses and transport errors into
      :class:`src.attachment_organizer.errors.FetchError`.
    - Decode JSON responses, or return raw bytes for media downloads.

Error handling:
    - Non-success responses are logged at ERROR (or DEBUG for statuses the
      caller expects) and raised as ``FetchError``.
"""

import logging
from typing import AbstractSet, Any, Optional

import requests

from .auth import BearerTokenAuth
from .config import Settings
from .errors import FetchError

logger = logging.getLogger(__name__)


class ApiClient:
    """
    Base class for Google REST clients.

    Subclasses set :attr:`BASE_URL` and build endpoints relative to it.

    Attributes:
        settings: Application settings.
        auth: Bearer token authenticator.
    """

    BASE_URL = ""

    def __init__(self, settings: Settings, auth: BearerTokenAuth) -> None:
        """
        Initialize the client.

        Args:
            settings: Application settings.
            auth: Bearer token authenticator.
        """
        self.settings = settings
        self.auth = auth

    def _make_request(
        self,
        method: str,
        endpoint: str,
        params: Optional[dict] = None,
        json_data: Optional[dict] = None,
        data: Optional[bytes] = None,
        headers: Optional[dict[str, str]] = None,
        base_url: Optional[str] = None,
        raw: bool = False,
        suppress_statuses: Optional[AbstractSet[int]] = None,
    ) -> Any:
        """Make an authenticated request.

        This helper:
        - Adds auth headers (Bearer token), merged with ``headers``.
        - Applies ``settings.request_timeout`` (None waits indefinitely).
        - Raises :class:`FetchError` for non-2xx responses and transport
          errors.
        - Returns decoded JSON, ``{}`` for empty/204 responses, or the raw
          body bytes when ``raw=True``.

        Args:
            method: HTTP method (GET, POST, PATCH, DELETE).
            endpoint: Path appended to ``base_url`` (or :attr:`BASE_URL`).
            params: Query parameters.
            json_data: JSON body data.
            data: Raw body bytes (mutually exclusive with ``json_data``).
            headers: Extra headers.
            base_url: Override for :attr:`BASE_URL`.
            raw: Return ``response.content`` instead of JSON.
            suppress_statuses: Statuses logged at DEBUG instead of ERROR.

        Returns:
            Any: Response JSON data, or bytes when ``raw=True``.

        Raises:
            FetchError: If the request fails.
        """
        url = f"{base_url or self.BASE_URL}{endpoint}"
        request_headers = self.auth.get_auth_headers()
        if headers:
            request_headers.update(headers)

        try:
            response = requests.request(
                method=method,
                url=url,
                headers=request_headers,
                params=params,
                json=json_data,
                data=data,
                timeout=self.settings.request_timeout,
            )
        except requests.RequestException as e:
            logger.error("Request failed: %s %s - %s", method, url, e)
            raise FetchError(f"{method} {url} failed: {e}", url=url, detail=str(e)) from e

        if not response.ok:
            if suppress_statuses and response.status_code in suppress_statuses:
                logger.debug(
                    "Google API expected non-2xx: %s - %s",
                    response.status_code,
                    response.text,
                )
            else:
                logger.error(
                    f"Google API error: {response.status_code} - {response.text}"
                )
            raise FetchError(
                f"{method} {url} returned {response.status_code}",
                status_code=response.status_code,
                url=url,
                detail=response.text,
            )

        if raw:
            return response.content

        if response.status_code == 204 or not response.content:
            return {}

        return response.json()
