"""Gmail REST client for the read-only mail operations.

Objective:
    Provide a thin wrapper around the Gmail endpoints used by this project,
    with Pydantic validation of responses.

Responsibilities:
    - Run one page of a message search.
    - Fetch a full message (headers + part tree).
    - Fetch and decode attachment content.

High-level call tree:
    - Public API:
        - :meth:`GmailClient.search_messages` -> :class:`src.attachment_organizer.models.MessagePage`
        - :meth:`GmailClient.get_message` -> :class:`src.attachment_organizer.models.GmailMessage`
        - :meth:`GmailClient.get_attachment_content` -> ``bytes``
    - Internal helpers:
        - :meth:`ApiClient._make_request` (auth + error handling)
        - :func:`decode_base64url`

Gmail endpoints used:
    - ``GET /users/{user}/messages``
    - ``GET /users/{user}/messages/{id}?format=full``
    - ``GET /users/{user}/messages/{id}/attachments/{attachment_id}``
"""

import base64
import binascii
import logging
from typing import Optional
from urllib.parse import quote

from .api_client import ApiClient
from .errors import FetchError
from .models import GmailMessage, MessagePage

logger = logging.getLogger(__name__)


def decode_base64url(payload: str) -> bytes:
    """Decode Gmail's URL-safe base64 payloads.

    Gmail omits padding on some payloads; it is restored before decoding.

    Args:
        payload: URL-safe base64 text.

    Returns:
        bytes: Decoded content.

    Raises:
        binascii.Error: If the payload is not valid base64.
    """
    cleaned = (payload or "").strip()
    padding = -len(cleaned) % 4
    return base64.urlsafe_b64decode(cleaned + "=" * padding)


class GmailClient(ApiClient):
    """
    Client for the Gmail REST API.

    Attributes:
        settings: Application settings.
        auth: Bearer token authenticator.
    """

    BASE_URL = "https://gmail.googleapis.com/gmail/v1"

    def _user_path(self) -> str:
        return f"/users/{quote(self.settings.gmail_user_id, safe='')}"

    def search_messages(
        self, query: str, page_token: Optional[str] = None
    ) -> MessagePage:
        """Fetch one page of message references matching ``query``.

        Args:
            query: Gmail search query.
            page_token: Continuation token from the previous page.

        Returns:
            MessagePage: References and the next continuation token.

        Raises:
            FetchError: If the page request fails.
        """
        params: dict = {
            "q": query,
            "maxResults": self.settings.gmail_page_size,
        }
        if page_token:
            params["pageToken"] = page_token

        response = self._make_request(
            "GET", f"{self._user_path()}/messages", params=params
        )
        page = MessagePage.model_validate(response)
        logger.debug(
            "Search page returned %s refs (next_page_token=%s)",
            len(page.messages),
            bool(page.next_page_token),
        )
        return page

    def get_message(self, message_id: str) -> GmailMessage:
        """Fetch a message with its full part tree.

        Args:
            message_id: Gmail message id.

        Returns:
            GmailMessage: Validated message.

        Raises:
            FetchError: If the request fails.
        """
        safe_message_id = quote(message_id, safe="")
        response = self._make_request(
            "GET",
            f"{self._user_path()}/messages/{safe_message_id}",
            params={"format": "full"},
        )
        return GmailMessage.model_validate(response)

    def get_attachment_content(self, message_id: str, attachment_id: str) -> bytes:
        """Fetch and decode one attachment.

        Args:
            message_id: Owning message id.
            attachment_id: Gmail attachment id.

        Returns:
            bytes: Decoded attachment content.

        Raises:
            FetchError: If the request fails or the payload cannot be decoded.
        """
        if not attachment_id:
            raise FetchError(
                f"Attachment on message {message_id} has no attachment id"
            )

        safe_message_id = quote(message_id, safe="")
        safe_attachment_id = quote(attachment_id, safe="")
        endpoint = (
            f"{self._user_path()}/messages/{safe_message_id}"
            f"/attachments/{safe_attachment_id}"
        )
        response = self._make_request("GET", endpoint)

        try:
            return decode_base64url(response.get("data", ""))
        except (binascii.Error, ValueError) as e:
            raise FetchError(
                f"Could not decode attachment {attachment_id} on message {message_id}",
                detail=str(e),
            ) from e
