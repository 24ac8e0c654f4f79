import base64
from unittest.mock import MagicMock

import pytest

from src.attachment_organizer.config import Settings
from src.attachment_organizer.errors import FetchError
from src.attachment_organizer.gmail_client import GmailClient, decode_base64url


def _client() -> GmailClient:
    return GmailClient(Settings(gmail_page_size=50), MagicMock())


def test_search_messages_builds_query_params() -> None:
    client = _client()
    client._make_request = MagicMock(
        return_value={
            "messages": [{"id": "m1", "threadId": "t1"}],
            "nextPageToken": "next",
            "resultSizeEstimate": 1,
        }
    )

    page = client.search_messages("has:attachment from:*@gruhas.com", page_token="tok")

    args, kwargs = client._make_request.call_args
    assert args == ("GET", "/users/me/messages")
    assert kwargs["params"] == {
        "q": "has:attachment from:*@gruhas.com",
        "maxResults": 50,
        "pageToken": "tok",
    }
    assert [m.id for m in page.messages] == ["m1"]
    assert page.next_page_token == "next"


def test_search_messages_without_results() -> None:
    """Gmail omits ``messages`` entirely when nothing matches."""

    client = _client()
    client._make_request = MagicMock(return_value={"resultSizeEstimate": 0})

    page = client.search_messages("has:attachment")

    assert page.messages == []
    assert page.next_page_token is None
    assert "pageToken" not in client._make_request.call_args.kwargs["params"]


def test_get_message_url_encodes_id() -> None:
    client = _client()
    client._make_request = MagicMock(return_value={"id": "a/b", "payload": {}})

    message = client.get_message("a/b")

    args, kwargs = client._make_request.call_args
    assert args[1] == "/users/me/messages/a%2Fb"
    assert kwargs["params"] == {"format": "full"}
    assert message.id == "a/b"


def test_get_attachment_content_decodes_urlsafe_base64() -> None:
    raw = b"\xfb\xff binary payload"
    encoded = base64.urlsafe_b64encode(raw).decode().rstrip("=")

    client = _client()
    client._make_request = MagicMock(return_value={"data": encoded, "size": len(raw)})

    assert client.get_attachment_content("m1", "att1") == raw
    assert client._make_request.call_args.args[1] == "/users/me/messages/m1/attachments/att1"


def test_get_attachment_content_requires_attachment_id() -> None:
    client = _client()
    client._make_request = MagicMock()

    with pytest.raises(FetchError):
        client.get_attachment_content("m1", "")
    client._make_request.assert_not_called()


def test_get_attachment_content_rejects_bad_payload() -> None:
    client = _client()
    client._make_request = MagicMock(return_value={"data": "a"})

    with pytest.raises(FetchError):
        client.get_attachment_content("m1", "att1")


def test_decode_base64url_restores_padding() -> None:
    assert decode_base64url("aGk") == b"hi"
    assert decode_base64url("aGk=") == b"hi"
