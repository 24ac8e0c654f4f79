from unittest.mock import MagicMock

import pytest

from src.attachment_organizer.errors import FetchError
from src.attachment_organizer.harvester import MessageHarvester
from src.attachment_organizer.models import MessagePage, MessageRef


def _page(ids: list[str], token=None) -> MessagePage:
    return MessagePage(
        messages=[MessageRef(id=i) for i in ids], next_page_token=token
    )


def test_build_query_adds_attachment_term() -> None:
    assert MessageHarvester.build_query("from:*@gruhas.com") == "has:attachment from:*@gruhas.com"
    assert MessageHarvester.build_query("") == "has:attachment"


def test_search_follows_continuation_tokens() -> None:
    """All pages are fetched and their refs concatenated in order."""

    mail_client = MagicMock()
    mail_client.search_messages.side_effect = [
        _page(["m1", "m2"], token="t1"),
        _page(["m3"], token="t2"),
        _page(["m4"]),
    ]

    refs = MessageHarvester(mail_client).search("from:*@gruhas.com")

    assert [r.id for r in refs] == ["m1", "m2", "m3", "m4"]
    assert mail_client.search_messages.call_count == 3

    tokens = [c.kwargs["page_token"] for c in mail_client.search_messages.call_args_list]
    assert tokens == [None, "t1", "t2"]
    query = mail_client.search_messages.call_args_list[0].args[0]
    assert query == "has:attachment from:*@gruhas.com"


def test_search_deduplicates_by_id() -> None:
    mail_client = MagicMock()
    mail_client.search_messages.side_effect = [
        _page(["m1", "m2"], token="t1"),
        _page(["m2", "m3"]),
    ]

    refs = MessageHarvester(mail_client).search("from:x@y.com")

    assert [r.id for r in refs] == ["m1", "m2", "m3"]


def test_empty_result_is_single_request() -> None:
    mail_client = MagicMock()
    mail_client.search_messages.return_value = _page([])

    assert MessageHarvester(mail_client).search("from:x@y.com") == []
    mail_client.search_messages.assert_called_once()


def test_page_failure_aborts_search() -> None:
    """A failed page request propagates; no partial result is returned."""

    mail_client = MagicMock()
    mail_client.search_messages.side_effect = [
        _page(["m1"], token="t1"),
        FetchError("boom", status_code=500),
    ]

    with pytest.raises(FetchError):
        MessageHarvester(mail_client).search("from:x@y.com")
