from unittest.mock import MagicMock

import pytest

from src.attachment_organizer.config import Settings
from src.attachment_organizer.errors import (
    AnalysisError,
    ConfigurationError,
    CriterionValidationError,
    FetchError,
)
from src.attachment_organizer.models import (
    DriveFile,
    GmailMessage,
    MessagePage,
    MessageRef,
    OrganizeMode,
)
from src.attachment_organizer.orchestrator import (
    NO_SPREADSHEETS_MESSAGE,
    AttachmentOrchestrator,
)


def _message(message_id: str, date: str, filename: str) -> GmailMessage:
    return GmailMessage.model_validate(
        {
            "id": message_id,
            "payload": {
                "headers": [
                    {"name": "Subject", "value": f"MIS {message_id}"},
                    {"name": "From", "value": "Ops <ops@gruhas.com>"},
                    {"name": "Date", "value": date},
                ],
                "parts": [{"filename": filename, "body": {"attachmentId": f"a-{message_id}"}}],
            },
        }
    )


def _orchestrator(**settings) -> AttachmentOrchestrator:
    settings.setdefault("google_access_token", "tok")
    return AttachmentOrchestrator(settings=Settings(**settings))


def test_search_domain_end_to_end() -> None:
    """Two refs on one page become two emails sorted newest first."""

    orchestrator = _orchestrator()
    mail = orchestrator.mail_client
    mail.search_messages = MagicMock(
        return_value=MessagePage(messages=[MessageRef(id="old"), MessageRef(id="new")])
    )
    messages = {
        "old": _message("old", "Mon, 01 Jan 2024 09:00:00 +0000", "jan.xlsx"),
        "new": _message("new", "Fri, 15 Mar 2024 10:00:00 +0000", "mar.xlsx"),
    }
    mail.get_message = MagicMock(side_effect=lambda message_id: messages[message_id])

    outcome = orchestrator.search("gruhas.com")

    assert outcome.predicate == "from:*@gruhas.com"
    mail.search_messages.assert_called_once_with(
        "has:attachment from:*@gruhas.com", page_token=None
    )
    assert [e.message_id for e in outcome.emails] == ["new", "old"]
    assert outcome.emails[0].attachments[0].filename == "mar.xlsx"
    assert outcome.status == "complete"
    assert outcome.attachment_count == 2


def test_search_reports_degraded_outcome() -> None:
    orchestrator = _orchestrator()
    mail = orchestrator.mail_client
    mail.search_messages = MagicMock(
        return_value=MessagePage(messages=[MessageRef(id="ok"), MessageRef(id="broken")])
    )

    def get_message(message_id):
        if message_id == "broken":
            raise FetchError("boom", status_code=500)
        return _message("ok", "Fri, 15 Mar 2024 10:00:00 +0000", "a.pdf")

    mail.get_message = MagicMock(side_effect=get_message)

    outcome = orchestrator.search("ops@gruhas.com")

    assert outcome.status == "degraded"
    assert [f.item_id for f in outcome.failures] == ["broken"]
    assert len(outcome.emails) == 1


def test_search_empty_outcome() -> None:
    orchestrator = _orchestrator()
    orchestrator.mail_client.search_messages = MagicMock(return_value=MessagePage())

    outcome = orchestrator.search("Gruhas")

    assert outcome.status == "empty"


def test_invalid_criterion_is_rejected_before_credential_check() -> None:
    orchestrator = _orchestrator(google_access_token=None)
    orchestrator.mail_client.search_messages = MagicMock()

    with pytest.raises(CriterionValidationError):
        orchestrator.search("not valid!")
    orchestrator.mail_client.search_messages.assert_not_called()


def test_missing_credential_fails_before_network() -> None:
    orchestrator = _orchestrator(google_access_token=None)
    orchestrator.mail_client.search_messages = MagicMock()

    with pytest.raises(ConfigurationError):
        orchestrator.search("gruhas.com")
    orchestrator.mail_client.search_messages.assert_not_called()


def test_organize_delegates_to_folder_organizer() -> None:
    orchestrator = _orchestrator()
    orchestrator.folder_organizer = MagicMock()
    callback = MagicMock()

    orchestrator.organize([], "Dest", mode=OrganizeMode.DATED, progress_callback=callback)

    orchestrator.folder_organizer.organize.assert_called_once_with(
        [], "Dest", mode=OrganizeMode.DATED, progress_callback=callback
    )


def test_analyze_folder_joins_answers_and_isolates_failures() -> None:
    orchestrator = _orchestrator(groq_api_key="gsk")
    orchestrator.drive_client.list_files = MagicMock(
        return_value=[
            DriveFile(id="f1", name="sales.xlsx"),
            DriveFile(id="f2", name="broken.csv"),
            DriveFile(id="f3", name="pnl.csv"),
        ]
    )
    orchestrator.drive_client.download_file = MagicMock(
        side_effect=lambda file_id: file_id.encode()
    )

    def analyze(content, filename, query, mime_type):
        if filename == "broken.csv":
            raise AnalysisError("no metrics")
        return f"answer for {content.decode()}"

    orchestrator._analyzer = MagicMock()
    orchestrator._analyzer.analyze.side_effect = analyze

    result = orchestrator.analyze_folder("folder-1", "How is revenue?")

    assert result == (
        "Analysis of sales.xlsx:\nanswer for f1\n\n"
        "Failed to analyze broken.csv.\n\n"
        "Analysis of pnl.csv:\nanswer for f3"
    )


def test_analyze_folder_without_spreadsheets() -> None:
    orchestrator = _orchestrator()
    orchestrator._analyzer = MagicMock()
    orchestrator.drive_client.list_files = MagicMock(return_value=[])

    assert orchestrator.analyze_folder("folder-1", "?") == NO_SPREADSHEETS_MESSAGE


def test_analyze_folder_requires_groq_key() -> None:
    orchestrator = _orchestrator(groq_api_key=None)
    orchestrator.drive_client.list_files = MagicMock()

    with pytest.raises(ConfigurationError):
        orchestrator.analyze_folder("folder-1", "?")
    orchestrator.drive_client.list_files.assert_not_called()


def test_move_and_list_folders() -> None:
    orchestrator = _orchestrator()
    orchestrator.drive_client.move_node = MagicMock()
    orchestrator.drive_client.list_folders = MagicMock(return_value=[])

    orchestrator.move_folder("f1", "dest")
    orchestrator.list_folders()

    orchestrator.drive_client.move_node.assert_called_once_with("f1", "dest")
    orchestrator.drive_client.list_folders.assert_called_once_with(name=None)
