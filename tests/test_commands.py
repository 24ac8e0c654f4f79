from unittest.mock import MagicMock

import pytest
from pydantic import BaseModel, ValidationError

from src.attachment_organizer.commands import (
    AnalyzeFolderCommand,
    CommandBus,
    DownloadAttachmentCommand,
    MoveFolderCommand,
    OrganizeCommand,
    SearchCommand,
    build_command_bus,
)
from src.attachment_organizer.models import (
    EmailDetail,
    FolderNode,
    ItemFailure,
    OrganizeMode,
    OrganizeResult,
    ProgressState,
)


class UnknownCommand(BaseModel):
    value: int = 0


def test_dispatch_unregistered_command_raises_lookup_error() -> None:
    with pytest.raises(LookupError):
        CommandBus().dispatch(UnknownCommand())


def test_register_and_dispatch() -> None:
    bus = CommandBus()
    bus.register(UnknownCommand, lambda c: c.value * 2)

    assert bus.is_registered(UnknownCommand)
    assert bus.dispatch(UnknownCommand(value=21)) == 42


def test_default_bus_routes_to_orchestrator() -> None:
    orchestrator = MagicMock()
    bus = build_command_bus(orchestrator)

    bus.dispatch(SearchCommand(criterion="gruhas.com"))
    bus.dispatch(DownloadAttachmentCommand(message_id="m1", attachment_id="a1"))
    bus.dispatch(AnalyzeFolderCommand(folder_id="f1", query="revenue?"))
    bus.dispatch(MoveFolderCommand(folder_id="f1", destination_id="f2"))

    orchestrator.search.assert_called_once_with("gruhas.com")
    orchestrator.download_attachment.assert_called_once_with("m1", "a1")
    orchestrator.analyze_folder.assert_called_once_with("f1", "revenue?")
    orchestrator.move_folder.assert_called_once_with("f1", "f2")


def test_organize_with_criterion_searches_first() -> None:
    orchestrator = MagicMock()
    emails = [EmailDetail(message_id="m1")]
    orchestrator.search.return_value.emails = emails
    orchestrator.search.return_value.failures = []
    callback = MagicMock()

    build_command_bus(orchestrator).dispatch(
        OrganizeCommand(
            criterion="gruhas.com",
            destination_name="Dest",
            mode="dated",
            progress_callback=callback,
        )
    )

    orchestrator.search.assert_called_once_with("gruhas.com")
    orchestrator.organize.assert_called_once_with(
        emails, "Dest", mode=OrganizeMode.DATED, progress_callback=callback
    )


def test_organize_with_emails_skips_search() -> None:
    orchestrator = MagicMock()
    emails = [EmailDetail(message_id="m1")]

    build_command_bus(orchestrator).dispatch(
        OrganizeCommand(emails=emails, destination_name="Dest")
    )

    orchestrator.search.assert_not_called()
    assert orchestrator.organize.call_args.args[0] == emails


def test_organize_requires_a_source() -> None:
    with pytest.raises(ValidationError):
        OrganizeCommand(destination_name="Dest")


def test_commands_reject_blank_ids() -> None:
    with pytest.raises(ValidationError):
        MoveFolderCommand(folder_id="", destination_id="f2")


def test_organize_by_criterion_reports_dropped_messages() -> None:
    orchestrator = MagicMock()
    orchestrator.search.return_value.emails = [EmailDetail(message_id="m1")]
    orchestrator.search.return_value.failures = [
        ItemFailure(kind="message", item_id="m2", reason="timeout")
    ]
    orchestrator.organize.return_value = OrganizeResult(
        root_folder=FolderNode(id="root", name="Dest"),
        mode=OrganizeMode.FLAT,
        progress=ProgressState(processed=1, total=1),
    )

    result = build_command_bus(orchestrator).dispatch(
        OrganizeCommand(criterion="gruhas.com", destination_name="Dest")
    )

    assert not result.success
    assert [(f.kind, f.item_id) for f in result.failures] == [("message", "m2")]
