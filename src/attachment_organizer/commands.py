"""Typed commands and their dispatcher.

Objective:
    Give the CLI and the web API one explicit entrypoint per user action
    instead of each surface calling orchestrator methods ad hoc.

Responsibilities:
    - Define one Pydantic model per action (:class:`SearchCommand`,
      :class:`OrganizeCommand`, ...).
    - Route a command to its handler through :class:`CommandBus`, a table
      keyed by command type.
    - Wire the default handlers to an
      :class:`src.attachment_organizer.orchestrator.AttachmentOrchestrator`
      in :func:`build_command_bus`.

High-level call tree:
    - :func:`build_command_bus`
        - :meth:`CommandBus.register` (once per command type)
    - :meth:`CommandBus.dispatch`
        - handler -> orchestrator method
"""

import logging
from typing import Any, Callable, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .folder_organizer import ProgressCallback
from .models import EmailDetail, OrganizeMode
from .orchestrator import AttachmentOrchestrator

logger = logging.getLogger(__name__)

CommandT = TypeVar("CommandT", bound=BaseModel)


class SearchCommand(BaseModel):
    """Search for emails with attachments from a sender."""

    criterion: str


class OrganizeCommand(BaseModel):
    """
    Copy attachments into a new Drive folder.

    Either ``emails`` from a previous search or a ``criterion`` to search
    first must be given.

    Attributes:
        destination_name: Name of the Drive folder to create.
        mode: Folder layout.
        emails: Emails from a previous search.
        criterion: Sender criterion to search when ``emails`` is empty.
        progress_callback: Receives progress after every attachment.
    """

    destination_name: str = Field(min_length=1)
    mode: OrganizeMode = OrganizeMode.FLAT
    emails: list[EmailDetail] = Field(default_factory=list)
    criterion: Optional[str] = None
    progress_callback: Optional[ProgressCallback] = Field(default=None, exclude=True)

    model_config = ConfigDict(arbitrary_types_allowed=True)

    @model_validator(mode="after")
    def _require_source(self) -> "OrganizeCommand":
        if not self.emails and not (self.criterion or "").strip():
            raise ValueError("Either emails or criterion is required")
        return self


class DownloadAttachmentCommand(BaseModel):
    """Fetch one attachment's content."""

    message_id: str = Field(min_length=1)
    attachment_id: str = Field(min_length=1)


class AnalyzeFolderCommand(BaseModel):
    """Ask a question about the spreadsheets in a Drive folder."""

    folder_id: str = Field(min_length=1)
    query: str = Field(min_length=1)


class MoveFolderCommand(BaseModel):
    """Move a Drive folder under another folder."""

    folder_id: str = Field(min_length=1)
    destination_id: str = Field(min_length=1)


class CommandBus:
    """
    Dispatches commands to registered handlers.

    Lookup is by exact command type; subclasses are not matched.
    """

    def __init__(self) -> None:
        self._handlers: dict[type[BaseModel], Callable[[Any], Any]] = {}

    def register(
        self, command_type: type[CommandT], handler: Callable[[CommandT], Any]
    ) -> None:
        """Register (or replace) the handler for ``command_type``."""
        self._handlers[command_type] = handler

    def is_registered(self, command_type: type[BaseModel]) -> bool:
        return command_type in self._handlers

    def dispatch(self, command: BaseModel) -> Any:
        """
        Run the handler registered for ``command``.

        Args:
            command: Command instance.

        Returns:
            Any: Whatever the handler returns.

        Raises:
            LookupError: If no handler is registered for the command type.
        """
        handler = self._handlers.get(type(command))
        if handler is None:
            raise LookupError(f"No handler registered for {type(command).__name__}")

        logger.debug(f"Dispatching {type(command).__name__}")
        return handler(command)


def build_command_bus(orchestrator: AttachmentOrchestrator) -> CommandBus:
    """
    Create a bus with the default handlers bound to ``orchestrator``.

    Args:
        orchestrator: Orchestrator that executes the commands.

    Returns:
        CommandBus: Ready-to-use bus.
    """
    bus = CommandBus()

    def organize(command: OrganizeCommand):
        emails = command.emails
        search_failures = []
        if not emails:
            outcome = orchestrator.search(command.criterion or "")
            emails, search_failures = outcome.emails, outcome.failures

        result = orchestrator.organize(
            emails,
            command.destination_name,
            mode=command.mode,
            progress_callback=command.progress_callback,
        )
        if search_failures:
            # Messages dropped by the search never reach the organizer.
            result = result.model_copy(
                update={"failures": list(search_failures) + list(result.failures)}
            )
        return result

    bus.register(SearchCommand, lambda c: orchestrator.search(c.criterion))
    bus.register(OrganizeCommand, organize)
    bus.register(
        DownloadAttachmentCommand,
        lambda c: orchestrator.download_attachment(c.message_id, c.attachment_id),
    )
    bus.register(
        AnalyzeFolderCommand, lambda c: orchestrator.analyze_folder(c.folder_id, c.query)
    )
    bus.register(
        MoveFolderCommand,
        lambda c: orchestrator.move_folder(c.folder_id, c.destination_id),
    )
    return bus
