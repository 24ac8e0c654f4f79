"""Command-line interface (CLI) entrypoint.

Objective:
    Provide a human-friendly CLI wrapper around
    :class:`src.attachment_organizer.orchestrator.AttachmentOrchestrator`.

Responsibilities:
    - Parse arguments (subcommand, verbosity, log level).
    - Configure logging (including suppressing noisy HTTP request logs).
    - Build a command, dispatch it through the command bus, and print a
      readable summary.

High-level call tree:
    - :func:`main`
        - :func:`build_parser`
        - :func:`setup_logging`
            - installs :class:`_HttpxRequestInfoToDebugFilter`
        - ``categorize``: :func:`print_categories` (offline)
        - otherwise: :func:`build_command_bus` -> :meth:`CommandBus.dispatch`
            - :func:`print_search_results`
            - :func:`print_organize_result` (with :func:`make_progress_printer`)

Operational notes:
    - This module supports being run both as a package module
      (``python -m src.attachment_organizer.cli``) and as a script
      (``python src/attachment_organizer/cli.py``). The import fallback handles
      the script case.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

try:
    from .commands import (
        AnalyzeFolderCommand,
        DownloadAttachmentCommand,
        MoveFolderCommand,
        OrganizeCommand,
        SearchCommand,
        build_command_bus,
    )
    from .config import get_settings
    from .errors import CriterionValidationError
    from .file_categorizer import categorize_file
    from .models import OrganizeMode, OrganizeResult, ProgressState, SearchOutcome
    from .orchestrator import AttachmentOrchestrator
except ImportError:  # pragma: no cover
    src_root = Path(__file__).resolve().parents[1]
    if str(src_root) not in sys.path:
        sys.path.insert(0, str(src_root))

    from attachment_organizer.commands import (
        AnalyzeFolderCommand,
        DownloadAttachmentCommand,
        MoveFolderCommand,
        OrganizeCommand,
        SearchCommand,
        build_command_bus,
    )
    from attachment_organizer.config import get_settings
    from attachment_organizer.errors import CriterionValidationError
    from attachment_organizer.file_categorizer import categorize_file
    from attachment_organizer.models import (
        OrganizeMode,
        OrganizeResult,
        ProgressState,
        SearchOutcome,
    )
    from attachment_organizer.orchestrator import AttachmentOrchestrator


class _HttpxRequestInfoToDebugFilter(logging.Filter):
    """Filter to suppress noisy httpx "HTTP Request:" INFO logs.

    The Groq SDK logs each HTTP request at INFO level through httpx. This
    filter hides those messages unless the root logger is in DEBUG mode.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        msg = record.getMessage()
        if record.name.startswith("httpx") and msg.startswith("HTTP Request:"):
            return logging.getLogger().isEnabledFor(logging.DEBUG)
        return True


def setup_logging(level: str = "INFO") -> None:
    """
    Configure logging for the application.

    This sets the root logger level and installs the
    :class:`_HttpxRequestInfoToDebugFilter` on all root handlers.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR).
    """
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            logging.StreamHandler(sys.stdout),
        ],
    )

    root_logger = logging.getLogger()
    downgrade_filter = _HttpxRequestInfoToDebugFilter()
    for handler in root_logger.handlers:
        handler.addFilter(downgrade_filter)


def print_search_results(outcome: SearchOutcome, verbose: bool = False) -> None:
    """
    Print search results to console, newest first.

    Args:
        outcome: Search outcome.
        verbose: If True, list every attachment and every failure.
    """
    if outcome.status == "empty":
        print(f"\nNo emails with attachments found ({outcome.predicate}).")
        return

    print(f"\n{'='*60}")
    print(
        f"SEARCH RESULTS: {len(outcome.emails)} emails, "
        f"{outcome.attachment_count} attachments"
    )
    print(f"{'='*60}\n")

    for email in outcome.emails:
        subject = email.subject[:50] + "..." if len(email.subject) > 50 else email.subject
        sender = email.from_name
        if email.from_email:
            sender += f" <{email.from_email}>"

        print(f"📧 [{email.display_date}] {sender}")
        print(f"   {subject} ({len(email.attachments)} attachments)")

        if verbose:
            for attachment in email.attachments:
                print(f"     📎 {attachment.filename} ({attachment.size} bytes)")

    if outcome.failures:
        print(f"\n⚠️  {len(outcome.failures)} message(s) could not be loaded")
        if verbose:
            for failure in outcome.failures:
                print(f"      {failure.item_id}: {failure.reason}")
    print()


def make_progress_printer():
    """Return a progress callback that prints ``[n/total] pct%`` lines."""

    def report(state: ProgressState) -> None:
        print(f"  [{state.processed}/{state.total}] {state.percent}%")

    return report


def print_organize_result(result: OrganizeResult, verbose: bool = False) -> None:
    """
    Print an organize run summary.

    Args:
        result: Organize result.
        verbose: If True, list every failure.
    """
    print(f"\n{'='*60}")
    print(f"📁 {result.root_folder.name} ({result.mode.value})")
    print(f"{'='*60}\n")

    if verbose:
        for failure in result.failures:
            print(f"  ❌ {failure.kind} {failure.item_id}: {failure.reason}")

    print(f"\n{'='*60}")
    print(
        f"SUMMARY: ✅ {len(result.uploaded)} uploaded, "
        f"❌ {len(result.failures)} failed, "
        f"{result.folders_created} folders created"
    )
    print(f"{'='*60}\n")


def print_categories(filenames: list[str]) -> None:
    for filename in filenames:
        print(f"{filename} -> {categorize_file(filename).path}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Mail Attachment Organizer - collect Gmail attachments into Drive",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s search gruhas.com
  %(prog)s organize ops@gruhas.com --destination "Gruhas MIS" --mode dated
  %(prog)s categorize MBO_Inventory_Report_Mar2024.xlsx
  %(prog)s analyze <folder-id> "How did revenue trend?"
        """,
    )

    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose output",
    )

    parser.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    search = subparsers.add_parser("search", help="List emails with attachments from a sender")
    search.add_argument("criterion", help="Email address, domain or company name")

    organize = subparsers.add_parser("organize", help="Copy a sender's attachments into Drive")
    organize.add_argument("criterion", help="Email address, domain or company name")
    organize.add_argument(
        "--destination", "-d", required=True, help="Name of the Drive folder to create"
    )
    organize.add_argument(
        "--mode",
        "-m",
        default=OrganizeMode.FLAT.value,
        choices=[m.value for m in OrganizeMode],
        help="Folder layout",
    )

    download = subparsers.add_parser("download", help="Save one attachment to disk")
    download.add_argument("message_id")
    download.add_argument("attachment_id")
    download.add_argument("--output", "-o", required=True, help="Output file path")

    analyze = subparsers.add_parser("analyze", help="Ask about spreadsheets in a Drive folder")
    analyze.add_argument("folder_id")
    analyze.add_argument("query")

    move = subparsers.add_parser("move", help="Move a Drive folder under another folder")
    move.add_argument("folder_id")
    move.add_argument("destination_id")

    categorize = subparsers.add_parser("categorize", help="Show the folder path for filenames")
    categorize.add_argument("filenames", nargs="+")

    return parser


def main(args: Optional[list[str]] = None) -> int:
    """
    Main CLI entry point.

    This function is structured to be testable: pass an explicit ``args`` list
    instead of relying on ``sys.argv``.

    Args:
        args: Command line arguments (uses sys.argv if None).

    Returns:
        int: Exit code (0 for success, 1 for error or any failed item).
    """
    parsed_args = build_parser().parse_args(args)

    log_level = "DEBUG" if parsed_args.verbose else parsed_args.log_level
    setup_logging(log_level)

    logger = logging.getLogger(__name__)

    if parsed_args.command == "categorize":
        print_categories(parsed_args.filenames)
        return 0

    try:
        orchestrator = AttachmentOrchestrator(settings=get_settings())
        bus = build_command_bus(orchestrator)

        if parsed_args.command == "search":
            outcome = bus.dispatch(SearchCommand(criterion=parsed_args.criterion))
            print_search_results(outcome, verbose=parsed_args.verbose)
            return 1 if outcome.failures else 0

        if parsed_args.command == "organize":
            print(f"\n🚀 Organizing attachments from {parsed_args.criterion}...\n")
            result = bus.dispatch(
                OrganizeCommand(
                    criterion=parsed_args.criterion,
                    destination_name=parsed_args.destination,
                    mode=parsed_args.mode,
                    progress_callback=make_progress_printer(),
                )
            )
            print_organize_result(result, verbose=parsed_args.verbose)
            return 0 if result.success else 1

        if parsed_args.command == "download":
            content = bus.dispatch(
                DownloadAttachmentCommand(
                    message_id=parsed_args.message_id,
                    attachment_id=parsed_args.attachment_id,
                )
            )
            Path(parsed_args.output).write_bytes(content)
            print(f"Saved {len(content)} bytes to {parsed_args.output}")
            return 0

        if parsed_args.command == "analyze":
            answer = bus.dispatch(
                AnalyzeFolderCommand(folder_id=parsed_args.folder_id, query=parsed_args.query)
            )
            print(f"\n{answer}\n")
            return 0

        if parsed_args.command == "move":
            bus.dispatch(
                MoveFolderCommand(
                    folder_id=parsed_args.folder_id,
                    destination_id=parsed_args.destination_id,
                )
            )
            print(f"Moved {parsed_args.folder_id} into {parsed_args.destination_id}")
            return 0

        return 1

    except CriterionValidationError as e:
        print(f"\n❌ {e}\n")
        return 1
    except Exception as e:
        logger.exception("Fatal error")
        print(f"\n❌ Error: {e}\n")
        return 1


if __name__ == "__main__":
    sys.exit(main())
