"""Workflow orchestrator.

Objective:
    Coordinate the end-to-end workflows:
    1) Validate a sender criterion and build its search predicate
    2) Harvest every matching message reference
    3) Fetch message details concurrently and flatten their attachments
    4) Sort the emails newest first
    5) Copy the attachments into a Drive folder tree
    6) Answer questions about spreadsheets stored in a Drive folder

Responsibilities:
    - Compose the core components (auth, Gmail and Drive clients, harvester,
      extractor, folder organizer, analyzer).
    - Provide an imperative API that can be called from the CLI, the FastAPI
      webapp, or the command bus.

High-level call tree:
    - :class:`AttachmentOrchestrator`
        - :meth:`search`
            - :func:`src.attachment_organizer.criterion.resolve_criterion`
            - :meth:`BearerTokenAuth.ensure_configured`
            - :func:`src.attachment_organizer.criterion.build_predicate`
            - :meth:`MessageHarvester.search`
            - :meth:`AttachmentExtractor.extract_all`
            - :func:`src.attachment_organizer.metadata.sort_emails`
        - :meth:`organize` -> :meth:`FolderOrganizer.organize`
        - :meth:`download_attachment` -> :meth:`GmailClient.get_attachment_content`
        - :meth:`analyze_folder`
            - :meth:`DriveClient.list_files`
            - :meth:`_analyze_file` (thread pool)
                - :meth:`DriveClient.download_file`
                - :meth:`AttachmentAnalyzer.analyze`
        - :meth:`move_folder` -> :meth:`DriveClient.move_node`
        - :meth:`list_folders` -> :meth:`DriveClient.list_folders`

Operational notes:
    - Criterion validation happens before the credential check, and both
      happen before any network call.
    - The orchestrator does not persist state between runs.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Optional

from .analyzer import AttachmentAnalyzer
from .auth import BearerTokenAuth
from .config import Settings, get_settings
from .criterion import build_predicate, resolve_criterion
from .drive_client import SPREADSHEET_MIME_TYPES, DriveClient
from .errors import AnalysisError, FetchError
from .extractor import AttachmentExtractor
from .file_categorizer import FileCategorizer
from .folder_organizer import FolderOrganizer, ProgressCallback
from .gmail_client import GmailClient
from .harvester import MessageHarvester
from .metadata import sort_emails
from .models import (
    DriveFile,
    EmailDetail,
    FolderNode,
    OrganizeMode,
    OrganizeResult,
    SearchOutcome,
)

logger = logging.getLogger(__name__)

NO_SPREADSHEETS_MESSAGE = "No spreadsheet files found in this folder."


class AttachmentOrchestrator:
    """
    Orchestrates the attachment harvesting and organizing workflows.

    This class is intentionally "glue" code: it connects the Google clients,
    the harvester, the extractor and the folder organizer without embedding
    business rules.

    Attributes:
        settings: Application settings.
        auth: Bearer token authenticator.
        mail_client: Gmail client.
        drive_client: Drive client.
        harvester: Paginated message search.
        extractor: Concurrent message detail fetcher.
        folder_organizer: Drive hierarchy builder.
    """

    def __init__(
        self, settings: Optional[Settings] = None, auth: Optional[BearerTokenAuth] = None
    ) -> None:
        """
        Initialize orchestrator with all components.

        Args:
            settings: Application settings (loads from env if None).
            auth: Authenticator (built from ``settings`` if None).
        """
        self.settings = settings or get_settings()
        self.auth = auth or BearerTokenAuth(self.settings)

        self.mail_client = GmailClient(self.settings, self.auth)
        self.drive_client = DriveClient(self.settings, self.auth)
        self.harvester = MessageHarvester(self.mail_client)
        self.extractor = AttachmentExtractor(self.settings, self.mail_client)
        self.folder_organizer = FolderOrganizer(
            self.drive_client,
            self.mail_client,
            categorizer=FileCategorizer(),
            tz_name=self.settings.display_timezone,
        )
        self._analyzer: Optional[AttachmentAnalyzer] = None

    @property
    def analyzer(self) -> AttachmentAnalyzer:
        """Groq analyzer, created on first use.

        Raises:
            ConfigurationError: If no Groq API key is configured.
        """
        if self._analyzer is None:
            self._analyzer = AttachmentAnalyzer(self.settings)
        return self._analyzer

    def search(self, raw_criterion: str) -> SearchOutcome:
        """Find every email with attachments from a sender.

        Args:
            raw_criterion: Email address, domain or company name.

        Returns:
            SearchOutcome: Emails sorted newest first, plus dropped messages.

        Raises:
            CriterionValidationError: If the criterion is invalid.
            ConfigurationError: If no access token is configured.
            FetchError: If the search itself fails.
        """
        criterion = resolve_criterion(raw_criterion)
        self.auth.ensure_configured()

        predicate = build_predicate(criterion)
        logger.info(f"Searching attachments for {criterion.kind.value}={criterion.value}")

        refs = self.harvester.search(predicate)
        details, failures = self.extractor.extract_all(refs)

        outcome = SearchOutcome(
            criterion=criterion,
            predicate=predicate,
            emails=sort_emails(details),
            failures=failures,
        )
        logger.info(
            f"Search {outcome.status}: {len(outcome.emails)} emails, "
            f"{outcome.attachment_count} attachments, {len(failures)} failed"
        )
        return outcome

    def organize(
        self,
        emails: list[EmailDetail],
        destination_name: str,
        mode: OrganizeMode = OrganizeMode.FLAT,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> OrganizeResult:
        """Copy the attachments of ``emails`` into a new Drive folder.

        Raises:
            ConfigurationError: If no access token is configured.
            FetchError: If the destination folder cannot be created.
        """
        self.auth.ensure_configured()
        return self.folder_organizer.organize(
            emails, destination_name, mode=mode, progress_callback=progress_callback
        )

    def download_attachment(self, message_id: str, attachment_id: str) -> bytes:
        """Fetch decoded attachment content."""
        self.auth.ensure_configured()
        return self.mail_client.get_attachment_content(message_id, attachment_id)

    def _analyze_file(self, file: DriveFile, query: str) -> str:
        try:
            content = self.drive_client.download_file(file.id)
            answer = self.analyzer.analyze(content, file.name, query, file.mime_type)
        except (FetchError, AnalysisError) as e:
            logger.warning(f"Failed to analyze {file.name}: {e}")
            return f"Failed to analyze {file.name}."
        return f"Analysis of {file.name}:\n{answer}"

    def analyze_folder(self, folder_id: str, query: str) -> str:
        """
        Answer ``query`` for every spreadsheet in a Drive folder.

        Files are analyzed concurrently; a failure on one file becomes a
        ``"Failed to analyze <name>."`` entry and does not affect the others.
        Answers are joined in listing order.

        Args:
            folder_id: Drive folder id.
            query: User question.

        Returns:
            str: Joined answers.

        Raises:
            ConfigurationError: If the access token or Groq key is missing.
            FetchError: If the folder cannot be listed.
        """
        self.auth.ensure_configured()
        analyzer = self.analyzer

        files = self.drive_client.list_files(folder_id, mime_types=SPREADSHEET_MIME_TYPES)
        if not files:
            logger.info(f"No spreadsheets in folder {folder_id}")
            return NO_SPREADSHEETS_MESSAGE

        logger.info(f"Analyzing {len(files)} file(s) with {analyzer.settings.groq_model}")
        workers = min(self.settings.fetch_workers, len(files))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            answers = list(executor.map(lambda f: self._analyze_file(f, query), files))

        return "\n\n".join(answers)

    def move_folder(self, folder_id: str, destination_id: str) -> None:
        """Re-parent a Drive folder from My Drive root into ``destination_id``."""
        self.auth.ensure_configured()
        self.drive_client.move_node(folder_id, destination_id)
        logger.info(f"Moved folder {folder_id} into {destination_id}")

    def list_folders(self, name: Optional[str] = None) -> list[FolderNode]:
        """List non-trashed Drive folders, optionally by exact name."""
        self.auth.ensure_configured()
        return self.drive_client.list_folders(name=name)
