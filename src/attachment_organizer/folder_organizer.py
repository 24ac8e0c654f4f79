"""Drive folder hierarchy creation and attachment transfer.

Objective:
    Copy every attachment of a set of harvested emails into a newly created
    Drive folder, optionally nested by date or by filename category, while
    reporting monotonic progress.

Responsibilities:
    - Create the destination root folder (fatal on failure).
    - Group attachments by target folder for the requested
      :class:`src.attachment_organizer.models.OrganizeMode`.
    - Create intermediate folders lazily through a run-scoped cache so that
      each ``(parent_id, name)`` pair is created at most once per run.
    - Fetch, upload and report each attachment sequentially.

Caching strategy:
    ``_folder_cache`` is keyed by ``(parent_id, name)`` using the name the
    folder was *created* with. Month folders are created as ``NN`` and renamed
    to ``NN - MonthName``; their cache key stays ``NN``. Names that failed to
    create are remembered in ``_failed_folders`` and not retried in the same
    run.

High-level call tree:
    - :class:`FolderOrganizer`
        - :meth:`organize`
            - :meth:`DriveClient.create_folder` (root)
            - :meth:`_plan_flat` / :meth:`_plan_dated` / :meth:`_plan_categorized`
            - :meth:`ensure_folder` / :meth:`ensure_month_folder` / :meth:`ensure_path`
            - :meth:`_transfer`
                - :meth:`GmailClient.get_attachment_content`
                - :meth:`DriveClient.upload_file`
            - ``progress_callback(ProgressState)``

Operational notes:
    - Uploads are strictly sequential.
    - The cache and counters are reset at the start of every run; concurrent
      runs on one instance are unsupported.
"""

import calendar
import logging
from typing import Callable, Iterable, Optional

from .drive_client import DriveClient
from .errors import FetchError
from .file_categorizer import FileCategorizer
from .gmail_client import GmailClient
from .metadata import DEFAULT_TIMEZONE, localize
from .models import (
    AttachmentDescriptor,
    DriveFile,
    EmailDetail,
    FolderNode,
    ItemFailure,
    OrganizeMode,
    OrganizeResult,
    ProgressState,
)

logger = logging.getLogger(__name__)

UNDATED_FOLDER = "Undated"

ProgressCallback = Callable[[ProgressState], None]
FolderResolver = Callable[[], Optional[FolderNode]]


def month_folder_name(month: int) -> str:
    """Final name of a month folder, e.g. ``"03 - March"``."""
    return f"{month:02d} - {calendar.month_name[month]}"


class FolderGroup:
    """Attachments that share one target folder.

    Attributes:
        label: Human-readable folder path for logs and failures.
        resolve: Returns the target folder, creating it if needed; None when
            it could not be created.
        attachments: Attachments to upload into the folder.
    """

    def __init__(self, label: str, resolve: FolderResolver) -> None:
        self.label = label
        self.resolve = resolve
        self.attachments: list[AttachmentDescriptor] = []


class FolderOrganizer:
    """
    Organizes harvested attachments into a Drive folder tree.

    Attributes:
        drive_client: Drive client used for folders and uploads.
        mail_client: Gmail client used to fetch attachment content.
        categorizer: Filename categorizer for categorized mode.
        tz_name: Timezone used to assign emails to year/month folders.
    """

    def __init__(
        self,
        drive_client: DriveClient,
        mail_client: GmailClient,
        categorizer: Optional[FileCategorizer] = None,
        tz_name: str = DEFAULT_TIMEZONE,
    ) -> None:
        self.drive_client = drive_client
        self.mail_client = mail_client
        self.categorizer = categorizer or FileCategorizer()
        self.tz_name = tz_name

        self._folder_cache: dict[tuple[str, str], FolderNode] = {}
        self._failed_folders: set[tuple[str, str]] = set()
        self._folders_created = 0
        self._failures: list[ItemFailure] = []
        self._progress = ProgressState()
        self._progress_callback: Optional[ProgressCallback] = None

    def _reset(self, total: int, progress_callback: Optional[ProgressCallback]) -> None:
        self._folder_cache.clear()
        self._failed_folders.clear()
        self._folders_created = 0
        self._failures = []
        self._progress = ProgressState(processed=0, total=total)
        self._progress_callback = progress_callback

    def _report(self) -> None:
        if self._progress_callback is not None:
            self._progress_callback(self._progress.model_copy())

    def _advance(self) -> None:
        self._progress.processed += 1
        self._report()

    def ensure_folder(self, name: str, parent_id: str) -> Optional[FolderNode]:
        """
        Return the folder ``name`` under ``parent_id``, creating it once.

        Args:
            name: Folder name.
            parent_id: Parent folder id.

        Returns:
            Optional[FolderNode]: The folder, or None if creation failed.
        """
        key = (parent_id, name)
        cached = self._folder_cache.get(key)
        if cached:
            return cached
        if key in self._failed_folders:
            return None

        try:
            folder = self.drive_client.create_folder(name, parent_id)
        except FetchError as e:
            logger.warning(f"Failed to create folder {name!r} under {parent_id}: {e}")
            self._failed_folders.add(key)
            self._failures.append(
                ItemFailure(kind="folder", item_id=name, reason=str(e))
            )
            return None

        self._folders_created += 1
        self._folder_cache[key] = folder
        return folder

    def ensure_month_folder(self, month: int, parent_id: str) -> Optional[FolderNode]:
        """
        Return the month folder under a year folder.

        The folder is created with its two-digit number and then renamed to
        :func:`month_folder_name`. A failed rename leaves the numeric name.

        Args:
            month: Month number (1-12).
            parent_id: Year folder id.

        Returns:
            Optional[FolderNode]: The month folder, or None if creation failed.
        """
        numeric = f"{month:02d}"
        key = (parent_id, numeric)
        if key in self._folder_cache:
            return self._folder_cache[key]

        folder = self.ensure_folder(numeric, parent_id)
        if folder is None:
            return None

        try:
            renamed = self.drive_client.rename_node(folder.id, month_folder_name(month))
        except FetchError as e:
            logger.warning(f"Failed to rename month folder {numeric}: {e}")
            return folder

        folder = folder.model_copy(update={"name": renamed.name})
        self._folder_cache[key] = folder
        return folder

    def ensure_path(self, segments: Iterable[str], parent_id: str) -> Optional[FolderNode]:
        """Create a chain of nested folders below ``parent_id``.

        Args:
            segments: Folder names from the top down.
            parent_id: Folder the chain starts under.

        Returns:
            Optional[FolderNode]: Deepest folder, or None if any level failed.
        """
        current: Optional[FolderNode] = None
        current_parent = parent_id
        for segment in segments:
            current = self.ensure_folder(segment, current_parent)
            if current is None:
                return None
            current_parent = current.id
        return current

    def _plan_flat(self, emails: list[EmailDetail], root: FolderNode) -> list[FolderGroup]:
        group = FolderGroup(root.name, lambda: root)
        for email in emails:
            group.attachments.extend(email.attachments)
        return [group]

    def _plan_dated(self, emails: list[EmailDetail], root: FolderNode) -> list[FolderGroup]:
        """Group by year (encounter order), then month (ascending).

        Emails whose date cannot be parsed go into :data:`UNDATED_FOLDER`.
        """
        by_year: dict[int, dict[int, list[AttachmentDescriptor]]] = {}
        undated: list[AttachmentDescriptor] = []

        for email in emails:
            local = localize(email.raw_date, self.tz_name)
            if local is None:
                undated.extend(email.attachments)
                continue
            months = by_year.setdefault(local.year, {})
            months.setdefault(local.month, []).extend(email.attachments)

        groups: list[FolderGroup] = []
        for year, months in by_year.items():
            for month in sorted(months):
                group = FolderGroup(
                    f"{root.name}/{year}/{month_folder_name(month)}",
                    self._dated_resolver(root, year, month),
                )
                group.attachments.extend(months[month])
                groups.append(group)

        if undated:
            group = FolderGroup(
                f"{root.name}/{UNDATED_FOLDER}",
                lambda: self.ensure_folder(UNDATED_FOLDER, root.id),
            )
            group.attachments.extend(undated)
            groups.append(group)

        return groups

    def _dated_resolver(self, root: FolderNode, year: int, month: int) -> FolderResolver:
        def resolve() -> Optional[FolderNode]:
            year_folder = self.ensure_folder(str(year), root.id)
            if year_folder is None:
                return None
            return self.ensure_month_folder(month, year_folder.id)

        return resolve

    def _plan_categorized(
        self, emails: list[EmailDetail], root: FolderNode
    ) -> list[FolderGroup]:
        groups: dict[tuple[str, ...], FolderGroup] = {}
        for email in emails:
            for attachment in email.attachments:
                segments = tuple(self.categorizer.categorize(attachment.filename).segments)
                group = groups.get(segments)
                if group is None:
                    group = FolderGroup(
                        "/".join((root.name,) + segments),
                        lambda s=segments: self.ensure_path(s, root.id),
                    )
                    groups[segments] = group
                group.attachments.append(attachment)
        return list(groups.values())

    def _transfer(
        self, attachment: AttachmentDescriptor, folder: FolderNode
    ) -> Optional[DriveFile]:
        """Fetch one attachment from the mailbox and upload it.

        Returns:
            Optional[DriveFile]: Uploaded file, or None on failure.
        """
        try:
            content = self.mail_client.get_attachment_content(
                attachment.message_id, attachment.attachment_id
            )
            uploaded = self.drive_client.upload_file(
                folder.id, attachment.filename, content, attachment.mime_type
            )
        except FetchError as e:
            logger.warning(
                f"Failed to transfer {attachment.filename!r} "
                f"(message {attachment.message_id}): {e}"
            )
            self._failures.append(
                ItemFailure(
                    kind="attachment",
                    item_id=attachment.filename,
                    message_id=attachment.message_id,
                    reason=str(e),
                )
            )
            return None

        logger.debug(f"Uploaded {attachment.filename} to {folder.name}")
        return uploaded

    def organize(
        self,
        emails: list[EmailDetail],
        destination_name: str,
        mode: OrganizeMode = OrganizeMode.FLAT,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> OrganizeResult:
        """
        Organize all attachments of ``emails`` under a new folder.

        Every attachment attempt advances progress by one, success or not, so
        ``processed`` reaches ``total`` exactly once. With nothing to upload a
        single ``ProgressState(0, 0)`` is reported.

        Args:
            emails: Harvested emails.
            destination_name: Name of the destination folder to create.
            mode: Folder layout.
            progress_callback: Receives a copy of the progress after every
                attempt.

        Returns:
            OrganizeResult: Run summary; per-item outcomes are in
            ``failures``.

        Raises:
            FetchError: If the destination folder cannot be created.
        """
        mode = OrganizeMode(mode)
        total = sum(len(e.attachments) for e in emails)
        self._reset(total, progress_callback)

        logger.info(
            f"Organizing {total} attachments into {destination_name!r} ({mode.value})"
        )
        root = self.drive_client.create_folder(destination_name)
        self._folders_created += 1

        if mode == OrganizeMode.DATED:
            groups = self._plan_dated(emails, root)
        elif mode == OrganizeMode.CATEGORIZED:
            groups = self._plan_categorized(emails, root)
        else:
            groups = self._plan_flat(emails, root)

        uploaded: list[DriveFile] = []

        if total == 0:
            self._report()

        for group in groups:
            if not group.attachments:
                continue

            folder = group.resolve()
            for attachment in group.attachments:
                if folder is None:
                    self._failures.append(
                        ItemFailure(
                            kind="attachment",
                            item_id=attachment.filename,
                            message_id=attachment.message_id,
                            reason=f"Folder {group.label} could not be created",
                        )
                    )
                else:
                    result = self._transfer(attachment, folder)
                    if result is not None:
                        uploaded.append(result)
                self._advance()

        logger.info(
            f"Organize finished: {len(uploaded)}/{total} uploaded, "
            f"{len(self._failures)} failure(s)"
        )
        return OrganizeResult(
            root_folder=root,
            mode=mode,
            progress=self._progress.model_copy(),
            uploaded=uploaded,
            failures=list(self._failures),
            folders_created=self._folders_created,
        )
