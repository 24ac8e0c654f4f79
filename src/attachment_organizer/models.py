"""Pydantic data models used across the application.

Objective:
    Centralize all strongly-typed data structures representing:
    - Gmail wire payloads (message part trees, headers, search pages)
    - Harvested email records and their attachment descriptors
    - Filename categorization output
    - Drive folders/files and organize-run progress and results

Design notes:
    - Wire models use Pydantic aliases to match Google field names
      (e.g. ``nextPageToken`` -> :attr:`MessagePage.next_page_token`).
    - ``model_config = ConfigDict(populate_by_name=True)`` allows constructing
      models with either alias names or pythonic field names.
    - Records that must not change after creation are frozen.

High-level structure:
    - Gmail primitives:
        - :class:`MessageHeader`
        - :class:`PartBody`
        - :class:`MessagePart` (recursive)
        - :class:`GmailMessage`
        - :class:`MessageRef` / :class:`MessagePage`
    - Harvest primitives:
        - :class:`SearchCriterion`
        - :class:`AttachmentDescriptor`
        - :class:`EmailDetail`
        - :class:`ItemFailure`
        - :class:`SearchOutcome`
    - Organize primitives:
        - :class:`CategoryPath`
        - :class:`FolderNode` / :class:`DriveFile`
        - :class:`ProgressState`
        - :class:`OrganizeResult`
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class CriterionKind(str, Enum):
    """Which validation rule accepted a search criterion."""

    EMAIL_ADDRESS = "email_address"
    DOMAIN = "domain"
    COMPANY_NAME = "company_name"


class OrganizeMode(str, Enum):
    """Destination layout for an organize run.

    The Enum values are accepted by the CLI and web API.
    """

    FLAT = "flat"
    DATED = "dated"
    CATEGORIZED = "categorized"


class SearchCriterion(BaseModel):
    """Validated sender criterion.

    Attributes:
        kind: Which rule matched.
        value: Normalized value (lower-cased address/domain, or the
            alphanumeric company base).
    """

    kind: CriterionKind
    value: str

    model_config = ConfigDict(frozen=True)


class MessageHeader(BaseModel):
    """One ``{"name": ..., "value": ...}`` header entry."""

    name: str
    value: str = ""


class PartBody(BaseModel):
    """Body of a MIME part.

    Attachment parts carry an ``attachmentId``; small inline bodies carry
    ``data`` instead.
    """

    attachment_id: Optional[str] = Field(default=None, alias="attachmentId")
    size: int = 0
    data: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True)


class MessagePart(BaseModel):
    """A node of the message part tree.

    Attributes:
        part_id: Part identifier (``"0"``, ``"1.2"``, ...).
        mime_type: MIME type of the part.
        filename: Attachment filename, empty for non-attachment parts.
        headers: Part headers. On the top-level payload these are the
            message headers.
        body: Part body.
        parts: Nested parts for multipart types.
    """

    part_id: str = Field(default="", alias="partId")
    mime_type: str = Field(default="", alias="mimeType")
    filename: str = ""
    headers: list[MessageHeader] = Field(default_factory=list)
    body: PartBody = Field(default_factory=PartBody)
    parts: list["MessagePart"] = Field(default_factory=list)

    model_config = ConfigDict(populate_by_name=True)


MessagePart.model_rebuild()


class GmailMessage(BaseModel):
    """Full message representation (``format=full``)."""

    id: str
    thread_id: str = Field(default="", alias="threadId")
    label_ids: list[str] = Field(default_factory=list, alias="labelIds")
    snippet: str = ""
    payload: MessagePart = Field(default_factory=MessagePart)

    model_config = ConfigDict(populate_by_name=True)


class MessageRef(BaseModel):
    """Opaque handle returned by message search.

    Only :attr:`id` is assumed stable.
    """

    id: str
    thread_id: Optional[str] = Field(default=None, alias="threadId")

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class MessagePage(BaseModel):
    """One page of search results."""

    messages: list[MessageRef] = Field(default_factory=list)
    next_page_token: Optional[str] = Field(default=None, alias="nextPageToken")
    result_size_estimate: int = Field(default=0, alias="resultSizeEstimate")

    model_config = ConfigDict(populate_by_name=True)


class AttachmentDescriptor(BaseModel):
    """
    Leaf attachment found while walking one message's part tree.

    Attributes:
        filename: Attachment filename.
        attachment_id: Remote attachment id used to fetch the content.
        message_id: Id of the owning message.
        mime_type: MIME type declared on the part.
        size: Declared size in bytes.
    """

    filename: str
    attachment_id: str = Field(default="", alias="attachmentId")
    message_id: str = Field(alias="messageId")
    mime_type: str = Field(default="application/octet-stream", alias="mimeType")
    size: int = 0

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class EmailDetail(BaseModel):
    """
    Normalized record for one harvested message.

    Attributes:
        message_id: Gmail message id.
        subject: Subject header.
        from_name: Sender display name.
        from_email: Sender address (may be empty).
        raw_date: Date header as delivered.
        sort_key: Epoch timestamp of ``raw_date``; None when unparsable.
        display_date: Localized display form, or ``raw_date`` on failure.
        attachments: Attachments owned by this message.
    """

    message_id: str
    subject: str = ""
    from_name: str = ""
    from_email: str = ""
    raw_date: str = ""
    sort_key: Optional[float] = None
    display_date: str = ""
    attachments: list[AttachmentDescriptor] = Field(default_factory=list)


class ItemFailure(BaseModel):
    """A single message, attachment or folder that failed mid-batch.

    Attributes:
        kind: ``message``, ``attachment`` or ``folder``.
        item_id: Id of the failed item (message id, attachment filename or
            folder name).
        message_id: Owning message id, when applicable.
        reason: Short description of the failure.
    """

    kind: str
    item_id: str
    message_id: Optional[str] = None
    reason: str = ""


class SearchOutcome(BaseModel):
    """
    Result of one search.

    Attributes:
        criterion: Validated criterion.
        predicate: Sender predicate built from the criterion.
        emails: Harvested emails, sorted by descending date.
        failures: Messages that could not be fetched.
    """

    criterion: SearchCriterion
    predicate: str
    emails: list[EmailDetail] = Field(default_factory=list)
    failures: list[ItemFailure] = Field(default_factory=list)

    @property
    def status(self) -> str:
        """Summarize the outcome for presentation.

        Returns:
            str: ``degraded`` if any message was dropped, ``empty`` if nothing
            was found, otherwise ``complete``.
        """
        if self.failures:
            return "degraded"
        if not self.emails:
            return "empty"
        return "complete"

    @property
    def attachment_count(self) -> int:
        """Total attachments across all emails."""
        return sum(len(e.attachments) for e in self.emails)


class CategoryPath(BaseModel):
    """
    Filename categorization output.

    Attributes:
        date_path: ``YYYY/MonthName`` or ``No-Date``.
        category: Main category.
        sub_category: Subcategory.
    """

    date_path: str
    category: str
    sub_category: str

    model_config = ConfigDict(frozen=True)

    @property
    def path(self) -> str:
        """Slash-joined ``date_path/category/sub_category``."""
        return f"{self.date_path}/{self.category}/{self.sub_category}"

    @property
    def segments(self) -> list[str]:
        """Folder names from the top of the hierarchy down."""
        return [s for s in self.path.split("/") if s]


class FolderNode(BaseModel):
    """
    Drive folder created or listed by this application.

    Attributes:
        id: Drive file id.
        name: Folder name.
        parent_id: First parent id, if known.
    """

    id: str
    name: str
    parent_id: Optional[str] = None


class DriveFile(BaseModel):
    """Drive file metadata."""

    id: str
    name: str = ""
    mime_type: str = Field(default="", alias="mimeType")
    parents: list[str] = Field(default_factory=list)

    model_config = ConfigDict(populate_by_name=True)


class ProgressState(BaseModel):
    """Upload progress of one organize run."""

    processed: int = 0
    total: int = 0

    @property
    def percent(self) -> int:
        """Integer percentage, rounded down so 100 means done.

        With nothing to do the run is complete and this is 100.
        """
        if self.total <= 0:
            return 100
        return self.processed * 100 // self.total

    @property
    def done(self) -> bool:
        return self.processed >= self.total


class OrganizeResult(BaseModel):
    """
    Result of one organize run.

    The run completing does not imply every upload succeeded; consult
    :attr:`failures`.

    Attributes:
        root_folder: Destination folder created for this run.
        mode: Layout used.
        progress: Final progress.
        uploaded: Files uploaded successfully.
        failures: Items skipped because of an error.
        folders_created: Number of folder create calls that succeeded.
    """

    root_folder: FolderNode
    mode: OrganizeMode
    progress: ProgressState
    uploaded: list[DriveFile] = Field(default_factory=list)
    failures: list[ItemFailure] = Field(default_factory=list)
    folders_created: int = 0

    @property
    def success(self) -> bool:
        return not self.failures
