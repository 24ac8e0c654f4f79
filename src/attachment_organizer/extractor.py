"""Attachment tree walking.

Objective:
    Turn message references into
    :class:`src.attachment_organizer.models.EmailDetail` records by fetching
    each message and flattening its nested MIME part tree.

Responsibilities:
    - Flatten a part tree into attachment descriptors with an explicit stack,
      so arbitrarily deep trees do not hit the recursion limit.
    - Fetch one message and build its record; a failed fetch yields ``None``.
    - Fetch many messages concurrently, isolating per-message failures.

High-level call tree:
    - :class:`AttachmentExtractor`
        - :meth:`AttachmentExtractor.extract_all`
            - :meth:`AttachmentExtractor.extract` (thread pool)
                - :meth:`GmailClient.get_message`
                - :func:`walk_parts`
                - :func:`src.attachment_organizer.metadata.build_email_detail`
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Iterable, Optional

from .config import Settings
from .errors import FetchError
from .gmail_client import GmailClient
from .metadata import build_email_detail
from .models import (
    AttachmentDescriptor,
    EmailDetail,
    ItemFailure,
    MessagePart,
    MessageRef,
)

logger = logging.getLogger(__name__)


def walk_parts(parts: Iterable[MessagePart], message_id: str) -> list[AttachmentDescriptor]:
    """Flatten a part tree into attachment descriptors.

    Parts are visited depth-first in document order. A part with a non-empty
    filename becomes one descriptor; a part with nested ``parts`` is walked
    into whether or not it also has a filename.

    Args:
        parts: Top-level parts of the payload.
        message_id: Owning message id.

    Returns:
        list[AttachmentDescriptor]: Attachments in document order.
    """
    attachments: list[AttachmentDescriptor] = []
    stack: list[MessagePart] = list(reversed(list(parts)))

    while stack:
        part = stack.pop()

        if part.filename:
            attachments.append(
                AttachmentDescriptor(
                    filename=part.filename,
                    attachment_id=part.body.attachment_id or "",
                    message_id=message_id,
                    mime_type=part.mime_type or "application/octet-stream",
                    size=part.body.size,
                )
            )

        if part.parts:
            stack.extend(reversed(part.parts))

    return attachments


class AttachmentExtractor:
    """
    Builds email records from message references.

    Attributes:
        settings: Application settings.
        mail_client: Gmail client.
    """

    def __init__(self, settings: Settings, mail_client: GmailClient) -> None:
        self.settings = settings
        self.mail_client = mail_client

    def extract(self, ref: MessageRef) -> Optional[EmailDetail]:
        """Fetch one message and build its record.

        Args:
            ref: Message reference.

        Returns:
            Optional[EmailDetail]: The record, or None if the fetch failed.
            Callers must filter out None entries.
        """
        try:
            message = self.mail_client.get_message(ref.id)
        except FetchError as e:
            logger.warning(f"Failed to fetch message {ref.id}: {e}")
            return None

        attachments = walk_parts(message.payload.parts, message.id)
        return build_email_detail(
            message, attachments, tz_name=self.settings.display_timezone
        )

    def extract_all(
        self, refs: list[MessageRef]
    ) -> tuple[list[EmailDetail], list[ItemFailure]]:
        """Fetch all messages concurrently.

        Failures are isolated: one message failing never cancels its
        siblings. The returned records are in completion order; sort them
        afterwards.

        Args:
            refs: Message references.

        Returns:
            tuple[list[EmailDetail], list[ItemFailure]]: Records and the
            messages that were dropped.
        """
        if not refs:
            return [], []

        details: list[EmailDetail] = []
        failures: list[ItemFailure] = []
        workers = min(self.settings.fetch_workers, len(refs))

        logger.info(f"Fetching {len(refs)} messages ({workers} workers)")
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = {executor.submit(self.extract, ref): ref for ref in refs}

            for future in as_completed(futures):
                ref = futures[future]
                try:
                    detail = future.result()
                except Exception as e:
                    logger.exception(f"Unexpected error extracting message {ref.id}")
                    detail = None
                    reason = str(e)
                else:
                    reason = "Message detail fetch failed"

                if detail is None:
                    failures.append(
                        ItemFailure(
                            kind="message",
                            item_id=ref.id,
                            message_id=ref.id,
                            reason=reason,
                        )
                    )
                else:
                    details.append(detail)

        logger.info(
            f"Fetched {len(details)} messages, {len(failures)} failed"
        )
        return details, failures
