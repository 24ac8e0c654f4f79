"""Paginated message search."""

import logging
from typing import Optional

from .gmail_client import GmailClient
from .models import MessageRef

logger = logging.getLogger(__name__)

HAS_ATTACHMENT_TERM = "has:attachment"


class MessageHarvester:
    """
    Collects every message reference matching a sender predicate.

    The whole result set is fetched before returning because downstream
    sorting needs all of it.

    Attributes:
        mail_client: Gmail client.
    """

    def __init__(self, mail_client: GmailClient) -> None:
        self.mail_client = mail_client

    @staticmethod
    def build_query(predicate: str) -> str:
        """Combine the sender predicate with the attachment requirement."""
        predicate = (predicate or "").strip()
        if not predicate:
            return HAS_ATTACHMENT_TERM
        return f"{HAS_ATTACHMENT_TERM} {predicate}"

    def search(self, predicate: str) -> list[MessageRef]:
        """Follow continuation tokens until exhausted.

        References are de-duplicated by id, keeping first-seen order.

        Args:
            predicate: Sender predicate from
                :func:`src.attachment_organizer.criterion.build_predicate`.

        Returns:
            list[MessageRef]: All matching references.

        Raises:
            FetchError: If any page request fails. No partial result is
                returned.
        """
        query = self.build_query(predicate)
        logger.info("Searching messages: %s", query)

        refs: list[MessageRef] = []
        seen: set[str] = set()
        page_token: Optional[str] = None
        pages = 0

        while True:
            page = self.mail_client.search_messages(query, page_token=page_token)
            pages += 1

            for ref in page.messages:
                if ref.id in seen:
                    continue
                seen.add(ref.id)
                refs.append(ref)

            page_token = page.next_page_token
            if not page_token:
                break

        logger.info(f"Found {len(refs)} messages across {pages} page(s)")
        return refs
