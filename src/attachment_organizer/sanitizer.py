"""Attachment text sanitization.

Objective:
    Convert non-spreadsheet attachment content (often HTML) into compact plain
    text suitable for LLM prompting.

Responsibilities:
    - Strip potentially dangerous HTML elements (e.g., ``<script>``).
    - Convert HTML to markdown-ish text to preserve some structure.
    - Normalize and compress whitespace while keeping figures, currency
      symbols and percentages intact.

High-level call tree:
    - :func:`sanitize_content`
        - :func:`html_to_markdown` (HTML input)
        - :func:`clean_text`

Security notes:
    Sanitization is intended to prevent prompt injection via raw HTML/script
    content, and to reduce noise/tokens sent to the LLM.
"""

import re

from bs4 import BeautifulSoup
from markdownify import markdownify as md

DEFAULT_MAX_LENGTH = 12000


def html_to_markdown(html_content: str) -> str:
    """Convert HTML to markdown-like plain text.

    Scripts, styles and document metadata (head/meta/link) are removed with
    BeautifulSoup before calling ``markdownify``.

    Args:
        html_content: Raw HTML string.

    Returns:
        str: Markdown formatted text.
    """
    if not html_content:
        return ""

    soup = BeautifulSoup(html_content, "html.parser")
    for element in soup(["script", "style", "head", "meta", "link"]):
        element.decompose()

    return md(str(soup), heading_style="ATX")


def clean_text(text: str) -> str:
    """Normalize and compact plain text.

    Removes:
    - HTML tags
    - Markdown links and images
    - Horizontal rules
    - URLs
    - Special characters other than punctuation, currency and percent signs

    Table separators become single spaces, and runs of blank lines and
    spaces collapse.

    Args:
        text: Raw text to clean.

    Returns:
        str: Cleaned text.
    """
    if not text:
        return ""

    text = re.sub(r"<[^>]*>", "", text)

    # Images before links, otherwise the link rule eats the alt text.
    text = re.sub(r"!\[[^\]]*\]\([^)]*\)", "", text)
    text = re.sub(r"\[([^\]]*)\]\([^)]*\)", r"\1", text)

    text = re.sub(r"\|", " ", text)
    text = re.sub(r"-{3,}", "", text)
    text = re.sub(r"https?://\S+", "", text)

    text = re.sub(r"[^\w\s.,!?@:;'\"%₹$/()-]", "", text)

    # Rows stay on separate lines; only blank runs collapse.
    text = re.sub(r"[ \t]{2,}", " ", text)
    text = re.sub(r"\n\s*\n+", "\n", text)

    return text.strip()


def sanitize_content(
    content: str, content_type: str = "text", max_length: int = DEFAULT_MAX_LENGTH
) -> str:
    """Sanitize attachment text for AI processing.

    Args:
        content: Raw decoded content.
        content_type: ``"html"`` or ``"text"``.
        max_length: Truncation limit in characters.

    Returns:
        str: Sanitized text.
    """
    if not content:
        return ""

    if content_type.lower() == "html":
        cleaned = clean_text(html_to_markdown(content))
    else:
        cleaned = clean_text(content)

    if len(cleaned) > max_length:
        cleaned = cleaned[:max_length] + "..."

    return cleaned
