"""
Tests for the sanitizer module.
"""

from src.attachment_organizer.sanitizer import (
    clean_text,
    html_to_markdown,
    sanitize_content,
)


class TestHtmlToMarkdown:
    """Tests for html_to_markdown function."""

    def test_empty_string(self):
        assert html_to_markdown("") == ""

    def test_simple_html(self):
        html = "<p>Hello <strong>World</strong></p>"
        result = html_to_markdown(html)
        assert "Hello" in result
        assert "World" in result

    def test_removes_script_and_style(self):
        html = "<style>p{color:red}</style><p>Content</p><script>alert('xss')</script>"
        result = html_to_markdown(html)
        assert "alert" not in result
        assert "color" not in result
        assert "Content" in result


class TestCleanText:
    """Tests for clean_text function."""

    def test_empty_string(self):
        assert clean_text("") == ""

    def test_removes_markdown_links_and_urls(self):
        text = "See [the sheet](https://example.com/x) or https://example.com/y"
        result = clean_text(text)
        assert "the sheet" in result
        assert "https://" not in result

    def test_removes_images(self):
        result = clean_text("Chart ![alt text](chart.png) below")
        assert "alt text" not in result
        assert "chart.png" not in result

    def test_keeps_currency_and_percentages(self):
        result = clean_text("| Revenue | ₹2.5 Cr | up 12% |")
        assert "₹2.5 Cr" in result
        assert "12%" in result
        assert "|" not in result

    def test_keeps_line_structure(self):
        result = clean_text("Row one\n\n\nRow   two")
        assert result == "Row one\nRow two"


class TestSanitizeContent:
    """Tests for sanitize_content function."""

    def test_html_path(self):
        result = sanitize_content("<p>Q1 <em>revenue</em></p>", "html")
        assert result == "Q1 revenue"

    def test_truncates_long_content(self):
        result = sanitize_content("a" * 50, "text", max_length=10)
        assert result == "a" * 10 + "..."

    def test_empty(self):
        assert sanitize_content("") == ""
