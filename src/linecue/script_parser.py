# Copyright © 2025 Ed Nutting
# SPDX-License-Identifier: MIT
# See LICENSE file for details

"""
Script loading module.

Scripts may be plain text or Markdown. Markdown is rendered to HTML first
and reduced to the text a reader would see, so formatting markers such as
"#", "*" and list bullets never turn into segments or tokens. Block-level
elements (headings, paragraphs, list items) end with a line break.
"""

from html.parser import HTMLParser
from pathlib import Path

import markdown

MARKDOWN_SUFFIXES: frozenset[str] = frozenset([".md", ".markdown"])

# Elements after which a line break is inserted
BLOCK_TAGS: frozenset[str] = frozenset([
    "p", "h1", "h2", "h3", "h4", "h5", "h6", "li", "blockquote", "pre", "br",
])


class HTMLTextExtractor(HTMLParser):
    """Extract visible text from HTML, keeping block boundaries as newlines."""

    def __init__(self) -> None:
        super().__init__()
        self.parts: list[str] = []

    def handle_data(self, data: str) -> None:
        """Collect text content."""
        self.parts.append(data)

    def handle_endtag(self, tag: str) -> None:
        """End block elements with a line break."""
        if tag in BLOCK_TAGS:
            self.parts.append("\n")

    def handle_startendtag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        """Handle self-closing tags like <br />."""
        if tag in BLOCK_TAGS:
            self.parts.append("\n")

    def get_text(self) -> str:
        """Get extracted text with blank lines collapsed."""
        lines: list[str] = [line.strip() for line in "".join(self.parts).split("\n")]
        return "\n".join(line for line in lines if line)


def markdown_to_text(script_text: str) -> str:
    """Render Markdown and return the visible text."""
    rendered_html: str = markdown.markdown(
        script_text,
        extensions=['nl2br', 'sane_lists']
    )
    extractor: HTMLTextExtractor = HTMLTextExtractor()
    extractor.feed(rendered_html)
    extractor.close()
    return extractor.get_text()


def load_script(path: Path) -> str:
    """
    Load script file content.

    Markdown files (.md, .markdown) are reduced to their visible text.

    Raises:
        OSError: If the file cannot be read.
    """
    text: str = path.read_text(encoding="utf-8")
    if path.suffix.lower() in MARKDOWN_SUFFIXES:
        return markdown_to_text(text)
    return text
