"""
Converts the markdown-ish explanations returned by the chat service into HTML
block markup (paragraphs and lists).
"""

from __future__ import annotations

import re
from typing import List

_BOLD_RE = re.compile(r"\*\*(.+?)\*\*", re.DOTALL)
_HAS_BULLETS_RE = re.compile(r"^\s*\*\s+", re.MULTILINE)
_HAS_NUMBERED_RE = re.compile(r"^\s*\d+\.\s+", re.MULTILINE)
_NUMBERED_ITEM_RE = re.compile(r"^\d+\.\s+(.+)$")
_BULLET_ITEM_RE = re.compile(r"^\*\s+(.+)$")
_PARAGRAPH_SPLIT_RE = re.compile(r"\n\s*\n")
_INNER_NEWLINE_RE = re.compile(r"\s*\n\s*")


def format_details_text(text: str) -> str:
    """
    Format details text by converting markdown-style formatting to HTML.

    Any bullet (``* item``) or numbered (``1. item``) line switches the whole
    text to list mode, where lines are walked one by one and runs of list
    items become ``<ul>``/``<ol>`` blocks while every other non-blank line
    becomes its own paragraph. Without list markers the text is split into
    paragraphs on blank lines.

    Args:
        text: Raw explanation text.

    Returns:
        HTML blocks joined by newlines, or the input unchanged when it is empty.
    """
    if not text:
        return text

    text = _BOLD_RE.sub(r"<strong>\1</strong>", text)

    if _HAS_BULLETS_RE.search(text) or _HAS_NUMBERED_RE.search(text):
        return "\n".join(_format_list_mode(text))
    return "\n".join(_format_paragraph_mode(text))


def _format_list_mode(text: str) -> List[str]:
    in_unordered = False
    in_ordered = False
    blocks: List[str] = []

    for line in text.split("\n"):
        trimmed = line.strip()

        numbered = _NUMBERED_ITEM_RE.match(trimmed)
        if numbered:
            if in_unordered:
                blocks.append("</ul>")
                in_unordered = False
            if not in_ordered:
                blocks.append("<ol>")
                in_ordered = True
            blocks.append(f"<li>{numbered.group(1).strip()}</li>")
            continue

        bullet = _BULLET_ITEM_RE.match(trimmed)
        if bullet:
            if in_ordered:
                blocks.append("</ol>")
                in_ordered = False
            if not in_unordered:
                blocks.append("<ul>")
                in_unordered = True
            blocks.append(f"<li>{bullet.group(1).strip()}</li>")
            continue

        if in_unordered:
            blocks.append("</ul>")
            in_unordered = False
        if in_ordered:
            blocks.append("</ol>")
            in_ordered = False
        if trimmed:
            blocks.append(f"<p>{trimmed}</p>")

    if in_unordered:
        blocks.append("</ul>")
    if in_ordered:
        blocks.append("</ol>")

    return blocks


def _format_paragraph_mode(text: str) -> List[str]:
    blocks: List[str] = []
    for paragraph in _PARAGRAPH_SPLIT_RE.split(text):
        paragraph = paragraph.strip()
        if paragraph:
            blocks.append(f"<p>{_INNER_NEWLINE_RE.sub(' ', paragraph)}</p>")
    return blocks
