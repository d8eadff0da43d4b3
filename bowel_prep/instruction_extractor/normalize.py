"""Normalization helpers for extracted document text."""
from __future__ import annotations

import re
from collections.abc import Iterable

NON_PRINTABLE_RE = re.compile(r"[^\x20-\x7E]")
WHITESPACE_RE = re.compile(r"\s+")
PAGE_MARKER_RE = re.compile(r"^\s*page\s+\d+\s*$", re.IGNORECASE)


def clean_line(line: str) -> str:
    # Replace before collapsing so substituted characters never leave runs of spaces.
    replaced = NON_PRINTABLE_RE.sub(" ", line)
    return WHITESPACE_RE.sub(" ", replaced).strip()


def is_page_marker(line: str) -> bool:
    return bool(PAGE_MARKER_RE.match(line))


def normalize_lines(text: str) -> list[str]:
    """Split ``text`` into cleaned lines, dropping blanks and page numbers."""
    lines: list[str] = []
    for raw_line in text.splitlines():
        cleaned = clean_line(raw_line)
        if not cleaned or is_page_marker(cleaned):
            continue
        lines.append(cleaned)
    return lines


def normalize_pages(pages: Iterable[str]) -> list[str]:
    lines: list[str] = []
    for page in pages:
        lines.extend(normalize_lines(page))
    return lines
