"""Load raw text from instruction documents on disk."""
from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

from bs4 import BeautifulSoup
from docx import Document

from .errors import ExtractionError, UnsupportedDocumentError
from .pdf import extract_pdf_text, resolve_min_pdf_chars

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = {
    ".pdf",
    ".txt",
    ".html",
    ".htm",
    ".docx",
}


def load_document_text(
    path: Path,
    *,
    min_pdf_chars: int | None = None,
    pdf_backends: Iterable[str] | None = None,
    suffix: str | None = None,
) -> str:
    """Return the raw, line-oriented text of ``path``.

    ``suffix`` overrides the file extension when choosing a loader. Raises
    ``UnsupportedDocumentError`` for unknown suffixes and ``ExtractionError``
    when the document yields no text.
    """
    suffix = (suffix or path.suffix).lower()
    if suffix not in SUPPORTED_EXTENSIONS:
        raise UnsupportedDocumentError(f"Unsupported document type: {suffix or path.name}")
    if not path.is_file():
        raise ExtractionError(f"File not found: {path}")
    if suffix == ".pdf":
        text = load_pdf(path, min_pdf_chars=min_pdf_chars, pdf_backends=pdf_backends)
    elif suffix == ".txt":
        text = path.read_text(encoding="utf-8", errors="ignore")
    elif suffix in {".html", ".htm"}:
        text = load_html(path.read_text(encoding="utf-8", errors="ignore"))
    else:
        text = load_docx(path)
    if not text.strip():
        raise ExtractionError(f"No text could be extracted from {path.name}")
    return text


def load_pdf(
    path: Path,
    *,
    min_pdf_chars: int | None = None,
    pdf_backends: Iterable[str] | None = None,
) -> str:
    min_chars = resolve_min_pdf_chars(min_pdf_chars)
    text, meta = extract_pdf_text(path, min_chars=min_chars, prefer_backends=pdf_backends)
    if not text.strip():
        detail = meta.get("error") or "; ".join(meta.get("warnings", [])) or "empty document"
        raise ExtractionError(f"Unable to read PDF {path.name}: {detail}")
    logger.debug(
        "Extracted %d characters from %s using %s", meta["chars"], path.name, meta["backend"]
    )
    return text


def load_html(text: str) -> str:
    soup = BeautifulSoup(text, "lxml")
    for tag in soup(["script", "style"]):
        tag.decompose()
    return soup.get_text("\n")


def load_docx(path: Path) -> str:
    try:
        document = Document(str(path))
    except Exception as exc:  # pragma: no cover - dependency errors
        raise ExtractionError(f"Failed to read DOCX {path.name}: {exc}") from exc
    return "\n".join(paragraph.text for paragraph in document.paragraphs)
