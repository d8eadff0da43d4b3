"""PDF text extraction with backend fallbacks."""
from __future__ import annotations

import logging
import os
import tempfile
from collections.abc import Callable, Iterable, Sequence
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_PDF_BACKENDS = [
    "pypdf",
    "pdfminer",
    "pikepdf+pypdf",
    "pikepdf+pdfminer",
]

# Below this many characters the next backend is tried; short text still counts.
DEFAULT_MIN_PDF_CHARS = 40


def _resolve_backend_order(prefer_backends: Iterable[str] | None) -> list[str]:
    if prefer_backends:
        order = [backend.strip() for backend in prefer_backends if backend and backend.strip()]
    else:
        env_value = os.environ.get("PREP_PDF_BACKENDS", "")
        order = [backend.strip() for backend in env_value.split(",") if backend.strip()]
    return list(dict.fromkeys(order)) or list(DEFAULT_PDF_BACKENDS)


def resolve_min_pdf_chars(value: int | None) -> int:
    if value is None:
        env_value = os.environ.get("PREP_MIN_PDF_CHARS", "").strip()
        value = DEFAULT_MIN_PDF_CHARS
        if env_value:
            try:
                value = int(env_value)
            except ValueError:
                logger.debug("Invalid PREP_MIN_PDF_CHARS value: %s", env_value)
    return max(value, 0)


def extract_pdf_text(
    path: str | Path,
    *,
    min_chars: int = DEFAULT_MIN_PDF_CHARS,
    prefer_backends: Iterable[str] | None = None,
) -> tuple[str, dict[str, Any]]:
    """Extract line-oriented text from a PDF, trying each backend in turn.

    The first backend yielding at least ``min_chars`` characters stops the
    cascade. Otherwise the longest non-empty text from any backend is
    returned, with a warning in the metadata. The text is empty only when no
    backend produced any, in which case ``meta["error"]`` holds the last
    backend error, if any.
    """

    pdf_path = Path(path)
    try:
        byte_size = pdf_path.stat().st_size
    except OSError:
        byte_size = 0

    best_text = ""
    best_backend = "none"
    best_repaired = False
    warnings: list[str] = []
    last_error: str | None = None

    with tempfile.TemporaryDirectory(prefix="prep_pdf_") as tmp_dir:
        repaired_path: Path | None = None
        repair_error: str | None = None

        for backend_name in _resolve_backend_order(prefer_backends):
            use_repair = backend_name.startswith("pikepdf+")
            base_backend = backend_name.split("+", 1)[-1] if use_repair else backend_name
            target_path = pdf_path

            if use_repair:
                if repaired_path is None and repair_error is None:
                    try:
                        repaired_path = _repair_pdf(pdf_path, Path(tmp_dir))
                    except Exception as exc:
                        repair_error = str(exc)
                        logger.debug("pikepdf repair failed for %s: %s", pdf_path, exc)
                if repaired_path is None:
                    last_error = repair_error or "pikepdf repair unavailable"
                    warnings.append(f"{backend_name}: repair failed: {last_error}")
                    continue
                target_path = repaired_path

            try:
                text, backend_warnings = _line_reader(base_backend)(target_path)
            except Exception as exc:
                last_error = str(exc)
                logger.debug("PDF backend %s failed for %s: %s", backend_name, pdf_path, exc)
                warnings.append(f"{backend_name}: {exc}")
                continue

            warnings.extend(f"{backend_name}: {warning}" for warning in backend_warnings)
            if len(text.strip()) > len(best_text.strip()):
                best_text = text
                best_backend = backend_name
                best_repaired = use_repair
            if text.strip() and len(text.strip()) >= min_chars:
                break

    chars = len(best_text.strip())
    if chars and chars < min_chars:
        warnings.append(f"best text shorter than min_chars ({chars} < {min_chars})")
    elif not chars and not last_error:
        warnings.append("no backend produced text")
    return best_text if chars else "", {
        "backend": best_backend,
        "bytes": byte_size,
        "chars": chars,
        "warnings": list(dict.fromkeys(warnings)),
        "repaired": best_repaired,
        "error": None if chars else last_error,
    }


def _line_reader(backend: str) -> Callable[[Path], tuple[str, list[str]]]:
    readers = {
        "pypdf": _extract_with_pypdf,
        "pdfminer": _extract_with_pdfminer,
    }
    try:
        return readers[backend]
    except KeyError:
        raise RuntimeError(f"unknown backend: {backend}") from None


class _LineCollector:
    """Group pypdf text fragments into lines by their vertical position."""

    def __init__(self) -> None:
        self.lines: list[str] = []
        self._fragments: list[str] = []
        self._last_y: float | None = None

    def _flush(self) -> None:
        if self._fragments:
            self.lines.append("".join(self._fragments))
        self._fragments = []

    def visit(
        self,
        text: str,
        cm: Sequence[float],
        tm: Sequence[float],
        font_dict: Any,
        font_size: Any,
    ) -> None:
        if not text:
            return
        if not text.strip("\n"):
            # pypdf emits bare newlines on its own line breaks; the y change
            # on the next fragment already ends the line.
            return
        y = tm[4] * cm[1] + tm[5] * cm[3] + cm[5]
        if self._last_y is not None and y != self._last_y:
            self._flush()
        self._last_y = y
        parts = text.split("\n")
        self._fragments.append(parts[0])
        for part in parts[1:]:
            self._flush()
            self._fragments.append(part)

    def finish(self) -> list[str]:
        self._flush()
        return self.lines


def _extract_with_pypdf(path: Path) -> tuple[str, list[str]]:
    warnings: list[str] = []
    try:
        from pypdf import PdfReader
    except ImportError as exc:  # pragma: no cover - optional dependency
        raise RuntimeError("pypdf is not installed") from exc

    try:
        reader = PdfReader(str(path))
    except Exception as exc:  # pragma: no cover - upstream errors vary
        raise RuntimeError(str(exc)) from exc

    page_texts: list[str] = []
    for page_number, page in enumerate(reader.pages, start=1):
        collector = _LineCollector()
        try:
            page.extract_text(visitor_text=collector.visit)
        except Exception as exc:  # pragma: no cover - depends on document
            warnings.append(f"page {page_number}: {exc}")
        page_texts.append("\n".join(collector.finish()))
    return "\n".join(page_texts), warnings


def _extract_with_pdfminer(path: Path) -> tuple[str, list[str]]:
    """Read text lines from pdfminer's layout analysis, one per ``LTTextLine``."""
    try:
        from pdfminer.high_level import extract_pages
        from pdfminer.layout import LTTextContainer, LTTextLine
    except ImportError as exc:  # pragma: no cover - optional dependency
        raise RuntimeError("pdfminer.six is not installed") from exc

    page_texts: list[str] = []
    try:
        for page_layout in extract_pages(str(path)):
            lines: list[str] = []
            for element in page_layout:
                if isinstance(element, LTTextLine):
                    lines.append(element.get_text())
                elif isinstance(element, LTTextContainer):
                    lines.extend(
                        child.get_text() for child in element if isinstance(child, LTTextLine)
                    )
            page_texts.append("\n".join(line.rstrip("\n") for line in lines))
    except Exception as exc:  # pragma: no cover - upstream errors vary
        raise RuntimeError(str(exc)) from exc
    return "\n".join(page_texts), []


def _repair_pdf(source: Path, temp_dir: Path) -> Path:
    """Rewrite ``source`` through pikepdf so damaged cross-reference tables are rebuilt."""
    try:
        from pikepdf import Pdf  # type: ignore[attr-defined]
    except ImportError as exc:  # pragma: no cover - optional dependency
        raise RuntimeError("pikepdf is not installed") from exc

    repaired_path = temp_dir / f"{source.stem}.repaired.pdf"
    with Pdf.open(source) as pdf:
        pdf.save(repaired_path)
    return repaired_path
