"""Validation and processing of uploaded instruction PDFs."""
from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

from .config import DEFAULT_CONFIG, ExtractionConfig
from .errors import UploadRejected
from .pipeline import ProcessResult, process_document

logger = logging.getLogger(__name__)

MAX_UPLOAD_BYTES = 5 * 1024 * 1024
ALLOWED_CONTENT_TYPES = {"application/pdf"}


def validate_upload(filename: str, content_type: str | None, size: int) -> None:
    if not filename:
        raise UploadRejected("No file uploaded.")
    if (content_type or "").split(";", 1)[0].strip().lower() not in ALLOWED_CONTENT_TYPES:
        raise UploadRejected("Only PDF files are allowed")
    if size > MAX_UPLOAD_BYTES:
        raise UploadRejected(f"File too large: {size} bytes (limit {MAX_UPLOAD_BYTES})")


def output_path_for(output_dir: Path, original_name: str) -> Path:
    stem = Path(original_name).stem or "output"
    return output_dir / f"{stem}.csv"


def process_upload(
    upload_path: Path,
    original_name: str,
    content_type: str | None,
    output_dir: Path,
    *,
    config: ExtractionConfig = DEFAULT_CONFIG,
    pdf_backends: Iterable[str] | None = None,
) -> ProcessResult:
    """Validate and convert one uploaded file, removing it afterwards."""
    try:
        size = upload_path.stat().st_size if upload_path.exists() else 0
        validate_upload(original_name, content_type, size)
        output_path = output_path_for(output_dir, original_name)
        return process_document(
            upload_path,
            output_path,
            config=config,
            pdf_backends=pdf_backends,
            suffix=".pdf",
        )
    except UploadRejected as exc:
        logger.info("Rejected upload %s: %s", original_name, exc)
        return ProcessResult(success=False, message=str(exc))
    finally:
        try:
            upload_path.unlink(missing_ok=True)
        except OSError as exc:
            logger.warning("Error cleaning up uploaded file %s: %s", upload_path, exc)
