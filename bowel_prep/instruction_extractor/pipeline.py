"""End-to-end processing of a single instruction document."""
from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

from .config import DEFAULT_CONFIG, ExtractionConfig
from .normalize import normalize_lines
from .scanner import InstructionRecord, scan_lines
from .sink import write_records_csv
from .sources import load_document_text

logger = logging.getLogger(__name__)

SUCCESS_MESSAGE = "CSV file has been created successfully"


@dataclass
class ProcessResult:
    """Outcome of processing one document."""

    success: bool
    message: str
    records: list[InstructionRecord] = field(default_factory=list)
    output_path: Path | None = None


def extract_records(
    text: str, config: ExtractionConfig = DEFAULT_CONFIG
) -> list[InstructionRecord]:
    return scan_lines(normalize_lines(text), config)


def process_document(
    input_path: Path,
    output_path: Path,
    *,
    config: ExtractionConfig = DEFAULT_CONFIG,
    min_pdf_chars: int | None = None,
    pdf_backends: Iterable[str] | None = None,
    suffix: str | None = None,
) -> ProcessResult:
    """Extract records from ``input_path`` and write them to ``output_path``.

    Never raises for document problems; failures come back as an unsuccessful
    ``ProcessResult`` with no records.
    """
    try:
        text = load_document_text(
            input_path,
            min_pdf_chars=min_pdf_chars,
            pdf_backends=pdf_backends,
            suffix=suffix,
        )
        records = extract_records(text, config)
        count = write_records_csv(output_path, records)
    except Exception as exc:
        logger.exception("Error processing %s", input_path)
        return ProcessResult(success=False, message=f"Error processing PDF: {exc}")
    logger.info("Wrote %d records from %s to %s", count, input_path.name, output_path)
    return ProcessResult(
        success=True,
        message=SUCCESS_MESSAGE,
        records=records,
        output_path=output_path,
    )
