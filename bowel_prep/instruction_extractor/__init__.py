"""Bowel-prep instruction extractor package."""
from __future__ import annotations

from pathlib import Path

from . import classify, config, fields, intake, normalize, pdf, pipeline, scanner, sink, sources

__all__ = [
    "classify",
    "config",
    "fields",
    "intake",
    "normalize",
    "pdf",
    "pipeline",
    "scanner",
    "sink",
    "sources",
    "read_records",
]


def read_records(path: Path) -> list[scanner.InstructionRecord]:
    """Convenience wrapper returning the records of a document without writing CSV."""
    return pipeline.extract_records(sources.load_document_text(path))
