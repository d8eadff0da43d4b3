"""Exception types raised by the extractor."""
from __future__ import annotations


class PrepExtractionError(Exception):
    """Base class for whole-document failures."""


class ExtractionError(PrepExtractionError):
    """The document could not be read or produced no text."""


class UnsupportedDocumentError(PrepExtractionError):
    """The file type has no text loader."""


class UploadRejected(PrepExtractionError):
    """An upload failed validation before processing."""
