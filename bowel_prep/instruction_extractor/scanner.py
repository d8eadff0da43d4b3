"""Two-pass scan turning normalized lines into instruction records."""
from __future__ import annotations

import logging
import re
from collections.abc import Callable, Iterable, Sequence
from dataclasses import asdict, dataclass
from typing import TypeVar

from .classify import classify_line
from .config import DEFAULT_CONFIG, ExtractionConfig
from .fields import UNKNOWN_OFFSET, extract_offset, extract_time

logger = logging.getLogger(__name__)

T = TypeVar("T")

RECORD_FIELDS = (
    "bowelprep",
    "order",
    "category",
    "message",
    "offset",
    "time",
    "split",
    "procedure_time",
)


@dataclass(frozen=True)
class DocumentFlags:
    """Document-wide flags found in the first pass."""

    procedure_morning: bool = False
    split_dose: bool = False

    @property
    def procedure_time(self) -> str:
        return "morning" if self.procedure_morning else "afternoon"


@dataclass(frozen=True)
class InstructionRecord:
    bowelprep: str
    order: int
    category: str
    message: str
    offset: int
    time: float | None
    split: bool
    procedure_time: str

    def to_dict(self) -> dict[str, object]:
        return asdict(self)


def discover_flags(lines: Iterable[str]) -> DocumentFlags:
    procedure_morning = False
    split_dose = False
    for line in lines:
        lowered = line.lower()
        if "morning" in lowered and "procedure" in lowered:
            procedure_morning = True
        if "split" in lowered:
            split_dose = True
    return DocumentFlags(procedure_morning=procedure_morning, split_dose=split_dose)


def build_prep_pattern(products: Iterable[str]) -> re.Pattern[str]:
    alternatives = "|".join(re.escape(product) for product in products)
    return re.compile(rf"\b({alternatives})\b", re.IGNORECASE)


def match_prep_product(line: str, pattern: re.Pattern[str]) -> str | None:
    if "prep" not in line.lower():
        return None
    match = pattern.search(line)
    if not match:
        return None
    return match.group(1).lower()


def safe_field(
    extractor: Callable[[str], T],
    line: str,
    fallback: T,
    *,
    name: str,
    order: int,
) -> T:
    try:
        return extractor(line)
    except Exception as exc:
        logger.warning("Line %d: %s failed (%s); using %r", order, name, exc, fallback)
        return fallback


def assemble(
    lines: Sequence[str],
    flags: DocumentFlags,
    config: ExtractionConfig = DEFAULT_CONFIG,
) -> list[InstructionRecord]:
    """Build one record per line, carrying the last seen prep product forward."""
    prep_pattern = build_prep_pattern(config.prep_products)
    current_prep: str | None = None
    records: list[InstructionRecord] = []
    for order, line in enumerate(lines, start=1):
        matched = safe_field(
            lambda text: match_prep_product(text, prep_pattern),
            line,
            None,
            name="prep detection",
            order=order,
        )
        if matched:
            current_prep = matched
        records.append(
            InstructionRecord(
                bowelprep=current_prep or config.default_prep,
                order=order,
                category=safe_field(
                    lambda text: classify_line(text, config),
                    line,
                    config.default_category,
                    name="classification",
                    order=order,
                ),
                message=line.strip(),
                offset=safe_field(
                    extract_offset, line, UNKNOWN_OFFSET, name="offset", order=order
                ),
                time=safe_field(extract_time, line, None, name="time", order=order),
                split=flags.split_dose,
                procedure_time=flags.procedure_time,
            )
        )
    logger.debug("Assembled %d records (prep=%s)", len(records), current_prep)
    return records


def scan_lines(
    lines: Sequence[str], config: ExtractionConfig = DEFAULT_CONFIG
) -> list[InstructionRecord]:
    flags = discover_flags(lines)
    return assemble(lines, flags, config)
