"""Keyword based line classification."""
from __future__ import annotations

from .config import DEFAULT_CONFIG, ExtractionConfig


def classify_line(line: str, config: ExtractionConfig = DEFAULT_CONFIG) -> str:
    """Return the first category whose keywords occur in ``line``.

    Matching is plain substring containment on the lowercased line, so
    ``"eat"`` also matches inside ``"heater"``.
    """
    lowered = line.lower()
    for label, keywords in config.categories.items():
        if any(keyword in lowered for keyword in keywords):
            return label
    return config.default_category
