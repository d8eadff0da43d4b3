"""Keyword tables and defaults used by the extractor."""
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

CATEGORY_KEYWORDS: dict[str, tuple[str, ...]] = {
    "medication": (
        "medication",
        "iron",
        "supplements",
        "antidiarrheals",
        "blood",
        "tablets",
        "aspirin",
    ),
    "bowelprep": (
        "plenvu",
        "glycoprep",
        "moviprep",
        "picolax",
        "picoprep",
        "prepkit",
        "dose",
        "sachet",
    ),
    "diet": (
        "diet",
        "food",
        "eat",
        "drink",
        "fluids",
        "breakfast",
        "lunch",
        "dinner",
        "meals",
    ),
    "procedure": (
        "procedure",
        "colonoscopy",
        "hospital",
        "appointment",
        "admission",
    ),
}

PREP_PRODUCTS = (
    "plenvu",
    "glycoprep",
    "moviprep",
    "picolax",
    "picoprep",
    "prepkit",
)

DEFAULT_CATEGORY = "procedure"
DEFAULT_PREP = "plenvu"


@dataclass(frozen=True)
class ExtractionConfig:
    """Immutable settings shared by every scan.

    ``categories`` is ordered: the first label whose keywords match a line
    wins, so insertion order is part of the contract.
    """

    categories: Mapping[str, tuple[str, ...]] = field(
        default_factory=lambda: MappingProxyType(dict(CATEGORY_KEYWORDS))
    )
    default_category: str = DEFAULT_CATEGORY
    prep_products: tuple[str, ...] = PREP_PRODUCTS
    default_prep: str = DEFAULT_PREP

    def __post_init__(self) -> None:
        if not self.default_prep:
            raise ValueError("default_prep must not be empty")
        # Freeze caller-supplied tables so a config can be shared between runs.
        frozen = {
            label.lower(): tuple(keyword.lower() for keyword in keywords)
            for label, keywords in self.categories.items()
        }
        object.__setattr__(self, "categories", MappingProxyType(frozen))
        object.__setattr__(
            self,
            "prep_products",
            tuple(product.lower() for product in self.prep_products),
        )


DEFAULT_CONFIG = ExtractionConfig()
