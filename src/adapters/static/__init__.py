"""Static adapters - Fixed reference data."""

from .banks import NIGERIAN_BANKS, StaticBankDirectory
from .categories import DEFAULT_CATEGORIES, StaticBusinessCategoryCatalog

__all__ = [
    "DEFAULT_CATEGORIES",
    "NIGERIAN_BANKS",
    "StaticBankDirectory",
    "StaticBusinessCategoryCatalog",
]
