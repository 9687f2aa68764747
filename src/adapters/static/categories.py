"""
Static business category catalog - Implements BusinessCategoryCatalog.

Used with the console adapters when no vendor backend is available.
"""

from src.domain.ports import BusinessCategory

DEFAULT_CATEGORIES: tuple[BusinessCategory, ...] = (
    BusinessCategory(id=1, name="Fashion & Apparel"),
    BusinessCategory(id=2, name="Electronics"),
    BusinessCategory(id=3, name="Food & Groceries"),
    BusinessCategory(id=4, name="Health & Beauty"),
    BusinessCategory(id=5, name="Home & Kitchen"),
    BusinessCategory(id=6, name="Books & Stationery"),
)


class StaticBusinessCategoryCatalog:
    def __init__(self, categories: tuple[BusinessCategory, ...] = DEFAULT_CATEGORIES) -> None:
        self._categories = categories

    async def list_categories(self) -> list[BusinessCategory]:
        return list(self._categories)
