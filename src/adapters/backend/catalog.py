"""
Backend business category adapter - Implements BusinessCategoryCatalog.
"""

import logging

from src.domain.ports import BusinessCategory

from .client import BackendClient, raise_for_failure

logger = logging.getLogger(__name__)

CATEGORIES_PATH = "/business-categories"


class BackendBusinessCategoryCatalog:
    """Fetches business categories from the vendor API."""

    def __init__(self, client: BackendClient) -> None:
        self._client = client

    async def list_categories(self) -> list[BusinessCategory]:
        response = await self._client.request("GET", CATEGORIES_PATH)
        raise_for_failure(response, "Failed to fetch business categories")

        categories: list[BusinessCategory] = []
        for item in response.data or []:
            try:
                categories.append(
                    BusinessCategory(id=int(item["id"]), name=str(item["categoryName"]))
                )
            except (KeyError, TypeError, ValueError):
                # Entries without a numeric id can never resolve; leave them out
                logger.warning("Skipping malformed business category: %r", item)
        return categories
