"""Paginated discovery of candidate items."""

from __future__ import annotations

import logging
from typing import Iterator

from versiontrim.models.collection import Collection, ObjectItem
from versiontrim.store.base import StoreError, VersionStore
from versiontrim.trim.errors import EnumerationError, NoItemsDiscovered

logger = logging.getLogger(__name__)

PAGE_SIZE = 1000


class ItemEnumerator:
    """Enumerates file items across target collections page by page.

    Attributes:
        store: Versioned object store
        page_size: Items requested per page
    """

    def __init__(self, store: VersionStore, page_size: int = PAGE_SIZE) -> None:
        self.store = store
        self.page_size = page_size

    def iter_items(self, collections: list[Collection]) -> Iterator[ObjectItem]:
        """Yield file items, collection by collection.

        Folders and other kinds are skipped. Order within a collection is
        whatever the store returns.

        Raises:
            EnumerationError: If any page of a collection cannot be fetched
        """
        for collection in collections:
            count = 0
            try:
                for page in self.store.iter_item_pages(collection, self.page_size):
                    for item in page:
                        if not item.is_file:
                            continue
                        count += 1
                        yield item
            except StoreError as e:
                logger.error(f"Enumeration of {collection.name} failed after {count} file(s): {e}")
                raise EnumerationError(collection.name, e) from e

            logger.info(f"Enumerated {count} file(s) in {collection.name}")

    def collect(self, collections: list[Collection]) -> list[ObjectItem]:
        """Materialise the full work list.

        Raises:
            EnumerationError: If a page fetch fails
            NoItemsDiscovered: If no file items exist
        """
        items = list(self.iter_items(collections))
        if not items:
            raise NoItemsDiscovered()
        return items
