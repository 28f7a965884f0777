# -*- coding: utf-8 -*-
"""
Library Store Port Interface

The reference library as seen by the tagging pipeline. The pipeline never
owns items or tags; it reads them through this interface and commits tag
additions back through it.
"""

from __future__ import annotations

from typing import List, Optional, Protocol, Sequence, runtime_checkable

from models.library_item import LibraryItem


@runtime_checkable
class ILibraryStore(Protocol):
    """Library Store Interface

    Current implementation: LibraryService (SQLite)
    """

    def get_item(self, item_id: int) -> Optional[LibraryItem]:
        """Look up an item by ID"""
        ...

    def get_items_by_ids(self, item_ids: Sequence[int]) -> List[LibraryItem]:
        """Look up several items, preserving the requested order"""
        ...

    def get_item_tags(self, item_id: int) -> List[str]:
        """Current tag names of an item, read at call time"""
        ...

    def add_item_tags(self, item_id: int, tag_names: Sequence[str], source: str = "llm") -> int:
        """Add tags to an item and persist them in one transaction

        Tags the item already carries are skipped.

        Returns:
            Number of tags actually added
        """
        ...

    def get_library_tags(self, library_id: int) -> List[str]:
        """Distinct tag vocabulary of a library"""
        ...

    def get_full_text(self, item_id: int, attachment_id: Optional[int] = None) -> str:
        """Stored full text for an item's attachments (empty if none)"""
        ...

    def get_collection_items(self, collection_id: int) -> List[LibraryItem]:
        """Items in a collection"""
        ...
