"""
Library Service Module

SQLite-backed reference library: items, creators, attachments with stored
full text, tags and collections. Implements the library store port used by
the tagging pipeline.
"""

from typing import Dict, List, Optional, Sequence
from datetime import datetime
import logging

from core.database import DatabaseManager
from models.library_item import Attachment, Creator, LibraryItem
from models.tag import Tag

logger = logging.getLogger(__name__)

# Extracted texts at or below this length are treated as missing
MIN_FULL_TEXT_LENGTH = 100


class LibraryStoreError(RuntimeError):
    """Library store error"""
    pass


class LibraryService:
    """
    Library Service

    Usage example:
        library = LibraryService(db)

        item_id = library.add_item(title="Quantum Effects in X", tags=["physics"])
        library.add_item_tags(item_id, ["quantum"], source="llm")

        item = library.get_item(item_id)
        print(item.tags)
    """

    def __init__(self, db: DatabaseManager):
        self._db = db

    # ========== Items ==========

    def create_library(self, name: str, library_id: Optional[int] = None) -> int:
        data: Dict[str, object] = {"name": name}
        if library_id is not None:
            data["id"] = library_id
        return self._db.insert("libraries", data)

    def add_item(
        self,
        title: str = "",
        item_type: str = "journalArticle",
        library_id: int = 1,
        parent_id: Optional[int] = None,
        creators: Optional[Sequence[Creator]] = None,
        tags: Optional[Sequence[str]] = None,
        **fields: str,
    ) -> int:
        """
        Add an item with its creators and (user) tags.

        Args:
            fields: Any of publication_title, date, abstract, doi, url, extra

        Returns:
            New item ID
        """
        allowed = {"publication_title", "date", "abstract", "doi", "url", "extra"}
        unknown = set(fields) - allowed
        if unknown:
            raise LibraryStoreError(f"Unknown item fields: {', '.join(sorted(unknown))}")

        with self._db.transaction():
            data: Dict[str, object] = {
                "library_id": library_id,
                "item_type": item_type,
                "parent_id": parent_id,
                "title": title,
            }
            data.update(fields)
            item_id = self._db.insert("items", data)

            for position, creator in enumerate(creators or []):
                self._db.insert("item_creators", {
                    "item_id": item_id,
                    "position": position,
                    "first_name": creator.first_name,
                    "last_name": creator.last_name,
                })

            for name in tags or []:
                self._link_tag(item_id, library_id, name, "user")

        return item_id

    def add_attachment(
        self,
        parent_id: int,
        content_type: str,
        full_text: str = "",
        file_path: Optional[str] = None,
        title: str = "",
    ) -> int:
        """Add an attachment item under `parent_id` and store its text."""
        parent = self._db.fetch_one("SELECT library_id FROM items WHERE id = ?", (parent_id,))
        if not parent:
            raise LibraryStoreError(f"Parent item not found: {parent_id}")

        with self._db.transaction():
            item_id = self._db.insert("items", {
                "library_id": parent["library_id"],
                "item_type": "attachment",
                "parent_id": parent_id,
                "title": title,
            })
            self._db.insert("attachments", {
                "item_id": item_id,
                "content_type": content_type,
                "file_path": file_path,
                "full_text": full_text,
            })
        return item_id

    def get_item(self, item_id: int) -> Optional[LibraryItem]:
        row = self._db.fetch_one("SELECT * FROM items WHERE id = ?", (item_id,))
        if not row:
            return None
        return self._row_to_item(row)

    def get_items_by_ids(self, item_ids: Sequence[int]) -> List[LibraryItem]:
        """Look up several items, preserving order; unknown IDs are skipped."""
        items = []
        for item_id in item_ids:
            item = self.get_item(item_id)
            if item is None:
                logger.warning("Item not found: %s", item_id)
                continue
            items.append(item)
        return items

    def get_attachments(self, parent_id: int) -> List[Attachment]:
        rows = self._db.fetch_all(
            """
            SELECT a.item_id, i.parent_id, a.content_type, a.full_text
            FROM attachments a
            INNER JOIN items i ON i.id = a.item_id
            WHERE i.parent_id = ?
            ORDER BY a.item_id
            """,
            (parent_id,)
        )
        return [self._row_to_attachment(row) for row in rows]

    def get_attachment(self, attachment_id: int) -> Optional[Attachment]:
        row = self._db.fetch_one(
            """
            SELECT a.item_id, i.parent_id, a.content_type, a.full_text
            FROM attachments a
            INNER JOIN items i ON i.id = a.item_id
            WHERE a.item_id = ?
            """,
            (attachment_id,)
        )
        return self._row_to_attachment(row) if row else None

    def get_full_text(self, item_id: int, attachment_id: Optional[int] = None) -> str:
        """
        Stored full text for an item.

        When `attachment_id` is given only that attachment is considered,
        otherwise all of the item's attachments are. The first PDF text wins;
        an HTML snapshot text is used only when no PDF text is found. Texts of
        MIN_FULL_TEXT_LENGTH characters or fewer are ignored.
        """
        if attachment_id is not None:
            attachment = self.get_attachment(attachment_id)
            attachments = [attachment] if attachment else []
        else:
            attachments = self.get_attachments(item_id)

        text = ""
        for attachment in attachments:
            candidate = attachment.full_text or ""
            if len(candidate) <= MIN_FULL_TEXT_LENGTH:
                continue
            if attachment.is_pdf:
                return candidate
            if attachment.is_snapshot:
                text = candidate
        return text

    # ========== Tags ==========

    def get_item_tags(self, item_id: int) -> List[str]:
        rows = self._db.fetch_all(
            """
            SELECT t.name FROM tags t
            INNER JOIN item_tags it ON t.id = it.tag_id
            WHERE it.item_id = ?
            ORDER BY t.name
            """,
            (item_id,)
        )
        return [row["name"] for row in rows]

    def get_library_tags(self, library_id: int) -> List[str]:
        rows = self._db.fetch_all(
            "SELECT DISTINCT name FROM tags WHERE library_id = ? ORDER BY name",
            (library_id,)
        )
        return [row["name"] for row in rows]

    def get_tags(self, library_id: int = 1, source: Optional[str] = None) -> List[Tag]:
        """Tag objects of a library, optionally only those from one source."""
        if source:
            rows = self._db.fetch_all(
                "SELECT * FROM tags WHERE library_id = ? AND source = ? ORDER BY name",
                (library_id, source)
            )
        else:
            rows = self._db.fetch_all(
                "SELECT * FROM tags WHERE library_id = ? ORDER BY name",
                (library_id,)
            )
        return [Tag.from_dict(row) for row in rows]

    def add_item_tags(self, item_id: int, tag_names: Sequence[str], source: str = "llm") -> int:
        """
        Add tags to an item in one transaction.

        Missing tags are created in the item's library with the given source.
        Tags the item already carries are left alone, so repeating the call
        changes nothing.

        Returns:
            Number of tags actually added

        Raises:
            LibraryStoreError: If the item does not exist
        """
        with self._db.transaction():
            row = self._db.fetch_one("SELECT library_id FROM items WHERE id = ?", (item_id,))
            if not row:
                raise LibraryStoreError(f"Item not found: {item_id}")

            added = 0
            for name in tag_names:
                if self._link_tag(item_id, row["library_id"], name, source):
                    added += 1

            if added:
                self._db.execute(
                    "UPDATE items SET modified_at = ? WHERE id = ?",
                    (datetime.now().isoformat(), item_id)
                )

        return added

    def _link_tag(self, item_id: int, library_id: int, name: str, source: str) -> bool:
        name = name.strip()
        if not name:
            return False

        tag_id = self._ensure_tag(library_id, name, source)
        cursor = self._db.execute(
            "INSERT OR IGNORE INTO item_tags (item_id, tag_id, created_at) VALUES (?, ?, ?)",
            (item_id, tag_id, datetime.now().isoformat()),
        )
        return cursor.rowcount > 0

    def _ensure_tag(self, library_id: int, name: str, source: str) -> str:
        row = self._db.fetch_one(
            "SELECT id FROM tags WHERE library_id = ? AND name = ?",
            (library_id, name)
        )
        if row:
            return row["id"]

        tag = Tag(name=name, library_id=library_id, source=source)
        self._db.insert("tags", {
            "id": tag.id,
            "library_id": tag.library_id,
            "name": tag.name,
            "source": tag.source,
            "created_at": tag.created_at.isoformat(),
        })
        logger.debug("Created tag %r in library %s (%s)", name, library_id, source)
        return tag.id

    # ========== Collections ==========

    def create_collection(self, name: str, library_id: int = 1) -> int:
        return self._db.insert("collections", {"name": name, "library_id": library_id})

    def add_to_collection(self, collection_id: int, item_ids: Sequence[int]) -> None:
        with self._db.transaction():
            for item_id in item_ids:
                self._db.execute(
                    "INSERT OR IGNORE INTO collection_items (collection_id, item_id) VALUES (?, ?)",
                    (collection_id, item_id),
                )

    def get_collection_items(self, collection_id: int) -> List[LibraryItem]:
        rows = self._db.fetch_all(
            """
            SELECT i.* FROM items i
            INNER JOIN collection_items ci ON ci.item_id = i.id
            WHERE ci.collection_id = ?
            ORDER BY i.id
            """,
            (collection_id,)
        )
        return [self._row_to_item(row) for row in rows]

    # ========== Row mapping ==========

    def _row_to_item(self, row: dict) -> LibraryItem:
        creator_rows = self._db.fetch_all(
            "SELECT first_name, last_name FROM item_creators WHERE item_id = ? ORDER BY position",
            (row["id"],)
        )
        creators = [
            Creator(first_name=c["first_name"] or "", last_name=c["last_name"] or "")
            for c in creator_rows
        ]
        return LibraryItem.from_row(row, creators, self.get_item_tags(row["id"]))

    @staticmethod
    def _row_to_attachment(row: dict) -> Attachment:
        return Attachment(
            id=row["item_id"],
            parent_id=row.get("parent_id"),
            content_type=row.get("content_type") or "",
            full_text=row.get("full_text") or "",
        )
