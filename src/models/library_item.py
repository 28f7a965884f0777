"""
Library item data model

Documents, attachments and their creators as stored in the reference library.
"""

from dataclasses import dataclass, field
from typing import List, Optional


# Item types that are never tagged directly
NON_REGULAR_TYPES = {"attachment", "note", "annotation"}


@dataclass
class Creator:
    """Author/editor of a library item"""

    first_name: str = ""
    last_name: str = ""

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


@dataclass
class LibraryItem:
    """
    Library item data model

    Represents a document record (or an attachment/note belonging to one).

    Attributes:
        id: Item identifier
        library_id: Owning library
        item_type: e.g. "journalArticle", "book", "attachment"
        parent_id: Parent item for attachments and notes
        tags: Current tag names
    """

    id: int = 0
    library_id: int = 1
    item_type: str = "journalArticle"
    title: str = ""
    creators: List[Creator] = field(default_factory=list)
    publication_title: str = ""
    date: str = ""
    abstract: str = ""
    doi: str = ""
    url: str = ""
    extra: str = ""
    parent_id: Optional[int] = None
    tags: List[str] = field(default_factory=list)

    @property
    def is_attachment(self) -> bool:
        return self.item_type == "attachment"

    @property
    def is_regular(self) -> bool:
        """Top-level document that can carry tags"""
        return self.item_type not in NON_REGULAR_TYPES

    @property
    def display_title(self) -> str:
        return self.title or "(untitled)"

    @property
    def creators_str(self) -> str:
        return "; ".join(c.full_name for c in self.creators)

    def to_dict(self) -> dict:
        """Convert to dictionary"""
        return {
            'id': self.id,
            'library_id': self.library_id,
            'item_type': self.item_type,
            'title': self.title,
            'creators': [
                {'first_name': c.first_name, 'last_name': c.last_name}
                for c in self.creators
            ],
            'publication_title': self.publication_title,
            'date': self.date,
            'abstract': self.abstract,
            'doi': self.doi,
            'url': self.url,
            'extra': self.extra,
            'parent_id': self.parent_id,
            'tags': list(self.tags),
        }

    @classmethod
    def from_row(cls, row: dict, creators: Optional[List[Creator]] = None,
                 tags: Optional[List[str]] = None) -> 'LibraryItem':
        """Create an item from an `items` table row"""
        return cls(
            id=row['id'],
            library_id=row.get('library_id', 1),
            item_type=row.get('item_type') or 'journalArticle',
            title=row.get('title') or '',
            creators=list(creators or []),
            publication_title=row.get('publication_title') or '',
            date=row.get('date') or '',
            abstract=row.get('abstract') or '',
            doi=row.get('doi') or '',
            url=row.get('url') or '',
            extra=row.get('extra') or '',
            parent_id=row.get('parent_id'),
            tags=list(tags or []),
        )


@dataclass
class Attachment:
    """File attached to an item, with whatever text the library has stored for it"""

    id: int = 0
    parent_id: Optional[int] = None
    content_type: str = ""
    full_text: str = ""

    @property
    def is_pdf(self) -> bool:
        return self.content_type == "application/pdf"

    @property
    def is_snapshot(self) -> bool:
        return self.content_type == "text/html"
