"""
Database Schema Definitions

Contains all table structure and index definitions.
"""

from __future__ import annotations

# Table structure SQL statements
TABLE_STATEMENTS = [
    # Libraries table
    """
    CREATE TABLE IF NOT EXISTS libraries (
        id INTEGER PRIMARY KEY,
        name TEXT NOT NULL,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    """,

    # Items table (documents, attachments, notes)
    """
    CREATE TABLE IF NOT EXISTS items (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        library_id INTEGER NOT NULL DEFAULT 1,
        item_type TEXT NOT NULL DEFAULT 'journalArticle',
        parent_id INTEGER,
        title TEXT DEFAULT '',
        publication_title TEXT DEFAULT '',
        date TEXT DEFAULT '',
        abstract TEXT DEFAULT '',
        doi TEXT DEFAULT '',
        url TEXT DEFAULT '',
        extra TEXT DEFAULT '',
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        modified_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        FOREIGN KEY (parent_id) REFERENCES items(id) ON DELETE CASCADE
    )
    """,

    # Item creators, ordered by position
    """
    CREATE TABLE IF NOT EXISTS item_creators (
        item_id INTEGER NOT NULL,
        position INTEGER NOT NULL,
        first_name TEXT DEFAULT '',
        last_name TEXT DEFAULT '',
        PRIMARY KEY (item_id, position),
        FOREIGN KEY (item_id) REFERENCES items(id) ON DELETE CASCADE
    )
    """,

    # Attachment files and the text already extracted from them
    """
    CREATE TABLE IF NOT EXISTS attachments (
        item_id INTEGER PRIMARY KEY,
        content_type TEXT DEFAULT '',
        file_path TEXT,
        full_text TEXT DEFAULT '',
        FOREIGN KEY (item_id) REFERENCES items(id) ON DELETE CASCADE
    )
    """,

    # Tags table
    """
    CREATE TABLE IF NOT EXISTS tags (
        id TEXT PRIMARY KEY,
        library_id INTEGER NOT NULL DEFAULT 1,
        name TEXT NOT NULL,
        source TEXT DEFAULT 'user',
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        UNIQUE (library_id, name)
    )
    """,

    # Item-tag relation table
    """
    CREATE TABLE IF NOT EXISTS item_tags (
        item_id INTEGER NOT NULL,
        tag_id TEXT NOT NULL,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        PRIMARY KEY (item_id, tag_id),
        FOREIGN KEY (item_id) REFERENCES items(id) ON DELETE CASCADE,
        FOREIGN KEY (tag_id) REFERENCES tags(id) ON DELETE CASCADE
    )
    """,

    # Collections
    """
    CREATE TABLE IF NOT EXISTS collections (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        library_id INTEGER NOT NULL DEFAULT 1,
        name TEXT NOT NULL,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    """,

    # Collection-item relation table
    """
    CREATE TABLE IF NOT EXISTS collection_items (
        collection_id INTEGER NOT NULL,
        item_id INTEGER NOT NULL,
        PRIMARY KEY (collection_id, item_id),
        FOREIGN KEY (collection_id) REFERENCES collections(id) ON DELETE CASCADE,
        FOREIGN KEY (item_id) REFERENCES items(id) ON DELETE CASCADE
    )
    """,
]

# Index SQL statements
INDEX_STATEMENTS = [
    "CREATE INDEX IF NOT EXISTS idx_items_library ON items(library_id)",
    "CREATE INDEX IF NOT EXISTS idx_items_parent ON items(parent_id)",
    "CREATE INDEX IF NOT EXISTS idx_item_tags_item ON item_tags(item_id)",
    "CREATE INDEX IF NOT EXISTS idx_item_tags_tag ON item_tags(tag_id)",
    "CREATE INDEX IF NOT EXISTS idx_tags_library_name ON tags(library_id, name)",
    "CREATE INDEX IF NOT EXISTS idx_tags_source ON tags(source)",
    "CREATE INDEX IF NOT EXISTS idx_collection_items_item ON collection_items(item_id)",
]


def get_all_schema_statements() -> list:
    """Get all schema statements (tables + indexes)"""
    return TABLE_STATEMENTS + INDEX_STATEMENTS
