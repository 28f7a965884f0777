# -*- coding: utf-8 -*-
"""
Ports Interfaces Package

Defines the interfaces between the tagging pipeline and external infrastructure
(database, library store, LLM).

Design Principles:
- Use Protocol to define interfaces, supporting structural subtyping.
- Service layer depends on these interfaces rather than concrete implementations.
- Facilitates replacing with fake/mock during testing.
"""

from core.ports.database import IDatabase
from core.ports.library import ILibraryStore
from core.ports.llm import ICompletionClient

__all__ = [
    "IDatabase",
    "ILibraryStore",
    "ICompletionClient",
]
