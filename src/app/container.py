# -*- coding: utf-8 -*-
"""
Application Container Module

Defines the dependency container for the application, holding all service instances centrally.

Design Principles:
- Only the entry point (CLI) holds the complete AppContainer
- Collaborators receive the individual services they need, never the container
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from app.protocols import IConfigService, ITaggingService
    from core.ports.database import IDatabase
    from core.ports.library import ILibraryStore


@dataclass
class AppContainer:
    """Application Dependency Container

    Holds all service instances centrally, serving as the composition root for dependency injection.

    `tagging` is None when the completion client could not be created
    (typically a missing API key); `tagging_error` then says why.

    Usage Example:
        container = AppContainerFactory.create()
        try:
            run = container.require_tagging().tag_items([1, 2, 3])
            print(run.result().summary())
        finally:
            container.cleanup()
    """

    config: "IConfigService"
    db: "IDatabase"
    library: "ILibraryStore"
    tagging: Optional["ITaggingService"] = None
    tagging_error: Optional[str] = None

    # === Internal Service References ===
    _confirmation_gate: Any = field(default=None, repr=False)

    @property
    def confirmation_gate(self) -> Any:
        return self._confirmation_gate

    def require_tagging(self) -> "ITaggingService":
        """Tagging service, or a RuntimeError explaining why it is unavailable."""
        if self.tagging is None:
            raise RuntimeError(self.tagging_error or "LLM tagging service is not available")
        return self.tagging

    def cleanup(self) -> None:
        """Clean up all resources

        Should be called when the application exits.
        """
        if self.db and hasattr(self.db, 'close'):
            self.db.close()
