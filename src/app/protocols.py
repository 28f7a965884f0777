# -*- coding: utf-8 -*-
"""
Protocols Definition Module

Defines the interface protocols (Protocol) for the services held by the
application container. Uses Protocol instead of ABC to support structural
subtyping checks.

Design Decisions:
- Default to using Protocol + @runtime_checkable
- ABC is only used for base classes that share default implementations (e.g., LLMProvider)
- Runtime checks are performed as one-time assertions during container assembly or testing
"""

from __future__ import annotations

from typing import (
    TYPE_CHECKING,
    Any,
    Callable,
    Optional,
    Protocol,
    Sequence,
    runtime_checkable,
)

if TYPE_CHECKING:
    from models.tagging import BatchProgress, SuggestionRecord, TaggingSettings
    from services.llm_tagging_batch_processor import BatchRun


# =============================================================================
# Configuration Service Protocol
# =============================================================================

@runtime_checkable
class IConfigService(Protocol):
    """Configuration Service Interface"""

    def get(self, key: str, default: Any = None) -> Any:
        """Get a configuration value by dot path

        Args:
            key: e.g. "ai_tagger.max_tags"
            default: Returned when the key is missing
        """
        ...

    def set(self, key: str, value: Any) -> None:
        """Set a configuration value by dot path"""
        ...

    def save(self) -> bool:
        """Persist the user configuration"""
        ...


# =============================================================================
# Tagging Service Protocol
# =============================================================================

@runtime_checkable
class ITaggingService(Protocol):
    """LLM Tagging Service Interface"""

    @property
    def settings(self) -> "TaggingSettings":
        ...

    def tag_items(
        self,
        item_ids: Sequence[int],
        progress_callback: Optional[Callable[["BatchProgress"], None]] = None,
        confirm: Optional[Callable[["SuggestionRecord"], Any]] = None,
    ) -> "BatchRun":
        ...

    def tag_collection(
        self,
        collection_id: int,
        progress_callback: Optional[Callable[["BatchProgress"], None]] = None,
        confirm: Optional[Callable[["SuggestionRecord"], Any]] = None,
    ) -> "BatchRun":
        ...

    def suggest(self, item_id: int) -> "SuggestionRecord":
        ...

    def apply(self, item_id: int, tags: Sequence[str]) -> int:
        ...

    def test_connection(self) -> str:
        ...
