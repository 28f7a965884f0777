"""
LLM Tagging Service (Facade Pattern)

Suggests and applies library tags with an LLM, one item or many at a time.

Coordinates the following sub-modules:
- LLMTaggingEngine: Per-item suggestion logic
- LLMTaggingBatchProcessor: Concurrent, paced, cancellable batch runs
- ConfirmationGate: Optional human approval before tags are written
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence, TYPE_CHECKING

from core.ports.library import ILibraryStore
from models.library_item import LibraryItem
from models.tagging import LLMTaggingError, SuggestionRecord, TaggingSettings
from services.config_service import ConfigService

from .llm_tagging_engine import LLMTaggingEngine
from .llm_tagging_batch_processor import (
    BatchRun,
    ConfirmCallback,
    LLMTaggingBatchProcessor,
    ProgressCallback,
)

if TYPE_CHECKING:
    from core.ports.llm import ICompletionClient
    from services.confirmation_service import ConfirmationGate

logger = logging.getLogger(__name__)


class LLMTaggingService:
    """
    LLM Tagging Service (Facade Pattern)

    Usage Example:
        tagging_service = LLMTaggingService(config, library_service)

        run = tagging_service.tag_items(
            [12, 13, 14],
            progress_callback=lambda p: print(f"{p.current}/{p.total}"),
        )
        print(run.result().summary())
    """

    def __init__(
        self,
        config: ConfigService,
        store: ILibraryStore,
        client: Optional["ICompletionClient"] = None,
        confirmation_gate: Optional["ConfirmationGate"] = None,
    ):
        """
        Initialize the LLM tagging service.

        Args:
            config: Configuration service
            store: Library store the tags are read from and written to
            client: Completion client (optional, created from config by default)
            confirmation_gate: Used when `ai_tagger.confirm_before_apply` is set
        """
        self._config = config
        self._store = store
        self._settings = TaggingSettings.from_config(config)
        self._confirmation_gate = confirmation_gate

        if client is not None:
            self._client = client
        else:
            from services.llm_providers import create_llm_provider
            self._client = create_llm_provider(config)

        self._engine = LLMTaggingEngine(self._client, self._store, self._settings)
        self._batch_processor = LLMTaggingBatchProcessor(self._engine, self._settings)

    @property
    def settings(self) -> TaggingSettings:
        return self._settings

    @property
    def client(self) -> "ICompletionClient":
        return self._client

    def tag_items(
        self,
        item_ids: Sequence[int],
        progress_callback: Optional[ProgressCallback] = None,
        confirm: Optional[ConfirmCallback] = None,
    ) -> BatchRun:
        """
        Start tagging the given items.

        Unknown IDs are logged and dropped.

        Returns:
            BatchRun handle (cancel / result)
        """
        items = self._store.get_items_by_ids(list(item_ids))
        if len(items) < len(item_ids):
            logger.warning("%d of %d item(s) not found", len(item_ids) - len(items), len(item_ids))
        return self._run(items, progress_callback, confirm)

    def tag_collection(
        self,
        collection_id: int,
        progress_callback: Optional[ProgressCallback] = None,
        confirm: Optional[ConfirmCallback] = None,
    ) -> BatchRun:
        """Start tagging every regular item in a collection."""
        items = [item for item in self._store.get_collection_items(collection_id) if item.is_regular]
        logger.info("Collection %s: %d regular item(s)", collection_id, len(items))
        return self._run(items, progress_callback, confirm)

    def suggest(self, item_id: int) -> SuggestionRecord:
        """Suggest tags for one item without applying them."""
        item = self._store.get_item(item_id)
        if item is None:
            raise LLMTaggingError(f"Item not found: {item_id}")
        return self._engine.suggest(item)

    def apply(self, item_id: int, tags: Sequence[str]) -> int:
        """Apply tags to one item; returns how many were new."""
        return self._engine.apply(item_id, tags)

    def test_connection(self) -> str:
        """
        Send a minimal request to the configured provider.

        Returns:
            Model name reported by the provider

        Raises:
            LLMProviderError: On any connection or request failure
        """
        return self._client.test_connection()

    def _run(
        self,
        items: List[LibraryItem],
        progress_callback: Optional[ProgressCallback],
        confirm: Optional[ConfirmCallback],
    ) -> BatchRun:
        if confirm is None and self._settings.confirm_before_apply:
            confirm = self._confirmation_gate
            if confirm is None:
                logger.warning("Confirmation requested but no confirmation gate configured")
        return self._batch_processor.run(items, on_progress=progress_callback, confirm=confirm)
