"""
LLM Tagging Engine Module

Responsible for constructing tag suggestion requests for a single library
item and turning the model's answer into a suggestion record.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from core.ports.library import ILibraryStore
from core.ports.llm import ICompletionClient
from models.library_item import LibraryItem
from models.tagging import (
    SUGGESTION_MAX_TOKENS,
    ChatMessage,
    CompletionRequest,
    SuggestionRecord,
    TaggingPreconditionError,
    TaggingSettings,
)
from services.config_service import DEFAULT_SYSTEM_PROMPT
from services.llm_response_parser import filter_new_tags, parse_tag_suggestion

logger = logging.getLogger(__name__)

TRUNCATION_MARKER = "...[truncated]"


def truncate_text(text: str, max_length: int) -> str:
    """Cut text to max_length characters, marking the cut."""
    if len(text) > max_length:
        return text[:max_length] + TRUNCATION_MARKER
    return text


def filter_vocabulary(names: Sequence[Any], excluded_prefix: str) -> List[str]:
    """Drop empty, non-string and excluded-prefix tags; sort the rest."""
    result = set()
    for name in names:
        if not name or not isinstance(name, str):
            continue
        if excluded_prefix and name.startswith(excluded_prefix):
            continue
        result.add(name)
    return sorted(result)


class LLMTaggingEngine:
    """
    LLM Tagging Engine

    Handles the LLM interaction logic for one item: vocabulary, prompt,
    schema, completion call, parsing and filtering. `suggest` never raises;
    failures end up in the record's error field.
    """

    def __init__(
        self,
        client: ICompletionClient,
        store: ILibraryStore,
        settings: TaggingSettings,
    ):
        """
        Initialize the tagging engine.

        Args:
            client: Completion client
            store: Library store
            settings: Tagging settings
        """
        self._client = client
        self._store = store
        self._settings = settings

    @property
    def settings(self) -> TaggingSettings:
        return self._settings

    def suggest(self, item: LibraryItem) -> SuggestionRecord:
        """
        Suggest tags for one item without applying them.

        Args:
            item: The selected item (a regular item or an attachment)

        Returns:
            Suggestion record; `error` is set on any failure.
        """
        title = item.display_title
        try:
            target, source_attachment = self._resolve_target(item)
            return self._suggest_for(target, source_attachment)
        except Exception as e:
            logger.warning("Tag suggestion failed for item %s: %s", item.id, e)
            return SuggestionRecord.failure(item.id, title, str(e))

    def apply(self, item_id: int, tags: Sequence[str]) -> int:
        """
        Commit tags to an item.

        Nothing is written when `tags` is empty.

        Returns:
            Number of tags actually added
        """
        if not tags:
            return 0
        added = self._store.add_item_tags(item_id, list(tags), source="llm")
        logger.info("Applied %d new tag(s) to item %s", added, item_id)
        return added

    def _resolve_target(self, item: LibraryItem) -> Tuple[LibraryItem, Optional[int]]:
        """Map the selected item to the document that receives the tags."""
        if item.is_attachment:
            parent = self._store.get_item(item.parent_id) if item.parent_id else None
            if parent is None:
                raise TaggingPreconditionError(
                    "Standalone attachment without parent, cannot be tagged"
                )
            target, source_attachment = parent, item.id
        else:
            target, source_attachment = item, None

        if not target.is_regular:
            raise TaggingPreconditionError("Not a regular item")
        return target, source_attachment

    def _suggest_for(
        self, target: LibraryItem, source_attachment: Optional[int]
    ) -> SuggestionRecord:
        settings = self._settings

        available_tags = self.get_available_tags(target.library_id)
        if settings.existing_only and not available_tags:
            raise TaggingPreconditionError("No available tags found in library")

        full_text = ""
        if settings.include_full_text and settings.max_full_text_length > 0:
            full_text = truncate_text(
                self._store.get_full_text(target.id, source_attachment) or "",
                settings.max_full_text_length,
            )

        request = CompletionRequest(
            messages=(
                ChatMessage("system", settings.system_prompt or DEFAULT_SYSTEM_PROMPT),
                ChatMessage("user", self.build_prompt(target, full_text, available_tags)),
            ),
            temperature=settings.temperature,
            max_tokens=SUGGESTION_MAX_TOKENS,
            response_format=self.build_response_format(available_tags),
        )

        result = self._client.complete_with_fallback(request)
        tags, reasoning = parse_tag_suggestion(result.content)

        # Re-read at call time; other items in the batch may share this library
        current_tags = self._store.get_item_tags(target.id)
        allowed = set(available_tags) if settings.existing_only else None
        suggested = filter_new_tags(tags, current_tags, allowed)

        dropped = len(tags) - len(suggested)
        logger.debug("Item %s: %d suggested, %d filtered out", target.id, len(suggested), dropped)

        return SuggestionRecord(
            item_id=target.id,
            title=target.display_title,
            suggested_tags=tuple(suggested),
            reasoning=reasoning,
        )

    def get_available_tags(self, library_id: int) -> List[str]:
        """Library vocabulary minus excluded-prefix tags, sorted."""
        return filter_vocabulary(
            self._store.get_library_tags(library_id),
            self._settings.tag_prefix_filter,
        )

    def build_prompt(
        self,
        item: LibraryItem,
        full_text: str,
        available_tags: List[str],
    ) -> str:
        """Build the user prompt for one document."""
        max_tags = self._settings.max_tags
        prompt = (
            "Analyze this document and suggest relevant tags.\n\n"
            "DOCUMENT:\n"
            f"Title: {item.title}\n"
            f"Authors: {item.creators_str}\n"
            f"Type: {item.item_type}\n"
            f"Publication: {item.publication_title}\n"
            f"Date: {item.date}\n"
            f"Abstract: {item.abstract}\n"
            f"Current Tags: {', '.join(item.tags)}\n"
            f"DOI: {item.doi}\n"
            f"URL: {item.url}\n"
            f"Extra: {item.extra}"
        )

        if full_text:
            prompt += f"\n\nFULL TEXT CONTENT:\n{full_text}"
            basis = "Use both the metadata and full text content to make accurate suggestions."
        else:
            basis = "Base suggestions on the available metadata."

        if self._settings.existing_only:
            prompt += f"\n\nAVAILABLE TAGS TO CHOOSE FROM:\n{', '.join(available_tags)}"
            prompt += (
                f"\n\nPlease suggest up to {max_tags} relevant tags from the available list "
                f"that would categorize this document well. {basis} "
                "Only suggest tags that exist in the available list above."
            )
        else:
            if available_tags:
                prompt += f"\n\nEXISTING LIBRARY TAGS (for reference):\n{', '.join(available_tags)}"
            prompt += (
                f"\n\nPlease suggest up to {max_tags} relevant tags that would categorize "
                f"this document well. {basis} "
                "You may suggest existing tags from the list above or create new descriptive tags."
            )

        return prompt

    def build_response_format(self, available_tags: List[str]) -> Dict[str, Any]:
        """JSON schema for structured output; enumerates tags in existing-only mode."""
        if self._settings.existing_only:
            tag_item_schema: Dict[str, Any] = {"type": "string", "enum": list(available_tags)}
        else:
            tag_item_schema = {"type": "string"}

        return {
            "type": "json_schema",
            "json_schema": {
                "name": "tag_suggestions",
                "strict": True,
                "schema": {
                    "type": "object",
                    "properties": {
                        "tags": {
                            "type": "array",
                            "description": "List of suggested tags",
                            "items": tag_item_schema,
                        },
                        "reasoning": {
                            "type": "string",
                            "description": "Brief explanation of why these tags were chosen",
                        },
                    },
                    "required": ["tags", "reasoning"],
                    "additionalProperties": False,
                },
            },
        }
