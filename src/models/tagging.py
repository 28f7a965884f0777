"""
Data models related to LLM tagging
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple


class LLMTaggingError(RuntimeError):
    """LLM tagging error"""
    pass


class TaggingPreconditionError(LLMTaggingError):
    """An item cannot be tagged; raised before any network call"""
    pass


class BatchState(Enum):
    """Batch run lifecycle"""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


TAG_SOURCE_EXISTING = "existing"
TAG_SOURCE_NEW = "new"

# Output budget for one suggestion call
SUGGESTION_MAX_TOKENS = 1000


def _clamp(value: Any, default: float, low: float, high: float, cast=float):
    try:
        value = cast(value)
    except (TypeError, ValueError):
        value = cast(default)
    return max(low, min(high, value))


@dataclass(frozen=True)
class TaggingSettings:
    """Tagging behavior and pacing, read from the `ai_tagger.*` config keys"""
    tag_source: str = TAG_SOURCE_EXISTING
    max_tags: int = 8
    temperature: float = 0.1
    include_full_text: bool = True
    max_full_text_length: int = 12000
    tag_prefix_filter: str = "_"
    system_prompt: str = ""
    confirm_before_apply: bool = False
    concurrency: int = 3
    request_interval_ms: int = 1000

    @property
    def existing_only(self) -> bool:
        return self.tag_source == TAG_SOURCE_EXISTING

    @property
    def request_interval_seconds(self) -> float:
        return self.request_interval_ms / 1000.0

    @staticmethod
    def from_config(config: Any) -> "TaggingSettings":
        """Create settings from the configuration service, clamping out-of-range values."""
        tag_source = str(config.get("ai_tagger.tag_source", TAG_SOURCE_EXISTING)).strip().lower()
        if tag_source not in (TAG_SOURCE_EXISTING, TAG_SOURCE_NEW):
            tag_source = TAG_SOURCE_EXISTING

        return TaggingSettings(
            tag_source=tag_source,
            max_tags=_clamp(config.get("ai_tagger.max_tags", 8), 8, 1, 50, int),
            temperature=_clamp(config.get("ai_tagger.temperature", 0.1), 0.1, 0.0, 2.0),
            include_full_text=bool(config.get("ai_tagger.include_full_text", True)),
            max_full_text_length=_clamp(
                config.get("ai_tagger.max_full_text_length", 12000), 12000, 1, 1_000_000, int
            ),
            tag_prefix_filter=str(config.get("ai_tagger.tag_prefix_filter", "_") or ""),
            system_prompt=str(config.get("ai_tagger.system_prompt", "") or ""),
            confirm_before_apply=bool(config.get("ai_tagger.confirm_before_apply", False)),
            concurrency=_clamp(config.get("ai_tagger.concurrency", 3), 3, 1, 20, int),
            request_interval_ms=_clamp(
                config.get("ai_tagger.request_interval_ms", 1000), 1000, 0, 60000, int
            ),
        )


@dataclass(frozen=True)
class ChatMessage:
    """A role-tagged chat message ('system' | 'user' | 'assistant')"""
    role: str
    content: str

    def to_dict(self) -> Dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass(frozen=True)
class CompletionRequest:
    """Request envelope for a single completion call"""
    messages: Tuple[ChatMessage, ...]
    temperature: float = 0.1
    max_tokens: int = 1000
    response_format: Optional[Dict[str, Any]] = None


@dataclass(frozen=True)
class CompletionResult:
    """Raw completion payload plus provider metadata"""
    content: str
    model: str = ""
    finish_reason: str = ""
    usage: Optional[Dict[str, int]] = None


@dataclass(frozen=True)
class SuggestionRecord:
    """
    Result of tagging one item.

    Created once per item per run and never mutated; use `with_applied`
    and `with_error` to derive updated copies.
    """
    item_id: int
    title: str
    suggested_tags: Tuple[str, ...] = ()
    applied_tags: Tuple[str, ...] = ()
    reasoning: str = ""
    error: Optional[str] = None

    @classmethod
    def failure(cls, item_id: int, title: str, error: str) -> "SuggestionRecord":
        return cls(item_id=item_id, title=title, error=error)

    @property
    def status(self) -> str:
        """error | no_new_tags | suggested | applied"""
        if self.error:
            return "error"
        if self.applied_tags:
            return "applied"
        if not self.suggested_tags:
            return "no_new_tags"
        return "suggested"

    def with_applied(self, tags: Sequence[str]) -> "SuggestionRecord":
        return replace(self, applied_tags=tuple(tags))

    def with_error(self, error: str) -> "SuggestionRecord":
        return replace(self, error=error)


@dataclass(frozen=True)
class BatchProgress:
    """Immutable snapshot of a batch run"""
    total: int
    current: int = 0
    skipped: int = 0
    results: Tuple[SuggestionRecord, ...] = field(default_factory=tuple)
    cancelled: bool = False

    @property
    def applied_tag_count(self) -> int:
        return sum(len(r.applied_tags) for r in self.results)

    @property
    def error_count(self) -> int:
        return sum(1 for r in self.results if r.error)

    @property
    def percent(self) -> int:
        if self.total == 0:
            return 100
        return round(self.current * 100 / self.total)

    def summary(self) -> str:
        """One-line report for the end of a run."""
        if self.cancelled:
            return f"Cancelled: processed {self.current} of {self.total}"
        text = f"Done: {self.applied_tag_count} tags added across {self.current} items"
        if self.error_count:
            text += f" ({self.error_count} errors)"
        return text

    def errors(self) -> List[SuggestionRecord]:
        return [r for r in self.results if r.error]
