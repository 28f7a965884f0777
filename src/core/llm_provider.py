"""
LLM Provider Abstraction Layer

Defines the completion client interface used by the tagging pipeline, the
request error hierarchy, and the structured-output fallback shared by all
providers.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Optional

from models.tagging import ChatMessage, CompletionRequest, CompletionResult

logger = logging.getLogger(__name__)


# Appended to the last user message when the provider rejects json_schema.
JSON_FALLBACK_INSTRUCTION = (
    "\n\nIMPORTANT: You must respond with ONLY a valid JSON object, no other text. "
    'The JSON must have this exact structure: { "tags": ["tag1", "tag2"], "reasoning": "explanation" }'
)

# Error text fragments that mean "structured output is not available here".
CAPABILITY_MARKERS = ("response_format", "json_schema", "not supported")


class LLMProviderError(RuntimeError):
    """Base class for LLM provider errors"""
    pass


class TransientNetworkError(LLMProviderError):
    """Timeouts, connection failures, 429 and 5xx responses (retryable)"""
    pass


class TerminalRequestError(LLMProviderError):
    """Non-retryable HTTP failure (4xx other than 429)"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class CapabilityMismatchError(TerminalRequestError):
    """The provider rejected the structured-output schema"""
    pass


def mentions_capability_mismatch(message: str) -> bool:
    """Check whether an error message points at missing schema support."""
    return any(marker in message for marker in CAPABILITY_MARKERS)


def compute_backoff_seconds(attempt: int) -> float:
    """Exponential backoff for a 0-based attempt: min(1s * 2^attempt, 30s)."""
    return min(1000 * (2 ** attempt), 30000) / 1000.0


@dataclass(frozen=True)
class LLMSettings:
    """Generic LLM Settings Base Class

    Attributes:
        api_key: API key
        model: Model name
        timeout_seconds: Request timeout in seconds
        max_retries: Retries after the first attempt for retryable failures
        extra: Provider-specific additional configurations
    """
    api_key: str
    model: str
    timeout_seconds: float = 60.0
    max_retries: int = 3
    extra: Dict[str, Any] = field(default_factory=dict)


class LLMProvider(ABC):
    """LLM Provider Abstract Interface

    All completion clients implement `complete` and `test_connection`;
    the structured-output fallback is shared.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider identifier (e.g., 'openai', 'custom')"""
        ...

    @property
    @abstractmethod
    def settings(self) -> LLMSettings:
        """Current settings"""
        ...

    @abstractmethod
    def complete(
        self,
        request: CompletionRequest,
        max_retries: Optional[int] = None,
        use_structured_output: bool = True,
    ) -> CompletionResult:
        """Execute a chat completion request

        Args:
            request: Messages, sampling parameters and optional response_format
            max_retries: Retry budget; defaults to the provider settings
            use_structured_output: Whether to send the response_format

        Returns:
            The completion result

        Raises:
            LLMProviderError: When the call fails after all retries
        """
        ...

    @abstractmethod
    def test_connection(self) -> str:
        """Send one minimal request and return the reported model name

        Raises:
            LLMProviderError: With the HTTP status and message on failure
        """
        ...

    def complete_with_fallback(self, request: CompletionRequest) -> CompletionResult:
        """Try structured output first, fall back to prompt-based JSON.

        Only errors that name the schema capability trigger the fallback;
        everything else propagates unchanged.
        """
        try:
            return self.complete(request, use_structured_output=True)
        except LLMProviderError as e:
            if not (
                isinstance(e, CapabilityMismatchError)
                or mentions_capability_mismatch(str(e))
            ):
                raise
            logger.info(
                "%s: structured output not supported, falling back to prompt-based JSON",
                self.name,
            )

        messages = list(request.messages)
        if messages and messages[-1].role == "user":
            last = messages[-1]
            messages[-1] = ChatMessage(
                role=last.role, content=last.content + JSON_FALLBACK_INSTRUCTION
            )

        fallback = replace(request, messages=tuple(messages), response_format=None)
        return self.complete(fallback, use_structured_output=False)
