# -*- coding: utf-8 -*-
"""
LLM Provider Port Interface

Defines an abstract interface for completion clients, ensuring the tagging
engine does not depend on specific LLM implementations.
"""

from __future__ import annotations

from typing import Optional, Protocol, runtime_checkable

from models.tagging import CompletionRequest, CompletionResult


@runtime_checkable
class ICompletionClient(Protocol):
    """Completion Client Interface

    Current implementation: OpenAICompatibleProvider
    """

    @property
    def name(self) -> str:
        """Provider name (e.g., 'openai', 'custom')"""
        ...

    def complete(
        self,
        request: CompletionRequest,
        max_retries: Optional[int] = None,
        use_structured_output: bool = True,
    ) -> CompletionResult:
        """Execute a completion with retry/backoff

        Raises:
            LLMProviderError: When the API call fails
        """
        ...

    def complete_with_fallback(self, request: CompletionRequest) -> CompletionResult:
        """Execute a completion, dropping the schema if the provider rejects it"""
        ...

    def test_connection(self) -> str:
        """Validate endpoint and credentials

        Returns:
            The model identifier reported by the provider
        """
        ...
