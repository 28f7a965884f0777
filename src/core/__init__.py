"""
AI Tagger Core Module
"""

from .database import DatabaseManager
from .llm_provider import (
    LLMProvider,
    LLMSettings,
    LLMProviderError,
    TransientNetworkError,
    TerminalRequestError,
    CapabilityMismatchError,
)

__all__ = [
    'DatabaseManager',
    'LLMProvider',
    'LLMSettings',
    'LLMProviderError',
    'TransientNetworkError',
    'TerminalRequestError',
    'CapabilityMismatchError',
]
