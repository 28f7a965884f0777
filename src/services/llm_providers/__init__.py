"""
LLM Providers Module

Provides completion clients for OpenAI-compatible services.
"""

from .openai_provider import OpenAICompatibleProvider, OpenAISettings
from .provider_factory import create_llm_provider, AVAILABLE_PROVIDERS

__all__ = [
    'OpenAICompatibleProvider',
    'OpenAISettings',
    'create_llm_provider',
    'AVAILABLE_PROVIDERS',
]
