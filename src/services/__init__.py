"""
Service Layer Module
"""

from .config_service import ConfigService
from .library_service import LibraryService, LibraryStoreError
from .llm_tagging_engine import LLMTaggingEngine
from .llm_tagging_batch_processor import BatchRun, LLMTaggingBatchProcessor
from .llm_tagging_service import LLMTaggingService
from .confirmation_service import ConfirmationGate, ConsoleConfirmationGate

# LLM provider modules
from .llm_providers import (
    OpenAICompatibleProvider,
    OpenAISettings,
    create_llm_provider,
    AVAILABLE_PROVIDERS,
)

__all__ = [
    'ConfigService',
    'LibraryService',
    'LibraryStoreError',
    'LLMTaggingEngine',
    'BatchRun',
    'LLMTaggingBatchProcessor',
    'LLMTaggingService',
    'ConfirmationGate',
    'ConsoleConfirmationGate',
    # LLM providers
    'OpenAICompatibleProvider',
    'OpenAISettings',
    'create_llm_provider',
    'AVAILABLE_PROVIDERS',
]
