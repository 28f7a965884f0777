"""
Data Models Module
"""

from .library_item import LibraryItem, Creator, Attachment
from .tag import Tag
from .tagging import (
    BatchProgress,
    BatchState,
    ChatMessage,
    CompletionRequest,
    CompletionResult,
    LLMTaggingError,
    SuggestionRecord,
    TaggingPreconditionError,
    TaggingSettings,
)

__all__ = [
    'LibraryItem',
    'Creator',
    'Attachment',
    'Tag',
    'BatchProgress',
    'BatchState',
    'ChatMessage',
    'CompletionRequest',
    'CompletionResult',
    'LLMTaggingError',
    'SuggestionRecord',
    'TaggingPreconditionError',
    'TaggingSettings',
]
