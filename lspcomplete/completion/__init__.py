"""Completion engine: triggering, request lifecycle, normalization."""
from .coordinator import CompletionCoordinator
from .manual import ABORT, RETRY
from .normalizer import CompletionResult, Suggestion, SuggestionKind

__all__ = [
    'CompletionCoordinator',
    'CompletionResult',
    'Suggestion',
    'SuggestionKind',
    'ABORT',
    'RETRY',
]
