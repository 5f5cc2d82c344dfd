"""Narrowing of fetched suggestions against the typed prefix."""

from __future__ import annotations

import re
from typing import Pattern, Sequence

from lspcomplete.completion.normalizer import Suggestion


def _pattern(base: str) -> Pattern[str]:
    return re.compile(re.escape(base), re.IGNORECASE)


def matches(base: str, suggestion: Suggestion, pattern: Pattern[str] | None = None) -> bool:
    """Case-insensitive containment of ``base`` in the insertion text."""
    if pattern is None:
        pattern = _pattern(base)
    return pattern.search(suggestion.insert_text) is not None


def filter_suggestions(base: str, suggestions: Sequence[Suggestion]) -> list[Suggestion]:
    """
    Keep the suggestions whose insertion text contains ``base``.

    An empty base returns every suggestion, in the original order.
    """
    if not base:
        return list(suggestions)
    pattern = _pattern(base)
    return [s for s in suggestions if matches(base, s, pattern)]
