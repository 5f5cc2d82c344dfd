"""Decides whether a confirmed keystroke starts an automatic request."""

from __future__ import annotations

from typing import AbstractSet

from lspcomplete.completion.columns import is_word_char
from lspcomplete.host import EditorState
from lspcomplete.lsp.registry import ServerRegistry


class TriggerClassifier:
    def __init__(self, registry: ServerRegistry, min_chars: int | None = 3) -> None:
        self.registry = registry
        self.min_chars = min_chars

    def is_trigger(self, char: str, buffer_type: str) -> bool:
        """True if any active server for the buffer type declares ``char``."""
        return bool(char) and char in self.registry.trigger_characters(buffer_type)

    def is_eligible(self, char: str, state: EditorState) -> bool:
        """
        Word-length part of the heuristic.

        The typed character is a word character and the ``min_chars``
        characters before the cursor are all word characters.
        """
        if not self.min_chars:
            return False
        if not is_word_char(char):
            return False
        if state.column < self.min_chars + 1:
            return False
        before = state.text_before_cursor[-self.min_chars :]
        return len(before) == self.min_chars and all(is_word_char(c) for c in before)

    def is_completable(
        self, char: str, state: EditorState, waiting: AbstractSet[str]
    ) -> bool:
        """Heuristic trigger, only while no request is outstanding for the type."""
        if state.buffer_type in waiting:
            return False
        return self.is_eligible(char, state)
