"""
Host editor surface.

The completion engine never talks to an editor directly. The editor
integration hands it ``EditorState`` snapshots with every event and
implements the small ``Host`` protocol for everything flowing back.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, Sequence

from lsprotocol.types import LogMessageParams

if TYPE_CHECKING:
    from lspcomplete.completion.normalizer import Suggestion


INSERT_MODE = "insert"
PASTE_MODE = "paste"


@dataclass(frozen=True)
class EditorState:
    """
    Snapshot of the buffer and cursor at the time of an editor event.

    Attributes:
        uri: Document URI of the buffer
        buffer_type: Language/filetype of the buffer (e.g. "python")
        lines: Buffer content split into lines, without line endings
        line: 1-based cursor line
        column: 1-based cursor column, counted in characters. The cursor
            sits before ``lines[line - 1][column - 1]``.
        version: Buffer change tick, bumped by the editor on every edit
        mode: Editor mode, "insert" when the user is typing
    """

    uri: str
    buffer_type: str
    lines: tuple[str, ...]
    line: int
    column: int
    version: int = 0
    mode: str = INSERT_MODE

    @property
    def line_text(self) -> str:
        if 1 <= self.line <= len(self.lines):
            return self.lines[self.line - 1]
        return ""

    @property
    def text_before_cursor(self) -> str:
        return self.line_text[: max(self.column - 1, 0)]

    @property
    def is_editing(self) -> bool:
        """Only plain insert mode permits automatic triggering."""
        return self.mode == INSERT_MODE


class Host(Protocol):
    """Callbacks the completion engine needs from the editor."""

    def current_state(self) -> EditorState:
        """Return a fresh snapshot of the active buffer."""
        ...

    def show_popup(
        self, start_column: int, suggestions: Sequence[Suggestion], options: str
    ) -> None:
        """Render the completion popup replacing text from start_column."""
        ...

    def window_log_message(self, params: LogMessageParams) -> None:
        """Append a message to the editor's log."""
        ...
