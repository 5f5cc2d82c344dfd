"""
Translation between host and service text coordinates.

The host counts 1-based lines and 1-based character columns. The
analysis service counts 0-based lines and 0-based characters in the
negotiated position encoding (UTF-16 code units unless the server said
otherwise). ``PositionCodec`` from pygls does the unit conversion.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Sequence

from lsprotocol.types import Position
from pygls.workspace import PositionCodec

if TYPE_CHECKING:
    from lspcomplete.completion.normalizer import CompletionResult


WORD_CHAR = re.compile(r"\w")

DEFAULT_CODEC = PositionCodec()


def is_word_char(char: str) -> bool:
    return bool(char) and len(char) == 1 and WORD_CHAR.match(char) is not None


def to_service_position(
    lines: Sequence[str],
    line: int,
    column: int,
    codec: PositionCodec | None = None,
) -> Position:
    """Convert a 1-based host cursor into a service ``Position``."""
    codec = codec or DEFAULT_CODEC
    host_position = Position(line=max(line - 1, 0), character=max(column - 1, 0))
    return codec.position_to_client_units(list(lines), host_position)


def to_host_column(
    lines: Sequence[str],
    position: Position,
    codec: PositionCodec | None = None,
) -> int:
    """Convert a service ``Position`` into a 1-based host column."""
    codec = codec or DEFAULT_CODEC
    host_position = codec.position_from_client_units(list(lines), position)
    return host_position.character + 1


def guess_start_column(line_text: str, column: int) -> int:
    """
    Guess where the completed word starts.

    Scans left from the cursor and returns the column just past the
    nearest non-word character, or 1 when the run of word characters
    reaches the start of the line.

    Example:
        >>> guess_start_column("abc.de", 7)
        5
    """
    index = min(max(column - 1, 0), len(line_text))
    while index > 0 and is_word_char(line_text[index - 1]):
        index -= 1
    return index + 1


def resolve_start_column(result: CompletionResult, line_text: str, column: int) -> int:
    """Use the result's explicit start column, falling back to a guess."""
    if result.start_column is not None:
        return result.start_column
    return guess_start_column(line_text, column)
