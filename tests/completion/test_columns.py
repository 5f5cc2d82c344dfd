from lsprotocol.types import Position, PositionEncodingKind
from pygls.workspace import PositionCodec

from lspcomplete.completion.columns import (
    guess_start_column,
    is_word_char,
    resolve_start_column,
    to_host_column,
    to_service_position,
)
from lspcomplete.completion.normalizer import CompletionResult


def test_guess_start_after_dot():
    """The guessed start covers the word run after the last non-word char."""
    assert guess_start_column("abc.de", 7) == 5


def test_guess_start_whole_line_is_word():
    assert guess_start_column("abcdef", 7) == 1


def test_guess_start_right_after_non_word():
    """Nothing typed after the dot: the start is the cursor itself."""
    assert guess_start_column("foo.", 5) == 5


def test_guess_start_mid_line():
    assert guess_start_column("x = foo(bar", 12) == 9


def test_guess_start_empty_line():
    assert guess_start_column("", 1) == 1


def test_resolve_prefers_explicit_column():
    result = CompletionResult(items=(), start_column=2)
    assert resolve_start_column(result, "abc.de", 7) == 2


def test_resolve_guesses_without_explicit_column():
    result = CompletionResult(items=())
    assert resolve_start_column(result, "abc.de", 7) == 5


def test_word_chars():
    assert is_word_char("a")
    assert is_word_char("_")
    assert is_word_char("9")
    assert is_word_char("é")
    assert not is_word_char(".")
    assert not is_word_char(" ")
    assert not is_word_char("")


def test_service_position_is_zero_based():
    position = to_service_position(["first", "second line"], 2, 4)
    assert position == Position(line=1, character=3)


def test_service_position_counts_utf16_units():
    """Characters outside the BMP take two UTF-16 code units."""
    position = to_service_position(["😀ab"], 1, 4)
    assert position == Position(line=0, character=4)


def test_host_column_from_utf16_position():
    assert to_host_column(["😀ab"], Position(line=0, character=2)) == 2


def test_utf32_codec_counts_code_points():
    codec = PositionCodec(encoding=PositionEncodingKind.Utf32)
    position = to_service_position(["😀ab"], 1, 4, codec)
    assert position == Position(line=0, character=3)
