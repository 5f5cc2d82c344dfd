"""
Tests for lspcomplete/completion/normalizer.py

Covers the insertion text priority chain, the shared start column,
documentation/detail/kind mapping and boundary decoding of JSON payloads.
"""

import pytest
from lsprotocol.types import (
    CompletionItem,
    CompletionItemKind,
    CompletionList,
    InsertReplaceEdit,
    InsertTextFormat,
    MarkupContent,
    MarkupKind,
    Position,
    Range,
    TextEdit,
)

from lspcomplete.completion.normalizer import (
    CompletionResult,
    ResponseNormalizer,
    SuggestionKind,
    decode_completion_response,
    map_kind,
)
from lspcomplete.errors import MalformedCompletionResponse


LINES = ["    os.pa"]


@pytest.fixture
def normalizer():
    return ResponseNormalizer()


def _edit(start: int, end: int, text: str) -> TextEdit:
    return TextEdit(
        range=Range(
            start=Position(line=0, character=start),
            end=Position(line=0, character=end),
        ),
        new_text=text,
    )


# =============================================================================
# Insertion text priority
# =============================================================================


class TestInsertText:
    def test_label_only(self, normalizer):
        """A record with only a label inserts the label."""
        result = normalizer.normalize([{"label": "path"}], LINES)

        suggestion = result.items[0]
        assert suggestion.display_label == "path"
        assert suggestion.insert_text == "path"
        assert suggestion.start_column is None

    def test_insert_text_used(self, normalizer):
        item = CompletionItem(label="path()", insert_text="path")
        suggestion = normalizer.normalize([item], LINES).items[0]

        assert suggestion.display_label == "path()"
        assert suggestion.insert_text == "path"

    def test_empty_insert_text_falls_back_to_label(self, normalizer):
        item = CompletionItem(label="path", insert_text="")
        assert normalizer.normalize([item], LINES).items[0].insert_text == "path"

    def test_text_edit_wins_over_insert_text(self, normalizer):
        item = CompletionItem(
            label="path",
            insert_text="ignored",
            text_edit=_edit(7, 9, "pathsep"),
        )
        suggestion = normalizer.normalize([item], LINES).items[0]

        assert suggestion.insert_text == "pathsep"
        assert suggestion.start_column == 8

    def test_insert_replace_edit_uses_insert_range(self, normalizer):
        item = CompletionItem(
            label="path",
            text_edit=InsertReplaceEdit(
                new_text="path",
                insert=Range(
                    start=Position(line=0, character=7),
                    end=Position(line=0, character=9),
                ),
                replace=Range(
                    start=Position(line=0, character=4),
                    end=Position(line=0, character=9),
                ),
            ),
        )
        assert normalizer.normalize([item], LINES).items[0].start_column == 8


# =============================================================================
# Shared start column
# =============================================================================


class TestStartColumn:
    def test_first_declared_column_is_shared(self, normalizer):
        items = [
            CompletionItem(label="pardir"),
            CompletionItem(label="path", text_edit=_edit(7, 9, "path")),
            CompletionItem(label="pathsep", text_edit=_edit(4, 9, "os.pathsep")),
        ]
        result = normalizer.normalize(items, LINES)

        assert result.start_column == 8
        assert [s.start_column for s in result.items] == [None, 8, 5]

    def test_no_column_means_guess(self, normalizer):
        result = normalizer.normalize([CompletionItem(label="path")], LINES)
        assert result.start_column is None

    def test_column_in_utf16_units_is_converted(self, normalizer):
        lines = ["😀 = pa"]
        item = CompletionItem(label="path", text_edit=_edit(5, 7, "path"))
        assert normalizer.normalize([item], lines).start_column == 5

    def test_item_defaults_edit_range(self, normalizer):
        raw = {
            "isIncomplete": False,
            "itemDefaults": {
                "editRange": {
                    "start": {"line": 0, "character": 7},
                    "end": {"line": 0, "character": 9},
                }
            },
            "items": [{"label": "path"}, {"label": "pathsep", "textEditText": "pathsep()"}],
        }
        result = normalizer.normalize(raw, LINES)

        assert result.start_column == 8
        assert [s.insert_text for s in result.items] == ["path", "pathsep()"]


# =============================================================================
# Annotations
# =============================================================================


class TestAnnotations:
    def test_plain_documentation(self, normalizer):
        item = CompletionItem(label="x", documentation="Some docs")
        assert normalizer.normalize([item], LINES).items[0].documentation == "Some docs"

    def test_markup_documentation_keeps_text_only(self, normalizer):
        item = CompletionItem(
            label="x",
            documentation=MarkupContent(kind=MarkupKind.Markdown, value="**bold**"),
        )
        assert normalizer.normalize([item], LINES).items[0].documentation == "**bold**"

    def test_detail_first_line_only(self, normalizer):
        item = CompletionItem(label="x", detail="def x(a, b)\nmore\nlines")
        assert normalizer.normalize([item], LINES).items[0].detail_line == "def x(a, b)"

    def test_detail_with_blank_first_line_is_none(self, normalizer):
        item = CompletionItem(label="x", detail="\nreal detail")
        assert normalizer.normalize([item], LINES).items[0].detail_line is None

    def test_missing_annotations_are_none(self, normalizer):
        suggestion = normalizer.normalize([CompletionItem(label="x")], LINES).items[0]

        assert suggestion.detail_line is None
        assert suggestion.documentation is None
        assert suggestion.snippet_payload is None
        assert suggestion.kind == SuggestionKind.UNMAPPED

    def test_snippet_payload_is_insert_text(self, normalizer):
        item = CompletionItem(
            label="for",
            insert_text="for ${1:x} in ${2:xs}:\n\t$0",
            insert_text_format=InsertTextFormat.Snippet,
        )
        suggestion = normalizer.normalize([item], LINES).items[0]

        assert suggestion.snippet_payload == "for ${1:x} in ${2:xs}:\n\t$0"
        assert suggestion.insert_text == suggestion.snippet_payload

    def test_plain_text_format_has_no_snippet(self, normalizer):
        item = CompletionItem(
            label="x", insert_text="x", insert_text_format=InsertTextFormat.PlainText
        )
        assert normalizer.normalize([item], LINES).items[0].snippet_payload is None


@pytest.mark.parametrize(
    "kind, expected",
    [
        (CompletionItemKind.Method, SuggestionKind.FUNCTION),
        (CompletionItemKind.Function, SuggestionKind.FUNCTION),
        (CompletionItemKind.Constructor, SuggestionKind.FUNCTION),
        (CompletionItemKind.Field, SuggestionKind.MEMBER),
        (CompletionItemKind.Property, SuggestionKind.MEMBER),
        (CompletionItemKind.Variable, SuggestionKind.VARIABLE),
        (CompletionItemKind.Class, SuggestionKind.TYPE),
        (CompletionItemKind.Interface, SuggestionKind.TYPE),
        (CompletionItemKind.Keyword, SuggestionKind.LITERAL),
        (CompletionItemKind.Constant, SuggestionKind.LITERAL),
        (CompletionItemKind.Snippet, SuggestionKind.UNMAPPED),
        (CompletionItemKind.File, SuggestionKind.UNMAPPED),
        (None, SuggestionKind.UNMAPPED),
        (999, SuggestionKind.UNMAPPED),
    ],
)
def test_kind_mapping(kind, expected):
    assert map_kind(kind) == expected


# =============================================================================
# Boundary decoding
# =============================================================================


class TestDecoding:
    def test_none_is_empty(self, normalizer):
        result = normalizer.normalize(None, LINES)
        assert result == CompletionResult()
        assert result.is_empty

    def test_completion_list_object(self, normalizer):
        raw = CompletionList(
            is_incomplete=True,
            items=[CompletionItem(label="a"), CompletionItem(label="b")],
        )
        result = normalizer.normalize(raw, LINES)

        assert [s.insert_text for s in result.items] == ["a", "b"]
        assert result.is_incomplete

    def test_json_wrapper_with_camel_case_fields(self, normalizer):
        raw = {
            "isIncomplete": False,
            "items": [
                {
                    "label": "path",
                    "kind": 6,
                    "detail": "module",
                    "insertText": "path",
                    "insertTextFormat": 2,
                },
                {
                    "label": "sep",
                    "textEdit": {
                        "range": {
                            "start": {"line": 0, "character": 7},
                            "end": {"line": 0, "character": 9},
                        },
                        "newText": "sep",
                    },
                },
            ],
        }
        result = normalizer.normalize(raw, LINES)

        first, second = result.items
        assert first.kind == SuggestionKind.VARIABLE
        assert first.snippet_payload == "path"
        assert second.insert_text == "sep"
        assert result.start_column == 8

    def test_order_is_preserved(self, normalizer):
        raw = [{"label": w} for w in ("c", "a", "b")]
        assert [s.display_label for s in normalizer.normalize(raw, LINES).items] == [
            "c",
            "a",
            "b",
        ]

    def test_missing_label_fails_the_response(self, normalizer):
        with pytest.raises(MalformedCompletionResponse):
            normalizer.normalize([{"label": "ok"}, {"insertText": "no label"}], LINES)

    def test_wrapper_without_items_fails(self):
        with pytest.raises(MalformedCompletionResponse):
            decode_completion_response({"isIncomplete": False})

    def test_non_object_item_fails(self):
        with pytest.raises(MalformedCompletionResponse):
            decode_completion_response(["just a string"])

    def test_unsupported_payload_fails(self):
        with pytest.raises(MalformedCompletionResponse):
            decode_completion_response(42)
