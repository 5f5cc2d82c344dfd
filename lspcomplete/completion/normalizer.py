"""
Response normalization.

Turns whatever the analysis service returned for textDocument/completion
into a ``CompletionResult``: an ordered tuple of ``Suggestion`` records
plus one start column shared by the whole list.

The shared start column is a deliberate simplification. LSP allows
every item to carry its own replacement range, but the host popup only
takes one start column, so the first item that declares a range decides
the column for all of them. Items whose ranges disagree are not
supported.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Sequence

from cattrs.errors import BaseValidationError
from lsprotocol.converters import get_converter
from lsprotocol.types import (
    CompletionItem,
    CompletionItemKind,
    CompletionList,
    CompletionItemDefaults,
    EditRangeWithInsertReplace,
    InsertReplaceEdit,
    InsertTextFormat,
    MarkupContent,
    Range,
    TextEdit,
)
from pygls.workspace import PositionCodec

from lspcomplete.completion.columns import to_host_column
from lspcomplete.errors import MalformedCompletionResponse


class SuggestionKind(str, Enum):
    """Small fixed set of categories the popup can show."""

    FUNCTION = "f"
    MEMBER = "m"
    VARIABLE = "v"
    TYPE = "t"
    LITERAL = "k"
    UNMAPPED = ""


_KIND_MAP: dict[CompletionItemKind, SuggestionKind] = {
    CompletionItemKind.Function: SuggestionKind.FUNCTION,
    CompletionItemKind.Method: SuggestionKind.FUNCTION,
    CompletionItemKind.Constructor: SuggestionKind.FUNCTION,
    CompletionItemKind.Field: SuggestionKind.MEMBER,
    CompletionItemKind.Property: SuggestionKind.MEMBER,
    CompletionItemKind.EnumMember: SuggestionKind.MEMBER,
    CompletionItemKind.Variable: SuggestionKind.VARIABLE,
    CompletionItemKind.Class: SuggestionKind.TYPE,
    CompletionItemKind.Interface: SuggestionKind.TYPE,
    CompletionItemKind.Struct: SuggestionKind.TYPE,
    CompletionItemKind.Enum: SuggestionKind.TYPE,
    CompletionItemKind.Module: SuggestionKind.TYPE,
    CompletionItemKind.TypeParameter: SuggestionKind.TYPE,
    CompletionItemKind.Keyword: SuggestionKind.LITERAL,
    CompletionItemKind.Constant: SuggestionKind.LITERAL,
    CompletionItemKind.Value: SuggestionKind.LITERAL,
    CompletionItemKind.Unit: SuggestionKind.LITERAL,
    CompletionItemKind.Color: SuggestionKind.LITERAL,
    CompletionItemKind.Text: SuggestionKind.LITERAL,
}


def map_kind(kind: CompletionItemKind | int | None) -> SuggestionKind:
    if kind is None:
        return SuggestionKind.UNMAPPED
    try:
        kind = CompletionItemKind(kind)
    except ValueError:
        return SuggestionKind.UNMAPPED
    return _KIND_MAP.get(kind, SuggestionKind.UNMAPPED)


@dataclass(frozen=True)
class Suggestion:
    """One normalized candidate the popup may offer."""

    display_label: str
    insert_text: str
    start_column: int | None = None
    kind: SuggestionKind = SuggestionKind.UNMAPPED
    detail_line: str | None = None
    documentation: str | None = None
    snippet_payload: str | None = None


@dataclass(frozen=True)
class CompletionResult:
    """Normalized completion response."""

    items: tuple[Suggestion, ...] = ()
    start_column: int | None = None
    is_incomplete: bool = False

    def __len__(self) -> int:
        return len(self.items)

    @property
    def is_empty(self) -> bool:
        return not self.items


EMPTY_RESULT = CompletionResult()


@dataclass(frozen=True)
class DecodedResponse:
    """A completion response decoded into lsprotocol types."""

    items: tuple[CompletionItem, ...] = ()
    is_incomplete: bool = False
    item_defaults: CompletionItemDefaults | None = None


def _structure_item(record: Any) -> CompletionItem:
    if isinstance(record, CompletionItem):
        return record
    if not isinstance(record, dict):
        raise MalformedCompletionResponse(
            f"Completion item must be an object, got {type(record).__name__}"
        )
    if not isinstance(record.get("label"), str):
        raise MalformedCompletionResponse(f"Completion item has no label: {record!r}")
    try:
        return get_converter().structure(record, CompletionItem)
    except (BaseValidationError, KeyError, TypeError, ValueError) as e:
        raise MalformedCompletionResponse(
            f"Invalid completion item {record.get('label')!r}: {e}"
        ) from e


def decode_completion_response(raw: Any) -> DecodedResponse:
    """
    Decode a raw textDocument/completion result.

    Accepts ``None``, a ``CompletionList``, a list of items, or the JSON
    form of either (a list of dicts, or a dict with an ``items`` key).

    Raises:
        MalformedCompletionResponse: if the payload or one of its items
            cannot be decoded.
    """
    if raw is None:
        return DecodedResponse()

    if isinstance(raw, CompletionList):
        return DecodedResponse(
            items=tuple(raw.items),
            is_incomplete=raw.is_incomplete,
            item_defaults=raw.item_defaults,
        )

    if isinstance(raw, (list, tuple)):
        return DecodedResponse(items=tuple(_structure_item(record) for record in raw))

    if isinstance(raw, dict):
        records = raw.get("items")
        if not isinstance(records, list):
            raise MalformedCompletionResponse("Completion list has no items array")
        item_defaults = None
        if isinstance(raw.get("itemDefaults"), dict):
            try:
                item_defaults = get_converter().structure(
                    raw["itemDefaults"], CompletionItemDefaults
                )
            except (BaseValidationError, KeyError, TypeError, ValueError) as e:
                raise MalformedCompletionResponse(f"Invalid itemDefaults: {e}") from e
        return DecodedResponse(
            items=tuple(_structure_item(record) for record in records),
            is_incomplete=bool(raw.get("isIncomplete", False)),
            item_defaults=item_defaults,
        )

    raise MalformedCompletionResponse(
        f"Unsupported completion response type: {type(raw).__name__}"
    )


def _documentation_text(documentation: str | MarkupContent | None) -> str | None:
    # Only the text of structured documentation survives; its kind is dropped.
    if documentation is None:
        return None
    if isinstance(documentation, str):
        return documentation
    return documentation.value


def _first_line(detail: str | None) -> str | None:
    if not detail:
        return None
    return detail.splitlines()[0] or None


def _edit_of(
    item: CompletionItem, defaults: CompletionItemDefaults | None
) -> tuple[Range, str] | None:
    """Return the replacement range and text of an item, if it has one."""
    edit = item.text_edit
    if isinstance(edit, TextEdit):
        return edit.range, edit.new_text
    if isinstance(edit, InsertReplaceEdit):
        return edit.insert, edit.new_text

    if defaults is not None and defaults.edit_range is not None:
        edit_range = defaults.edit_range
        if isinstance(edit_range, EditRangeWithInsertReplace):
            edit_range = edit_range.insert
        return edit_range, item.text_edit_text or item.label
    return None


class ResponseNormalizer:
    """Converts decoded completion items into ``Suggestion`` records."""

    def __init__(self, codec: PositionCodec | None = None) -> None:
        self.codec = codec

    def normalize_item(
        self,
        item: CompletionItem,
        lines: Sequence[str],
        defaults: CompletionItemDefaults | None = None,
    ) -> Suggestion:
        start_column = None
        edit = _edit_of(item, defaults)
        if edit is not None:
            edit_range, insert_text = edit
            start_column = to_host_column(lines, edit_range.start, self.codec)
        elif item.insert_text:
            insert_text = item.insert_text
        else:
            insert_text = item.label

        text_format = item.insert_text_format
        if text_format is None and defaults is not None:
            text_format = defaults.insert_text_format

        snippet_payload = None
        if text_format == InsertTextFormat.Snippet:
            snippet_payload = insert_text

        return Suggestion(
            display_label=item.label,
            insert_text=insert_text,
            start_column=start_column,
            kind=map_kind(item.kind),
            detail_line=_first_line(item.detail),
            documentation=_documentation_text(item.documentation),
            snippet_payload=snippet_payload,
        )

    def normalize(self, raw: Any, lines: Sequence[str]) -> CompletionResult:
        """
        Normalize a raw completion response.

        Args:
            raw: Completion result as returned by the transport
            lines: Buffer lines the request was made against, used to
                translate replacement ranges into host columns

        Raises:
            MalformedCompletionResponse: if the payload cannot be decoded.
        """
        decoded = decode_completion_response(raw)
        suggestions = tuple(
            self.normalize_item(item, lines, decoded.item_defaults)
            for item in decoded.items
        )
        start_column = next(
            (s.start_column for s in suggestions if s.start_column is not None), None
        )
        return CompletionResult(
            items=suggestions,
            start_column=start_column,
            is_incomplete=decoded.is_incomplete,
        )
