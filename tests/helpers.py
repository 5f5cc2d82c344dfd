"""Test doubles for the completion engine."""

from __future__ import annotations

import asyncio
from unittest.mock import Mock

from lsprotocol.types import CompletionParams
from pygls.workspace import PositionCodec

from lspcomplete.completion.coordinator import CompletionCoordinator
from lspcomplete.host import INSERT_MODE, EditorState


TEST_URI = "file:///project/test.py"


def make_state(
    text: str,
    column: int | None = None,
    *,
    buffer_type: str = "python",
    version: int = 1,
    mode: str = INSERT_MODE,
    uri: str = TEST_URI,
) -> EditorState:
    """Single-line editor state with the cursor at ``column`` (default: end)."""
    return EditorState(
        uri=uri,
        buffer_type=buffer_type,
        lines=(text,),
        line=1,
        column=len(text) + 1 if column is None else column,
        version=version,
        mode=mode,
    )


async def settle() -> None:
    """Let pending future callbacks run."""
    for _ in range(3):
        await asyncio.sleep(0)


class FakeServer:
    """In-memory analysis server whose responses are resolved by the test."""

    def __init__(
        self,
        name: str = "fake",
        buffer_types: tuple[str, ...] = ("python",),
        trigger_characters: tuple[str, ...] = (".",),
        active: bool = True,
    ) -> None:
        self.name = name
        self.buffer_types = frozenset(buffer_types)
        self.trigger_characters = frozenset(trigger_characters)
        self.is_active = active
        self.position_codec = PositionCodec()
        self.requests: list[CompletionParams] = []
        self.futures: list[asyncio.Future] = []
        self.flushed: list[str] = []
        self.calls: list[str] = []

    def flush_changes(self, uri: str) -> None:
        self.flushed.append(uri)
        self.calls.append("flush")

    def request_completion(self, params: CompletionParams) -> asyncio.Future:
        self.calls.append("request")
        self.requests.append(params)
        future = asyncio.get_running_loop().create_future()
        self.futures.append(future)
        return future

    @property
    def outstanding(self) -> list[asyncio.Future]:
        return [f for f in self.futures if not f.done()]


class Typist:
    """Types characters the way an editor reports them."""

    def __init__(self, coordinator: CompletionCoordinator, host: Mock, text: str = "") -> None:
        self.coordinator = coordinator
        self.host = host
        self.text = text
        self.version = 1
        self.host.current_state.return_value = self.state()

    def state(self, mode: str = INSERT_MODE) -> EditorState:
        return make_state(self.text, version=self.version, mode=mode)

    def type(self, chars: str, mode: str = INSERT_MODE) -> None:
        for char in chars:
            self.coordinator.on_char_inserting(char, self.state(mode))
            self.text += char
            self.version += 1
            after = self.state(mode)
            self.host.current_state.return_value = after
            self.coordinator.on_text_changed(after)


