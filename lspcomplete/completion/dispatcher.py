"""
Completion request dispatch.

Sends textDocument/completion to the analysis server and routes the
terminal outcome of every request to exactly one continuation:
``on_result`` when a response arrived, ``on_skip`` when the request was
superseded, cancelled or failed in transport.
"""

from __future__ import annotations

import asyncio
import itertools
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from lsprotocol.types import (
    CompletionContext,
    CompletionParams,
    CompletionTriggerKind,
    LogMessageParams,
    MessageType,
    TextDocumentIdentifier,
)

from lspcomplete.completion.columns import to_service_position
from lspcomplete.completion.normalizer import EMPTY_RESULT, ResponseNormalizer
from lspcomplete.errors import MalformedCompletionResponse
from lspcomplete.host import EditorState

if TYPE_CHECKING:
    from lspcomplete.completion.coordinator import CompletionCoordinator
    from lspcomplete.lsp.registry import AnalysisServer


@dataclass
class PendingRequest:
    """One completion request on its way to the server."""

    request_id: int
    auto: bool
    state: EditorState
    server: AnalysisServer
    trigger_character: str | None = None
    future: asyncio.Future | None = field(default=None, repr=False)
    done: bool = False


class RequestDispatcher:
    """Builds, sends and settles completion requests."""

    def __init__(self, coordinator: CompletionCoordinator) -> None:
        self.coordinator = coordinator
        self._ids = itertools.count(1)

    def _log(self, level: MessageType, message: str) -> None:
        self.coordinator.host.window_log_message(
            LogMessageParams(type=level, message=message)
        )

    def build_params(self, request: PendingRequest) -> CompletionParams:
        state = request.state
        if request.trigger_character:
            context = CompletionContext(
                trigger_kind=CompletionTriggerKind.TriggerCharacter,
                trigger_character=request.trigger_character,
            )
        else:
            context = CompletionContext(trigger_kind=CompletionTriggerKind.Invoked)
        return CompletionParams(
            text_document=TextDocumentIdentifier(uri=state.uri),
            position=to_service_position(
                state.lines, state.line, state.column, request.server.position_codec
            ),
            context=context,
        )

    def start(
        self,
        state: EditorState,
        auto: bool,
        trigger_character: str | None = None,
    ) -> PendingRequest | None:
        """
        Send a completion request for the cursor in ``state``.

        Automatic requests register the buffer type in the waiting-set.
        Returns None when no server serves the buffer type.
        """
        server = self.coordinator.registry.select(state.buffer_type)
        if server is None:
            self._log(
                MessageType.Log,
                f"No analysis server for buffer type {state.buffer_type!r}",
            )
            return None

        request = PendingRequest(
            request_id=next(self._ids),
            auto=auto,
            state=state,
            server=server,
            trigger_character=trigger_character,
        )
        session = None
        if auto:
            session = self.coordinator.book.start(
                state.buffer_type, request.request_id, state.uri, state.line
            )

        try:
            server.flush_changes(state.uri)
            params = self.build_params(request)
            future = asyncio.ensure_future(server.request_completion(params))
        except Exception as e:
            self._log(
                MessageType.Error,
                f"Completion request to {server.name} failed: {type(e).__name__}: {e}",
            )
            self.on_skip(request)
            return request

        request.future = future
        if session is not None:
            session.request_future = future
        future.add_done_callback(lambda f: self._on_done(request, f))
        return request

    def _on_done(self, request: PendingRequest, future: asyncio.Future) -> None:
        if future.cancelled():
            self.on_skip(request)
            return
        error = future.exception()
        if error is not None:
            self._log(
                MessageType.Warning,
                f"Completion request to {request.server.name} failed: "
                f"{type(error).__name__}: {error}",
            )
            self.on_skip(request)
            return
        self.on_result(request, future.result())

    def on_skip(self, request: PendingRequest) -> None:
        """Terminal outcome without a response: treated as no suggestions."""
        if request.done:
            return
        request.done = True

        if not request.auto:
            self.coordinator.manual.store(request, EMPTY_RESULT)
            return

        session = self.coordinator.book.release(
            request.state.buffer_type, request.request_id
        )
        if session is None:
            return
        self._log(
            MessageType.Log,
            f"Completion request {request.request_id} skipped",
        )
        self.coordinator.after_terminal(session)

    def on_result(self, request: PendingRequest, raw: Any) -> None:
        """Terminal outcome with a response."""
        if request.done:
            return
        request.done = True

        session = None
        canceled = False
        if request.auto:
            session = self.coordinator.book.release(
                request.state.buffer_type, request.request_id
            )
            if session is None:
                return
            canceled = session.canceled

        normalizer = ResponseNormalizer(request.server.position_codec)
        try:
            result = normalizer.normalize(raw, request.state.lines)
        except MalformedCompletionResponse as e:
            self._log(MessageType.Error, f"Malformed completion response: {e}")
            result = EMPTY_RESULT

        if not request.auto:
            self.coordinator.manual.store(request, result)
            return

        if canceled:
            self._log(
                MessageType.Log,
                f"Completion request {request.request_id} was canceled, "
                f"dropping {len(result)} suggestions",
            )
        else:
            self.coordinator.deliver(request, result)
        self.coordinator.after_terminal(session)
