"""
Completion Coordinator

Owns all completion state of one editor process and is the single
entry point for host editor events.

Event flow for automatic completion:

    on_char_inserting   capture the character about to be inserted
    on_text_changed     confirm it, classify it, maybe start a request
    (response lands)    normalize, filter against the typed base, show popup

Manual completion goes through ``complete``, which follows the host's
findstart/lookup convention and awaits the response with a timeout.

Usage:
    coordinator = CompletionCoordinator(host, registry, settings)
    coordinator.on_char_inserting(".", state_before)
    coordinator.on_text_changed(state_after)
"""

from __future__ import annotations

from lsprotocol.types import LogMessageParams, MessageType

from lspcomplete.completion.columns import resolve_start_column
from lspcomplete.completion.dispatcher import PendingRequest, RequestDispatcher
from lspcomplete.completion.filter import filter_suggestions
from lspcomplete.completion.keystroke import KeystrokeObserver
from lspcomplete.completion.manual import ManualCompletionBridge
from lspcomplete.completion.normalizer import CompletionResult, Suggestion
from lspcomplete.completion.session import CompletionSession, SessionBook
from lspcomplete.completion.trigger import TriggerClassifier
from lspcomplete.host import EditorState, Host
from lspcomplete.lsp.registry import ServerRegistry
from lspcomplete.settings import CompletionSettings


class CompletionCoordinator:
    """
    Process-wide completion state and host event handlers.

    Attributes:
        host: Editor callbacks (state snapshots, popup, log)
        registry: Analysis servers by buffer type
        settings: Completion configuration
        book: Per-buffer-type sessions and the waiting-set
        keystrokes: Pending character captured before an edit
        manual: Cache and waiter of on-demand completion
    """

    def __init__(
        self,
        host: Host,
        registry: ServerRegistry | None = None,
        settings: CompletionSettings | None = None,
    ) -> None:
        self.host = host
        self.registry = registry or ServerRegistry()
        self.settings = settings or CompletionSettings()

        self.book = SessionBook()
        self.keystrokes = KeystrokeObserver()
        self.classifier = TriggerClassifier(self.registry, self.settings.min_chars)
        self.dispatcher = RequestDispatcher(self)
        self.manual = ManualCompletionBridge(self)

    def _log(self, level: MessageType, message: str) -> None:
        self.host.window_log_message(LogMessageParams(type=level, message=message))

    def update_settings(self, settings: CompletionSettings) -> None:
        self.settings = settings
        self.classifier.min_chars = settings.min_chars

    def _auto_allowed(self, state: EditorState) -> bool:
        return self.settings.auto_complete and state.is_editing

    # Host events

    def on_char_inserting(self, char: str, state: EditorState) -> None:
        """A character is about to be inserted at the cursor."""
        if not self._auto_allowed(state):
            self.keystrokes.discard()
            return
        self.keystrokes.capture(char, state.uri, state.version)

    def on_text_changed(self, state: EditorState) -> None:
        """The buffer changed; act on the captured character, if any."""
        if not self._auto_allowed(state):
            self.keystrokes.discard()
            return

        char = self.keystrokes.confirm(state.uri, state.version)
        if char is None:
            return

        buffer_type = state.buffer_type
        session = self.book.get(buffer_type)
        if session is not None:
            session.settle()
        waiting = self.book.is_waiting(buffer_type)

        if self.classifier.is_trigger(char, buffer_type):
            if waiting:
                # one request per type: retire the old one, ask again once it settles
                self._cancel(session)
                session.follow_up = char
                return
            self.dispatcher.start(state, auto=True, trigger_character=char)
        elif self.classifier.is_completable(char, state, self.book.waiting):
            self.dispatcher.start(state, auto=True)
        elif waiting and not self.classifier.is_eligible(char, state):
            self._cancel(session)
            # a queued trigger no longer applies to this cursor
            session.follow_up = None

    async def complete(
        self, findstart: bool, base: str, state: EditorState | None = None
    ) -> int | list[Suggestion]:
        """Manual completion in the host's findstart/lookup convention."""
        if state is None:
            state = self.host.current_state()
        return await self.manual.complete(findstart, base, state)

    def on_complete_done(self, state: EditorState) -> None:
        """The host closed its completion popup."""
        self.manual.reset()
        session = self.book.get(state.buffer_type)
        if session is not None:
            session.settle()

    def on_buffer_closed(self, buffer_type: str) -> None:
        """The last buffer of a type was torn down."""
        session = self.book.drop(buffer_type)
        if session is None:
            return
        future = session.request_future
        if future is not None and not future.done():
            future.cancel()

    # Dispatcher continuations

    def _cancel(self, session: CompletionSession | None) -> None:
        if session is None or not session.cancel():
            return
        self._log(
            MessageType.Log,
            f"Completion request {session.request_id} for {session.buffer_type} canceled",
        )
        future = session.request_future
        if self.settings.propagate_cancel and future is not None and not future.done():
            future.cancel()

    def after_terminal(self, session: CompletionSession) -> None:
        """Start the follow-up request queued by a trigger character, if any."""
        char, session.follow_up = session.follow_up, None
        if char is None:
            return
        state = self.host.current_state()
        if not self._auto_allowed(state) or state.buffer_type != session.buffer_type:
            return
        if not state.text_before_cursor.endswith(char):
            return
        if self.book.is_waiting(session.buffer_type):
            return
        self.dispatcher.start(state, auto=True, trigger_character=char)

    def deliver(self, request: PendingRequest, result: CompletionResult) -> None:
        """Show an automatic result, filtered against what was typed since."""
        state = self.host.current_state()
        if (
            not self._auto_allowed(state)
            or state.uri != request.state.uri
            or state.line != request.state.line
        ):
            self._log(
                MessageType.Log,
                f"Cursor moved away, dropping completion request {request.request_id}",
            )
            return

        start_column = resolve_start_column(result, state.line_text, state.column)
        if state.column < start_column:
            return
        base = state.line_text[start_column - 1 : state.column - 1]
        suggestions = filter_suggestions(base, result.items)
        if not suggestions:
            return

        try:
            self.host.show_popup(start_column, suggestions, self.settings.popup_options)
        except Exception as e:
            self._log(
                MessageType.Error,
                f"Error showing completion popup: {type(e).__name__}: {e}",
            )
