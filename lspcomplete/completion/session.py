"""
Per-buffer-type completion sessions.

State machine of one session:

    IDLE -> REQUESTING -> COMPLETED
                 |
                 v
    CANCELED_WHILE_REQUESTING -> COMPLETED

COMPLETED returns to IDLE on the next keystroke. The waiting-set holds
the buffer types that have an automatic request outstanding; an entry
is added when a request starts and removed exactly once, when that
request reaches its terminal outcome.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class SessionState(str, Enum):
    IDLE = "idle"
    REQUESTING = "requesting"
    CANCELED_WHILE_REQUESTING = "canceled_while_requesting"
    COMPLETED = "completed"


@dataclass
class CompletionSession:
    """Automatic completion state for one buffer type."""

    buffer_type: str
    state: SessionState = SessionState.IDLE
    canceled: bool = False
    request_id: int | None = None
    request_uri: str | None = None
    request_line: int | None = None
    # pending result of the outstanding request, kept for true cancellation
    request_future: Any = None
    # trigger character typed while this request was outstanding
    follow_up: str | None = None

    @property
    def in_flight(self) -> bool:
        return self.state in (
            SessionState.REQUESTING,
            SessionState.CANCELED_WHILE_REQUESTING,
        )

    def begin(self, request_id: int, uri: str, line: int) -> None:
        self.state = SessionState.REQUESTING
        self.canceled = False
        self.follow_up = None
        self.request_id = request_id
        self.request_uri = uri
        self.request_line = line
        self.request_future = None

    def cancel(self) -> bool:
        """Suppress the popup of the outstanding request. Returns True if one was."""
        if self.state is not SessionState.REQUESTING:
            return False
        self.state = SessionState.CANCELED_WHILE_REQUESTING
        self.canceled = True
        return True

    def finish(self) -> None:
        self.state = SessionState.COMPLETED
        self.request_future = None

    def settle(self) -> None:
        """Return a terminated session to IDLE."""
        if self.state is SessionState.COMPLETED:
            self.state = SessionState.IDLE
            self.canceled = False
            self.request_id = None


@dataclass
class SessionBook:
    """Sessions keyed by buffer type plus the waiting-set."""

    sessions: dict[str, CompletionSession] = field(default_factory=dict)
    waiting: set[str] = field(default_factory=set)

    def get(self, buffer_type: str) -> CompletionSession | None:
        return self.sessions.get(buffer_type)

    def session_for(self, buffer_type: str) -> CompletionSession:
        session = self.sessions.get(buffer_type)
        if session is None:
            session = CompletionSession(buffer_type=buffer_type)
            self.sessions[buffer_type] = session
        return session

    def is_waiting(self, buffer_type: str) -> bool:
        return buffer_type in self.waiting

    def start(self, buffer_type: str, request_id: int, uri: str, line: int) -> CompletionSession:
        """
        Mark a new automatic request outstanding.

        Raises:
            RuntimeError: if a request for the buffer type is already
                outstanding.
        """
        if buffer_type in self.waiting:
            raise RuntimeError(f"Completion already in flight for {buffer_type!r}")
        session = self.session_for(buffer_type)
        session.begin(request_id, uri, line)
        self.waiting.add(buffer_type)
        return session

    def release(self, buffer_type: str, request_id: int) -> CompletionSession | None:
        """
        Terminate the outstanding request ``request_id``.

        Returns the session if this call released it, or None if the
        request was already released or superseded.
        """
        session = self.sessions.get(buffer_type)
        if session is None or session.request_id != request_id or not session.in_flight:
            return None
        self.waiting.discard(buffer_type)
        session.finish()
        return session

    def drop(self, buffer_type: str) -> CompletionSession | None:
        """Forget a buffer type's session, e.g. when its buffers are torn down."""
        self.waiting.discard(buffer_type)
        return self.sessions.pop(buffer_type, None)
