"""
Analysis server registry.

Keeps track of which analysis servers serve which buffer types and
decides which one a completion request goes to.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Awaitable, Protocol, Sequence

from lsprotocol.types import CompletionParams
from pygls.workspace import PositionCodec


class AnalysisServer(Protocol):
    """What the completion engine needs from one analysis server."""

    name: str
    buffer_types: frozenset[str]

    @property
    def is_active(self) -> bool: ...

    @property
    def trigger_characters(self) -> frozenset[str]: ...

    @property
    def position_codec(self) -> PositionCodec: ...

    def flush_changes(self, uri: str) -> None:
        """Send buffered document edits so the server sees current text."""
        ...

    def request_completion(self, params: CompletionParams) -> Awaitable[object]:
        """Send textDocument/completion and return the pending result."""
        ...


class ServerSelector(ABC):
    """Strategy choosing the server a completion request is sent to."""

    @abstractmethod
    def select(self, servers: Sequence[AnalysisServer]) -> AnalysisServer | None:
        pass


class FirstMatchSelector(ServerSelector):
    """Send every request to the first registered server for the type."""

    def select(self, servers: Sequence[AnalysisServer]) -> AnalysisServer | None:
        return servers[0] if servers else None


class ServerRegistry:
    """
    Registry of analysis servers, in registration order.

    Usage:
        registry = ServerRegistry()
        registry.register(server)
        registry.servers_for("python")
    """

    def __init__(self, selector: ServerSelector | None = None) -> None:
        self.selector = selector or FirstMatchSelector()
        self._servers: list[AnalysisServer] = []

    def register(self, server: AnalysisServer) -> None:
        if server not in self._servers:
            self._servers.append(server)

    def unregister(self, server: AnalysisServer) -> None:
        if server in self._servers:
            self._servers.remove(server)

    def servers_for(self, buffer_type: str) -> list[AnalysisServer]:
        """Active servers serving ``buffer_type``."""
        return [
            server
            for server in self._servers
            if server.is_active and buffer_type in server.buffer_types
        ]

    def select(self, buffer_type: str) -> AnalysisServer | None:
        return self.selector.select(self.servers_for(buffer_type))

    def trigger_characters(self, buffer_type: str) -> frozenset[str]:
        """Union of the trigger characters of every active server."""
        chars: set[str] = set()
        for server in self.servers_for(buffer_type):
            chars.update(server.trigger_characters)
        return frozenset(chars)
