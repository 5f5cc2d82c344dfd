"""
On-demand completion.

Mirrors the host's two-phase completion-function convention. The first
call ("findstart") fetches suggestions and answers with the start
column; the second call ("lookup") answers with the suggestions that
match the text typed since the start column.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from lsprotocol.types import LogMessageParams, MessageType

from lspcomplete.completion.columns import resolve_start_column
from lspcomplete.completion.filter import filter_suggestions
from lspcomplete.completion.normalizer import EMPTY_RESULT, CompletionResult, Suggestion
from lspcomplete.host import EditorState

if TYPE_CHECKING:
    from lspcomplete.completion.coordinator import CompletionCoordinator
    from lspcomplete.completion.dispatcher import PendingRequest


# findstart sentinels, as understood by the host
RETRY = -2
ABORT = -3


class ManualCompletionBridge:
    """Awaits one manual fetch at a time and caches its result."""

    def __init__(self, coordinator: CompletionCoordinator) -> None:
        self.coordinator = coordinator
        self._cache: CompletionResult | None = None
        self._waiter: asyncio.Future | None = None
        # document and line the cache or waiter belongs to
        self._origin: tuple[str, int] | None = None
        self._request: PendingRequest | None = None

    @property
    def cached(self) -> CompletionResult | None:
        return self._cache

    @property
    def fetching(self) -> bool:
        return self._waiter is not None

    @property
    def origin(self) -> tuple[str, int] | None:
        return self._origin

    def store(self, request: PendingRequest | None, result: CompletionResult) -> None:
        """Cache the result of the outstanding manual fetch."""
        waiter = self._waiter
        if waiter is None:
            # fetch was abandoned by reset()
            return
        if request is not None and self._request is not None and request is not self._request:
            # late answer to a fetch that was replaced
            return
        self._waiter = None
        self._request = None
        self._cache = result
        if not waiter.done():
            waiter.set_result(None)

    def reset(self) -> None:
        self._cache = None
        self._origin = None
        self._request = None
        waiter, self._waiter = self._waiter, None
        if waiter is not None and not waiter.done():
            waiter.set_result(None)

    async def complete(
        self, findstart: bool, base: str, state: EditorState
    ) -> int | list[Suggestion]:
        if findstart:
            return await self.find_start(state)
        return self.lookup(base)

    async def find_start(self, state: EditorState, timeout: float | None = None) -> int:
        """
        Phase one: make sure a result is cached and return its start column.

        Returns ``RETRY`` if nothing arrived within the timeout and
        ``ABORT`` if the server has no candidates.
        """
        if timeout is None:
            timeout = self.coordinator.settings.manual_timeout

        if self._is_stale(state):
            self.reset()

        if self._cache is None:
            if self._waiter is None:
                self._waiter = asyncio.get_running_loop().create_future()
                self._origin = (state.uri, state.line)
                request = self.coordinator.dispatcher.start(state, auto=False)
                if request is None:
                    self.store(None, EMPTY_RESULT)
                elif self._waiter is not None:
                    self._request = request

            waiter = self._waiter
            if waiter is not None:
                try:
                    # an expired wait leaves the fetch running for the next call
                    await asyncio.wait_for(asyncio.shield(waiter), timeout)
                except asyncio.TimeoutError:
                    self.coordinator.host.window_log_message(
                        LogMessageParams(
                            type=MessageType.Log,
                            message=f"Manual completion not ready after {timeout}s",
                        )
                    )
                    return RETRY

        result = self._cache
        if result is None:
            return RETRY
        if result.is_empty:
            self._cache = None
            return ABORT
        return resolve_start_column(result, state.line_text, state.column)

    def _is_stale(self, state: EditorState) -> bool:
        """True if the cache or waiter was fetched for another position."""
        if self._origin is None:
            return False
        if self._origin != (state.uri, state.line):
            return True
        if self._cache is not None and not self._cache.is_empty:
            start_column = resolve_start_column(self._cache, state.line_text, state.column)
            return state.column < start_column
        return False

    def lookup(self, base: str) -> list[Suggestion]:
        """Phase two: filter the cached result by ``base`` and clear it."""
        result, self._cache = self._cache, None
        if result is None:
            return []
        return filter_suggestions(base, result.items)
