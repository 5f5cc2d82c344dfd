"""Pairing of typed characters with the edits that confirm them."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class PendingChar:
    """A character about to be inserted, captured before the edit lands."""

    char: str
    uri: str
    version: int


class KeystrokeObserver:
    """
    Holds at most one pending character.

    ``capture`` runs before the editor inserts a character. The capture
    is acted upon only when ``confirm`` sees a buffer change for the same
    document; anything else discards it.
    """

    def __init__(self) -> None:
        self._pending: PendingChar | None = None

    @property
    def pending(self) -> PendingChar | None:
        return self._pending

    def capture(self, char: str, uri: str, version: int) -> None:
        # A newer capture replaces an unconfirmed one
        self._pending = PendingChar(char=char, uri=uri, version=version)

    def confirm(self, uri: str, version: int) -> str | None:
        """
        Consume the pending character if this change confirms it.

        Returns the character, or None when nothing was captured or the
        change belongs to another document or did not bump the version.
        """
        pending, self._pending = self._pending, None
        if pending is None:
            return None
        if pending.uri != uri or version == pending.version:
            return None
        return pending.char

    def discard(self) -> None:
        self._pending = None
