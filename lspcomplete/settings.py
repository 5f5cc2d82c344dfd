"""
Completion settings.

Settings are usually read from the same kind of options dict an editor
passes as LSP initialization options, so both camelCase and snake_case
keys are accepted.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any

from lspcomplete.errors import InvalidSettingsError


DEFAULT_POPUP_OPTIONS = "menuone,noinsert,noselect"


@dataclass
class CompletionSettings:
    """
    Configuration surface of the completion engine.

    Attributes:
        auto_complete: Enable trigger-driven completion while typing.
        min_chars: Minimum word length before heuristic triggering fires.
            0 or None disables the heuristic; trigger characters still fire.
        manual_timeout: Seconds the manual completion bridge waits for a
            response before answering "try again".
        popup_options: Completion-behavior options applied whenever an
            automatic suggestion list is shown.
        propagate_cancel: Cancel the in-flight request itself when a
            keystroke disqualifies it, instead of only suppressing its popup.
    """

    auto_complete: bool = True
    min_chars: int | None = 3
    manual_timeout: float = 5.0
    popup_options: str = DEFAULT_POPUP_OPTIONS
    propagate_cancel: bool = False

    def __post_init__(self) -> None:
        if self.min_chars is not None and (
            isinstance(self.min_chars, bool)
            or not isinstance(self.min_chars, int)
            or self.min_chars < 0
        ):
            raise InvalidSettingsError(
                f"min_chars must be a non-negative integer or None, got {self.min_chars!r}"
            )
        if isinstance(self.manual_timeout, bool) or not isinstance(
            self.manual_timeout, (int, float)
        ):
            raise InvalidSettingsError(
                f"manual_timeout must be a number, got {self.manual_timeout!r}"
            )
        if self.manual_timeout <= 0:
            raise InvalidSettingsError("manual_timeout must be positive")

    @property
    def heuristic_enabled(self) -> bool:
        return bool(self.min_chars)

    @classmethod
    def from_dict(cls, options: dict[str, Any] | None) -> CompletionSettings:
        """
        Build settings from an options dict.

        Unknown keys are ignored. Keys may be snake_case
        (``min_chars``) or camelCase (``minChars``).

        Raises:
            InvalidSettingsError: if a value has the wrong type.
        """
        if not options:
            return cls()
        if not isinstance(options, dict):
            raise InvalidSettingsError(f"Expected a dict of options, got {type(options).__name__}")

        values: dict[str, Any] = {}
        for field in fields(cls):
            camel = _to_camel(field.name)
            if field.name in options:
                values[field.name] = options[field.name]
            elif camel in options:
                values[field.name] = options[camel]

        for key in ("auto_complete", "propagate_cancel"):
            if key in values and not isinstance(values[key], bool):
                raise InvalidSettingsError(f"{key} must be a boolean, got {values[key]!r}")
        if "popup_options" in values and not isinstance(values["popup_options"], str):
            raise InvalidSettingsError("popup_options must be a string")
        # false disables the heuristic
        if values.get("min_chars") is False:
            values["min_chars"] = None

        return cls(**values)


def _to_camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)
