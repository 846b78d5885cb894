"""Menu key mapping.

The key map is external configuration: each digit maps to either an audio
clip filename or the name of a built-in action. Resolution produces a
`MenuAction`; the session dispatches on `MenuAction.kind` through a handler
table, so adding an action kind means adding an enum member, an alias and a
handler.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from voxmenu.logging_config import get_logger

logger: Any = get_logger(__name__)


class ActionKind(str, Enum):
    """Kinds of menu actions."""

    NONE = "none"
    PLAY_FILE = "play_file"
    INFO = "info"
    SYSTEM_STATUS = "system_status"
    ASSISTANT = "assistant"
    VOICEMAIL = "voicemail"


# Configuration keywords (case-insensitive) for built-in actions
ACTION_ALIASES: dict[str, ActionKind] = {
    "INFO_PACKAGE": ActionKind.INFO,
    "INFO": ActionKind.INFO,
    "SYSTEM_STATUS": ActionKind.SYSTEM_STATUS,
    "SYSTEM": ActionKind.SYSTEM_STATUS,
    "ASSISTANT": ActionKind.ASSISTANT,
    "AI": ActionKind.ASSISTANT,
    "VOICEMAIL": ActionKind.VOICEMAIL,
}


@dataclass(frozen=True, slots=True)
class MenuAction:
    """A resolved menu entry."""

    kind: ActionKind
    argument: str = ""  # Clip filename for PLAY_FILE

    @property
    def is_spoken(self) -> bool:
        """Built-in actions that speak generated audio."""
        return self.kind in (
            ActionKind.INFO,
            ActionKind.SYSTEM_STATUS,
            ActionKind.ASSISTANT,
            ActionKind.VOICEMAIL,
        )


NO_ACTION = MenuAction(ActionKind.NONE)


def parse_action(value: str | None) -> MenuAction:
    """Turn a key-map value into an action."""
    value = (value or "").strip()
    if not value:
        return NO_ACTION
    kind = ACTION_ALIASES.get(value.upper())
    if kind is not None:
        return MenuAction(kind)
    return MenuAction(ActionKind.PLAY_FILE, argument=value)


class Menu:
    """Digit -> action table built from the configured key map."""

    def __init__(self, key_mappings: dict[str, str]) -> None:
        self._actions = {digit: parse_action(value) for digit, value in key_mappings.items()}

    def resolve(self, digit: str) -> MenuAction:
        action = self._actions.get(digit, NO_ACTION)
        if action.kind is ActionKind.NONE:
            logger.debug(f"Key {digit} has no action")
        return action

    def as_dict(self) -> dict[str, dict[str, str]]:
        return {
            digit: {"kind": action.kind.value, "argument": action.argument}
            for digit, action in sorted(self._actions.items())
        }
