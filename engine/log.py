"""Log entries and per-player log redaction."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Iterable, Mapping, Self

from .actions import Action

NO_ENTRIES_STATE_ID = -1


@dataclass(frozen=True)
class LogEntry:
    """One applied action, tagged with the state_id it was applied against."""

    state_id: int
    action: Action
    turn: int
    redact: bool = False

    @property
    def player_id(self) -> str | None:
        """Return the acting player, when the action carries one."""
        if self.action.payload is None:
            return None
        return self.action.payload.player_id

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable dictionary."""
        payload: dict[str, Any] = {
            "state_id": self.state_id,
            "action": self.action.to_dict(),
            "turn": self.turn,
        }
        if self.redact:
            payload["redact"] = True
        return payload

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Self:
        """Build an entry from serialized data."""
        return cls(
            state_id=int(data["state_id"]),
            action=Action.from_dict(data["action"]),
            turn=int(data.get("turn", 0)),
            redact=bool(data.get("redact", False)),
        )


def last_state_id(log: Iterable[LogEntry]) -> int:
    """Return the state_id of the final entry, or a sentinel below every valid id."""
    entries = list(log)
    if not entries:
        return NO_ENTRIES_STATE_ID
    return entries[-1].state_id


def redact_log(log: Iterable[LogEntry], player_id: str | None) -> list[LogEntry]:
    """Strip args of redacted entries for everyone except the acting player."""
    redacted: list[LogEntry] = []
    for entry in log:
        action = entry.action.without_credentials()
        if entry.redact and action.payload is not None and entry.player_id != player_id:
            action = replace(action, payload=replace(action.payload, args=()))
        redacted.append(replace(entry, action=action))
    return redacted
