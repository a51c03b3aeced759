"""Structured exceptions used across the sync engine."""

from __future__ import annotations

from typing import Any


class SyncError(Exception):
    """Base class for engine-level exceptions."""

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable error payload."""
        return {"type": self.__class__.__name__, "message": str(self)}


class ConfigurationError(SyncError):
    """Raised when a client or server is configured incorrectly."""


class ProtocolError(SyncError):
    """Raised when a wire message cannot be decoded or validated."""


class ActionRejectedError(SyncError):
    """Raised by the authority when it refuses to apply an action."""

    def __init__(self, reason: str, *, player_id: str | None = None, action_type: str | None = None):
        self.reason = reason
        self.player_id = player_id
        self.action_type = action_type
        message = reason
        if player_id is not None:
            message = f"{reason} (player_id={player_id!r})"
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        payload["reason"] = self.reason
        if self.player_id is not None:
            payload["player_id"] = self.player_id
        if self.action_type is not None:
            payload["action_type"] = self.action_type
        return payload


class UnauthorizedActionError(ActionRejectedError):
    """Raised when an action carries credentials that do not match the seat."""


class StaleStateError(ActionRejectedError):
    """Raised when an action was produced against an outdated state_id."""

    def __init__(self, was: int, expected: int, *, player_id: str | None = None, action_type: str | None = None):
        self.was = was
        self.expected = expected
        super().__init__(
            f"invalid stateID, was=[{was}], expected=[{expected}]",
            player_id=player_id,
            action_type=action_type,
        )

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        payload.update({"was": self.was, "expected": self.expected})
        return payload


class GameNotFoundError(ActionRejectedError):
    """Raised when an update targets a game the authority does not hold."""


class BotError(SyncError):
    """Raised when a bot fails to produce an action."""

    def __init__(self, bot_id: str, message: str):
        self.bot_id = bot_id
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        payload["bot_id"] = self.bot_id
        return payload
