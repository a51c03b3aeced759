"""Pydantic response schemas for the inspection API."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class GameListResponse(BaseModel):
    """Game definitions hosted by this authority."""

    games: list[str] = Field(default_factory=list)


class MatchListResponse(BaseModel):
    game: str
    matches: list[str] = Field(default_factory=list)


class PlayerStatus(BaseModel):
    id: str
    is_connected: bool = False


class MatchSummary(BaseModel):
    """Authoritative state of one match, without G."""

    game: str
    game_id: str
    state_id: int
    turn: int
    current_player: str
    active_players: dict[str, str] | None = None
    gameover: Any | None = None
    state_digest: str
    log_length: int
    players: list[PlayerStatus] = Field(default_factory=list)
