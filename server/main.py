"""Network authority entrypoint: socket server plus a read-only FastAPI inspection API."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, HTTPException, Query
from fastapi.responses import PlainTextResponse

from engine.master import Master
from engine.serialize import json_dumps
from engine.settings import ServerConfig
from server.schemas import GameListResponse, MatchListResponse, MatchSummary, PlayerStatus
from server.socket_server import SocketServer
from tictactoe import TicTacToeGame

logger = logging.getLogger(__name__)

GAMES = [TicTacToeGame()]

config = ServerConfig.from_env()
authority = SocketServer.from_config(GAMES, config)
app = FastAPI(title="boardsync authority", version="0.1.0")


def _master(name: str) -> Master:
    master = authority.masters.get(name)
    if master is None:
        raise HTTPException(status_code=404, detail=f"Unknown game: {name}")
    return master


@app.get("/api/health")
def health() -> dict[str, str]:
    """Healthcheck endpoint."""
    return {"status": "ok"}


@app.get("/api/games", response_model=GameListResponse)
def list_games() -> GameListResponse:
    return GameListResponse(games=sorted(authority.masters))


@app.get("/api/games/{name}/matches", response_model=MatchListResponse)
def list_matches(name: str) -> MatchListResponse:
    """Return the game ids the authority currently holds for ``name``."""
    return MatchListResponse(game=name, matches=_master(name).game_ids())


@app.get("/api/games/{name}/matches/{game_id}", response_model=MatchSummary)
def get_match(name: str, game_id: str) -> MatchSummary:
    master = _master(name)
    try:
        state = master.get_state(game_id)
        metadata = master.metadata(game_id)
        log_length = len(master.get_log(game_id))
    except KeyError as exc:
        raise HTTPException(status_code=404, detail=f"Unknown game_id: {game_id}") from exc

    return MatchSummary(
        game=name,
        game_id=game_id,
        state_id=state.state_id,
        turn=state.ctx.turn,
        current_player=state.ctx.current_player,
        active_players=state.ctx.active_players,
        gameover=state.ctx.gameover,
        state_digest=state.state_digest(),
        log_length=log_length,
        players=[PlayerStatus(**player) for player in metadata["players"]],
    )


@app.get("/api/games/{name}/matches/{game_id}/log", response_model=None)
def get_log(
    name: str,
    game_id: str,
    format: str = Query(default="array"),
    player_id: str | None = Query(default=None),
) -> Any:
    """Return the log as ``player_id`` sees it, as an array (default) or JSONL text."""
    master = _master(name)
    try:
        entries = [entry.to_dict() for entry in master.get_log(game_id, player_id)]
    except KeyError as exc:
        raise HTTPException(status_code=404, detail=f"Unknown game_id: {game_id}") from exc

    if format == "jsonl":
        text = "\n".join(json_dumps(entry) for entry in entries)
        return PlainTextResponse(content=text, media_type="application/jsonl")
    return entries


def main() -> None:
    import uvicorn

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    authority.start()
    try:
        uvicorn.run(app, host=config.host, port=config.api_port)
    finally:
        authority.stop()


if __name__ == "__main__":
    main()
