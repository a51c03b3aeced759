"""Builds the named move and event callables exposed on a client."""

from __future__ import annotations

from typing import Any, Callable, Iterable

from engine.actions import Action, game_event, make_move

from .store import Store

ActionCreator = Callable[..., Action]


class DispatcherSet(dict):
    """Name -> dispatcher mapping with attribute access (``client.moves.click_cell(4)``)."""

    def __getattr__(self, name: str) -> Callable[..., None]:
        try:
            return self[name]
        except KeyError as exc:
            raise AttributeError(name) from exc


def create_dispatchers(
    action_creator: ActionCreator,
    names: Iterable[str],
    store: Store,
    player_id: str | None,
    credentials: str | None,
    multiplayer: bool,
) -> DispatcherSet:
    """Return one dispatcher per name, bound to the given identity."""
    dispatchers = DispatcherSet()
    for name in names:
        dispatchers[name] = _make_dispatcher(action_creator, name, store, player_id, credentials, multiplayer)
    return dispatchers


def _make_dispatcher(
    action_creator: ActionCreator,
    name: str,
    store: Store,
    player_id: str | None,
    credentials: str | None,
    multiplayer: bool,
) -> Callable[..., None]:
    def _dispatch(*args: Any) -> None:
        acting = player_id
        if acting is None and not multiplayer:
            state = store.get_state()
            if state is not None:
                acting = state.ctx.current_player
        store.dispatch(action_creator(name, args, acting, credentials))

    _dispatch.__name__ = name
    return _dispatch


def create_move_dispatchers(
    names: Iterable[str],
    store: Store,
    player_id: str | None,
    credentials: str | None,
    multiplayer: bool,
) -> DispatcherSet:
    return create_dispatchers(make_move, names, store, player_id, credentials, multiplayer)


def create_event_dispatchers(
    names: Iterable[str],
    store: Store,
    player_id: str | None,
    credentials: str | None,
    multiplayer: bool,
) -> DispatcherSet:
    return create_dispatchers(game_event, names, store, player_id, credentials, multiplayer)
