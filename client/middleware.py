"""The three pipeline stages every client installs: subscription, transport, log."""

from __future__ import annotations

import logging
from typing import Any, Callable

from engine.actions import Action, ActionType
from engine.log import LogEntry, last_state_id

from .store import Interceptor, Store

logger = logging.getLogger(__name__)

GapHandler = Callable[[int, int], None]


class SubscriptionInterceptor(Interceptor):
    """Notifies the client's subscription chain after every action."""

    def __init__(self, notify: Callable[[], None]):
        self.notify = notify

    def after(self, store: Store, action: Action, context: Any) -> None:
        self.notify()


class TransportInterceptor(Interceptor):
    """Relays non-client-only actions together with the state they were produced against."""

    def __init__(self, relay: Callable[[Any, Action], None]):
        self.relay = relay

    def before(self, store: Store, action: Action) -> Any:
        return store.get_state()

    def after(self, store: Store, action: Action, context: Any) -> None:
        if not action.client_only:
            self.relay(context, action)


class LogInterceptor(Interceptor):
    """Owns the client log and reconciles it against authority pushes.

    The log stays ordered by ``state_id`` with no duplicates: UPDATE entries
    already present (optimistically applied) are dropped, SYNC replaces the
    log wholesale, RESET clears it. Local UNDO/REDO leave it unchanged; the
    authority's undo/redo entries arrive through UPDATE.
    """

    def __init__(self, on_gap: GapHandler | None = None):
        self.log: list[LogEntry] = []
        self.on_gap = on_gap

    def after(self, store: Store, action: Action, context: Any) -> None:
        if action.type in (ActionType.MAKE_MOVE, ActionType.GAME_EVENT):
            state = store.get_state()
            if state is not None:
                self.log = [*self.log, *state.deltalog]
        elif action.type is ActionType.RESET:
            self.log = []
        elif action.type is ActionType.UPDATE:
            self._apply_update(action)
        elif action.type is ActionType.SYNC:
            self.log = list(action.log or ())

    def _apply_update(self, action: Action) -> None:
        last = last_state_id(self.log)
        incoming = [entry for entry in action.deltalog or () if entry.state_id > last]
        if not incoming:
            return
        first = incoming[0].state_id
        self.log = [*self.log, *incoming]
        if first > last + 1:
            logger.warning("Log gap detected: last state_id=%d, next incoming state_id=%d", last, first)
            if self.on_gap is not None:
                self.on_gap(last, first)


class TraceInterceptor(Interceptor):
    """Logs every dispatched action at DEBUG level (debug clients only)."""

    def __init__(self, label: str):
        self.label = label

    def before(self, store: Store, action: Action) -> Any:
        payload = action.payload
        logger.debug(
            "[%s] dispatch %s %s",
            self.label,
            action.type.value,
            f"{payload.type}{payload.args!r} by {payload.player_id!r}" if payload is not None else "",
        )
        return None
