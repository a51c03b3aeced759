"""Minimal synchronized store and the interceptor pipeline folded around it."""

from __future__ import annotations

import threading
from functools import reduce
from typing import Any, Callable

from engine.actions import Action

Reducer = Callable[[Any, Action], Any]
Dispatch = Callable[[Action], Action]
StoreCreator = Callable[[Reducer, Any], "Store"]
Enhancer = Callable[[StoreCreator], StoreCreator]


class Store:
    """Holds the current state and applies actions through the reducer.

    ``dispatch`` holds a re-entrant lock for the whole pipeline: a network
    receive thread and the caller thread never interleave inside one
    dispatch, but the pipeline may dispatch again on the same thread.
    """

    def __init__(self, reducer: Reducer, initial_state: Any = None):
        self._reducer = reducer
        self._state = initial_state
        self._lock = threading.RLock()
        self._dispatch: Dispatch = self._reduce

    @property
    def lock(self) -> threading.RLock:
        """The lock held for the duration of every dispatch."""
        return self._lock

    def get_state(self) -> Any:
        return self._state

    def dispatch(self, action: Action) -> Action:
        with self._lock:
            return self._dispatch(action)

    def wrap_dispatch(self, wrapper: Callable[[Dispatch], Dispatch]) -> None:
        """Replace the dispatch chain with ``wrapper(current_chain)``."""
        with self._lock:
            self._dispatch = wrapper(self._dispatch)

    def _reduce(self, action: Action) -> Action:
        self._state = self._reducer(self._state, action)
        return action


def create_store(reducer: Reducer, initial_state: Any = None, enhancer: Enhancer | None = None) -> Store:
    """Create a store, letting ``enhancer`` wrap the creation when given."""
    if enhancer is not None:
        return enhancer(_create_plain_store)(reducer, initial_state)
    return _create_plain_store(reducer, initial_state)


def _create_plain_store(reducer: Reducer, initial_state: Any) -> Store:
    return Store(reducer, initial_state)


class Interceptor:
    """One pipeline stage with hooks around the inner dispatch."""

    def before(self, store: Store, action: Action) -> Any:
        """Run before the inner dispatch; the return value is handed to ``after``."""
        return None

    def after(self, store: Store, action: Action, context: Any) -> None:
        """Run after the inner dispatch has updated the store."""


def apply_interceptors(*interceptors: Interceptor) -> Enhancer:
    """Return an enhancer that folds ``interceptors`` around the reducer step.

    The first interceptor is outermost: ``before`` hooks run in list order,
    ``after`` hooks in reverse.
    """

    def _wrap(next_dispatch: Dispatch, interceptor: Interceptor, store: Store) -> Dispatch:
        def _dispatch(action: Action) -> Action:
            context = interceptor.before(store, action)
            result = next_dispatch(action)
            interceptor.after(store, action, context)
            return result

        return _dispatch

    def enhancer(create: StoreCreator) -> StoreCreator:
        def _create(reducer: Reducer, initial_state: Any) -> Store:
            store = create(reducer, initial_state)
            store.wrap_dispatch(
                lambda base: reduce(
                    lambda chain, interceptor: _wrap(chain, interceptor, store),
                    reversed(interceptors),
                    base,
                )
            )
            return store

        return _create

    return enhancer


def compose(*enhancers: Enhancer) -> Enhancer:
    """Compose enhancers right to left: ``compose(f, g)(create) == f(g(create))``."""
    if not enhancers:
        return lambda create: create
    return reduce(lambda f, g: lambda create: f(g(create)), enhancers)
