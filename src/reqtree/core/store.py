"""
Observable State Container

A store holds one immutable state value and a pure reducer. Dispatching an
action replaces the state in one step and notifies subscribers, so readers
never observe a partially applied edit.
"""

from typing import Callable, Generic, List, TypeVar

from .logging import get_logger

logger = get_logger(__name__)

S = TypeVar("S")
A = TypeVar("A")

Reducer = Callable[[S, A], S]
Listener = Callable[[S, S], None]


class Store(Generic[S, A]):
    """
    Injectable state container with subscription support.

    Subscribers are called with ``(old_state, new_state)`` after every
    dispatch that produced a different state object.
    """

    def __init__(self, reducer: Reducer, initial_state: S):
        self._reducer = reducer
        self._state = initial_state
        self._listeners: List[Listener] = []

    @property
    def state(self) -> S:
        return self._state

    def dispatch(self, action: A) -> S:
        """
        Apply an action and return the new state.

        Exceptions raised by the reducer propagate and leave the state as it was.
        """
        old_state = self._state
        new_state = self._reducer(old_state, action)
        if new_state is old_state:
            return new_state

        self._state = new_state
        self._notify(old_state, new_state)
        return new_state

    def replace(self, state: S) -> S:
        """Swap the whole state, e.g. after loading a snapshot."""
        old_state = self._state
        self._state = state
        if state is not old_state:
            self._notify(old_state, state)
        return state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Register a listener.

        Returns:
            A callable that removes the listener again
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, old_state: S, new_state: S) -> None:
        for listener in list(self._listeners):
            try:
                listener(old_state, new_state)
            except Exception as e:
                logger.error(f"Store listener {listener!r} failed: {e}")
