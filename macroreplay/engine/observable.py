"""
Latest-value state shared between a background task and its observers.
"""

from __future__ import annotations
import logging
import threading
from typing import Callable, Generic, List, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Observable(Generic[T]):
    """
    A lock-guarded value with change notification.

    Readers only ever see the most recent value. Subscribers are called for
    every ``set``/``update`` on the thread that made the change, outside the
    lock. Threads can block until the value satisfies a predicate.

    Usage:
        state = Observable(PlaybackState.IDLE)
        unsubscribe = state.subscribe(print)
        state.set(PlaybackState.PLAYING)
        state.wait_for(lambda s: s is PlaybackState.IDLE, timeout=5)
    """

    def __init__(self, initial: T):
        self._value = initial
        self._condition = threading.Condition()
        self._subscribers: List[Callable[[T], None]] = []

    @property
    def value(self) -> T:
        with self._condition:
            return self._value

    def set(self, value: T) -> None:
        with self._condition:
            self._value = value
            self._condition.notify_all()
            subscribers = list(self._subscribers)
        self._dispatch(subscribers, value)

    def update(self, fn: Callable[[T], T]) -> T:
        """Atomically replace the value with ``fn(value)`` and return it."""
        with self._condition:
            value = fn(self._value)
            self._value = value
            self._condition.notify_all()
            subscribers = list(self._subscribers)
        self._dispatch(subscribers, value)
        return value

    def subscribe(self, callback: Callable[[T], None], replay: bool = True) -> Callable[[], None]:
        """
        Register a callback for every change.

        Args:
            callback: Called with each new value
            replay: Immediately call back with the current value

        Returns:
            A function that removes the subscription
        """
        with self._condition:
            self._subscribers.append(callback)
            current = self._value

        if replay:
            self._dispatch([callback], current)

        def unsubscribe() -> None:
            with self._condition:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def wait_for(self, predicate: Callable[[T], bool], timeout: Optional[float] = None) -> Optional[T]:
        """Block until ``predicate(value)`` holds; None if the timeout expires first."""
        with self._condition:
            if self._condition.wait_for(lambda: predicate(self._value), timeout):
                return self._value
            return None

    @staticmethod
    def _dispatch(subscribers: List[Callable[[T], None]], value: T) -> None:
        for callback in subscribers:
            try:
                callback(value)
            except Exception:
                logger.exception(f"Observer {callback!r} failed")
