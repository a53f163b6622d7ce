"""Minimal publish/subscribe primitive.

Observers are either plain callables or objects with an ``update``
method. A failing observer is logged and skipped so the remaining
observers still receive the value.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Generic, List, Protocol, TypeVar, Union

T = TypeVar("T")
T_contra = TypeVar("T_contra", contravariant=True)

logger = logging.getLogger(__name__)


class Observer(Protocol[T_contra]):
    def update(self, value: T_contra) -> None:
        ...


ObserverLike = Union[Observer[T], Callable[[T], None]]


class Observable(Generic[T]):
    """Holds a list of observers and notifies them in subscription order."""

    def __init__(self) -> None:
        self._observers: List[ObserverLike[T]] = []
        self._observers_lock = threading.RLock()

    def subscribe(self, observer: ObserverLike[T]) -> Callable[[], None]:
        """Register an observer.

        Returns:
            A callable that unsubscribes the observer.
        """
        with self._observers_lock:
            if observer not in self._observers:
                self._observers.append(observer)
        return lambda: self.unsubscribe(observer)

    def unsubscribe(self, observer: ObserverLike[T]) -> None:
        with self._observers_lock:
            if observer in self._observers:
                self._observers.remove(observer)

    @property
    def observer_count(self) -> int:
        return len(self._observers)

    def notify(self, value: T) -> None:
        with self._observers_lock:
            observers = list(self._observers)

        for observer in observers:
            update = getattr(observer, "update", observer)
            try:
                update(value)
            except Exception:
                logger.exception(
                    "Observer raised during notification",
                    extra={"observer": repr(observer)},
                )
