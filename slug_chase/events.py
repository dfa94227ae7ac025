"""Fire-and-forget notifications emitted by the simulation core."""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Callable, Final

logger = logging.getLogger(__name__)

SPEED_UPDATED: Final[str] = "speed_updated"
DISTANCE_ACCRUED: Final[str] = "distance_accrued"
COINS_AWARDED: Final[str] = "coins_awarded"
SEPARATION_UPDATED: Final[str] = "separation_updated"
CAPTURED: Final[str] = "captured"

EVENT_NAMES: Final[frozenset[str]] = frozenset(
    {SPEED_UPDATED, DISTANCE_ACCRUED, COINS_AWARDED, SEPARATION_UPDATED, CAPTURED}
)

Listener = Callable[..., Any]


class EventHub:
    """Fan-out of named events to any number of listeners.

    Listeners run synchronously in subscription order. A listener that raises is
    logged and skipped so that the remaining listeners (and the core) keep going.
    """

    def __init__(self) -> None:
        self._listeners: dict[str, list[Listener]] = defaultdict(list)

    def subscribe(self, name: str, listener: Listener) -> Callable[[], None]:
        """Register a listener and return a function that removes it again."""

        if name not in EVENT_NAMES:
            raise ValueError(f"未知事件：{name!r}")
        self._listeners[name].append(listener)

        def _unsubscribe() -> None:
            try:
                self._listeners[name].remove(listener)
            except ValueError:
                pass

        return _unsubscribe

    def emit(self, name: str, *args: Any) -> None:
        for listener in list(self._listeners.get(name, ())):
            try:
                listener(*args)
            except Exception:
                logger.exception("事件监听器出错：%s", name)
