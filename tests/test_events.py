"""Unit tests for the event hub."""

from __future__ import annotations

import pytest

from slug_chase.events import CAPTURED, COINS_AWARDED, EventHub

pytestmark = pytest.mark.unit


class TestEventHub:
    def test_fan_out_in_order(self):
        hub = EventHub()
        seen: list[tuple[str, int]] = []
        hub.subscribe(COINS_AWARDED, lambda n: seen.append(("a", n)))
        hub.subscribe(COINS_AWARDED, lambda n: seen.append(("b", n)))
        hub.emit(COINS_AWARDED, 3)
        assert seen == [("a", 3), ("b", 3)]

    def test_emit_without_listeners(self):
        EventHub().emit(CAPTURED)

    def test_failing_listener_does_not_stop_others(self):
        hub = EventHub()
        seen: list[int] = []

        def _boom(n: int) -> None:
            raise RuntimeError("listener bug")

        hub.subscribe(COINS_AWARDED, _boom)
        hub.subscribe(COINS_AWARDED, seen.append)
        hub.emit(COINS_AWARDED, 1)
        assert seen == [1]

    def test_unsubscribe(self):
        hub = EventHub()
        seen: list[int] = []
        unsubscribe = hub.subscribe(COINS_AWARDED, seen.append)
        unsubscribe()
        unsubscribe()
        hub.emit(COINS_AWARDED, 1)
        assert seen == []

    def test_unknown_event_rejected(self):
        with pytest.raises(ValueError):
            EventHub().subscribe("teleported", print)
