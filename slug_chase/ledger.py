"""Distance -> coin exchange."""

from __future__ import annotations

import math

from slug_chase.events import COINS_AWARDED, EventHub

METERS_PER_COIN = 10.0


class RewardLedger:
    """Awards one coin per ``meters_per_coin`` of validated distance.

    The sub-coin remainder is carried over between calls, so coins are never lost to
    rounding and never paid out before the distance is actually covered.
    """

    def __init__(self, events: EventHub | None = None, meters_per_coin: float = METERS_PER_COIN) -> None:
        if meters_per_coin <= 0:
            raise ValueError("meters_per_coin 必须为正数")
        self._events = events or EventHub()
        self._meters_per_coin = meters_per_coin
        self._remainder_m = 0.0
        self._credited_m = 0.0
        self._coins = 0

    @property
    def coins(self) -> int:
        return self._coins

    @property
    def remainder_m(self) -> float:
        return self._remainder_m

    @property
    def credited_m(self) -> float:
        return self._credited_m

    def credit(self, distance_m: float) -> int:
        """Add validated distance and return the number of coins awarded by this call."""

        if distance_m < 0:
            raise ValueError(f"距离不能为负：{distance_m}")
        self._credited_m += distance_m
        self._remainder_m += distance_m
        if self._remainder_m < self._meters_per_coin:
            return 0

        awarded = math.floor(self._remainder_m / self._meters_per_coin)
        self._remainder_m -= awarded * self._meters_per_coin
        self._coins += awarded
        self._events.emit(COINS_AWARDED, awarded)
        return awarded

    def reset(self) -> None:
        self._remainder_m = 0.0
        self._credited_m = 0.0
        self._coins = 0
