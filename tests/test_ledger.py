"""Unit tests for the distance -> coin ledger."""

from __future__ import annotations

import random

import pytest

from slug_chase.events import COINS_AWARDED, EventHub
from slug_chase.ledger import RewardLedger

pytestmark = pytest.mark.unit


class TestRewardLedger:
    def test_remainder_carries_over(self):
        hub = EventHub()
        awarded: list[int] = []
        hub.subscribe(COINS_AWARDED, awarded.append)
        ledger = RewardLedger(hub)

        for meters in (12.0, 8.0, 15.0):
            ledger.credit(meters)

        assert sum(awarded) == 3
        assert ledger.coins == 3
        assert ledger.remainder_m == pytest.approx(5.0)

    def test_no_coin_before_ten_meters(self):
        hub = EventHub()
        awarded: list[int] = []
        hub.subscribe(COINS_AWARDED, awarded.append)
        ledger = RewardLedger(hub)
        assert ledger.credit(9.5) == 0
        assert awarded == []
        assert ledger.credit(0.5) == 1

    def test_large_credit_awards_multiple_at_once(self):
        ledger = RewardLedger()
        assert ledger.credit(57.0) == 5
        assert ledger.remainder_m == pytest.approx(7.0)

    def test_never_pays_early_and_never_loses_more_than_one_coin(self):
        rng = random.Random(7)
        ledger = RewardLedger()
        for _ in range(2000):
            ledger.credit(rng.uniform(0.0, 40.0))
            assert ledger.coins * 10 <= ledger.credited_m + 1e-6
            assert ledger.credited_m - ledger.coins * 10 < 10.0 + 1e-6

    def test_negative_distance_rejected(self):
        with pytest.raises(ValueError):
            RewardLedger().credit(-1.0)

    def test_reset(self):
        ledger = RewardLedger()
        ledger.credit(25.0)
        ledger.reset()
        assert (ledger.coins, ledger.remainder_m, ledger.credited_m) == (0, 0.0, 0.0)
