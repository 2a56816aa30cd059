"""
Tests for charge window selection
Run with: uv run pytest tests/test_window_selector.py -v
"""

import math
import random
from dataclasses import replace
from datetime import timedelta, timezone

import pytest

from charge_planner.exceptions import InsufficientDataError
from charge_planner.models import BlockLengths, DayPeriods, HourRange
from charge_planner.window_selector import WindowSelector, filter_by_hours, find_cheapest_block

from tests.price_days import DAY_START, STOCKHOLM, build_slots


@pytest.fixture
def selector():
    return WindowSelector(STOCKHOLM)


class TestFindCheapestBlock:
    """Test the sliding-window minimum-sum search"""

    def test_picks_cheapest_run(self, make_slots):
        slots = make_slots([5, 4, 1, 1, 1, 6, 0.5, 7])
        start, total = find_cheapest_block(slots, 3)
        assert start == 2
        assert total == 3

    def test_earliest_run_wins_ties(self, make_slots):
        slots = make_slots([3, 1, 1, 3, 1, 1, 3])
        start, _ = find_cheapest_block(slots, 2)
        assert start == 1

    def test_tie_break_is_reproducible(self, make_slots):
        slots = make_slots([2, 2, 2, 2, 2, 2])
        starts = {find_cheapest_block(slots, 3)[0] for _ in range(10)}
        assert starts == {0}

    def test_block_equal_to_pool(self, make_slots):
        slots = make_slots([1, 2, 3])
        assert find_cheapest_block(slots, 3) == (0, 6)

    def test_pool_too_short(self, make_slots):
        with pytest.raises(InsufficientDataError):
            find_cheapest_block(make_slots([1, 2]), 3)

    def test_rejects_non_positive_block_length(self, make_slots):
        with pytest.raises(ValueError):
            find_cheapest_block(make_slots([1, 2]), 0)

    def test_negative_prices(self, make_slots):
        slots = make_slots([0.2, -0.1, -0.3, 0.4, -0.05])
        start, total = find_cheapest_block(slots, 2)
        assert start == 1
        assert total == pytest.approx(-0.4)

    @pytest.mark.parametrize("seed", [1, 7, 42])
    def test_global_minimality(self, make_slots, seed):
        rng = random.Random(seed)
        prices = [round(rng.uniform(-0.5, 3.0), 3) for _ in range(40)]
        slots = make_slots(prices)
        length = 8

        start, total = find_cheapest_block(slots, length)
        all_sums = [math.fsum(prices[i:i + length]) for i in range(len(prices) - length + 1)]
        assert total == min(all_sums)
        assert start == all_sums.index(min(all_sums))

    @pytest.mark.parametrize("factor", [0.5, 4.0])
    def test_scaling_prices_keeps_selection(self, make_slots, factor):
        rng = random.Random(3)
        prices = [round(rng.uniform(0.1, 2.0), 2) for _ in range(30)]
        original, _ = find_cheapest_block(make_slots(prices), 6)
        scaled, _ = find_cheapest_block(make_slots([p * factor for p in prices]), 6)
        assert scaled == original


class TestFilterByHours:

    def test_half_open_range(self, make_day):
        slots = make_day(lambda hour: float(hour))
        pool = filter_by_hours(slots, HourRange(7, 9), STOCKHOLM)
        assert len(pool) == 8
        assert {slot.start.hour for slot in pool} == {7, 8}

    def test_preserves_order(self, make_day):
        slots = make_day(lambda hour: 1.0)
        pool = filter_by_hours(slots, HourRange(12, 17))
        assert [s.start for s in pool] == sorted(s.start for s in pool)

    def test_uses_market_timezone(self, make_day):
        # Same instants expressed in UTC still filter on Stockholm wall-clock hours
        utc_slots = [replace(s, start=s.start.astimezone(timezone.utc), end=s.end.astimezone(timezone.utc))
                     for s in make_day(lambda hour: 1.0)]
        assert utc_slots[0].start.hour == 23

        pool = filter_by_hours(utc_slots, HourRange(0, 1), STOCKHOLM)
        assert len(pool) == 4
        assert pool[0].start == DAY_START


class TestSelectWindows:
    """Test AM/PM schedule construction"""

    def test_scattered_cheap_slots_returns_contiguous_block(self, selector, make_slots):
        # 28 slots from 00:00, every third slot cheap
        prices = [0.05 if i % 3 == 0 else 0.50 for i in range(28)]
        slots = make_slots(prices)

        window = selector.select_window(slots, HourRange(0, 7), 20)

        assert window.start == slots[0].start
        assert window.start.hour == 0 and window.start.minute == 0
        assert window.duration == timedelta(hours=5)
        assert window.prices == prices[:20]

    def test_exact_length_pool_returns_whole_pool(self, selector, make_day):
        slots = make_day(lambda hour: 1.0 + hour / 10)
        window = selector.select_window(slots, HourRange(0, 5), 20)

        assert window.start == slots[0].start
        assert window.end == slots[19].end
        assert len(window.prices) == 20

    def test_short_pool_raises(self, selector, make_day):
        slots = make_day(lambda hour: 1.0)
        with pytest.raises(InsufficientDataError) as exc_info:
            selector.select_window(slots, HourRange(0, 4), 20, "AM charge")

        assert exc_info.value.available == 16
        assert exc_info.value.required == 20
        assert "AM charge" in str(exc_info.value)

    def test_window_end_is_one_slot_past_last_start(self, selector, typical_day):
        window = selector.select_window(typical_day, HourRange(12, 17), 8)
        assert window.end - window.start == timedelta(minutes=15) * 8

    def test_select_windows_typical_day(self, selector, typical_day):
        schedule = selector.select_windows(
            typical_day,
            DayPeriods(am=HourRange(0, 7), pm=HourRange(12, 17)),
            BlockLengths(am=20, pm=8),
        )

        # Night is flat at 0.40 from 00:00-06:00, earliest 5h block wins
        assert schedule.am_window.start.hour == 0
        assert schedule.am_window.duration == timedelta(hours=5)
        assert schedule.am_window.prices == [0.40] * 20

        # 13:00-16:00 is the cheap afternoon stretch
        assert schedule.pm_window.start.hour == 13
        assert schedule.pm_window.duration == timedelta(hours=2)
        assert schedule.pm_window.prices == [0.60] * 8

    def test_pm_short_pool_raises(self, selector, typical_day):
        with pytest.raises(InsufficientDataError):
            selector.select_windows(
                typical_day,
                DayPeriods(am=HourRange(0, 7), pm=HourRange(12, 13)),
                BlockLengths(am=20, pm=8),
            )

    def test_partial_day_from_api(self, selector):
        # Only the evening hours were published
        evening = build_slots([1.0, 0.2, 0.3, 1.0], start=DAY_START + timedelta(hours=21))
        with pytest.raises(InsufficientDataError) as exc_info:
            selector.select_windows(
                evening,
                DayPeriods(am=HourRange(0, 7), pm=HourRange(12, 23)),
                BlockLengths(am=20, pm=2),
            )
        assert exc_info.value.available == 0
