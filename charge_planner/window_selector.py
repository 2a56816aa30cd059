"""Cheapest contiguous charge window selection"""

import logging
import math
from datetime import tzinfo
from typing import List, Optional, Sequence, Tuple

from charge_planner.exceptions import InsufficientDataError
from charge_planner.models import BlockLengths, DayPeriods, HourRange, PriceSlot, Schedule, SLOT_WIDTH, Window

logger = logging.getLogger(__name__)


def filter_by_hours(prices: Sequence[PriceSlot], hour_range: HourRange, tz: Optional[tzinfo] = None) -> List[PriceSlot]:
    """Slots whose start hour falls inside hour_range, in input order"""
    return [slot for slot in prices if hour_range.contains(slot.local_hour(tz))]


def find_cheapest_block(slots: Sequence[PriceSlot], block_length: int) -> Tuple[int, float]:
    """Find the cheapest run of exactly block_length consecutive slots.

    Returns: (start_index, price_sum). The earliest run wins on ties.
    """
    if block_length < 1:
        raise ValueError(f"block_length must be >= 1, got {block_length}")
    if len(slots) < block_length:
        raise InsufficientDataError("block", len(slots), block_length)

    best_start = 0
    best_sum = float('inf')

    for start in range(0, len(slots) - block_length + 1):
        # fsum is exactly rounded, so equal-priced blocks tie regardless of order
        window_sum = math.fsum(slot.price for slot in slots[start:start + block_length])
        if window_sum < best_sum:
            best_sum = window_sum
            best_start = start

    return best_start, best_sum


class WindowSelector:
    """Picks the cheapest AM and PM charge blocks from a day's prices"""

    def __init__(self, tz: Optional[tzinfo] = None):
        self.tz = tz

    def select_window(self, prices: Sequence[PriceSlot], hour_range: HourRange, block_length: int,
                      name: str = "range") -> Window:
        """Cheapest block_length-slot window among slots starting inside hour_range"""
        pool = filter_by_hours(prices, hour_range, self.tz)
        if len(pool) < block_length:
            raise InsufficientDataError(f"{name} {hour_range}", len(pool), block_length)

        start, _ = find_cheapest_block(pool, block_length)
        block = pool[start:start + block_length]
        window = Window(
            start=block[0].start,
            end=block[-1].start + SLOT_WIDTH,
            prices=[slot.price for slot in block],
        )
        logger.debug(f"select_window name={name} range={hour_range} pool={len(pool)} "
                     f"block={block_length} window={window}")
        return window

    def select_windows(self, prices: Sequence[PriceSlot], charge_ranges: DayPeriods,
                       block_lengths: BlockLengths) -> Schedule:
        """Build the day's charge schedule: one AM and one PM window"""
        if prices:
            logger.info(f"Picking charging windows from {len(prices)} price slots "
                        f"{prices[0].start.isoformat()} to {prices[-1].end.isoformat()}")

        am_window = self.select_window(prices, charge_ranges.am, block_lengths.am, "AM charge")
        pm_window = self.select_window(prices, charge_ranges.pm, block_lengths.pm, "PM charge")

        logger.info(f"Picked AM window: {am_window.start.isoformat()} - {am_window.end.isoformat()}, "
                    f"prices: [{', '.join(f'{p:.3f}' for p in am_window.prices)}]")
        logger.info(f"Picked PM window: {pm_window.start.isoformat()} - {pm_window.end.isoformat()}, "
                    f"prices: [{', '.join(f'{p:.3f}' for p in pm_window.prices)}]")

        return Schedule(am_window=am_window, pm_window=pm_window)
