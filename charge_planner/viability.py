"""Economic viability of a charge schedule, net of battery degradation"""

import logging
from dataclasses import dataclass
from datetime import tzinfo
from typing import Iterable, List, Optional, Sequence

from charge_planner.exceptions import EmptyPoolError, InvalidEconomicsError
from charge_planner.models import BatteryEconomics, DayPeriods, PriceSlot, Schedule

logger = logging.getLogger(__name__)


def degradation_cost_per_kwh(economics: BatteryEconomics) -> float:
    """Degradation cost per delivered kWh.

    Battery replacement cost is spread over the rated lifetime throughput
    (cycle_life full cycles of capacity * DoD), then divided by round-trip
    efficiency since energy lost in the round trip is paid for too.
    """
    checks = (
        ('cost_per_kwh', economics.cost_per_kwh),
        ('total_capacity_kwh', economics.total_capacity_kwh),
        ('depth_of_discharge', economics.depth_of_discharge),
        ('cycle_life', economics.cycle_life),
        ('round_trip_efficiency', economics.round_trip_efficiency),
    )
    for name, value in checks:
        if not value > 0:
            raise InvalidEconomicsError(name, value)

    replacement_cost = economics.cost_per_kwh * economics.total_capacity_kwh
    usable_capacity_per_cycle = economics.total_capacity_kwh * economics.depth_of_discharge
    raw_cost_per_kwh = replacement_cost / (economics.cycle_life * usable_capacity_per_cycle)
    return raw_cost_per_kwh / economics.round_trip_efficiency


def average_price(prices: Iterable[float], what: str = "prices") -> float:
    values = list(prices)
    if not values:
        raise EmptyPoolError(f"no {what} to average")
    return sum(values) / len(values)


@dataclass(frozen=True)
class ViabilityReport:
    """Outcome of one viability check"""
    expected_discharge_price: Optional[float]
    avg_charge_price: Optional[float]
    degradation_cost: Optional[float]
    reason: str = ""

    @property
    def margin(self) -> Optional[float]:
        if None in (self.expected_discharge_price, self.avg_charge_price, self.degradation_cost):
            return None
        return self.expected_discharge_price - self.avg_charge_price - self.degradation_cost

    @property
    def worth_it(self) -> bool:
        margin = self.margin
        return margin is not None and margin > 0


class ViabilityEvaluator:
    """Decides whether charging in the selected windows pays off"""

    def __init__(self, tz: Optional[tzinfo] = None):
        self.tz = tz

    def discharge_slots(self, prices: Sequence[PriceSlot], discharge_ranges: DayPeriods) -> List[PriceSlot]:
        """Slots inside either the AM or the PM discharge range"""
        return [
            slot for slot in prices
            if discharge_ranges.am.contains(slot.local_hour(self.tz))
            or discharge_ranges.pm.contains(slot.local_hour(self.tz))
        ]

    def evaluate(self, prices: Sequence[PriceSlot], discharge_ranges: DayPeriods, schedule: Schedule,
                 economics: BatteryEconomics) -> ViabilityReport:
        try:
            expected_discharge_price = average_price(
                (slot.price for slot in self.discharge_slots(prices, discharge_ranges)), "discharge prices")
        except EmptyPoolError as e:
            logger.info(f"Not worth charging: {e}")
            return ViabilityReport(None, None, None, reason=str(e))
        logger.info(f"Expected average discharge price: {expected_discharge_price:.4f} SEK/kWh")

        try:
            avg_charge_price = average_price(schedule.prices, "charge window prices")
        except EmptyPoolError as e:
            logger.info(f"Not worth charging: {e}")
            return ViabilityReport(expected_discharge_price, None, None, reason=str(e))
        logger.info(f"Average charge price in selected windows: {avg_charge_price:.4f} SEK/kWh")

        degradation_cost = degradation_cost_per_kwh(economics)
        logger.info(f"Degradation cost per delivered kWh: {degradation_cost:.4f} SEK/kWh")

        report = ViabilityReport(expected_discharge_price, avg_charge_price, degradation_cost)
        logger.debug(f"viability.evaluate margin={report.margin:.4f} worth_it={report.worth_it}")
        return report

    def is_worth_it(self, prices: Sequence[PriceSlot], discharge_ranges: DayPeriods, schedule: Schedule,
                    economics: BatteryEconomics) -> bool:
        return self.evaluate(prices, discharge_ranges, schedule, economics).worth_it
