"""Data models for the charge planner"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, tzinfo
from typing import Any, Dict, List, Optional

SLOT_MINUTES = 15
SLOT_WIDTH = timedelta(minutes=SLOT_MINUTES)
SLOTS_PER_HOUR = 60 // SLOT_MINUTES


@dataclass(frozen=True)
class PriceSlot:
    """One 15-minute day-ahead price slot"""
    price: float
    eur_price: float
    exchange_rate: float
    start: datetime
    end: datetime

    @classmethod
    def from_api(cls, record: Dict[str, Any]) -> 'PriceSlot':
        """Build a slot from an elprisetjustnu.se record.

        Timestamps carry their UTC offset, e.g. "2025-11-23T23:45:00+01:00".
        """
        return cls(
            price=float(record['SEK_per_kWh']),
            eur_price=float(record['EUR_per_kWh']),
            exchange_rate=float(record['EXR']),
            start=datetime.fromisoformat(record['time_start']),
            end=datetime.fromisoformat(record['time_end']),
        )

    def local_hour(self, tz: Optional[tzinfo] = None) -> int:
        """Wall-clock hour of the slot start, in tz if given, else in the slot's own offset"""
        if tz is None:
            return self.start.hour
        return self.start.astimezone(tz).hour


@dataclass(frozen=True)
class HourRange:
    """Half-open [start_hour, end_hour) range of wall-clock hours"""
    start_hour: int
    end_hour: int

    def contains(self, hour: int) -> bool:
        return self.start_hour <= hour < self.end_hour

    @property
    def width_slots(self) -> int:
        return max(0, self.end_hour - self.start_hour) * SLOTS_PER_HOUR

    def __str__(self):
        return f"{self.start_hour:02d}:00-{self.end_hour:02d}:00"


@dataclass(frozen=True)
class DayPeriods:
    """AM and PM hour ranges, used for both charge and discharge periods"""
    am: HourRange
    pm: HourRange


@dataclass(frozen=True)
class BlockLengths:
    """Number of contiguous slots to charge in each period"""
    am: int = 20
    pm: int = 8


@dataclass(frozen=True)
class Window:
    """A selected contiguous run of price slots"""
    start: datetime
    end: datetime
    prices: List[float] = field(default_factory=list)

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    @property
    def avg_price(self) -> float:
        return sum(self.prices) / len(self.prices) if self.prices else 0.0

    def __repr__(self):
        return (f"{self.start.strftime('%H:%M')}-{self.end.strftime('%H:%M')} "
                f"@ {self.avg_price:.3f} ({len(self.prices)} slots)")


@dataclass(frozen=True)
class Schedule:
    """The day's two charge windows"""
    am_window: Window
    pm_window: Window

    @property
    def prices(self) -> List[float]:
        return list(self.am_window.prices) + list(self.pm_window.prices)


@dataclass(frozen=True)
class BatteryEconomics:
    """Battery cost parameters used for the degradation estimate"""
    total_capacity_kwh: float
    cost_per_kwh: float
    depth_of_discharge: float
    cycle_life: float
    round_trip_efficiency: float


@dataclass(frozen=True)
class ClockTime:
    hour: int
    minute: int

    @classmethod
    def of(cls, moment: datetime, tz: Optional[tzinfo] = None) -> 'ClockTime':
        local = moment.astimezone(tz) if tz is not None else moment
        return cls(local.hour, local.minute)

    def to_dict(self) -> Dict[str, int]:
        return {'hour': self.hour, 'minute': self.minute}

    def __str__(self):
        return f"{self.hour:02d}:{self.minute:02d}"


MIDNIGHT = ClockTime(0, 0)


@dataclass(frozen=True)
class DeviceSchedule:
    """Force-charge schedule as understood by the FoxESS API"""
    enable1: bool
    enable2: bool
    start_time1: ClockTime = MIDNIGHT
    end_time1: ClockTime = MIDNIGHT
    start_time2: ClockTime = MIDNIGHT
    end_time2: ClockTime = MIDNIGHT

    @classmethod
    def disabled(cls) -> 'DeviceSchedule':
        return cls(enable1=False, enable2=False)

    @classmethod
    def from_schedule(cls, schedule: Schedule, tz: Optional[tzinfo] = None) -> 'DeviceSchedule':
        """Both windows enabled, times expressed in market wall-clock time"""
        return cls(
            enable1=True,
            enable2=True,
            start_time1=ClockTime.of(schedule.am_window.start, tz),
            end_time1=ClockTime.of(schedule.am_window.end, tz),
            start_time2=ClockTime.of(schedule.pm_window.start, tz),
            end_time2=ClockTime.of(schedule.pm_window.end, tz),
        )

    def to_payload(self) -> Dict[str, Any]:
        return {
            'enable1': self.enable1,
            'enable2': self.enable2,
            'startTime1': self.start_time1.to_dict(),
            'endTime1': self.end_time1.to_dict(),
            'startTime2': self.start_time2.to_dict(),
            'endTime2': self.end_time2.to_dict(),
        }

    def __repr__(self):
        if not (self.enable1 or self.enable2):
            return "DISABLED"
        return (f"P1 {self.start_time1}-{self.end_time1} ({'on' if self.enable1 else 'off'}), "
                f"P2 {self.start_time2}-{self.end_time2} ({'on' if self.enable2 else 'off'})")
