import logging
import math
import os
from typing import Any, Callable, Dict, Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml

from charge_planner.exceptions import ConfigError
from charge_planner.models import BatteryEconomics, BlockLengths, DayPeriods, HourRange

logger = logging.getLogger(__name__)

PRICE_AREAS = ("SE1", "SE2", "SE3", "SE4")

# key -> (type, default, min, max)
NUMERIC_KEYS: Dict[str, Tuple[Callable, Any, Optional[float], Optional[float]]] = {
    'battery_capacity_kwh': (float, 16.6, 0, None),
    'battery_cost_per_kwh': (float, 10000, 0, None),
    'battery_dod': (float, 0.9, 0, 1),
    'battery_cycle_life': (float, 10000, 0, None),
    'battery_efficiency': (float, 0.95, 0, 1),
    'am_charge_start_hour': (int, 0, 0, 12),
    'am_charge_end_hour': (int, 7, 0, 12),
    'pm_charge_start_hour': (int, 12, 12, 23),
    'pm_charge_end_hour': (int, 17, 12, 23),
    'am_discharge_start_hour': (int, 7, 0, 12),
    'am_discharge_end_hour': (int, 9, 0, 12),
    'pm_discharge_start_hour': (int, 17, 13, 23),
    'pm_discharge_end_hour': (int, 21, 13, 23),
    'am_charge_slots': (int, 20, 1, None),
    'pm_charge_slots': (int, 8, 1, None),
    'plan_cutoff_hour': (int, 14, 0, 23),
}

STRING_DEFAULTS = {
    'price_area': 'SE3',
    'timezone': 'Europe/Stockholm',
}

REQUIRED_KEYS = ('foxess_token', 'device_sn')


def load_env(env_path: str = '.env') -> None:
    if os.path.exists(env_path):
        with open(env_path) as f:
            for line in f:
                line = line.strip()
                if line and not line.startswith('#') and '=' in line:
                    key, value = line.split('=', 1)
                    os.environ.setdefault(key.strip(), value.strip())


class Config:
    def __init__(self, config_path: str = 'config.yaml', env: Optional[Dict[str, str]] = None):
        self.config_path = config_path
        if env is None:
            load_env()
            env = dict(os.environ)
        self.env = env
        self.data = self.load_config()
        self.validate_config()

    def load_config(self) -> Dict:
        data: Dict[str, Any] = {}
        if self.config_path and os.path.exists(self.config_path):
            with open(self.config_path) as f:
                data = yaml.safe_load(f) or {}
        else:
            logger.info(f"No config file at {self.config_path}, using defaults and environment")

        # Environment variables win over the file
        for key in (*NUMERIC_KEYS, *STRING_DEFAULTS, *REQUIRED_KEYS):
            env_key = key.upper()
            if env_key in self.env:
                data[key] = self.env[env_key]
        return data

    def validate_config(self) -> None:
        for key in REQUIRED_KEYS:
            if not str(self.data.get(key) or '').strip():
                raise ConfigError(key, f"missing {key.upper()}")

        for key, default in STRING_DEFAULTS.items():
            self.data[key] = str(self.data.get(key, default))
        if self.data['price_area'] not in PRICE_AREAS:
            raise ConfigError('price_area', f"invalid price area, must be one of: {', '.join(PRICE_AREAS)}")
        try:
            ZoneInfo(self.data['timezone'])
        except (ZoneInfoNotFoundError, ValueError):
            raise ConfigError('timezone', f"unknown timezone {self.data['timezone']!r}")

        for key, (cast, default, minimum, maximum) in NUMERIC_KEYS.items():
            raw = self.data.get(key, default)
            try:
                value = float(raw)
            except (TypeError, ValueError):
                raise ConfigError(key, f"not a number: {raw!r}")
            if not math.isfinite(value):
                raise ConfigError(key, "must be a finite number")
            if cast is int:
                if not value.is_integer():
                    raise ConfigError(key, f"must be a whole number, got {raw!r}")
                value = int(value)
            if minimum is not None and value < minimum:
                raise ConfigError(key, f"must be >= {minimum}")
            if maximum is not None and value > maximum:
                raise ConfigError(key, f"must be <= {maximum}")
            self.data[key] = value

        if self.data['battery_efficiency'] <= 0:
            raise ConfigError('battery_efficiency', "must be > 0")

        for period in ('am_charge', 'pm_charge', 'am_discharge', 'pm_discharge'):
            start, end = self.data[f'{period}_start_hour'], self.data[f'{period}_end_hour']
            if start >= end:
                raise ConfigError(f'{period}_start_hour', f"start hour {start} must be before end hour {end}")

        charge_ranges = self.charge_ranges
        for period, hour_range, slots in (('am', charge_ranges.am, self.data['am_charge_slots']),
                                          ('pm', charge_ranges.pm, self.data['pm_charge_slots'])):
            if hour_range.width_slots < slots:
                raise ConfigError(f'{period}_charge_slots',
                                  f"{slots} slots do not fit in {period.upper()} charge range {hour_range} "
                                  f"({hour_range.width_slots} slots)")

    @property
    def charge_ranges(self) -> DayPeriods:
        return DayPeriods(
            am=HourRange(self.data['am_charge_start_hour'], self.data['am_charge_end_hour']),
            pm=HourRange(self.data['pm_charge_start_hour'], self.data['pm_charge_end_hour']),
        )

    @property
    def discharge_ranges(self) -> DayPeriods:
        return DayPeriods(
            am=HourRange(self.data['am_discharge_start_hour'], self.data['am_discharge_end_hour']),
            pm=HourRange(self.data['pm_discharge_start_hour'], self.data['pm_discharge_end_hour']),
        )

    @property
    def block_lengths(self) -> BlockLengths:
        return BlockLengths(am=self.data['am_charge_slots'], pm=self.data['pm_charge_slots'])

    @property
    def battery(self) -> BatteryEconomics:
        return BatteryEconomics(
            total_capacity_kwh=self.data['battery_capacity_kwh'],
            cost_per_kwh=self.data['battery_cost_per_kwh'],
            depth_of_discharge=self.data['battery_dod'],
            cycle_life=self.data['battery_cycle_life'],
            round_trip_efficiency=self.data['battery_efficiency'],
        )

    @property
    def timezone(self) -> ZoneInfo:
        return ZoneInfo(self.data['timezone'])

    def __getitem__(self, key):
        return self.data[key]

    def get(self, key, default=None):
        return self.data.get(key, default)
