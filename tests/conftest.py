"""Shared fixtures"""

from typing import List

import pytest

from charge_planner.models import PriceSlot

from tests.price_days import build_day, build_slots


@pytest.fixture
def make_slots():
    return build_slots


@pytest.fixture
def make_day():
    return build_day


@pytest.fixture
def typical_day() -> List[PriceSlot]:
    """Cheap night, morning and evening peaks, cheap early afternoon"""
    def price(hour: int) -> float:
        if hour < 6:
            return 0.40
        if 7 <= hour < 9:
            return 2.50
        if 13 <= hour < 16:
            return 0.60
        if 17 <= hour < 21:
            return 3.00
        return 1.20
    return build_day(price)


@pytest.fixture
def env_values():
    """Minimal valid environment for Config"""
    return {
        'FOXESS_TOKEN': 'dummy_token',
        'DEVICE_SN': 'TEST123',
    }
