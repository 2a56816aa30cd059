"""Day-ahead price client for elprisetjustnu.se"""

import logging
from datetime import date
from typing import List, Optional

import aiohttp

from charge_planner.exceptions import PriceFetchError
from charge_planner.models import PriceSlot

logger = logging.getLogger(__name__)

BASE_URL = "https://www.elprisetjustnu.se/api/v1/prices"


class ElprisetClient:
    """Fetches 15-minute day-ahead prices for a Swedish price area"""

    def __init__(self, price_area: str, timeout_seconds: float = 30):
        self.price_area = price_area
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self._session: Optional[aiohttp.ClientSession] = None

    def url_for(self, day: date) -> str:
        return f"{BASE_URL}/{day.year}/{day.month:02d}-{day.day:02d}_{self.price_area}.json"

    @property
    def session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self.timeout)
        return self._session

    async def get_day_prices(self, day: date) -> List[PriceSlot]:
        """Get the price slots for a day, in API order"""
        url = self.url_for(day)
        logger.info(f"Fetching prices from URL: {url}")

        async with self.session.get(url) as response:
            if response.status != 200:
                text = await response.text()
                raise PriceFetchError(response.status, f"Failed to fetch prices for {day}: {text[:200]}")
            payload = await response.json(content_type=None)

        if not isinstance(payload, list) or not payload:
            raise PriceFetchError(None, f"Unexpected price payload for {day}: expected a non-empty list")

        try:
            prices = [PriceSlot.from_api(record) for record in payload]
        except (KeyError, TypeError, ValueError) as e:
            raise PriceFetchError(None, f"Malformed price record for {day}: {e}")

        logger.info(f"Fetched {len(prices)} price slots for {day} from price area {self.price_area}")
        return prices

    async def close(self):
        if self._session is not None and not self._session.closed:
            await self._session.close()
