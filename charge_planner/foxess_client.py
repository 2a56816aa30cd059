"""FoxESS Cloud API client for force-charge schedule updates"""

import hashlib
import json
import logging
import time
from typing import Any, Dict, Optional

import aiohttp

from charge_planner.exceptions import DeviceAPIError
from charge_planner.models import DeviceSchedule

logger = logging.getLogger(__name__)

BASE_URL = "https://www.foxesscloud.com"
SET_CHARGE_TIMES_PATH = "/op/v0/device/battery/forceChargeTime/set"
USER_AGENT = "FoxChargePlanner/1.0"


def make_auth_headers(path: str, token: str, timestamp: Optional[str] = None) -> Dict[str, str]:
    """Signed request headers: signature is md5 of path, token and ms timestamp"""
    timestamp = timestamp or str(int(time.time() * 1000))
    raw = fr'{path}\r\n{token}\r\n{timestamp}'
    signature = hashlib.md5(raw.encode('utf-8')).hexdigest()
    return {
        'token': token,
        'timestamp': timestamp,
        'signature': signature,
        'lang': 'en',
        'User-Agent': USER_AGENT,
    }


class FoxESSClient:
    """Handles FoxESS Cloud API interactions"""

    def __init__(self, token: str, device_sn: str, base_url: str = BASE_URL, timeout_seconds: float = 30):
        self.token = token
        self.device_sn = device_sn
        self.base_url = base_url.rstrip('/')
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self._session: Optional[aiohttp.ClientSession] = None

    @property
    def session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self.timeout)
        return self._session

    async def set_charge_windows(self, schedule: DeviceSchedule) -> Dict[str, Any]:
        """Send a force-charge schedule to the device"""
        path = SET_CHARGE_TIMES_PATH
        headers = {'Content-Type': 'application/json', **make_auth_headers(path, self.token)}
        body = {'sn': self.device_sn, **schedule.to_payload()}

        logger.info(f"Sending schedule to Fox ESS: {json.dumps(body)}")

        async with self.session.post(f"{self.base_url}{path}", headers=headers, json=body) as response:
            if response.status != 200:
                text = await response.text()
                raise DeviceAPIError(response.status, f"Fox ESS API error: {text[:200]}")
            result = await response.json(content_type=None)

        # HTTP 200 with a non-zero errno is still a failure
        errno = result.get('errno', 0) if isinstance(result, dict) else 0
        if errno != 0:
            raise DeviceAPIError(response.status, f"Fox ESS API errno {errno}: {result.get('msg', '')}")

        if schedule.enable1 or schedule.enable2:
            logger.info(f"  ✓ Charging enabled: {schedule}")
        else:
            logger.info("  ✓ Charging disabled")
        logger.debug(f"foxess.set_charge_windows response={result}")
        return result

    async def close(self):
        """Close the API client"""
        if self._session is not None and not self._session.closed:
            await self._session.close()
