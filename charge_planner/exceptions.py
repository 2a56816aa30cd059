"""Errors raised by the charge planner"""

from typing import Optional


class PlannerError(Exception):
    """Base class for charge planner errors"""


class InsufficientDataError(PlannerError):
    """A filtered price pool is shorter than the block length searched for"""

    def __init__(self, range_name: str, available: int, required: int):
        self.range_name = range_name
        self.available = available
        self.required = required
        super().__init__(f"{range_name}: only {available} price slots available, "
                         f"{required} required for a contiguous block")


class InvalidEconomicsError(PlannerError):
    """A battery economics parameter is out of range"""

    def __init__(self, parameter: str, value):
        self.parameter = parameter
        self.value = value
        super().__init__(f"{parameter} must be > 0, got {value}")


class EmptyPoolError(PlannerError):
    """No prices to average over"""


class ConfigError(PlannerError, ValueError):
    """Invalid or missing configuration value"""

    def __init__(self, key: str, message: str):
        self.key = key
        super().__init__(f"{key}: {message}")


class RemoteAPIError(PlannerError):
    """An HTTP collaborator answered with an error"""

    def __init__(self, status: Optional[int], message: str):
        self.status = status
        self.message = message
        super().__init__(f"{status} {message}" if status is not None else message)


class PriceFetchError(RemoteAPIError):
    """Day-ahead prices could not be retrieved"""


class DeviceAPIError(RemoteAPIError):
    """The FoxESS API rejected a schedule update"""
