"""Dispatch tuning, read from the environment.

Every operation reads a fresh ``DispatchSettings`` so tests and operators can
change behaviour through environment variables without restarting workers.
"""

import os
from dataclasses import dataclass
from zoneinfo import ZoneInfo


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    return int(raw) if raw not in (None, "") else default


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    return float(raw) if raw not in (None, "") else default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw in (None, ""):
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class DispatchSettings:
    timezone: str = "Asia/Bangkok"
    pickup_max_attempts: int = 5
    pickup_backoff_seconds: int = 60
    pickup_backoff_cap_seconds: int = 3600
    pickup_on_create: bool = True
    task_max_retries: int = 2
    default_vehicle_capacity: int = 20
    planning_lease_seconds: int = 900
    carrier_cod_risk_percent: float = 1.0

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    def pickup_backoff(self, attempt: int) -> int:
        """Seconds to wait after the ``attempt``-th failed pickup request."""
        delay = self.pickup_backoff_seconds * 2 ** max(attempt - 1, 0)
        return min(delay, self.pickup_backoff_cap_seconds)

    @classmethod
    def from_env(cls) -> "DispatchSettings":
        return cls(
            timezone=os.environ.get("DISPATCH_TIMEZONE", "Asia/Bangkok"),
            pickup_max_attempts=_env_int("PICKUP_MAX_ATTEMPTS", 5),
            pickup_backoff_seconds=_env_int("PICKUP_BACKOFF_SECONDS", 60),
            pickup_backoff_cap_seconds=_env_int("PICKUP_BACKOFF_CAP_SECONDS", 3600),
            pickup_on_create=_env_bool("PICKUP_ON_CREATE", True),
            task_max_retries=_env_int("TASK_MAX_RETRIES", 2),
            default_vehicle_capacity=_env_int("DEFAULT_VEHICLE_CAPACITY", 20),
            planning_lease_seconds=_env_int("PLANNING_LEASE_SECONDS", 900),
            carrier_cod_risk_percent=_env_float("CARRIER_COD_RISK_PERCENT", 1.0),
        )


def get_settings() -> DispatchSettings:
    return DispatchSettings.from_env()
