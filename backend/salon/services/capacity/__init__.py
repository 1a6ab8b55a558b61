"""
Capacity-bounded admission and slot discovery.

Configuration store → overlap counter → admission controller / slot discovery.
"""

from dataclasses import dataclass
from datetime import date
from functools import lru_cache
from typing import Callable

from redis import Redis
from sqlalchemy.orm import Session

from ...config import Settings
from .admission import AdmissionController, AdmissionResult, CapacityCheck
from .config import CapacitySettings, load_capacity_settings
from .dashboard import CapacityDashboard, build_dashboard
from .discovery import SlotAvailability, SlotDiscovery
from .errors import (
    AppointmentNotFound,
    CapacityError,
    ConfigurationMissing,
    ErrorKind,
    InvalidStatusTransition,
    Rejection,
)
from .ledger import AppointmentRecord
from .locks import LocalDateLocks, RedisDateLocks
from .overlap import CapacityWindow, count_overlapping
from .settings_store import (
    MemorySettingsCache,
    RedisSettingsCache,
    SalonSettingsStore,
    UnknownSettingKey,
)
from .status import ACTIVE_STATUSES, AppointmentStatus


@dataclass
class CapacityEngine:
    """Wired capacity components sharing one session factory and store."""
    session_factory: Callable[[], Session]
    settings_store: SalonSettingsStore
    admission: AdmissionController
    slots: SlotDiscovery

    def dashboard(self, target_date: date) -> CapacityDashboard:
        return build_dashboard(self.session_factory, self.settings_store, target_date)


def build_capacity_engine(
    session_factory: Callable[[], Session],
    config: Settings,
    redis: Redis | None = None,
) -> CapacityEngine:
    """Use Redis for cache and locks when available, in-process otherwise."""
    if redis is not None:
        cache = RedisSettingsCache(redis, config.settings_cache_ttl_seconds)
        locks = RedisDateLocks(
            redis,
            timeout_seconds=config.admission_lock_timeout_seconds,
            lease_seconds=config.admission_lock_lease_seconds,
        )
    else:
        cache = MemorySettingsCache(config.settings_cache_ttl_seconds)
        locks = LocalDateLocks(timeout_seconds=config.admission_lock_timeout_seconds)

    store = SalonSettingsStore(session_factory, cache)
    return CapacityEngine(
        session_factory=session_factory,
        settings_store=store,
        admission=AdmissionController(
            session_factory,
            store,
            locks,
            retry_attempts=config.admission_retry_attempts,
            retry_backoff_seconds=config.admission_retry_backoff_seconds,
        ),
        slots=SlotDiscovery(session_factory, store),
    )


@lru_cache
def get_capacity_engine() -> CapacityEngine:
    """Process-wide engine (FastAPI dependency; overridden in tests)."""
    from ...config import settings
    from ...database import SessionLocal
    from ...redis_client import redis_client

    return build_capacity_engine(SessionLocal, settings, redis_client)


__all__ = [
    "ACTIVE_STATUSES",
    "AdmissionController",
    "AdmissionResult",
    "AppointmentNotFound",
    "AppointmentRecord",
    "AppointmentStatus",
    "CapacityCheck",
    "CapacityDashboard",
    "CapacityEngine",
    "CapacityError",
    "CapacitySettings",
    "CapacityWindow",
    "ConfigurationMissing",
    "ErrorKind",
    "InvalidStatusTransition",
    "LocalDateLocks",
    "MemorySettingsCache",
    "RedisDateLocks",
    "RedisSettingsCache",
    "Rejection",
    "SalonSettingsStore",
    "SlotAvailability",
    "SlotDiscovery",
    "UnknownSettingKey",
    "build_capacity_engine",
    "count_overlapping",
    "get_capacity_engine",
    "load_capacity_settings",
]
