import os

from dotenv import load_dotenv

from salon.config import settings
from salon.database import SessionLocal, engine
from salon.models import Base
from salon.redis_client import redis_client
from salon.services.capacity import SalonSettingsStore, build_capacity_engine
from salon.services.capacity import config as capacity_config


# ======================================================
# SEED VALUES
# ======================================================

STATIONS_DESCRIPTION = "Maximum number of concurrent appointments (number of service stations/chairs)"

# Written only when missing; operators tune them through /settings afterwards
DEFAULT_SETTINGS = [
    (capacity_config.MAX_DAILY, capacity_config.DEFAULTS[capacity_config.MAX_DAILY], "integer",
     "Maximum number of appointments per day"),
    (capacity_config.WORK_START, capacity_config.DEFAULTS[capacity_config.WORK_START], "string",
     "Salon opening time"),
    (capacity_config.WORK_END, capacity_config.DEFAULTS[capacity_config.WORK_END], "string",
     "Salon closing time"),
    (capacity_config.SLOT_GRANULARITY, capacity_config.DEFAULTS[capacity_config.SLOT_GRANULARITY], "integer",
     "Step of the bookable slot grid"),
    (capacity_config.WARNING_THRESHOLD, capacity_config.DEFAULTS[capacity_config.WARNING_THRESHOLD], "integer",
     "Show warning when capacity reaches this percentage"),
]


# ======================================================
# ENV
# ======================================================

def read_stations() -> int:
    """Stations in the salon; the capacity engine has no default for it."""
    load_dotenv()
    stations = os.getenv("SALON_STATIONS")

    if not stations:
        raise RuntimeError("SALON_STATIONS is not set")

    return int(stations)


# ======================================================
# MAIN LOGIC
# ======================================================

def seed_settings(store: SalonSettingsStore, stations: int) -> None:
    # The operator's station count always wins over what is stored
    store.set(capacity_config.MAX_CONCURRENT, stations, "integer", STATIONS_DESCRIPTION)
    print(f"[BOOTSTRAP] {capacity_config.MAX_CONCURRENT} = {stations!r}")

    existing = store.get_all()
    for key, value, value_type, description in DEFAULT_SETTINGS:
        if key in existing:
            print(f"[BOOTSTRAP] {key} already set ({existing[key]!r}), skipped")
            continue
        store.set(key, value, value_type, description)
        print(f"[BOOTSTRAP] {key} = {value!r}")


def main():
    stations = read_stations()
    Base.metadata.create_all(engine)

    # Same cache as the API, so running processes see the seeded values
    store = build_capacity_engine(SessionLocal, settings, redis_client).settings_store
    seed_settings(store, stations)


if __name__ == "__main__":
    main()
