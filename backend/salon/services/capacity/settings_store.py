"""
Salon settings store: typed key/value rows with a read-through cache.

Cache keys embed a generation number:
    cache:salon_settings:{gen}:{key}   single value
    cache:salon_settings:{gen}:__all__ all settings
Writes commit to the database first, then bump the generation
(INCR cache:salon_settings:gen). Readers fetch the generation before
touching the database, so a reader racing a write can only populate a
key of the old generation, which nobody reads again.
"""

import json
import logging
import threading
import time
from datetime import datetime
from typing import Any, Callable

from redis import Redis
from sqlalchemy.orm import Session

from ...models.generated import SalonSettings as DBSalonSetting
from .config import check_capacity_values
from .errors import ConfigurationMissing

logger = logging.getLogger(__name__)

SETTING_TYPES = ("string", "integer", "boolean", "json", "float")
_TRUTHY = {"1", "true", "yes", "on"}
_ALL = "__all__"

MISSING: Any = object()


class UnknownSettingKey(KeyError):
    def __init__(self, keys: list[str]):
        super().__init__(f"Unknown setting keys: {', '.join(sorted(keys))}")
        self.keys = keys


# ── Value coercion ───────────────────────────────────────────────────────


def cast_value(raw: str, value_type: str) -> Any:
    """Coerce a stored string according to its declared type."""
    if value_type == "integer":
        return int(raw)
    if value_type == "boolean":
        return str(raw).strip().lower() in _TRUTHY
    if value_type == "json":
        return json.loads(raw)
    if value_type == "float":
        return float(raw)
    # Unknown type → raw string
    return raw


def _cast_row(row: DBSalonSetting) -> Any:
    """Cast a stored row; a value that no longer fits its type is a configuration error."""
    try:
        return cast_value(row.value, row.type)
    except ValueError:
        raise ConfigurationMissing(
            row.key,
            f"Salon setting '{row.key}' holds {row.value!r}, not a valid {row.type}",
        ) from None


def serialize_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    return str(value)


# ── Cache backends ───────────────────────────────────────────────────────


class MemorySettingsCache:
    """In-process cache (tests, single process deployments)."""

    def __init__(self, ttl_seconds: int = 3600, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._generation = 0
        self._entries: dict[tuple[int, str], tuple[float, Any]] = {}

    def generation(self) -> int:
        with self._lock:
            return self._generation

    def bump_generation(self) -> int:
        with self._lock:
            self._generation += 1
            # Older generations can never be read again
            self._entries.clear()
            return self._generation

    def get(self, generation: int, name: str) -> tuple[bool, Any]:
        with self._lock:
            entry = self._entries.get((generation, name))
            if entry is None:
                return False, None
            expires_at, payload = entry
            if expires_at <= self._clock():
                del self._entries[(generation, name)]
                return False, None
            return True, payload

    def put(self, generation: int, name: str, payload: Any) -> None:
        with self._lock:
            if generation != self._generation:
                return
            self._entries[(generation, name)] = (self._clock() + self.ttl_seconds, payload)


class RedisSettingsCache:
    """Cache shared by all backend processes."""

    KEY_PREFIX = "cache:salon_settings"

    def __init__(self, redis: Redis, ttl_seconds: int = 3600):
        self.redis = redis
        self.ttl_seconds = ttl_seconds

    @property
    def _gen_key(self) -> str:
        return f"{self.KEY_PREFIX}:gen"

    def _key(self, generation: int, name: str) -> str:
        return f"{self.KEY_PREFIX}:{generation}:{name}"

    def generation(self) -> int:
        raw = self.redis.get(self._gen_key)
        return int(raw) if raw is not None else 0

    def bump_generation(self) -> int:
        return int(self.redis.incr(self._gen_key))

    def get(self, generation: int, name: str) -> tuple[bool, Any]:
        raw = self.redis.get(self._key(generation, name))
        if raw is None:
            return False, None
        if isinstance(raw, bytes):
            raw = raw.decode()
        return True, json.loads(raw)

    def put(self, generation: int, name: str, payload: Any) -> None:
        self.redis.set(self._key(generation, name), json.dumps(payload), ex=self.ttl_seconds)


# ── Store ────────────────────────────────────────────────────────────────


class SalonSettingsStore:
    """Configuration store for operational salon settings."""

    def __init__(self, session_factory: Callable[[], Session], cache):
        self.session_factory = session_factory
        self.cache = cache

    # ── Read ─────────────────────────────────────────────────────────────

    def lookup(self, key: str) -> tuple[Any, bool]:
        """Return (value, found) for a single key."""
        generation = self.cache.generation()
        hit, payload = self.cache.get(generation, key)
        if hit:
            return payload["value"], payload["found"]

        with self.session_factory() as db:
            row = db.query(DBSalonSetting).filter(DBSalonSetting.key == key).first()
            if row is None:
                payload = {"found": False, "value": None}
            else:
                payload = {"found": True, "value": _cast_row(row)}

        self.cache.put(generation, key, payload)
        return payload["value"], payload["found"]

    def get(self, key: str, default: Any = MISSING) -> Any:
        """
        Get a setting value.

        Without a default, an absent key is a configuration error.
        """
        value, found = self.lookup(key)
        if found:
            return value
        if default is MISSING:
            logger.error(f"Salon setting '{key}' is missing and has no default")
            raise ConfigurationMissing(key)
        return default

    def get_all(self) -> dict[str, Any]:
        generation = self.cache.generation()
        hit, payload = self.cache.get(generation, _ALL)
        if hit:
            return payload

        with self.session_factory() as db:
            rows = db.query(DBSalonSetting).order_by(DBSalonSetting.key).all()
            payload = {}
            for row in rows:
                try:
                    payload[row.key] = _cast_row(row)
                except ConfigurationMissing as e:
                    # Admin view keeps the raw text so the value can be corrected
                    logger.error(e.message)
                    payload[row.key] = row.value

        self.cache.put(generation, _ALL, payload)
        return payload

    def list_entries(self) -> list[DBSalonSetting]:
        """Raw rows (admin view), never cached."""
        with self.session_factory() as db:
            return db.query(DBSalonSetting).order_by(DBSalonSetting.key).all()

    # ── Write ────────────────────────────────────────────────────────────

    def set(
        self,
        key: str,
        value: Any,
        value_type: str = "string",
        description: str | None = None,
    ) -> None:
        """
        Create or update a setting; the cache is invalidated before returning.

        Raises:
            ValueError: value does not fit value_type.
        """
        raw = serialize_value(value)
        cast_value(raw, value_type)

        with self.session_factory() as db:
            row = db.query(DBSalonSetting).filter(DBSalonSetting.key == key).first()
            if row is None:
                row = DBSalonSetting(key=key, description=description)
                db.add(row)
            elif description is not None:
                row.description = description
            row.value = raw
            row.type = value_type
            row.updated_at = datetime.utcnow()
            db.commit()

        self.cache.bump_generation()
        logger.info(f"Salon setting updated: {key}")

    def update_many(self, values: dict[str, Any]) -> dict[str, Any]:
        """
        Update existing settings in one transaction, keeping each stored type.

        The resulting configuration must still be usable by the capacity
        engine; nothing is written otherwise.

        Raises:
            UnknownSettingKey: if any key does not exist yet.
            ValueError: a value does not fit its stored type.
            ConfigurationMissing: the updated settings would be unusable.
        """
        if not values:
            return self.get_all()

        with self.session_factory() as db:
            rows = db.query(DBSalonSetting).all()
            by_key = {row.key: row for row in rows}
            unknown = [k for k in values if k not in by_key]
            if unknown:
                raise UnknownSettingKey(unknown)

            merged = {}
            for row in rows:
                try:
                    merged[row.key] = cast_value(row.value, row.type)
                except ValueError:
                    continue

            now = datetime.utcnow()
            for key, value in values.items():
                row = by_key[key]
                raw = serialize_value(value)
                # Reject values that do not fit the stored type
                merged[key] = cast_value(raw, row.type)
                row.value = raw
                row.updated_at = now

            check_capacity_values(merged)
            db.commit()

        self.cache.bump_generation()
        logger.info(f"Salon settings updated: {', '.join(sorted(values))}")
        return self.get_all()

    def clear_cache(self) -> None:
        self.cache.bump_generation()
