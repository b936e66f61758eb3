"""
Privacy gate for review telemetry.

Hashes owner ids with a server-held salt, redacts free-text answers, and
decides whether an owner's review events may be logged at all. Opt-out
lookups fail closed: if the store cannot be read, the owner is treated as
opted out.
"""

import hashlib
import hmac
import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Optional

from ...core.config import Settings, get_settings
from ...core.database import get_db_session
from ...domain.errors import HashSaltMissing
from ...infrastructure.repositories import SqlAlchemyOptOutRepository
from ...utils.audit_log import audit_log
from .clock import utc_now

logger = logging.getLogger(__name__)

ANSWER_MAX_LENGTH = 256


@dataclass(frozen=True)
class PrivacyConfig:
    """Telemetry privacy configuration, built once and handed to PrivacyGate."""

    salt: Optional[str] = None
    logging_enabled: bool = True

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "PrivacyConfig":
        settings = settings or get_settings()
        salt = settings.ml_hash_salt.strip() if settings.ml_hash_salt else ""
        return cls(salt=salt or None, logging_enabled=settings.ml_logging_enabled)

    @property
    def salt_configured(self) -> bool:
        return bool(self.salt and self.salt.strip())


class OptOutCache:
    """Thread-safe owner -> opted-out map.

    Entries never expire; they are replaced whenever the owner opts in or
    out. Each owner carries a generation that every write bumps, so a
    lookup that started before the write cannot store its stale result.
    """

    def __init__(self) -> None:
        self._entries: Dict[str, bool] = {}
        self._generations: Dict[str, int] = {}
        self._lock = threading.Lock()

    def get(self, owner_id: str) -> Optional[bool]:
        with self._lock:
            return self._entries.get(owner_id)

    def generation(self, owner_id: str) -> int:
        with self._lock:
            return self._generations.get(owner_id, 0)

    def set(self, owner_id: str, opted_out: bool) -> None:
        with self._lock:
            self._entries[owner_id] = opted_out
            self._generations[owner_id] = self._generations.get(owner_id, 0) + 1

    def set_if_current(self, owner_id: str, opted_out: bool, generation: int) -> bool:
        """Store a looked-up value unless the owner was written since ``generation``."""
        with self._lock:
            if self._generations.get(owner_id, 0) != generation:
                return False
            self._entries[owner_id] = opted_out
            return True

    def invalidate(self, owner_id: str) -> None:
        with self._lock:
            self._entries.pop(owner_id, None)
            self._generations[owner_id] = self._generations.get(owner_id, 0) + 1

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            for owner_id in self._generations:
                self._generations[owner_id] += 1

    def __contains__(self, owner_id: str) -> bool:
        with self._lock:
            return owner_id in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class HashStatus(str, Enum):
    OK = "ok"
    SALT_MISSING = "salt_missing"


@dataclass(frozen=True)
class HashResult:
    status: HashStatus
    value: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status is HashStatus.OK


class PrivacyStatus(str, Enum):
    DISABLED_GLOBALLY = "disabled_globally"
    PAUSED = "paused"
    ENABLED = "enabled"


def normalize_owner_id(owner_id) -> str:
    """Owner ids arrive as str or int depending on the caller."""
    return str(owner_id).strip()


class PrivacyGate:
    """Hashing, redaction and opt-out decisions for review telemetry."""

    def __init__(
        self,
        config: Optional[PrivacyConfig] = None,
        session_factory: Callable = get_db_session,
        cache: Optional[OptOutCache] = None,
    ) -> None:
        self.config = config or PrivacyConfig.from_settings()
        self._session_factory = session_factory
        self._cache = cache if cache is not None else OptOutCache()

    # --- Hashing / redaction ---

    def hash(self, owner_id) -> str:
        """HMAC-SHA256 of the owner id keyed with the configured salt.

        Raises:
            HashSaltMissing: If no salt is configured.
        """
        if not self.config.salt_configured:
            raise HashSaltMissing()
        return hmac.new(
            self.config.salt.encode("utf-8"),
            normalize_owner_id(owner_id).encode("utf-8"),
            hashlib.sha256,
        ).hexdigest()

    def hash_owner(self, owner_id) -> HashResult:
        """Non-raising variant of :meth:`hash` for the telemetry path."""
        if not self.config.salt_configured:
            return HashResult(HashStatus.SALT_MISSING)
        return HashResult(HashStatus.OK, self.hash(owner_id))

    @staticmethod
    def redact(text: Optional[str], max_length: int = ANSWER_MAX_LENGTH) -> Optional[str]:
        """Truncate free-text answers; empty or missing text becomes None."""
        if not text:
            return None
        if len(text) <= max_length:
            return text
        return text[:max_length]

    # --- Opt-out ---

    async def _load_opt_out(self, owner_id: str) -> bool:
        async with self._session_factory() as session:
            record = await SqlAlchemyOptOutRepository(session).get(owner_id)
            return bool(record is not None and record.opted_out)

    async def is_opted_out(self, owner_id) -> bool:
        """Whether the owner opted out of telemetry. Fails closed on lookup errors."""
        owner_id = normalize_owner_id(owner_id)
        cached = self._cache.get(owner_id)
        if cached is not None:
            return cached

        generation = self._cache.generation(owner_id)
        try:
            opted_out = await self._load_opt_out(owner_id)
        except Exception as e:
            logger.warning(f"Opt-out lookup failed, suppressing telemetry: {e}")
            return True

        if not self._cache.set_if_current(owner_id, opted_out, generation):
            # An opt-in/out landed while we were reading; its value wins.
            current = self._cache.get(owner_id)
            return opted_out if current is None else current
        return opted_out

    async def should_log(self, owner_id) -> bool:
        if not self.config.logging_enabled:
            return False
        return not await self.is_opted_out(owner_id)

    async def set_opt_out(self, owner_id, source: Optional[str] = None) -> None:
        """Record an opt-out (idempotent) and cache the new decision."""
        owner_id = normalize_owner_id(owner_id)
        async with self._session_factory() as session:
            await SqlAlchemyOptOutRepository(session).upsert(owner_id, source, utc_now())
            await session.commit()
        self._cache.set(owner_id, True)

        audit_log("ml_opt_out", owner_hash=self.hash_owner(owner_id).value, details=source)
        logger.info(f"Telemetry opt-out recorded (source={source})")

    async def clear_opt_out(self, owner_id) -> None:
        """Remove an opt-out (idempotent) and cache the new decision."""
        owner_id = normalize_owner_id(owner_id)
        async with self._session_factory() as session:
            removed = await SqlAlchemyOptOutRepository(session).delete(owner_id)
            await session.commit()
        self._cache.set(owner_id, False)

        audit_log("ml_opt_in", owner_hash=self.hash_owner(owner_id).value)
        logger.info(f"Telemetry opt-in recorded (existing record removed: {removed})")

    async def status(self, owner_id) -> PrivacyStatus:
        """Owner-facing summary for a privacy command."""
        if not self.config.logging_enabled:
            return PrivacyStatus.DISABLED_GLOBALLY
        if await self.is_opted_out(owner_id):
            return PrivacyStatus.PAUSED
        return PrivacyStatus.ENABLED

    def invalidate(self, owner_id=None) -> None:
        """Drop one cached decision, or all of them."""
        if owner_id is None:
            self._cache.clear()
        else:
            self._cache.invalidate(normalize_owner_id(owner_id))
