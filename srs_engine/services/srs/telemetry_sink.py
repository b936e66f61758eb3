"""
Best-effort review telemetry.

Events are written in their own session after the scheduling transaction
has committed. Nothing raised here ever reaches the review flow: failures are
logged as structured warnings and the event is dropped.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from ...core.config import get_settings
from ...core.database import get_db_session
from ...infrastructure.repositories import SqlAlchemyReviewEventRepository
from ...models.review_event import REVIEW_ACTIONS, REVIEW_CLIENTS, REVIEW_MODES, ReviewEvent
from ...utils.logging import get_telemetry_logger
from ...version import get_version
from .clock import utc_now
from .privacy_gate import PrivacyGate

logger = get_telemetry_logger(__name__)


@dataclass
class TelemetryEvent:
    """One review interaction, before privacy scrubbing.

    ``owner_id`` is the raw owner; it is hashed by the sink and never stored.
    """

    owner_id: str
    mode: str
    action: str
    session_id: str
    card_id: str
    ts: Optional[datetime] = None
    attempt: Optional[int] = None
    hint_count: Optional[int] = None
    latency_ms: Optional[int] = None
    grade: Optional[int] = None
    is_correct: Optional[bool] = None
    answer_text: Optional[str] = None
    sm2_before: Optional[Dict[str, Any]] = None
    sm2_after: Optional[Dict[str, Any]] = None
    client: Optional[str] = None
    app_version: Optional[str] = None
    source: Optional[str] = None
    deck_id: Optional[str] = None


def _validate(event: TelemetryEvent, client: str) -> None:
    if event.mode not in REVIEW_MODES:
        raise ValueError(f"Unknown telemetry mode: {event.mode!r}")
    if event.action not in REVIEW_ACTIONS:
        raise ValueError(f"Unknown telemetry action: {event.action!r}")
    if client not in REVIEW_CLIENTS:
        raise ValueError(f"Unknown telemetry client: {client!r}")
    if not event.session_id:
        raise ValueError("Telemetry event needs a session_id")


def _snapshot_value(snapshot: Optional[Dict[str, Any]], key: str):
    if not snapshot:
        return None
    return snapshot.get(key)


class TelemetrySink:
    """Writes privacy-scrubbed ReviewEvent rows."""

    def __init__(
        self,
        privacy_gate: PrivacyGate,
        session_factory: Callable = get_db_session,
        default_client: Optional[str] = None,
        app_version: Optional[str] = None,
    ) -> None:
        settings = get_settings()
        self.privacy_gate = privacy_gate
        self._session_factory = session_factory
        self.default_client = default_client or settings.default_client
        self.app_version = app_version or settings.app_version or get_version()

    def build_row(self, event: TelemetryEvent, user_hash: str) -> ReviewEvent:
        client = event.client or self.default_client
        _validate(event, client)
        return ReviewEvent(
            ts=event.ts or utc_now(),
            mode=event.mode,
            action=event.action,
            session_id=event.session_id,
            attempt=event.attempt,
            hint_count=event.hint_count,
            latency_ms=event.latency_ms,
            user_hash=user_hash,
            card_id=event.card_id,
            deck_id=event.deck_id,
            grade=event.grade,
            is_correct=event.is_correct,
            answer_text=self.privacy_gate.redact(event.answer_text),
            sm2_before=event.sm2_before,
            sm2_after=event.sm2_after,
            ease_before=_snapshot_value(event.sm2_before, "ease"),
            ease_after=_snapshot_value(event.sm2_after, "ease"),
            reps_before=_snapshot_value(event.sm2_before, "reps"),
            reps_after=_snapshot_value(event.sm2_after, "reps"),
            interval_before=_snapshot_value(event.sm2_before, "interval"),
            interval_after=_snapshot_value(event.sm2_after, "interval"),
            client=client,
            app_version=event.app_version or self.app_version,
            source=event.source,
        )

    async def record(self, event: TelemetryEvent) -> bool:
        """Write *event* if the owner may be logged.

        Returns True when a row was written. Opted-out owners, disabled
        logging and a missing salt are silent no-ops; every other failure is
        logged as a warning.
        """
        try:
            if not await self.privacy_gate.should_log(event.owner_id):
                return False

            hashed = self.privacy_gate.hash_owner(event.owner_id)
            if not hashed.ok:
                logger.warning(
                    "ml_log_hash_failed",
                    reason=hashed.status.value,
                    action=event.action,
                    card_id=event.card_id,
                )
                return False

            row = self.build_row(event, hashed.value)
            async with self._session_factory() as session:
                await SqlAlchemyReviewEventRepository(session).add(row)
                await session.commit()
            return True
        except Exception as e:
            logger.warning(
                "ml_log_failed",
                error_type=type(e).__name__,
                error_message=str(e),
                action=event.action,
                card_id=event.card_id,
                session_id=event.session_id,
            )
            return False
