"""
SRS Service
Entry point for chat commands, HTTP routes and reminder jobs
"""

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Union
from zoneinfo import ZoneInfo

from ..core.database import get_db_session
from ..domain.errors import DomainError
from ..utils.logging import ReviewLogContext
from .srs.clock import utc_now
from .srs.due_selector import DueCard, DueItemSelector
from .srs.due_summary import DueSummary, get_due_summary
from .srs.grading import resolve_grade
from .srs.privacy_gate import PrivacyConfig, PrivacyGate, PrivacyStatus
from .srs.review_session import (
    DEFAULT_MODE,
    ReviewResult,
    ReviewSessionCoordinator,
    StartedReview,
    StartTime,
)
from .srs.telemetry_sink import TelemetryEvent, TelemetrySink

logger = logging.getLogger(__name__)


@dataclass
class ReviewOutcome:
    """What a chat or HTTP caller needs to answer the user after a grade."""

    success: bool
    message: str
    result: Optional[ReviewResult] = None
    error: Optional[str] = None


class SRSService:
    """Wires the selector, coordinator, privacy gate and telemetry sink together."""

    def __init__(
        self,
        session_factory: Callable = get_db_session,
        privacy_config: Optional[PrivacyConfig] = None,
        tz: Optional[ZoneInfo] = None,
        clock: Callable = utc_now,
    ):
        self._session_factory = session_factory
        self._tz = tz
        self._clock = clock
        self.privacy_gate = PrivacyGate(privacy_config, session_factory=session_factory)
        self.telemetry = TelemetrySink(self.privacy_gate, session_factory=session_factory)
        self.selector = DueItemSelector(session_factory=session_factory, tz=tz)
        self.coordinator = ReviewSessionCoordinator(
            telemetry_sink=self.telemetry,
            session_factory=session_factory,
            tz=tz,
            clock=clock,
        )

    def _log_context(self, owner_id: str) -> dict:
        # Never log the raw owner id; the hash is omitted when no salt is set
        return {"owner_hash": self.privacy_gate.hash_owner(owner_id).value}

    # --- Reviewing ---

    async def get_due_cards(
        self,
        owner_id: str,
        limit: int = 10,
        include_new: bool = True,
        queue_filter: Optional[str] = None,
        overdue_only: bool = False,
    ) -> List[DueCard]:
        """Next cards to review. Raises InvalidQueueFilter for an unknown queue."""
        return await self.selector.select(
            owner_id,
            limit=limit,
            include_new=include_new,
            queue_filter=queue_filter,
            overdue_only=overdue_only,
        )

    async def start_review(
        self,
        owner_id: str,
        card_id: str,
        session_id: str,
        mode: str = DEFAULT_MODE,
        client: Optional[str] = None,
    ) -> StartedReview:
        """Start timing a review and record that the card was presented.

        Raises:
            CardNotFound: Card is missing or belongs to someone else.
        """
        with ReviewLogContext("start_review", card_id=card_id, **self._log_context(owner_id)):
            started = await self.coordinator.start(owner_id, card_id, session_id)

        await self.record_presented(owner_id, card_id, session_id, mode=mode, client=client)
        return started

    async def submit_review(
        self,
        owner_id: str,
        card_id: str,
        grade: Union[int, str],
        start_time: StartTime,
        session_id: str,
        **telemetry,
    ) -> ReviewOutcome:
        """Grade a started review.

        ``grade`` may be 0..5 or a label such as "good"; extra keyword arguments
        (mode, client, answer_text, attempt, hint_count, source, direction) are
        passed through to the coordinator.
        """
        try:
            with ReviewLogContext(
                "submit_review",
                card_id=card_id,
                session_id=session_id,
                **self._log_context(owner_id),
            ):
                result = await self.coordinator.submit(
                    owner_id,
                    card_id,
                    resolve_grade(grade),
                    start_time,
                    session_id,
                    **telemetry,
                )
        except DomainError as e:
            return ReviewOutcome(success=False, message=e.user_message, error=type(e).__name__)

        return ReviewOutcome(success=True, message=result.message, result=result)

    # --- Interaction telemetry ---

    async def _record(self, owner_id: str, action: str, card_id: str, session_id: str, **fields) -> bool:
        return await self.telemetry.record(
            TelemetryEvent(
                owner_id=str(owner_id),
                action=action,
                card_id=card_id,
                session_id=session_id,
                ts=self._clock(),
                **fields,
            )
        )

    async def record_presented(
        self,
        owner_id: str,
        card_id: str,
        session_id: str,
        mode: str = DEFAULT_MODE,
        client: Optional[str] = None,
        attempt: Optional[int] = None,
        deck_id: Optional[str] = None,
        source: Optional[str] = None,
    ) -> bool:
        return await self._record(
            owner_id,
            "presented",
            card_id,
            session_id,
            mode=mode,
            client=client,
            attempt=attempt,
            deck_id=deck_id,
            source=source,
        )

    async def record_answered(
        self,
        owner_id: str,
        card_id: str,
        session_id: str,
        answer_text: Optional[str],
        is_correct: Optional[bool] = None,
        latency_ms: Optional[int] = None,
        mode: str = DEFAULT_MODE,
        client: Optional[str] = None,
        attempt: Optional[int] = None,
        source: Optional[str] = None,
    ) -> bool:
        return await self._record(
            owner_id,
            "answered",
            card_id,
            session_id,
            answer_text=answer_text,
            is_correct=is_correct,
            latency_ms=latency_ms,
            mode=mode,
            client=client,
            attempt=attempt,
            source=source,
        )

    async def record_hint_shown(
        self,
        owner_id: str,
        card_id: str,
        session_id: str,
        hint_count: int = 1,
        mode: str = DEFAULT_MODE,
        client: Optional[str] = None,
        source: Optional[str] = None,
    ) -> bool:
        return await self._record(
            owner_id,
            "hint_shown",
            card_id,
            session_id,
            hint_count=hint_count,
            mode=mode,
            client=client,
            source=source,
        )

    # --- Privacy ---

    async def opt_out(self, owner_id: str, source: Optional[str] = None) -> PrivacyStatus:
        await self.privacy_gate.set_opt_out(owner_id, source)
        return await self.privacy_gate.status(owner_id)

    async def opt_in(self, owner_id: str) -> PrivacyStatus:
        await self.privacy_gate.clear_opt_out(owner_id)
        return await self.privacy_gate.status(owner_id)

    async def privacy_status(self, owner_id: str) -> PrivacyStatus:
        return await self.privacy_gate.status(owner_id)

    # --- Statistics ---

    async def get_due_summary(self, owner_id: str) -> DueSummary:
        return await get_due_summary(
            owner_id, session_factory=self._session_factory, tz=self._tz, now=self._clock()
        )


_srs_service: Optional[SRSService] = None


def get_srs_service() -> SRSService:
    """Get the process-wide SRSService, built from settings on first use."""
    global _srs_service
    if _srs_service is None:
        _srs_service = SRSService()
    return _srs_service


def reset_srs_service() -> None:
    """Drop the cached service (tests, settings reload)."""
    global _srs_service
    _srs_service = None
