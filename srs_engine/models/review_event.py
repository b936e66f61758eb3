"""
Anonymised review telemetry.

Rows carry a salted owner hash, never the raw owner id. Writes are
best-effort and never part of the scheduling transaction.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import JSON, Boolean, DateTime, Float, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin

REVIEW_MODES = ("telegram_inline", "webapp_practice")
REVIEW_ACTIONS = ("presented", "answered", "graded", "hint_shown")
REVIEW_CLIENTS = ("bot", "miniapp")


class ReviewEvent(Base, TimestampMixin):
    __tablename__ = "review_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    ts: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    mode: Mapped[str] = mapped_column(String(32), nullable=False)
    action: Mapped[str] = mapped_column(String(32), nullable=False)
    session_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)

    attempt: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    hint_count: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    latency_ms: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    user_hash: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    card_id: Mapped[str] = mapped_column(String(64), nullable=False)
    deck_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    grade: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    is_correct: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    answer_text: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    sm2_before: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)
    sm2_after: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)
    # Flattened copies of the snapshots for cheap analytics queries
    ease_before: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    ease_after: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    reps_before: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    reps_after: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    interval_before: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    interval_after: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    client: Mapped[str] = mapped_column(String(16), default="bot", nullable=False)
    app_version: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    source: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)

    def __repr__(self) -> str:
        return (
            f"<ReviewEvent(id={self.id}, mode={self.mode}, action={self.action}, "
            f"card_id={self.card_id})>"
        )
