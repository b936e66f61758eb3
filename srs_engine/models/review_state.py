"""
Per-card, per-owner scheduling record.

Created lazily (first due selection or first review start) and mutated only
by a graded submit. Rows are never deleted.
"""

from datetime import date, datetime
from typing import Optional

from sqlalchemy import (
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin


class ReviewState(Base, TimestampMixin):
    __tablename__ = "review_state"
    __table_args__ = (
        UniqueConstraint("owner_id", "card_id", name="uq_review_state_owner_card"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    owner_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    card_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("cards.id"), nullable=False, index=True
    )

    # SM-2 state
    repetitions: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    ease_factor: Mapped[Optional[float]] = mapped_column(Float, default=2.5)
    interval_days: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    due_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    lapses: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    queue: Mapped[str] = mapped_column(String(16), default="new", nullable=False)

    last_reviewed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    last_grade: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    direction_mode: Mapped[str] = mapped_column(
        String(32), default="front_to_back", nullable=False
    )

    def __init__(self, **kwargs):
        defaults = {
            "repetitions": 0,
            "ease_factor": 2.5,
            "interval_days": 0,
            "lapses": 0,
            "queue": "new",
            "direction_mode": "front_to_back",
        }
        for k, v in defaults.items():
            kwargs.setdefault(k, v)
        super().__init__(**kwargs)

    def __repr__(self) -> str:
        return (
            f"<ReviewState(owner_id={self.owner_id}, card_id={self.card_id}, "
            f"reps={self.repetitions}, interval={self.interval_days}, due={self.due_date})>"
        )
