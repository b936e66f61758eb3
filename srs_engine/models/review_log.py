"""Append-only history of graded reviews."""

from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy import Date, DateTime, Float, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ReviewLog(Base):
    """One row per graded submit. Never updated."""

    __tablename__ = "review_log"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    owner_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    card_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    reviewed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False, index=True
    )
    grade: Mapped[int] = mapped_column(Integer, nullable=False)

    prev_ease: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    new_ease: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    prev_interval: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    new_interval: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    prev_repetitions: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    new_repetitions: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    prev_due: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    new_due: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    latency_ms: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    session_id: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    direction: Mapped[str] = mapped_column(
        String(32), default="front_to_back", nullable=False
    )

    def __repr__(self) -> str:
        return (
            f"<ReviewLog(id={self.id}, card_id={self.card_id}, grade={self.grade}, "
            f"interval={self.prev_interval}->{self.new_interval})>"
        )
