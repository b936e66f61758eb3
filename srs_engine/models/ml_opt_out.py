"""Per-owner opt-out from review telemetry."""

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin


class MlOptOut(Base, TimestampMixin):
    __tablename__ = "ml_opt_outs"

    owner_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    opted_out: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    opted_out_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    source: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    def __repr__(self) -> str:
        return (
            f"<MlOptOut(owner_id={self.owner_id}, opted_out={self.opted_out}, "
            f"source={self.source})>"
        )
