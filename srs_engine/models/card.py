"""
Card catalog model.

Cards are owned by the catalog component (add/edit/import commands); the
scheduling core only reads them.
"""

import uuid
from typing import List, Optional

from sqlalchemy import JSON, Boolean, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin


class Card(Base, TimestampMixin):
    __tablename__ = "cards"

    id: Mapped[str] = mapped_column(
        String(64), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    owner_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    front: Mapped[str] = mapped_column(Text, nullable=False)
    back: Mapped[str] = mapped_column(Text, nullable=False)
    example: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    tags: Mapped[List[str]] = mapped_column(JSON, default=list)
    lang_front: Mapped[str] = mapped_column(String(10), default="en")
    lang_back: Mapped[str] = mapped_column(String(10), default="en")

    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def __init__(self, **kwargs):
        defaults = {
            "tags": [],
            "lang_front": "en",
            "lang_back": "en",
            "active": True,
        }
        for k, v in defaults.items():
            kwargs.setdefault(k, v)
        super().__init__(**kwargs)

    def is_active(self) -> bool:
        return bool(self.active)

    def __repr__(self) -> str:
        return f"<Card(id={self.id}, owner_id={self.owner_id}, front={self.front!r})>"
