"""Response model: append-only, versioned question/answer log.

Every version of an answer is its own row. Rows sharing ``slot_id`` are the
versions of one logical answer slot; at most one of them is not superseded.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, Index, Integer, String, Text, Uuid

from app.db.base import Base


class Response(Base):
    __tablename__ = "responses"
    __table_args__ = (Index("ix_responses_user_active", "user_id", "superseded", "created_at"),)

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(String(255), nullable=False, index=True)
    slot_id = Column(Uuid, nullable=False, index=True)  # id of the version-1 row

    question_text = Column(Text, nullable=False)
    answer = Column(Text, nullable=False, default="")  # "" until answered
    stage = Column(Integer, nullable=False)

    version = Column(Integer, nullable=False, default=1)
    superseded = Column(Boolean, nullable=False, default=False)
    contradiction_flag = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    @property
    def is_answered(self) -> bool:
        return bool(self.answer)
