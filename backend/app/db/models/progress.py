"""Progress model: one row per user tracking stage, answer count and the contradiction gate."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, Column, DateTime, Integer, String, Uuid

from app.db.base import Base


class Progress(Base):
    __tablename__ = "progress"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(String(255), nullable=False, unique=True, index=True)

    stage = Column(Integer, nullable=False, default=1)
    status = Column(String(20), nullable=False, default="active")  # active, completed
    response_count = Column(Integer, nullable=False, default=0)  # answers in the current stage
    contradiction_flag = Column(Boolean, nullable=False, default=False)
    completed_stages = Column(JSON, nullable=False, default=list)  # sorted list of stage numbers

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    last_updated = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
