from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Boolean, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


class MatchResultRecord(Base):
    __tablename__ = "match_results"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=lambda: uuid4().hex)
    room_id: Mapped[str] = mapped_column(String(50), index=True)
    seeker_id: Mapped[str] = mapped_column(String(50))
    seeker_name: Mapped[str] = mapped_column(String(100))
    seeker_won: Mapped[bool] = mapped_column(Boolean)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), index=True
    )
