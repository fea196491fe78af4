"""Modèle Historique des statuts / Mission status history model (append-only)."""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from dk_automotive.database import Base, enum_column, utcnow
from dk_automotive.models.mission import MissionStatus


class MissionStatusHistory(Base):
    __tablename__ = "mission_status_history"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    mission_id: Mapped[str] = mapped_column(ForeignKey("missions.id", ondelete="CASCADE"), nullable=False, index=True)
    old_status: Mapped[MissionStatus | None] = mapped_column(enum_column(MissionStatus))
    new_status: Mapped[MissionStatus] = mapped_column(enum_column(MissionStatus), nullable=False)
    changed_by: Mapped[str] = mapped_column(String(36), nullable=False)  # profile id
    changed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    notes: Mapped[str | None] = mapped_column(Text)

    def __repr__(self) -> str:
        old = self.old_status.value if self.old_status else None
        return f"<MissionStatusHistory {self.mission_id}: {old} -> {self.new_status.value}>"
