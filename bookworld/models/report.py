"""
User Report Model

A reader flags another account for moderation. Reports are only written
through POST /users/{user_id}/report; reviewing them is left to admins
working on the database directly.
"""

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bookworld.database import Base


class UserReport(Base):
    __tablename__ = "user_reports"
    __table_args__ = (
        CheckConstraint("reporter_id <> reported_user_id", name="ck_user_report_not_self"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    reporter_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    reported_user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    reason: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    reporter = relationship("User", foreign_keys=[reporter_id])
    reported_user = relationship("User", foreign_keys=[reported_user_id])

    def __repr__(self) -> str:
        return f"UserReport(id={self.id}, reporter={self.reporter_id}, reported={self.reported_user_id})"
