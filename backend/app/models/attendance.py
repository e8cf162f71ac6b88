import uuid
from datetime import date, datetime
from enum import Enum

from sqlalchemy import Date, DateTime, Enum as SAEnum, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from app.db.base import Base


class AttendanceStatus(str, Enum):
    present = "present"
    absent = "absent"
    half_day_before = "half_day_before"
    half_day_after = "half_day_after"


class TeacherAttendance(Base):
    """Non-present attendance marks; a missing row means the teacher is present."""

    __tablename__ = "teacher_attendance"
    __table_args__ = (UniqueConstraint("attendance_date", "teacher_id", name="uq_teacher_attendance_day"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    attendance_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    teacher_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    status: Mapped[AttendanceStatus] = mapped_column(
        SAEnum(AttendanceStatus, name="attendance_status"), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
