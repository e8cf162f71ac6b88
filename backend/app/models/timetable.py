import uuid
from datetime import date, datetime
from enum import Enum

from sqlalchemy import (
    JSON,
    Date,
    DateTime,
    Enum as SAEnum,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from app.db.base import Base


class OverrideType(str, Enum):
    substitution = "SUBSTITUTION"
    vacant = "VACANT"
    merged = "MERGED"


class BaseScheduleEntry(Base):
    __tablename__ = "base_schedule_entries"
    __table_args__ = (
        UniqueConstraint("day_name", "class_id", "period_index", name="uq_base_schedule_slot"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    day_name: Mapped[str] = mapped_column(String(12), nullable=False, index=True)
    class_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("class_sections.id", ondelete="CASCADE"), nullable=False, index=True
    )
    period_index: Mapped[int] = mapped_column(Integer, nullable=False)
    teacher_id: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)
    subject: Mapped[str | None] = mapped_column(String(100), nullable=True)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)
    split_teacher_id: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)
    split_subject: Mapped[str | None] = mapped_column(String(100), nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )


class DailyOverride(Base):
    __tablename__ = "daily_overrides"
    __table_args__ = (
        UniqueConstraint("override_date", "class_id", "period_index", name="uq_daily_override_slot"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    override_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    class_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("class_sections.id", ondelete="CASCADE"), nullable=False, index=True
    )
    period_index: Mapped[int] = mapped_column(Integer, nullable=False)
    override_type: Mapped[OverrideType] = mapped_column(SAEnum(OverrideType, name="override_type"), nullable=False)
    original_teacher_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    # Variant-specific fields, exactly as serialized by the override schema.
    payload: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )


class DailyInstruction(Base):
    __tablename__ = "daily_instructions"

    instruction_date: Mapped[date] = mapped_column(Date, primary_key=True)
    text: Mapped[str] = mapped_column(Text, nullable=False, default="")
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
