"""create staffroom schema

Revision ID: 20261019_0001
Revises: None
Create Date: 2026-10-19 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


section_tag_enum = sa.Enum("secondary", "senior_secondary", name="section_tag")
override_type_enum = sa.Enum("substitution", "vacant", "merged", name="override_type")
attendance_status_enum = sa.Enum(
    "present", "absent", "half_day_before", "half_day_after", name="attendance_status"
)
notification_kind_enum = sa.Enum("absence", "system", name="notification_kind")
remark_type_enum = sa.Enum("general", "monthly", "yearly", name="remark_type")


def upgrade() -> None:
    op.create_table(
        "class_sections",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("section", section_tag_enum, nullable=False),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "teachers",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("initials", sa.String(length=10), nullable=False),
        sa.Column("color", sa.String(length=20), nullable=False),
        sa.Column("subject", sa.String(length=100), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )

    op.create_table(
        "base_schedule_entries",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("day_name", sa.String(length=12), nullable=False),
        sa.Column(
            "class_id",
            sa.String(length=36),
            sa.ForeignKey("class_sections.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("period_index", sa.Integer(), nullable=False),
        sa.Column("teacher_id", sa.String(length=36), nullable=True),
        sa.Column("subject", sa.String(length=100), nullable=True),
        sa.Column("note", sa.Text(), nullable=True),
        sa.Column("split_teacher_id", sa.String(length=36), nullable=True),
        sa.Column("split_subject", sa.String(length=100), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("day_name", "class_id", "period_index", name="uq_base_schedule_slot"),
    )
    op.create_index("ix_base_schedule_entries_day_name", "base_schedule_entries", ["day_name"])
    op.create_index("ix_base_schedule_entries_class_id", "base_schedule_entries", ["class_id"])
    op.create_index("ix_base_schedule_entries_teacher_id", "base_schedule_entries", ["teacher_id"])
    op.create_index("ix_base_schedule_entries_split_teacher_id", "base_schedule_entries", ["split_teacher_id"])

    op.create_table(
        "daily_overrides",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("override_date", sa.Date(), nullable=False),
        sa.Column(
            "class_id",
            sa.String(length=36),
            sa.ForeignKey("class_sections.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("period_index", sa.Integer(), nullable=False),
        sa.Column("override_type", override_type_enum, nullable=False),
        sa.Column("original_teacher_id", sa.String(length=36), nullable=True),
        sa.Column("payload", sa.JSON(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("override_date", "class_id", "period_index", name="uq_daily_override_slot"),
    )
    op.create_index("ix_daily_overrides_override_date", "daily_overrides", ["override_date"])
    op.create_index("ix_daily_overrides_class_id", "daily_overrides", ["class_id"])

    op.create_table(
        "teacher_attendance",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("attendance_date", sa.Date(), nullable=False),
        sa.Column("teacher_id", sa.String(length=36), nullable=False),
        sa.Column("status", attendance_status_enum, nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("attendance_date", "teacher_id", name="uq_teacher_attendance_day"),
    )
    op.create_index("ix_teacher_attendance_attendance_date", "teacher_attendance", ["attendance_date"])
    op.create_index("ix_teacher_attendance_teacher_id", "teacher_attendance", ["teacher_id"])

    op.create_table(
        "daily_instructions",
        sa.Column("instruction_date", sa.Date(), primary_key=True, nullable=False),
        sa.Column("text", sa.Text(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "notifications",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("kind", notification_kind_enum, nullable=False),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_notifications_created_at", "notifications", ["created_at"])

    op.create_table(
        "teacher_remarks",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("teacher_id", sa.String(length=36), nullable=False),
        sa.Column("remark_date", sa.Date(), nullable=False),
        sa.Column("note", sa.Text(), nullable=False),
        sa.Column("type", remark_type_enum, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_teacher_remarks_teacher_id", "teacher_remarks", ["teacher_id"])

    op.create_table(
        "exam_schedules",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("exam_type", sa.String(length=100), nullable=False),
        sa.Column("class_id", sa.String(length=36), nullable=False),
        sa.Column("subject", sa.String(length=100), nullable=False),
        sa.Column("invigilator_id", sa.String(length=36), nullable=True),
        sa.Column("exam_date", sa.Date(), nullable=False),
        sa.Column("start_time", sa.String(length=5), nullable=False),
        sa.Column("end_time", sa.String(length=5), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_exam_schedules_exam_type", "exam_schedules", ["exam_type"])
    op.create_index("ix_exam_schedules_class_id", "exam_schedules", ["class_id"])

    op.create_table(
        "teacher_meetings",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("meeting_date", sa.Date(), nullable=False),
        sa.Column("note", sa.Text(), nullable=False),
        sa.Column("type", sa.String(length=50), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )


def downgrade() -> None:
    op.drop_table("teacher_meetings")
    op.drop_index("ix_exam_schedules_class_id", table_name="exam_schedules")
    op.drop_index("ix_exam_schedules_exam_type", table_name="exam_schedules")
    op.drop_table("exam_schedules")
    op.drop_index("ix_teacher_remarks_teacher_id", table_name="teacher_remarks")
    op.drop_table("teacher_remarks")
    op.drop_index("ix_notifications_created_at", table_name="notifications")
    op.drop_table("notifications")
    op.drop_table("daily_instructions")
    op.drop_index("ix_teacher_attendance_teacher_id", table_name="teacher_attendance")
    op.drop_index("ix_teacher_attendance_attendance_date", table_name="teacher_attendance")
    op.drop_table("teacher_attendance")
    op.drop_index("ix_daily_overrides_class_id", table_name="daily_overrides")
    op.drop_index("ix_daily_overrides_override_date", table_name="daily_overrides")
    op.drop_table("daily_overrides")
    op.drop_index("ix_base_schedule_entries_split_teacher_id", table_name="base_schedule_entries")
    op.drop_index("ix_base_schedule_entries_teacher_id", table_name="base_schedule_entries")
    op.drop_index("ix_base_schedule_entries_class_id", table_name="base_schedule_entries")
    op.drop_index("ix_base_schedule_entries_day_name", table_name="base_schedule_entries")
    op.drop_table("base_schedule_entries")
    op.drop_table("teachers")
    op.drop_table("class_sections")

    bind = op.get_bind()
    for enum in (
        remark_type_enum,
        notification_kind_enum,
        attendance_status_enum,
        override_type_enum,
        section_tag_enum,
    ):
        enum.drop(bind, checkfirst=True)
