from __future__ import annotations

import logging

from sqlalchemy import inspect, text
from sqlalchemy.engine import Engine

import app.models  # noqa: F401
from app.db.base import Base

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS: dict[str, set[str]] = {
    "class_sections": {"id", "name", "section", "sort_order"},
    "teachers": {"id", "name", "initials", "color"},
    "base_schedule_entries": {
        "id",
        "day_name",
        "class_id",
        "period_index",
        "teacher_id",
        "subject",
        "split_teacher_id",
        "split_subject",
    },
    "daily_overrides": {"id", "override_date", "class_id", "period_index", "override_type", "payload"},
    "teacher_attendance": {"id", "attendance_date", "teacher_id", "status"},
}


def _ensure_base_schedule_split_columns(engine: Engine) -> None:
    with engine.begin() as connection:
        inspector = inspect(connection)
        if "base_schedule_entries" not in set(inspector.get_table_names()):
            return
        column_names = {item["name"] for item in inspector.get_columns("base_schedule_entries")}
        if "split_teacher_id" not in column_names:
            connection.execute(
                text("ALTER TABLE base_schedule_entries ADD COLUMN split_teacher_id VARCHAR(36)")
            )
        if "split_subject" not in column_names:
            connection.execute(
                text("ALTER TABLE base_schedule_entries ADD COLUMN split_subject VARCHAR(100)")
            )


def _ensure_class_sort_order_column(engine: Engine) -> None:
    with engine.begin() as connection:
        inspector = inspect(connection)
        if "class_sections" not in set(inspector.get_table_names()):
            return
        column_names = {item["name"] for item in inspector.get_columns("class_sections")}
        if "sort_order" in column_names:
            return
        connection.execute(
            text("ALTER TABLE class_sections ADD COLUMN sort_order INTEGER NOT NULL DEFAULT 0")
        )


def _assert_required_columns(engine: Engine) -> None:
    with engine.begin() as connection:
        inspector = inspect(connection)
        table_names = set(inspector.get_table_names())
        missing_tables = [name for name in REQUIRED_COLUMNS if name not in table_names]
        if missing_tables:
            raise RuntimeError(f"Missing required tables: {', '.join(sorted(missing_tables))}")

        missing_columns: list[str] = []
        for table_name, required in REQUIRED_COLUMNS.items():
            existing = {item["name"] for item in inspector.get_columns(table_name)}
            for column_name in sorted(required - existing):
                missing_columns.append(f"{table_name}.{column_name}")
        if missing_columns:
            raise RuntimeError(f"Missing required columns: {', '.join(missing_columns)}")


def missing_schema_items(engine: Engine) -> tuple[list[str], dict[str, list[str]]]:
    missing_tables: list[str] = []
    missing_columns: dict[str, list[str]] = {}
    with engine.connect() as connection:
        inspector = inspect(connection)
        table_names = set(inspector.get_table_names())
        for table_name, columns in REQUIRED_COLUMNS.items():
            if table_name not in table_names:
                missing_tables.append(table_name)
                continue
            existing = {item["name"] for item in inspector.get_columns(table_name)}
            missing = sorted(columns - existing)
            if missing:
                missing_columns[table_name] = missing
    return missing_tables, missing_columns


def ensure_runtime_schema_compatibility(engine: Engine) -> None:
    try:
        # Ensure missing tables are present before additive compatibility patches.
        Base.metadata.create_all(bind=engine)
        _ensure_base_schedule_split_columns(engine)
        _ensure_class_sort_order_column(engine)
        _assert_required_columns(engine)
    except Exception as exc:
        logger.exception("Runtime schema compatibility bootstrap failed")
        raise RuntimeError("Runtime schema compatibility bootstrap failed") from exc
