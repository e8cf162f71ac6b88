import pytest
from sqlalchemy import create_engine, inspect, text

from app.db import bootstrap


def _raise_error(engine):
    raise RuntimeError("missing required schema")


def test_runtime_schema_bootstrap_raises_on_validation_failure(monkeypatch):
    engine = create_engine("sqlite+pysqlite:///:memory:")
    monkeypatch.setattr(bootstrap.Base.metadata, "create_all", lambda bind: None)
    monkeypatch.setattr(bootstrap, "_assert_required_columns", _raise_error)

    with pytest.raises(RuntimeError, match="Runtime schema compatibility bootstrap failed"):
        bootstrap.ensure_runtime_schema_compatibility(engine)


def test_empty_database_reports_every_table_missing():
    engine = create_engine("sqlite+pysqlite:///:memory:")

    missing_tables, missing_columns = bootstrap.missing_schema_items(engine)

    assert sorted(missing_tables) == sorted(bootstrap.REQUIRED_COLUMNS)
    assert missing_columns == {}


def test_older_base_schedule_table_gains_split_columns(tmp_path):
    engine = create_engine(f"sqlite+pysqlite:///{tmp_path / 'old.db'}")
    with engine.begin() as connection:
        connection.execute(
            text(
                "CREATE TABLE base_schedule_entries ("
                "id VARCHAR(36) PRIMARY KEY, day_name VARCHAR(10), class_id VARCHAR(36), "
                "period_index INTEGER, teacher_id VARCHAR(36), subject VARCHAR(100))"
            )
        )
        connection.execute(text("CREATE TABLE class_sections (id VARCHAR(36) PRIMARY KEY, name VARCHAR(100), section VARCHAR(20))"))

    bootstrap.ensure_runtime_schema_compatibility(engine)

    columns = {item["name"] for item in inspect(engine).get_columns("base_schedule_entries")}
    assert {"split_teacher_id", "split_subject"} <= columns
    assert bootstrap.missing_schema_items(engine) == ([], {})
