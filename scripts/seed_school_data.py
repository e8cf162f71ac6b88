"""Seed the default class registry and a sample staff list for Staffroom.

Run:
  PYTHONPATH=backend python scripts/seed_school_data.py
"""

from __future__ import annotations

import asyncio
import logging
import os

from app.core.config import get_settings
from app.schemas.teacher import TeacherIn
from app.schemas.timetable import ScheduleEntry
from app.services.store import build_store

logger = logging.getLogger("seed_school_data")

SEED_BASE_DAY = os.getenv("SEED_BASE_DAY", "Monday").strip() or "Monday"

SAMPLE_TEACHERS = [
    TeacherIn(id="t-anita", name="Anita Sharma", subject="Mathematics", color="#2563eb"),
    TeacherIn(id="t-rahul", name="Rahul Verma", subject="Science", color="#16a34a"),
    TeacherIn(id="t-meena", name="Meena Iyer", subject="English", color="#db2777"),
    TeacherIn(id="t-farhan", name="Farhan Ali", subject="Social Science", color="#ea580c"),
    TeacherIn(id="t-kavita", name="Kavita Rao", subject="Hindi", color="#7c3aed"),
    TeacherIn(id="t-suresh", name="Suresh Nair", subject="Physics", color="#0891b2"),
    TeacherIn(id="t-priya", name="Priya Menon", subject="Accountancy", color="#ca8a04"),
]

# (class_id, period_index, teacher_id, subject)
SAMPLE_BASE = [
    ("6", 0, "t-anita", "Mathematics"),
    ("6", 1, "t-meena", "English"),
    ("6", 2, "t-rahul", "Science"),
    ("6", 4, "t-kavita", "Hindi"),
    ("7", 0, "t-rahul", "Science"),
    ("7", 1, "t-anita", "Mathematics"),
    ("7", 4, "t-farhan", "Social Science"),
    ("11_SCI", 0, "t-suresh", "Physics"),
    ("11_COM", 0, "t-priya", "Accountancy"),
    ("12_SCI", 5, "t-suresh", "Physics"),
]


async def seed() -> None:
    store = await build_store(get_settings())
    try:
        if await store.seed_default_classes():
            logger.info("Seeded default class registry")
        existing = {teacher.id for teacher in await store.get_teachers()}
        for teacher in SAMPLE_TEACHERS:
            if teacher.id in existing:
                continue
            await store.save_teacher(teacher)
            logger.info("Added teacher %s", teacher.name)

        base = await store.get_base_schedule(SEED_BASE_DAY)
        for class_id, period_index, teacher_id, subject in SAMPLE_BASE:
            if f"{class_id}_{period_index}" in base:
                continue
            await store.save_base_entry(
                SEED_BASE_DAY,
                class_id,
                period_index,
                ScheduleEntry(teacher_id=teacher_id, subject=subject),
            )
        logger.info("Seeded %s base schedule on the %s store", SEED_BASE_DAY, store.backend_name)
    finally:
        await store.close()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
    asyncio.run(seed())
