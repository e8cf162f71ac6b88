from sqlalchemy import func, select

from app.db.session import SessionLocal
from app.models.attendance import TeacherAttendance
from app.models.class_section import ClassSection
from app.models.teacher import Teacher
from app.models.timetable import BaseScheduleEntry, DailyOverride

db = SessionLocal()
try:
    for label, model in (
        ("Classes", ClassSection),
        ("Teachers", Teacher),
        ("Base entries", BaseScheduleEntry),
        ("Overrides", DailyOverride),
        ("Attendance marks", TeacherAttendance),
    ):
        count = db.execute(select(func.count()).select_from(model)).scalar_one()
        print(f"{label}: {count}")

    latest = db.execute(select(DailyOverride).order_by(DailyOverride.override_date.desc()).limit(5)).scalars().all()
    print(f"Recent Overrides: {len(latest)}")
    for override in latest:
        print(f"  - {override.override_date} {override.class_id} P{override.period_index} ({override.override_type.value})")
finally:
    db.close()
