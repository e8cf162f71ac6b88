import logging

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.api.deps import get_current_role, get_db
from app.core.exceptions import ScheduleValidationError
from app.models.exam import ExamSchedule
from app.models.user import UserRole
from app.schemas.exam import ExamGridSave, ExamOut

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/exams", response_model=list[ExamOut])
def list_exams(
    exam_type: str | None = Query(default=None, alias="examType"),
    _: UserRole = Depends(get_current_role),
    db: Session = Depends(get_db),
) -> list[ExamOut]:
    query = select(ExamSchedule).order_by(ExamSchedule.exam_date, ExamSchedule.start_time, ExamSchedule.class_id)
    if exam_type:
        query = query.where(ExamSchedule.exam_type == exam_type)
    return list(db.execute(query).scalars())


@router.post("/exams/grid", response_model=list[ExamOut], status_code=status.HTTP_201_CREATED)
def save_exam_grid(
    payload: ExamGridSave,
    _: UserRole = Depends(get_current_role),
    db: Session = Depends(get_db),
) -> list[ExamOut]:
    cells = [cell for cell in payload.entries if cell.subject.strip()]
    if not cells:
        raise ScheduleValidationError("No subjects assigned in the grid")

    exams = [
        ExamSchedule(
            exam_type=payload.exam_type.strip(),
            class_id=cell.class_id,
            subject=cell.subject.strip(),
            exam_date=cell.exam_date,
            start_time=payload.start_time,
            end_time=payload.end_time,
        )
        for cell in cells
    ]
    db.add_all(exams)
    db.commit()
    for exam in exams:
        db.refresh(exam)
    logger.info("Saved %d %s exam entries", len(exams), payload.exam_type)
    return exams


@router.delete("/exams/{exam_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_exam(
    exam_id: str,
    _: UserRole = Depends(get_current_role),
    db: Session = Depends(get_db),
) -> None:
    exam = db.get(ExamSchedule, exam_id)
    if exam is None:
        return
    db.delete(exam)
    db.commit()
