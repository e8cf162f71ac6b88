from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.api.deps import get_current_role, get_db
from app.models.remark import TeacherRemark
from app.models.user import UserRole
from app.schemas.remark import RemarkCreate, RemarkOut

router = APIRouter()


@router.get("/remarks", response_model=list[RemarkOut])
def list_remarks(
    teacher_id: str | None = Query(default=None),
    _: UserRole = Depends(get_current_role),
    db: Session = Depends(get_db),
) -> list[RemarkOut]:
    query = select(TeacherRemark).order_by(TeacherRemark.remark_date.desc(), TeacherRemark.created_at.desc())
    if teacher_id:
        query = query.where(TeacherRemark.teacher_id == teacher_id)
    return list(db.execute(query).scalars())


@router.post("/remarks", response_model=RemarkOut, status_code=status.HTTP_201_CREATED)
def create_remark(
    payload: RemarkCreate,
    _: UserRole = Depends(get_current_role),
    db: Session = Depends(get_db),
) -> RemarkOut:
    remark = TeacherRemark(**payload.model_dump())
    remark.note = remark.note.strip()
    db.add(remark)
    db.commit()
    db.refresh(remark)
    return remark


@router.delete("/remarks/{remark_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_remark(
    remark_id: str,
    _: UserRole = Depends(get_current_role),
    db: Session = Depends(get_db),
) -> None:
    remark = db.get(TeacherRemark, remark_id)
    if remark is None:
        return
    db.delete(remark)
    db.commit()
