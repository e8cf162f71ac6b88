from fastapi import APIRouter, Depends, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.api.deps import get_current_role, get_db
from app.models.meeting import TeacherMeeting
from app.models.user import UserRole
from app.schemas.meeting import MeetingIn, MeetingOut

router = APIRouter()


@router.get("/meetings", response_model=list[MeetingOut])
def list_meetings(
    _: UserRole = Depends(get_current_role),
    db: Session = Depends(get_db),
) -> list[MeetingOut]:
    query = select(TeacherMeeting).order_by(TeacherMeeting.meeting_date.desc(), TeacherMeeting.created_at.desc())
    return list(db.execute(query).scalars())


@router.put("/meetings", response_model=MeetingOut)
def upsert_meeting(
    payload: MeetingIn,
    _: UserRole = Depends(get_current_role),
    db: Session = Depends(get_db),
) -> MeetingOut:
    meeting = db.get(TeacherMeeting, payload.id) if payload.id else None
    if meeting is None:
        meeting = TeacherMeeting(id=payload.id) if payload.id else TeacherMeeting()
        db.add(meeting)
    meeting.name = payload.name.strip()
    meeting.meeting_date = payload.meeting_date
    meeting.note = payload.note
    meeting.type = payload.type
    db.commit()
    db.refresh(meeting)
    return meeting


@router.delete("/meetings/{meeting_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_meeting(
    meeting_id: str,
    _: UserRole = Depends(get_current_role),
    db: Session = Depends(get_db),
) -> None:
    meeting = db.get(TeacherMeeting, meeting_id)
    if meeting is None:
        return
    db.delete(meeting)
    db.commit()
