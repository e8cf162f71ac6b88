from app.models.attendance import AttendanceStatus, TeacherAttendance  # noqa: F401
from app.models.class_section import ClassSection, SectionTag  # noqa: F401
from app.models.exam import ExamSchedule  # noqa: F401
from app.models.meeting import TeacherMeeting  # noqa: F401
from app.models.notification import Notification, NotificationKind  # noqa: F401
from app.models.remark import RemarkType, TeacherRemark  # noqa: F401
from app.models.teacher import Teacher  # noqa: F401
from app.models.timetable import (  # noqa: F401
    BaseScheduleEntry,
    DailyInstruction,
    DailyOverride,
    OverrideType,
)
from app.models.user import UserRole  # noqa: F401
