import re
from pydantic import BaseModel, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel
from typing import Any, Dict, List, Literal, Optional
from datetime import datetime

from campus_events.models.event import EventCategory, EventStatus
from campus_events.utils.helpers import normalize_email_domain

EMAIL_DOMAIN_PATTERN = re.compile(r"^@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")


def validate_email_domain(value: str) -> str:
    value = normalize_email_domain(value)
    if not EMAIL_DOMAIN_PATTERN.match(value):
        raise ValueError("Invalid email domain format")
    return value


class CamelModel(BaseModel):
    """Base for every request/response body: camelCase on the wire, snake_case in Python"""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


class MessageResponse(CamelModel):
    message: str


# ---------- Auth ----------

class TokenPayload(CamelModel):
    user_id: str
    email: str
    role: Literal["admin", "student"]
    college_id: Optional[str] = None
    iat: int
    exp: int


class AdminLogin(CamelModel):
    email: EmailStr
    password: str = Field(min_length=6)
    college_id: Optional[str] = None


class StudentRegister(CamelModel):
    name: str = Field(min_length=2)
    email: EmailStr
    college_id: str


class StudentSelfRegister(CamelModel):
    name: str = Field(min_length=2)
    email: EmailStr


class StudentLogin(CamelModel):
    email: EmailStr
    verification_token: Optional[str] = None


class ResendVerification(CamelModel):
    email: EmailStr


class IdentityResponse(CamelModel):
    id: Optional[str] = None
    name: Optional[str] = None
    email: str
    role: str
    is_verified: Optional[bool] = None
    college: Optional[str] = None
    college_id: Optional[str] = None


class LoginResponse(CamelModel):
    message: str
    token: str
    user: IdentityResponse


# ---------- Colleges ----------

class CollegeBase(CamelModel):
    name: str = Field(min_length=2)
    email_domain: str

    @field_validator("email_domain")
    @classmethod
    def email_domain_format(cls, v):
        return validate_email_domain(v)


class CollegeCreate(CollegeBase):
    pass


class CollegeUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=2)
    email_domain: Optional[str] = None

    @field_validator("email_domain")
    @classmethod
    def email_domain_format(cls, v):
        if v is None:
            return v
        return validate_email_domain(v)


class CollegeResponse(CamelModel):
    id: str
    name: str
    email_domain: str
    created_at: datetime


class CollegeListItem(CollegeResponse):
    student_count: int
    event_count: int


# ---------- Students ----------

class StudentCreate(CamelModel):
    name: str = Field(min_length=2)
    email: EmailStr
    college_id: str


class StudentVerify(CamelModel):
    verification_token: str


class StudentSummary(CamelModel):
    id: str
    name: str
    email: str
    is_verified: bool


class StudentResponse(StudentSummary):
    college_id: str
    created_at: datetime
    college: Optional[CollegeResponse] = None


class StudentListItem(StudentResponse):
    registration_count: int = 0


class StudentAuthResponse(CamelModel):
    message: str
    student: StudentResponse


class StudentTokenResponse(CamelModel):
    token: str
    student: StudentResponse


class CSVImportError(CamelModel):
    row: int
    email: Optional[str] = None
    error: str


class CSVUploadResponse(CamelModel):
    total_processed: int
    newly_added: int
    skipped: int
    errors: List[CSVImportError]
    students: List[StudentResponse]


# ---------- Events ----------

class EventCreate(CamelModel):
    title: str = Field(min_length=3)
    description: Optional[str] = None
    date: datetime
    venue: str = Field(min_length=2)
    category: EventCategory
    max_capacity: Optional[int] = Field(default=None, gt=0)
    allow_other_colleges: bool = False


class EventUpdate(CamelModel):
    title: Optional[str] = Field(default=None, min_length=3)
    description: Optional[str] = None
    date: Optional[datetime] = None
    venue: Optional[str] = Field(default=None, min_length=2)
    category: Optional[EventCategory] = None
    max_capacity: Optional[int] = Field(default=None, gt=0)
    allow_other_colleges: Optional[bool] = None
    status: Optional[EventStatus] = None


class EventResponse(CamelModel):
    id: str
    title: str
    description: Optional[str] = None
    date: datetime
    venue: str
    category: EventCategory
    max_capacity: Optional[int] = None
    allow_other_colleges: bool
    status: EventStatus
    college_id: str
    registration_count: int
    created_at: datetime
    college: Optional[CollegeResponse] = None


class StudentEventView(EventResponse):
    is_registered: bool
    has_attended: bool
    has_feedback: bool
    can_register: bool
    is_own_college: bool


class CapacityResponse(CamelModel):
    event_id: str
    title: str
    max_capacity: Optional[int] = None
    current_registrations: int
    available_spots: Optional[int] = None
    is_full: bool


class ReminderRecipient(CamelModel):
    id: str
    email: str
    name: str


class ReminderResponse(CamelModel):
    message: str
    event_title: str
    reminders_sent: int
    students: List[ReminderRecipient]


# ---------- Registrations / attendance / feedback ----------

class RegistrationCreate(CamelModel):
    student_id: str
    event_id: str


class AttendanceMark(CamelModel):
    registration_id: str


class BulkAttendanceMark(CamelModel):
    registration_ids: List[str]


class FeedbackCreate(CamelModel):
    registration_id: str
    rating: Any = None
    comments: Optional[str] = None


class FeedbackSubmit(CamelModel):
    rating: Any = None
    comments: Optional[str] = None


class FeedbackUpdate(CamelModel):
    rating: Any = None
    comments: Optional[str] = None


class AttendanceRecord(CamelModel):
    id: str
    registration_id: str
    checked_in_at: datetime


class FeedbackRecord(CamelModel):
    id: str
    registration_id: str
    rating: int
    comments: Optional[str] = None
    submitted_at: datetime


class RegistrationRecord(CamelModel):
    id: str
    student_id: str
    event_id: str
    registered_at: datetime


class RegistrationResponse(RegistrationRecord):
    student: Optional[StudentSummary] = None
    event: Optional[EventResponse] = None
    attendance: Optional[AttendanceRecord] = None
    feedback: Optional[FeedbackRecord] = None


class RegistrationCreated(CamelModel):
    message: str
    registration: RegistrationResponse


class AttendanceResponse(AttendanceRecord):
    registration: Optional[RegistrationResponse] = None


class AttendanceCreated(CamelModel):
    message: str
    attendance: AttendanceResponse


class BulkAttendanceError(CamelModel):
    registration_id: str
    error: str
    reason: Optional[str] = None


class BulkAttendanceResponse(CamelModel):
    message: str
    successful: int
    failed: int
    attendances: List[AttendanceResponse]
    errors: List[BulkAttendanceError]


class FeedbackResponse(FeedbackRecord):
    registration: Optional[RegistrationResponse] = None


class FeedbackSaved(CamelModel):
    message: str
    feedback: FeedbackResponse


class FeedbackStats(CamelModel):
    event_id: str
    total_feedbacks: int
    average_rating: float
    rating_distribution: Dict[int, int]


# ---------- Colleges (nested) ----------

class CollegeDetail(CollegeResponse):
    students: List[StudentSummary]
    events: List[EventResponse]


class EventDetail(EventResponse):
    registrations: List[RegistrationResponse]


class StudentDetail(StudentResponse):
    registrations: List[RegistrationResponse]


# ---------- Reports ----------

class EventPopularityItem(CamelModel):
    id: str
    title: str
    date: datetime
    venue: str
    category: EventCategory
    college: Optional[str] = None
    total_registrations: int
    total_attendance: int
    attendance_percentage: int
    average_rating: float
    total_feedbacks: int


class StudentParticipationItem(CamelModel):
    id: str
    name: str
    email: str
    college: Optional[str] = None
    total_registrations: int
    total_attendance: int
    attendance_rate: int


class AttendedEvent(CamelModel):
    event_title: str
    event_date: datetime


class TopStudentItem(StudentParticipationItem):
    events_attended: List[AttendedEvent]


class AttendanceReportItem(CamelModel):
    event_id: str
    event_title: str
    event_date: datetime
    total_registrations: int
    total_attendance: int
    attendance_percentage: int


class FeedbackReportItem(CamelModel):
    event_id: str
    event_title: str
    event_date: datetime
    total_feedbacks: int
    average_rating: float
    rating_distribution: Dict[int, int]


class OverallStats(CamelModel):
    total_students: int
    total_events: int
    total_registrations: int
    total_attendance: int
    total_feedbacks: int
    overall_attendance_rate: int
