from .database import Base, SessionLocal, engine, get_db
from .college import College
from .student import Student
from .event import Event, EventCategory, EventStatus
from .registration import Registration
from .attendance import Attendance
from .feedback import Feedback

__all__ = [
    "Base",
    "SessionLocal",
    "engine",
    "get_db",
    "College",
    "Student",
    "Event",
    "EventCategory",
    "EventStatus",
    "Registration",
    "Attendance",
    "Feedback",
]
