"""
Lifecycle rules for registrations, attendance and feedback.

Each check takes entity state that the caller already loaded and returns a
Decision instead of raising, so the same rule is shared by every route that
needs it and can be evaluated without a database. ``enforce`` converts a
denial into the matching CampusError at the HTTP boundary.
"""

import enum
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from campus_events.core.errors import ConflictError, NotFoundError, ValidationError
from campus_events.models.event import EventStatus


class DenialReason(str, enum.Enum):
    EVENT_NOT_FOUND = "EventNotFound"
    STUDENT_NOT_FOUND = "StudentNotFound"
    EVENT_NOT_ACTIVE = "EventNotActive"
    EVENT_FULL = "EventFull"
    ALREADY_REGISTERED = "AlreadyRegistered"
    COLLEGE_MISMATCH = "CollegeMismatch"
    REGISTRATION_NOT_FOUND = "RegistrationNotFound"
    ALREADY_MARKED = "AlreadyMarked"
    NOT_EVENT_DAY = "NotEventDay"
    INVALID_RATING = "InvalidRating"
    NO_ATTENDANCE = "NoAttendance"
    EVENT_IN_FUTURE = "EventInFuture"
    ALREADY_SUBMITTED = "AlreadySubmitted"
    ATTENDANCE_MARKED = "AttendanceMarked"
    EVENT_PAST = "EventPast"


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: Optional[DenialReason] = None
    message: str = ""

    def __bool__(self) -> bool:
        return self.allowed


ALLOWED = Decision(allowed=True)

MESSAGES = {
    DenialReason.EVENT_NOT_FOUND: "Event not found",
    DenialReason.STUDENT_NOT_FOUND: "Student not found",
    DenialReason.EVENT_NOT_ACTIVE: "Event is not active",
    DenialReason.EVENT_FULL: "Event is full",
    DenialReason.ALREADY_REGISTERED: "Student is already registered for this event",
    DenialReason.COLLEGE_MISMATCH: "This event is only open to students from the organizing college",
    DenialReason.REGISTRATION_NOT_FOUND: "Registration not found",
    DenialReason.ALREADY_MARKED: "Attendance already marked for this registration",
    DenialReason.NOT_EVENT_DAY: "Can only mark attendance on event day",
    DenialReason.INVALID_RATING: "Rating must be between 1 and 5",
    DenialReason.NO_ATTENDANCE: "Cannot submit feedback without attendance",
    DenialReason.EVENT_IN_FUTURE: "Cannot submit feedback for future events",
    DenialReason.ALREADY_SUBMITTED: "Feedback already submitted for this event",
    DenialReason.ATTENDANCE_MARKED: "Cannot cancel registration with marked attendance",
    DenialReason.EVENT_PAST: "Cannot cancel registration for past events",
}

NOT_FOUND_REASONS = frozenset({
    DenialReason.EVENT_NOT_FOUND,
    DenialReason.STUDENT_NOT_FOUND,
    DenialReason.REGISTRATION_NOT_FOUND,
})

DUPLICATE_REASONS = frozenset({
    DenialReason.ALREADY_REGISTERED,
    DenialReason.ALREADY_MARKED,
    DenialReason.ALREADY_SUBMITTED,
})


def deny(reason: DenialReason, message: Optional[str] = None) -> Decision:
    return Decision(allowed=False, reason=reason, message=message or MESSAGES[reason])


def enforce(decision: Decision) -> None:
    """Raise the CampusError matching a denied decision; no-op when allowed."""
    if decision.allowed:
        return
    details = [{"reason": decision.reason.value}]
    if decision.reason in NOT_FOUND_REASONS:
        raise NotFoundError(decision.message, details)
    if decision.reason in DUPLICATE_REASONS:
        raise ConflictError(decision.message, details)
    raise ValidationError(decision.message, details)


def is_same_day(first: datetime, second: datetime) -> bool:
    return first.date() == second.date()


def can_register(
    student: Any,
    event: Any,
    registration_count: int,
    already_registered: bool,
) -> Decision:
    if student is None:
        return deny(DenialReason.STUDENT_NOT_FOUND)
    if event is None:
        return deny(DenialReason.EVENT_NOT_FOUND)
    if event.status != EventStatus.ACTIVE:
        return deny(DenialReason.EVENT_NOT_ACTIVE)
    if student.college_id != event.college_id and not event.allow_other_colleges:
        return deny(DenialReason.COLLEGE_MISMATCH)
    if event.max_capacity is not None and registration_count >= event.max_capacity:
        return deny(DenialReason.EVENT_FULL)
    if already_registered:
        return deny(DenialReason.ALREADY_REGISTERED)
    return ALLOWED


def can_mark_attendance(registration: Any, now: datetime) -> Decision:
    # One window for every call site: the event's calendar day (UTC), nothing before or after.
    if registration is None:
        return deny(DenialReason.REGISTRATION_NOT_FOUND)
    if registration.attendance is not None:
        return deny(DenialReason.ALREADY_MARKED)
    if not is_same_day(registration.event.date, now):
        return deny(DenialReason.NOT_EVENT_DAY)
    return ALLOWED


def is_valid_rating(rating: Any) -> bool:
    return isinstance(rating, int) and not isinstance(rating, bool) and 1 <= rating <= 5


def can_submit_feedback(registration: Any, rating: Any, now: datetime) -> Decision:
    if not is_valid_rating(rating):
        return deny(DenialReason.INVALID_RATING)
    if registration is None:
        return deny(DenialReason.REGISTRATION_NOT_FOUND)
    if registration.attendance is None:
        return deny(DenialReason.NO_ATTENDANCE)
    if registration.event.date > now:
        return deny(DenialReason.EVENT_IN_FUTURE)
    if registration.feedback is not None:
        return deny(DenialReason.ALREADY_SUBMITTED)
    return ALLOWED


def can_cancel_registration(registration: Any, now: datetime) -> Decision:
    if registration is None:
        return deny(DenialReason.REGISTRATION_NOT_FOUND)
    if registration.attendance is not None:
        return deny(DenialReason.ATTENDANCE_MARKED)
    if registration.event.date < now:
        return deny(DenialReason.EVENT_PAST)
    return ALLOWED
