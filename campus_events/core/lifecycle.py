"""
Registration, attendance and feedback writes.

Routes call these with an explicit Session. Each function evaluates the
matching rule, then performs its write so that the database, not the
earlier read, has the final say: seats are reserved with a conditional
counter UPDATE and duplicates are caught by unique constraints.
"""

import logging
from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy import or_, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from campus_events.core import rules
from campus_events.core.rules import DenialReason
from campus_events.models import (
    Attendance, Event, EventStatus, Feedback, Registration, Student
)

logger = logging.getLogger(__name__)


def find_registration(db: Session, student_id: str, event_id: str) -> Optional[Registration]:
    return (
        db.query(Registration)
        .filter(Registration.student_id == student_id, Registration.event_id == event_id)
        .first()
    )


def get_registration_or_404(db: Session, registration_id: str) -> Registration:
    registration = db.get(Registration, registration_id)
    if registration is None:
        rules.enforce(rules.deny(DenialReason.REGISTRATION_NOT_FOUND))
    return registration


def reserve_seat(db: Session, event_id: str) -> bool:
    """Take one seat if the event is active and not full; False when nothing was taken"""
    result = db.execute(
        update(Event)
        .where(
            Event.id == event_id,
            Event.status == EventStatus.ACTIVE,
            or_(Event.max_capacity.is_(None), Event.registration_count < Event.max_capacity),
        )
        .values(registration_count=Event.registration_count + 1)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def release_seats(db: Session, event_ids: Iterable[str]) -> None:
    for event_id in event_ids:
        db.execute(
            update(Event)
            .where(Event.id == event_id, Event.registration_count > 0)
            .values(registration_count=Event.registration_count - 1)
            .execution_options(synchronize_session=False)
        )


def register_student(db: Session, student_id: str, event_id: str) -> Registration:
    student = db.get(Student, student_id)
    event = db.get(Event, event_id)
    already_registered = (
        student is not None and event is not None
        and find_registration(db, student_id, event_id) is not None
    )
    count = event.registration_count if event is not None else 0
    decision = rules.can_register(student, event, count, already_registered)
    if not decision:
        logger.info("Registration of %s for %s denied: %s", student_id, event_id, decision.reason.value)
    rules.enforce(decision)

    if not reserve_seat(db, event_id):
        db.rollback()
        db.refresh(event)
        # The seat went to someone else between the read and the write
        decision = rules.can_register(student, event, event.registration_count, False)
        rules.enforce(decision if not decision.allowed else rules.deny(DenialReason.EVENT_FULL))

    registration = Registration(student_id=student_id, event_id=event_id)
    db.add(registration)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        rules.enforce(rules.deny(DenialReason.ALREADY_REGISTERED))

    db.refresh(registration)
    logger.info("Student %s registered for event %s", student_id, event_id)
    return registration


def cancel_registration(db: Session, registration: Optional[Registration], now: datetime) -> None:
    rules.enforce(rules.can_cancel_registration(registration, now))
    registration_id, event_id = registration.id, registration.event_id
    db.delete(registration)
    release_seats(db, [event_id])
    db.commit()
    logger.info("Registration %s cancelled", registration_id)


def mark_attendance(db: Session, registration: Optional[Registration], now: datetime) -> Attendance:
    rules.enforce(rules.can_mark_attendance(registration, now))

    attendance = Attendance(registration_id=registration.id, checked_in_at=now)
    db.add(attendance)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        rules.enforce(rules.deny(DenialReason.ALREADY_MARKED))

    db.refresh(attendance)
    logger.info("Attendance marked for registration %s", registration.id)
    return attendance


def submit_feedback(
    db: Session,
    registration: Optional[Registration],
    rating,
    comments: Optional[str],
    now: datetime,
) -> Feedback:
    rules.enforce(rules.can_submit_feedback(registration, rating, now))

    feedback = Feedback(
        registration_id=registration.id,
        rating=rating,
        comments=comments or None,
        submitted_at=now,
    )
    db.add(feedback)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        rules.enforce(rules.deny(DenialReason.ALREADY_SUBMITTED))

    db.refresh(feedback)
    logger.info("Feedback (%s/5) submitted for registration %s", rating, registration.id)
    return feedback


def delete_student(db: Session, student: Student) -> None:
    """Remove a student with their registrations, attendance and feedback, freeing their seats"""
    student_id = student.id
    event_ids = [r.event_id for r in student.registrations]
    db.delete(student)
    release_seats(db, event_ids)
    db.commit()
    logger.info("Student %s deleted, %d registrations released", student_id, len(event_ids))


def delete_event(db: Session, event: Event) -> None:
    event_id, registrations = event.id, len(event.registrations)
    db.delete(event)
    db.commit()
    logger.info("Event %s deleted with %d registrations", event_id, registrations)
