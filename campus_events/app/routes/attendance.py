import logging
from datetime import datetime
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from campus_events.app.dependencies import Identity, admin_dependency, auth_dependency, get_now
from campus_events.core import lifecycle
from campus_events.core.errors import CampusError, NotFoundError
from campus_events.models import Attendance, Registration, get_db
from campus_events.models.schemas import (
    AttendanceCreated, AttendanceMark, AttendanceResponse, BulkAttendanceError,
    BulkAttendanceMark, BulkAttendanceResponse, MessageResponse
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/attendance", tags=["attendance"])


@router.post("", response_model=AttendanceCreated, status_code=201)
async def mark_attendance(
    payload: AttendanceMark,
    db: Session = Depends(get_db),
    identity: Identity = admin_dependency,
    now: datetime = Depends(get_now),
):
    registration = db.get(Registration, payload.registration_id)
    attendance = lifecycle.mark_attendance(db, registration, now)
    return AttendanceCreated(message="Attendance marked successfully", attendance=attendance)


@router.post("/bulk", response_model=BulkAttendanceResponse)
async def bulk_mark_attendance(
    payload: BulkAttendanceMark,
    db: Session = Depends(get_db),
    identity: Identity = admin_dependency,
    now: datetime = Depends(get_now),
):
    """Each id is checked and committed on its own; failures are reported, not rolled back"""
    attendances = []
    errors = []

    for registration_id in payload.registration_ids:
        registration = db.get(Registration, registration_id)
        try:
            attendances.append(lifecycle.mark_attendance(db, registration, now))
        except CampusError as e:
            reason = e.details[0]["reason"] if e.details else None
            errors.append(BulkAttendanceError(registration_id=registration_id, error=e.message, reason=reason))

    logger.info("Bulk attendance: %d marked, %d failed", len(attendances), len(errors))
    return BulkAttendanceResponse(
        message="Bulk attendance processing completed",
        successful=len(attendances),
        failed=len(errors),
        attendances=attendances,
        errors=errors,
    )


@router.get("/event/{event_id}", response_model=List[AttendanceResponse])
async def get_attendance_by_event(event_id: str, db: Session = Depends(get_db), identity: Identity = admin_dependency):
    return (
        db.query(Attendance)
        .join(Attendance.registration)
        .filter(Registration.event_id == event_id)
        .order_by(Attendance.checked_in_at.asc())
        .all()
    )


@router.get("/student/{student_id}", response_model=List[AttendanceResponse])
async def get_attendance_by_student(student_id: str, db: Session = Depends(get_db), identity: Identity = auth_dependency):
    return (
        db.query(Attendance)
        .join(Attendance.registration)
        .filter(Registration.student_id == student_id)
        .order_by(Attendance.checked_in_at.desc())
        .all()
    )


@router.delete("/{attendance_id}", response_model=MessageResponse)
async def remove_attendance(attendance_id: str, db: Session = Depends(get_db), identity: Identity = admin_dependency):
    attendance = db.get(Attendance, attendance_id)
    if attendance is None:
        raise NotFoundError("Attendance record not found")

    db.delete(attendance)
    db.commit()
    logger.info("Attendance %s removed", attendance_id)
    return MessageResponse(message="Attendance removed successfully")
