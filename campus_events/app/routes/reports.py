from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session, selectinload

from campus_events.app.dependencies import Identity, admin_dependency
from campus_events.core import stats
from campus_events.models import (
    Attendance, Event, EventCategory, Feedback, Registration, Student, get_db
)
from campus_events.models.schemas import (
    AttendanceReportItem, EventPopularityItem, FeedbackReportItem, OverallStats,
    StudentParticipationItem, TopStudentItem
)

router = APIRouter(prefix="/reports", tags=["reports"])


def load_events(db: Session, college_id: Optional[str] = None, category: Optional[EventCategory] = None,
                event_id: Optional[str] = None) -> List[Event]:
    query = db.query(Event).options(
        selectinload(Event.college),
        selectinload(Event.registrations).selectinload(Registration.attendance),
        selectinload(Event.registrations).selectinload(Registration.feedback),
    )
    if college_id:
        query = query.filter(Event.college_id == college_id)
    if category:
        query = query.filter(Event.category == category)
    if event_id:
        query = query.filter(Event.id == event_id)
    return query.order_by(Event.date.asc()).all()


def load_students(db: Session, college_id: Optional[str] = None) -> List[Student]:
    query = db.query(Student).options(
        selectinload(Student.college),
        selectinload(Student.registrations).selectinload(Registration.attendance),
        selectinload(Student.registrations).selectinload(Registration.event),
    )
    if college_id:
        query = query.filter(Student.college_id == college_id)
    return query.order_by(Student.name.asc()).all()


@router.get("/event-popularity", response_model=List[EventPopularityItem])
async def event_popularity(
    college_id: Optional[str] = Query(None, alias="collegeId"),
    category: Optional[EventCategory] = None,
    db: Session = Depends(get_db),
    identity: Identity = admin_dependency,
):
    return stats.event_popularity(load_events(db, college_id, category))


@router.get("/student-participation", response_model=List[StudentParticipationItem])
async def student_participation(
    college_id: Optional[str] = Query(None, alias="collegeId"),
    db: Session = Depends(get_db),
    identity: Identity = admin_dependency,
):
    return stats.student_participation(load_students(db, college_id))


@router.get("/top-active-students", response_model=List[TopStudentItem])
async def top_active_students(
    college_id: Optional[str] = Query(None, alias="collegeId"),
    limit: int = Query(3, ge=1, le=100),
    db: Session = Depends(get_db),
    identity: Identity = admin_dependency,
):
    return stats.top_active_students(load_students(db, college_id), limit)


@router.get("/attendance-percentage", response_model=List[AttendanceReportItem])
async def attendance_percentage(
    event_id: Optional[str] = Query(None, alias="eventId"),
    college_id: Optional[str] = Query(None, alias="collegeId"),
    db: Session = Depends(get_db),
    identity: Identity = admin_dependency,
):
    return stats.attendance_report(load_events(db, college_id, event_id=event_id))


@router.get("/average-feedback", response_model=List[FeedbackReportItem])
async def average_feedback(
    event_id: Optional[str] = Query(None, alias="eventId"),
    college_id: Optional[str] = Query(None, alias="collegeId"),
    db: Session = Depends(get_db),
    identity: Identity = admin_dependency,
):
    return stats.feedback_report(load_events(db, college_id, event_id=event_id))


@router.get("/overall-stats", response_model=OverallStats)
async def overall_stats(
    college_id: Optional[str] = Query(None, alias="collegeId"),
    db: Session = Depends(get_db),
    identity: Identity = admin_dependency,
):
    """Totals across the platform, or for one college's students and events"""
    students = db.query(Student)
    events = db.query(Event)
    registrations = db.query(Registration)
    attendance = db.query(Attendance).join(Attendance.registration)
    feedback = db.query(Feedback).join(Feedback.registration)

    if college_id:
        students = students.filter(Student.college_id == college_id)
        events = events.filter(Event.college_id == college_id)
        registrations = registrations.join(Registration.student).filter(Student.college_id == college_id)
        attendance = attendance.join(Registration.student).filter(Student.college_id == college_id)
        feedback = feedback.join(Registration.student).filter(Student.college_id == college_id)

    return stats.overall_stats(
        total_students=students.count(),
        total_events=events.count(),
        total_registrations=registrations.count(),
        total_attendance=attendance.count(),
        total_feedbacks=feedback.count(),
    )
