import io
import logging
from datetime import datetime
from typing import List, Optional

import pandas as pd
from fastapi import APIRouter, Depends, File, Query, UploadFile
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from campus_events.app.dependencies import (
    STUDENT, Identity, admin_dependency, get_now, student_dependency
)
from campus_events.config import Settings, get_settings
from campus_events.core import accounts, lifecycle, rules
from campus_events.core.errors import CampusError, NotFoundError, ValidationError
from campus_events.models import College, Event, EventStatus, Registration, Student, get_db
from campus_events.models.schemas import (
    AttendanceRecord, CSVImportError, CSVUploadResponse, EventResponse, FeedbackRecord,
    FeedbackSubmit, MessageResponse, RegistrationResponse, StudentAuthResponse, StudentCreate,
    StudentDetail, StudentEventView, StudentListItem, StudentLogin, StudentResponse,
    StudentSelfRegister, StudentTokenResponse, StudentVerify
)
from campus_events.utils.helpers import email_domain_of
from campus_events.utils.tokens import create_access_token

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/students", tags=["students"])

REQUIRED_CSV_COLUMNS = ["name", "email", "collegeId"]


def get_student_or_404(db: Session, student_id: str) -> Student:
    student = db.get(Student, student_id)
    if student is None:
        raise NotFoundError("Student not found")
    return student


# ---------- Student self-service (mobile) ----------

@router.post("/register", response_model=StudentAuthResponse, status_code=201)
async def register_student(payload: StudentSelfRegister, db: Session = Depends(get_db), settings: Settings = Depends(get_settings)):
    """Sign up with the college resolved from the email domain"""
    college = db.query(College).filter(College.email_domain == email_domain_of(payload.email)).first()
    if college is None:
        raise ValidationError("No college found for this email domain")

    student = accounts.create_student(db, settings, payload.name, payload.email, college)
    accounts.send_verification(student, settings)
    return StudentAuthResponse(
        message="Student registered successfully. Check your email for verification code.",
        student=student,
    )


@router.post("/login", response_model=StudentTokenResponse)
async def login_student(payload: StudentLogin, db: Session = Depends(get_db), settings: Settings = Depends(get_settings)):
    student = accounts.find_student_by_email(db, payload.email)
    if student is None:
        raise NotFoundError("Student not found")
    if not student.is_verified:
        raise ValidationError("Email not verified")

    token = create_access_token(settings, student.id, student.email, STUDENT, student.college_id)
    return StudentTokenResponse(token=token, student=student)


@router.get("/me/events", response_model=List[StudentEventView])
async def get_student_events(db: Session = Depends(get_db), identity: Identity = student_dependency):
    """Active events from every college, annotated for the calling student"""
    student = get_student_or_404(db, identity.user_id)
    events = (
        db.query(Event)
        .filter(Event.status == EventStatus.ACTIVE)
        .order_by(Event.date.asc())
        .all()
    )
    own = {
        r.event_id: r
        for r in db.query(Registration).filter(Registration.student_id == student.id).all()
    }

    views = []
    for event in events:
        registration = own.get(event.id)
        decision = rules.can_register(student, event, event.registration_count, registration is not None)
        views.append(StudentEventView(
            **EventResponse.model_validate(event).model_dump(),
            is_registered=registration is not None,
            has_attended=registration is not None and registration.attendance is not None,
            has_feedback=registration is not None and registration.feedback is not None,
            can_register=decision.allowed,
            is_own_college=event.college_id == student.college_id,
        ))
    return views


@router.post("/events/{event_id}/register", response_model=RegistrationResponse, status_code=201)
async def register_for_event(event_id: str, db: Session = Depends(get_db), identity: Identity = student_dependency):
    return lifecycle.register_student(db, identity.user_id, event_id)


@router.post("/events/{event_id}/attendance", response_model=AttendanceRecord, status_code=201)
async def mark_own_attendance(
    event_id: str,
    db: Session = Depends(get_db),
    identity: Identity = student_dependency,
    now: datetime = Depends(get_now),
):
    registration = lifecycle.find_registration(db, identity.user_id, event_id)
    return lifecycle.mark_attendance(db, registration, now)


@router.post("/events/{event_id}/feedback", response_model=FeedbackRecord, status_code=201)
async def submit_own_feedback(
    event_id: str,
    payload: FeedbackSubmit,
    db: Session = Depends(get_db),
    identity: Identity = student_dependency,
    now: datetime = Depends(get_now),
):
    registration = lifecycle.find_registration(db, identity.user_id, event_id)
    return lifecycle.submit_feedback(db, registration, payload.rating, payload.comments, now)


# ---------- Admin management (web) ----------

@router.post("/upload-csv", response_model=CSVUploadResponse)
async def upload_csv(
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    identity: Identity = admin_dependency,
):
    """Upload CSV file with name, email, collegeId columns and add the students"""
    if not file.filename or not file.filename.endswith('.csv'):
        raise ValidationError("File must be a CSV")

    content = await file.read()
    try:
        df = pd.read_csv(io.StringIO(content.decode('utf-8')), dtype=str).fillna("")
    except (UnicodeDecodeError, pd.errors.ParserError, pd.errors.EmptyDataError) as e:
        raise ValidationError(f"Could not read CSV: {e}")

    # Validate required columns
    missing_columns = [col for col in REQUIRED_CSV_COLUMNS if col not in df.columns]
    if missing_columns:
        raise ValidationError(f"Missing required columns: {missing_columns}")

    created = []
    errors = []
    skipped = 0
    colleges = {}

    for index, row in df.iterrows():
        email = row['email'].strip().lower()
        name = row['name'].strip()
        college_id = row['collegeId'].strip()

        # Check if student already exists
        if accounts.find_student_by_email(db, email) is not None:
            skipped += 1
            continue

        try:
            if college_id not in colleges:
                colleges[college_id] = accounts.get_college_or_404(db, college_id)
            if len(name) < 2:
                raise ValidationError("Name must be at least 2 characters")
            created.append(
                accounts.create_student(db, settings, name, email, colleges[college_id], commit=False)
            )
            db.flush()
        except IntegrityError:
            db.rollback()
            raise ValidationError("Duplicate emails within the uploaded file")
        except CampusError as e:
            errors.append(CSVImportError(row=int(index) + 2, email=email or None, error=e.message))

    db.commit()
    for student in created:
        db.refresh(student)
        accounts.send_verification(student, settings)

    logger.info("CSV import: %d rows, %d added, %d skipped, %d errors", len(df), len(created), skipped, len(errors))
    return CSVUploadResponse(
        total_processed=len(df),
        newly_added=len(created),
        skipped=skipped,
        errors=errors,
        students=created,
    )


@router.post("", response_model=StudentResponse, status_code=201)
async def create_student(
    payload: StudentCreate,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    identity: Identity = admin_dependency,
):
    college = accounts.get_college_or_404(db, payload.college_id)
    student = accounts.create_student(db, settings, payload.name, payload.email, college)
    accounts.send_verification(student, settings)
    return student


@router.get("", response_model=List[StudentListItem])
async def get_students(
    college_id: Optional[str] = Query(None, alias="collegeId"),
    db: Session = Depends(get_db),
    identity: Identity = admin_dependency,
):
    query = db.query(Student).options(selectinload(Student.registrations), selectinload(Student.college))
    if college_id:
        query = query.filter(Student.college_id == college_id)
    return query.order_by(Student.name.asc()).all()


@router.get("/{student_id}", response_model=StudentDetail)
async def get_student(student_id: str, db: Session = Depends(get_db), identity: Identity = admin_dependency):
    return get_student_or_404(db, student_id)


@router.patch("/{student_id}/verify", response_model=StudentAuthResponse)
async def verify_student(student_id: str, payload: StudentVerify, db: Session = Depends(get_db)):
    student = get_student_or_404(db, student_id)
    student = accounts.verify_student(db, student, payload.verification_token)
    return StudentAuthResponse(message="Email verified successfully", student=student)


@router.post("/{student_id}/resend-verification", response_model=MessageResponse)
async def resend_verification(student_id: str, db: Session = Depends(get_db), settings: Settings = Depends(get_settings)):
    student = get_student_or_404(db, student_id)
    accounts.reset_verification(db, student, settings)
    return MessageResponse(message="Verification email resent")


@router.delete("/{student_id}", response_model=MessageResponse)
async def delete_student(student_id: str, db: Session = Depends(get_db), identity: Identity = admin_dependency):
    """Delete a student along with their registrations, attendance and feedback"""
    lifecycle.delete_student(db, get_student_or_404(db, student_id))
    return MessageResponse(message="Student deleted successfully")
