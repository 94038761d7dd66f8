from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from campus_events.app.dependencies import ADMIN, STUDENT, Identity, auth_dependency
from campus_events.config import Settings, get_settings
from campus_events.core import accounts
from campus_events.core.errors import AuthenticationError, NotFoundError, ValidationError
from campus_events.models import College, Student, get_db
from campus_events.models.schemas import (
    AdminLogin, IdentityResponse, LoginResponse, MessageResponse, ResendVerification,
    StudentAuthResponse, StudentLogin, StudentRegister
)
from campus_events.utils.tokens import create_access_token

router = APIRouter(prefix="/auth", tags=["auth"])

ADMIN_USER_ID = "admin"


@router.post("/admin/login", response_model=LoginResponse)
async def login_admin(payload: AdminLogin, db: Session = Depends(get_db), settings: Settings = Depends(get_settings)):
    """Admin web login against the configured credential"""
    if (
        not settings.admin_email
        or not settings.admin_password
        or payload.email.lower() != settings.admin_email.lower()
        or payload.password != settings.admin_password
    ):
        raise AuthenticationError("Invalid admin credentials")

    college_id = payload.college_id or settings.admin_college_id
    college = None
    if college_id:
        college = db.get(College, college_id)
        if college is None:
            raise NotFoundError("College not found")

    token = create_access_token(settings, ADMIN_USER_ID, settings.admin_email, ADMIN, college_id)
    return LoginResponse(
        message="Admin login successful",
        token=token,
        user=IdentityResponse(
            email=settings.admin_email,
            role=ADMIN,
            college_id=college_id,
            college=college.name if college else None,
        ),
    )


@router.post("/student/register", response_model=StudentAuthResponse, status_code=201)
async def register_student(payload: StudentRegister, db: Session = Depends(get_db), settings: Settings = Depends(get_settings)):
    """Mobile sign-up; the verification code is sent by email"""
    college = accounts.get_college_or_404(db, payload.college_id)
    student = accounts.create_student(db, settings, payload.name, payload.email, college)
    accounts.send_verification(student, settings)
    return StudentAuthResponse(
        message="Student registered successfully. Check your email for verification code.",
        student=student,
    )


@router.post("/student/login", response_model=LoginResponse)
async def login_student(payload: StudentLogin, db: Session = Depends(get_db), settings: Settings = Depends(get_settings)):
    """Mobile login; unverified students verify with their code on first login"""
    student = accounts.find_student_by_email(db, payload.email)
    if student is None:
        raise NotFoundError("Student not found")

    if not student.is_verified:
        if not payload.verification_token:
            raise ValidationError("Email not verified. Please provide verification token.")
        accounts.verify_student(db, student, payload.verification_token)

    token = create_access_token(settings, student.id, student.email, STUDENT, student.college_id)
    return LoginResponse(
        message="Student login successful",
        token=token,
        user=IdentityResponse(
            id=student.id,
            name=student.name,
            email=student.email,
            role=STUDENT,
            is_verified=student.is_verified,
            college=student.college.name,
            college_id=student.college_id,
        ),
    )


@router.post("/student/resend-verification", response_model=MessageResponse)
async def resend_verification(payload: ResendVerification, db: Session = Depends(get_db), settings: Settings = Depends(get_settings)):
    student = accounts.find_student_by_email(db, payload.email)
    if student is None:
        raise NotFoundError("Student not found")
    accounts.reset_verification(db, student, settings)
    return MessageResponse(message="Verification code resent to your email")


@router.get("/me", response_model=IdentityResponse, response_model_exclude_none=True)
async def get_current_user(identity: Identity = auth_dependency, db: Session = Depends(get_db)):
    if identity.role == STUDENT:
        student = db.get(Student, identity.user_id)
        if student is None:
            raise NotFoundError("Student not found")
        return IdentityResponse(
            id=student.id,
            name=student.name,
            email=student.email,
            role=STUDENT,
            is_verified=student.is_verified,
            college=student.college.name,
            college_id=student.college_id,
        )

    return IdentityResponse(email=identity.email, role=identity.role, college_id=identity.college_id)
