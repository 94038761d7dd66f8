import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from campus_events.config import Settings
from campus_events.core.errors import ConflictError, NotFoundError, ValidationError
from campus_events.models import College, Student
from campus_events.utils.helpers import (
    email_domain_of, generate_token, send_verification_email, utcnow
)

logger = logging.getLogger(__name__)


def get_college_or_404(db: Session, college_id: str) -> College:
    college = db.get(College, college_id)
    if college is None:
        raise NotFoundError("College not found")
    return college


def find_student_by_email(db: Session, email: str) -> Optional[Student]:
    return db.query(Student).filter(Student.email == email.strip().lower()).first()


def check_email_domain(email: str, college: College) -> None:
    if email_domain_of(email) != college.email_domain.lower():
        raise ValidationError("Email domain does not match college domain")


def create_student(
    db: Session,
    settings: Settings,
    name: str,
    email: str,
    college: College,
    commit: bool = True,
) -> Student:
    """Create an unverified student holding a fresh verification token"""
    email = email.strip().lower()
    check_email_domain(email, college)
    if find_student_by_email(db, email) is not None:
        raise ConflictError("Student already exists")

    student = Student(
        name=name.strip(),
        email=email,
        college_id=college.id,
        is_verified=False,
        verification_token=generate_token(settings.verification_token_length),
    )
    db.add(student)
    if not commit:
        return student

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("Email already exists")
    db.refresh(student)
    logger.info("Created student %s for college %s", student.email, college.name)
    return student


def send_verification(student: Student, settings: Settings) -> bool:
    return send_verification_email(
        student.email,
        student.name,
        student.verification_token,
        api_key=settings.sendgrid_api_key,
        from_email=settings.sendgrid_from_email,
    )


def verify_student(db: Session, student: Student, token: Optional[str]) -> Student:
    """Consume the single-use token; a mismatch leaves the student unverified"""
    if not token or student.verification_token != token:
        raise ValidationError("Invalid verification token")
    student.is_verified = True
    student.verification_token = None
    student.updated_at = utcnow()
    db.commit()
    db.refresh(student)
    logger.info("Student %s verified", student.email)
    return student


def reset_verification(db: Session, student: Student, settings: Settings) -> Student:
    if student.is_verified:
        raise ValidationError("Student already verified")
    student.verification_token = generate_token(settings.verification_token_length)
    student.updated_at = utcnow()
    db.commit()
    db.refresh(student)
    send_verification(student, settings)
    return student
