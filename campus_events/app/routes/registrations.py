from datetime import datetime
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from campus_events.app.dependencies import STUDENT, Identity, auth_dependency, get_now, student_dependency
from campus_events.core import lifecycle
from campus_events.core.errors import AuthorizationError
from campus_events.models import Registration, get_db
from campus_events.models.schemas import (
    MessageResponse, RegistrationCreate, RegistrationCreated, RegistrationResponse
)

router = APIRouter(prefix="/registrations", tags=["registrations"])


@router.post("", response_model=RegistrationCreated, status_code=201)
async def create_registration(
    payload: RegistrationCreate,
    db: Session = Depends(get_db),
    identity: Identity = student_dependency,
):
    if payload.student_id != identity.user_id:
        raise AuthorizationError("Students can only register themselves")
    registration = lifecycle.register_student(db, payload.student_id, payload.event_id)
    return RegistrationCreated(message="Registration successful", registration=registration)


@router.get("/event/{event_id}", response_model=List[RegistrationResponse])
async def get_registrations_by_event(event_id: str, db: Session = Depends(get_db), identity: Identity = auth_dependency):
    return (
        db.query(Registration)
        .filter(Registration.event_id == event_id)
        .order_by(Registration.registered_at.asc())
        .all()
    )


@router.get("/student/{student_id}", response_model=List[RegistrationResponse])
async def get_registrations_by_student(student_id: str, db: Session = Depends(get_db), identity: Identity = auth_dependency):
    return (
        db.query(Registration)
        .filter(Registration.student_id == student_id)
        .order_by(Registration.registered_at.desc())
        .all()
    )


@router.get("/{registration_id}", response_model=RegistrationResponse)
async def get_registration(registration_id: str, db: Session = Depends(get_db), identity: Identity = auth_dependency):
    return lifecycle.get_registration_or_404(db, registration_id)


@router.delete("/{registration_id}", response_model=MessageResponse)
async def cancel_registration(
    registration_id: str,
    db: Session = Depends(get_db),
    identity: Identity = auth_dependency,
    now: datetime = Depends(get_now),
):
    """Not allowed once attendance is marked or the event has started"""
    registration = db.get(Registration, registration_id)
    if registration is not None and identity.role == STUDENT and registration.student_id != identity.user_id:
        raise AuthorizationError("Students can only cancel their own registrations")
    lifecycle.cancel_registration(db, registration, now)
    return MessageResponse(message="Registration cancelled successfully")
