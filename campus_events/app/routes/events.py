import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from campus_events.app.dependencies import (
    Identity, admin_dependency, college_admin_dependency, enforce_college, get_now
)
from campus_events.core import lifecycle, stats
from campus_events.core.errors import NotFoundError, ValidationError
from campus_events.models import Event, EventCategory, EventStatus, Registration, get_db
from campus_events.models.schemas import (
    CapacityResponse, EventCreate, EventDetail, EventResponse, EventUpdate, MessageResponse,
    ReminderRecipient, ReminderResponse
)
from campus_events.utils.helpers import to_utc_naive

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/events", tags=["events"])


def get_event_or_404(db: Session, event_id: str) -> Event:
    event = db.get(Event, event_id)
    if event is None:
        raise NotFoundError("Event not found")
    return event


def get_owned_event(db: Session, event_id: str, identity: Identity) -> Event:
    event = get_event_or_404(db, event_id)
    enforce_college(identity, event.college_id)
    return event


@router.post("", response_model=EventResponse, status_code=201)
async def create_event(payload: EventCreate, db: Session = Depends(get_db), identity: Identity = college_admin_dependency):
    """Admins create events for their own college only"""
    event = Event(
        title=payload.title.strip(),
        description=payload.description,
        date=to_utc_naive(payload.date),
        venue=payload.venue.strip(),
        category=payload.category,
        max_capacity=payload.max_capacity,
        allow_other_colleges=payload.allow_other_colleges,
        college_id=identity.college_id,
    )
    db.add(event)
    db.commit()
    db.refresh(event)
    logger.info("Event %s (%s) created for college %s", event.title, event.id, event.college_id)
    return event


@router.get("", response_model=List[EventResponse])
async def get_events(
    college_id: Optional[str] = Query(None, alias="collegeId"),
    category: Optional[EventCategory] = None,
    upcoming: bool = False,
    db: Session = Depends(get_db),
    identity: Identity = admin_dependency,
    now: datetime = Depends(get_now),
):
    query = db.query(Event)
    # An admin bound to a college only ever sees that college
    if identity.college_id:
        query = query.filter(Event.college_id == identity.college_id)
    elif college_id:
        query = query.filter(Event.college_id == college_id)
    if category:
        query = query.filter(Event.category == category)
    if upcoming:
        query = query.filter(Event.date >= now)
    return query.order_by(Event.date.asc()).all()


@router.get("/{event_id}", response_model=EventDetail)
async def get_event(event_id: str, db: Session = Depends(get_db)):
    event = (
        db.query(Event)
        .options(selectinload(Event.registrations).selectinload(Registration.student))
        .filter(Event.id == event_id)
        .first()
    )
    if event is None:
        raise NotFoundError("Event not found")
    return event


@router.put("/{event_id}", response_model=EventResponse)
async def update_event(
    event_id: str,
    payload: EventUpdate,
    db: Session = Depends(get_db),
    identity: Identity = college_admin_dependency,
):
    event = get_owned_event(db, event_id, identity)
    updates = payload.model_dump(exclude_unset=True)

    if "date" in updates and updates["date"] is not None:
        updates["date"] = to_utc_naive(updates["date"])
    max_capacity = updates.get("max_capacity")
    if max_capacity is not None and max_capacity < event.registration_count:
        raise ValidationError(
            f"maxCapacity cannot be lower than the {event.registration_count} existing registrations"
        )

    for field, value in updates.items():
        if value is None and field not in ("description", "max_capacity"):
            continue
        setattr(event, field, value)

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ValidationError("maxCapacity cannot be lower than the existing registrations")
    db.refresh(event)
    logger.info("Event %s updated: %s", event.id, ", ".join(sorted(updates)))
    return event


@router.delete("/{event_id}", response_model=MessageResponse)
async def delete_event(event_id: str, db: Session = Depends(get_db), identity: Identity = college_admin_dependency):
    """Deleting an event also removes its registrations, attendance and feedback"""
    event = get_owned_event(db, event_id, identity)
    lifecycle.delete_event(db, event)
    return MessageResponse(message="Event deleted successfully")


@router.get("/{event_id}/capacity", response_model=CapacityResponse)
async def check_event_capacity(event_id: str, db: Session = Depends(get_db)):
    return stats.capacity_snapshot(get_event_or_404(db, event_id))


@router.put("/{event_id}/cancel", response_model=EventResponse)
async def cancel_event(event_id: str, db: Session = Depends(get_db), identity: Identity = college_admin_dependency):
    event = get_owned_event(db, event_id, identity)
    event.status = EventStatus.CANCELLED
    db.commit()
    db.refresh(event)
    logger.info("Event %s cancelled", event.id)
    return event


@router.post("/{event_id}/send-feedback-reminders", response_model=ReminderResponse)
async def send_feedback_reminders(
    event_id: str,
    db: Session = Depends(get_db),
    identity: Identity = college_admin_dependency,
    now: datetime = Depends(get_now),
):
    """Log a reminder for every attendee who has not left feedback; no email is sent"""
    event = get_owned_event(db, event_id, identity)
    if event.date > now:
        raise ValidationError("Cannot send feedback reminders for future events")

    students = [
        r.student for r in event.registrations
        if r.attendance is not None and r.feedback is None
    ]
    logger.info(
        'Sending feedback reminders for event "%s" to %d students: %s',
        event.title, len(students), [s.email for s in students],
    )
    return ReminderResponse(
        message="Feedback reminders sent successfully",
        event_title=event.title,
        reminders_sent=len(students),
        students=[ReminderRecipient(id=s.id, email=s.email, name=s.name) for s in students],
    )
