import logging
from datetime import datetime
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from campus_events.app.dependencies import STUDENT, Identity, auth_dependency, get_now
from campus_events.core import lifecycle, rules, stats
from campus_events.core.errors import AuthorizationError, NotFoundError
from campus_events.models import Feedback, Registration, get_db
from campus_events.models.schemas import (
    FeedbackCreate, FeedbackResponse, FeedbackSaved, FeedbackStats, FeedbackUpdate, MessageResponse
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/feedback", tags=["feedback"])


def get_feedback_or_404(db: Session, feedback_id: str, identity: Identity) -> Feedback:
    feedback = db.get(Feedback, feedback_id)
    if feedback is None:
        raise NotFoundError("Feedback not found")
    if identity.role == STUDENT and feedback.registration.student_id != identity.user_id:
        raise AuthorizationError("You can only change your own feedback")
    return feedback


@router.post("", response_model=FeedbackSaved, status_code=201)
async def submit_feedback(
    payload: FeedbackCreate,
    db: Session = Depends(get_db),
    identity: Identity = auth_dependency,
    now: datetime = Depends(get_now),
):
    registration = db.get(Registration, payload.registration_id)
    if registration is not None and identity.role == STUDENT and registration.student_id != identity.user_id:
        raise AuthorizationError("You can only leave feedback on your own registrations")
    feedback = lifecycle.submit_feedback(db, registration, payload.rating, payload.comments, now)
    return FeedbackSaved(message="Feedback submitted successfully", feedback=feedback)


@router.get("/event/{event_id}", response_model=List[FeedbackResponse])
async def get_feedback_by_event(event_id: str, db: Session = Depends(get_db), identity: Identity = auth_dependency):
    return (
        db.query(Feedback)
        .join(Feedback.registration)
        .filter(Registration.event_id == event_id)
        .order_by(Feedback.submitted_at.desc())
        .all()
    )


@router.get("/{event_id}/stats", response_model=FeedbackStats)
async def get_feedback_stats(event_id: str, db: Session = Depends(get_db), identity: Identity = auth_dependency):
    ratings = [
        rating for (rating,) in
        db.query(Feedback.rating).join(Feedback.registration).filter(Registration.event_id == event_id).all()
    ]
    return stats.feedback_stats(event_id, ratings)


@router.put("/{feedback_id}", response_model=FeedbackSaved)
async def update_feedback(
    feedback_id: str,
    payload: FeedbackUpdate,
    db: Session = Depends(get_db),
    identity: Identity = auth_dependency,
):
    feedback = get_feedback_or_404(db, feedback_id, identity)
    updates = payload.model_dump(exclude_unset=True)

    if "rating" in updates:
        if not rules.is_valid_rating(updates["rating"]):
            rules.enforce(rules.deny(rules.DenialReason.INVALID_RATING))
        feedback.rating = updates["rating"]
    if "comments" in updates:
        feedback.comments = updates["comments"] or None

    db.commit()
    db.refresh(feedback)
    logger.info("Feedback %s updated", feedback.id)
    return FeedbackSaved(message="Feedback updated successfully", feedback=feedback)


@router.delete("/{feedback_id}", response_model=MessageResponse)
async def delete_feedback(feedback_id: str, db: Session = Depends(get_db), identity: Identity = auth_dependency):
    feedback = get_feedback_or_404(db, feedback_id, identity)
    db.delete(feedback)
    db.commit()
    logger.info("Feedback %s deleted", feedback_id)
    return MessageResponse(message="Feedback deleted successfully")
