import logging
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from campus_events.app.dependencies import Identity, admin_dependency
from campus_events.core.accounts import get_college_or_404
from campus_events.core.errors import ConflictError, ValidationError
from campus_events.models import College, get_db
from campus_events.models.schemas import (
    CollegeCreate, CollegeDetail, CollegeListItem, CollegeResponse, CollegeUpdate, MessageResponse
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/colleges", tags=["colleges"])


@router.post("", response_model=CollegeResponse, status_code=201)
async def create_college(payload: CollegeCreate, db: Session = Depends(get_db), identity: Identity = admin_dependency):
    college = College(name=payload.name.strip(), email_domain=payload.email_domain)
    db.add(college)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("College name or email domain already exists")
    db.refresh(college)
    logger.info("College %s created (%s)", college.name, college.email_domain)
    return college


@router.get("", response_model=List[CollegeListItem])
async def get_colleges(db: Session = Depends(get_db)):
    """All colleges with their student and event counts"""
    return (
        db.query(College)
        .options(selectinload(College.students), selectinload(College.events))
        .order_by(College.name.asc())
        .all()
    )


@router.get("/{college_id}", response_model=CollegeDetail)
async def get_college(college_id: str, db: Session = Depends(get_db)):
    return get_college_or_404(db, college_id)


@router.put("/{college_id}", response_model=CollegeResponse)
async def update_college(
    college_id: str,
    payload: CollegeUpdate,
    db: Session = Depends(get_db),
    identity: Identity = admin_dependency,
):
    college = get_college_or_404(db, college_id)
    if payload.name:
        college.name = payload.name.strip()
    if payload.email_domain:
        college.email_domain = payload.email_domain
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("College name or email domain already exists")
    db.refresh(college)
    return college


@router.delete("/{college_id}", response_model=MessageResponse)
async def delete_college(college_id: str, db: Session = Depends(get_db), identity: Identity = admin_dependency):
    """Only colleges without students or events can be removed"""
    college = get_college_or_404(db, college_id)
    if college.students or college.events:
        raise ValidationError("Cannot delete college with existing students or events")

    db.delete(college)
    db.commit()
    logger.info("College %s deleted", college_id)
    return MessageResponse(message="College deleted successfully")
