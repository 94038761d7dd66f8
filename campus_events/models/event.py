import enum

from sqlalchemy import (
    Column, String, Text, Integer, Boolean, DateTime, Enum, ForeignKey, CheckConstraint
)
from sqlalchemy.orm import relationship

from campus_events.utils.helpers import new_id, utcnow
from .database import Base


class EventCategory(str, enum.Enum):
    WORKSHOP = "WORKSHOP"
    SEMINAR = "SEMINAR"
    FEST = "FEST"
    HACKATHON = "HACKATHON"
    TECH_TALK = "TECH_TALK"


class EventStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    CANCELLED = "CANCELLED"


class Event(Base):
    """
    A scheduled event owned by one college.

    registration_count mirrors the number of registration rows and is only
    changed through conditional UPDATEs, so the capacity check below is
    enforced by the database.
    """
    __tablename__ = "events"

    id = Column(String(36), primary_key=True, default=new_id)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    date = Column(DateTime, index=True, nullable=False)
    venue = Column(String, nullable=False)
    category = Column(Enum(EventCategory, name="event_category"), nullable=False)
    max_capacity = Column(Integer, nullable=True)
    allow_other_colleges = Column(Boolean, default=False, nullable=False)
    status = Column(Enum(EventStatus, name="event_status"), default=EventStatus.ACTIVE, nullable=False)
    college_id = Column(String(36), ForeignKey("colleges.id", ondelete="RESTRICT"), index=True, nullable=False)
    registration_count = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, onupdate=utcnow)

    __table_args__ = (
        CheckConstraint("max_capacity IS NULL OR max_capacity > 0", name="check_capacity_positive"),
        CheckConstraint("registration_count >= 0", name="check_registrations_positive"),
        CheckConstraint(
            "max_capacity IS NULL OR registration_count <= max_capacity",
            name="check_registrations_lte_capacity",
        ),
    )

    college = relationship("College", back_populates="events")
    registrations = relationship(
        "Registration",
        back_populates="event",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Registration.registered_at",
    )

    @property
    def is_full(self) -> bool:
        return self.max_capacity is not None and self.registration_count >= self.max_capacity
