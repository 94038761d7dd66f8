from sqlalchemy import Column, String, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship

from campus_events.utils.helpers import new_id, utcnow
from .database import Base


class Registration(Base):
    __tablename__ = "registrations"

    id = Column(String(36), primary_key=True, default=new_id)
    student_id = Column(String(36), ForeignKey("students.id", ondelete="CASCADE"), index=True, nullable=False)
    event_id = Column(String(36), ForeignKey("events.id", ondelete="CASCADE"), index=True, nullable=False)
    registered_at = Column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("student_id", "event_id", name="uq_registration_student_event"),
    )

    student = relationship("Student", back_populates="registrations")
    event = relationship("Event", back_populates="registrations")
    attendance = relationship(
        "Attendance",
        back_populates="registration",
        uselist=False,
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    feedback = relationship(
        "Feedback",
        back_populates="registration",
        uselist=False,
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
