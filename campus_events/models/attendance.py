from sqlalchemy import Column, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from campus_events.utils.helpers import new_id, utcnow
from .database import Base


class Attendance(Base):
    __tablename__ = "attendance"

    id = Column(String(36), primary_key=True, default=new_id)
    registration_id = Column(
        String(36),
        ForeignKey("registrations.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    checked_in_at = Column(DateTime, default=utcnow, nullable=False)

    registration = relationship("Registration", back_populates="attendance")
