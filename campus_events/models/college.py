from sqlalchemy import Column, String, DateTime
from sqlalchemy.orm import relationship

from campus_events.utils.helpers import new_id, utcnow
from .database import Base


class College(Base):
    __tablename__ = "colleges"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String, unique=True, nullable=False)
    email_domain = Column(String, unique=True, index=True, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, onupdate=utcnow)

    students = relationship("Student", back_populates="college", order_by="Student.name")
    events = relationship("Event", back_populates="college", order_by="Event.date")

    @property
    def student_count(self) -> int:
        return len(self.students)

    @property
    def event_count(self) -> int:
        return len(self.events)
