"""
Event model with ticket capacity and price.

Key design decisions:
- `capacity` is the total ticket pool; remaining availability is derived from
  the sum of non-cancelled reservation quantities, never denormalized
- `ticket_price` is nullable: free events book at 0
"""

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Numeric, Index, CheckConstraint

from tourism_api.db.base import Base, TimestampMixin


class Event(Base, TimestampMixin):
    __tablename__ = "events"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    description = Column(String(1000), nullable=True)
    place_id = Column(Integer, ForeignKey("places.id"), nullable=True, index=True)
    start_date = Column(DateTime(timezone=True), nullable=True)
    end_date = Column(DateTime(timezone=True), nullable=True)
    capacity = Column(Integer, nullable=False, default=0)
    ticket_price = Column(Numeric(10, 2), nullable=True)
    status = Column(String(20), nullable=False, default="upcoming")

    __table_args__ = (
        CheckConstraint("capacity >= 0", name="check_event_capacity_non_negative"),
        Index("ix_events_start_date", "start_date"),
    )

    def __repr__(self) -> str:
        return f"<Event(id={self.id}, title={self.title}, capacity={self.capacity})>"
