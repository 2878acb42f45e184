"""
Reservation model: a user's booking of either an event or a place visit.

Key design decisions:
- Exactly one of event_id / place_id is set (CHECK constraint); the service
  layer models the pair as a BookingTarget so the mixed state never reaches here
- total_price is computed once at creation and frozen
- Rows are hard-deleted; cancellation is a status, not a delete
"""

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Numeric, Index, CheckConstraint

from tourism_api.db.base import Base, TimestampMixin, utcnow

RESERVATION_STATUSES = ("pending", "confirmed", "cancelled", "completed")


class Reservation(Base, TimestampMixin):
    __tablename__ = "reservations"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    event_id = Column(Integer, ForeignKey("events.id"), nullable=True, index=True)
    place_id = Column(Integer, ForeignKey("places.id"), nullable=True, index=True)
    quantity = Column(Integer, nullable=False, default=1)
    visit_date = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    total_price = Column(Numeric(10, 2), nullable=False, default=0)
    status = Column(String(20), nullable=False, default="pending")
    payment_method = Column(String(50), nullable=True)
    payment_id = Column(String(255), nullable=True)

    __table_args__ = (
        CheckConstraint(
            "(event_id IS NULL) <> (place_id IS NULL)",
            name="check_reservation_single_target",
        ),
        CheckConstraint("quantity >= 1", name="check_reservation_quantity_positive"),
        CheckConstraint("total_price >= 0", name="check_reservation_price_non_negative"),
        CheckConstraint(
            "status IN ('pending', 'confirmed', 'cancelled', 'completed')",
            name="check_reservation_status",
        ),
        Index("ix_reservations_visit_date", "visit_date"),
        Index("ix_reservations_place_visit", "place_id", "visit_date"),
    )

    def __repr__(self) -> str:
        target = f"event={self.event_id}" if self.event_id is not None else f"place={self.place_id}"
        return f"<Reservation(id={self.id}, user={self.user_id}, {target}, status={self.status})>"
