"""
Place model (museums, beaches, archaeological sites...).

`entrance_fee` is stored as serialized JSON text keyed by visitor
category, e.g. '{"adult": 10, "child": 5}'. Readers must parse it
defensively; see services.pricing_service.parse_entrance_fee.
"""

from sqlalchemy import Column, Integer, String, Text

from tourism_api.db.base import Base, TimestampMixin


class Place(Base, TimestampMixin):
    __tablename__ = "places"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    type = Column(String(50), nullable=True)
    description = Column(Text, nullable=True)
    location = Column(Text, nullable=True)
    entrance_fee = Column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<Place(id={self.id}, name={self.name})>"
