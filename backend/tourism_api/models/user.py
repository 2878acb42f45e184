"""
User model. Owned by the identity service; this API only reads the
contact fields needed to address reservation emails.
"""

from sqlalchemy import Column, Integer, String

from tourism_api.db.base import Base, TimestampMixin


class User(Base, TimestampMixin):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    phone = Column(String(50), nullable=True)
    role = Column(String(20), nullable=False, default="user")

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email})>"
