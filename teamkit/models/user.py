"""
User Model

A user is an actor: a global identity that can belong to any number of
teams. Roles live on Membership, never on the user, so the same person
can be OWNER of one team and MEMBER of another.
"""
from sqlalchemy import Column, String, Boolean, DateTime
from sqlalchemy.orm import relationship
from teamkit.database import Base, utcnow
import uuid


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    email = Column(String(255), unique=True, nullable=False, index=True)
    hashed_password = Column(String(255), nullable=False)
    full_name = Column(String(255), nullable=True)

    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
    last_login_at = Column(DateTime, nullable=True)

    memberships = relationship("Membership", back_populates="user")

    def __repr__(self):
        return f"<User {self.email}>"
