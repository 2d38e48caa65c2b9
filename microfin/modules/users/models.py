from datetime import datetime
from sqlalchemy import Column, Integer, String, Boolean, DateTime, Enum as SQLEnum
from sqlalchemy.orm import relationship
from microfin.core.database import Base
import enum


class UserRole(str, enum.Enum):
    """Role carried in the access token"""
    ADMIN = "ADMIN"
    AGENT = "AGENT"


class User(Base):
    """Staff identity: administrators and field agents"""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)

    # Authentication
    email = Column(String(255), unique=True, index=True, nullable=False)
    hashed_password = Column(String(255), nullable=False)
    role = Column(SQLEnum(UserRole, name="user_role"), default=UserRole.AGENT, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    # Profile
    name = Column(String(200), nullable=False)
    phone = Column(String(20), nullable=True)
    address = Column(String(500), nullable=True)
    id_proof = Column(String(100), nullable=True)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    agent = relationship("Agent", back_populates="user", uselist=False, cascade="all, delete-orphan")

    def __repr__(self):
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"
