from datetime import datetime
from sqlalchemy import Column, Integer, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from microfin.core.database import Base


class Agent(Base):
    """Field agent: one-to-one extension of a User with role AGENT"""
    __tablename__ = "agents"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    user = relationship("User", back_populates="agent", lazy="joined")
    borrowers = relationship("Borrower", back_populates="agent")

    @property
    def name(self) -> str:
        return self.user.name if self.user else None

    @property
    def email(self) -> str:
        return self.user.email if self.user else None

    @property
    def phone(self):
        return self.user.phone if self.user else None

    @property
    def address(self):
        return self.user.address if self.user else None

    @property
    def id_proof(self):
        return self.user.id_proof if self.user else None

    def __repr__(self):
        return f"<Agent(id={self.id}, user_id={self.user_id})>"
