from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from microfin.core.database import Base


class Borrower(Base):
    """Loan customer, optionally owned by an agent"""
    __tablename__ = "borrowers"

    id = Column(Integer, primary_key=True, index=True)

    # Identity
    name = Column(String(200), nullable=False, index=True)
    father_name = Column(String(200), nullable=False)  # guarantor
    phone = Column(String(20), nullable=False, index=True)
    address = Column(String(500), nullable=False)
    pan_id = Column(String(10), unique=True, nullable=False, index=True)

    # Ownership
    agent_id = Column(Integer, ForeignKey("agents.id"), nullable=True, index=True)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    agent = relationship("Agent", back_populates="borrowers", lazy="selectin")
    loans = relationship("Loan", back_populates="borrower", order_by="Loan.start_date")

    @property
    def agent_name(self):
        return self.agent.name if self.agent else None

    def __repr__(self):
        return f"<Borrower(id={self.id}, name={self.name}, pan_id={self.pan_id})>"
