from datetime import datetime
from sqlalchemy import Column, Integer, String, Numeric, DateTime, Text, ForeignKey, Enum as SQLEnum
from sqlalchemy.orm import relationship
from microfin.core.database import Base
import enum


class TransactionType(str, enum.Enum):
    EXPENSE = "EXPENSE"
    INCOME = "INCOME"
    CAPITAL = "CAPITAL"
    INSTALLMENT = "INSTALLMENT"
    OTHER = "OTHER"


class TransactionCategory(str, enum.Enum):
    """Business categories used on the cash book"""
    HOME = "HOME"
    CAR = "CAR"
    OFFICE = "OFFICE"
    EMI = "EMI"
    INTEREST = "INTEREST"
    FARM = "FARM"
    BHOPAL = "BHOPAL"
    SAI_BABA = "SAI_BABA"
    PERSONAL = "PERSONAL"
    INSTALLMENT = "INSTALLMENT"
    INCOME = "INCOME"
    LOAN = "LOAN"
    NEUTRAL = "NEUTRAL"  # excluded from every profit aggregate
    OTHER = "OTHER"


class Transaction(Base):
    """Cash book entry"""
    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True, index=True)

    amount = Column(Numeric(12, 2), nullable=False)
    transaction_type = Column(SQLEnum(TransactionType, name="transaction_type"), nullable=False, index=True)
    category = Column(SQLEnum(TransactionCategory, name="transaction_category"), nullable=False, index=True)

    # Collection breakdown (INSTALLMENT entries)
    interest = Column(Numeric(12, 2), nullable=False, default=0)
    penalty_amount = Column(Numeric(12, 2), nullable=False, default=0)
    extra_amount = Column(Numeric(12, 2), nullable=False, default=0)

    # Description
    name = Column(String(200), nullable=True)
    notes = Column(Text, nullable=True)
    added_by = Column(String(20), nullable=True)  # ADMIN, AGENT

    # Links
    installment_id = Column(Integer, ForeignKey("installments.id", ondelete="SET NULL"), nullable=True, index=True)
    loan_id = Column(Integer, ForeignKey("loans.id", ondelete="SET NULL"), nullable=True, index=True)

    # Backdatable: due date of the installment or a user-chosen date
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    # Relationships
    installment = relationship("Installment")

    def __repr__(self):
        return f"<Transaction(id={self.id}, type={self.transaction_type}, amount={self.amount})>"
