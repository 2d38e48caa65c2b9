from datetime import datetime
from sqlalchemy import Column, Integer, Numeric, Date, DateTime, ForeignKey, Enum as SQLEnum
from sqlalchemy.orm import relationship
from microfin.core.database import Base
import enum


class PaymentFrequency(str, enum.Enum):
    MONTHLY = "MONTHLY"
    WEEKLY = "WEEKLY"
    DAILY = "DAILY"


class LoanStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    SETTLED = "SETTLED"


class InstallmentStatus(str, enum.Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    OVERDUE = "OVERDUE"
    SKIPPED = "SKIPPED"


# Statuses that can still receive a payment
COLLECTABLE_STATUSES = (InstallmentStatus.PENDING, InstallmentStatus.OVERDUE)


class Loan(Base):
    """Flat-rate loan with an installment schedule"""
    __tablename__ = "loans"

    id = Column(Integer, primary_key=True, index=True)
    borrower_id = Column(Integer, ForeignKey("borrowers.id"), nullable=False, index=True)

    # Terms
    principal_amount = Column(Numeric(12, 2), nullable=False)
    interest_rate = Column(Numeric(7, 2), nullable=False)  # percent per month
    duration = Column(Integer, nullable=False)  # months
    frequency = Column(SQLEnum(PaymentFrequency, name="payment_frequency"), nullable=False)
    start_date = Column(Date, nullable=False)

    status = Column(SQLEnum(LoanStatus, name="loan_status"), default=LoanStatus.ACTIVE, nullable=False, index=True)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    borrower = relationship("Borrower", back_populates="loans", lazy="selectin")
    installments = relationship(
        "Installment",
        back_populates="loan",
        lazy="selectin",
        order_by=lambda: [Installment.due_date, Installment.id],
        cascade="all, delete-orphan"
    )

    @property
    def borrower_name(self):
        return self.borrower.name if self.borrower else None

    def __repr__(self):
        return f"<Loan(id={self.id}, principal={self.principal_amount}, status={self.status})>"


class Installment(Base):
    """One period of a loan schedule"""
    __tablename__ = "installments"

    id = Column(Integer, primary_key=True, index=True)
    loan_id = Column(Integer, ForeignKey("loans.id", ondelete="CASCADE"), nullable=False, index=True)
    due_date = Column(Date, nullable=False, index=True)

    # Schedule
    principal = Column(Numeric(12, 2), nullable=False, default=0)
    interest = Column(Numeric(12, 2), nullable=False, default=0)
    installment_amount = Column(Numeric(12, 2), nullable=False, default=0)  # principal due
    amount = Column(Numeric(12, 2), nullable=False, default=0)  # principal + interest due

    # Payment
    status = Column(
        SQLEnum(InstallmentStatus, name="installment_status"),
        default=InstallmentStatus.PENDING,
        nullable=False,
        index=True
    )
    paid_at = Column(DateTime, nullable=True)
    penalty_amount = Column(Numeric(12, 2), nullable=False, default=0)
    extra_amount = Column(Numeric(12, 2), nullable=False, default=0)
    due_amount = Column(Numeric(12, 2), nullable=False, default=0)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    loan = relationship("Loan", back_populates="installments", lazy="selectin")

    @property
    def frequency(self):
        return self.loan.frequency if self.loan else None

    @property
    def borrower(self):
        return self.loan.borrower if self.loan else None

    @property
    def borrower_name(self):
        return self.borrower.name if self.borrower else None

    @property
    def borrower_phone(self):
        return self.borrower.phone if self.borrower else None

    @property
    def agent_name(self):
        return self.borrower.agent_name if self.borrower else None

    def __repr__(self):
        return f"<Installment(id={self.id}, loan_id={self.loan_id}, due={self.due_date}, status={self.status})>"
