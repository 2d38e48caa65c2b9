from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import date, datetime
from decimal import Decimal

from microfin.modules.loans.models import PaymentFrequency, LoanStatus, InstallmentStatus
from microfin.modules.loans.schedule import MAX_PRINCIPAL, MAX_INTEREST_RATE, MAX_DURATION_MONTHS


# ============================================================
# Requests
# ============================================================

class LoanTerms(BaseModel):
    """Loan parameters; lower bounds are checked by the schedule generator"""
    principal_amount: Decimal = Field(..., le=MAX_PRINCIPAL)
    interest_rate: Decimal = Field(..., le=MAX_INTEREST_RATE)
    duration: int = Field(..., le=MAX_DURATION_MONTHS)
    frequency: PaymentFrequency = PaymentFrequency.MONTHLY
    start_date: date


class LoanCreate(LoanTerms):
    created_at: Optional[datetime] = None  # backdated disbursement


class LoanSettleRequest(BaseModel):
    amount: Decimal = Field(Decimal("0"), ge=0, le=MAX_PRINCIPAL)
    interest: Decimal = Field(Decimal("0"), ge=0, le=MAX_PRINCIPAL)
    penalty_amount: Decimal = Field(Decimal("0"), ge=0, le=MAX_PRINCIPAL)
    extra_amount: Decimal = Field(Decimal("0"), ge=0, le=MAX_PRINCIPAL)
    settlement_date: Optional[datetime] = None
    notes: Optional[str] = Field(None, max_length=500)


class InstallmentUpdate(BaseModel):
    """Admin edit of schedule or payment fields"""
    due_date: Optional[date] = None
    principal: Optional[Decimal] = Field(None, ge=0)
    interest: Optional[Decimal] = Field(None, ge=0)
    installment_amount: Optional[Decimal] = Field(None, ge=0)
    amount: Optional[Decimal] = Field(None, ge=0)
    status: Optional[InstallmentStatus] = None
    paid_at: Optional[datetime] = None
    penalty_amount: Optional[Decimal] = Field(None, ge=0)
    extra_amount: Optional[Decimal] = Field(None, ge=0)
    due_amount: Optional[Decimal] = Field(None, ge=0)


# ============================================================
# Responses
# ============================================================

class ScheduleItemResponse(BaseModel):
    number: int
    due_date: date
    principal: float
    interest: float
    installment_amount: float
    amount: float
    status: InstallmentStatus


class SchedulePreviewResponse(BaseModel):
    principal_amount: float
    interest_rate: float
    duration: int
    frequency: PaymentFrequency
    periods: int
    total_interest: float
    total_payable: float
    installments: List[ScheduleItemResponse]


class InstallmentResponse(BaseModel):
    id: int
    loan_id: int
    due_date: date
    principal: float
    interest: float
    installment_amount: float
    amount: float
    status: InstallmentStatus
    paid_at: Optional[datetime] = None
    penalty_amount: float
    extra_amount: float
    due_amount: float

    class Config:
        from_attributes = True


class InstallmentDetailResponse(InstallmentResponse):
    borrower_name: Optional[str] = None
    borrower_phone: Optional[str] = None
    agent_name: Optional[str] = None
    frequency: Optional[PaymentFrequency] = None


class LoanResponse(BaseModel):
    id: int
    borrower_id: int
    borrower_name: Optional[str] = None
    principal_amount: float
    interest_rate: float
    duration: int
    frequency: PaymentFrequency
    start_date: date
    status: LoanStatus
    created_at: datetime

    class Config:
        from_attributes = True


class LoanDetailResponse(LoanResponse):
    installments: List[InstallmentResponse] = []


class InstallmentListResponse(BaseModel):
    installments: List[InstallmentDetailResponse]
    total: int
    page: int
    page_size: int
    total_pages: int


class GeneratedInstallmentsResponse(BaseModel):
    generated: int
    installments: List[InstallmentDetailResponse]


class OverdueSweepResponse(BaseModel):
    updated: int
    installments: List[InstallmentDetailResponse]
