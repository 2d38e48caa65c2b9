from pydantic import BaseModel, Field
from datetime import datetime
from decimal import Decimal
from typing import Optional, List

from microfin.modules.loans.schedule import MAX_PRINCIPAL
from microfin.modules.transactions.models import TransactionType, TransactionCategory


class TransactionCreate(BaseModel):
    """Cash book entry; INSTALLMENT entries are applied to ``installment_id``"""
    amount: Optional[Decimal] = Field(None, ge=0, le=MAX_PRINCIPAL)
    transaction_type: TransactionType
    category: TransactionCategory = TransactionCategory.OTHER
    name: Optional[str] = Field(None, max_length=200)
    notes: Optional[str] = Field(None, max_length=1000)
    installment_id: Optional[int] = None
    loan_id: Optional[int] = None
    penalty_amount: Decimal = Field(Decimal("0"), ge=0, le=MAX_PRINCIPAL)
    extra_amount: Decimal = Field(Decimal("0"), ge=0, le=MAX_PRINCIPAL)
    created_at: Optional[datetime] = None


class TransactionUpdate(BaseModel):
    notes: Optional[str] = Field(None, max_length=1000)
    name: Optional[str] = Field(None, max_length=200)
    category: Optional[TransactionCategory] = None
    created_at: Optional[datetime] = None


class TransactionResponse(BaseModel):
    id: int
    amount: float
    transaction_type: TransactionType
    category: TransactionCategory
    interest: float
    penalty_amount: float
    extra_amount: float
    name: Optional[str] = None
    notes: Optional[str] = None
    added_by: Optional[str] = None
    installment_id: Optional[int] = None
    loan_id: Optional[int] = None
    created_at: datetime

    class Config:
        from_attributes = True


class TransactionListResponse(BaseModel):
    transactions: List[TransactionResponse]
    total: int
    page: int
    page_size: int
    total_pages: int
