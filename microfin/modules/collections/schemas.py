from pydantic import BaseModel, Field
from datetime import datetime
from decimal import Decimal
from typing import Optional

from microfin.modules.loans.schedule import MAX_PRINCIPAL
from microfin.modules.loans.schemas import InstallmentDetailResponse
from microfin.modules.transactions.schemas import TransactionResponse


class PaymentRequest(BaseModel):
    """Payment against one installment"""
    amount: Optional[Decimal] = Field(None, ge=0, le=MAX_PRINCIPAL)
    penalty_amount: Decimal = Field(Decimal("0"), ge=0, le=MAX_PRINCIPAL)
    extra_amount: Decimal = Field(Decimal("0"), ge=0, le=MAX_PRINCIPAL)
    payment_date: Optional[datetime] = None
    notes: Optional[str] = Field(None, max_length=1000)


class CollectionResponse(BaseModel):
    installment: InstallmentDetailResponse
    transaction: TransactionResponse
