"""
Admin loan management endpoints.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional, List

from microfin.core.database import get_db
from microfin.modules.loans import schemas
from microfin.modules.loans.models import LoanStatus
from microfin.modules.loans.services import LoanService
from microfin.modules.users.schemas import MessageResponse

router = APIRouter(prefix="/loans", tags=["admin-loans"])


@router.get("", response_model=List[schemas.LoanResponse])
async def list_loans(
    status: Optional[LoanStatus] = None,
    borrower_id: Optional[int] = None,
    db: AsyncSession = Depends(get_db)
):
    """List loans with filtering"""
    return await LoanService(db).list_loans(status=status, borrower_id=borrower_id)


@router.get("/{loan_id}", response_model=schemas.LoanDetailResponse)
async def get_loan(loan_id: int, db: AsyncSession = Depends(get_db)):
    return await LoanService(db).get_loan(loan_id)


@router.delete("/{loan_id}", response_model=MessageResponse)
async def delete_loan(loan_id: int, db: AsyncSession = Depends(get_db)):
    """Delete a loan with its installments and ledger entries"""
    await LoanService(db).delete_loan(loan_id)
    return {"message": "Loan deleted successfully"}


@router.post("/{loan_id}/settle", response_model=schemas.LoanDetailResponse)
async def settle_loan(
    loan_id: int,
    data: schemas.LoanSettleRequest,
    db: AsyncSession = Depends(get_db)
):
    """Settle an active loan"""
    return await LoanService(db).settle_loan(loan_id, data)
