"""
Admin cash book endpoints.
"""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional, List
from datetime import date

from microfin.core.config import settings
from microfin.core.database import get_db
from microfin.modules.transactions import schemas
from microfin.modules.transactions.models import TransactionType, TransactionCategory
from microfin.modules.transactions.services import TransactionService
from microfin.modules.users.schemas import MessageResponse

router = APIRouter(prefix="/transactions", tags=["admin-transactions"])


@router.get("", response_model=schemas.TransactionListResponse)
async def list_transactions(
    search: Optional[str] = None,
    type: Optional[TransactionType] = None,
    category: Optional[TransactionCategory] = None,
    loan_id: Optional[int] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=100),
    db: AsyncSession = Depends(get_db)
):
    """List cash book entries with filtering, newest first"""
    transactions, total = await TransactionService(db).list_transactions(
        search=search,
        transaction_type=type,
        category=category,
        loan_id=loan_id,
        start_date=start_date,
        end_date=end_date,
        page=page,
        page_size=page_size
    )
    return {
        "transactions": transactions,
        "total": total,
        "page": page,
        "page_size": page_size,
        "total_pages": (total + page_size - 1) // page_size
    }


@router.post("", response_model=schemas.TransactionResponse, status_code=status.HTTP_201_CREATED)
async def create_transaction(data: schemas.TransactionCreate, db: AsyncSession = Depends(get_db)):
    """Record an entry; INSTALLMENT entries collect the linked installment"""
    return await TransactionService(db).create_transaction(data, added_by="ADMIN")


@router.get("/today", response_model=List[schemas.TransactionResponse])
async def transactions_today(db: AsyncSession = Depends(get_db)):
    return await TransactionService(db).list_today()


@router.get("/{transaction_id}", response_model=schemas.TransactionResponse)
async def get_transaction(transaction_id: int, db: AsyncSession = Depends(get_db)):
    return await TransactionService(db).get_transaction(transaction_id)


@router.patch("/{transaction_id}", response_model=schemas.TransactionResponse)
async def update_transaction(
    transaction_id: int,
    data: schemas.TransactionUpdate,
    db: AsyncSession = Depends(get_db)
):
    """Edit notes, name, category or date"""
    return await TransactionService(db).update_transaction(transaction_id, data)


@router.delete("/{transaction_id}", response_model=MessageResponse)
async def delete_transaction(transaction_id: int, db: AsyncSession = Depends(get_db)):
    """Delete an entry; a settling entry reverts its installment"""
    await TransactionService(db).delete_transaction(transaction_id)
    return {"message": "Transaction deleted successfully"}
