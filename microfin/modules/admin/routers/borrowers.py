"""
Admin borrower management endpoints.
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional, List

from microfin.core.database import get_db
from microfin.modules.borrowers import schemas
from microfin.modules.borrowers.services import BorrowerService
from microfin.modules.loans.schemas import LoanCreate, LoanDetailResponse, InstallmentDetailResponse
from microfin.modules.loans.services import LoanService, InstallmentService
from microfin.modules.users.schemas import MessageResponse

router = APIRouter(prefix="/borrowers", tags=["admin-borrowers"])


@router.get("", response_model=List[schemas.BorrowerResponse])
async def list_borrowers(
    query: Optional[str] = None,
    agent_id: Optional[int] = None,
    db: AsyncSession = Depends(get_db)
):
    """List borrowers, searchable by name or phone"""
    return await BorrowerService(db).list_borrowers(search=query, agent_id=agent_id)


@router.post("", response_model=schemas.BorrowerResponse, status_code=status.HTTP_201_CREATED)
async def create_borrower(data: schemas.BorrowerCreate, db: AsyncSession = Depends(get_db)):
    """Create a borrower under ``agent_id``"""
    return await BorrowerService(db).create_borrower(data)


@router.get("/{borrower_id}", response_model=schemas.BorrowerDetailResponse)
async def get_borrower(borrower_id: int, db: AsyncSession = Depends(get_db)):
    """Borrower with loans and installments"""
    return await BorrowerService(db).get_borrower(borrower_id, with_loans=True)


@router.put("/{borrower_id}", response_model=schemas.BorrowerResponse)
async def update_borrower(
    borrower_id: int,
    data: schemas.BorrowerUpdate,
    db: AsyncSession = Depends(get_db)
):
    return await BorrowerService(db).update_borrower(borrower_id, data)


@router.delete("/{borrower_id}", response_model=MessageResponse)
async def delete_borrower(borrower_id: int, db: AsyncSession = Depends(get_db)):
    """Delete a borrower (refused while a loan is active)"""
    await BorrowerService(db).delete_borrower(borrower_id)
    return {"message": "Borrower deleted successfully"}


@router.post("/{borrower_id}/assign", response_model=schemas.BorrowerResponse)
async def assign_borrower(
    borrower_id: int,
    data: schemas.BorrowerAssignRequest,
    db: AsyncSession = Depends(get_db)
):
    """Reassign a borrower to another agent"""
    return await BorrowerService(db).assign_agent(borrower_id, data.agent_id)


@router.get("/{borrower_id}/loans", response_model=List[LoanDetailResponse])
async def list_borrower_loans(borrower_id: int, db: AsyncSession = Depends(get_db)):
    borrower = await BorrowerService(db).get_borrower(borrower_id)
    return await LoanService(db).list_loans(borrower_id=borrower.id)


@router.post("/{borrower_id}/loans", response_model=LoanDetailResponse, status_code=status.HTTP_201_CREATED)
async def create_borrower_loan(
    borrower_id: int,
    data: LoanCreate,
    db: AsyncSession = Depends(get_db)
):
    """Create a loan with its installment schedule"""
    borrower = await BorrowerService(db).get_borrower(borrower_id)
    return await LoanService(db).create_loan(borrower, data, added_by="ADMIN")


@router.get("/{borrower_id}/installments", response_model=List[InstallmentDetailResponse])
async def list_collectable_installments(borrower_id: int, db: AsyncSession = Depends(get_db)):
    """Overdue installments plus the next pending one"""
    borrower = await BorrowerService(db).get_borrower(borrower_id)
    return await InstallmentService(db).collectable_for_borrower(borrower.id)
