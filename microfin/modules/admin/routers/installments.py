"""
Admin installment endpoints: detail, edits, the overdue sweep and
continuation generation.
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional, List

from microfin.core.database import get_db
from microfin.modules.collections.services import CollectionService
from microfin.modules.loans import schemas
from microfin.modules.loans.models import InstallmentStatus
from microfin.modules.loans.services import LoanService, InstallmentService
from microfin.modules.users.schemas import MessageResponse

router = APIRouter(prefix="/installments", tags=["admin-installments"])


@router.get("", response_model=schemas.InstallmentListResponse)
async def list_installments(
    search: Optional[str] = None,
    status: Optional[InstallmentStatus] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db)
):
    """List installments, searchable by borrower name or phone"""
    installments, total = await InstallmentService(db).list_installments(
        search=search, status=status, page=page, page_size=page_size
    )
    return {
        "installments": installments,
        "total": total,
        "page": page,
        "page_size": page_size,
        "total_pages": (total + page_size - 1) // page_size
    }


@router.get("/overdue", response_model=schemas.OverdueSweepResponse)
async def sweep_overdue(db: AsyncSession = Depends(get_db)):
    """Mark past-due PENDING installments OVERDUE and return them"""
    installments = await CollectionService(db).sweep_overdue()
    return {"updated": len(installments), "installments": installments}


@router.get("/generate", response_model=schemas.GeneratedInstallmentsResponse)
async def generate_installments(db: AsyncSession = Depends(get_db)):
    """Add interest-only installments to running monthly loans"""
    installments = await LoanService(db).generate_continuation_installments()
    return {"generated": len(installments), "installments": installments}


@router.get("/today", response_model=List[schemas.InstallmentDetailResponse])
async def installments_due_today(db: AsyncSession = Depends(get_db)):
    return await InstallmentService(db).due_today()


@router.get("/{installment_id}", response_model=schemas.InstallmentDetailResponse)
async def get_installment(installment_id: int, db: AsyncSession = Depends(get_db)):
    return await InstallmentService(db).get_installment(installment_id)


@router.patch("/{installment_id}", response_model=schemas.InstallmentDetailResponse)
async def update_installment(
    installment_id: int,
    data: schemas.InstallmentUpdate,
    db: AsyncSession = Depends(get_db)
):
    """Edit schedule or payment fields"""
    return await InstallmentService(db).update_installment(installment_id, data)


@router.delete("/{installment_id}", response_model=MessageResponse)
async def delete_installment(installment_id: int, db: AsyncSession = Depends(get_db)):
    """Delete an installment; its ledger entries are kept and unlinked"""
    await InstallmentService(db).delete_installment(installment_id)
    return {"message": "Installment deleted successfully"}


@router.post("/{installment_id}/unpaid", response_model=schemas.InstallmentDetailResponse)
async def mark_installment_unpaid(installment_id: int, db: AsyncSession = Depends(get_db)):
    """Undo a collection: delete its ledger entries and reset the installment"""
    return await CollectionService(db).mark_unpaid(installment_id)
