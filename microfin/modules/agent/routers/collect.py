"""
Agent portal collection endpoint.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from microfin.core.database import get_db
from microfin.core.dependencies import get_current_agent
from microfin.modules.agents.models import Agent
from microfin.modules.collections import schemas
from microfin.modules.collections.services import CollectionService
from microfin.modules.loans.services import InstallmentService

router = APIRouter(prefix="/collect", tags=["agent-collect"])


@router.post("/{installment_id}", response_model=schemas.CollectionResponse)
async def collect_installment(
    installment_id: int,
    payment: schemas.PaymentRequest,
    agent: Agent = Depends(get_current_agent),
    db: AsyncSession = Depends(get_db)
):
    """
    Collect a payment against an installment.

    - The installment's borrower must be assigned to the calling agent
    - Only PENDING or OVERDUE installments can be collected
    - Records the settling ledger entry
    """
    transaction = await CollectionService(db).apply_payment(
        installment_id, payment, agent=agent, added_by="AGENT"
    )
    installment = await InstallmentService(db).get_installment(installment_id)
    return {"installment": installment, "transaction": transaction}
