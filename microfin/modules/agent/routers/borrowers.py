"""
Agent portal borrower endpoints. Agents only see borrowers assigned to them.
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional, List

from microfin.core.database import get_db
from microfin.core.dependencies import get_current_agent
from microfin.modules.agents.models import Agent
from microfin.modules.borrowers import schemas
from microfin.modules.borrowers.services import BorrowerService
from microfin.modules.loans.schemas import LoanCreate, LoanDetailResponse
from microfin.modules.loans.services import LoanService

router = APIRouter(prefix="/borrowers", tags=["agent-borrowers"])


@router.get("", response_model=List[schemas.BorrowerResponse])
async def list_my_borrowers(
    query: Optional[str] = None,
    agent: Agent = Depends(get_current_agent),
    db: AsyncSession = Depends(get_db)
):
    return await BorrowerService(db).list_borrowers(search=query, agent_id=agent.id)


@router.post("", response_model=schemas.BorrowerResponse, status_code=status.HTTP_201_CREATED)
async def create_my_borrower(
    data: schemas.BorrowerCreate,
    agent: Agent = Depends(get_current_agent),
    db: AsyncSession = Depends(get_db)
):
    """Create a borrower owned by the calling agent"""
    return await BorrowerService(db).create_borrower(data, agent_id=agent.id)


@router.get("/{borrower_id}", response_model=schemas.BorrowerDetailResponse)
async def get_my_borrower(
    borrower_id: int,
    agent: Agent = Depends(get_current_agent),
    db: AsyncSession = Depends(get_db)
):
    return await BorrowerService(db).get_borrower(borrower_id, agent_id=agent.id, with_loans=True)


@router.post("/{borrower_id}/loans", response_model=LoanDetailResponse, status_code=status.HTTP_201_CREATED)
async def create_my_borrower_loan(
    borrower_id: int,
    data: LoanCreate,
    agent: Agent = Depends(get_current_agent),
    db: AsyncSession = Depends(get_db)
):
    """Create a loan for one of the agent's borrowers"""
    borrower = await BorrowerService(db).get_borrower(borrower_id, agent_id=agent.id)
    return await LoanService(db).create_loan(borrower, data, added_by="AGENT")
