"""
Admin agent management endpoints.
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional, List
from datetime import date

from microfin.core.database import get_db
from microfin.modules.agents import schemas
from microfin.modules.agents.services import AgentService
from microfin.modules.borrowers.schemas import BorrowerResponse
from microfin.modules.reports.services import ReportService
from microfin.modules.users.schemas import MessageResponse

router = APIRouter(prefix="/agents", tags=["admin-agents"])


@router.get("", response_model=List[schemas.AgentSummaryResponse])
async def list_agents(db: AsyncSession = Depends(get_db)):
    """List agents ordered by name with borrower counts"""
    items = await AgentService(db).list_agents()
    return [
        {
            **schemas.AgentResponse.model_validate(item["agent"]).model_dump(),
            "borrower_count": item["borrower_count"]
        }
        for item in items
    ]


@router.post("", response_model=schemas.AgentResponse, status_code=status.HTTP_201_CREATED)
async def create_agent(data: schemas.AgentCreate, db: AsyncSession = Depends(get_db)):
    """Create an agent and its login"""
    return await AgentService(db).create_agent(data)


@router.get("/collections", response_model=List[schemas.AgentCollectionsResponse])
async def agent_collections(db: AsyncSession = Depends(get_db)):
    """Today's collections and dues per agent"""
    return await ReportService(db).agent_collections()


@router.get("/reports", response_model=List[schemas.AgentReportResponse])
async def agent_reports(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: AsyncSession = Depends(get_db)
):
    """Portfolio and collection totals per agent"""
    return await ReportService(db).agent_reports(start_date, end_date)


@router.get("/{agent_id}", response_model=schemas.AgentDetailResponse)
async def get_agent(agent_id: int, db: AsyncSession = Depends(get_db)):
    """Agent with borrowers and their active loans"""
    detail = await AgentService(db).get_agent_detail(agent_id)
    return {
        **schemas.AgentResponse.model_validate(detail["agent"]).model_dump(),
        "borrowers": [
            {
                **BorrowerResponse.model_validate(item["borrower"]).model_dump(),
                "active_loans": item["active_loans"]
            }
            for item in detail["borrowers"]
        ]
    }


@router.patch("/{agent_id}", response_model=schemas.AgentResponse)
async def update_agent(
    agent_id: int,
    data: schemas.AgentUpdate,
    db: AsyncSession = Depends(get_db)
):
    return await AgentService(db).update_agent(agent_id, data)


@router.delete("/{agent_id}", response_model=MessageResponse)
async def delete_agent(agent_id: int, db: AsyncSession = Depends(get_db)):
    """Delete an agent (refused while borrowers are assigned)"""
    await AgentService(db).delete_agent(agent_id)
    return {"message": "Agent deleted successfully"}


@router.get("/{agent_id}/borrowers", response_model=List[BorrowerResponse])
async def list_agent_borrowers(
    agent_id: int,
    search: Optional[str] = None,
    db: AsyncSession = Depends(get_db)
):
    """Agent's borrowers, searchable by name, phone or address"""
    return await AgentService(db).list_agent_borrowers(agent_id, search)


@router.post("/{agent_id}/borrowers", response_model=List[BorrowerResponse])
async def assign_borrowers(
    agent_id: int,
    data: schemas.AgentAssignRequest,
    db: AsyncSession = Depends(get_db)
):
    """Bulk-assign existing borrowers to the agent"""
    return await AgentService(db).assign_borrowers(agent_id, data.borrower_ids)
