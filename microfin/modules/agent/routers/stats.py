"""
Agent portal dashboard endpoint.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from microfin.core.database import get_db
from microfin.core.dependencies import get_current_agent
from microfin.modules.agents.models import Agent
from microfin.modules.reports.schemas import AgentStatsResponse
from microfin.modules.reports.services import ReportService

router = APIRouter(tags=["agent-stats"])


@router.get("/stats", response_model=AgentStatsResponse)
async def get_my_stats(
    agent: Agent = Depends(get_current_agent),
    db: AsyncSession = Depends(get_db)
):
    return await ReportService(db).agent_stats(agent)
