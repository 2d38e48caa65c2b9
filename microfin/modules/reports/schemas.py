from pydantic import BaseModel
from typing import Optional, List
from datetime import date

from microfin.modules.loans.schemas import InstallmentDetailResponse


class AdminStatsResponse(BaseModel):
    """Admin dashboard totals"""
    active_loans: int
    total_borrowers: int
    total_agents: int
    collected_today: float
    upcoming_dues_today: int
    defaulters: int
    total_due: float
    total_profit: float


class ProfitReportResponse(BaseModel):
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    interest_collected: float
    penalties: float
    income: float
    expenses: float
    total_collected: float
    total_disbursed: float
    profit: float


class AgentStatsResponse(BaseModel):
    """Agent dashboard totals"""
    total_borrowers: int
    active_loans: int
    collected_today: float
    collected_this_month: float
    total_profit: float
    dues_today: List[InstallmentDetailResponse]
