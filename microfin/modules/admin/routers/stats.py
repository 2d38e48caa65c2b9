"""
Admin dashboard and report endpoints.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
from datetime import date

from microfin.core.database import get_db
from microfin.core.exceptions import InvalidRequest
from microfin.modules.reports import schemas
from microfin.modules.reports.services import ReportService

router = APIRouter(tags=["admin-stats"])


@router.get("/stats", response_model=schemas.AdminStatsResponse)
async def get_dashboard_stats(db: AsyncSession = Depends(get_db)):
    """Dashboard totals"""
    return await ReportService(db).admin_stats()


@router.get("/reports/stats", response_model=schemas.ProfitReportResponse)
async def get_profit_report(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: AsyncSession = Depends(get_db)
):
    """Profit over an optional date range"""
    if start_date and end_date and start_date > end_date:
        raise InvalidRequest("start_date must not be after end_date")
    return await ReportService(db).profit_report(start_date, end_date)
