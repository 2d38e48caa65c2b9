"""
Dashboard and profit aggregates.

Cash figures come from the ledger. NEUTRAL entries never count, and loan
disbursements (EXPENSE / LOAN) are capital outflow rather than expenses.
"Today" and "this month" are business-timezone periods.
"""
import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Optional, List, Dict, Tuple

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from sqlalchemy.orm import selectinload

from microfin.core.dates import business_today, day_bounds, month_bounds
from microfin.modules.agents.models import Agent
from microfin.modules.borrowers.models import Borrower
from microfin.modules.loans.models import Loan, Installment, LoanStatus, InstallmentStatus
from microfin.modules.loans.services import InstallmentService
from microfin.modules.transactions.models import Transaction, TransactionType, TransactionCategory
from microfin.modules.users.models import User

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
UNSKIPPED = (InstallmentStatus.PENDING, InstallmentStatus.PAID, InstallmentStatus.OVERDUE)


def _within(installment: Installment, start_date: date, end_date: date, start: datetime, end: datetime) -> bool:
    """Unpaid and due in the range, or paid in the range"""
    if installment.status != InstallmentStatus.PAID and start_date <= installment.due_date <= end_date:
        return True
    return installment.paid_at is not None and start <= installment.paid_at < end


def _period_filters(start: Optional[datetime], end: Optional[datetime]) -> list:
    filters = [Transaction.category != TransactionCategory.NEUTRAL]
    if start is not None:
        filters.append(Transaction.created_at >= start)
    if end is not None:
        filters.append(Transaction.created_at < end)
    return filters


class ReportService:
    """Read-side projections for the dashboards"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _scalar(self, query) -> Decimal:
        result = await self.db.execute(query)
        return result.scalar() or ZERO

    async def _count(self, query) -> int:
        result = await self.db.execute(query)
        return result.scalar() or 0

    # ============================================================
    # Ledger aggregates
    # ============================================================

    async def collected_between(
        self,
        start: Optional[datetime],
        end: Optional[datetime],
        agent_id: Optional[int] = None
    ) -> Decimal:
        """Cash collected on INSTALLMENT entries"""
        query = select(func.coalesce(func.sum(Transaction.amount), 0)).where(
            Transaction.transaction_type == TransactionType.INSTALLMENT,
            *_period_filters(start, end)
        )
        if agent_id is not None:
            query = (
                query.join(Loan, Transaction.loan_id == Loan.id)
                .join(Borrower, Loan.borrower_id == Borrower.id)
                .where(Borrower.agent_id == agent_id)
            )
        return await self._scalar(query)

    async def profit_report(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None
    ) -> dict:
        """``interest + penalties + income - expenses`` over the ledger"""
        start = day_bounds(start_date)[0] if start_date else None
        end = day_bounds(end_date)[1] if end_date else None
        filters = _period_filters(start, end)

        installment_totals = await self.db.execute(
            select(
                func.coalesce(func.sum(Transaction.interest), 0),
                func.coalesce(func.sum(Transaction.penalty_amount), 0),
                func.coalesce(func.sum(Transaction.amount), 0)
            ).where(Transaction.transaction_type == TransactionType.INSTALLMENT, *filters)
        )
        interest, penalties, collected = installment_totals.one()

        income = await self._scalar(
            select(func.coalesce(func.sum(Transaction.amount), 0))
            .where(Transaction.transaction_type == TransactionType.INCOME, *filters)
        )
        expenses = await self._scalar(
            select(func.coalesce(func.sum(Transaction.amount), 0)).where(
                Transaction.transaction_type == TransactionType.EXPENSE,
                Transaction.category != TransactionCategory.LOAN,
                *filters
            )
        )
        disbursed = await self._scalar(
            select(func.coalesce(func.sum(Transaction.amount), 0)).where(
                Transaction.transaction_type == TransactionType.EXPENSE,
                Transaction.category == TransactionCategory.LOAN,
                *filters
            )
        )

        profit = Decimal(interest) + Decimal(penalties) + Decimal(income) - Decimal(expenses)
        return {
            "start_date": start_date,
            "end_date": end_date,
            "interest_collected": interest,
            "penalties": penalties,
            "income": income,
            "expenses": expenses,
            "total_collected": collected,
            "total_disbursed": disbursed,
            "profit": profit
        }

    # ============================================================
    # Dashboards
    # ============================================================

    async def admin_stats(self) -> dict:
        today = business_today()
        today_start, today_end = day_bounds(today)

        past_due = (
            Installment.status.in_([InstallmentStatus.PENDING, InstallmentStatus.OVERDUE]),
            Installment.due_date < today
        )
        defaulters = await self._count(select(func.count(Installment.id)).where(*past_due))
        total_due = await self._scalar(
            select(func.coalesce(func.sum(Installment.amount), 0)).where(*past_due)
        )

        profit = await self.profit_report()
        return {
            "active_loans": await self._count(
                select(func.count(Loan.id)).where(Loan.status == LoanStatus.ACTIVE)
            ),
            "total_borrowers": await self._count(select(func.count(Borrower.id))),
            "total_agents": await self._count(select(func.count(Agent.id))),
            "collected_today": await self.collected_between(today_start, today_end),
            "upcoming_dues_today": await self._count(
                select(func.count(Installment.id)).where(
                    Installment.status == InstallmentStatus.PENDING,
                    Installment.due_date == today
                )
            ),
            "defaulters": defaulters,
            "total_due": total_due,
            "total_profit": profit["profit"]
        }

    async def agent_stats(self, agent: Agent) -> dict:
        today = business_today()
        today_start, today_end = day_bounds(today)
        month_start, month_end = month_bounds(today)

        profit = await self._scalar(
            select(func.coalesce(func.sum(Transaction.interest), 0))
            .join(Loan, Transaction.loan_id == Loan.id)
            .join(Borrower, Loan.borrower_id == Borrower.id)
            .where(
                Borrower.agent_id == agent.id,
                Transaction.transaction_type == TransactionType.INSTALLMENT,
                *_period_filters(None, None)
            )
        )

        return {
            "total_borrowers": await self._count(
                select(func.count(Borrower.id)).where(Borrower.agent_id == agent.id)
            ),
            "active_loans": await self._count(
                select(func.count(Loan.id))
                .join(Borrower, Loan.borrower_id == Borrower.id)
                .where(Borrower.agent_id == agent.id, Loan.status == LoanStatus.ACTIVE)
            ),
            "collected_today": await self.collected_between(today_start, today_end, agent_id=agent.id),
            "collected_this_month": await self.collected_between(month_start, month_end, agent_id=agent.id),
            "total_profit": profit,
            "dues_today": await InstallmentService(self.db).due_today(agent_id=agent.id)
        }

    async def agent_collections(self) -> List[dict]:
        """Per-agent cash collected today and installments due today"""
        today = business_today()
        today_start, today_end = day_bounds(today)

        collected_result = await self.db.execute(
            select(Borrower.agent_id, func.coalesce(func.sum(Transaction.amount), 0))
            .join(Loan, Transaction.loan_id == Loan.id)
            .join(Borrower, Loan.borrower_id == Borrower.id)
            .where(
                Transaction.transaction_type == TransactionType.INSTALLMENT,
                *_period_filters(today_start, today_end)
            )
            .group_by(Borrower.agent_id)
        )
        collected: Dict[int, Decimal] = dict(collected_result.all())

        dues_result = await self.db.execute(
            select(Borrower.agent_id, func.count(Installment.id), func.coalesce(func.sum(Installment.amount), 0))
            .join(Loan, Installment.loan_id == Loan.id)
            .join(Borrower, Loan.borrower_id == Borrower.id)
            .where(Installment.status == InstallmentStatus.PENDING, Installment.due_date == today)
            .group_by(Borrower.agent_id)
        )
        dues: Dict[int, Tuple[int, Decimal]] = {
            agent_id: (count, amount) for agent_id, count, amount in dues_result.all()
        }

        agents_result = await self.db.execute(select(Agent).join(Agent.user).order_by(User.name, Agent.id))
        return [
            {
                "agent_id": agent.id,
                "name": agent.name,
                "collected_today": collected.get(agent.id, ZERO),
                "dues_today": dues.get(agent.id, (0, ZERO))[0],
                "dues_today_amount": dues.get(agent.id, (0, ZERO))[1]
            }
            for agent in agents_result.scalars().unique().all()
        ]

    async def agent_reports(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None
    ) -> List[dict]:
        """
        Per-agent portfolio and collection totals.

        With a date range, only installments due in the range (and not yet
        paid) or paid in the range are counted.
        """
        result = await self.db.execute(
            select(Agent)
            .join(Agent.user)
            .options(selectinload(Agent.borrowers).selectinload(Borrower.loans))
            .order_by(User.name, Agent.id)
        )
        agents = result.scalars().unique().all()

        bounds = None
        if start_date and end_date:
            bounds = (start_date, end_date, day_bounds(start_date)[0], day_bounds(end_date)[1])

        reports = []
        for agent in agents:
            loans = [loan for borrower in agent.borrowers for loan in borrower.loans]
            installments = [installment for loan in loans for installment in loan.installments]
            if bounds is not None:
                installments = [installment for installment in installments if _within(installment, *bounds)]

            def total(statuses, value=lambda i: i.amount):
                return sum((value(i) for i in installments if i.status in statuses), ZERO)

            reports.append({
                "id": agent.id,
                "name": agent.name,
                "email": agent.email,
                "phone": agent.phone,
                "total_borrowers": len(agent.borrowers),
                "total_loans": len(loans),
                "active_loans": sum(1 for loan in loans if loan.status == LoanStatus.ACTIVE),
                "total_amount": sum((loan.principal_amount for loan in loans), ZERO),
                "collections": {
                    "target": total(UNSKIPPED),
                    "collected": total(
                        (InstallmentStatus.PAID,),
                        lambda i: i.amount + i.extra_amount + i.penalty_amount - i.due_amount
                    ),
                    "pending": total((InstallmentStatus.PENDING,)),
                    "overdue": total((InstallmentStatus.OVERDUE,))
                }
            })
        return reports
