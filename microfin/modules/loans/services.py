import logging
from datetime import timedelta
from decimal import Decimal
from typing import Optional, List, Tuple

from dateutil.relativedelta import relativedelta
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, or_, delete, update

from microfin.core.dates import business_today, utcnow, to_naive_utc
from microfin.core.exceptions import NotFound, InvalidRequest
from microfin.core.security import sanitize_input
from microfin.modules.borrowers.models import Borrower
from microfin.modules.loans.models import (
    Loan, Installment, LoanStatus, InstallmentStatus, PaymentFrequency
)
from microfin.modules.loans.schedule import (
    generate_schedule, period_count, total_interest, monthly_interest, money
)
from microfin.modules.loans.schemas import LoanTerms, LoanCreate, LoanSettleRequest, InstallmentUpdate
from microfin.modules.transactions.models import Transaction, TransactionType, TransactionCategory

logger = logging.getLogger(__name__)

# Continuation installments are generated this far ahead of today
GENERATION_HORIZON = timedelta(days=7)


class LoanService:
    """Service for the loan lifecycle"""

    def __init__(self, db: AsyncSession):
        self.db = db

    @staticmethod
    def preview(terms: LoanTerms) -> dict:
        """Compute a schedule without persisting anything"""
        schedule = generate_schedule(
            terms.principal_amount,
            terms.interest_rate,
            terms.duration,
            terms.frequency,
            terms.start_date
        )
        interest = total_interest(terms.principal_amount, terms.interest_rate, terms.duration)
        return {
            "principal_amount": money(terms.principal_amount),
            "interest_rate": terms.interest_rate,
            "duration": terms.duration,
            "frequency": terms.frequency,
            "periods": period_count(terms.duration, terms.frequency),
            "total_interest": interest,
            "total_payable": money(terms.principal_amount) + interest,
            "installments": [item.as_dict() for item in schedule]
        }

    async def get_loan(self, loan_id: int, for_update: bool = False) -> Loan:
        query = select(Loan).where(Loan.id == loan_id).execution_options(populate_existing=True)
        if for_update:
            query = query.with_for_update()
        result = await self.db.execute(query)
        loan = result.scalar_one_or_none()
        if loan is None:
            raise NotFound("Loan not found")
        return loan

    async def list_loans(
        self,
        status: Optional[LoanStatus] = None,
        borrower_id: Optional[int] = None
    ) -> List[Loan]:
        query = select(Loan)
        if status:
            query = query.where(Loan.status == status)
        if borrower_id:
            query = query.where(Loan.borrower_id == borrower_id)
        result = await self.db.execute(query.order_by(Loan.created_at.desc(), Loan.id.desc()))
        return list(result.scalars().all())

    async def create_loan(self, borrower: Borrower, data: LoanCreate, added_by: str = "ADMIN") -> Loan:
        """
        Create a loan with its schedule and disbursement entry.

        The loan, every installment and the EXPENSE / LOAN ledger entry are
        committed together.
        """
        schedule = generate_schedule(
            data.principal_amount,
            data.interest_rate,
            data.duration,
            data.frequency,
            data.start_date
        )
        created_at = to_naive_utc(data.created_at) or utcnow()

        loan = Loan(
            borrower=borrower,
            principal_amount=money(data.principal_amount),
            interest_rate=data.interest_rate,
            duration=data.duration,
            frequency=data.frequency,
            start_date=data.start_date,
            status=LoanStatus.ACTIVE,
            created_at=created_at
        )
        loan.installments = [
            Installment(
                due_date=item.due_date,
                principal=item.principal,
                interest=item.interest,
                installment_amount=item.installment_amount,
                amount=item.amount,
                status=item.status
            )
            for item in schedule
        ]
        self.db.add(loan)
        await self.db.flush()

        self.db.add(Transaction(
            amount=loan.principal_amount,
            transaction_type=TransactionType.EXPENSE,
            category=TransactionCategory.LOAN,
            name=borrower.name,
            notes=f"Loan disbursed to {borrower.name}",
            added_by=added_by,
            loan_id=loan.id,
            created_at=created_at
        ))
        await self.db.commit()

        logger.info(
            f"Loan {loan.id} created for borrower {borrower.id}: "
            f"{loan.principal_amount} at {loan.interest_rate}% over {len(schedule)} {loan.frequency.value} periods"
        )
        return loan

    async def purge_loan(self, loan: Loan) -> int:
        """Delete a loan, its installments and every ledger entry tied to them without committing"""
        installment_ids = [installment.id for installment in loan.installments]

        conditions = [Transaction.loan_id == loan.id]
        if installment_ids:
            conditions.append(Transaction.installment_id.in_(installment_ids))
        await self.db.execute(delete(Transaction).where(or_(*conditions)))

        await self.db.delete(loan)
        return len(installment_ids)

    async def delete_loan(self, loan_id: int) -> None:
        loan = await self.get_loan(loan_id, for_update=True)
        removed = await self.purge_loan(loan)
        await self.db.commit()
        logger.info(f"Loan {loan_id} deleted with {removed} installment(s)")

    async def settle_loan(self, loan_id: int, data: LoanSettleRequest) -> Loan:
        """
        Close an ACTIVE loan.

        Unpaid installments are skipped. A positive settlement amount is
        recorded as a final PAID installment with its INSTALLMENT / LOAN
        ledger entry.
        """
        loan = await self.get_loan(loan_id, for_update=True)
        if loan.status != LoanStatus.ACTIVE:
            raise InvalidRequest("Only active loans can be settled")

        settled_at = to_naive_utc(data.settlement_date) or utcnow()
        for installment in loan.installments:
            if installment.status != InstallmentStatus.PAID:
                installment.status = InstallmentStatus.SKIPPED
                installment.paid_at = settled_at

        amount = money(data.amount)
        if amount > 0:
            interest = money(data.interest)
            penalty = money(data.penalty_amount)
            extra = money(data.extra_amount)
            final = Installment(
                due_date=business_today(settled_at),
                principal=amount,
                interest=interest,
                installment_amount=amount,
                amount=amount,
                status=InstallmentStatus.PAID,
                paid_at=settled_at,
                penalty_amount=penalty,
                extra_amount=extra,
                due_amount=Decimal("0.00")
            )
            loan.installments.append(final)
            await self.db.flush()

            borrower_name = loan.borrower_name
            self.db.add(Transaction(
                amount=amount,
                transaction_type=TransactionType.INSTALLMENT,
                category=TransactionCategory.LOAN,
                interest=interest,
                penalty_amount=penalty,
                extra_amount=extra,
                name=f"{borrower_name} - SETTLED",
                notes=sanitize_input(data.notes) or f"Final settlement for {borrower_name} loan {loan.id}",
                added_by="ADMIN",
                installment_id=final.id,
                loan_id=loan.id,
                created_at=settled_at
            ))

        loan.status = LoanStatus.SETTLED
        await self.db.commit()

        logger.info(f"Loan {loan.id} settled with {amount}")
        return loan

    async def generate_continuation_installments(self) -> List[Installment]:
        """
        Extend ACTIVE MONTHLY loans with interest-only installments.

        Rows are added one month apart after the latest installment while the
        next due date falls before today plus the generation horizon. A period
        is skipped when the loan already has an installment in the week
        ending on its due date.
        """
        horizon = business_today() + GENERATION_HORIZON
        result = await self.db.execute(
            select(Loan)
            .where(Loan.status == LoanStatus.ACTIVE, Loan.frequency == PaymentFrequency.MONTHLY)
            .order_by(Loan.id)
        )
        loans = result.scalars().all()

        generated = []
        for loan in loans:
            due_dates = [installment.due_date for installment in loan.installments]
            latest = max(due_dates) if due_dates else loan.start_date
            interest = monthly_interest(loan.principal_amount, loan.interest_rate)

            months = 1
            next_due = latest + relativedelta(months=months)
            while next_due < horizon:
                window_start = next_due - timedelta(days=7)
                if not any(window_start <= due <= next_due for due in due_dates):
                    installment = Installment(
                        due_date=next_due,
                        principal=Decimal("0.00"),
                        interest=interest,
                        installment_amount=Decimal("0.00"),
                        amount=interest,
                        status=InstallmentStatus.PENDING
                    )
                    loan.installments.append(installment)
                    due_dates.append(next_due)
                    generated.append(installment)
                months += 1
                next_due = latest + relativedelta(months=months)

        if generated:
            await self.db.commit()
        logger.info(f"Generated {len(generated)} continuation installment(s)")
        return generated


class InstallmentService:
    """Service for admin access to individual installments"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_installment(self, installment_id: int) -> Installment:
        result = await self.db.execute(
            select(Installment)
            .where(Installment.id == installment_id)
            .execution_options(populate_existing=True)
        )
        installment = result.scalar_one_or_none()
        if installment is None:
            raise NotFound("Installment not found")
        return installment

    async def list_installments(
        self,
        search: Optional[str] = None,
        status: Optional[InstallmentStatus] = None,
        page: int = 1,
        page_size: int = 20
    ) -> Tuple[List[Installment], int]:
        """Installments matching a borrower name/phone search, soonest due first"""
        query = select(Installment).join(Loan).join(Borrower)
        if search:
            pattern = f"%{search}%"
            query = query.where(or_(Borrower.name.ilike(pattern), Borrower.phone.ilike(pattern)))
        if status:
            query = query.where(Installment.status == status)

        count_result = await self.db.execute(select(func.count()).select_from(query.subquery()))
        total = count_result.scalar() or 0

        query = query.order_by(Installment.due_date, Installment.id)
        query = query.offset((page - 1) * page_size).limit(page_size)
        result = await self.db.execute(query)
        return list(result.scalars().all()), total

    async def update_installment(self, installment_id: int, data: InstallmentUpdate) -> Installment:
        """Edit schedule or payment fields directly"""
        installment = await self.get_installment(installment_id)
        update_data = data.model_dump(exclude_unset=True)
        if "paid_at" in update_data:
            update_data["paid_at"] = to_naive_utc(update_data["paid_at"])
        for field, value in update_data.items():
            if value is None and field != "paid_at":
                continue
            setattr(installment, field, value)
        await self.db.commit()
        logger.info(f"Installment {installment.id} edited: {', '.join(update_data) or 'no changes'}")
        return installment

    async def delete_installment(self, installment_id: int) -> None:
        """Delete an installment, keeping its ledger entries unlinked"""
        installment = await self.get_installment(installment_id)
        await self.db.execute(
            update(Transaction)
            .where(Transaction.installment_id == installment.id)
            .values(installment_id=None)
        )
        await self.db.delete(installment)
        await self.db.commit()
        logger.info(f"Installment {installment_id} deleted")

    async def due_today(self, agent_id: Optional[int] = None) -> List[Installment]:
        """PENDING installments due on the current business day"""
        query = (
            select(Installment)
            .join(Loan)
            .join(Borrower)
            .where(
                Installment.status == InstallmentStatus.PENDING,
                Installment.due_date == business_today()
            )
        )
        if agent_id is not None:
            query = query.where(Borrower.agent_id == agent_id)
        result = await self.db.execute(query.order_by(Borrower.name, Installment.id))
        return list(result.scalars().all())

    async def collectable_for_borrower(self, borrower_id: int) -> List[Installment]:
        """Every OVERDUE installment of a borrower followed by the next PENDING one"""
        base = select(Installment).join(Loan).where(Loan.borrower_id == borrower_id)

        overdue_result = await self.db.execute(
            base.where(Installment.status == InstallmentStatus.OVERDUE)
            .order_by(Installment.due_date, Installment.id)
        )
        installments = list(overdue_result.scalars().all())

        pending_result = await self.db.execute(
            base.where(Installment.status == InstallmentStatus.PENDING)
            .order_by(Installment.due_date, Installment.id)
            .limit(1)
        )
        pending = pending_result.scalar_one_or_none()
        if pending is not None:
            installments.append(pending)
        return installments
