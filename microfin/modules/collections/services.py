"""
Payment application, reversal and the overdue sweep.

Every operation here runs in a single database transaction: the installment
row is locked (``SELECT ... FOR UPDATE`` where the backend supports it), the
installment and its ledger entry are written, and the session commits once.
"""
import logging
from decimal import Decimal
from typing import Optional, List

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, delete

from microfin.core.dates import business_today, utcnow, to_naive_utc
from microfin.core.exceptions import NotFound, Forbidden, InvalidRequest
from microfin.core.security import sanitize_input
from microfin.modules.agents.models import Agent
from microfin.modules.loans.models import (
    Installment, InstallmentStatus, LoanStatus, PaymentFrequency, COLLECTABLE_STATUSES
)
from microfin.modules.loans.schedule import money
from microfin.modules.transactions.models import Transaction, TransactionType, TransactionCategory
from microfin.modules.collections.schemas import PaymentRequest

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")


def reset_installment(installment: Installment) -> None:
    """Return an installment to its unpaid state"""
    installment.status = InstallmentStatus.PENDING
    installment.paid_at = None
    installment.due_amount = ZERO
    installment.penalty_amount = ZERO
    installment.extra_amount = ZERO


def collection_breakdown(installment: Installment, received: Decimal, extra: Decimal):
    """
    Ledger ``(amount, interest)`` for a payment of ``received`` principal.

    The amount is the cash taken in, so a regular payment carries the
    period interest on top of the principal received. A zero principal
    payment on a MONTHLY loan still collects that interest (an interest-only
    month); on other frequencies it collects no interest at all. Penalties
    are never part of the amount.
    """
    interest = money(installment.interest)
    if received == 0:
        if installment.frequency == PaymentFrequency.MONTHLY:
            return interest + extra, interest
        return extra, ZERO
    return received + interest + extra, interest


class CollectionService:
    """Service for collecting and reverting installment payments"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def lock_installment(self, installment_id: int) -> Installment:
        """Load an installment for update"""
        result = await self.db.execute(
            select(Installment)
            .where(Installment.id == installment_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        installment = result.scalar_one_or_none()
        if installment is None:
            raise NotFound("Installment not found")
        return installment

    @staticmethod
    def _ensure_open_loan(installment: Installment) -> None:
        if installment.loan.status == LoanStatus.SETTLED:
            logger.warning(f"Refused to revert installment {installment.id} of settled loan {installment.loan_id}")
            raise InvalidRequest("Payments on a settled loan cannot be reverted")

    # ============================================================
    # Payment application
    # ============================================================

    async def apply_payment(
        self,
        installment_id: int,
        payment: PaymentRequest,
        agent: Optional[Agent] = None,
        added_by: str = "ADMIN"
    ) -> Transaction:
        """
        Apply a payment to a PENDING or OVERDUE installment.

        The received amount is capped at the installment's principal due; the
        shortfall is kept in ``due_amount`` and the installment is marked
        PAID. A settling INSTALLMENT ledger entry is recorded with it.
        """
        if payment.amount is None:
            raise InvalidRequest("Amount is required")

        installment = await self.lock_installment(installment_id)

        if agent is not None and installment.borrower.agent_id != agent.id:
            logger.warning(f"Agent {agent.id} tried to collect installment {installment_id} of another agent")
            raise Forbidden("You are not assigned to this borrower")

        if installment.status not in COLLECTABLE_STATUSES:
            raise InvalidRequest(f"Installment is already {installment.status.value.lower()}")

        installment_amount = money(installment.installment_amount)
        received = min(money(payment.amount), installment_amount)
        penalty = money(payment.penalty_amount)
        extra = money(payment.extra_amount)
        paid_at = to_naive_utc(payment.payment_date) or utcnow()

        amount, interest = collection_breakdown(installment, received, extra)

        installment.status = InstallmentStatus.PAID
        installment.paid_at = paid_at
        installment.penalty_amount = penalty
        installment.extra_amount = extra
        installment.due_amount = installment_amount - received

        borrower_name = installment.borrower_name
        transaction = Transaction(
            amount=amount,
            transaction_type=TransactionType.INSTALLMENT,
            category=TransactionCategory.INSTALLMENT,
            interest=interest,
            penalty_amount=penalty,
            extra_amount=extra,
            name=borrower_name,
            notes=sanitize_input(payment.notes) or f"Installment payment from {borrower_name}",
            added_by=added_by,
            installment_id=installment.id,
            loan_id=installment.loan_id,
            created_at=paid_at
        )
        self.db.add(transaction)
        await self.db.commit()

        logger.info(
            f"Collected {amount} on installment {installment.id} "
            f"(loan {installment.loan_id}, due {installment.due_amount}, by {added_by})"
        )
        return transaction

    # ============================================================
    # Reversal
    # ============================================================

    async def revert_transaction(self, transaction: Transaction) -> Optional[Installment]:
        """Delete a ledger entry and roll back the installment it settled"""
        installment = None
        if transaction.transaction_type == TransactionType.INSTALLMENT and transaction.installment_id:
            installment = await self.lock_installment(transaction.installment_id)
            self._ensure_open_loan(installment)
            reset_installment(installment)

        await self.db.delete(transaction)
        await self.db.commit()

        if installment is not None:
            logger.info(f"Reverted installment {installment.id} by deleting transaction {transaction.id}")
        return installment

    async def mark_unpaid(self, installment_id: int) -> Installment:
        """Delete the settling ledger entries of a PAID installment and reset it"""
        installment = await self.lock_installment(installment_id)
        if installment.status != InstallmentStatus.PAID:
            raise InvalidRequest("Installment is not currently paid")
        self._ensure_open_loan(installment)

        await self.db.execute(
            delete(Transaction).where(
                Transaction.installment_id == installment.id,
                Transaction.transaction_type == TransactionType.INSTALLMENT
            )
        )
        reset_installment(installment)
        await self.db.commit()

        logger.info(f"Installment {installment.id} marked unpaid")
        return installment

    # ============================================================
    # Overdue sweep
    # ============================================================

    async def sweep_overdue(self) -> List[Installment]:
        """Flip PENDING installments due before today to OVERDUE"""
        today = business_today()
        result = await self.db.execute(
            select(Installment)
            .where(
                Installment.status == InstallmentStatus.PENDING,
                Installment.due_date < today
            )
            .order_by(Installment.due_date, Installment.id)
            .with_for_update()
        )
        installments = list(result.scalars().all())

        if installments:
            await self.db.execute(
                update(Installment)
                .where(Installment.id.in_([installment.id for installment in installments]))
                .values(status=InstallmentStatus.OVERDUE, updated_at=utcnow())
            )
            await self.db.commit()

        logger.info(f"Overdue sweep for {today}: {len(installments)} installment(s) now overdue")
        return installments
