import logging
from datetime import date
from typing import Optional, List, Tuple

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, or_

from microfin.core.dates import business_today, day_bounds, to_naive_utc, utcnow
from microfin.core.exceptions import NotFound, InvalidRequest
from microfin.core.security import sanitize_input
from microfin.modules.collections.schemas import PaymentRequest
from microfin.modules.collections.services import CollectionService
from microfin.modules.loans.schedule import money
from microfin.modules.transactions.models import Transaction, TransactionType, TransactionCategory
from microfin.modules.transactions.schemas import TransactionCreate, TransactionUpdate

logger = logging.getLogger(__name__)


class TransactionService:
    """Service for the cash book"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_transaction(self, transaction_id: int) -> Transaction:
        transaction = await self.db.get(Transaction, transaction_id)
        if transaction is None:
            raise NotFound("Transaction not found")
        return transaction

    async def list_transactions(
        self,
        search: Optional[str] = None,
        transaction_type: Optional[TransactionType] = None,
        category: Optional[TransactionCategory] = None,
        loan_id: Optional[int] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        page: int = 1,
        page_size: int = 20
    ) -> Tuple[List[Transaction], int]:
        """Newest entries first; dates are business days, inclusive"""
        query = select(Transaction)

        if search:
            pattern = f"%{search}%"
            query = query.where(or_(Transaction.name.ilike(pattern), Transaction.notes.ilike(pattern)))
        if transaction_type:
            query = query.where(Transaction.transaction_type == transaction_type)
        if category:
            query = query.where(Transaction.category == category)
        if loan_id:
            query = query.where(Transaction.loan_id == loan_id)
        if start_date:
            query = query.where(Transaction.created_at >= day_bounds(start_date)[0])
        if end_date:
            query = query.where(Transaction.created_at < day_bounds(end_date)[1])

        count_result = await self.db.execute(select(func.count()).select_from(query.subquery()))
        total = count_result.scalar() or 0

        query = query.order_by(Transaction.created_at.desc(), Transaction.id.desc())
        query = query.offset((page - 1) * page_size).limit(page_size)
        result = await self.db.execute(query)
        return list(result.scalars().all()), total

    async def list_today(self) -> List[Transaction]:
        start, end = day_bounds(business_today())
        result = await self.db.execute(
            select(Transaction)
            .where(Transaction.created_at >= start, Transaction.created_at < end)
            .order_by(Transaction.created_at.desc(), Transaction.id.desc())
        )
        return list(result.scalars().all())

    async def create_transaction(self, data: TransactionCreate, added_by: str = "ADMIN") -> Transaction:
        """
        Record a cash book entry.

        INSTALLMENT entries settle ``installment_id`` through payment
        application; every other type is stored as given.
        """
        if data.transaction_type == TransactionType.INSTALLMENT:
            if data.installment_id is None:
                raise InvalidRequest("installment_id is required for installment transactions")
            payment = PaymentRequest(
                amount=data.amount,
                penalty_amount=data.penalty_amount,
                extra_amount=data.extra_amount,
                payment_date=data.created_at,
                notes=data.notes
            )
            return await CollectionService(self.db).apply_payment(
                data.installment_id, payment, added_by=added_by
            )

        if data.amount is None or data.amount <= 0:
            raise InvalidRequest("Amount must be greater than zero")

        transaction = Transaction(
            amount=money(data.amount),
            transaction_type=data.transaction_type,
            category=data.category,
            penalty_amount=money(data.penalty_amount),
            extra_amount=money(data.extra_amount),
            name=sanitize_input(data.name),
            notes=sanitize_input(data.notes),
            added_by=added_by,
            loan_id=data.loan_id,
            created_at=to_naive_utc(data.created_at) or utcnow()
        )
        self.db.add(transaction)
        await self.db.commit()

        logger.info(
            f"Recorded {transaction.transaction_type.value}/{transaction.category.value} "
            f"transaction {transaction.id} of {transaction.amount}"
        )
        return transaction

    async def update_transaction(self, transaction_id: int, data: TransactionUpdate) -> Transaction:
        transaction = await self.get_transaction(transaction_id)
        update_data = data.model_dump(exclude_unset=True, exclude_none=True)

        if "notes" in update_data:
            transaction.notes = sanitize_input(update_data["notes"])
        if "name" in update_data:
            transaction.name = sanitize_input(update_data["name"])
        if "category" in update_data:
            transaction.category = update_data["category"]
        if "created_at" in update_data:
            transaction.created_at = to_naive_utc(update_data["created_at"])

        await self.db.commit()
        return transaction

    async def delete_transaction(self, transaction_id: int) -> None:
        """Delete an entry, reverting the installment it settled"""
        transaction = await self.get_transaction(transaction_id)
        await CollectionService(self.db).revert_transaction(transaction)
        logger.info(f"Transaction {transaction_id} deleted")
