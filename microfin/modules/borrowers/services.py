import logging
from typing import Optional, List

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, or_
from sqlalchemy.orm import selectinload

from microfin.core.exceptions import NotFound, Forbidden, InvalidRequest, ConflictPrecondition
from microfin.modules.agents.models import Agent
from microfin.modules.borrowers.models import Borrower
from microfin.modules.borrowers.schemas import BorrowerCreate, BorrowerUpdate
from microfin.modules.loans.models import LoanStatus
from microfin.modules.loans.services import LoanService

logger = logging.getLogger(__name__)


class BorrowerService:
    """Service for borrower records"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _get_agent(self, agent_id: int) -> Agent:
        agent = await self.db.get(Agent, agent_id)
        if agent is None:
            raise NotFound("Agent not found")
        return agent

    async def _ensure_unique_pan(self, pan_id: str, exclude_id: Optional[int] = None) -> None:
        query = select(Borrower.id).where(Borrower.pan_id == pan_id)
        if exclude_id is not None:
            query = query.where(Borrower.id != exclude_id)
        result = await self.db.execute(query)
        if result.first() is not None:
            raise InvalidRequest("A borrower with this PAN already exists")

    async def list_borrowers(
        self,
        search: Optional[str] = None,
        agent_id: Optional[int] = None,
        search_address: bool = False
    ) -> List[Borrower]:
        """Borrowers ordered by name, optionally restricted to one agent"""
        query = select(Borrower)
        if agent_id is not None:
            query = query.where(Borrower.agent_id == agent_id)
        if search:
            pattern = f"%{search}%"
            fields = [Borrower.name.ilike(pattern), Borrower.phone.ilike(pattern)]
            if search_address:
                fields.append(Borrower.address.ilike(pattern))
            query = query.where(or_(*fields))
        result = await self.db.execute(query.order_by(Borrower.name, Borrower.id))
        return list(result.scalars().all())

    async def get_borrower(
        self,
        borrower_id: int,
        agent_id: Optional[int] = None,
        with_loans: bool = False
    ) -> Borrower:
        """Load a borrower; agent callers may only see their own"""
        query = select(Borrower).where(Borrower.id == borrower_id)
        if with_loans:
            query = query.options(selectinload(Borrower.loans))
        result = await self.db.execute(query.execution_options(populate_existing=True))
        borrower = result.scalar_one_or_none()
        if borrower is None:
            raise NotFound("Borrower not found")
        if agent_id is not None and borrower.agent_id != agent_id:
            raise Forbidden("You are not assigned to this borrower")
        return borrower

    async def create_borrower(self, data: BorrowerCreate, agent_id: Optional[int] = None) -> Borrower:
        """Create a borrower owned by ``agent_id`` (falls back to ``data.agent_id``)"""
        agent_id = agent_id if agent_id is not None else data.agent_id
        if agent_id is None:
            raise InvalidRequest("Agent is required")
        agent = await self._get_agent(agent_id)
        await self._ensure_unique_pan(data.pan_id)

        borrower = Borrower(
            name=data.name,
            father_name=data.father_name,
            phone=data.phone,
            address=data.address,
            pan_id=data.pan_id,
            agent=agent
        )
        self.db.add(borrower)
        await self.db.commit()

        logger.info(f"Borrower {borrower.id} created for agent {agent.id}")
        return borrower

    async def update_borrower(self, borrower_id: int, data: BorrowerUpdate) -> Borrower:
        borrower = await self.get_borrower(borrower_id)
        update_data = data.model_dump(exclude_unset=True, exclude_none=True)

        if "pan_id" in update_data and update_data["pan_id"] != borrower.pan_id:
            await self._ensure_unique_pan(update_data["pan_id"], exclude_id=borrower.id)
        if "agent_id" in update_data:
            borrower.agent = await self._get_agent(update_data.pop("agent_id"))

        for field, value in update_data.items():
            setattr(borrower, field, value)

        await self.db.commit()
        logger.info(f"Borrower {borrower.id} updated")
        return borrower

    async def assign_agent(self, borrower_id: int, agent_id: int) -> Borrower:
        """Move a borrower to another agent"""
        borrower = await self.get_borrower(borrower_id)
        borrower.agent = await self._get_agent(agent_id)
        await self.db.commit()
        logger.info(f"Borrower {borrower.id} assigned to agent {agent_id}")
        return borrower

    async def delete_borrower(self, borrower_id: int) -> None:
        """Delete a borrower and its settled loans; blocked while a loan is ACTIVE"""
        borrower = await self.get_borrower(borrower_id, with_loans=True)
        if any(loan.status == LoanStatus.ACTIVE for loan in borrower.loans):
            logger.warning(f"Refused to delete borrower {borrower.id} with active loans")
            raise ConflictPrecondition("Cannot delete borrower with active loans")

        loan_service = LoanService(self.db)
        for loan in list(borrower.loans):
            await loan_service.purge_loan(loan)

        await self.db.delete(borrower)
        await self.db.commit()
        logger.info(f"Borrower {borrower_id} deleted")
