import logging
from typing import Optional, List, Dict

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from sqlalchemy.orm import selectinload

from microfin.core.exceptions import NotFound, InvalidRequest, ConflictPrecondition
from microfin.core.security import get_password_hash
from microfin.modules.agents.models import Agent
from microfin.modules.agents.schemas import AgentCreate, AgentUpdate
from microfin.modules.borrowers.models import Borrower
from microfin.modules.borrowers.services import BorrowerService
from microfin.modules.loans.models import LoanStatus
from microfin.modules.users.models import User, UserRole
from microfin.modules.users.services import UserService

logger = logging.getLogger(__name__)


class AgentService:
    """Service for field agents and their borrower portfolios"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_agent(self, agent_id: int, with_borrowers: bool = False) -> Agent:
        query = select(Agent).where(Agent.id == agent_id)
        if with_borrowers:
            query = query.options(selectinload(Agent.borrowers).selectinload(Borrower.loans))
        result = await self.db.execute(query.execution_options(populate_existing=True))
        agent = result.scalar_one_or_none()
        if agent is None:
            raise NotFound("Agent not found")
        return agent

    async def borrower_counts(self) -> Dict[int, int]:
        result = await self.db.execute(
            select(Borrower.agent_id, func.count(Borrower.id))
            .where(Borrower.agent_id.isnot(None))
            .group_by(Borrower.agent_id)
        )
        return {agent_id: count for agent_id, count in result.all()}

    async def list_agents(self) -> List[dict]:
        """Agents ordered by name with their borrower counts"""
        result = await self.db.execute(select(Agent).join(Agent.user).order_by(User.name, Agent.id))
        agents = result.scalars().unique().all()
        counts = await self.borrower_counts()
        return [
            {"agent": agent, "borrower_count": counts.get(agent.id, 0)}
            for agent in agents
        ]

    async def create_agent(self, data: AgentCreate) -> Agent:
        """Create the agent's user account and agent record together"""
        user = await UserService.create_user(
            self.db,
            name=data.name,
            email=data.email,
            password=data.password,
            role=UserRole.AGENT,
            phone=data.phone,
            address=data.address,
            id_proof=data.id_proof
        )
        await self.db.commit()
        logger.info(f"Agent {user.agent.id} created for user {user.id}")
        return user.agent

    async def update_agent(self, agent_id: int, data: AgentUpdate) -> Agent:
        """Update the agent's profile fields"""
        agent = await self.get_agent(agent_id)
        user = agent.user
        update_data = data.model_dump(exclude_unset=True, exclude_none=True)

        if "email" in update_data and update_data["email"] != user.email:
            if await UserService.get_user_by_email(self.db, update_data["email"]):
                raise InvalidRequest("Email already in use")
        if "password" in update_data:
            user.hashed_password = get_password_hash(update_data.pop("password"))

        for field, value in update_data.items():
            setattr(user, field, value)

        await self.db.commit()
        logger.info(f"Agent {agent.id} updated")
        return agent

    async def delete_agent(self, agent_id: int) -> None:
        """Delete an agent and its user; blocked while it owns borrowers"""
        agent = await self.get_agent(agent_id)
        counts = await self.borrower_counts()
        if counts.get(agent.id, 0) > 0:
            logger.warning(f"Refused to delete agent {agent.id} with assigned borrowers")
            raise ConflictPrecondition("Cannot delete agent with assigned borrowers")

        user = agent.user
        await self.db.delete(agent)
        await self.db.delete(user)
        await self.db.commit()
        logger.info(f"Agent {agent_id} deleted")

    async def get_agent_detail(self, agent_id: int) -> dict:
        """Agent with its borrowers and their ACTIVE loans"""
        agent = await self.get_agent(agent_id, with_borrowers=True)
        borrowers = [
            {
                "borrower": borrower,
                "active_loans": [loan for loan in borrower.loans if loan.status == LoanStatus.ACTIVE]
            }
            for borrower in sorted(agent.borrowers, key=lambda b: (b.name, b.id))
        ]
        return {"agent": agent, "borrowers": borrowers}

    async def list_agent_borrowers(self, agent_id: int, search: Optional[str] = None) -> List[Borrower]:
        agent = await self.get_agent(agent_id)
        return await BorrowerService(self.db).list_borrowers(
            search=search, agent_id=agent.id, search_address=True
        )

    async def assign_borrowers(self, agent_id: int, borrower_ids: List[int]) -> List[Borrower]:
        """Assign existing borrowers to an agent"""
        agent = await self.get_agent(agent_id)
        result = await self.db.execute(select(Borrower).where(Borrower.id.in_(borrower_ids)))
        borrowers = list(result.scalars().all())

        missing = set(borrower_ids) - {borrower.id for borrower in borrowers}
        if missing:
            raise NotFound(f"Borrowers not found: {', '.join(str(i) for i in sorted(missing))}")

        for borrower in borrowers:
            borrower.agent = agent
        await self.db.commit()

        logger.info(f"Assigned {len(borrowers)} borrower(s) to agent {agent.id}")
        return borrowers
