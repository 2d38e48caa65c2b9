import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from redis import asyncio as aioredis

from microfin.core.config import settings
from microfin.core.exceptions import InvalidRequest, NotFound
from microfin.core.security import (
    get_password_hash,
    verify_password,
    create_access_token,
    decode_token,
    token_ttl_seconds
)
from microfin.modules.users.models import User, UserRole
from microfin.modules.agents.models import Agent
from microfin.modules.users import schemas

logger = logging.getLogger(__name__)


class UserService:
    """Service layer for staff accounts and tokens"""

    @staticmethod
    async def get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
        result = await db.execute(select(User).where(User.email == email))
        return result.scalar_one_or_none()

    @staticmethod
    async def get_user(db: AsyncSession, user_id: int) -> User:
        result = await db.execute(select(User).where(User.id == user_id))
        user = result.scalar_one_or_none()
        if user is None:
            raise NotFound("User not found")
        return user

    @staticmethod
    async def create_user(
        db: AsyncSession,
        name: str,
        email: str,
        password: str,
        role: UserRole = UserRole.AGENT,
        phone: Optional[str] = None,
        address: Optional[str] = None,
        id_proof: Optional[str] = None
    ) -> User:
        """Create a user (and its agent record for AGENT users) without committing"""
        if await UserService.get_user_by_email(db, email):
            raise InvalidRequest("User already exists")

        user = User(
            name=name,
            email=email,
            hashed_password=get_password_hash(password),
            role=role,
            phone=phone,
            address=address,
            id_proof=id_proof or ""
        )
        db.add(user)

        if role == UserRole.AGENT:
            db.add(Agent(user=user))

        await db.flush()
        return user

    @staticmethod
    async def register_user(db: AsyncSession, user_data: schemas.UserRegistrationRequest) -> User:
        """Register a new field agent"""
        user = await UserService.create_user(
            db,
            name=user_data.name,
            email=user_data.email,
            password=user_data.password,
            role=UserRole.AGENT,
            phone=user_data.phone,
            address=user_data.address,
            id_proof=user_data.id_proof
        )
        await db.commit()
        logger.info(f"Registered agent user {user.id} ({user.email})")
        return user

    @staticmethod
    async def authenticate_user(db: AsyncSession, email: str, password: str) -> Optional[User]:
        """Authenticate user with email and password"""
        user = await UserService.get_user_by_email(db, email)
        if not user or not user.is_active:
            return None
        if not verify_password(password, user.hashed_password):
            logger.warning(f"Failed login attempt for {email}")
            return None
        return user

    @staticmethod
    def create_token(user: User) -> dict:
        """Create the access token response for ``user``"""
        access_token = create_access_token(
            data={
                "sub": str(user.id),
                "id": user.id,
                "email": user.email,
                "role": user.role.value
            }
        )
        return {
            "access_token": access_token,
            "token_type": "bearer",
            "expires_in": settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
            "user": user
        }

    @staticmethod
    async def logout_user(redis: aioredis.Redis, token: str) -> None:
        """Logout user by blacklisting token until it expires"""
        payload = decode_token(token)
        await redis.setex(f"blacklist:{token}", token_ttl_seconds(payload), "1")
