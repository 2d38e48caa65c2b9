from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from typing import Optional
from redis import asyncio as aioredis

from microfin.core.database import get_db, get_redis
from microfin.core.exceptions import Unauthorized, Forbidden, NotFound
from microfin.core.security import decode_token
from microfin.modules.users.models import UserRole
from microfin.modules.agents.models import Agent

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


class TokenClaims(BaseModel):
    """Validated access-token claims carried through the request"""
    id: int
    email: str
    role: UserRole
    iat: Optional[int] = None
    exp: Optional[int] = None
    token: str


async def get_current_claims(
    token: Optional[str] = Depends(oauth2_scheme),
    redis: aioredis.Redis = Depends(get_redis)
) -> TokenClaims:
    """Get the claims of the presented bearer token"""
    if not token:
        raise Unauthorized("Authentication required")

    payload = decode_token(token)
    if payload.get("type") != "access" or payload.get("id") is None:
        raise Unauthorized("Could not validate credentials")

    # Check if token is blacklisted (logged out)
    if await redis.get(f"blacklist:{token}"):
        raise Unauthorized("Token has been revoked")

    try:
        return TokenClaims(
            id=payload["id"],
            email=payload.get("email", ""),
            role=payload.get("role"),
            iat=payload.get("iat"),
            exp=payload.get("exp"),
            token=token
        )
    except ValueError:
        raise Unauthorized("Could not validate credentials")


async def require_admin(claims: TokenClaims = Depends(get_current_claims)) -> TokenClaims:
    """Ensure the caller is an administrator"""
    if claims.role != UserRole.ADMIN:
        raise Forbidden("Admin access required")
    return claims


async def require_agent(claims: TokenClaims = Depends(get_current_claims)) -> TokenClaims:
    """Ensure the caller is a field agent"""
    if claims.role != UserRole.AGENT:
        raise Forbidden("Agent access required")
    return claims


async def get_current_agent(
    claims: TokenClaims = Depends(require_agent),
    db: AsyncSession = Depends(get_db)
) -> Agent:
    """Resolve the Agent record behind an agent token"""
    result = await db.execute(select(Agent).where(Agent.user_id == claims.id))
    agent = result.scalar_one_or_none()
    if agent is None:
        raise NotFound("Agent not found")
    return agent
