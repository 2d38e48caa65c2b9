from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from redis import asyncio as aioredis

from microfin.core.database import get_db, get_redis
from microfin.core.dependencies import TokenClaims, get_current_claims
from microfin.core.exceptions import Unauthorized
from microfin.modules.users import schemas
from microfin.modules.users.services import UserService

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/register", response_model=schemas.TokenResponse, status_code=status.HTTP_201_CREATED)
async def register_user(
    user_data: schemas.UserRegistrationRequest,
    db: AsyncSession = Depends(get_db)
):
    """
    Register a new field agent.

    - Checks email uniqueness
    - Creates the agent record alongside the user
    - Returns an access token
    """
    user = await UserService.register_user(db, user_data)
    return UserService.create_token(user)


@router.post("/login", response_model=schemas.TokenResponse)
async def login(
    login_data: schemas.UserLoginRequest,
    db: AsyncSession = Depends(get_db)
):
    """Login with email and password"""
    user = await UserService.authenticate_user(db, login_data.email, login_data.password)
    if not user:
        raise Unauthorized("Invalid credentials")
    return UserService.create_token(user)


@router.post("/logout", response_model=schemas.MessageResponse)
async def logout(
    claims: TokenClaims = Depends(get_current_claims),
    redis: aioredis.Redis = Depends(get_redis)
):
    """Logout current user by invalidating token."""
    await UserService.logout_user(redis, claims.token)
    return {"message": "Successfully logged out"}


@router.get("/me", response_model=schemas.UserProfileResponse)
async def get_me(
    claims: TokenClaims = Depends(get_current_claims),
    db: AsyncSession = Depends(get_db)
):
    """Get current user profile"""
    return await UserService.get_user(db, claims.id)
