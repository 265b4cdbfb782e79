"""
Murmur Backend — Auth Route Handlers
=====================================

What:  POST /api/auth/register, POST /api/auth/login, GET /api/auth/me.
Why:   Entry point for obtaining the bearer token every other /api route needs.
How:   Body validated by pydantic (username ≥ 3, valid email, password ≥ 6),
       then delegated to IdentityService.
"""

import logging
import uuid

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from murmur.database import get_db_session
from murmur.dependencies import get_current_user_id
from murmur.routes.presenters import render_profile
from murmur.schemas.common import ErrorResponse
from murmur.schemas.user import AuthResponse, LoginRequest, RegisterRequest, UserProfile, UserSummary
from murmur.services.identity_service import identity_service

logger = logging.getLogger(__name__)

# ── Router Configuration ──────────────────────────────────────────────────
router = APIRouter(prefix="/api/auth", tags=["Auth"])


@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"description": "Invalid fields or user already exists", "model": ErrorResponse},
    },
    summary="Create an account",
)
async def register(
    body: RegisterRequest,
    db: AsyncSession = Depends(get_db_session, scope="function"),
) -> AuthResponse:
    token, user = await identity_service.register(
        db, username=body.username, email=body.email, password=body.password
    )
    return AuthResponse(token=token, user=UserSummary.from_user(user))


@router.post(
    "/login",
    response_model=AuthResponse,
    responses={400: {"description": "Invalid credentials", "model": ErrorResponse}},
    summary="Exchange credentials for a token",
)
async def login(
    body: LoginRequest,
    db: AsyncSession = Depends(get_db_session, scope="function"),
) -> AuthResponse:
    token, user = await identity_service.authenticate(db, email=body.email, password=body.password)
    return AuthResponse(token=token, user=UserSummary.from_user(user))


@router.get(
    "/me",
    response_model=UserProfile,
    responses={401: {"description": "Missing or invalid token", "model": ErrorResponse}},
    summary="The authenticated user's profile",
)
async def me(
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session, scope="function"),
) -> UserProfile:
    profile = await identity_service.get_profile(db, user_id)
    return await render_profile(db, profile)
