"""
Account endpoints: registration, login, profile and admin creation.
"""

import logging

from fastapi import APIRouter, Depends, status

from menu_api.core.security import TokenClaims
from menu_api.dependencies import authenticate, authorize, current_user
from menu_api.models import UserRole
from menu_api.schemas import AuthResponse, ErrorResponse, LoginRequest, ProfileResponse, RegisterRequest
from menu_api.services.accounts import AccountService, get_account_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/auth", tags=["Auth"])


@router.post(
    "/register",
    response_model=AuthResponse,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def register(
    body: RegisterRequest,
    accounts: AccountService = Depends(get_account_service),
) -> AuthResponse:
    """Create a user account and return a token for it."""
    result = await accounts.register(body.name, body.email, body.phone_number, body.password)
    return AuthResponse(message="User registered successfully", token=result.token, user=result.user)


@router.post(
    "/login",
    response_model=AuthResponse,
    response_model_exclude_none=True,
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}},
)
async def login(
    body: LoginRequest,
    accounts: AccountService = Depends(get_account_service),
) -> AuthResponse:
    result = await accounts.login(body.email, body.password)
    return AuthResponse(message="Login successful", token=result.token, user=result.user)


@router.get(
    "/profile",
    response_model=ProfileResponse,
    dependencies=[Depends(authenticate)],
    responses={401: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def profile(
    claims: TokenClaims = Depends(current_user),
    accounts: AccountService = Depends(get_account_service),
) -> ProfileResponse:
    """The caller's own account, read fresh from the store."""
    return ProfileResponse(user=await accounts.get_profile(claims.user_id))


@router.post(
    "/admin/create",
    response_model=AuthResponse,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(authenticate), Depends(authorize(UserRole.ADMIN.value))],
    responses={400: {"model": ErrorResponse}, 403: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def create_admin(
    body: RegisterRequest,
    accounts: AccountService = Depends(get_account_service),
) -> AuthResponse:
    result = await accounts.create_admin(body.name, body.email, body.phone_number, body.password)
    logger.info(f"Admin account {result.user['email']} created")
    return AuthResponse(message="Admin created successfully", user=result.user)
