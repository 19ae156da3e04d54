"""Sign up / sign in endpoints"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from termhub.core.database import get_db
from termhub.core.security import create_access_token
from termhub.dependencies.auth import get_current_user
from termhub.models.user import User
from termhub.schemas.user import AuthResponse, SigninRequest, SignupRequest, UserEnvelope, UserResponse
from termhub.services.user_service import UserService

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/signup", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def signup(
    data: SignupRequest,
    session: AsyncSession = Depends(get_db),
) -> AuthResponse:
    """
    Register a new account and return it with an access token.
    """
    user = await UserService.signup(session, data)
    return AuthResponse(
        message="User created successfully",
        user=UserResponse.model_validate(user),
        token=create_access_token(user.id),
    )


@router.post("/signin", response_model=AuthResponse)
async def signin(
    data: SigninRequest,
    session: AsyncSession = Depends(get_db),
) -> AuthResponse:
    user = await UserService.authenticate(session, str(data.email), data.password)
    return AuthResponse(
        message="Authentication successful",
        user=UserResponse.model_validate(user),
        token=create_access_token(user.id),
    )


@router.get("/me", response_model=UserEnvelope)
async def me(current_user: User = Depends(get_current_user)) -> UserEnvelope:
    """Return the account behind the bearer token."""
    return UserEnvelope(user=UserResponse.model_validate(current_user))
