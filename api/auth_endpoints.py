"""
Authentication Endpoints.

Endpoints Provided:
- `POST /api/register`: Create an account and return it with an access token.
- `POST /api/login`: Exchange username and password for an access token.
- `POST /api/logout`: Revoke the presented access token.
- `GET /api/user`: The currently authenticated user.

Architectural Design:
- Request bodies are pydantic models; the password never leaves this layer
  except as a bcrypt hash.
- Tokens are bearer JWTs, resolved back to a user by the `get_current_user`
  dependency.
"""

from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.security import HTTPAuthorizationCredentials
from pydantic import BaseModel, Field

from core.auth import AuthenticationService
from core.logging_config import get_logger, log_function_call
from core.models import User, UserPublic
from .dependencies import bearer_scheme, get_auth_service, get_current_user

logger = get_logger(__name__)
router = APIRouter(prefix="/api", tags=["Authentication"])


# Request/Response Models
class RegisterRequest(BaseModel):
    username: str = Field(min_length=3, max_length=50, pattern=r"^[a-zA-Z0-9_.-]+$")
    password: str = Field(min_length=1)
    display_name: str = Field(min_length=1, max_length=100)
    bio: Optional[str] = Field(default=None, max_length=500)
    profile_image: Optional[str] = Field(default=None, max_length=1024)


class LoginRequest(BaseModel):
    username: str
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str
    expires_in: int
    user: UserPublic


def _token_response(auth: AuthenticationService, user: User) -> TokenResponse:
    return TokenResponse(
        **auth.create_token(user), user=UserPublic.model_validate(user.model_dump())
    )


@router.post("/register", response_model=TokenResponse, status_code=201)
@log_function_call(logger)
async def register_user(
    request: RegisterRequest, auth: AuthenticationService = Depends(get_auth_service)
):
    """Register a new user"""
    user = await auth.register_user(
        username=request.username,
        password=request.password,
        display_name=request.display_name,
        bio=request.bio,
        profile_image=request.profile_image,
    )
    return _token_response(auth, user)


@router.post("/login", response_model=TokenResponse)
async def login(
    request: LoginRequest, auth: AuthenticationService = Depends(get_auth_service)
):
    """Authenticate and get an access token"""
    user = await auth.authenticate_user(request.username, request.password)
    return _token_response(auth, user)


@router.post("/logout")
async def logout(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    user: User = Depends(get_current_user),
    auth: AuthenticationService = Depends(get_auth_service),
):
    """Logout the current user"""
    auth.revoke_token(credentials.credentials)
    logger.info(f"User {user.username} logged out")
    return {"success": True}


@router.get("/user", response_model=UserPublic)
async def current_user(user: User = Depends(get_current_user)):
    return user
