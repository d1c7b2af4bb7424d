"""Authentication endpoints"""

from fastapi import APIRouter, Depends, HTTPException, status, Request, Response
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from jewelshot.db import get_db, User
from jewelshot.schemas import ActionResult, UserCreate, UserLogin, UserResponse, Token
from jewelshot.services import (
    authenticate_user, create_user, get_user_by_email,
    get_user_by_id, create_access_token, decode_access_token
)
from jewelshot.services.errors import NOT_AUTHENTICATED
from jewelshot.services.validation import validate_email, validate_signup_password
from jewelshot.structured_logging import user_id_var
from jewelshot.config import settings

router = APIRouter(prefix="/auth", tags=["Authentication"])
security = HTTPBearer(auto_error=False)  # Don't auto-reject; we also check the session cookie


def set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=settings.session_cookie_name,
        value=token,
        domain=settings.session_cookie_domain,
        max_age=settings.access_token_expire_minutes * 60,
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite="lax",
        path="/",
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(
        key=settings.session_cookie_name,
        domain=settings.session_cookie_domain,
        path="/",
    )


async def _resolve_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials],
    db: AsyncSession,
) -> Optional[User]:
    user_id = None

    # 1. Try Bearer token
    if credentials and credentials.credentials:
        user_id = decode_access_token(credentials.credentials)

    # 2. Fall back to session cookie
    if not user_id:
        cookie_token = request.cookies.get(settings.session_cookie_name)
        if cookie_token:
            user_id = decode_access_token(cookie_token)

    if not user_id:
        return None

    user = await get_user_by_id(db, user_id)
    if not user or not user.is_active:
        return None

    user_id_var.set(user.id)
    return user


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> User:
    """Dependency to get the current authenticated user.
    Checks Bearer token first, then falls back to the session cookie."""
    user = await _resolve_user(request, credentials, db)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=NOT_AUTHENTICATED,
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


async def get_optional_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> Optional[User]:
    """Like get_current_user, but anonymous callers get None."""
    return await _resolve_user(request, credentials, db)


@router.post("/signup", response_model=ActionResult[Token], status_code=status.HTTP_201_CREATED)
async def signup(
    user_data: UserCreate,
    response: Response,
    db: AsyncSession = Depends(get_db)
):
    """Register a new user; the profile starts with the signup credits"""
    for check in (validate_email(user_data.email), validate_signup_password(user_data.password)):
        if not check.valid:
            response.status_code = status.HTTP_400_BAD_REQUEST
            return ActionResult.fail(check.error)

    existing = await get_user_by_email(db, user_data.email)
    if existing:
        response.status_code = status.HTTP_400_BAD_REQUEST
        return ActionResult.fail("Email already registered")

    user = await create_user(
        db,
        email=user_data.email,
        password=user_data.password,
        full_name=user_data.full_name,
    )
    token = create_access_token(user.id)
    set_session_cookie(response, token)
    return ActionResult.ok(Token(access_token=token))


@router.post("/login", response_model=ActionResult[Token])
async def login(
    credentials: UserLogin,
    response: Response,
    db: AsyncSession = Depends(get_db)
):
    """Login and get an access token. Also sets the session cookie."""
    user = await authenticate_user(db, credentials.email.strip(), credentials.password)

    if not user:
        response.status_code = status.HTTP_401_UNAUTHORIZED
        return ActionResult.fail("Invalid email or password")

    token = create_access_token(user.id)
    set_session_cookie(response, token)
    return ActionResult.ok(Token(access_token=token))


@router.post("/logout", response_model=ActionResult[None])
async def logout(response: Response):
    """Logout — clear the session cookie"""
    clear_session_cookie(response)
    return ActionResult.ok()


@router.get("/me", response_model=ActionResult[UserResponse])
async def get_me(
    current_user: User = Depends(get_current_user)
):
    """Get current user info"""
    return ActionResult.ok(UserResponse.model_validate(current_user))
