"""
Authentication router backed by Supabase Auth.
Sign-up, password sign-in, session refresh and sign-out; tokens are Supabase access tokens.
"""
import asyncio
import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status

from config import settings
from database import SupabaseClient, get_database
from middleware.auth import get_current_user
from middleware.rate_limiting import auth_limit
from models.user import AuthResponse, CurrentUser, TokenRefresh, UserLogin, UserRegister, UserResponse

router = APIRouter(tags=["authentication"])
logger = logging.getLogger(__name__)


def _auth_error_message(error: Exception) -> str:
    return getattr(error, "message", None) or str(error) or "Authentication failed"


def _user_response(user: Any) -> Optional[UserResponse]:
    if user is None:
        return None
    metadata = getattr(user, "user_metadata", None) or {}
    return UserResponse(
        id=user.id,
        email=getattr(user, "email", None),
        display_name=metadata.get("display_name"),
        created_at=getattr(user, "created_at", None)
    )


def _session_response(result: Any, message: Optional[str] = None) -> AuthResponse:
    """Build an AuthResponse from a Supabase auth result (session may be absent)."""
    session = getattr(result, "session", None)
    user = getattr(result, "user", None) or getattr(session, "user", None)
    if session is None:
        return AuthResponse(user=_user_response(user), message=message)
    return AuthResponse(
        access_token=session.access_token,
        refresh_token=session.refresh_token,
        token_type="bearer",
        expires_in=getattr(session, "expires_in", None),
        user=_user_response(user),
        message=message
    )


@router.post("/register", response_model=AuthResponse)
@auth_limit()
async def register(user_data: UserRegister, request: Request, db: SupabaseClient = Depends(get_database)):
    """
    Create an account. display_name is stored in the user metadata and the
    confirmation email redirects back to the frontend.
    """
    try:
        result = await asyncio.to_thread(db.auth.sign_up, {
            "email": user_data.email,
            "password": user_data.password,
            "options": {
                "data": {"display_name": user_data.display_name},
                "email_redirect_to": f"{settings.public_app_url.rstrip('/')}/",
            },
        })
    except Exception as e:
        logger.info(f"[AUTH] Registration rejected for {user_data.email}: {e}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=_auth_error_message(e))

    if getattr(result, "user", None) is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Registration failed")

    logger.info(f"[AUTH] Registered user {result.user.id}")
    message = None if getattr(result, "session", None) else "Check your email to confirm your account"
    return _session_response(result, message)


@router.post("/login", response_model=AuthResponse)
@auth_limit()
async def login(credentials: UserLogin, request: Request, db: SupabaseClient = Depends(get_database)):
    """Password sign-in. Invalid credentials return 401 with the Supabase message."""
    try:
        result = await asyncio.to_thread(db.auth.sign_in_with_password, {
            "email": credentials.email,
            "password": credentials.password,
        })
    except Exception as e:
        client_ip = request.client.host if request.client else "unknown"
        logger.info(f"[AUTH] Login failed from {client_ip} for {credentials.email}: {e}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=_auth_error_message(e),
            headers={"WWW-Authenticate": "Bearer"}
        )

    if getattr(result, "session", None) is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid login credentials")
    return _session_response(result)


@router.post("/refresh", response_model=AuthResponse)
@auth_limit()
async def refresh_token(payload: TokenRefresh, request: Request, db: SupabaseClient = Depends(get_database)):
    try:
        result = await asyncio.to_thread(db.auth.refresh_session, payload.refresh_token)
    except Exception as e:
        logger.info(f"[AUTH] Session refresh failed: {e}")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=_auth_error_message(e))

    if getattr(result, "session", None) is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid refresh token")
    return _session_response(result)


@router.post("/logout")
async def logout(
    current_user: CurrentUser = Depends(get_current_user),
    db: SupabaseClient = Depends(get_database)
):
    """Revoke the caller's session. Best effort: the client drops its tokens regardless."""
    if current_user.access_token:
        try:
            await asyncio.to_thread(db.admin_auth.sign_out, current_user.access_token)
        except Exception as e:
            logger.warning(f"[AUTH] Sign-out for {current_user.user_id} failed: {e}")
    return {"message": "Successfully logged out"}


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: CurrentUser = Depends(get_current_user)):
    return UserResponse(
        id=current_user.id,
        email=current_user.email,
        display_name=current_user.display_name
    )
