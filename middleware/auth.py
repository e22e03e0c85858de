"""
Authentication middleware and dependencies for Supabase access tokens.
JWT verification only; no database round trip on the hot path.
"""
import logging
from typing import Optional, Callable
from uuid import UUID

from fastapi import HTTPException, status, Request, Response, Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from starlette.middleware.base import BaseHTTPMiddleware

from database import SupabaseClient, get_database
from models.user import CurrentUser
from repositories.user_repository import UserRepository
from utils.exceptions import AuthenticationError, AuthorizationError, StudioError, to_http_exception
from utils.jwt_security import verify_supabase_jwt, JWTSecurityError

logger = logging.getLogger(__name__)

# Security scheme for dependency injection
security = HTTPBearer(auto_error=False)


def user_from_token(token: str) -> CurrentUser:
    """Validate a bearer token and build the CurrentUser it describes."""
    payload = verify_supabase_jwt(token)
    metadata = payload.get("user_metadata") or {}
    return CurrentUser(
        id=UUID(payload["user_id"]),
        email=payload.get("email") or None,
        role=payload.get("role") or "authenticated",
        display_name=metadata.get("display_name"),
        access_token=token
    )


class AuthMiddleware(BaseHTTPMiddleware):
    """
    Attach request.state.user when a valid bearer token is present.

    Never rejects a request; endpoints decide via get_current_user.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request.state.user = None
        request.state.user_id = None

        auth_header = request.headers.get("Authorization", "")
        if auth_header.startswith("Bearer "):
            token = auth_header.split(" ", 1)[1].strip()
            try:
                user = user_from_token(token)
                request.state.user = user
                request.state.user_id = user.user_id
            except JWTSecurityError as e:
                logger.debug(f"[AUTH-MIDDLEWARE] Token rejected for {request.method} {request.url.path}: {e}")

        return await call_next(request)


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> CurrentUser:
    """
    FastAPI dependency to get current authenticated user.
    Raises 401 if user is not authenticated.
    """
    state_user = getattr(request.state, "user", None)
    if isinstance(state_user, CurrentUser):
        return state_user

    if not credentials or not credentials.credentials:
        raise to_http_exception(AuthenticationError(
            f"No bearer token for {request.url.path}",
            user_message="Authorization header required"
        ))

    try:
        user = user_from_token(credentials.credentials)
    except JWTSecurityError as e:
        logger.info(f"[AUTH-DEPENDENCY] JWT verification failed for {request.url.path}: {e}")
        raise to_http_exception(AuthenticationError(str(e), user_message="Invalid or expired token"))

    request.state.user = user
    request.state.user_id = user.user_id
    return user


async def get_current_user_optional(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> Optional[CurrentUser]:
    """Like get_current_user, but returns None instead of raising 401."""
    try:
        return await get_current_user(request, credentials)
    except HTTPException:
        return None


async def require_admin(
    current_user: CurrentUser = Depends(get_current_user),
    db: SupabaseClient = Depends(get_database)
) -> CurrentUser:
    """
    Admin authorization dependency.
    The admin role lives in user_roles and is checked with has_role(_user_id, 'admin').
    """
    try:
        is_admin = await UserRepository(db).has_role(current_user.user_id, "admin")
    except StudioError as e:
        logger.error(f"[AUTH] Admin check failed for {current_user.user_id}: {e}")
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Unable to verify permissions")

    if not is_admin:
        logger.warning(f"[AUTH] Admin access denied for user {current_user.user_id}")
        raise to_http_exception(AuthorizationError(
            "Admin role required",
            user_id=current_user.user_id,
            user_message="Admin access required"
        ))
    return current_user
