"""
Middleware package for FastAPI application.
"""
from .auth import AuthMiddleware, get_current_user, get_current_user_optional

__all__ = ["AuthMiddleware", "get_current_user", "get_current_user_optional"]