"""
API endpoints and request handling.
Can import from: services, models
Must NOT import from: repositories (except to build service dependencies)
"""

from . import (
    admin,
    ai_tools,
    auth,
    collections,
    credits,
    favorites,
    generations,
    history,
    payments,
    prompts,
    user,
)

__all__ = [
    "admin",
    "ai_tools",
    "auth",
    "collections",
    "credits",
    "favorites",
    "generations",
    "history",
    "payments",
    "prompts",
    "user",
]
