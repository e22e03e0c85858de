"""
Business logic layer.
Can import from: repositories, models
Must NOT import from: routers
"""

from .fal_service import fal_service

__all__ = [
    "fal_service",
]
