"""
Database interactions and Supabase queries.
Can import from: models, database
Must NOT import from: services, routers
"""

from .user_repository import UserRepository
from .credit_repository import CreditRepository
from .generation_repository import GenerationRepository
from .favorite_repository import FavoriteRepository
from .collection_repository import CollectionRepository
from .prompt_repository import PromptRepository
from .payment_repository import PaymentRepository

__all__ = [
    "UserRepository",
    "CreditRepository",
    "GenerationRepository",
    "FavoriteRepository",
    "CollectionRepository",
    "PromptRepository",
    "PaymentRepository",
]
