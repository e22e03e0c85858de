"""
Credit model schemas for balance checks and deductions.
"""
from pydantic import BaseModel, Field
from typing import Optional
from enum import Enum

from config import settings


class CreditAction(str, Enum):
    """Action performed by the credits check endpoint."""
    CHECK = "check"
    DEDUCT = "deduct"


class CreditBalanceResponse(BaseModel):
    """Credit balance response model."""
    credits: int


class CreditCheckRequest(BaseModel):
    """Check or deduct request, mirroring the client's credits hook."""
    action: CreditAction = CreditAction.CHECK
    credits_needed: int = Field(default_factory=lambda: settings.generation_credit_cost, ge=0, le=1000)


class CreditCheckResponse(BaseModel):
    credits: int
    sufficient: Optional[bool] = None
