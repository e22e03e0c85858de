"""
Payment request model schemas for manual credit top-ups.
"""
from pydantic import BaseModel
from typing import Optional
from datetime import datetime
from decimal import Decimal
from uuid import UUID
from enum import Enum


class PaymentStatus(str, Enum):
    """Payment request status enum."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class PaymentRequestResponse(BaseModel):
    id: UUID
    user_id: UUID
    amount: Decimal
    credits_requested: int
    transaction_id: Optional[str] = None
    payment_screenshot_url: Optional[str] = None
    status: PaymentStatus = PaymentStatus.PENDING
    approved_by: Optional[UUID] = None
    approved_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class AdminPaymentResponse(PaymentRequestResponse):
    """Payment request merged with the requester's profile."""
    user_email: str = "Unknown"
    user_display_name: str = "Unknown User"


class PaymentDecisionResponse(BaseModel):
    id: UUID
    status: PaymentStatus
    message: str
