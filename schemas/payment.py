from pydantic import BaseModel, Field, validator
from typing import Optional
from datetime import datetime
from decimal import Decimal
from models.payment import PaymentMethod, PaymentStatus
from models.website_order import OrderStatus
from schemas.tournament import Participant
from core.validators import normalize_payer_number


class PaymentBase(BaseModel):
    method: PaymentMethod
    payer_number: str = Field(..., description="bKash/Nagad number the money was sent from")
    txn_id: str = Field(..., min_length=4, max_length=64)
    amount: Decimal = Field(..., gt=0)

    @validator('payer_number')
    def validate_payer_number(cls, v):
        return normalize_payer_number(v)

    @validator('txn_id')
    def normalize_txn_id(cls, v):
        v = v.strip().upper()
        if not v.isalnum():
            raise ValueError('Transaction ID must be alphanumeric')
        return v


class PaymentSubmit(PaymentBase):
    tournament_id: int


class PaymentDecision(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)


class Payment(BaseModel):
    id: int
    user_id: int
    tournament_id: Optional[int] = None
    method: PaymentMethod
    payer_number: str
    txn_id: str
    amount: Decimal
    status: PaymentStatus
    verified_by: Optional[int] = None
    verified_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class WebsiteOrderCreate(PaymentBase):
    pass


class WebsiteOrder(BaseModel):
    id: int
    user_id: int
    payment_id: int
    amount: Decimal
    status: OrderStatus
    download_expires_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PaymentSubmitted(BaseModel):
    payment: Payment
    participant: Participant
