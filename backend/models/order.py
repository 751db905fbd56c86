"""
CRM - Modèle Order

A la création: customers.totalSpend += amount
A la suppression: customers.totalSpend -= amount
"""

from typing import List, Optional
from pydantic import BaseModel, field_validator


class OrderCreate(BaseModel):
    customerId: str
    amount: float
    orderId: Optional[str] = None
    items: List[str] = []

    @field_validator('customerId')
    @classmethod
    def validate_customer_id(cls, v):
        if not v or not v.strip():
            raise ValueError("customerId is required")
        return v

    @field_validator('amount')
    @classmethod
    def validate_amount(cls, v):
        if v < 0:
            raise ValueError("amount must be >= 0")
        return v
