"""
CRM - Modèle Customer

totalSpend n'est jamais saisi directement: il suit le cycle de vie des orders ($inc).
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, field_validator
import re


def is_valid_email_format(email: str) -> bool:
    """Vérifie le format email basique"""
    if not email:
        return False
    pattern = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'
    return bool(re.match(pattern, email))


class CustomerCreate(BaseModel):
    """Création d'un customer"""
    name: str
    email: str
    phone: Optional[str] = None
    joinedAt: Optional[datetime] = None
    visitCount: int = 0
    lastActive: Optional[datetime] = None

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        if not v or not v.strip():
            raise ValueError("Name is required")
        return v.strip()

    @field_validator('email')
    @classmethod
    def validate_email(cls, v):
        v = v.strip().lower()
        if not is_valid_email_format(v):
            raise ValueError(f"Invalid email format: {v}")
        return v
