"""
CRM - Modèle User

Les comptes OAuth n'ont pas de password (googleId à la place).
"""

from typing import Optional
from pydantic import BaseModel, field_validator

from .customer import is_valid_email_format


class UserCreate(BaseModel):
    name: str
    email: str
    password: Optional[str] = None
    googleId: Optional[str] = None
    avatar: Optional[str] = None

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


def public_user(user: dict) -> dict:
    """Retire le hash du password avant de renvoyer un user"""
    return {k: v for k, v in user.items() if k != "password"}
