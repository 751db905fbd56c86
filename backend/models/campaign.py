"""
CRM - Modèle Campaign

Les champs sont optionnels ici: la validation (400) est faite par le dispatcher.
"""

from typing import Optional
from pydantic import BaseModel


class CampaignCreate(BaseModel):
    name: Optional[str] = None
    messageTemplate: Optional[str] = None
    segmentId: Optional[str] = None
    createdBy: Optional[str] = None


class MessageTemplateRequest(BaseModel):
    title: Optional[str] = None
    segment: Optional[str] = None
