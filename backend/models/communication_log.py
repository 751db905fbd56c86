"""
╔══════════════════════════════════════════════════════════════════════════════╗
║  CRM - Modèle CommunicationLog (une ligne par campaign x customer)           ║
║                                                                              ║
║  LIFECYCLE:                                                                  ║
║  PENDING → SENT / FAILED (via receipt vendor)                                ║
╚══════════════════════════════════════════════════════════════════════════════╝
"""

from enum import Enum
from typing import Optional
from pydantic import BaseModel


class CommunicationStatus(str, Enum):
    PENDING = "PENDING"
    SENT = "SENT"
    FAILED = "FAILED"


# Appliqué uniquement en mode RECEIPT_STRICT_TRANSITIONS
VALID_LOG_TRANSITIONS = {
    "PENDING": ["SENT", "FAILED"],
    "SENT": [],  # Terminal
    "FAILED": [],  # Terminal - pas de retry
}


class ReceiptUpdate(BaseModel):
    """Receipt envoyé par le vendor"""
    logId: Optional[str] = None
    status: Optional[str] = None
    vendorMessage: Optional[str] = None


class VendorSendRequest(BaseModel):
    """Message transmis au vendor"""
    logId: Optional[str] = None
    customerId: Optional[str] = None
    message: Optional[str] = None
