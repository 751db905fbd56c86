"""
╔══════════════════════════════════════════════════════════════════════════════╗
║  CRM - Models Package                                                        ║
║                                                                              ║
║  Exports tous les modèles pour import facile                                 ║
║  from models import CustomerCreate, CampaignCreate, etc.                     ║
╚══════════════════════════════════════════════════════════════════════════════╝
"""

from .customer import (
    CustomerCreate,
    is_valid_email_format
)

from .order import (
    OrderCreate
)

from .user import (
    UserCreate,
    public_user
)

from .segment import (
    SegmentPreviewRequest,
    SegmentSaveRequest
)

from .campaign import (
    CampaignCreate,
    MessageTemplateRequest
)

from .communication_log import (
    CommunicationStatus,
    VALID_LOG_TRANSITIONS,
    ReceiptUpdate,
    VendorSendRequest
)

__all__ = [
    # Customer
    "CustomerCreate",
    "is_valid_email_format",
    # Order
    "OrderCreate",
    # User
    "UserCreate",
    "public_user",
    # Segment
    "SegmentPreviewRequest",
    "SegmentSaveRequest",
    # Campaign
    "CampaignCreate",
    "MessageTemplateRequest",
    # Communication log
    "CommunicationStatus",
    "VALID_LOG_TRANSITIONS",
    "ReceiptUpdate",
    "VendorSendRequest",
]
