"""
CRM - Route Vendor (canal de livraison simulé)

Accepte immédiatement, le receipt part en tâche de fond après le délai.
"""

from fastapi import APIRouter, BackgroundTasks
import logging

from models import VendorSendRequest
from services.errors import ValidationError
from services.vendor_sender import VendorSimulator

logger = logging.getLogger("vendor")

router = APIRouter(prefix="/vender", tags=["Vendor"])

simulator = VendorSimulator()


@router.post("/send")
async def send(data: VendorSendRequest, background_tasks: BackgroundTasks):
    if not data.logId:
        raise ValidationError("logId is required")

    logger.info(f"Vendor accepted message for customer {data.customerId} (log {data.logId})")
    background_tasks.add_task(simulator.deliver, data.logId)
    return {"success": True}
