"""
╔══════════════════════════════════════════════════════════════════════════════╗
║  CRM - Receipt Handler                                                       ║
║                                                                              ║
║  Met à jour un communication log à réception du receipt vendor.              ║
║                                                                              ║
║  MODE PAR DÉFAUT: last-write-wins (tout statut écrase le précédent)          ║
║  MODE STRICT (RECEIPT_STRICT_TRANSITIONS): PENDING → SENT | FAILED une fois  ║
╚══════════════════════════════════════════════════════════════════════════════╝
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from config import db, utc_now, RECEIPT_STRICT_TRANSITIONS
from models.communication_log import CommunicationStatus, VALID_LOG_TRANSITIONS
from services.errors import InvalidTransitionError, NotFoundError, ValidationError

logger = logging.getLogger("receipt_handler")

NO_RECEIPT_MESSAGE = "No delivery receipt received"


def validate_log_transition(log_id: str, from_status: str, to_status: str) -> bool:
    valid_next = VALID_LOG_TRANSITIONS.get(from_status, [])

    if to_status not in valid_next:
        raise InvalidTransitionError(
            f"Communication log {log_id} cannot go from '{from_status}' to '{to_status}'",
            details={"valid_transitions": valid_next}
        )
    return True


async def update_receipt(
    log_id: Optional[str],
    status: Optional[str],
    vendor_message: Optional[str],
    strict: Optional[bool] = None
) -> dict:
    """
    Applique un receipt.

    Raises:
        ValidationError: logId absent ou statut inconnu
        NotFoundError: logId inconnu
        InvalidTransitionError: mode strict et log déjà SENT/FAILED
    """
    if not log_id:
        raise ValidationError("logId is required")

    valid_statuses = [s.value for s in CommunicationStatus]
    if status not in valid_statuses:
        raise ValidationError(f"Invalid status: {status}. Valid: {valid_statuses}")

    if strict is None:
        strict = RECEIPT_STRICT_TRANSITIONS

    now = utc_now()
    update = {"$set": {
        "status": status,
        "sentAt": now,
        "deliveryResponse": {"vendorMessage": vendor_message},
        "updatedAt": now
    }}

    query = {"_id": log_id}
    if strict:
        current = await db.communication_logs.find_one({"_id": log_id}, {"status": 1})
        if not current:
            raise NotFoundError("Communication log not found")
        validate_log_transition(log_id, current.get("status"), status)
        query["status"] = current.get("status")

    result = await db.communication_logs.update_one(query, update)

    if result.matched_count == 0:
        if strict:
            # Un autre receipt est passé entre la lecture et l'écriture
            raise InvalidTransitionError(f"Communication log {log_id} was updated concurrently")
        raise NotFoundError("Communication log not found")

    logger.info(f"Receipt applied: log {log_id} -> {status} ({vendor_message})")
    return {"logId": log_id, "status": status, "sentAt": now}


async def expire_stale_pending(timeout_seconds: int, now: Optional[datetime] = None) -> int:
    """
    Passe en FAILED les logs restés PENDING plus de timeout_seconds.
    Retourne le nombre de logs expirés.
    """
    if timeout_seconds <= 0:
        return 0

    now = now or utc_now()
    cutoff = now - timedelta(seconds=timeout_seconds)

    result = await db.communication_logs.update_many(
        {"status": CommunicationStatus.PENDING.value, "createdAt": {"$lt": cutoff}},
        {"$set": {
            "status": CommunicationStatus.FAILED.value,
            "sentAt": now,
            "deliveryResponse": {"vendorMessage": NO_RECEIPT_MESSAGE},
            "updatedAt": now
        }}
    )

    if result.modified_count:
        logger.warning(f"{result.modified_count} communication log(s) expired without receipt")
    return result.modified_count
