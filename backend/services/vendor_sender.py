"""
Vendor Sender (canal de livraison simulé)

Côté dispatcher: send_to_vendor() poste {customerId, logId, message} au vendor.
Côté vendor: VendorSimulator accepte tout, puis après un délai tire l'issue
(SENT avec probabilité success_rate, sinon FAILED) et appelle le receipt.

Livraison at-most-once: pas d'accusé, pas de retry.
"""

import asyncio
import httpx
import random
import logging
from typing import Optional, Tuple

from config import RECEIPT_URL, VENDOR_SEND_URL, VENDOR_SUCCESS_RATE, VENDOR_DELAY_SECONDS
from services.errors import VendorError

logger = logging.getLogger("vendor_sender")

VENDOR_TIMEOUT_SECONDS = 10.0

DELIVERED = ("SENT", "Delivered")
NOT_DELIVERED = ("FAILED", "Failed to deliver")


async def send_to_vendor(
    customer_id: str,
    log_id: str,
    message: str,
    client: Optional[httpx.AsyncClient] = None
) -> httpx.Response:
    """
    Transmet un message au vendor.

    Args:
        client: client httpx à réutiliser (sinon un client éphémère est ouvert)

    Returns:
        la réponse HTTP (statut non 2xx laissé à l'appelant)

    Raises:
        VendorError: vendor injoignable
    """
    payload = {"customerId": customer_id, "logId": log_id, "message": message}

    try:
        if client is not None:
            return await client.post(VENDOR_SEND_URL, json=payload)
        async with httpx.AsyncClient(timeout=VENDOR_TIMEOUT_SECONDS) as http_client:
            return await http_client.post(VENDOR_SEND_URL, json=payload)

    except httpx.TimeoutException as e:
        raise VendorError(f"Vendor timeout after {VENDOR_TIMEOUT_SECONDS}s: {str(e)}") from e

    except httpx.HTTPError as e:
        raise VendorError(f"Vendor connection error: {str(e)}") from e


async def post_receipt(
    log_id: str,
    status: str,
    vendor_message: str,
    client: Optional[httpx.AsyncClient] = None
) -> bool:
    """Envoie le receipt au Receipt Handler. Les erreurs sont loggées, jamais levées."""
    payload = {"logId": log_id, "status": status, "vendorMessage": vendor_message}

    try:
        if client is not None:
            resp = await client.put(RECEIPT_URL, json=payload)
        else:
            async with httpx.AsyncClient(timeout=VENDOR_TIMEOUT_SECONDS) as http_client:
                resp = await http_client.put(RECEIPT_URL, json=payload)
    except httpx.HTTPError as e:
        logger.error(f"Failed to send receipt for log {log_id}: {str(e)}")
        return False

    if resp.status_code >= 300:
        logger.warning(f"Receipt for log {log_id} refused ({resp.status_code}): {resp.text}")
        return False

    logger.info(f"Receipt sent for log {log_id}: {status}")
    return True


class VendorSimulator:
    """Simulation d'un réseau de livraison tiers"""

    def __init__(
        self,
        success_rate: float = VENDOR_SUCCESS_RATE,
        delay_seconds: float = VENDOR_DELAY_SECONDS,
        rng: Optional[random.Random] = None
    ):
        if not 0.0 <= success_rate <= 1.0:
            raise ValueError(f"success_rate must be between 0 and 1, got {success_rate}")
        if delay_seconds < 0:
            raise ValueError(f"delay_seconds must be >= 0, got {delay_seconds}")

        self.success_rate = success_rate
        self.delay_seconds = delay_seconds
        self.rng = rng or random.Random()

    def draw_outcome(self) -> Tuple[str, str]:
        """(status, vendorMessage)"""
        if self.rng.random() < self.success_rate:
            return DELIVERED
        return NOT_DELIVERED

    async def deliver(self, log_id: str) -> Tuple[str, str]:
        """Attend le délai, tire l'issue et poste le receipt"""
        if self.delay_seconds:
            await asyncio.sleep(self.delay_seconds)

        status, vendor_message = self.draw_outcome()
        await post_receipt(log_id, status, vendor_message)
        return status, vendor_message
