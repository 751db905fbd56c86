"""
╔══════════════════════════════════════════════════════════════════════════════╗
║  CRM - Campaign Dispatcher                                                   ║
║                                                                              ║
║  create_campaign:                                                            ║
║  1. Campaign persistée                                                       ║
║  2. Pour chaque customer du snapshot (indépendamment):                       ║
║     message résolu → log PENDING → envoi vendor                              ║
║  3. Le statut final arrive plus tard via le Receipt Handler                  ║
║                                                                              ║
║  RÈGLE: l'échec d'un customer n'interrompt jamais le lot                     ║
║                                                                              ║
║  MESSAGE (CAMPAIGN_MESSAGE_MODE):                                            ║
║  - "ai": contenu généré par customer, template en repli si échec             ║
║  - "template": substitution des tokens {{name}}, {{totalSpend}}, ...         ║
╚══════════════════════════════════════════════════════════════════════════════╝
"""

import asyncio
import logging
from typing import Dict, List, Optional, Tuple

from config import db, new_id, utc_now, CAMPAIGN_MESSAGE_MODE, DISPATCH_CONCURRENCY
from models.communication_log import CommunicationStatus
from services.campaign_messages import build_campaign_message, render_template
from services.errors import GenerationError, NotFoundError, ValidationError, VendorError
from services.segment_builder import get_segment
from services.vendor_sender import send_to_vendor

logger = logging.getLogger("campaign_dispatcher")

MESSAGE_MODES = ("ai", "template")
NO_RULE_DESCRIPTION = "No rule description available"
DELETED_SEGMENT = "Deleted Segment"


def describe_rules(segment: dict) -> str:
    rules = segment.get("rules") or []
    if isinstance(rules, str):
        return rules or NO_RULE_DESCRIPTION
    return rules[0] if rules and rules[0] else NO_RULE_DESCRIPTION


async def resolve_message(customer: dict, segment: dict, message_template: str, mode: str) -> str:
    """Message final d'un customer selon le mode"""
    if mode == "template":
        return render_template(message_template, customer)

    try:
        content = await build_campaign_message(
            segment_name=segment.get("name", ""),
            rules_description=describe_rules(segment),
            customer_name=customer.get("name", "")
        )
        return content["message"]
    except (GenerationError, ValidationError) as e:
        logger.warning(
            f"Message generation failed for customer {customer['_id']}, "
            f"falling back to template: {e.message}"
        )
        return render_template(message_template, customer)


async def _dispatch_one(
    campaign: dict,
    segment: dict,
    customer_id: str,
    message_template: str,
    mode: str,
    summary: Dict[str, int]
):
    """Traite un customer. Ne lève jamais: tout échec est loggé et compté."""
    try:
        customer = await db.customers.find_one({"_id": customer_id})
        if not customer:
            logger.warning(f"Customer not found: {customer_id}")
            summary["skipped"] += 1
            return

        message = await resolve_message(customer, segment, message_template, mode)

        now = utc_now()
        log = {
            "_id": new_id(),
            "campaignId": campaign["_id"],
            "segmentId": segment["_id"],
            "customerId": customer["_id"],
            "message": message,
            "status": CommunicationStatus.PENDING.value,
            "createdAt": now,
            "updatedAt": now
        }
        await db.communication_logs.insert_one(log)
        summary["logged"] += 1

        try:
            resp = await send_to_vendor(customer["_id"], log["_id"], message)
            if resp.status_code >= 300:
                logger.warning(f"Vendor API error {resp.status_code} for customer {customer_id}")
            else:
                logger.info(f"Message sent to vendor for customer {customer_id}")
        except VendorError as e:
            summary["vendor_errors"] += 1
            logger.error(f"Vendor API call failed for {customer_id}: {e.message}")

    except Exception as e:
        summary["errors"] += 1
        logger.error(f"Error processing customer {customer_id}: {str(e)}")


async def create_campaign(
    name: Optional[str],
    message_template: Optional[str],
    segment_id: Optional[str],
    created_by: Optional[str],
    message_mode: Optional[str] = None,
    concurrency: Optional[int] = None
) -> Tuple[dict, Dict[str, int]]:
    """
    Crée une campagne et envoie un message à chaque customer du segment.

    Returns:
        (campaign, summary) où summary = {total, logged, skipped, vendor_errors, errors}

    Raises:
        ValidationError: champ manquant ou mode inconnu
        NotFoundError: segment inexistant
    """
    if not name or not message_template or not segment_id or not created_by:
        raise ValidationError("Missing required fields")

    mode = (message_mode or CAMPAIGN_MESSAGE_MODE).lower()
    if mode not in MESSAGE_MODES:
        raise ValidationError(f"Invalid message mode: {mode}. Valid: {list(MESSAGE_MODES)}")

    segment = await get_segment(segment_id)

    now = utc_now()
    campaign = {
        "_id": new_id(),
        "name": name,
        "messageTemplate": message_template,
        "segmentId": segment["_id"],
        "createdBy": created_by,
        "createdAt": now,
        "updatedAt": now
    }
    await db.campaigns.insert_one(campaign)

    customer_ids = segment.get("customerIds") or []
    summary = {"total": len(customer_ids), "logged": 0, "skipped": 0, "vendor_errors": 0, "errors": 0}

    limit = max(1, concurrency or DISPATCH_CONCURRENCY)
    if limit == 1:
        for customer_id in customer_ids:
            await _dispatch_one(campaign, segment, customer_id, message_template, mode, summary)
    else:
        semaphore = asyncio.Semaphore(limit)

        async def bounded(customer_id):
            async with semaphore:
                await _dispatch_one(campaign, segment, customer_id, message_template, mode, summary)

        await asyncio.gather(*(bounded(cid) for cid in customer_ids))

    logger.info(f"Campaign {campaign['_id']} '{name}' dispatched ({mode}): {summary}")
    return campaign, summary


# ==================== LECTURE ====================

async def campaign_history() -> List[dict]:
    """Campagnes (plus récentes d'abord) avec stats de livraison"""
    campaigns = await db.campaigns.find({}).sort("createdAt", -1).to_list(None)

    details = []
    for camp in campaigns:
        logs = await db.communication_logs.find(
            {"campaignId": camp["_id"]},
            {"status": 1}
        ).to_list(None)

        sent = sum(1 for log in logs if log.get("status") == CommunicationStatus.SENT.value)
        failed = sum(1 for log in logs if log.get("status") == CommunicationStatus.FAILED.value)
        pending = sum(1 for log in logs if log.get("status") == CommunicationStatus.PENDING.value)

        segment = await db.segments.find_one({"_id": camp.get("segmentId")}, {"name": 1})

        created_by = camp.get("createdBy")
        user = await db.users.find_one({"_id": created_by}, {"_id": 1, "name": 1}) if created_by else None

        details.append({
            "_id": camp["_id"],
            "name": camp.get("name"),
            "messageTemplate": camp.get("messageTemplate"),
            "createdBy": user or created_by,
            "createdAt": camp.get("createdAt"),
            "segmentName": segment["name"] if segment and segment.get("name") else DELETED_SEGMENT,
            "stats": {
                "total": len(logs),
                "sent": sent,
                "failed": failed,
                "pending": pending
            }
        })

    return details


async def campaign_logs(campaign_id: str) -> List[dict]:
    logs = await db.communication_logs.find({"campaignId": campaign_id}).to_list(None)

    names = {}
    response = []
    for log in logs:
        customer_id = log.get("customerId")
        if customer_id not in names:
            customer = await db.customers.find_one({"_id": customer_id}, {"name": 1})
            names[customer_id] = customer.get("name") if customer else None

        response.append({
            "_id": log["_id"],
            "customerName": names[customer_id] or "Unknown",
            "message": log.get("message"),
            "status": log.get("status"),
            "createdAt": log.get("createdAt")
        })

    return response
