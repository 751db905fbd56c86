"""
Service Segment Builder

preview: compte les customers qui matchent les règles
save: fige la liste des _id qui matchent (snapshot, jamais réévalué)
"""

import logging
from datetime import datetime
from typing import List, Optional, Union

from config import db, new_id, utc_now
from services.errors import NotFoundError, ValidationError
from services.rule_translator import translate_rules

logger = logging.getLogger("segment_builder")


def _rules_as_list(rules: Union[str, List[str]]) -> List[str]:
    """Les règles sont stockées telles que reçues, toujours sous forme de liste"""
    if isinstance(rules, (list, tuple)):
        return [r for r in rules]
    return [rules]


async def preview_segment(rules: Union[str, List[str], None], now: Optional[datetime] = None) -> int:
    if not rules:
        raise ValidationError("Rules are required")

    logger.info(f"Received rules for preview: {rules}")
    query = await translate_rules(rules, now=now)
    return await db.customers.count_documents(query)


async def save_segment(
    name: Optional[str],
    rules: Union[str, List[str], None],
    created_by: Optional[str],
    now: Optional[datetime] = None
) -> dict:
    """
    Crée un segment avec le snapshot des customers qui matchent.

    Raises:
        ValidationError: name, rules ou createdBy manquant
        TranslationError: règles non traduisibles
    """
    if not name or not rules or not created_by:
        raise ValidationError("Missing required fields: name, rules, or createdBy.")

    query = await translate_rules(rules, now=now)

    matched = await db.customers.find(query, {"_id": 1}).to_list(None)
    customer_ids = []
    seen = set()
    for doc in matched:
        if doc["_id"] not in seen:
            seen.add(doc["_id"])
            customer_ids.append(doc["_id"])

    timestamp = utc_now()
    segment = {
        "_id": new_id(),
        "name": name,
        "rules": _rules_as_list(rules),
        "createdBy": created_by,
        "customerIds": customer_ids,
        "createdAt": timestamp,
        "updatedAt": timestamp
    }

    await db.segments.insert_one(segment)
    logger.info(f"Segment {segment['_id']} '{name}' saved with {len(customer_ids)} customer(s)")
    return segment


async def get_segment(segment_id: str) -> dict:
    segment = await db.segments.find_one({"_id": segment_id})
    if not segment:
        raise NotFoundError("Segment not found")
    return segment


async def list_segments() -> List[dict]:
    """Segments du plus récent au plus ancien, createdBy peuplé avec name/email"""
    segments = await db.segments.find({}).sort("createdAt", -1).to_list(None)

    users = {}
    for segment in segments:
        user_id = segment.get("createdBy")
        if user_id not in users:
            users[user_id] = await db.users.find_one(
                {"_id": user_id},
                {"_id": 1, "name": 1, "email": 1}
            )
        if users[user_id]:
            segment["createdBy"] = users[user_id]

    return segments
