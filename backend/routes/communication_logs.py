"""
CRM - Routes Communication Logs
"""

from fastapi import APIRouter

from config import db

router = APIRouter(prefix="/communicationLog", tags=["CommunicationLog"])


async def _lookup(collection, name: str, doc_id, fields: dict, cache: dict):
    key = (name, doc_id)
    if key not in cache:
        cache[key] = await collection.find_one({"_id": doc_id}, fields)
    return cache[key] or doc_id


@router.get("/fetch")
async def list_logs():
    """Tous les logs, plus récents d'abord, avec customer / segment / campaign"""
    logs = await db.communication_logs.find({}).sort("createdAt", -1).to_list(None)

    cache = {}
    for log in logs:
        log["customerId"] = await _lookup(db.customers, "customers", log.get("customerId"), {"name": 1, "email": 1}, cache)
        log["segmentId"] = await _lookup(db.segments, "segments", log.get("segmentId"), {"name": 1}, cache)
        log["campaignId"] = await _lookup(db.campaigns, "campaigns", log.get("campaignId"), {"name": 1}, cache)

    return {"success": True, "logs": logs}
