"""
╔══════════════════════════════════════════════════════════════════════════════╗
║  CRM - Routes Campaign                                                       ║
║                                                                              ║
║  create: dispatch synchrone (la requête attend la fin de la boucle)          ║
║  receipt: callback du vendor                                                 ║
╚══════════════════════════════════════════════════════════════════════════════╝
"""

from fastapi import APIRouter

from models import CampaignCreate, MessageTemplateRequest, ReceiptUpdate
from services.campaign_dispatcher import create_campaign, campaign_history, campaign_logs
from services.campaign_messages import suggest_message_template
from services.receipt_handler import update_receipt

router = APIRouter(prefix="/campaign", tags=["Campaign"])


@router.post("/create")
async def create(data: CampaignCreate):
    campaign, _ = await create_campaign(
        data.name,
        data.messageTemplate,
        data.segmentId,
        data.createdBy
    )
    return {"success": True, "campaignId": campaign["_id"]}


@router.put("/receipt")
async def receipt(data: ReceiptUpdate):
    """Receipt de livraison (last-write-wins sauf mode strict)"""
    await update_receipt(data.logId, data.status, data.vendorMessage)
    return {"success": True}


@router.get("/history")
async def history():
    return await campaign_history()


@router.get("/logs/{campaign_id}")
async def logs(campaign_id: str):
    return await campaign_logs(campaign_id)


@router.post("/messageTemplete")
async def message_template(data: MessageTemplateRequest):
    """Suggestion de template (texte brut généré)"""
    template = await suggest_message_template(data.title, data.segment)
    return {"messageTemplate": template}
