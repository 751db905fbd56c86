"""
CRM - Routes Segments
"""

from fastapi import APIRouter

from models import SegmentPreviewRequest, SegmentSaveRequest
from services.segment_builder import preview_segment, save_segment, list_segments

router = APIRouter(prefix="/segments", tags=["Segments"])


@router.post("/preview")
async def preview(data: SegmentPreviewRequest):
    """Nombre de customers qui matchent les règles"""
    matched = await preview_segment(data.rules)
    return {"matched": matched}


@router.post("/save", status_code=201)
async def save(data: SegmentSaveRequest):
    """Sauvegarde un segment avec le snapshot des customers"""
    return await save_segment(data.name, data.rules, data.createdBy)


@router.get("/fetch")
async def fetch():
    return await list_segments()
