"""
CRM - Modèle Segment

rules: texte original (ou liste de textes), stocké tel quel
customerIds: snapshot des customers au moment de la création
"""

from typing import List, Optional, Union
from pydantic import BaseModel


class SegmentPreviewRequest(BaseModel):
    rules: Optional[Union[str, List[str]]] = None


class SegmentSaveRequest(BaseModel):
    name: Optional[str] = None
    rules: Optional[Union[str, List[str]]] = None
    createdBy: Optional[str] = None
