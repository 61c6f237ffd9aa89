"""
Target API routes – progress view and manual collection corrections.
"""
from fastapi import APIRouter, Query
from typing import Optional
from datetime import datetime

from samarpan.models.target import CollectionCorrection, TargetProgress, TargetResponse
from samarpan.services import target_service
from samarpan.utils.helpers import serialize_doc

router = APIRouter(prefix="/targets", tags=["Targets"])


@router.get("/users/{user_id}/progress", response_model=TargetProgress)
async def target_progress(user_id: str, on_date: Optional[datetime] = Query(None)):
    return await target_service.get_target_progress(user_id, on_date)


@router.post("/{target_id}/correction", response_model=TargetResponse)
async def correct_target(target_id: str, body: CollectionCorrection):
    """Adjust collections (e.g. after a refund). A COMPLETED target stays COMPLETED."""
    updated = await target_service.apply_target_correction(
        target_id, personal_delta=body.personal_delta, team_delta=body.team_delta
    )
    return serialize_doc(updated)
