"""
Hierarchy API routes – ancestor chain, validated parent reassignment, deactivation.
"""
from fastapi import APIRouter
from typing import List

from samarpan.models.user import ParentAssignment, UserResponse
from samarpan.services import hierarchy_service
from samarpan.utils.helpers import serialize_doc, serialize_docs

router = APIRouter(prefix="/hierarchy", tags=["Hierarchy"])


@router.get("/{user_id}/ancestors")
async def ancestors(user_id: str):
    chain = await hierarchy_service.get_ancestor_chain(user_id)
    return {"user_id": user_id, "ancestors": serialize_docs(chain), "levels": len(chain)}


@router.get("/{user_id}/direct-reports", response_model=List[UserResponse])
async def direct_reports(user_id: str):
    await hierarchy_service.get_user(user_id)
    return serialize_docs(await hierarchy_service.get_direct_reports(user_id))


@router.put("/{user_id}/parent", response_model=UserResponse)
async def reassign_parent(user_id: str, body: ParentAssignment):
    updated = await hierarchy_service.assign_parent(user_id, body.parent_id)
    return serialize_doc(updated)


@router.post("/{user_id}/deactivate", response_model=UserResponse)
async def deactivate(user_id: str):
    return serialize_doc(await hierarchy_service.deactivate_user(user_id))
