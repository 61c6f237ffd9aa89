"""
Commission API routes – ledger reporting and the PENDING → PAID | CANCELLED lifecycle.
"""
from fastapi import APIRouter, Query
from typing import List, Optional
from datetime import datetime

from samarpan.models.commission_log import (
    CancelRequest,
    CommissionLogResponse,
    OrganizationCommissionSummary,
    PayoutRequest,
    UserCommissionSummary,
)
from samarpan.services import commission_service
from samarpan.utils.helpers import serialize_doc

router = APIRouter(prefix="/commissions", tags=["Commissions"])


# ─── Reporting ────────────────────────────────────────────────────────────────

@router.get("/users/{user_id}/summary", response_model=UserCommissionSummary)
async def user_commission_summary(
    user_id: str,
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
):
    """Earned / pending / paid totals for one beneficiary."""
    return await commission_service.get_user_commission_summary(user_id, start_date, end_date)


@router.get("/organization/summary", response_model=OrganizationCommissionSummary)
async def organization_commission_summary(
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
):
    return await commission_service.get_organization_commission_summary(start_date, end_date)


@router.get("/donations/{donation_id}", response_model=List[dict])
async def donation_commissions(donation_id: str):
    return await commission_service.get_commissions_by_donation(donation_id)


@router.get("/users/{user_id}/preview")
async def preview_distribution(user_id: str, amount: float = Query(..., gt=0)):
    """What a donation of ``amount`` to this user would distribute. Writes nothing."""
    result = await commission_service.calculate_commission_distribution(user_id, amount)
    return commission_service.serialize_result(result)


# ─── Lifecycle ────────────────────────────────────────────────────────────────

@router.post("/{log_id}/pay", response_model=CommissionLogResponse)
async def pay_commission(log_id: str, body: PayoutRequest):
    updated = await commission_service.mark_commission_as_paid(log_id, body.transaction_id, body.payment_method)
    return serialize_doc(updated)


@router.post("/{log_id}/cancel", response_model=CommissionLogResponse)
async def cancel_commission(log_id: str, body: CancelRequest = CancelRequest()):
    updated = await commission_service.cancel_commission(log_id, body.notes)
    return serialize_doc(updated)


@router.post("/users/{user_id}/rebuild-wallet")
async def rebuild_wallet(user_id: str):
    balance = await commission_service.rebuild_commission_wallet(user_id)
    return {"user_id": user_id, "commission_wallet": balance}
