"""
Donation API routes – payment verification hook and the commission retry queue.
"""
from fastapi import APIRouter, Query

from samarpan.config.database import Collections
from samarpan.config.settings import settings
from samarpan.database.db_operations import db_ops
from samarpan.models.donation import DonationResponse
from samarpan.services import donation_pipeline
from samarpan.services.commission_service import serialize_result
from samarpan.utils.errors import NotFoundError
from samarpan.utils.helpers import serialize_doc, serialize_docs

router = APIRouter(prefix="/donations", tags=["Donations"])


@router.get("/undistributed")
async def undistributed_donations(
    limit: int = Query(settings.UNDISTRIBUTED_DONATIONS_LIMIT, ge=1, le=settings.MAX_PAGE_SIZE),
):
    donations = await donation_pipeline.get_undistributed_donations(limit)
    return {"donations": serialize_docs(donations), "count": len(donations)}


@router.post("/{donation_id}/verify")
async def verify_donation(donation_id: str):
    """
    Called once the payment gateway confirms the transaction. Always answers with the
    verified donation; bookkeeping failures are reported, not raised.
    """
    outcome = await donation_pipeline.verify_donation(donation_id)
    report = outcome["report"]
    return {
        "success": True,
        "message": "Payment verified successfully",
        "donation": serialize_doc(outcome["donation"]),
        "processing": report.as_dict() if report else None,
    }


@router.post("/{donation_id}/distribute")
async def distribute_commission(donation_id: str):
    result = await donation_pipeline.redistribute_commission(donation_id)
    return {
        "success": True,
        "message": "Commission distributed successfully",
        "data": serialize_result(result),
    }


@router.get("/{donation_id}", response_model=DonationResponse)
async def get_donation(donation_id: str):
    """Donation with its processing outcome (flags, totals, recorded stage errors)."""
    donation = await db_ops.get_by_id(Collections.DONATIONS, donation_id)
    if not donation:
        raise NotFoundError(f"Donation {donation_id} not found")
    return serialize_doc(donation)
