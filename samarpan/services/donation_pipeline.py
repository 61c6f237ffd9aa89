"""
Donation pipeline – runs once per verified payment.

The donation's SUCCESS status is the primary guarantee to the donor. Commission
and target bookkeeping run afterwards as independent, non-fatal stages: a failure
in one is logged, stored on the donation under ``processing_errors`` and never
raised to the caller.

Two flags live on the donation:
    processed    the pipeline has claimed this donation (set once, atomically)
    distributed  the commission stage completed; donations that are processed but
                 not distributed can be retried with ``redistribute_commission``
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from pymongo import ReturnDocument

from samarpan.config.database import db_config, Collections
from samarpan.config.settings import settings
from samarpan.database.db_operations import db_ops, to_object_id
from samarpan.models.commission_log import CommissionResult
from samarpan.services.commission_service import process_commission_distribution
from samarpan.services.stages import StageResult, run_stage
from samarpan.services.target_service import propagate_target_collection
from samarpan.utils.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)


@dataclass
class DonationProcessingReport:
    donation_id: str
    already_processed: bool = False
    stages: List[StageResult] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return all(stage.ok for stage in self.stages)

    def stage(self, name: str) -> Optional[StageResult]:
        for result in self.stages:
            if result.stage == name:
                return result
        return None

    def as_dict(self) -> Dict[str, Any]:
        return {
            "donation_id": self.donation_id,
            "already_processed": self.already_processed,
            "ok": self.ok,
            "stages": [
                {"stage": s.stage, "ok": s.ok, "error": s.error_message}
                for s in self.stages
            ],
        }


async def _claim_donation(donation_id: Any) -> Optional[Dict]:
    """Flip ``processed`` to True exactly once; None means it was already claimed or is missing."""
    coll = db_config.get_collection(Collections.DONATIONS)
    return await coll.find_one_and_update(
        {"_id": to_object_id(donation_id), "processed": {"$ne": True}},
        {"$set": {"processed": True, "processed_at": datetime.utcnow()}},
        return_document=ReturnDocument.AFTER,
    )


async def _credit_referral_counters(recipient_user_id: Any, amount: float) -> None:
    updated = await db_ops.increment(Collections.USERS, recipient_user_id, {
        "total_donations_referred": 1,
        "total_amount_referred": float(amount),
    })
    if updated is None:
        raise NotFoundError(f"User {recipient_user_id} not found")


def _distribution_fields(result: CommissionResult) -> Dict[str, Any]:
    return {
        "distributed": True,
        "distributed_at": datetime.utcnow(),
        "total_commission_distributed": float(result.total_commission),
        "organization_fund_amount": float(result.organization_fund),
    }


async def _record_outcome(donation_id: Any, fields: Dict[str, Any], errors: List[Dict]) -> None:
    update: Dict[str, Any] = {"$set": {**fields, "updated_at": datetime.utcnow()}}
    if errors:
        update["$push"] = {"processing_errors": {"$each": errors}}
    await db_config.get_collection(Collections.DONATIONS).update_one(
        {"_id": to_object_id(donation_id)}, update
    )


async def process_donation(
    donation_id: Any,
    recipient_user_id: Any,
    amount: Any,
    donation_date: Optional[datetime] = None,
) -> DonationProcessingReport:
    """Trigger commission and target processing for one verified donation."""
    report = DonationProcessingReport(donation_id=str(donation_id))
    donation_date = donation_date or datetime.utcnow()
    context = {"donation_id": str(donation_id), "user_id": str(recipient_user_id)}

    if await _claim_donation(donation_id) is None:
        if await db_ops.get_by_id(Collections.DONATIONS, donation_id) is None:
            logger.error("❌ Donation %s not found; nothing to process", donation_id)
            report.stages.append(StageResult(
                stage="claim", ok=False,
                error=NotFoundError(f"Donation {donation_id} not found"), context=context,
            ))
        else:
            logger.warning("♻️ Donation %s already processed; ignoring replay", donation_id)
            report.already_processed = True
        return report

    report.stages.append(await run_stage(
        "referral_counters", _credit_referral_counters(recipient_user_id, amount), **context
    ))

    commission = await run_stage(
        "commission",
        process_commission_distribution(donation_id, recipient_user_id, amount),
        **context,
    )
    report.stages.append(commission)

    targets = await run_stage(
        "targets",
        propagate_target_collection(recipient_user_id, amount, donation_date),
        **context,
    )
    report.stages.append(targets)
    if targets.ok and targets.value.failed:
        report.stages.append(StageResult(
            stage="targets.nodes", ok=False, context={**context, "failed": targets.value.failed},
        ))

    fields: Dict[str, Any] = {"targets_propagated": targets.ok}
    if commission.ok:
        fields.update(_distribution_fields(commission.value))

    errors = [s.as_record() for s in report.stages if not s.ok]
    await _record_outcome(donation_id, fields, errors)

    if report.ok:
        logger.info("✅ Donation %s processed", donation_id)
    else:
        logger.warning("⚠️ Donation %s processed with %d failed stage(s)", donation_id, len(errors))
    return report


async def redistribute_commission(donation_id: Any) -> CommissionResult:
    """
    Retry the commission stage for a processed donation whose distribution failed.
    The ledger is keyed on (donation, beneficiary), so rows and wallet credits that
    already exist are not duplicated.
    """
    donation = await db_ops.get_by_id(Collections.DONATIONS, donation_id)
    if not donation:
        raise NotFoundError(f"Donation {donation_id} not found")
    if donation.get("payment_status") != "SUCCESS":
        raise ValidationError("Cannot distribute commission for unsuccessful donation")
    if not donation.get("attributed_to_user_id"):
        raise ValidationError("Donation not attributed to any user")
    if donation.get("distributed"):
        raise ValidationError("Commission already distributed for this donation")

    result = await process_commission_distribution(
        donation["_id"], donation["attributed_to_user_id"], donation["amount"]
    )
    await _record_outcome(donation["_id"], _distribution_fields(result), [])
    return result


async def verify_donation(donation_id: Any) -> Dict:
    """
    Mark a PENDING donation SUCCESS, then run the pipeline if it is attributed.
    Pipeline failures never undo the SUCCESS status.
    """
    coll = db_config.get_collection(Collections.DONATIONS)
    donation = await coll.find_one_and_update(
        {"_id": to_object_id(donation_id), "payment_status": "PENDING"},
        {"$set": {"payment_status": "SUCCESS", "verified_at": datetime.utcnow()}},
        return_document=ReturnDocument.AFTER,
    )
    if donation is None:
        existing = await db_ops.get_by_id(Collections.DONATIONS, donation_id)
        if not existing:
            raise NotFoundError(f"Donation {donation_id} not found")
        if existing.get("payment_status") != "SUCCESS":
            raise ValidationError(
                f"Donation {donation_id} is {existing.get('payment_status')} and cannot be verified"
            )
        donation = existing

    recipient = donation.get("attributed_to_user_id")
    if not recipient:
        logger.info("Donation %s verified without attribution; no commission or targets", donation_id)
        return {"donation": donation, "report": None}

    report = await process_donation(
        donation["_id"], recipient, donation["amount"], donation.get("created_at")
    )
    return {"donation": donation, "report": report}


async def get_undistributed_donations(limit: int = settings.UNDISTRIBUTED_DONATIONS_LIMIT) -> List[Dict]:
    """Successful, attributed donations whose commission has not been distributed yet."""
    return await db_ops.get_all(
        Collections.DONATIONS,
        {
            "payment_status": "SUCCESS",
            "distributed": {"$ne": True},
            "attributed_to_user_id": {"$ne": None},
        },
        limit=limit,
        sort=[("created_at", -1)],
    )
