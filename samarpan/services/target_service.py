"""
Target Service – keeps fundraising targets in step with verified donations.

A donation adds to the recipient's personal collection on their active target,
then a separate upward walk adds the same amount to the team collection of every
ancestor that has an active target for the donation date.

Counters only ever change through $inc. Derived fields (total, remaining,
percentage, status) are recomputed from the post-increment document and written
with a $set filtered on the counters that were observed; if another donation
landed in between, that writer's recompute wins.

Status moves PENDING -> IN_PROGRESS -> COMPLETED and never back.
"""
import logging
import math
from datetime import datetime
from typing import Any, Dict, Optional

from pymongo import ReturnDocument

from samarpan.config.database import db_config, Collections
from samarpan.database.db_operations import db_ops, to_object_id
from samarpan.models.target import ACTIVE_TARGET_STATUSES, PropagationReport, TargetProgress
from samarpan.services.hierarchy_service import get_user, walk_ancestors
from samarpan.utils.errors import NotFoundError, StorageError, ValidationError
from samarpan.utils.helpers import as_utc_naive

logger = logging.getLogger(__name__)

STATUS_ORDER = ["PENDING", "IN_PROGRESS", "COMPLETED"]


# ─── Derived fields ───────────────────────────────────────────────────────────

def next_target_status(current: str, total_collection: float, progress_percentage: float) -> str:
    if progress_percentage >= 100:
        candidate = "COMPLETED"
    elif total_collection > 0:
        candidate = "IN_PROGRESS"
    else:
        candidate = "PENDING"

    if current not in STATUS_ORDER:
        return candidate
    return max(current, candidate, key=STATUS_ORDER.index)


def derive_target_fields(target: Dict) -> Dict:
    """
    Counters are normalised to paise and the total is their plain sum, so
    total_collection == personal_collection + team_collection holds exactly.
    """
    personal = round(float(target.get("personal_collection", 0) or 0), 2)
    team = round(float(target.get("team_collection", 0) or 0), 2)
    target_amount = float(target.get("target_amount", 0) or 0)

    total = personal + team
    percentage = round(total / target_amount * 100, 2) if target_amount > 0 else 0.0

    return {
        "personal_collection": personal,
        "team_collection": team,
        "total_collection": total,
        "remaining_amount": round(max(0.0, target_amount - total), 2),
        "progress_percentage": percentage,
        "status": next_target_status(target.get("status", "PENDING"), total, percentage),
    }


# ─── Lookups ──────────────────────────────────────────────────────────────────

async def find_active_target(user_id: Any, on_date: Any) -> Optional[Dict]:
    """The user's PENDING/IN_PROGRESS target whose window contains ``on_date``."""
    when = as_utc_naive(on_date)
    return await db_ops.get_one(
        Collections.TARGETS,
        {
            "assigned_to": to_object_id(user_id),
            "status": {"$in": ACTIVE_TARGET_STATUSES},
            "start_date": {"$lte": when},
            "end_date": {"$gte": when},
        },
        sort=[("start_date", -1)],
    )


# ─── Mutation ─────────────────────────────────────────────────────────────────

async def apply_collection(target: Dict, personal_delta: float = 0, team_delta: float = 0,
                           guard: Optional[Dict] = None) -> Dict:
    """
    Increment a target's counters and recompute its derived fields.
    ``guard`` is extra filter on the $inc; a miss on an existing target is a ValidationError.
    """
    deltas = {}
    if personal_delta:
        deltas["personal_collection"] = float(personal_delta)
    if team_delta:
        deltas["team_collection"] = float(team_delta)
    if not deltas:
        return target

    doc = await db_ops.increment(Collections.TARGETS, target["_id"], deltas, extra_filter=guard)
    if doc is None:
        if guard and await db_ops.get_by_id(Collections.TARGETS, target["_id"]):
            raise ValidationError(f"Target {target['_id']} collection cannot be negative")
        raise StorageError(f"Target {target['_id']} disappeared during update")

    derived = derive_target_fields(doc)
    coll = db_config.get_collection(Collections.TARGETS)
    updated = await coll.find_one_and_update(
        {
            "_id": doc["_id"],
            "personal_collection": doc.get("personal_collection", 0),
            "team_collection": doc.get("team_collection", 0),
            "status": doc.get("status"),
        },
        {"$set": {**derived, "updated_at": datetime.utcnow()}},
        return_document=ReturnDocument.AFTER,
    )
    if updated is None:
        logger.debug("Target %s moved on concurrently; newer writer recomputes", doc["_id"])
        return {**doc, **derived}

    if updated["status"] != doc.get("status"):
        logger.info("🎯 Target %s: %s -> %s (%.2f%%)",
                    doc["_id"], doc.get("status"), updated["status"], updated["progress_percentage"])
    return updated


async def _credit_node(user: Dict, amount: float, donation_date: Any, field: str,
                       report: PropagationReport) -> None:
    user_id = str(user["_id"])
    try:
        target = await find_active_target(user["_id"], donation_date)
        if not target:
            logger.info("No active target for user %s on %s; skipping", user_id, donation_date)
            report.skipped.append(user_id)
            return
        if field == "personal":
            await apply_collection(target, personal_delta=amount)
        else:
            await apply_collection(target, team_delta=amount)
        report.updated.append(str(target["_id"]))
    except Exception as exc:
        logger.exception("❌ Target update failed for user %s (%s collection): %s", user_id, field, exc)
        report.failed.append({"user_id": user_id, "field": field, "error": str(exc)})


async def propagate_target_collection(recipient_user_id: Any, amount: Any, donation_date: Any) -> PropagationReport:
    """
    Credit the recipient's personal collection and every ancestor's team collection.
    Per-node failures are recorded in the report; they never stop the walk.
    """
    amount = float(amount)
    if amount <= 0:
        raise ValidationError(f"Collection amount must be positive, got {amount}")

    recipient = await get_user(recipient_user_id)
    report = PropagationReport()

    await _credit_node(recipient, amount, donation_date, "personal", report)

    async def credit_ancestor(ancestor: Dict, depth: int):
        await _credit_node(ancestor, amount, donation_date, "team", report)

    await walk_ancestors(recipient, credit_ancestor)

    logger.info(
        "📈 Propagated %s from user %s: %d target(s) updated, %d skipped, %d failed",
        amount, recipient_user_id, len(report.updated), len(report.skipped), len(report.failed),
    )
    return report


async def apply_target_correction(target_id: Any, personal_delta: float = 0, team_delta: float = 0) -> Dict:
    """
    Manual adjustment (refunds, data fixes). Collections may go down but never
    below zero; a COMPLETED target stays COMPLETED.
    """
    target = await db_ops.get_by_id(Collections.TARGETS, target_id)
    if not target:
        raise NotFoundError(f"Target {target_id} not found")

    # The floor is part of the $inc filter so a concurrent write cannot slip under it
    guard = {}
    if personal_delta < 0:
        guard["personal_collection"] = {"$gte": -personal_delta}
    if team_delta < 0:
        guard["team_collection"] = {"$gte": -team_delta}

    return await apply_collection(
        target, personal_delta=personal_delta, team_delta=team_delta, guard=guard or None
    )


# ─── Reporting ────────────────────────────────────────────────────────────────

async def get_target_progress(user_id: Any, on_date: Any = None) -> TargetProgress:
    now = datetime.utcnow()
    when = as_utc_naive(on_date) or now
    target = await db_ops.get_one(
        Collections.TARGETS,
        {
            "assigned_to": to_object_id(user_id),
            "start_date": {"$lte": when},
            "end_date": {"$gte": when},
        },
        sort=[("start_date", -1)],
    )
    if not target:
        return TargetProgress(has_active_target=False)

    days_remaining = math.ceil((target["end_date"] - when).total_seconds() / 86400)
    return TargetProgress(
        has_active_target=True,
        target_id=str(target["_id"]),
        target_amount=target.get("target_amount", 0),
        personal_collection=target.get("personal_collection", 0),
        team_collection=target.get("team_collection", 0),
        collected=target.get("total_collection", 0),
        remaining=target.get("remaining_amount", 0),
        percentage=target.get("progress_percentage", 0),
        status=target.get("status", "PENDING"),
        days_remaining=days_remaining,
        is_overdue=days_remaining < 0 and target.get("status") != "COMPLETED",
    )
