"""
Commission Service – the engine that splits every attributed donation across the
recipient and their coordinator chain, and the ledger that records each split.

Rules (rates come from settings, percentages of the ORIGINAL amount):
    volunteer recipient      personal VOLUNTEER_PERSONAL_COMMISSION (0%)
                             direct parent VOLUNTEER_PARENT_COMMISSION (5%)
                             every further ancestor HIERARCHY_COMMISSION (2%)
    non-volunteer recipient  personal NON_VOLUNTEER_COMMISSION (15%)
                             every ancestor HIERARCHY_COMMISSION (2%)

Organization fund = amount - sum(commission lines). With the configured rates and
the 20 level cap the fund can never go negative.
"""
import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Set

from pymongo.errors import DuplicateKeyError, PyMongoError

from samarpan.config.database import db_config, Collections
from samarpan.config.settings import settings
from samarpan.database.db_operations import db_ops, to_object_id
from samarpan.models.commission_log import (
    CommissionDistribution,
    CommissionResult,
    CommissionSummary,
    OrganizationCommissionSummary,
    UserCommissionSummary,
)
from samarpan.models.user import hierarchy_level
from samarpan.services.hierarchy_service import get_user, walk_ancestors
from samarpan.utils.errors import NotFoundError, StorageError, ValidationError
from samarpan.utils.helpers import percent_of, to_money, serialize_doc, serialize_docs, as_utc_naive

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")


# ─── Calculation ──────────────────────────────────────────────────────────────

def is_volunteer(role: Optional[str]) -> bool:
    return role in settings.VOLUNTEER_ROLES


def _line(user: Dict, amount: Decimal, percentage: float) -> CommissionDistribution:
    return CommissionDistribution(
        user_id=str(user["_id"]),
        user_name=user.get("name", "Unknown"),
        user_role=user.get("role", ""),
        hierarchy_level=hierarchy_level(user.get("role")),
        commission_amount=percent_of(amount, percentage),
        commission_percentage=Decimal(str(percentage)),
    )


async def calculate_commission_distribution(recipient_user_id: Any, amount: Any) -> CommissionResult:
    """
    Pure calculation against the hierarchy store; nothing is written.
    Raises NotFoundError when the recipient does not exist.
    """
    raw_amount = amount if isinstance(amount, Decimal) else Decimal(str(amount))
    donation_amount = to_money(raw_amount)
    if donation_amount <= 0:
        raise ValidationError(f"Donation amount must be positive, got {amount}")
    if donation_amount != raw_amount:
        raise ValidationError(f"Donation amount {amount} has more than two decimal places")

    recipient = await get_user(recipient_user_id)
    volunteer = is_volunteer(recipient.get("role"))

    distributions: List[CommissionDistribution] = []

    personal_pct = (
        settings.VOLUNTEER_PERSONAL_COMMISSION if volunteer else settings.NON_VOLUNTEER_COMMISSION
    )
    personal = _line(recipient, donation_amount, personal_pct)
    if personal.commission_amount > 0:
        distributions.append(personal)

    hierarchy_lines: List[CommissionDistribution] = []

    async def add_ancestor(ancestor: Dict, depth: int):
        if volunteer and depth == 1:
            pct = settings.VOLUNTEER_PARENT_COMMISSION
        else:
            pct = settings.HIERARCHY_COMMISSION
        line = _line(ancestor, donation_amount, pct)
        if line.commission_amount > 0:
            hierarchy_lines.append(line)

    levels = await walk_ancestors(recipient, add_ancestor)
    distributions.extend(hierarchy_lines)

    hierarchy_total = sum((d.commission_amount for d in hierarchy_lines), ZERO)
    personal_total = personal.commission_amount if personal.commission_amount > 0 else ZERO
    total_commission = personal_total + hierarchy_total

    return CommissionResult(
        distributions=distributions,
        total_commission=total_commission,
        organization_fund=donation_amount - total_commission,
        summary=CommissionSummary(
            personal_commission=personal_total,
            hierarchy_commissions=hierarchy_total,
            levels_involved=levels,
        ),
    )


# ─── Ledger ───────────────────────────────────────────────────────────────────

async def create_commission_logs(donation_id: Any, distributions: List[CommissionDistribution]) -> Set[str]:
    """
    Write one PENDING row per line, keyed on (donation_id, user_id).
    Returns the user ids whose row was newly inserted; existing rows are left untouched.
    """
    coll = db_config.get_collection(Collections.COMMISSION_LOGS)
    donation_oid = to_object_id(donation_id)
    now = datetime.utcnow()
    inserted: Set[str] = set()

    for dist in distributions:
        key = {"donation_id": donation_oid, "user_id": to_object_id(dist.user_id)}
        try:
            result = await coll.update_one(
                key,
                {"$setOnInsert": {
                    "user_name":             dist.user_name,
                    "user_role":             dist.user_role,
                    "hierarchy_level":       dist.hierarchy_level,
                    "commission_amount":     float(dist.commission_amount),
                    "commission_percentage": float(dist.commission_percentage),
                    "status":                "PENDING",
                    "paid_at":               None,
                    "transaction_id":        None,
                    "payment_method":        None,
                    "created_at":            now,
                    "updated_at":            now,
                }},
                upsert=True,
            )
        except DuplicateKeyError:
            # A concurrent replay inserted the same row first
            continue
        except PyMongoError as exc:
            raise StorageError(f"Failed to write commission log for user {dist.user_id}: {exc}") from exc

        if result.upserted_id is not None:
            inserted.add(dist.user_id)

    skipped = len(distributions) - len(inserted)
    if skipped:
        logger.warning("♻️ Donation %s: %d commission row(s) already recorded, not re-inserted", donation_id, skipped)
    return inserted


async def credit_commission_wallets(distributions: List[CommissionDistribution]) -> None:
    """$inc each beneficiary's wallet. The wallet is a cache of the ledger."""
    for dist in distributions:
        updated = await db_ops.increment(
            Collections.USERS, dist.user_id, {"commission_wallet": float(dist.commission_amount)}
        )
        if updated is None:
            logger.error("❌ Wallet credit skipped: user %s no longer exists", dist.user_id)


async def process_commission_distribution(donation_id: Any, recipient_user_id: Any, amount: Any) -> CommissionResult:
    """Calculate, record and credit. Replays credit nothing twice."""
    result = await calculate_commission_distribution(recipient_user_id, amount)

    inserted = await create_commission_logs(donation_id, result.distributions)
    await credit_commission_wallets([d for d in result.distributions if d.user_id in inserted])

    logger.info(
        "💰 Donation %s: %s distributed over %d line(s), organization fund %s",
        donation_id, result.total_commission, len(result.distributions), result.organization_fund,
    )
    return result


async def _transition(log_id: Any, from_status: str, update: Dict) -> Dict:
    updated = await db_ops.update(
        Collections.COMMISSION_LOGS, log_id, update, extra_filter={"status": from_status}
    )
    if updated:
        return updated

    existing = await db_ops.get_by_id(Collections.COMMISSION_LOGS, log_id)
    if not existing:
        raise NotFoundError(f"Commission log {log_id} not found")
    raise ValidationError(
        f"Commission log {log_id} is {existing.get('status')}, expected {from_status}"
    )


async def mark_commission_as_paid(log_id: Any, transaction_id: str, payment_method: str) -> Dict:
    """PENDING -> PAID. One-way."""
    updated = await _transition(log_id, "PENDING", {
        "status": "PAID",
        "paid_at": datetime.utcnow(),
        "transaction_id": transaction_id,
        "payment_method": payment_method,
    })
    logger.info("✅ Commission %s paid via %s (%s)", log_id, payment_method, transaction_id)
    return updated


async def cancel_commission(log_id: Any, notes: Optional[str] = None) -> Dict:
    """PENDING -> CANCELLED, reversing the wallet credit."""
    updated = await _transition(log_id, "PENDING", {"status": "CANCELLED", "notes": notes})
    await db_ops.increment(
        Collections.USERS, updated["user_id"], {"commission_wallet": -float(updated["commission_amount"])}
    )
    logger.info("🚫 Commission %s cancelled", log_id)
    return updated


# ─── Reporting ────────────────────────────────────────────────────────────────

def _date_window(start_date=None, end_date=None) -> Dict:
    window: Dict[str, Any] = {}
    if start_date:
        window["$gte"] = as_utc_naive(start_date)
    if end_date:
        window["$lte"] = as_utc_naive(end_date)
    return {"created_at": window} if window else {}


async def _totals_by_status(query: Dict) -> Dict[str, Dict]:
    rows = await db_ops.aggregate(Collections.COMMISSION_LOGS, [
        {"$match": query},
        {"$group": {"_id": "$status", "total": {"$sum": "$commission_amount"}, "count": {"$sum": 1}}},
    ])
    return {row["_id"]: row for row in rows}


async def get_user_commission_summary(user_id: Any, start_date=None, end_date=None) -> UserCommissionSummary:
    query = {"user_id": to_object_id(user_id), **_date_window(start_date, end_date)}
    by_status = await _totals_by_status(query)

    pending = by_status.get("PENDING", {})
    paid = by_status.get("PAID", {})
    cancelled = by_status.get("CANCELLED", {})

    recent = await db_ops.get_all(
        Collections.COMMISSION_LOGS, query,
        limit=settings.RECENT_COMMISSIONS_LIMIT, sort=[("created_at", -1)],
    )
    donation_ids = list({r["donation_id"] for r in recent})
    donations = await db_ops.get_all(Collections.DONATIONS, {"_id": {"$in": donation_ids}}, limit=0)
    by_id = {d["_id"]: d for d in donations}
    for row in recent:
        donation = by_id.get(row["donation_id"])
        row["donation"] = {
            "amount": donation.get("amount"),
            "donor_name": donation.get("donor_name"),
            "created_at": donation.get("created_at"),
        } if donation else None

    return UserCommissionSummary(
        total_earned=round(pending.get("total", 0) + paid.get("total", 0), 2),
        pending=round(pending.get("total", 0), 2),
        paid=round(paid.get("total", 0), 2),
        count=pending.get("count", 0) + paid.get("count", 0),
        cancelled=round(cancelled.get("total", 0), 2),
        cancelled_count=cancelled.get("count", 0),
        recent_commissions=serialize_docs(recent),
    )


async def get_organization_commission_summary(start_date=None, end_date=None) -> OrganizationCommissionSummary:
    query = _date_window(start_date, end_date)
    by_status = await _totals_by_status(query)
    coll = db_config.get_collection(Collections.COMMISSION_LOGS)
    recipients = await coll.distinct("user_id", query)

    summary = OrganizationCommissionSummary(unique_recipients=len(recipients))
    for status_name, row in by_status.items():
        summary.commission_count += row["count"]
        summary.total_distributed += row["total"]
        if status_name == "PENDING":
            summary.total_pending = round(row["total"], 2)
        elif status_name == "PAID":
            summary.total_paid = round(row["total"], 2)
        elif status_name == "CANCELLED":
            summary.total_cancelled = round(row["total"], 2)
    summary.total_distributed = round(summary.total_distributed, 2)
    return summary


async def get_commissions_by_donation(donation_id: Any) -> List[Dict]:
    rows = await db_ops.get_all(
        Collections.COMMISSION_LOGS,
        {"donation_id": to_object_id(donation_id)},
        limit=0,
        sort=[("commission_amount", -1)],
    )
    return serialize_docs(rows)


async def rebuild_commission_wallet(user_id: Any) -> float:
    """Recompute a wallet from its non-cancelled ledger rows."""
    await get_user(user_id)
    rows = await db_ops.aggregate(Collections.COMMISSION_LOGS, [
        {"$match": {"user_id": to_object_id(user_id), "status": {"$ne": "CANCELLED"}}},
        {"$group": {"_id": None, "total": {"$sum": "$commission_amount"}}},
    ])
    balance = round(rows[0]["total"], 2) if rows else 0.0
    await db_ops.update(Collections.USERS, user_id, {"commission_wallet": balance})
    logger.info("🔧 Wallet for user %s rebuilt from ledger: %s", user_id, balance)
    return balance


def serialize_result(result: CommissionResult) -> Dict:
    return serialize_doc(result.model_dump())
