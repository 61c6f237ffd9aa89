"""
Hierarchy Service – single-parent coordinator tree lookups and the shared
upward walk used by both the commission and the target engines.
"""
import logging
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional

from samarpan.config.database import Collections
from samarpan.config.settings import settings
from samarpan.database.db_operations import db_ops, to_object_id
from samarpan.models.user import UserStatus, role_rank
from samarpan.utils.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)

AncestorVisitor = Callable[[Dict, int], Awaitable[Any]]


# ─── Lookups ──────────────────────────────────────────────────────────────────

async def get_user(user_id: Any) -> Dict:
    user = await db_ops.get_by_id(Collections.USERS, user_id)
    if not user:
        raise NotFoundError(f"User {user_id} not found")
    return user


async def get_direct_reports(user_id: Any) -> List[Dict]:
    oid = to_object_id(user_id)
    return await db_ops.get_all(
        Collections.USERS,
        {"parent_coordinator_id": oid, "status": UserStatus.ACTIVE.value},
        limit=0,
        sort=[("created_at", 1)],
    )


# ─── Upward traversal ─────────────────────────────────────────────────────────

def _is_synthetic_root(parent_id: Any) -> bool:
    return str(parent_id) == settings.SYNTHETIC_ROOT_ID


async def walk_ancestors(
    start_user: Dict,
    visit: AncestorVisitor,
    max_depth: Optional[int] = None,
) -> int:
    """
    Walk parent pointers upward from ``start_user``, awaiting ``visit(ancestor, depth)``
    for each ancestor (depth 1 is the direct parent).

    Stops at: no parent, the synthetic root sentinel, an already visited id
    (cycle), a dangling parent pointer, or ``max_depth`` visited ancestors.
    Returns the number of ancestors visited.
    """
    if max_depth is None:
        max_depth = settings.MAX_HIERARCHY_DEPTH

    start_id = str(start_user["_id"])
    visited = {start_id}
    parent_id = start_user.get("parent_coordinator_id")
    depth = 0

    while parent_id:
        if _is_synthetic_root(parent_id):
            break
        if str(parent_id) in visited:
            logger.warning(
                "🔁 Hierarchy cycle detected above user %s at %s; stopping after %d level(s)",
                start_id, parent_id, depth,
            )
            break
        if depth >= max_depth:
            logger.warning("⛔ Hierarchy walk for user %s hit the %d level cap", start_id, max_depth)
            break

        parent = await db_ops.get_by_id(Collections.USERS, parent_id)
        if not parent:
            logger.warning("❓ Dangling parent pointer %s above user %s", parent_id, start_id)
            break

        visited.add(str(parent["_id"]))
        depth += 1
        await visit(parent, depth)
        parent_id = parent.get("parent_coordinator_id")

    return depth


async def get_ancestor_chain(user_id: Any) -> List[Dict]:
    """Ancestors of a user ordered from the direct parent upward."""
    user = await get_user(user_id)
    chain: List[Dict] = []

    async def collect(ancestor: Dict, depth: int):
        chain.append(ancestor)

    await walk_ancestors(user, collect)
    return chain


# ─── Reassignment ─────────────────────────────────────────────────────────────

async def validate_parent_assignment(user_id: Any, parent_id: Any) -> None:
    """Raise ValidationError unless ``parent_id`` may become the parent of ``user_id``."""
    if str(user_id) == str(parent_id):
        raise ValidationError("A user cannot be their own parent")

    user = await get_user(user_id)
    parent = await get_user(parent_id)

    if parent.get("status") == UserStatus.INACTIVE.value:
        raise ValidationError("Parent coordinator is inactive")

    if role_rank(parent.get("role")) >= role_rank(user.get("role")):
        raise ValidationError("Parent must be higher in hierarchy than user")

    if user.get("state") and parent.get("state") and user["state"] != parent["state"]:
        raise ValidationError("User and parent must be in the same state")

    ancestors = await get_ancestor_chain(parent["_id"])
    if any(str(a["_id"]) == str(user["_id"]) for a in ancestors):
        raise ValidationError("Parent is a descendant of the user; assignment would create a cycle")


async def assign_parent(user_id: Any, parent_id: Optional[Any]) -> Dict:
    if parent_id is None:
        await get_user(user_id)
        new_parent = None
    else:
        await validate_parent_assignment(user_id, parent_id)
        new_parent = to_object_id(parent_id)

    updated = await db_ops.update(Collections.USERS, user_id, {"parent_coordinator_id": new_parent})
    logger.info("🌳 User %s reassigned under %s", user_id, parent_id)
    return updated


async def deactivate_user(user_id: Any) -> Dict:
    """Users are never deleted; they are flipped to INACTIVE."""
    await get_user(user_id)
    return await db_ops.update(Collections.USERS, user_id, {
        "status": UserStatus.INACTIVE.value,
        "deactivated_at": datetime.utcnow(),
    })
