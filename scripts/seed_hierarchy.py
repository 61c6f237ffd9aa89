"""
Seed a small coordinator chain with one active target per node, for local testing.

Usage:
    python scripts/seed_hierarchy.py
"""
import asyncio
import os
import sys
from datetime import datetime, timedelta

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from samarpan.config.database import db_config, Collections
from samarpan.database.db_operations import db_ops

CHAIN = [
    ("National President", "CENTRAL_PRESIDENT", "national@samarpan.org", 1000000),
    ("State Coordinator", "STATE_COORDINATOR", "state@samarpan.org", 500000),
    ("District Coordinator", "DISTRICT_COORDINATOR", "district@samarpan.org", 200000),
    ("Volunteer", "VOLUNTEER", "volunteer@samarpan.org", 50000),
]


async def seed_hierarchy():
    print("🌱 Seeding coordinator hierarchy...")
    await db_config.connect_db()
    await db_config.ensure_indexes()

    start = datetime.utcnow() - timedelta(days=1)
    end = start + timedelta(days=90)
    parent_id = None

    for name, role, email, target_amount in CHAIN:
        existing = await db_ops.get_one(Collections.USERS, {"email": email})
        if existing:
            user_id = existing["_id"]
            print(f"⚠️ User already exists: {name}")
        else:
            created = await db_ops.create(Collections.USERS, {
                "name": name,
                "email": email,
                "role": role,
                "status": "ACTIVE",
                "state": "Uttar Pradesh",
                "parent_coordinator_id": parent_id,
                "total_donations_referred": 0,
                "total_amount_referred": 0.0,
                "commission_wallet": 0.0,
            })
            user_id = created["_id"]
            await db_ops.create(Collections.TARGETS, {
                "assigned_to": user_id,
                "target_amount": float(target_amount),
                "personal_collection": 0.0,
                "team_collection": 0.0,
                "total_collection": 0.0,
                "remaining_amount": float(target_amount),
                "progress_percentage": 0.0,
                "status": "PENDING",
                "start_date": start,
                "end_date": end,
            })
            print(f"✅ Created {role}: {name} ({user_id})")
        parent_id = user_id

    await db_config.close_db()
    print("🌳 Hierarchy seeded")


if __name__ == "__main__":
    asyncio.run(seed_hierarchy())
