"""Shared fixtures: an in-memory Mongo database and small factories for users and targets."""

import asyncio
from datetime import datetime, timedelta
from typing import Optional

import pytest
from mongomock_motor import AsyncMongoMockClient

from samarpan.config.database import db_config, Collections
from samarpan.database.db_operations import db_ops


def run(coro):
    return asyncio.run(coro)


def run_together(*coros):
    """Run coroutines concurrently on one loop, returning their results in order."""
    async def gather():
        return await asyncio.gather(*coros)
    return asyncio.run(gather())


WINDOW_START = datetime(2026, 1, 1)
WINDOW_END = datetime(2026, 3, 31)
IN_WINDOW = datetime(2026, 2, 15, 10, 30)


@pytest.fixture
def db():
    client = AsyncMongoMockClient()
    db_config.database = client["samarpan_test"]
    run(db_config.ensure_indexes())
    yield db_config.database
    db_config.database = None


class Factory:
    """Creates documents directly in the mock database."""

    def user(self, name: str, role: str = "VOLUNTEER", parent: Optional[dict] = None, **fields) -> dict:
        doc = {
            "name": name,
            "email": f"{name.lower().replace(' ', '.')}@example.org",
            "role": role,
            "status": "ACTIVE",
            "parent_coordinator_id": parent["_id"] if parent else None,
            "total_donations_referred": 0,
            "total_amount_referred": 0.0,
            "commission_wallet": 0.0,
            **fields,
        }
        return run(db_ops.create(Collections.USERS, doc))

    def chain(self, *roles: str) -> list:
        """Build a top-down chain; returns users ordered top first."""
        users = []
        parent = None
        for i, role in enumerate(roles):
            parent = self.user(f"{role.title()} {i}", role, parent)
            users.append(parent)
        return users

    def set_parent(self, user: dict, parent_id) -> None:
        run(db_config.get_collection(Collections.USERS).update_one(
            {"_id": user["_id"]}, {"$set": {"parent_coordinator_id": parent_id}}
        ))

    def target(self, user: dict, amount: float = 100000, start: datetime = WINDOW_START,
               end: datetime = WINDOW_END, **fields) -> dict:
        doc = {
            "assigned_to": user["_id"],
            "target_amount": float(amount),
            "personal_collection": 0.0,
            "team_collection": 0.0,
            "total_collection": 0.0,
            "remaining_amount": float(amount),
            "progress_percentage": 0.0,
            "status": "PENDING",
            "start_date": start,
            "end_date": end,
            **fields,
        }
        return run(db_ops.create(Collections.TARGETS, doc))

    def donation(self, recipient: Optional[dict], amount: float = 10000, status: str = "SUCCESS",
                 created_at: datetime = IN_WINDOW, **fields) -> dict:
        doc = {
            "amount": float(amount),
            "currency": "INR",
            "donor_name": "Test Donor",
            "attributed_to_user_id": recipient["_id"] if recipient else None,
            "payment_status": status,
            "processed": False,
            "distributed": False,
            "processing_errors": [],
            "created_at": created_at,
            **fields,
        }
        return run(db_ops.create(Collections.DONATIONS, doc))

    def reload(self, collection: str, doc: dict) -> dict:
        return run(db_ops.get_by_id(collection, doc["_id"]))


@pytest.fixture
def make(db) -> Factory:
    return Factory()
