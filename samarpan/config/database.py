"""
Database configuration and connection management for MongoDB
"""
import logging
import os
from typing import Optional

from dotenv import load_dotenv
from motor.motor_asyncio import AsyncIOMotorClient
from pymongo import ASCENDING, DESCENDING

load_dotenv()

logger = logging.getLogger(__name__)


class DatabaseConfig:
    """MongoDB database configuration"""

    def __init__(self):
        self.MONGO_URI = os.getenv("MONGO_URI", "mongodb://localhost:27017")
        self.DATABASE_NAME = os.getenv("DATABASE_NAME", "samarpan_db")
        self.client: Optional[AsyncIOMotorClient] = None
        self.database = None

    async def connect_db(self):
        """Connect to MongoDB"""
        try:
            self.client = AsyncIOMotorClient(self.MONGO_URI)
            self.database = self.client[self.DATABASE_NAME]
            # Test connection
            await self.client.admin.command('ping')
            logger.info("✅ Connected to MongoDB: %s", self.DATABASE_NAME)
        except Exception as e:
            logger.error("❌ Error connecting to MongoDB: %s", e)
            raise

    async def close_db(self):
        """Close MongoDB connection"""
        if self.client:
            self.client.close()
            logger.info("✅ MongoDB connection closed")

    def get_collection(self, collection_name: str):
        """Get a specific collection"""
        if self.database is None:
            raise Exception("Database not connected")
        return self.database[collection_name]

    async def ensure_indexes(self):
        """Create the indexes the commission and target engines rely on."""
        logs = self.get_collection(Collections.COMMISSION_LOGS)
        # One ledger row per (donation, beneficiary); replays upsert onto it
        await logs.create_index(
            [("donation_id", ASCENDING), ("user_id", ASCENDING)],
            unique=True,
            name="uniq_donation_beneficiary",
        )
        await logs.create_index([("user_id", ASCENDING), ("status", ASCENDING), ("created_at", DESCENDING)])
        await logs.create_index([("status", ASCENDING), ("created_at", DESCENDING)])

        targets = self.get_collection(Collections.TARGETS)
        await targets.create_index([("assigned_to", ASCENDING), ("status", ASCENDING)])
        await targets.create_index([("assigned_to", ASCENDING), ("start_date", DESCENDING)])

        users = self.get_collection(Collections.USERS)
        await users.create_index([("parent_coordinator_id", ASCENDING), ("status", ASCENDING)])

        donations = self.get_collection(Collections.DONATIONS)
        await donations.create_index([("payment_status", ASCENDING), ("distributed", ASCENDING)])

# Global database instance
db_config = DatabaseConfig()

# Collection names
class Collections:
    USERS = "users"
    DONATIONS = "donations"
    COMMISSION_LOGS = "commission_logs"
    TARGETS = "targets"
