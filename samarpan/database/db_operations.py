"""
Database operations - Generic helpers shared by the hierarchy, ledger and target services
"""
from typing import List, Dict, Optional, Any
from datetime import datetime

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import ReturnDocument

from samarpan.config.database import db_config


def to_object_id(value: Any) -> Optional[ObjectId]:
    """Coerce a str/ObjectId to ObjectId, returning None for anything unparseable."""
    if isinstance(value, ObjectId):
        return value
    if value is None:
        return None
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        return None


class DBOperations:
    """Generic database operations for MongoDB collections"""

    @staticmethod
    async def get_all(collection_name: str, filter_query: Dict = None, skip: int = 0, limit: int = 100,
                      sort: Optional[List] = None) -> List[Dict]:
        """Get documents from a collection with optional filtering and sorting"""
        collection = db_config.get_collection(collection_name)
        filter_query = filter_query or {}
        # limit=0 means "no limit", same as the driver
        cursor = collection.find(filter_query, sort=sort, skip=skip, limit=limit)
        return await cursor.to_list(length=limit or None)

    @staticmethod
    async def get_by_id(collection_name: str, doc_id: Any) -> Optional[Dict]:
        """Get a single document by ID; malformed ids behave like missing documents"""
        oid = to_object_id(doc_id)
        if oid is None:
            return None
        collection = db_config.get_collection(collection_name)
        return await collection.find_one({"_id": oid})

    @staticmethod
    async def get_one(collection_name: str, filter_query: Dict, sort: Optional[List] = None) -> Optional[Dict]:
        """Get a single document by filter query"""
        collection = db_config.get_collection(collection_name)
        return await collection.find_one(filter_query, sort=sort)

    @staticmethod
    async def create(collection_name: str, document: Dict) -> Dict:
        """Create a new document"""
        collection = db_config.get_collection(collection_name)
        now = datetime.utcnow()
        document.setdefault("created_at", now)
        document["updated_at"] = now
        result = await collection.insert_one(document)
        document["_id"] = result.inserted_id
        return document

    @staticmethod
    async def update(collection_name: str, doc_id: Any, update_data: Dict,
                     extra_filter: Optional[Dict] = None) -> Optional[Dict]:
        """$set fields on a document by ID and return the updated document"""
        oid = to_object_id(doc_id)
        if oid is None:
            return None
        collection = db_config.get_collection(collection_name)
        update_data["updated_at"] = datetime.utcnow()
        query = {"_id": oid}
        if extra_filter:
            query.update(extra_filter)
        return await collection.find_one_and_update(
            query,
            {"$set": update_data},
            return_document=ReturnDocument.AFTER,
        )

    @staticmethod
    async def increment(collection_name: str, doc_id: Any, deltas: Dict[str, float],
                        extra_filter: Optional[Dict] = None) -> Optional[Dict]:
        """Atomically $inc numeric fields and return the post-increment document"""
        oid = to_object_id(doc_id)
        if oid is None:
            return None
        collection = db_config.get_collection(collection_name)
        query = {"_id": oid}
        if extra_filter:
            query.update(extra_filter)
        return await collection.find_one_and_update(
            query,
            {"$inc": deltas, "$set": {"updated_at": datetime.utcnow()}},
            return_document=ReturnDocument.AFTER,
        )

    @staticmethod
    async def aggregate(collection_name: str, pipeline: List[Dict]) -> List[Dict]:
        """Execute aggregation pipeline"""
        collection = db_config.get_collection(collection_name)
        cursor = collection.aggregate(pipeline)
        return await cursor.to_list(length=None)

db_ops = DBOperations()
