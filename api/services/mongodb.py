# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
MongoDB service layer with connection pooling and index management.
"""

import os
import logging
from typing import List, Dict, Optional, Any, Tuple
from pymongo import MongoClient, ASCENDING, DESCENDING
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import (
    ConnectionFailure,
    ServerSelectionTimeoutError
)
from bson import ObjectId
from bson.errors import InvalidId

logger = logging.getLogger(__name__)

COMPLAINTS = "complaints"
FORWARDING_RECORDS = "forwarding_records"
DISTRICT_DEPARTMENTS = "district_departments"
USERS = "users"

SortSpec = List[Tuple[str, int]]


class MongoDBService:
    """MongoDB service with connection pooling and plain CRUD helpers."""

    def __init__(self, connection_string: str = None, database_name: str = None):
        """Initialize MongoDB service with connection pooling."""
        self.connection_string = connection_string or os.getenv(
            'MONGODB_URI',
            'mongodb://localhost:27017/ijwi_dev'
        )
        self.database_name = database_name or os.getenv('MONGODB_DATABASE', 'ijwi_dev')
        self._client: Optional[MongoClient] = None
        self._database: Optional[Database] = None

        # Connection pool settings
        self.max_pool_size = int(os.getenv('MONGODB_MAX_POOL_SIZE', '10'))
        self.min_pool_size = int(os.getenv('MONGODB_MIN_POOL_SIZE', '1'))
        self.max_idle_time_ms = int(os.getenv('MONGODB_MAX_IDLE_TIME_MS', '30000'))
        self.server_selection_timeout_ms = int(os.getenv('MONGODB_SERVER_SELECTION_TIMEOUT_MS', '5000'))

        logger.info(f"MongoDB service initialized for database: {self.database_name}")

    @property
    def client(self) -> MongoClient:
        """Get MongoDB client with connection pooling."""
        if self._client is None:
            try:
                self._client = MongoClient(
                    self.connection_string,
                    maxPoolSize=self.max_pool_size,
                    minPoolSize=self.min_pool_size,
                    maxIdleTimeMS=self.max_idle_time_ms,
                    serverSelectionTimeoutMS=self.server_selection_timeout_ms,
                    retryWrites=True,
                    retryReads=True,
                    # Return aware UTC datetimes so deadline comparisons never mix naive and aware values
                    tz_aware=True
                )
                self._client.admin.command('ping')
                logger.info("MongoDB connection established successfully")
            except (ConnectionFailure, ServerSelectionTimeoutError) as e:
                logger.error(f"Failed to connect to MongoDB: {e}")
                raise

        return self._client

    @property
    def database(self) -> Database:
        """Get MongoDB database."""
        if self._database is None:
            self._database = self.client[self.database_name]
        return self._database

    def get_collection(self, collection_name: str) -> Collection:
        """Get MongoDB collection."""
        return self.database[collection_name]

    def close_connection(self) -> None:
        """Close MongoDB connection."""
        if self._client:
            self._client.close()
            self._client = None
            self._database = None
            logger.info("MongoDB connection closed")

    def health_check(self) -> Dict[str, Any]:
        """Check MongoDB connection health."""
        try:
            result = self.client.admin.command('ping')
            server_info = self.client.server_info()

            return {
                'status': 'healthy',
                'ping': result.get('ok') == 1,
                'version': server_info.get('version'),
                'database': self.database_name,
                'connection_pool_size': self.max_pool_size
            }
        except Exception as e:
            logger.error(f"MongoDB health check failed: {e}")
            return {
                'status': 'unhealthy',
                'error': str(e),
                'database': self.database_name
            }

    @staticmethod
    def to_object_id(doc_id: str) -> Optional[ObjectId]:
        """Convert a string ID to ObjectId; malformed IDs yield None."""
        try:
            return ObjectId(doc_id)
        except (InvalidId, TypeError):
            return None

    @staticmethod
    def _normalise(document: Optional[Dict]) -> Optional[Dict]:
        if document and "_id" in document:
            document["id"] = str(document.pop("_id"))
        return document

    # CRUD Operations

    def insert(self, collection: str, document: Dict) -> str:
        """
        Insert a document.

        DuplicateKeyError propagates so callers can react to unique index
        violations such as tracking-number collisions.
        """
        document = dict(document)
        doc_id = document.pop("id", None)
        document["_id"] = self.to_object_id(doc_id) if doc_id else ObjectId()

        result = self.get_collection(collection).insert_one(document)
        logger.debug(f"Created document in {collection}: {result.inserted_id}")
        return str(result.inserted_id)

    def find_by_id(self, collection: str, doc_id: str) -> Optional[Dict]:
        """Find a document by ID; unknown or malformed IDs yield None."""
        object_id = self.to_object_id(doc_id)
        if object_id is None:
            logger.debug(f"Invalid document ID {doc_id} for {collection}")
            return None
        return self.find_one(collection, {"_id": object_id})

    def find_one(self, collection: str, query: Dict, sort: SortSpec = None) -> Optional[Dict]:
        """Find the first document matching a query."""
        document = self.get_collection(collection).find_one(query, sort=sort)
        return self._normalise(document)

    def find(self, collection: str, query: Dict = None, sort: SortSpec = None,
             limit: int = 0) -> List[Dict]:
        """Find documents matching a query."""
        cursor = self.get_collection(collection).find(query or {})
        if sort:
            cursor = cursor.sort(sort)
        if limit:
            cursor = cursor.limit(limit)

        documents = [self._normalise(doc) for doc in cursor]
        logger.debug(f"Found {len(documents)} documents in {collection}")
        return documents

    def update_one(self, collection: str, query: Dict, updates: Dict) -> bool:
        """
        Apply a $set update to the first matching document.

        Returns:
            True when a document matched the query
        """
        result = self.get_collection(collection).update_one(query, {"$set": updates})
        return result.matched_count > 0

    def delete_by_id(self, collection: str, doc_id: str) -> bool:
        """Delete a document by ID."""
        object_id = self.to_object_id(doc_id)
        if object_id is None:
            return False

        result = self.get_collection(collection).delete_one({"_id": object_id})
        if result.deleted_count > 0:
            logger.warning(f"Deleted document {doc_id} in {collection}")
            return True
        return False

    # Index Management

    def create_indexes(self) -> None:
        """Create indexes for all collections."""
        try:
            logger.info("Creating MongoDB indexes...")

            complaints = self.get_collection(COMPLAINTS)
            complaints.create_index("trackingNumber", unique=True)
            complaints.create_index([("citizenId", ASCENDING), ("submissionDate", DESCENDING)])
            complaints.create_index([("institutionId", ASCENDING), ("status", ASCENDING), ("resolutionDeadline", ASCENDING)])
            complaints.create_index("submissionDate")

            records = self.get_collection(FORWARDING_RECORDS)
            records.create_index([("complaintId", ASCENDING), ("forwardedAt", DESCENDING)])

            departments = self.get_collection(DISTRICT_DEPARTMENTS)
            departments.create_index([("province", ASCENDING), ("district", ASCENDING)])

            users = self.get_collection(USERS)
            users.create_index([("role", ASCENDING), ("province", ASCENDING), ("district", ASCENDING)])
            users.create_index(
                "email",
                unique=True,
                partialFilterExpression={"email": {"$type": "string"}}
            )

            logger.info("MongoDB indexes created successfully")

        except Exception as e:
            logger.error(f"Failed to create MongoDB indexes: {e}")
            raise


# Singleton instance for application use
_mongodb_service: Optional[MongoDBService] = None


def get_mongodb_service(connection_string: str = None, database_name: str = None) -> MongoDBService:
    """Get singleton MongoDB service instance."""
    global _mongodb_service
    if _mongodb_service is None:
        _mongodb_service = MongoDBService(connection_string, database_name)
    return _mongodb_service


def close_mongodb_connection() -> None:
    """Close MongoDB connection (for cleanup)."""
    global _mongodb_service
    if _mongodb_service:
        _mongodb_service.close_connection()
        _mongodb_service = None
