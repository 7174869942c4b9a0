"""
MongoDB database connection module using Motor (async driver).
Provides the store handles that models are wired to.
"""

import logging
from typing import Optional
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo.errors import ConnectionFailure, ServerSelectionTimeoutError

from mongo_model.core.config import Settings, get_settings

logger = logging.getLogger(__name__)


class MongoDB:
    """
    MongoDB connection manager with connection pooling and lifecycle management.

    The manager owns the client; models only borrow the database handle.
    """

    def __init__(self, config: Optional[Settings] = None):
        self.config = config or get_settings()
        self.client: Optional[AsyncIOMotorClient] = None
        self.db: Optional[AsyncIOMotorDatabase] = None

    async def connect(self, database_name: Optional[str] = None) -> AsyncIOMotorDatabase:
        """
        Establish MongoDB connection.

        Args:
            database_name: Overrides DATABASE_NAME from settings

        Returns:
            The connected database handle

        Raises:
            ConnectionFailure: If the server cannot be reached
        """
        if self.db is not None:
            logger.info("MongoDB: Already connected")
            return self.db

        database_name = database_name or self.config.DATABASE_NAME
        try:
            logger.info("Connecting to MongoDB...")

            self.client = AsyncIOMotorClient(
                self.config.MONGODB_URI,
                maxPoolSize=self.config.MAX_POOL_SIZE,
                minPoolSize=self.config.MIN_POOL_SIZE,
                maxIdleTimeMS=self.config.MAX_IDLE_TIME_MS,
                serverSelectionTimeoutMS=self.config.SERVER_SELECTION_TIMEOUT_MS,
            )

            # Verify connection
            await self.client.admin.command('ping')

            self.db = self.client[database_name]
            logger.info(f"Successfully connected to MongoDB database: {database_name}")
            return self.db

        except (ConnectionFailure, ServerSelectionTimeoutError) as e:
            logger.error(f"Failed to connect to MongoDB: {e}")
            self.client = None
            raise ConnectionFailure(
                f"Could not connect to MongoDB at {self.config.MONGODB_URI}. "
                f"Please check your connection string and network connectivity."
            ) from e

    async def close(self) -> None:
        """
        Close MongoDB connection and cleanup resources.
        """
        if self.client:
            logger.info("Closing MongoDB connection...")
            self.client.close()
            self.client = None
            self.db = None
            logger.info("MongoDB connection closed successfully")

    async def get_database(self) -> AsyncIOMotorDatabase:
        """
        Get database instance.

        Raises:
            RuntimeError: If database is not connected.
        """
        if self.db is None:
            raise RuntimeError(
                "Database is not connected. Call connect() first."
            )
        return self.db

