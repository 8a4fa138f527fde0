# ==============================================================================
# DATABASE FACTORY - Adapter Instantiation
# ==============================================================================
# Builds the configured adapter. The application owns the instance
# (app.state.database); nothing is cached at module or class level.
# ==============================================================================

from __future__ import annotations

import logging
from typing import Any, Optional

from agricsmart.core.exceptions import DatabaseError
from agricsmart.database.adapters.base_adapter import BaseDatabaseAdapter
from agricsmart.database.adapters.mongodb_adapter import MongoDBAdapter

logger = logging.getLogger(__name__)


class DatabaseFactory:
    """
    Factory for document-store adapters.

    Example:
        >>> adapter = await DatabaseFactory.initialize()
        >>> user = await adapter.get_by_id("users", user_id)
        >>> await DatabaseFactory.shutdown(adapter)
    """

    @staticmethod
    def create_adapter(
        connection_url: Optional[str] = None,
        database_name: Optional[str] = None,
        client: Optional[Any] = None,
    ) -> BaseDatabaseAdapter:
        """Create an unconnected MongoDB adapter."""
        adapter = MongoDBAdapter(
            connection_url=connection_url,
            database_name=database_name,
            client=client,
        )
        logger.info("Created MongoDB adapter")
        return adapter

    @classmethod
    async def initialize(
        cls,
        adapter: Optional[BaseDatabaseAdapter] = None,
        create_indexes: bool = True,
    ) -> BaseDatabaseAdapter:
        """
        Connect an adapter (creating one from settings if needed).

        Raises:
            DatabaseError: If connection fails
        """
        adapter = adapter or cls.create_adapter()

        try:
            await adapter.connect()
            if create_indexes:
                await adapter.ensure_indexes()
        except DatabaseError:
            raise
        except Exception as e:
            logger.error(f"Database initialization failed: {e}")
            raise DatabaseError(f"Failed to initialize database: {e}")

        logger.info("Database initialized")
        return adapter

    @staticmethod
    async def shutdown(adapter: BaseDatabaseAdapter) -> None:
        try:
            await adapter.disconnect()
        except Exception as e:
            logger.error(f"Error disconnecting database: {e}")
