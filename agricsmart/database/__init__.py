# ==============================================================================
# DATABASE PACKAGE
# ==============================================================================
# Document-store abstraction: adapter interface, Motor adapter, factory
# ==============================================================================

from agricsmart.database.adapters.base_adapter import BaseDatabaseAdapter
from agricsmart.database.adapters.mongodb_adapter import MongoDBAdapter
from agricsmart.database.factory import DatabaseFactory

__all__ = ["BaseDatabaseAdapter", "MongoDBAdapter", "DatabaseFactory"]
