from agricsmart.database.adapters.base_adapter import BaseDatabaseAdapter
from agricsmart.database.adapters.mongodb_adapter import MongoDBAdapter

__all__ = ["BaseDatabaseAdapter", "MongoDBAdapter"]
