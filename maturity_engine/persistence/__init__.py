"""Persistence — ProgramDataSource boundary, in-memory and MongoDB sources."""

from maturity_engine.persistence.data_source import ProgramDataSource
from maturity_engine.persistence.memory_data_source import InMemoryDataSource
from maturity_engine.persistence.mongo_client import MongoClient
from maturity_engine.persistence.mongo_data_source import MongoDataSource

__all__ = ["ProgramDataSource", "InMemoryDataSource", "MongoClient", "MongoDataSource"]
