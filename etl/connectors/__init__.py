"""
Connector implementations, one per data source type
"""

from etl.connectors.base import BaseConnector
from etl.connectors.api_connector import APIConnector
from etl.connectors.database_connector import DatabaseConnector
from etl.connectors.file_connector import FileConnector
from etl.connectors.memory_connector import MemoryConnector

__all__ = [
    "BaseConnector",
    "APIConnector",
    "DatabaseConnector",
    "FileConnector",
    "MemoryConnector",
]
