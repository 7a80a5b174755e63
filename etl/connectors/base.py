"""
Abstract base class for data source connectors
"""

from abc import ABC, abstractmethod
from typing import List, Dict, Any, Optional
import logging

logger = logging.getLogger(__name__)


class BaseConnector(ABC):
    """
    Abstract base class for all connector kinds.

    Responsibilities:
    - Connection lifecycle (connect / disconnect / test)
    - Reading a batch of records from the endpoint
    - Writing a batch of records to the endpoint

    Implementations raise exceptions from core.exceptions; the DataConnector
    service turns them into structured results.
    """

    def __init__(self, source_id: str, source_name: str):
        self.source_id = source_id
        self.source_name = source_name
        self.connected = False

    @abstractmethod
    async def connect(self) -> None:
        """Open (or verify) connectivity to the endpoint"""
        pass

    async def disconnect(self) -> None:
        """Release resources held by the connector"""
        self.connected = False

    async def test(self) -> str:
        """
        Check connectivity without keeping the connection open.

        Returns:
            Human-readable success message
        """
        await self.connect()
        try:
            return f"Connection to {self.source_name} succeeded"
        finally:
            await self.disconnect()

    @abstractmethod
    async def read(self, query: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        """
        Read records from the endpoint.

        Args:
            query: Optional connector-specific query parameters

        Returns:
            List of record dictionaries
        """
        pass

    @abstractmethod
    async def write(self, records: List[Dict[str, Any]]) -> int:
        """
        Write records to the endpoint.

        Returns:
            Number of records written
        """
        pass

    async def ensure_connected(self) -> None:
        if not self.connected:
            await self.connect()
