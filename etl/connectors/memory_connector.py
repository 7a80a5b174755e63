"""
In-memory connector for named datasets held by the data connector
"""

import copy
from typing import List, Dict, Any, Optional
from etl.connectors.base import BaseConnector
from schemas.data_source import MemoryConfig


class MemoryConnector(BaseConnector):
    """
    Reads and writes a dataset in a store shared by every in-memory source
    of the same DataConnector. Seed records from the configuration are
    placed in the store the first time the key is seen.
    """

    def __init__(
        self,
        source_id: str,
        source_name: str,
        config: MemoryConfig,
        store: Dict[str, List[Dict[str, Any]]]
    ):
        super().__init__(source_id, source_name)
        self.config = config
        self.store = store

        if config.records is not None and config.data_key not in store:
            store[config.data_key] = copy.deepcopy(config.records)

    async def connect(self) -> None:
        self.connected = True

    async def read(self, query: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        return copy.deepcopy(self.store.get(self.config.data_key, []))

    async def write(self, records: List[Dict[str, Any]]) -> int:
        batch = copy.deepcopy(records)
        if self.config.write_mode == "append":
            self.store.setdefault(self.config.data_key, []).extend(batch)
        else:
            self.store[self.config.data_key] = batch
        return len(batch)
