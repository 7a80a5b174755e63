"""
CSV / JSON file connector backed by pandas
"""

import asyncio
import pandas as pd
from typing import List, Dict, Any, Optional
from pathlib import Path
from etl.connectors.base import BaseConnector
from schemas.data_source import FileConfig
from core.exceptions import ResourceNotFoundError, ExtractionError, LoadError
import logging

logger = logging.getLogger(__name__)


class FileConnector(BaseConnector):
    """
    Read and write tabular files on local disk.

    Supports:
    - CSV with configurable delimiter and encoding
    - JSON arrays of objects
    - replace / append write modes
    """

    def __init__(self, source_id: str, source_name: str, config: FileConfig):
        super().__init__(source_id, source_name)
        self.config = config
        self.file_path = Path(config.path)

    async def connect(self) -> None:
        # A missing file is fine for a destination; only the parent must exist
        if not self.file_path.exists() and not self.file_path.parent.exists():
            raise ResourceNotFoundError(
                f"Directory not found: {self.file_path.parent}",
                context={"source_id": self.source_id, "path": str(self.file_path)}
            )
        self.connected = True

    def _read_frame(self) -> pd.DataFrame:
        if self.config.format == "json":
            return pd.read_json(self.file_path, orient="records", encoding=self.config.encoding)
        return pd.read_csv(self.file_path, sep=self.config.delimiter, encoding=self.config.encoding)

    def _write_frame(self, df: pd.DataFrame) -> None:
        if self.config.write_mode == "append" and self.file_path.exists():
            df = pd.concat([self._read_frame(), df], ignore_index=True)

        if self.config.format == "json":
            df.to_json(self.file_path, orient="records", date_format="iso")
        else:
            df.to_csv(self.file_path, sep=self.config.delimiter, encoding=self.config.encoding, index=False)

    async def read(self, query: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        await self.ensure_connected()

        if not self.file_path.exists():
            raise ResourceNotFoundError(
                f"File not found: {self.file_path}",
                context={"source_id": self.source_id, "path": str(self.file_path)}
            )

        logger.info(f"Reading {self.config.format.upper()} from {self.file_path}")

        try:
            df = await asyncio.to_thread(self._read_frame)
        except (ValueError, OSError, pd.errors.ParserError) as e:
            raise ExtractionError(
                f"Failed to parse {self.file_path}",
                context={"source_id": self.source_id, "format": self.config.format},
                original_exception=e
            )

        # NaN -> None so downstream null checks behave
        df = df.astype(object).where(pd.notnull(df), None)
        records = df.to_dict(orient="records")

        logger.info(f"Read {len(records)} records from {self.file_path.name}")
        return records

    async def write(self, records: List[Dict[str, Any]]) -> int:
        await self.ensure_connected()
        if not records and self.config.write_mode == "append":
            return 0

        df = pd.DataFrame.from_records(records)
        try:
            await asyncio.to_thread(self._write_frame, df)
        except (ValueError, OSError) as e:
            raise LoadError(
                f"Failed to write {self.file_path}",
                context={"source_id": self.source_id, "records_to_load": len(records)},
                original_exception=e
            )

        logger.info(f"Wrote {len(records)} records to {self.file_path.name} ({self.config.write_mode})")
        return len(records)
