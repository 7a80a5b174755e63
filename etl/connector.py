"""
Data connector service: data source registry and structured extract/load results.

Every public operation that touches an endpoint returns a result object
instead of raising. Failures are classified as:
- NOT_FOUND: unknown data source id
- INVALID_CONFIG: configuration does not validate for the source type
- CONNECTION_ERROR: endpoint unreachable, or the read/write failed
"""

from typing import Callable, Dict, List, Any, Optional, Union
from datetime import datetime, timezone
import httpx
from pydantic import ValidationError as PydanticValidationError
from etl.connectors import (
    BaseConnector,
    APIConnector,
    DatabaseConnector,
    FileConnector,
    MemoryConnector
)
from schemas.data_source import (
    DataSource,
    DataSourceCreate,
    DataSourceUpdate,
    CONNECTOR_CONFIG_MODELS,
    ConnectionResult,
    ExtractResult,
    LoadResult
)
from schemas.enums import DataSourceType, ConnectorErrorCode
from core.exceptions import (
    ETLException,
    ConfigurationError,
    NotFoundError
)
import logging

logger = logging.getLogger(__name__)

ConnectorFactory = Callable[[DataSource, Dict[str, Any]], BaseConnector]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _describe(exc: Exception) -> str:
    if isinstance(exc, ETLException):
        if exc.original_exception is not None:
            return f"{exc.message}: {exc.original_exception}"
        return exc.message
    return str(exc) or type(exc).__name__


class DataConnector:
    """
    Owns DataSource entities and the live connector instance for each.

    Connectors are created lazily on connect/extract/load and cached until
    the source is closed, updated or removed.
    """

    def __init__(self, http_transport: Optional[httpx.AsyncBaseTransport] = None):
        self._sources: Dict[str, DataSource] = {}
        self._live: Dict[str, BaseConnector] = {}
        self._factories: Dict[str, ConnectorFactory] = {}
        self._memory_store: Dict[str, List[Dict[str, Any]]] = {}
        self._http_transport = http_transport

    # ========================================================================
    # Registry
    # ========================================================================

    def register_data_source(self, config: Union[DataSource, DataSourceCreate]) -> str:
        """
        Add (or replace) a data source.

        Returns:
            The data source id (generated when not supplied)
        """
        if isinstance(config, DataSource):
            source = config.model_copy(deep=True)
        else:
            fields = config.model_dump(exclude_none=True)
            source = DataSource(**fields)

        if source.id in self._live:
            logger.info(f"Replacing data source {source.id}; dropping cached connector")
            self._live.pop(source.id)

        source.connected = False
        self._sources[source.id] = source
        logger.debug(f"Registered data source {source.id} ({source.type.value})")
        return source.id

    def get_all_data_sources(self) -> List[DataSource]:
        return [s.model_copy(deep=True) for s in self._sources.values()]

    def get_data_source(self, source_id: str) -> DataSource:
        return self._get(source_id).model_copy(deep=True)

    def has_data_source(self, source_id: str) -> bool:
        return source_id in self._sources

    async def update_data_source(self, source_id: str, update: DataSourceUpdate) -> DataSource:
        source = self._get(source_id)
        changes = update.model_dump(exclude_unset=True, exclude_none=True)

        if "configuration" in changes:
            await self.close_connection(source_id)

        updated = source.model_copy(update={**changes, "updated_at": _utcnow()}, deep=True)
        self._sources[source_id] = updated
        return updated.model_copy(deep=True)

    async def remove_data_source(self, source_id: str) -> bool:
        if source_id not in self._sources:
            return False
        await self.close_connection(source_id)
        del self._sources[source_id]
        logger.info(f"Removed data source {source_id}")
        return True

    def register_connector_factory(self, name: str, factory: ConnectorFactory) -> None:
        """Make `factory` available to data sources of type custom with connector=name"""
        self._factories[name] = factory

    def validate_configuration(self, source: Union[DataSource, DataSourceCreate]) -> None:
        """
        Validate a source's configuration against its type.

        Raises:
            ConfigurationError: If the configuration is malformed
        """
        model = CONNECTOR_CONFIG_MODELS[source.type]
        try:
            config = model.model_validate(source.configuration)
        except PydanticValidationError as e:
            raise ConfigurationError(
                f"Invalid {source.type.value} configuration",
                context={"source_id": source.id, "field_errors": e.errors(include_url=False)},
                original_exception=e
            )
        if source.type == DataSourceType.CUSTOM and config.connector not in self._factories:
            raise ConfigurationError(
                f"No connector factory registered for '{config.connector}'",
                context={"source_id": source.id}
            )

    # ========================================================================
    # Connection lifecycle
    # ========================================================================

    async def connect_to_data_source(self, source_id: str) -> bool:
        if source_id not in self._sources:
            logger.warning(f"Cannot connect unknown data source {source_id}")
            return False

        try:
            await self._connected(source_id)
        except Exception as e:
            self._record_error(source_id, e)
            return False
        return True

    async def test_connection(self, source_id: str) -> ConnectionResult:
        """Check connectivity with a throwaway connector; registry state is untouched"""
        source = self._sources.get(source_id)
        if source is None:
            return ConnectionResult(
                success=False,
                message=f"Data source '{source_id}' not found",
                error_code=ConnectorErrorCode.NOT_FOUND
            )

        try:
            candidate = self._build(source)
            message = await candidate.test()
        except Exception as e:
            code = self._classify(e)
            logger.warning(f"Connection test failed for {source_id}: {_describe(e)}")
            return ConnectionResult(success=False, message=_describe(e), error_code=code)

        return ConnectionResult(success=True, message=message)

    async def close_connection(self, source_id: str) -> bool:
        if source_id not in self._sources:
            return False

        connector = self._live.pop(source_id, None)
        if connector is not None:
            try:
                await connector.disconnect()
            except Exception:
                logger.exception(f"Error while disconnecting {source_id}")

        self._sources[source_id].connected = False
        return True

    async def close_all(self) -> None:
        for source_id in list(self._live):
            await self.close_connection(source_id)
        logger.info("All data source connections closed")

    # ========================================================================
    # Extract / Load
    # ========================================================================

    async def extract(self, source_id: str, query: Optional[Dict[str, Any]] = None) -> ExtractResult:
        if source_id not in self._sources:
            return ExtractResult(
                success=False,
                source_id=source_id,
                message=f"Data source '{source_id}' not found",
                error_code=ConnectorErrorCode.NOT_FOUND
            )

        try:
            connector = await self._connected(source_id)
            records = await connector.read(query)
        except Exception as e:
            code = self._record_error(source_id, e)
            return ExtractResult(success=False, source_id=source_id, message=_describe(e), error_code=code)

        return ExtractResult(
            success=True,
            source_id=source_id,
            data=records,
            message=f"Extracted {len(records)} records"
        )

    async def load(self, source_id: str, records: List[Dict[str, Any]]) -> LoadResult:
        if source_id not in self._sources:
            return LoadResult(
                success=False,
                source_id=source_id,
                message=f"Data source '{source_id}' not found",
                error_code=ConnectorErrorCode.NOT_FOUND
            )

        try:
            connector = await self._connected(source_id)
            loaded = await connector.write(records)
        except Exception as e:
            code = self._record_error(source_id, e)
            return LoadResult(success=False, source_id=source_id, message=_describe(e), error_code=code)

        return LoadResult(
            success=True,
            source_id=source_id,
            records_loaded=loaded,
            message=f"Loaded {loaded} records"
        )

    # ========================================================================
    # Internals
    # ========================================================================

    def _get(self, source_id: str) -> DataSource:
        source = self._sources.get(source_id)
        if source is None:
            raise NotFoundError(f"Data source '{source_id}' not found", context={"source_id": source_id})
        return source

    def _build(self, source: DataSource) -> BaseConnector:
        self.validate_configuration(source)
        config = CONNECTOR_CONFIG_MODELS[source.type].model_validate(source.configuration)

        if source.type == DataSourceType.DATABASE:
            return DatabaseConnector(source.id, source.name, config)
        elif source.type == DataSourceType.API:
            return APIConnector(source.id, source.name, config, transport=self._http_transport)
        elif source.type == DataSourceType.FILE:
            return FileConnector(source.id, source.name, config)
        elif source.type == DataSourceType.MEMORY:
            return MemoryConnector(source.id, source.name, config, self._memory_store)
        elif source.type == DataSourceType.CUSTOM:
            return self._factories[config.connector](source, config.options)
        else:
            raise ConfigurationError(f"Unsupported data source type: {source.type}")

    async def _connected(self, source_id: str) -> BaseConnector:
        connector = self._live.get(source_id)
        if connector is None:
            connector = self._build(self._sources[source_id])
            self._live[source_id] = connector

        if not connector.connected:
            await connector.connect()
            source = self._sources[source_id]
            source.connected = True
            source.last_connected_at = _utcnow()
            source.last_error = None
            logger.info(f"Connected to data source {source_id}")

        return connector

    def _record_error(self, source_id: str, exc: Exception) -> ConnectorErrorCode:
        code = self._classify(exc)
        source = self._sources.get(source_id)
        if source is not None:
            source.last_error = _describe(exc)
            if code == ConnectorErrorCode.INVALID_CONFIG:
                self._live.pop(source_id, None)
                source.connected = False

        if isinstance(exc, ETLException):
            logger.error(
                f"Data source {source_id} failed: {exc.message}",
                extra={"error_context": exc.to_dict()}
            )
        else:
            logger.exception(f"Unexpected connector failure for {source_id}")
        return code

    @staticmethod
    def _classify(exc: Exception) -> ConnectorErrorCode:
        if isinstance(exc, ConfigurationError):
            return ConnectorErrorCode.INVALID_CONFIG
        return ConnectorErrorCode.CONNECTION_ERROR
