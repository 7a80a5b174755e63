"""
Pydantic schemas for data sources, per-type connector configuration and connector results
"""

from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional, List, Dict, Any, Literal
from datetime import datetime, timezone
from schemas.enums import DataSourceType, ConnectorErrorCode
import uuid


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _coerce_id(v: Any) -> Any:
    """Catalog ids arrive as strings or integers; keep them as strings"""
    if isinstance(v, int) and not isinstance(v, bool):
        return str(v)
    return v


# ============================================================================
# Catalog Entity
# ============================================================================

class DataSource(BaseModel):
    """
    A named, typed external data endpoint.

    The configuration stays an opaque map on the entity; the connector
    validates it against the typed model for `type` whenever it is used.
    """

    id: str = Field(default_factory=lambda: f"ds_{uuid.uuid4().hex[:12]}", min_length=1)
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    type: DataSourceType
    configuration: Dict[str, Any] = Field(default_factory=dict)

    # Connection lifecycle
    connected: bool = False
    last_connected_at: Optional[datetime] = None
    last_error: Optional[str] = None

    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v):
        return _coerce_id(v)


class DataSourceCreate(BaseModel):
    """Schema for registering a data source"""
    id: Optional[str] = None
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    type: DataSourceType
    configuration: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v):
        return _coerce_id(v)


class DataSourceUpdate(BaseModel):
    """Schema for partial data source updates"""
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    configuration: Optional[Dict[str, Any]] = None


# ============================================================================
# Per-type Connector Configuration
# ============================================================================

class DatabaseConfig(BaseModel):
    """SQL database reachable through an SQLAlchemy async URL"""
    connection_string: str = Field(..., min_length=1)
    table: Optional[str] = None
    query: Optional[str] = None
    batch_size: Optional[int] = Field(None, ge=1)

    @model_validator(mode="after")
    def query_or_table(self):
        if not self.query and not self.table:
            raise ValueError("Either 'table' or 'query' is required")
        return self


class APIConfig(BaseModel):
    """REST endpoint"""
    url: str = Field(..., min_length=1, max_length=2048)
    method: Literal["GET", "POST", "PUT"] = "GET"
    headers: Dict[str, str] = Field(default_factory=dict)
    params: Dict[str, Any] = Field(default_factory=dict)
    auth_type: Literal["none", "basic", "bearer", "api-key"] = "none"
    username: Optional[str] = None
    password: Optional[str] = None
    token: Optional[str] = None
    api_key: Optional[str] = None
    api_key_header: str = "X-API-Key"
    records_path: Optional[str] = None
    write_method: Literal["POST", "PUT"] = "POST"
    timeout: Optional[float] = Field(None, gt=0)

    @field_validator("method", "write_method", mode="before")
    @classmethod
    def upper_method(cls, v):
        return v.upper() if isinstance(v, str) else v


class FileConfig(BaseModel):
    """CSV or JSON file on local disk"""
    path: str = Field(..., min_length=1)
    format: Literal["csv", "json"] = "csv"
    delimiter: str = ","
    encoding: str = "utf-8"
    write_mode: Literal["replace", "append"] = "replace"

    @field_validator("format", mode="before")
    @classmethod
    def lower_format(cls, v):
        return v.lower() if isinstance(v, str) else v


class MemoryConfig(BaseModel):
    """Named dataset held in the connector's in-process store"""
    data_key: str = Field(..., min_length=1)
    records: Optional[List[Dict[str, Any]]] = None
    write_mode: Literal["replace", "append"] = "replace"


class CustomConfig(BaseModel):
    """Connector built by a factory registered on the data connector"""
    connector: str = Field(..., min_length=1)
    options: Dict[str, Any] = Field(default_factory=dict)


CONNECTOR_CONFIG_MODELS = {
    DataSourceType.DATABASE: DatabaseConfig,
    DataSourceType.API: APIConfig,
    DataSourceType.FILE: FileConfig,
    DataSourceType.MEMORY: MemoryConfig,
    DataSourceType.CUSTOM: CustomConfig,
}


# ============================================================================
# Connector Results
# ============================================================================

class ConnectionResult(BaseModel):
    """Outcome of a connection test"""
    success: bool
    message: str
    error_code: Optional[ConnectorErrorCode] = None


class ExtractResult(BaseModel):
    """Outcome of reading a batch from a data source"""
    success: bool
    source_id: str
    data: List[Dict[str, Any]] = Field(default_factory=list)
    message: str = ""
    error_code: Optional[ConnectorErrorCode] = None


class LoadResult(BaseModel):
    """Outcome of writing a batch to a data source"""
    success: bool
    source_id: str
    records_loaded: int = 0
    message: str = ""
    error_code: Optional[ConnectorErrorCode] = None
