"""
Shared enums for catalog entities, alerts and connector results
"""

import enum


class DataSourceType(str, enum.Enum):
    """Data source types"""
    DATABASE = "database"
    API = "api"
    FILE = "file"
    MEMORY = "in-memory"
    CUSTOM = "custom"


class RuleType(str, enum.Enum):
    """Transformation rule kinds"""
    FILTER = "filter"
    MAP = "map"
    CONVERT = "convert"
    AGGREGATE = "aggregate"
    CUSTOM = "custom"


class JobStatus(str, enum.Enum):
    """ETL job status"""
    CREATED = "created"
    SCHEDULED = "scheduled"
    IDLE = "idle"
    RUNNING = "running"
    SUCCESS = "success"
    WARNING = "warning"
    FAILED = "failed"
    PAUSED = "paused"
    COMPLETED = "completed"


class RunTrigger(str, enum.Enum):
    """What started a job run"""
    MANUAL = "manual"
    SCHEDULED = "scheduled"


class ScheduleFrequency(str, enum.Enum):
    """Schedule frequency"""
    ONCE = "once"
    HOURLY = "hourly"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class ScheduledJobState(str, enum.Enum):
    """Runtime state of a scheduler registration"""
    SCHEDULED = "scheduled"
    FIRING = "firing"


class AlertType(str, enum.Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    SUCCESS = "success"


class AlertSeverity(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class AlertCategory(str, enum.Enum):
    SYSTEM = "system"
    JOB = "job"
    CONNECTION = "connection"
    DATA_QUALITY = "data-quality"


class ConnectorErrorCode(str, enum.Enum):
    """Failure classes reported by the data connector"""
    NOT_FOUND = "not_found"
    INVALID_CONFIG = "invalid_config"
    CONNECTION_ERROR = "connection_error"


class FilterLogic(str, enum.Enum):
    AND = "AND"
    OR = "OR"


class FilterOperator(str, enum.Enum):
    """Filter condition operators"""
    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    GREATER_THAN = "greater_than"
    GREATER_THAN_OR_EQUALS = "greater_than_or_equals"
    LESS_THAN = "less_than"
    LESS_THAN_OR_EQUALS = "less_than_or_equals"
    CONTAINS = "contains"
    STARTS_WITH = "starts_with"
    ENDS_WITH = "ends_with"
    IN = "in"
    NOT_IN = "not_in"
    IS_NULL = "is_null"
    IS_NOT_NULL = "is_not_null"


class MapOperation(str, enum.Enum):
    COPY = "copy"
    RENAME = "rename"
    UPPERCASE = "uppercase"
    LOWERCASE = "lowercase"
    TRIM = "trim"
    CONCAT = "concat"
    CONSTANT = "constant"
    ROUND = "round"


class ConvertTarget(str, enum.Enum):
    STRING = "string"
    INTEGER = "integer"
    FLOAT = "float"
    BOOLEAN = "boolean"
    DATE = "date"
    DATETIME = "datetime"


class AggregateOperation(str, enum.Enum):
    SUM = "sum"
    AVG = "avg"
    MIN = "min"
    MAX = "max"
    COUNT = "count"


class ValueType(str, enum.Enum):
    """Value types recognised by the data quality analyzer"""
    STRING = "string"
    NUMBER = "number"
    INTEGER = "integer"
    BOOLEAN = "boolean"
    DATE = "date"
    ARRAY = "array"
    OBJECT = "object"


class QualityIssueKind(str, enum.Enum):
    MISSING_VALUES = "missing-values"
    INCONSISTENT_TYPE = "inconsistent-type"
    UNEXPECTED_TYPE = "unexpected-type"
    OUT_OF_RANGE = "out-of-range"
    DUPLICATE = "duplicate"
