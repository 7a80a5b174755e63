"""
Pydantic schemas for transformation rules, their typed configurations and engine results
"""

from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional, List, Dict, Any, Union, Callable
from datetime import datetime, timezone
from schemas.enums import (
    RuleType,
    FilterLogic,
    FilterOperator,
    MapOperation,
    ConvertTarget,
    AggregateOperation,
)
import re
import uuid


_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ============================================================================
# Catalog Entity
# ============================================================================

class TransformationRule(BaseModel):
    """
    A declarative, reusable data-shaping operation.

    `configuration` is validated against the typed model for `type`
    (see RULE_CONFIG_MODELS) when the engine applies the rule.
    """

    id: str = Field(default_factory=lambda: f"rule_{uuid.uuid4().hex[:12]}", min_length=1)
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    type: RuleType
    configuration: Dict[str, Any] = Field(default_factory=dict)
    enabled: bool = True
    order: int = 0

    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v):
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v


class TransformationRuleCreate(BaseModel):
    id: Optional[str] = None
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    type: RuleType
    configuration: Dict[str, Any] = Field(default_factory=dict)
    enabled: bool = True
    order: int = 0


class TransformationRuleUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    configuration: Optional[Dict[str, Any]] = None
    enabled: Optional[bool] = None
    order: Optional[int] = None


# ============================================================================
# Typed Rule Configuration
# ============================================================================

class FilterCondition(BaseModel):
    field: str = Field(..., min_length=1)
    operator: FilterOperator
    value: Any = None

    @field_validator("operator", mode="before")
    @classmethod
    def normalize_operator(cls, v):
        """Accept camelCase operator names ("notEquals", "isNull") from the dashboard"""
        if isinstance(v, str):
            v = _CAMEL_BOUNDARY.sub("_", v.strip()).lower().replace("-", "_")
            if v == "in_set":
                return "in"
        return v

    @model_validator(mode="after")
    def check_set_value(self):
        if self.operator in (FilterOperator.IN, FilterOperator.NOT_IN):
            if not isinstance(self.value, (list, tuple, set)):
                raise ValueError(f"Operator '{self.operator.value}' requires a list value")
        return self


class FilterConfig(BaseModel):
    logic: FilterLogic = FilterLogic.AND
    conditions: List[FilterCondition] = Field(..., min_length=1)

    @field_validator("logic", mode="before")
    @classmethod
    def upper_logic(cls, v):
        return v.upper() if isinstance(v, str) else v


class FieldMapping(BaseModel):
    """
    Derives `target` from `source` (or `sources` for concat).

    Operations: copy, rename (copy and drop source), uppercase, lowercase,
    trim, concat (join `sources` with `separator`), constant (`value`),
    round (`precision` digits).
    """
    target: str = Field(..., min_length=1)
    source: Optional[str] = None
    sources: Optional[List[str]] = None
    operation: MapOperation = MapOperation.COPY
    value: Any = None
    separator: str = " "
    precision: int = 0

    @model_validator(mode="after")
    def check_inputs(self):
        if self.operation == MapOperation.CONCAT:
            if not self.sources:
                raise ValueError("concat mapping requires 'sources'")
        elif self.operation != MapOperation.CONSTANT and not self.source:
            raise ValueError(f"{self.operation.value} mapping requires 'source'")
        return self


class MapConfig(BaseModel):
    mappings: List[FieldMapping] = Field(..., min_length=1)
    include_original: bool = True


class ConvertConfig(BaseModel):
    field: str = Field(..., min_length=1)
    target_type: ConvertTarget
    target_field: Optional[str] = None
    date_format: Optional[str] = None


class Aggregation(BaseModel):
    field: Optional[str] = None
    operation: AggregateOperation
    alias: Optional[str] = None

    @field_validator("operation", mode="before")
    @classmethod
    def lower_operation(cls, v):
        return v.lower() if isinstance(v, str) else v

    @model_validator(mode="after")
    def check_field(self):
        if self.operation != AggregateOperation.COUNT and not self.field:
            raise ValueError(f"{self.operation.value} aggregation requires 'field'")
        return self

    @property
    def output_name(self) -> str:
        if self.alias:
            return self.alias
        if self.field:
            return f"{self.operation.value}_{self.field}"
        return "count"


class AggregateConfig(BaseModel):
    group_by: List[str] = Field(..., min_length=1)
    aggregations: List[Aggregation] = Field(..., min_length=1)

    @field_validator("group_by", mode="before")
    @classmethod
    def single_key(cls, v):
        if isinstance(v, str):
            return [v]
        return v


class CustomRuleConfig(BaseModel):
    function: str = Field(..., min_length=1)
    options: Dict[str, Any] = Field(default_factory=dict)


RuleConfig = Union[FilterConfig, MapConfig, ConvertConfig, AggregateConfig, CustomRuleConfig]

RULE_CONFIG_MODELS = {
    RuleType.FILTER: FilterConfig,
    RuleType.MAP: MapConfig,
    RuleType.CONVERT: ConvertConfig,
    RuleType.AGGREGATE: AggregateConfig,
    RuleType.CUSTOM: CustomRuleConfig,
}

# Signature of functions registered for "custom" rules
CustomRuleFunction = Callable[[List[Dict[str, Any]], Dict[str, Any]], List[Dict[str, Any]]]


# ============================================================================
# Engine Results
# ============================================================================

class RowError(BaseModel):
    """A non-fatal, per-record problem reported by a rule"""
    rule_id: str
    rule_name: str
    message: str
    record_index: Optional[int] = None
    field: Optional[str] = None
    value: Optional[str] = None


class RuleIssue(BaseModel):
    """A rule-level error or warning (invalid configuration, ordering hints)"""
    rule_id: str
    rule_name: str
    message: str


class TransformationResult(BaseModel):
    """
    Outcome of applying a rule chain.

    `success` is False only when a rule configuration is structurally invalid;
    row-level problems are reported in `errors` and leave `success` True.
    """
    success: bool
    data: List[Dict[str, Any]] = Field(default_factory=list)
    errors: List[RowError] = Field(default_factory=list)
    rule_errors: List[RuleIssue] = Field(default_factory=list)
    warnings: List[RuleIssue] = Field(default_factory=list)
    total_records: int = 0
    output_records: int = 0
    rules_applied: int = 0
    execution_time_ms: float = 0.0
