"""
Transformation engine: applies filter / map / convert / aggregate / custom rules to record batches
"""

import copy
import math
import time
from typing import Dict, Any, Optional, List, Tuple
from datetime import datetime, date
from pydantic import ValidationError as PydanticValidationError
from schemas.rules import (
    TransformationRule,
    TransformationResult,
    RowError,
    RuleIssue,
    RuleConfig,
    RULE_CONFIG_MODELS,
    FilterConfig,
    FilterCondition,
    MapConfig,
    FieldMapping,
    ConvertConfig,
    AggregateConfig,
    Aggregation,
    CustomRuleConfig,
    CustomRuleFunction,
)
from schemas.enums import (
    RuleType,
    FilterLogic,
    FilterOperator,
    MapOperation,
    ConvertTarget,
    AggregateOperation,
)
from core.exceptions import ConfigurationError, TransformationError, RowConversionError
import logging

logger = logging.getLogger(__name__)

# Rows considered by test_transformation
SAMPLE_LIMIT = 100

_TRUE_STRINGS = {"true", "t", "yes", "y", "1", "on"}
_FALSE_STRINGS = {"false", "f", "no", "n", "0", "off"}


class TransformationEngine:
    """
    Apply an ordered chain of transformation rules to a batch of records.

    Handles:
    - Typed rule configuration (one pydantic model per rule type)
    - Row-level conversion errors without aborting the batch
    - Named custom functions registered at runtime

    The input batch is never mutated; each rule produces a new list.
    """

    def __init__(self):
        self._functions: Dict[str, CustomRuleFunction] = {}

    def register_function(self, name: str, fn: CustomRuleFunction) -> None:
        """Register a callable for rules of type custom (configuration.function = name)"""
        self._functions[name] = fn
        logger.debug(f"Registered custom transformation function '{name}'")

    def validate_rule(self, rule: TransformationRule) -> RuleConfig:
        """
        Parse a rule's configuration into its typed model.

        Raises:
            ConfigurationError: If the configuration is structurally invalid
        """
        model = RULE_CONFIG_MODELS[rule.type]
        try:
            config = model.model_validate(rule.configuration)
        except PydanticValidationError as e:
            raise ConfigurationError(
                f"Invalid {rule.type.value} configuration for rule '{rule.name}'",
                context={"rule_id": rule.id, "field_errors": e.errors(include_url=False)},
                original_exception=e
            )

        if isinstance(config, CustomRuleConfig) and config.function not in self._functions:
            raise ConfigurationError(
                f"Custom function '{config.function}' is not registered",
                context={"rule_id": rule.id}
            )
        return config

    async def apply_transformations(
        self,
        records: List[Dict[str, Any]],
        rules: List[TransformationRule]
    ) -> TransformationResult:
        """
        Apply enabled rules in list order.

        Returns:
            TransformationResult. On an invalid rule configuration success is
            False and data holds the batch as it stood before that rule.
        """
        started = time.perf_counter()
        data = copy.deepcopy(records)
        errors: List[RowError] = []
        warnings: List[RuleIssue] = []
        applied = 0

        active = [r for r in rules if r.enabled]

        for position, rule in enumerate(active):
            try:
                config = self.validate_rule(rule)
                if rule.type == RuleType.AGGREGATE and position < len(active) - 1:
                    warnings.append(RuleIssue(
                        rule_id=rule.id,
                        rule_name=rule.name,
                        message="Aggregate rule is followed by other rules; it should be the last rule"
                    ))
                data = self._apply_rule(rule, config, data, errors)
            except (ConfigurationError, TransformationError) as e:
                logger.error(f"Rule '{rule.name}' ({rule.id}) failed: {e.message}")
                return self._result(
                    False, data, errors, warnings, len(records), applied, started,
                    rule_errors=[RuleIssue(rule_id=rule.id, rule_name=rule.name, message=e.message)]
                )
            applied += 1

        if errors:
            logger.warning(f"Transformation finished with {len(errors)} row errors")

        return self._result(True, data, errors, warnings, len(records), applied, started)

    async def test_transformation(
        self,
        sample: List[Dict[str, Any]],
        rule: TransformationRule
    ) -> TransformationResult:
        """Preview a single rule against the first SAMPLE_LIMIT records"""
        preview = rule.model_copy(update={"enabled": True})
        return await self.apply_transformations(sample[:SAMPLE_LIMIT], [preview])

    @staticmethod
    def _result(success, data, errors, warnings, total, applied, started, rule_errors=None):
        return TransformationResult(
            success=success,
            data=data,
            errors=errors,
            rule_errors=rule_errors or [],
            warnings=warnings,
            total_records=total,
            output_records=len(data),
            rules_applied=applied,
            execution_time_ms=round((time.perf_counter() - started) * 1000, 3)
        )

    def _apply_rule(
        self,
        rule: TransformationRule,
        config: RuleConfig,
        data: List[Dict[str, Any]],
        errors: List[RowError]
    ) -> List[Dict[str, Any]]:
        if isinstance(config, FilterConfig):
            return self._apply_filter(config, data)
        elif isinstance(config, MapConfig):
            return self._apply_map(rule, config, data, errors)
        elif isinstance(config, ConvertConfig):
            return self._apply_convert(rule, config, data, errors)
        elif isinstance(config, AggregateConfig):
            return self._apply_aggregate(rule, config, data, errors)
        elif isinstance(config, CustomRuleConfig):
            return self._apply_custom(rule, config, data)
        else:
            raise ConfigurationError(f"Unsupported rule type: {rule.type}", context={"rule_id": rule.id})

    # ========================================================================
    # Filter
    # ========================================================================

    def _apply_filter(self, config: FilterConfig, data: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        if config.logic == FilterLogic.AND:
            return [r for r in data if all(self._evaluate(r, c) for c in config.conditions)]
        return [r for r in data if any(self._evaluate(r, c) for c in config.conditions)]

    @staticmethod
    def _evaluate(record: Dict[str, Any], condition: FilterCondition) -> bool:
        op = condition.operator
        value = record.get(condition.field)

        if op == FilterOperator.IS_NULL:
            return value is None
        if op == FilterOperator.IS_NOT_NULL:
            return value is not None

        # Comparison operators never match a missing field
        if value is None:
            return False

        expected = condition.value
        if isinstance(value, str) and isinstance(expected, (int, float)) and not isinstance(expected, bool):
            try:
                value = float(value)
            except ValueError:
                return False

        try:
            if op == FilterOperator.EQUALS:
                return value == expected
            elif op == FilterOperator.NOT_EQUALS:
                return value != expected
            elif op == FilterOperator.GREATER_THAN:
                return value > expected
            elif op == FilterOperator.GREATER_THAN_OR_EQUALS:
                return value >= expected
            elif op == FilterOperator.LESS_THAN:
                return value < expected
            elif op == FilterOperator.LESS_THAN_OR_EQUALS:
                return value <= expected
            elif op == FilterOperator.CONTAINS:
                if isinstance(value, str):
                    return str(expected) in value
                return expected in value
            elif op == FilterOperator.STARTS_WITH:
                return isinstance(value, str) and value.startswith(str(expected))
            elif op == FilterOperator.ENDS_WITH:
                return isinstance(value, str) and value.endswith(str(expected))
            elif op == FilterOperator.IN:
                return value in expected
            elif op == FilterOperator.NOT_IN:
                return value not in expected
        except TypeError:
            return False
        return False

    # ========================================================================
    # Map
    # ========================================================================

    def _apply_map(
        self,
        rule: TransformationRule,
        config: MapConfig,
        data: List[Dict[str, Any]],
        errors: List[RowError]
    ) -> List[Dict[str, Any]]:
        output = []
        for index, record in enumerate(data):
            row = dict(record) if config.include_original else {}
            for mapping in config.mappings:
                try:
                    row[mapping.target] = self._map_value(record, mapping)
                except (TypeError, ValueError, OverflowError) as e:
                    row[mapping.target] = None
                    errors.append(RowError(
                        rule_id=rule.id,
                        rule_name=rule.name,
                        message=f"{mapping.operation.value} failed: {e}",
                        record_index=index,
                        field=mapping.source or mapping.target,
                        value=_preview(record.get(mapping.source)) if mapping.source else None
                    ))
                if (
                    mapping.operation == MapOperation.RENAME
                    and config.include_original
                    and mapping.source != mapping.target
                ):
                    row.pop(mapping.source, None)
            output.append(row)
        return output

    @staticmethod
    def _map_value(record: Dict[str, Any], mapping: FieldMapping) -> Any:
        op = mapping.operation

        if op == MapOperation.CONSTANT:
            return copy.deepcopy(mapping.value)
        if op == MapOperation.CONCAT:
            parts = [record.get(s) for s in mapping.sources]
            return mapping.separator.join(str(p) for p in parts if p is not None)

        value = record.get(mapping.source)
        if op in (MapOperation.COPY, MapOperation.RENAME) or value is None:
            return value
        if op == MapOperation.UPPERCASE:
            return str(value).upper()
        if op == MapOperation.LOWERCASE:
            return str(value).lower()
        if op == MapOperation.TRIM:
            return str(value).strip()
        if op == MapOperation.ROUND:
            rounded = round(float(value), mapping.precision)
            return int(rounded) if mapping.precision == 0 else rounded
        raise ValueError(f"Unsupported map operation: {op}")

    # ========================================================================
    # Convert
    # ========================================================================

    def _apply_convert(
        self,
        rule: TransformationRule,
        config: ConvertConfig,
        data: List[Dict[str, Any]],
        errors: List[RowError]
    ) -> List[Dict[str, Any]]:
        target = config.target_field or config.field
        output = []
        for index, record in enumerate(data):
            row = dict(record)
            value = record.get(config.field)
            try:
                row[target] = convert_value(value, config.target_type, config.date_format)
            except RowConversionError as e:
                row[target] = None
                errors.append(RowError(
                    rule_id=rule.id,
                    rule_name=rule.name,
                    message=e.message,
                    record_index=index,
                    field=config.field,
                    value=_preview(value)
                ))
            output.append(row)
        return output

    # ========================================================================
    # Aggregate
    # ========================================================================

    def _apply_aggregate(
        self,
        rule: TransformationRule,
        config: AggregateConfig,
        data: List[Dict[str, Any]],
        errors: List[RowError]
    ) -> List[Dict[str, Any]]:
        groups: Dict[Tuple, List[Tuple[int, Dict[str, Any]]]] = {}
        for index, record in enumerate(data):
            key = tuple(_hashable(record.get(f)) for f in config.group_by)
            groups.setdefault(key, []).append((index, record))

        output = []
        for members in groups.values():
            first = members[0][1]
            row = {f: first.get(f) for f in config.group_by}
            for aggregation in config.aggregations:
                row[aggregation.output_name] = self._reduce(rule, aggregation, members, errors)
            output.append(row)
        return output

    @staticmethod
    def _reduce(
        rule: TransformationRule,
        aggregation: Aggregation,
        members: List[Tuple[int, Dict[str, Any]]],
        errors: List[RowError]
    ) -> Any:
        if aggregation.operation == AggregateOperation.COUNT:
            if aggregation.field is None:
                return len(members)
            return sum(1 for _, r in members if r.get(aggregation.field) is not None)

        numbers: List[float] = []
        for index, record in members:
            value = record.get(aggregation.field)
            if value is None:
                continue
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                numbers.append(value)
                continue
            try:
                numbers.append(float(value))
            except (TypeError, ValueError):
                errors.append(RowError(
                    rule_id=rule.id,
                    rule_name=rule.name,
                    message=f"Non-numeric value skipped in {aggregation.operation.value}",
                    record_index=index,
                    field=aggregation.field,
                    value=_preview(value)
                ))

        if aggregation.operation == AggregateOperation.SUM:
            return sum(numbers)
        if not numbers:
            return None
        if aggregation.operation == AggregateOperation.AVG:
            return sum(numbers) / len(numbers)
        if aggregation.operation == AggregateOperation.MIN:
            return min(numbers)
        return max(numbers)

    # ========================================================================
    # Custom
    # ========================================================================

    def _apply_custom(
        self,
        rule: TransformationRule,
        config: CustomRuleConfig,
        data: List[Dict[str, Any]]
    ) -> List[Dict[str, Any]]:
        fn = self._functions[config.function]
        try:
            result = fn(copy.deepcopy(data), dict(config.options))
        except Exception as e:
            raise TransformationError(
                f"Custom function '{config.function}' raised {type(e).__name__}: {e}",
                context={"rule_id": rule.id},
                original_exception=e
            )

        if not isinstance(result, list) or not all(isinstance(r, dict) for r in result):
            raise TransformationError(
                f"Custom function '{config.function}' must return a list of records",
                context={"rule_id": rule.id}
            )
        return result


# ============================================================================
# Value helpers
# ============================================================================

def convert_value(value: Any, target: ConvertTarget, date_format: Optional[str] = None) -> Any:
    """
    Convert a single value to `target`.

    None passes through unchanged.

    Raises:
        RowConversionError: If the value cannot be represented as `target`
    """
    if value is None:
        return None

    try:
        if target == ConvertTarget.STRING:
            if isinstance(value, (datetime, date)):
                return value.isoformat()
            return str(value)

        if target == ConvertTarget.INTEGER:
            if isinstance(value, bool):
                return int(value)
            if isinstance(value, int):
                return value
            number = float(str(value).strip()) if isinstance(value, str) else float(value)
            if math.isnan(number) or math.isinf(number):
                raise ValueError("not a finite number")
            return int(number)

        if target == ConvertTarget.FLOAT:
            if isinstance(value, bool):
                return float(value)
            number = float(str(value).strip()) if isinstance(value, str) else float(value)
            if math.isnan(number):
                raise ValueError("not a number")
            return number

        if target == ConvertTarget.BOOLEAN:
            if isinstance(value, bool):
                return value
            if isinstance(value, (int, float)):
                return value != 0
            text = str(value).strip().lower()
            if text in _TRUE_STRINGS:
                return True
            if text in _FALSE_STRINGS:
                return False
            raise ValueError("unrecognized boolean literal")

        if target == ConvertTarget.DATETIME:
            return _parse_datetime(value, date_format)

        if target == ConvertTarget.DATE:
            if isinstance(value, date) and not isinstance(value, datetime):
                return value
            return _parse_datetime(value, date_format).date()

    except (TypeError, ValueError, OverflowError, OSError) as e:
        raise RowConversionError(
            f"Cannot convert {_preview(value)!r} to {target.value}",
            context={"value": _preview(value), "target_type": target.value},
            original_exception=e
        )

    raise RowConversionError(f"Unsupported conversion target: {target}")


def _parse_datetime(value: Any, date_format: Optional[str]) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return datetime.fromtimestamp(value)

    text = str(value).strip()
    if date_format:
        return datetime.strptime(text, date_format)
    return datetime.fromisoformat(text.replace("Z", "+00:00"))


def _hashable(value: Any) -> Any:
    if isinstance(value, (list, dict, set)):
        return repr(value)
    return value


def _preview(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value)
    return text if len(text) <= 200 else text[:197] + "..."
