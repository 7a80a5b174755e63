"""
Data quality analysis for record batches.

Profiles every field of a batch and scores it:
- Completeness: share of values that are present (None, NaN and blank strings are missing)
- Consistency: share of present values matching the field's inferred type
- Accuracy: share of QualityChecks (expected types, value ranges, unique keys) that pass

The overall score is the mean of the three percentages.
"""

import math
from collections import Counter
from typing import Dict, Any, Optional, List, Tuple
from datetime import datetime, date
from schemas.quality import QualityChecks, QualityReport, FieldProfile, QualityIssue, ValueRange
from schemas.enums import AlertSeverity, QualityIssueKind, ValueType
import logging

logger = logging.getLogger(__name__)

_SEVERITY_RANK = {
    AlertSeverity.CRITICAL: 0,
    AlertSeverity.HIGH: 1,
    AlertSeverity.MEDIUM: 2,
    AlertSeverity.LOW: 3,
}


def is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return isinstance(value, str) and not value.strip()


def value_type(value: Any) -> ValueType:
    """Classify a present value; integers and floats are both numbers"""
    if isinstance(value, bool):
        return ValueType.BOOLEAN
    if isinstance(value, (int, float)):
        return ValueType.NUMBER
    if isinstance(value, (datetime, date)):
        return ValueType.DATE
    if isinstance(value, (list, tuple)):
        return ValueType.ARRAY
    if isinstance(value, dict):
        return ValueType.OBJECT
    return ValueType.STRING


def matches_type(value: Any, expected: ValueType) -> bool:
    if expected == ValueType.INTEGER:
        if isinstance(value, bool):
            return False
        return isinstance(value, int) or (isinstance(value, float) and value.is_integer())
    return value_type(value) == expected


def _percent(part: int, whole: int) -> float:
    if whole == 0:
        return 100.0
    return round(100.0 * part / whole, 1)


class DataQualityAnalyzer:
    """
    Profile and score record batches.

    Stateless apart from the severity thresholds, so one instance can be
    shared by every job.
    """

    def __init__(self, missing_threshold: float = 10.0):
        # fields with no more than this percentage missing raise no issue
        self.missing_threshold = missing_threshold

    def analyze(self, records: List[Dict[str, Any]], checks: Optional[QualityChecks] = None) -> QualityReport:
        if not records:
            return QualityReport(record_count=0, field_count=0, summary="No records to analyze")

        checks = checks or QualityChecks()
        fields = self._fields(records)
        total = len(records)

        profiles: List[FieldProfile] = []
        issues: List[QualityIssue] = []
        present_cells = 0
        consistent_cells = 0

        for field in fields:
            profile = self._profile(records, field)
            profiles.append(profile)
            present_cells += profile.present
            consistent_cells += profile.present - profile.type_mismatches
            issues.extend(self._profile_issues(profile, total))

        checked, violations, check_issues = self._run_checks(records, fields, checks)
        issues.extend(check_issues)

        completeness = _percent(present_cells, total * len(fields))
        consistency = _percent(consistent_cells, present_cells)
        accuracy = _percent(checked - violations, checked)
        score = round((completeness + consistency + accuracy) / 3, 1)

        issues.sort(key=lambda issue: (_SEVERITY_RANK[issue.severity], -issue.affected_records))
        recommendations = list(dict.fromkeys(issue.recommendation for issue in issues))

        report = QualityReport(
            record_count=total,
            field_count=len(fields),
            completeness=completeness,
            consistency=consistency,
            accuracy=accuracy,
            score=score,
            fields=profiles,
            issues=issues,
            recommendations=recommendations,
            summary=self._summary(total, len(fields), issues, completeness, consistency, accuracy)
        )
        logger.debug(f"Analyzed {total} records: score {score}, {len(issues)} issues")
        return report

    # ========================================================================
    # Profiling
    # ========================================================================

    @staticmethod
    def _fields(records: List[Dict[str, Any]]) -> List[str]:
        seen: Dict[str, None] = {}
        for record in records:
            for key in record:
                seen.setdefault(key, None)
        return list(seen)

    @staticmethod
    def _profile(records: List[Dict[str, Any]], field: str) -> FieldProfile:
        types = Counter()
        missing = 0
        for record in records:
            value = record.get(field)
            if is_missing(value):
                missing += 1
            else:
                types[value_type(value)] += 1

        present = len(records) - missing
        inferred, matching = types.most_common(1)[0] if types else (None, 0)
        return FieldProfile(
            field=field,
            present=present,
            missing=missing,
            completeness=_percent(present, len(records)),
            inferred_type=inferred,
            type_mismatches=present - matching,
            consistency=_percent(matching, present)
        )

    def _profile_issues(self, profile: FieldProfile, total: int) -> List[QualityIssue]:
        issues = []

        missing_pct = 100.0 * profile.missing / total
        if missing_pct > self.missing_threshold:
            if missing_pct >= 50:
                severity = AlertSeverity.HIGH
            elif missing_pct >= 20:
                severity = AlertSeverity.MEDIUM
            else:
                severity = AlertSeverity.LOW

            if missing_pct >= 80:
                recommendation = f"Drop the {profile.field} field or find another source for it"
            elif missing_pct >= 50:
                recommendation = f"Add a map rule giving {profile.field} a constant default"
            else:
                recommendation = f"Add a filter rule with is_not_null on {profile.field}"

            issues.append(QualityIssue(
                field=profile.field,
                kind=QualityIssueKind.MISSING_VALUES,
                severity=severity,
                message=f"{profile.missing} missing values ({round(missing_pct)}%)",
                affected_records=profile.missing,
                recommendation=recommendation
            ))

        if profile.type_mismatches:
            mismatch_pct = 100.0 * profile.type_mismatches / profile.present
            issues.append(QualityIssue(
                field=profile.field,
                kind=QualityIssueKind.INCONSISTENT_TYPE,
                severity=self._consistency_severity(mismatch_pct),
                message=(
                    f"{profile.type_mismatches} values are not {profile.inferred_type.value} "
                    f"like the rest of the field ({round(mismatch_pct)}%)"
                ),
                affected_records=profile.type_mismatches,
                recommendation=f"Add a convert rule casting {profile.field} to one type"
            ))

        return issues

    # ========================================================================
    # Checks
    # ========================================================================

    def _run_checks(
        self,
        records: List[Dict[str, Any]],
        fields: List[str],
        checks: QualityChecks
    ) -> Tuple[int, int, List[QualityIssue]]:
        checked = 0
        violations = 0
        issues = []
        total = len(records)

        for field, expected in checks.expected_types.items():
            present = [r.get(field) for r in records if not is_missing(r.get(field))]
            wrong = sum(1 for value in present if not matches_type(value, expected))
            checked += len(present)
            violations += wrong
            if wrong:
                pct = 100.0 * wrong / total
                issues.append(QualityIssue(
                    field=field,
                    kind=QualityIssueKind.UNEXPECTED_TYPE,
                    severity=self._accuracy_severity(pct),
                    message=f"{wrong} values are not {expected.value} ({round(pct)}%)",
                    affected_records=wrong,
                    recommendation=f"Add a convert rule casting {field} to {expected.value}"
                ))

        for field, bounds in checks.value_ranges.items():
            present = [r.get(field) for r in records if not is_missing(r.get(field))]
            outside = sum(1 for value in present if not self._in_range(value, bounds))
            checked += len(present)
            violations += outside
            if outside:
                pct = 100.0 * outside / total
                issues.append(QualityIssue(
                    field=field,
                    kind=QualityIssueKind.OUT_OF_RANGE,
                    severity=self._accuracy_severity(pct),
                    message=f"{outside} values outside [{bounds.min}, {bounds.max}] ({round(pct)}%)",
                    affected_records=outside,
                    recommendation=f"Add a filter rule excluding out-of-range {field} values"
                ))

        for key in checks.unique_keys:
            key_fields = [f for f in key if f in fields]
            if not key_fields:
                logger.debug(f"Unique key {key} names no field of the batch; skipping")
                continue

            seen = set()
            duplicates = 0
            for record in records:
                composite = tuple(repr(record.get(f)) for f in key_fields)
                if composite in seen:
                    duplicates += 1
                else:
                    seen.add(composite)

            checked += total
            violations += duplicates
            if duplicates:
                names = ", ".join(key_fields)
                pct = 100.0 * duplicates / total
                issues.append(QualityIssue(
                    field=names,
                    kind=QualityIssueKind.DUPLICATE,
                    severity=self._consistency_severity(pct),
                    message=f"{duplicates} duplicate records on {names} ({round(pct)}%)",
                    affected_records=duplicates,
                    recommendation=f"Add an aggregate rule grouping by {names} to remove duplicates"
                ))

        return checked, violations, issues

    @staticmethod
    def _in_range(value: Any, bounds: ValueRange) -> bool:
        try:
            if bounds.min is not None and value < bounds.min:
                return False
            if bounds.max is not None and value > bounds.max:
                return False
        except TypeError:
            # not comparable with the bounds
            return False
        return True

    # ========================================================================
    # Severity & summary
    # ========================================================================

    @staticmethod
    def _consistency_severity(percentage: float) -> AlertSeverity:
        if percentage >= 10:
            return AlertSeverity.HIGH
        elif percentage >= 2:
            return AlertSeverity.MEDIUM
        return AlertSeverity.LOW

    @staticmethod
    def _accuracy_severity(percentage: float) -> AlertSeverity:
        if percentage >= 20:
            return AlertSeverity.HIGH
        elif percentage >= 5:
            return AlertSeverity.MEDIUM
        return AlertSeverity.LOW

    @staticmethod
    def _summary(
        total: int,
        field_count: int,
        issues: List[QualityIssue],
        completeness: float,
        consistency: float,
        accuracy: float
    ) -> str:
        summary = f"Analyzed {total} records with {field_count} fields."
        if not issues:
            return f"{summary} No data quality issues detected."

        by_severity = Counter(issue.severity for issue in issues)
        return (
            f"{summary} Found {len(issues)} issues "
            f"({by_severity[AlertSeverity.HIGH]} high, {by_severity[AlertSeverity.MEDIUM]} medium, "
            f"{by_severity[AlertSeverity.LOW]} low): {round(completeness)}% complete, "
            f"{round(consistency)}% consistent, {round(accuracy)}% accurate."
        )
