"""
Alert registry - append-only sink for operational events
"""

from typing import Callable, Dict, List, Optional
from datetime import timezone
from schemas.alerts import Alert, AlertCreate, AlertFilter
from schemas.enums import AlertType, AlertSeverity, AlertCategory
from core.exceptions import NotFoundError
import logging

logger = logging.getLogger(__name__)

AlertListener = Callable[[Alert], None]

_LOG_LEVELS = {
    AlertType.INFO: logging.INFO,
    AlertType.SUCCESS: logging.INFO,
    AlertType.WARNING: logging.WARNING,
    AlertType.ERROR: logging.ERROR,
}


class AlertRegistry:
    """
    Records alerts emitted by the scheduler and pipeline manager.

    Alerts are immutable once created except for acknowledgment, and there
    is no deletion API. Queries return snapshots, most recent first.
    """

    def __init__(self):
        self._alerts: List[Alert] = []
        self._index: Dict[str, Alert] = {}
        self._listeners: List[AlertListener] = []

    def create_alert(self, alert: AlertCreate) -> Alert:
        record = Alert(**alert.model_dump())
        self._alerts.append(record)
        self._index[record.id] = record

        logger.log(
            _LOG_LEVELS.get(record.type, logging.INFO),
            f"[{record.category.value}/{record.severity.value}] {record.title}: {record.message}"
        )

        for listener in list(self._listeners):
            try:
                listener(record.model_copy())
            except Exception:
                logger.exception(f"Alert listener failed for alert {record.id}")

        return record.model_copy()

    def emit(
        self,
        type: AlertType,
        severity: AlertSeverity,
        category: AlertCategory,
        title: str,
        message: str,
        details: Optional[str] = None,
        job_id: Optional[str] = None
    ) -> Alert:
        """Shorthand for create_alert with keyword fields"""
        return self.create_alert(AlertCreate(
            type=type,
            severity=severity,
            category=category,
            title=title,
            message=message,
            details=details,
            job_id=job_id
        ))

    def get_alert(self, alert_id: str) -> Alert:
        record = self._index.get(alert_id)
        if record is None:
            raise NotFoundError(f"Alert '{alert_id}' not found", context={"alert_id": alert_id})
        return record.model_copy()

    def get_alerts(self, filter: Optional[AlertFilter] = None) -> List[Alert]:
        results = []
        for record in reversed(self._alerts):
            if filter is not None and not self._matches(record, filter):
                continue
            results.append(record.model_copy())
            if filter is not None and filter.limit and len(results) >= filter.limit:
                break
        return results

    def acknowledge_alert(self, alert_id: str) -> Alert:
        record = self._index.get(alert_id)
        if record is None:
            raise NotFoundError(f"Alert '{alert_id}' not found", context={"alert_id": alert_id})
        record.acknowledged = True
        return record.model_copy()

    def subscribe(self, listener: AlertListener) -> Callable[[], None]:
        """Register a listener for new alerts; returns an unsubscribe callable"""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def count(self) -> int:
        return len(self._alerts)

    @staticmethod
    def _matches(record: Alert, filter: AlertFilter) -> bool:
        if filter.type is not None and record.type != filter.type:
            return False
        if filter.severity is not None and record.severity != filter.severity:
            return False
        if filter.category is not None and record.category != filter.category:
            return False
        if filter.acknowledged is not None and record.acknowledged != filter.acknowledged:
            return False
        if filter.job_id is not None and record.job_id != filter.job_id:
            return False
        if filter.since is not None:
            since = filter.since if filter.since.tzinfo else filter.since.replace(tzinfo=timezone.utc)
            if record.created_at < since:
                return False
        return True
