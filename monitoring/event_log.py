"""
Event Log - Operator-facing event trail, alert banner and system status

Provides the sink the fault engine reports into:
- Structured event entries with severity (info, warn, fault)
- Persistent alert banner (shown until cleared)
- Overall system status indicator (OK, WARNING, FAULT)

Every entry is mirrored to the process log at the matching level.
"""

import json
import logging
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable, Deque, Dict, List, Optional

from config import DASHBOARD_CONFIG

logger = logging.getLogger(__name__)


class Severity(str, Enum):
    """Severity levels for event entries"""
    INFO = "info"
    WARN = "warn"
    FAULT = "fault"


class SystemStatus(str, Enum):
    OK = "OK"
    WARNING = "WARNING"
    FAULT = "FAULT"


_LOG_LEVELS = {
    Severity.INFO: logging.INFO,
    Severity.WARN: logging.WARNING,
    Severity.FAULT: logging.ERROR,
}


@dataclass
class EventEntry:
    """Single event log record"""
    timestamp: datetime
    message: str
    severity: Severity = Severity.INFO
    payload: Optional[Dict] = None

    def to_dict(self) -> Dict:
        data = {
            'timestamp': self.timestamp.isoformat(),
            'message': self.message,
            'severity': self.severity.value,
        }
        if self.payload:
            data['payload'] = self.payload
        return data

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), default=str)


class EventLog:
    """In-memory event trail, newest last, bounded."""

    def __init__(self, capacity: int = DASHBOARD_CONFIG["event_log_capacity"]):
        self.entries: Deque[EventEntry] = deque(maxlen=capacity)
        self.events_logged = 0

    def log(self, message: str, severity: Severity = Severity.INFO, payload: Optional[Dict] = None) -> EventEntry:
        severity = Severity(severity)
        entry = EventEntry(
            timestamp=datetime.utcnow(),
            message=message,
            severity=severity,
            payload=dict(payload) if payload else None,
        )
        self.entries.append(entry)
        self.events_logged += 1
        logger.log(_LOG_LEVELS[severity], message)
        return entry

    def clear(self):
        self.entries.clear()

    def get_events(self, severity: Optional[Severity] = None, limit: int = 100) -> List[EventEntry]:
        """Most recent first"""
        results = list(self.entries)
        if severity:
            results = [e for e in results if e.severity == Severity(severity)]
        return list(reversed(results))[:limit]

    def __len__(self) -> int:
        return len(self.entries)


class AlertBanner:
    """Persistent banner; re-showing the visible message is a no-op."""

    def __init__(self):
        self.message: Optional[str] = None
        self.visible = False
        self.shown_count = 0

    def show(self, message: str) -> bool:
        message = str(message)
        if self.visible and self.message == message:
            return False
        self.message = message
        self.visible = True
        self.shown_count += 1
        return True

    def clear(self):
        self.visible = False
        self.message = None

    def to_dict(self) -> Dict:
        return {"visible": self.visible, "message": self.message}


class EventSink:
    """
    Event log, alert banner and system status behind one object.

    Listeners registered with ``add_listener`` receive a dict for every
    entry, alert change and status change.
    """

    def __init__(self, log: Optional[EventLog] = None, alert: Optional[AlertBanner] = None):
        self.log = log or EventLog()
        self.alert = alert or AlertBanner()
        self.system_status = SystemStatus.OK
        self._listeners: List[Callable[[Dict], None]] = []

    def add_listener(self, callback: Callable[[Dict], None]):
        self._listeners.append(callback)

    def _emit(self, message: Dict):
        for callback in list(self._listeners):
            try:
                callback(message)
            except Exception as e:
                logger.warning(f"Event listener failed: {e}")

    def log_event(self, message: str, severity: Severity = Severity.INFO, payload: Optional[Dict] = None) -> EventEntry:
        entry = self.log.log(message, severity, payload)
        self._emit({"type": "event", **entry.to_dict()})
        return entry

    def show_alert(self, message: str):
        if self.alert.show(message):
            self._emit({"type": "alert", **self.alert.to_dict()})

    def clear_alert(self):
        if self.alert.visible:
            self.alert.clear()
            self._emit({"type": "alert", **self.alert.to_dict()})

    def set_system_status(self, status: SystemStatus):
        self.system_status = SystemStatus(status)
        self._emit({"type": "system_status", "status": self.system_status.value})

    def clear_log(self):
        self.log.clear()

    def to_dict(self) -> Dict:
        return {
            "system_status": self.system_status.value,
            "alert": self.alert.to_dict(),
            "events": [e.to_dict() for e in self.log.get_events(limit=len(self.log) or 1)],
        }
