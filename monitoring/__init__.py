"""Operator event trail, alert banner and system status."""

from .event_log import EventSink, EventLog, EventEntry, AlertBanner, Severity, SystemStatus

__all__ = [
    "EventSink",
    "EventLog",
    "EventEntry",
    "AlertBanner",
    "Severity",
    "SystemStatus",
]
