"""
Telemetry Protocol
==================

Inbound telemetry normalization, topic routing and outbound commands
for the substation/pole feeder.
"""

from protocols.telemetry.normalizer import (
    MalformedTelemetry,
    TelemetryRecord,
    TelemetrySource,
    TelemetryStatus,
    normalize_pole_payload,
    normalize_substation,
    parse_pole_frame,
)
from protocols.telemetry.router import TelemetryRouter
from protocols.telemetry.commands import CommandPublisher, HttpCommandPublisher, RecordingCommandPublisher

__all__ = [
    'MalformedTelemetry',
    'TelemetryRecord',
    'TelemetrySource',
    'TelemetryStatus',
    'normalize_pole_payload',
    'normalize_substation',
    'parse_pole_frame',
    'TelemetryRouter',
    'CommandPublisher',
    'HttpCommandPublisher',
    'RecordingCommandPublisher',
]
