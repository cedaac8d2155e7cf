"""
Telemetry Normalizer
====================

Converts the inbound wire shapes into one TelemetryRecord.

Substation JSON:
    {substation_id, voltage, current, fault_code, fault_type, status,
     breaker_status, timestamp}
    Missing status -> "OK", missing fault_type -> "NIL",
    missing breaker_status -> "CLOSED". Voltage/current that do not
    parse as numbers are reported as 0.

Pole compact frame:
    $$P<poleId>,S<substationId>,<voltage>,<current>,<errorCode>##
    Two characters are stripped from each end, the rest must split into
    exactly five comma-separated fields. The error code selects fault
    type and status (0 Normal/OK, 27 Line Fault/FAULT, 10 Neutral
    Break/FAULT, anything else Unknown/WARNING). Records are attributed
    to the configured fixed pole id; the P field is kept as
    ``reported_pole_id``.

Generic pole payload:
    {pole_id, status, fault_type | faultType, voltage, current, ...}
    Used by simulation and by the service API.

Anything that cannot be turned into a record raises MalformedTelemetry.
"""

import json
import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Union

from config import (
    POLE_DEFAULTS,
    POLE_FRAME_CONFIG,
    SUBSTATION_DEFAULTS,
    SUBSTATION_ID,
)

logger = logging.getLogger(__name__)


class MalformedTelemetry(ValueError):
    """Raised when a message cannot be normalized into a TelemetryRecord."""


class TelemetrySource(str, Enum):
    SUBSTATION = "substation"
    POLE_FRAME = "pole_frame"
    GENERIC = "generic"


class TelemetryStatus(str, Enum):
    OK = "OK"
    WARNING = "WARNING"
    FAULT = "FAULT"
    CRITICAL = "CRITICAL"


@dataclass
class TelemetryRecord:
    """One normalized reading from a node"""
    node_id: int
    source: TelemetrySource
    status: str = TelemetryStatus.OK.value
    fault_type: str = "Normal"
    voltage: Optional[float] = None
    current: Optional[float] = None
    breaker_status: Optional[str] = None
    fault_code: Optional[int] = None
    timestamp: Optional[float] = None
    extra: Dict = field(default_factory=dict)

    def state_fields(self) -> Dict:
        """Fields merged into the node's NodeState"""
        fields = {
            "voltage": self.voltage,
            "current": self.current,
            "status": self.status,
            "fault_type": self.fault_type,
        }
        if self.breaker_status is not None:
            fields["breaker_status"] = self.breaker_status
        if self.fault_code is not None:
            fields["fault_code"] = self.fault_code
        fields.update(self.extra)
        return fields

    def to_dict(self) -> Dict:
        return {
            "node_id": self.node_id,
            "source": self.source.value,
            "status": self.status,
            "fault_type": self.fault_type,
            "voltage": self.voltage,
            "current": self.current,
            "breaker_status": self.breaker_status,
            "fault_code": self.fault_code,
            "timestamp": self.timestamp,
            **self.extra,
        }


# ============================================================================
# Field helpers
# ============================================================================

def _to_float(value) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _to_int(value) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        number = _to_float(value)
        return int(number) if number is not None and math.isfinite(number) else None


def _timestamp(value) -> Optional[float]:
    # Only numeric epoch timestamps are carried; anything else is stamped on arrival
    return _to_float(value)


# ============================================================================
# Substation JSON
# ============================================================================

def normalize_substation(message: Union[str, bytes, Dict]) -> TelemetryRecord:
    """Substation status message (JSON text or already-decoded dict)"""
    if isinstance(message, (bytes, bytearray)):
        message = message.decode("utf-8", errors="replace")
    if isinstance(message, str):
        try:
            data = json.loads(message)
        except json.JSONDecodeError as e:
            raise MalformedTelemetry(f"Invalid substation JSON: {e}") from e
    else:
        data = message

    if not isinstance(data, dict):
        raise MalformedTelemetry(f"Substation message must be an object, got {type(data).__name__}")

    status = str(data.get("status") or SUBSTATION_DEFAULTS["status"]).upper()
    fault_type = str(data.get("fault_type") or SUBSTATION_DEFAULTS["fault_type"]).upper()
    breaker_status = data.get("breaker_status") or SUBSTATION_DEFAULTS["breaker_status"]
    fault_code = data.get("fault_code") or SUBSTATION_DEFAULTS["fault_code"]

    extra = {}
    if "substation_id" in data:
        extra["substation_id"] = data["substation_id"]

    return TelemetryRecord(
        node_id=SUBSTATION_ID,
        source=TelemetrySource.SUBSTATION,
        status=status,
        fault_type=fault_type,
        voltage=_to_float(data.get("voltage")) or 0.0,
        current=_to_float(data.get("current")) or 0.0,
        breaker_status=breaker_status,
        fault_code=fault_code,
        timestamp=_timestamp(data.get("timestamp")),
        extra=extra,
    )


# ============================================================================
# Pole compact frame
# ============================================================================

def parse_pole_frame(message: Union[str, bytes]) -> TelemetryRecord:
    """Pole frame such as ``$$P02,S01,229.1,51.2,0##``"""
    if isinstance(message, (bytes, bytearray)):
        message = message.decode("utf-8", errors="replace")
    message = message.strip()

    cfg = POLE_FRAME_CONFIG
    content = message[cfg["prefix_length"]:len(message) - cfg["suffix_length"]]
    parts = content.split(",")
    if len(parts) != cfg["field_count"]:
        raise MalformedTelemetry(f"Invalid pole frame parts: {parts}")

    pole_str, substation_str, voltage_str, current_str, error_str = parts

    error_code = _to_int(error_str)
    mapping = cfg["error_codes"].get(error_code, cfg["unknown_error"])

    return TelemetryRecord(
        node_id=cfg["fixed_pole_id"],
        source=TelemetrySource.POLE_FRAME,
        status=mapping["status"],
        fault_type=mapping["fault_type"],
        voltage=_to_float(voltage_str),
        current=_to_float(current_str),
        extra={
            "reported_pole_id": _to_int(pole_str.strip().lstrip("Pp")),
            "substation_id": _to_int(substation_str.strip().lstrip("Ss")),
            "error_code": error_code,
        },
    )


# ============================================================================
# Generic pole payload
# ============================================================================

def normalize_pole_payload(data: Dict) -> TelemetryRecord:
    """Decoded pole payload keyed like the dashboard's simulation records"""
    if not isinstance(data, dict):
        raise MalformedTelemetry(f"Pole payload must be an object, got {type(data).__name__}")

    node_id = _to_int(data.get("pole_id"))
    if not node_id:
        raise MalformedTelemetry(f"Missing pole_id in {data}")

    fault_type = data.get("fault_type") or data.get("faultType") or POLE_DEFAULTS["fault_type"]
    status = str(data.get("status") or POLE_DEFAULTS["status"]).upper()

    known = {"pole_id", "fault_type", "faultType", "status", "voltage", "current",
             "breaker_status", "fault_code", "timestamp"}
    extra = {k: v for k, v in data.items() if k not in known}

    return TelemetryRecord(
        node_id=node_id,
        source=TelemetrySource.GENERIC,
        status=status,
        fault_type=str(fault_type),
        voltage=_to_float(data.get("voltage")),
        current=_to_float(data.get("current")),
        breaker_status=data.get("breaker_status"),
        fault_code=_to_int(data.get("fault_code")),
        timestamp=_timestamp(data.get("timestamp")),
        extra=extra,
    )
