"""
Telemetry Router - Topic based dispatch from the transport into the fault engine

    substation topic -> normalize_substation -> FaultEngine substation path
    pole topic       -> parse_pole_frame     -> FaultEngine pole path

Parse failures stop here: they are logged with topic and payload and the
next message is handled normally.
"""
import logging
from typing import Dict, Optional, Union

from config import TRANSPORT_CONFIG
from protocols.telemetry.normalizer import (
    MalformedTelemetry,
    TelemetryRecord,
    normalize_pole_payload,
    normalize_substation,
    parse_pole_frame,
)

logger = logging.getLogger(__name__)


class TelemetryRouter:
    def __init__(self, engine, topics: Optional[Dict[str, str]] = None):
        self.engine = engine
        self.topics = topics or TRANSPORT_CONFIG["topics"]
        self.stats = {"routed": 0, "malformed": 0, "ignored": 0}

    def normalize(self, topic: str, payload: Union[str, bytes, Dict]) -> Optional[TelemetryRecord]:
        """Record for a known topic, None for anything else. Raises MalformedTelemetry."""
        if topic == self.topics["SUBSTATION"]:
            return normalize_substation(payload)
        if topic == self.topics["POLES"]:
            if isinstance(payload, dict):
                return normalize_pole_payload(payload)
            return parse_pole_frame(payload)
        return None

    def handle(self, topic: str, payload: Union[str, bytes, Dict]) -> bool:
        """Normalize and process one message; False when nothing was applied"""
        try:
            record = self.normalize(topic, payload)
        except MalformedTelemetry as e:
            self.stats["malformed"] += 1
            logger.warning(f"Dropping malformed message on {topic}: {e} (payload: {payload!r})")
            return False

        if record is None:
            self.stats["ignored"] += 1
            logger.debug(f"Ignoring message on unknown topic {topic}")
            return False

        applied = self.engine.process(record)
        if applied:
            self.stats["routed"] += 1
        return applied
