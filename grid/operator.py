"""
Operator Console - Dashboard actions available to the operator

    reset               full network reset
    turn_on_substation  fire-and-forget recharge command
    select_node         choose the node shown in the detail panel
    simulate_fault      synthetic FAULT record for the selected node
    generate_sample_data  one random OK reading per node
    clear_analytics     empty every voltage/current series
"""
import logging
import time
from typing import Dict, List, Optional

import numpy as np

from config import DASHBOARD_CONFIG
from grid.fault_engine import FaultEngine
from protocols.telemetry.commands import CommandPublisher
from protocols.telemetry.normalizer import TelemetryRecord, normalize_pole_payload

logger = logging.getLogger(__name__)


class OperatorConsole:
    def __init__(
        self,
        engine: FaultEngine,
        publisher: Optional[CommandPublisher] = None,
        seed: Optional[int] = None,
    ):
        self.engine = engine
        self.registry = engine.registry
        self.state = engine.state
        self.events = engine.events
        self.ui = engine.ui
        self.publisher = publisher or CommandPublisher()
        self.rng = np.random.default_rng(seed)

    def reset(self):
        self.engine.reset()
        logger.info("Operator reset complete")

    def turn_on_substation(self):
        """Publish the recharge token. Local state changes only when OK telemetry arrives."""
        self.publisher.publish_recharge()
        self.events.log_event("Turn on substation command sent")
        self.events.show_alert("📡 Turn on substation command sent")

    def select_node(self, node_id: int) -> Dict:
        if self.registry.get_node(node_id) is None:
            raise KeyError(node_id)
        self.state.set_selected_node(node_id)
        if self.ui is not None:
            self.ui.refresh_node_detail(node_id)
        return self.state.get_node_state(node_id).to_dict()

    def simulate_fault(self, fault_type: Optional[str] = None) -> TelemetryRecord:
        cfg = DASHBOARD_CONFIG["simulated_fault"]
        node_id = self.state.selected_node_id or self.registry.substation_id
        record = normalize_pole_payload({
            "pole_id": node_id,
            "status": "FAULT",
            "fault_type": fault_type or cfg["fault_type"],
            "voltage": cfg["voltage"],
            "current": cfg["current"],
            "breaker_status": cfg["breaker_status"],
            "timestamp": time.time(),
        })
        logger.info(f"Simulating {record.fault_type} fault on node {node_id}")
        self.engine.process(record)
        return record

    def generate_sample_data(self) -> List[TelemetryRecord]:
        ranges = DASHBOARD_CONFIG["sample_data"]
        records = []
        for node in self.registry.get_all_nodes():
            voltage = round(float(self.rng.uniform(*ranges["voltage_range"])), 1)
            current = round(float(self.rng.uniform(*ranges["current_range"])), 1)
            record = normalize_pole_payload({
                "pole_id": node.node_id,
                "status": "OK",
                "fault_type": "Normal",
                "voltage": voltage,
                "current": current,
                "breaker_status": "CLOSED",
                "timestamp": time.time(),
            })
            self.engine.process(record)
            records.append(record)
        return records

    def clear_analytics(self):
        self.state.clear_analytics()
        logger.info("Analytics cleared")
