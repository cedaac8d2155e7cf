"""
Dashboard Panel - Detail view of the selected node and the substation restart button
"""
import logging
from typing import Dict, Optional

from grid.state import NetworkState

logger = logging.getLogger(__name__)

# Substation fault types that do not indicate an outage
_BENIGN_FAULT_TYPES = ("NIL", "Normal")


class DashboardPanel:
    """UI collaborator refreshed by the fault engine after each update."""

    def __init__(self, state: NetworkState):
        self.state = state
        self.detail: Optional[Dict] = None
        self.substation_button_visible = False
        self.refresh_count = 0

    def refresh_node_detail(self, node_id: int):
        """Capture the selected node's current snapshot"""
        node = self.state.registry.get_node(node_id)
        node_state = self.state.get_node_state(node_id)
        self.detail = {
            "node_id": node_id,
            "name": node.display_name if node else f"Pole {node_id}",
            "status": node_state.status,
            "voltage": node_state.voltage,
            "current": node_state.current,
            "fault_code": node_state.fault_code,
            "fault_type": node_state.fault_type,
            "breaker_status": node_state.breaker_status,
            "timestamp": node_state.timestamp,
        }
        self.refresh_count += 1

    def update_substation_button(self):
        """Offer 'turn on substation' only while the substation is out"""
        substation = self.state.nodes.get(self.state.registry.substation_id)
        visible = bool(substation) and (
            substation.status in ("CRITICAL", "FAULT")
            or (bool(substation.fault_type) and substation.fault_type not in _BENIGN_FAULT_TYPES)
        )
        if visible != self.substation_button_visible:
            logger.info(f"Substation restart button {'shown' if visible else 'hidden'}")
        self.substation_button_visible = visible

    def to_dict(self) -> Dict:
        return {
            "selected_node_id": self.state.selected_node_id,
            "detail": self.detail,
            "substation_button_visible": self.substation_button_visible,
        }
