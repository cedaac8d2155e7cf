"""
Fault Engine
============

Derives node status, fault propagation and operator alerts from
normalized telemetry of the feeder chain.

Two entry paths:

    Substation path (substation status messages)
        CRITICAL status or any fault type other than NIL is a global
        fault: the substation goes FAULT, every pole and every line goes
        OFF and the substation is marked offline. WARNING styles the
        substation border only. OK brings the substation back online and
        clears the network when no other node is still active.

    Pole path (pole frames and generic payloads)
        FAULT status dispatches on the fault type:
            short, linetoground, other   -> node FAULT, downstream OFF
            line fault                   -> node FAULT, downstream OFF,
                                            remaining lines repainted OK
            neutralfault, neutral break  -> rendered at WARNING severity
            overvoltage, undervoltage    -> full reset, then network-wide
                                            voltage styling
        WARNING status:
            overvoltage, undervoltage    -> voltage styling over the
                                            current visuals
            neutralfault, neutral break  -> dark-amber node, downstream
                                            WARNING
            other                        -> node border WARNING only
        OK status clears the node and resets the network when nothing
        else is active.

Downstream of a node is every node with a smaller id (see NodeRegistry).

Every record is processed to completion under the network state lock,
so the "is anything else active" check and the reset it guards form one
critical section.
"""

import logging
from typing import Optional

from config import COLOR, ICONS, LINE_STYLE, TAGS
from grid.registry import NodeRegistry
from grid.state import NetworkState
from monitoring.event_log import EventSink, Severity, SystemStatus
from protocols.telemetry.normalizer import TelemetryRecord, TelemetrySource, TelemetryStatus
from visual.commands import LineStyle, VisualCommandBus

logger = logging.getLogger(__name__)

VOLTAGE_TAGS = (
    TAGS["OVERVOLTAGE_POLE"],
    TAGS["UNDERVOLTAGE_POLE"],
    TAGS["OVERVOLTAGE_LINE"],
    TAGS["UNDERVOLTAGE_LINE"],
)
NEUTRAL_TAGS = (TAGS["NEUTRAL_POLE"], TAGS["NEUTRAL_LINE"])

SHORT_LABELS = {
    "short": "Short Circuit Fault",
    "linetoground": "Line-to-Ground Fault",
}
NEUTRAL_LABELS = {
    "neutralfault": "Neutral Fault",
    "neutral break": "Neutral Break",
}
SUBSTATION_FAULT_MESSAGES = {
    "LINE TO LINE": "Substation line-to-line fault - all poles disconnected",
    "LINE TO GROUND": "Substation line-to-ground fault - all poles disconnected",
}
SUBSTATION_FAULT_MESSAGE = "Substation fault - all poles disconnected"


class VoltageCondition:
    """Styling bundle for an over/under-voltage condition"""

    def __init__(self, kind: str):
        over = kind == "overvoltage"
        self.label = "Overvoltage" if over else "Undervoltage"
        self.color = COLOR["OVERVOLT"] if over else COLOR["UNDERVOLT"]
        style = LINE_STYLE["overvoltage" if over else "undervoltage"]
        self.line_style = LineStyle(self.color, style["weight"], style["opacity"])
        self.node_tag = TAGS["OVERVOLTAGE_POLE"] if over else TAGS["UNDERVOLTAGE_POLE"]
        self.line_tag = TAGS["OVERVOLTAGE_LINE"] if over else TAGS["UNDERVOLTAGE_LINE"]


class FaultEngine:
    """
    Fault propagation state machine.

    Collaborators:
        state   - NetworkState, the only thing mutated here
        visuals - VisualCommandBus receiving rendering requests
        events  - EventSink for the event log, alert banner and system status
        ui      - optional panel with refresh_node_detail(node_id) and
                  update_substation_button()
    """

    def __init__(
        self,
        registry: NodeRegistry,
        state: NetworkState,
        visuals: VisualCommandBus,
        events: EventSink,
        ui=None,
    ):
        self.registry = registry
        self.state = state
        self.visuals = visuals
        self.events = events
        self.ui = ui

        self.stats = {
            "records_processed": 0,
            "records_rejected": 0,
            "global_faults": 0,
            "full_resets": 0,
        }

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def process(self, record: TelemetryRecord) -> bool:
        """Route a record to the substation or pole path; False when rejected"""
        if record.source == TelemetrySource.SUBSTATION:
            return self.update_substation_status(record)
        return self.update_pole_status(record)

    def update_substation_status(self, record: TelemetryRecord) -> bool:
        substation_id = self.registry.substation_id
        status = (record.status or TelemetryStatus.OK.value).upper()
        fault_type = (record.fault_type or "NIL").upper()

        with self.state.lock:
            self.state.set_node_state(substation_id, record.state_fields(), record.timestamp)

            if status == TelemetryStatus.CRITICAL or fault_type != "NIL":
                message = SUBSTATION_FAULT_MESSAGES.get(fault_type, SUBSTATION_FAULT_MESSAGE)
                self._apply_substation_fault(message, record)
            elif status == TelemetryStatus.WARNING:
                self.visuals.set_node_color(substation_id, COLOR["WARNING"], border_only=True, include_lines=False)
                self.events.log_event("Substation warning", Severity.WARN, record.to_dict())
                self.events.set_system_status(SystemStatus.WARNING)
            else:
                self.visuals.set_node_color(substation_id, COLOR["OK"])
                self.visuals.clear_node_icon(substation_id)
                self.state.set_substation_online(True)
                if not self.state.any_other_node_active(exclude_id=substation_id):
                    self._full_reset()
                    self.events.set_system_status(SystemStatus.OK)
                    self.events.clear_alert()
                else:
                    logger.info("Substation online; other nodes still active, visuals kept")

            self._finish(record)
        return True

    def update_pole_status(self, record: TelemetryRecord) -> bool:
        node_id = record.node_id
        if not node_id:
            logger.warning(f"Missing pole_id: {record.to_dict()}")
            self.stats["records_rejected"] += 1
            return False
        if self.registry.get_node(node_id) is None:
            logger.warning(f"Unknown pole_id {node_id}: {record.to_dict()}")
            self.stats["records_rejected"] += 1
            return False

        raw_type = record.fault_type or "Normal"
        fault_type = raw_type.lower()
        status = (record.status or TelemetryStatus.OK.value).upper()

        with self.state.lock:
            self.state.set_node_state(node_id, record.state_fields(), record.timestamp)

            if self.registry.is_substation(node_id) and status == TelemetryStatus.FAULT:
                self._apply_substation_fault(SUBSTATION_FAULT_MESSAGES.get(raw_type.upper(), SUBSTATION_FAULT_MESSAGE), record)
            elif status == TelemetryStatus.FAULT:
                self._dispatch_fault(node_id, fault_type, raw_type, record)
            elif status == TelemetryStatus.WARNING:
                self._dispatch_warning(node_id, fault_type, record)
            else:
                self._apply_ok(node_id)

            self._finish(record)
        return True

    def reset(self):
        """Operator reset: state, analytics, visuals, status, alert and log"""
        with self.state.lock:
            self.visuals.reset_all_visuals()
            self.state.reset()
            self.events.clear_log()
            self.events.set_system_status(SystemStatus.OK)
            self.events.log_event("System Reset")
            self.events.clear_alert()
            if self.ui is not None:
                self.ui.update_substation_button()

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def _dispatch_fault(self, node_id: int, fault_type: str, raw_type: str, record: TelemetryRecord):
        if fault_type in SHORT_LABELS:
            self._apply_short_or_ltg(node_id, SHORT_LABELS[fault_type])
        elif fault_type == "line fault":
            self._apply_line_fault(node_id)
        elif fault_type in NEUTRAL_LABELS:
            self._apply_neutral_break(node_id, NEUTRAL_LABELS[fault_type])
        elif fault_type in ("overvoltage", "undervoltage"):
            self._full_reset()
            self._apply_voltage_condition(VoltageCondition(fault_type), node_id, record.voltage)
        else:
            self._apply_short_or_ltg(node_id, raw_type)

    def _dispatch_warning(self, node_id: int, fault_type: str, record: TelemetryRecord):
        if fault_type in ("overvoltage", "undervoltage"):
            self._apply_voltage_condition(VoltageCondition(fault_type), node_id, record.voltage)
        elif fault_type in NEUTRAL_LABELS:
            self._apply_neutral_warning(node_id)
        else:
            self.visuals.set_node_color(node_id, COLOR["WARNING"], border_only=True, include_lines=False)
            self.events.log_event(f"Warning @ Pole {node_id}", Severity.WARN, record.to_dict())
            self.events.set_system_status(SystemStatus.WARNING)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def _apply_substation_fault(self, message: str, record: TelemetryRecord):
        substation_id = self.registry.substation_id
        self.visuals.reset_all_visuals()
        self.visuals.set_node_color(substation_id, COLOR["FAULT"], include_lines=False)
        for pole_id in self.registry.pole_ids():
            self.visuals.set_node_color(pole_id, COLOR["OFF"])
        self._paint_lines(self.registry.edges, COLOR["OFF"])

        self.events.log_event(message, Severity.FAULT, record.to_dict())
        self.events.show_alert(f"⚡ {message}")
        self.events.set_system_status(SystemStatus.FAULT)
        self.state.set_substation_online(False)
        self.stats["global_faults"] += 1

    def _apply_short_or_ltg(self, node_id: int, label: str):
        self._isolate(node_id, ICONS["caution"])
        self._report_fault(node_id, label)

    def _apply_line_fault(self, node_id: int):
        touching = self._isolate(node_id, ICONS["line_fault"])
        self._paint_lines([e for e in self.registry.edges if e not in touching], COLOR["OK"])
        self._report_fault(node_id, "Line Fault")

    def _apply_neutral_break(self, node_id: int, label: str):
        # FAULT status, WARNING severity
        self.visuals.clear_tags(VOLTAGE_TAGS + NEUTRAL_TAGS)
        self.visuals.clear_node_icon(node_id)
        self.visuals.set_node_color(node_id, COLOR["WARNING"], include_lines=False)

        downstream = self.registry.downstream(node_id)
        for down_id in downstream:
            self.visuals.set_node_color(down_id, COLOR["WARNING"], include_lines=False)
        touching = self.registry.edges_touching(downstream)
        self._paint_lines(touching, COLOR["WARNING"])
        self._paint_lines([e for e in self.registry.edges if e not in touching], COLOR["OK"])

        self.events.log_event(f"{label} at Pole {node_id}", Severity.WARN)
        self.events.show_alert(f"⚠️ {label} at Pole {node_id}")
        self.events.set_system_status(SystemStatus.WARNING)

    def _apply_neutral_warning(self, node_id: int):
        self.visuals.clear_tags(VOLTAGE_TAGS)
        self.visuals.set_node_color(node_id, COLOR["NEUTRAL_DARK"], include_lines=False)
        self.visuals.clear_node_icon(node_id)
        self.visuals.add_tag(node_id, TAGS["NEUTRAL_POLE"])

        downstream = self.registry.downstream(node_id)
        for down_id in downstream:
            self.visuals.set_node_color(down_id, COLOR["WARNING"], include_lines=False)
        for edge in self.registry.edges_touching(downstream):
            self.visuals.set_line_style(edge, LineStyle(COLOR["WARNING"]))
            self.visuals.add_tag(edge, TAGS["NEUTRAL_LINE"])

        self.events.log_event(f"Neutral Fault at Pole {node_id}", Severity.WARN)
        self.events.show_alert(f"⚡ Neutral Fault at Pole {node_id}")
        self.events.set_system_status(SystemStatus.WARNING)

    def _apply_voltage_condition(self, condition: VoltageCondition, origin_id: int, voltage: Optional[float]):
        self.visuals.clear_tags(VOLTAGE_TAGS + NEUTRAL_TAGS)
        self.visuals.clear_all_icons()
        self.visuals.set_node_icon(origin_id, ICONS["caution"])

        for edge in self.registry.edges:
            self.visuals.set_line_style(edge, condition.line_style)
            self.visuals.add_tag(edge, condition.line_tag)

        for pole_id in self.registry.pole_ids():
            self.visuals.set_node_color(pole_id, condition.color, border_only=True, include_lines=False)
            self.visuals.add_tag(pole_id, condition.node_tag)

        extra = f" ({voltage:g}V)" if voltage is not None else ""
        self.events.log_event(
            f"{condition.label} condition across network{extra} - origin Pole {origin_id}", Severity.WARN
        )
        self.events.show_alert(f"⚠️ {condition.label} detected - propagating from Pole {origin_id}{extra}")
        self.events.set_system_status(SystemStatus.WARNING)

    def _apply_ok(self, node_id: int):
        self.visuals.clear_node_icon(node_id)
        self.visuals.set_node_color(node_id, COLOR["OK"])

        if not self.state.any_other_node_active():
            self._full_reset()
            self.events.set_system_status(SystemStatus.OK)
            self.events.log_event("All clear - system normal.")
            self.events.clear_alert()
        else:
            self.events.log_event(f"OK @ Pole {node_id}")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _isolate(self, node_id: int, icon: str):
        """Fault node red with icon, downstream nodes and their lines OFF"""
        self.visuals.clear_tags(VOLTAGE_TAGS + NEUTRAL_TAGS)
        self.visuals.set_node_color(node_id, COLOR["FAULT"], include_lines=False)
        self.visuals.set_node_icon(node_id, icon)

        downstream = self.registry.downstream(node_id)
        for down_id in downstream:
            self.visuals.set_node_color(down_id, COLOR["OFF"], include_lines=False)
        touching = self.registry.edges_touching(downstream)
        self._paint_lines(touching, COLOR["OFF"])
        return touching

    def _report_fault(self, node_id: int, label: str):
        self.events.log_event(f"{label} at Pole {node_id}", Severity.FAULT)
        self.events.show_alert(f"⚡ {label} at Pole {node_id}")
        self.events.set_system_status(SystemStatus.FAULT)

    def _paint_lines(self, edges, color: str):
        for edge in edges:
            self.visuals.set_line_style(edge, LineStyle(color))

    def _full_reset(self):
        self.visuals.reset_all_visuals()
        self.stats["full_resets"] += 1

    def _finish(self, record: TelemetryRecord):
        """Analytics, substation button and selected-node refresh shared by every path"""
        self.state.record_sample(record.node_id, record.voltage, record.current, record.timestamp)
        self.stats["records_processed"] += 1

        if self.ui is None:
            return
        if record.node_id == self.registry.substation_id:
            self.ui.update_substation_button()
        if self.state.selected_node_id == record.node_id:
            self.ui.refresh_node_detail(record.node_id)
