"""
Test Suite for the Operator Console
"""

import unittest

from config import COLOR, DASHBOARD_CONFIG, SUBSTATION_ID, TRANSPORT_CONFIG
from grid.fault_engine import FaultEngine
from grid.operator import OperatorConsole
from grid.registry import NodeRegistry
from grid.state import NetworkState
from monitoring.event_log import EventSink, SystemStatus
from protocols.telemetry.commands import RecordingCommandPublisher
from visual import DashboardPanel, MapModel, VisualCommandBus


class TestOperatorConsole(unittest.TestCase):

    def setUp(self):
        self.registry = NodeRegistry()
        self.state = NetworkState(self.registry)
        self.map = MapModel(self.registry)
        self.events = EventSink()
        self.panel = DashboardPanel(self.state)
        self.engine = FaultEngine(self.registry, self.state, VisualCommandBus([self.map]), self.events, ui=self.panel)
        self.publisher = RecordingCommandPublisher()
        self.console = OperatorConsole(self.engine, publisher=self.publisher, seed=7)

    def test_turn_on_substation_sends_token_only(self):
        self.console.simulate_fault()
        before = self.state.snapshot()

        self.console.turn_on_substation()

        self.assertEqual(
            self.publisher.published,
            [(TRANSPORT_CONFIG["topics"]["COMMANDS"], TRANSPORT_CONFIG["recharge_token"])]
        )
        self.assertEqual(self.state.snapshot()["nodes"], before["nodes"])
        self.assertFalse(self.state.substation_online)
        self.assertEqual(self.events.alert.message, "📡 Turn on substation command sent")

    def test_simulate_fault_defaults_to_substation(self):
        record = self.console.simulate_fault()
        cfg = DASHBOARD_CONFIG["simulated_fault"]
        self.assertEqual(record.node_id, SUBSTATION_ID)
        self.assertEqual(record.fault_type, cfg["fault_type"])
        self.assertEqual(record.voltage, cfg["voltage"])
        self.assertEqual(self.state.get_node_state(SUBSTATION_ID).breaker_status, "OPEN")
        self.assertEqual(self.events.system_status, SystemStatus.FAULT)
        self.assertTrue(self.panel.substation_button_visible)

    def test_simulate_fault_on_selected_pole(self):
        self.console.select_node(3)
        self.console.simulate_fault("short")
        self.assertEqual(self.map.nodes[3].fill, COLOR["FAULT"])
        self.assertEqual(self.map.nodes[2].fill, COLOR["OFF"])
        self.assertEqual(self.panel.detail["status"], "FAULT")

    def test_select_unknown_node(self):
        with self.assertRaises(KeyError):
            self.console.select_node(42)
        self.assertIsNone(self.state.selected_node_id)

    def test_select_node_refreshes_panel(self):
        snapshot = self.console.select_node(2)
        self.assertEqual(snapshot["node_id"], 2)
        self.assertEqual(self.panel.detail["node_id"], 2)
        self.assertEqual(self.state.selected_node_id, 2)

    def test_generate_sample_data(self):
        records = self.console.generate_sample_data()
        v_low, v_high = DASHBOARD_CONFIG["sample_data"]["voltage_range"]
        c_low, c_high = DASHBOARD_CONFIG["sample_data"]["current_range"]

        self.assertEqual([r.node_id for r in records], self.registry.chain)
        for record in records:
            self.assertTrue(v_low <= record.voltage <= v_high)
            self.assertTrue(c_low <= record.current <= c_high)
            self.assertEqual(record.voltage, round(record.voltage, 1))
            self.assertEqual(len(self.state.get_analytics(record.node_id).voltage), 1)
        self.assertEqual(self.events.system_status, SystemStatus.OK)

    def test_sample_data_is_seeded(self):
        other = OperatorConsole(self.engine, publisher=self.publisher, seed=7)
        first = [r.voltage for r in self.console.generate_sample_data()]
        second = [r.voltage for r in other.generate_sample_data()]
        self.assertEqual(first, second)

    def test_clear_analytics(self):
        self.console.generate_sample_data()
        self.console.clear_analytics()
        for node_id in self.registry.chain:
            self.assertEqual(len(self.state.get_analytics(node_id).current), 0)

    def test_reset(self):
        self.console.select_node(3)
        self.console.simulate_fault("short")
        self.console.reset()

        self.assertIsNone(self.state.selected_node_id)
        self.assertEqual(self.map.nodes[2].fill, COLOR["OK"])
        self.assertEqual([e.message for e in self.events.log.get_events()], ["System Reset"])
        self.assertEqual(self.events.system_status, SystemStatus.OK)
        self.assertFalse(self.events.alert.visible)
        self.assertFalse(self.panel.substation_button_visible)


if __name__ == '__main__':
    unittest.main(verbosity=2)
