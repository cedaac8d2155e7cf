"""
Test Suite for Visual Commands, Map Model and Dashboard Panel
"""

import unittest

from config import COLOR, ICONS, LINE_STYLE, SUBSTATION_ID, TAGS
from grid.registry import Edge, NodeRegistry
from grid.state import NetworkState
from visual import CommandRecorder, DashboardPanel, LineStyle, MapModel, VisualCommandBus, VisualOperation


class TestVisualCommandBus(unittest.TestCase):

    def setUp(self):
        self.recorder = CommandRecorder()
        self.bus = VisualCommandBus([self.recorder])

    def test_commands_are_declarative(self):
        self.bus.set_node_color(3, COLOR["FAULT"], include_lines=False)
        self.bus.set_node_icon(3, ICONS["caution"])
        self.bus.set_line_style(Edge((3, 2)), LineStyle(COLOR["OFF"]))
        self.bus.clear_tags([TAGS["NEUTRAL_POLE"]])

        ops = [c.operation for c in self.recorder.commands]
        self.assertEqual(ops, [
            VisualOperation.SET_COLOR, VisualOperation.SET_ICON,
            VisualOperation.SET_LINE_STYLE, VisualOperation.CLEAR_TAGS,
        ])
        self.assertEqual(self.recorder.commands[0].params["include_lines"], False)
        self.assertEqual(self.bus.commands_issued, 4)

    def test_to_dict(self):
        self.bus.set_line_style(Edge((2, 1)), LineStyle(COLOR["OVERVOLT"], 5, 0.95))
        self.bus.reset_all_visuals()
        self.bus.set_node_icon(2, ICONS["caution"])

        line, reset, icon = [c.to_dict() for c in self.recorder.commands]
        self.assertEqual(line["target"], {"line": "2-1"})
        self.assertEqual(line["params"]["style"], {"color": COLOR["OVERVOLT"], "weight": 5, "opacity": 0.95})
        self.assertEqual(reset, {"target": "*", "operation": "ResetAll", "params": {}})
        self.assertEqual(icon["target"], {"node": 2})

    def test_failing_renderer_is_skipped(self):
        def broken(command):
            raise RuntimeError("no map element")

        bus = VisualCommandBus([broken, self.recorder])
        bus.clear_all_icons()
        bus.clear_node_icon(4)
        self.assertEqual(bus.renderer_failures, 2)
        self.assertEqual(len(self.recorder.commands), 2)

    def test_attach_detach(self):
        other = CommandRecorder()
        self.bus.attach(other)
        self.bus.reset_all_visuals()
        self.bus.detach(other)
        self.bus.reset_all_visuals()
        self.assertEqual(len(other.commands), 1)
        self.assertEqual(len(self.recorder.of(VisualOperation.RESET_ALL)), 2)


class TestMapModel(unittest.TestCase):

    def setUp(self):
        self.registry = NodeRegistry()
        self.map = MapModel(self.registry)
        self.bus = VisualCommandBus([self.map])

    def test_initial_state(self):
        snapshot = self.map.snapshot()
        self.assertEqual(set(snapshot["nodes"]), set(self.registry.chain))
        self.assertEqual(set(snapshot["lines"]), {"4-3", "3-2", "2-1", "1-5"})
        self.assertEqual(snapshot["nodes"][1]["fill"], COLOR["OK"])

    def test_border_only(self):
        self.bus.set_node_color(2, COLOR["WARNING"], border_only=True, include_lines=False)
        self.assertEqual(self.map.nodes[2].border, COLOR["WARNING"])
        self.assertEqual(self.map.nodes[2].fill, COLOR["OK"])
        self.assertEqual(self.map.line(3, 2).color, COLOR["OK"])

    def test_include_lines(self):
        self.bus.set_node_color(2, COLOR["OFF"])
        self.assertEqual(self.map.line(3, 2).color, COLOR["OFF"])
        self.assertEqual(self.map.line(2, 1).color, COLOR["OFF"])
        self.assertEqual(self.map.line(4, 3).color, COLOR["OK"])

    def test_reset_restores_styles(self):
        style = LINE_STYLE["overvoltage"]
        edge = self.registry.get_edge("1-5")
        self.bus.set_line_style(edge, LineStyle(COLOR["OVERVOLT"], style["weight"], style["opacity"]))
        self.bus.add_tag(edge, TAGS["OVERVOLTAGE_LINE"])
        self.bus.add_tag(1, TAGS["OVERVOLTAGE_POLE"])
        self.bus.set_node_icon(1, ICONS["caution"])

        self.bus.reset_all_visuals()

        line = self.map.line(1, SUBSTATION_ID)
        self.assertEqual(line.color, COLOR["OK"])
        self.assertEqual(line.weight, LINE_STYLE["default"]["weight"])
        self.assertEqual(line.opacity, LINE_STYLE["default"]["opacity"])
        self.assertEqual(line.tags, set())
        self.assertEqual(self.map.nodes[1].tags, set())
        self.assertEqual(self.map.icons(), {})

    def test_color_only_style_keeps_weight(self):
        edge = self.registry.get_edge("2-1")
        self.bus.set_line_style(edge, LineStyle(COLOR["OVERVOLT"], 5, 0.95))
        self.bus.set_line_style(edge, LineStyle(COLOR["OFF"]))
        self.assertEqual(self.map.line(2, 1).color, COLOR["OFF"])
        self.assertEqual(self.map.line(2, 1).weight, 5)

    def test_clear_tags_everywhere(self):
        self.bus.add_tag(3, TAGS["NEUTRAL_POLE"])
        self.bus.add_tag(self.registry.get_edge("3-2"), TAGS["NEUTRAL_LINE"])
        self.bus.add_tag(2, TAGS["OVERVOLTAGE_POLE"])
        self.bus.clear_tags([TAGS["NEUTRAL_POLE"], TAGS["NEUTRAL_LINE"]])
        self.assertEqual(self.map.nodes[3].tags, set())
        self.assertEqual(self.map.line(3, 2).tags, set())
        self.assertEqual(self.map.nodes[2].tags, {TAGS["OVERVOLTAGE_POLE"]})

    def test_unknown_targets_ignored(self):
        self.bus.set_node_color(99, COLOR["FAULT"])
        self.bus.set_node_icon(99, ICONS["caution"])
        self.bus.set_line_style(Edge((8, 9)), LineStyle(COLOR["OFF"]))
        self.assertEqual(self.bus.renderer_failures, 0)
        self.assertEqual(self.map.icons(), {})


class TestDashboardPanel(unittest.TestCase):

    def setUp(self):
        self.state = NetworkState(NodeRegistry())
        self.panel = DashboardPanel(self.state)

    def test_node_detail(self):
        self.state.set_node_state(2, {"status": "WARNING", "voltage": 244.0})
        self.panel.refresh_node_detail(2)
        self.assertEqual(self.panel.detail["name"], "Pole 2")
        self.assertEqual(self.panel.detail["status"], "WARNING")
        self.assertEqual(self.panel.detail["voltage"], 244.0)
        self.assertEqual(self.panel.refresh_count, 1)

    def test_substation_button(self):
        self.panel.update_substation_button()
        self.assertFalse(self.panel.substation_button_visible)

        self.state.set_node_state(SUBSTATION_ID, {"status": "OK", "fault_type": "LINE TO LINE"})
        self.panel.update_substation_button()
        self.assertTrue(self.panel.substation_button_visible)

        self.state.set_node_state(SUBSTATION_ID, {"status": "OK", "fault_type": "NIL"})
        self.panel.update_substation_button()
        self.assertFalse(self.panel.substation_button_visible)

        self.state.set_node_state(SUBSTATION_ID, {"status": "CRITICAL"})
        self.panel.update_substation_button()
        self.assertTrue(self.panel.to_dict()["substation_button_visible"])


if __name__ == '__main__':
    unittest.main(verbosity=2)
