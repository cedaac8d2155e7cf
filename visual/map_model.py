"""
Map Model - Headless render state of the feeder map

Consumes VisualCommands and keeps what a map renderer would show:
node fill/border colour, overlay icon and style tags per node, and
colour/weight/opacity/tags per line. The dashboard service serves its
snapshot; tests assert against it.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Optional, Set

from config import COLOR, LINE_STYLE
from grid.registry import Edge, NodeRegistry
from visual.commands import ALL, LineStyle, VisualCommand, VisualOperation

logger = logging.getLogger(__name__)


@dataclass
class NodeVisual:
    fill: str = COLOR["OK"]
    border: str = COLOR["OK"]
    icon: Optional[str] = None
    tags: Set[str] = field(default_factory=set)

    def to_dict(self) -> Dict:
        return {"fill": self.fill, "border": self.border, "icon": self.icon, "tags": sorted(self.tags)}


@dataclass
class LineVisual:
    color: str = COLOR["OK"]
    weight: float = LINE_STYLE["default"]["weight"]
    opacity: float = LINE_STYLE["default"]["opacity"]
    tags: Set[str] = field(default_factory=set)

    def to_dict(self) -> Dict:
        return {"color": self.color, "weight": self.weight, "opacity": self.opacity, "tags": sorted(self.tags)}


class MapModel:
    def __init__(self, registry: NodeRegistry):
        self.registry = registry
        self.nodes: Dict[int, NodeVisual] = {}
        self.lines: Dict[Edge, LineVisual] = {}
        self.reset()

    def __call__(self, command: VisualCommand):
        self.apply(command)

    def reset(self):
        """All nodes and lines back to OK, no icons, no tags"""
        self.nodes = {n.node_id: NodeVisual() for n in self.registry.get_all_nodes()}
        self.lines = {e: LineVisual() for e in self.registry.edges}

    def apply(self, command: VisualCommand):
        op = command.operation
        params = command.params

        if op == VisualOperation.RESET_ALL:
            self.reset()
        elif op == VisualOperation.SET_COLOR:
            self._set_color(command.target, params["color"],
                            params.get("border_only", False), params.get("include_lines", True))
        elif op == VisualOperation.SET_ICON:
            node = self._node(command.target)
            if node:
                node.icon = params["ref"]
        elif op == VisualOperation.CLEAR_ICON:
            if command.target == ALL:
                for node in self.nodes.values():
                    node.icon = None
            else:
                node = self._node(command.target)
                if node:
                    node.icon = None
        elif op == VisualOperation.SET_LINE_STYLE:
            line = self._line(command.target)
            if line:
                self._style_line(line, params["style"])
        elif op == VisualOperation.ADD_TAG:
            item = self._line(command.target) if isinstance(command.target, Edge) else self._node(command.target)
            if item:
                item.tags.add(params["tag"])
        elif op == VisualOperation.CLEAR_TAGS:
            tags = set(params["tags"])
            for item in list(self.nodes.values()) + list(self.lines.values()):
                item.tags -= tags
        else:
            logger.warning(f"Unsupported visual operation {op}")

    def _node(self, node_id) -> Optional[NodeVisual]:
        node = self.nodes.get(node_id)
        if node is None:
            logger.debug(f"No marker for node {node_id}")
        return node

    def _line(self, edge) -> Optional[LineVisual]:
        line = self.lines.get(edge)
        if line is None:
            logger.debug(f"No line for {edge}")
        return line

    def _style_line(self, line: LineVisual, style: LineStyle):
        line.color = style.color
        if style.weight is not None:
            line.weight = style.weight
        if style.opacity is not None:
            line.opacity = style.opacity

    def _set_color(self, node_id: int, color: str, border_only: bool, include_lines: bool):
        node = self._node(node_id)
        if node is None:
            return
        node.border = color
        if not border_only:
            node.fill = color
        if include_lines:
            for edge in self.registry.edges_of(node_id):
                self.lines[edge].color = color

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def line(self, a: int, b: int) -> LineVisual:
        for edge, line in self.lines.items():
            if set(edge.ids) == {a, b}:
                return line
        raise KeyError((a, b))

    def icons(self) -> Dict[int, str]:
        return {node_id: n.icon for node_id, n in self.nodes.items() if n.icon}

    def snapshot(self) -> Dict:
        return {
            "nodes": {node_id: n.to_dict() for node_id, n in self.nodes.items()},
            "lines": {edge.key: line.to_dict() for edge, line in self.lines.items()},
        }
