"""
Node Registry - Static topology of the feeder chain
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple

from config import POLES, SUBSTATION_ID

logger = logging.getLogger(__name__)


class NodeRole(str, Enum):
    SUBSTATION = "Substation"
    POLE = "Pole"


@dataclass(frozen=True)
class Node:
    node_id: int
    role: NodeRole
    display_name: str
    position: Tuple[float, float]

    def to_dict(self) -> Dict:
        return {
            "id": self.node_id,
            "role": self.role.value,
            "name": self.display_name,
            "position": list(self.position),
        }


@dataclass(frozen=True)
class Edge:
    """Line between two adjacent nodes of the chain."""
    ids: Tuple[int, int]

    @property
    def key(self) -> str:
        return f"{self.ids[0]}-{self.ids[1]}"

    def touches(self, node_ids: Iterable[int]) -> bool:
        return any(i in self.ids for i in node_ids)

    def to_dict(self) -> Dict:
        return {"id": self.key, "source": self.ids[0], "target": self.ids[1]}


class NodeRegistry:
    """
    Immutable set of nodes and the lines between them.

    Pole ids must be the contiguous integers 1..N and the substation id
    must be the maximum; downstream of a node is every id strictly below it.
    """

    def __init__(self, poles: Optional[List[Dict]] = None, substation_id: int = SUBSTATION_ID):
        self.substation_id = substation_id
        self.nodes: Dict[int, Node] = {}
        self.chain: List[int] = []
        self.edges: List[Edge] = []
        self._downstream: Dict[int, Tuple[int, ...]] = {}
        self._touching: Dict[int, Tuple[Edge, ...]] = {}
        self._initialize_nodes(poles if poles is not None else POLES)

    def _initialize_nodes(self, poles: List[Dict]):
        """Register nodes in chain order and derive edges and downstream sets"""
        for entry in poles:
            node_id = int(entry["id"])
            if node_id in self.nodes:
                raise ValueError(f"Duplicate node id {node_id}")
            role = NodeRole.SUBSTATION if node_id == self.substation_id else NodeRole.POLE
            node = Node(
                node_id=node_id,
                role=role,
                display_name=entry.get("name", f"Pole {node_id}"),
                position=tuple(entry.get("coords", (0.0, 0.0))),
            )
            self.nodes[node_id] = node
            self.chain.append(node_id)
            logger.info(f"Registered node {node_id} ({role.value}) - {node.display_name}")

        if self.substation_id not in self.nodes:
            raise ValueError(f"Substation {self.substation_id} missing from topology")

        pole_ids = sorted(i for i in self.nodes if i != self.substation_id)
        if pole_ids != list(range(1, len(pole_ids) + 1)):
            raise ValueError(f"Pole ids must be contiguous from 1, got {pole_ids}")
        if pole_ids and self.substation_id < pole_ids[-1]:
            raise ValueError("Substation id must be the highest node id")

        for prev_id, next_id in zip(self.chain, self.chain[1:]):
            self.edges.append(Edge((prev_id, next_id)))

        for node_id in self.nodes:
            self._downstream[node_id] = tuple(range(node_id - 1, 0, -1))
            self._touching[node_id] = tuple(e for e in self.edges if node_id in e.ids)

    def get_node(self, node_id: int) -> Optional[Node]:
        """Get node by ID"""
        return self.nodes.get(node_id)

    def get_all_nodes(self) -> List[Node]:
        """Get all nodes in chain order"""
        return [self.nodes[i] for i in self.chain]

    def pole_ids(self) -> List[int]:
        return [i for i in self.chain if i != self.substation_id]

    def is_substation(self, node_id: int) -> bool:
        return node_id == self.substation_id

    def downstream(self, node_id: int) -> Tuple[int, ...]:
        """Ids strictly below node_id, nearest first"""
        if node_id in self._downstream:
            return self._downstream[node_id]
        return tuple(i for i in sorted(self.pole_ids(), reverse=True) if i < node_id)

    def edges_touching(self, node_ids: Iterable[int]) -> List[Edge]:
        """Lines with at least one end in node_ids, in chain order"""
        wanted = set(node_ids)
        return [e for e in self.edges if e.touches(wanted)]

    def edges_of(self, node_id: int) -> Tuple[Edge, ...]:
        return self._touching.get(node_id, ())

    def get_edge(self, key: str) -> Optional[Edge]:
        for edge in self.edges:
            if edge.key == key:
                return edge
        return None

    def get_topology(self) -> Dict:
        """Get feeder topology for visualization"""
        return {
            "substation_id": self.substation_id,
            "nodes": [n.to_dict() for n in self.get_all_nodes()],
            "edges": [e.to_dict() for e in self.edges],
        }
