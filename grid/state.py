"""
Network State
=============

Authoritative store for everything the fault engine derives from telemetry:

    - NodeState snapshot per node (status, fault type, last readings)
    - Bounded voltage/current history per node (AnalyticsSeries)
    - Substation online flag
    - Currently selected node of the dashboard

Mutation goes through the accessor methods only. Readers that need a
consistent view across a read-then-act sequence hold ``state.lock``.
Renderers and chart feeds register with ``subscribe()`` and receive a
StateChange after every mutation.
"""

import math
import threading
import time
import logging
from collections import deque
from dataclasses import dataclass, field, asdict
from typing import Callable, Deque, Dict, Iterator, List, Optional

from config import ANALYTICS_MAX_DATA_POINTS
from grid.registry import NodeRegistry

logger = logging.getLogger(__name__)

# WARNING fault types that keep the network in an abnormal state
ACTIVE_WARNING_TYPES = frozenset({"overvoltage", "undervoltage", "neutralfault", "neutral break"})
ACTIVE_FAULT_STATUSES = frozenset({"FAULT"})


@dataclass
class NodeState:
    """Current snapshot of one node."""
    node_id: int
    voltage: Optional[float] = None
    current: Optional[float] = None
    fault_code: Optional[int] = None
    fault_type: str = "Normal"
    status: str = "OK"
    breaker_status: Optional[str] = None
    timestamp: Optional[float] = None
    extra: Dict = field(default_factory=dict)

    def is_active(self) -> bool:
        """FAULT, or WARNING with a network-wide fault type"""
        status = (self.status or "").upper()
        if status in ACTIVE_FAULT_STATUSES:
            return True
        return status == "WARNING" and (self.fault_type or "").lower() in ACTIVE_WARNING_TYPES

    def to_dict(self) -> Dict:
        return asdict(self)


_NODE_FIELDS = {"voltage", "current", "fault_code", "fault_type", "status", "breaker_status"}


@dataclass(frozen=True)
class Sample:
    timestamp: float
    value: float


class AnalyticsSeries:
    """Bounded FIFO of (timestamp, value); overflow drops the oldest sample."""

    def __init__(self, capacity: int = ANALYTICS_MAX_DATA_POINTS):
        if capacity < 1:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        self._samples: Deque[Sample] = deque(maxlen=capacity)

    def push(self, timestamp: float, value: float):
        self._samples.append(Sample(timestamp, value))

    def clear(self):
        self._samples.clear()

    def __len__(self) -> int:
        return len(self._samples)

    def __iter__(self) -> Iterator[Sample]:
        return iter(self._samples)

    def values(self) -> List[float]:
        return [s.value for s in self._samples]

    def to_list(self) -> List[Dict]:
        # Chart-ready points
        return [{"x": s.timestamp, "y": s.value} for s in self._samples]


@dataclass
class NodeAnalytics:
    voltage: AnalyticsSeries
    current: AnalyticsSeries

    def clear(self):
        self.voltage.clear()
        self.current.clear()

    def to_dict(self) -> Dict:
        return {"voltage": self.voltage.to_list(), "current": self.current.to_list()}


@dataclass(frozen=True)
class StateChange:
    kind: str  # node, sample, analytics_cleared, reset
    node_id: Optional[int] = None

    def to_dict(self) -> Dict:
        return {"kind": self.kind, "node_id": self.node_id}


def _numeric(value) -> Optional[float]:
    """float(value) for numeric input; None for anything else, NaN included"""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number):
        return None
    return number


class NetworkState:
    def __init__(
        self,
        registry: NodeRegistry,
        capacity: int = ANALYTICS_MAX_DATA_POINTS,
        clock: Callable[[], float] = time.time,
    ):
        self.registry = registry
        self.capacity = capacity
        self.clock = clock
        self.lock = threading.RLock()

        self.nodes: Dict[int, NodeState] = {}
        self.analytics: Dict[int, NodeAnalytics] = {}
        self.substation_online = True
        self.selected_node_id: Optional[int] = None

        self._subscribers: List[Callable[[StateChange], None]] = []
        self._initialize_state()

    def _initialize_state(self):
        """Default OK snapshot and empty series for every registered node"""
        now = self.clock()
        for node in self.registry.get_all_nodes():
            self.nodes[node.node_id] = NodeState(node_id=node.node_id, timestamp=now)
            self.analytics[node.node_id] = self._new_analytics()

    def _new_analytics(self) -> NodeAnalytics:
        return NodeAnalytics(AnalyticsSeries(self.capacity), AnalyticsSeries(self.capacity))

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def subscribe(self, callback: Callable[[StateChange], None]) -> Callable[[], None]:
        """Register a change listener; returns a function that removes it"""
        self._subscribers.append(callback)

        def unsubscribe():
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def _notify(self, change: StateChange):
        for callback in list(self._subscribers):
            try:
                callback(change)
            except Exception as e:
                logger.warning(f"State subscriber failed on {change.kind}: {e}")

    # ------------------------------------------------------------------
    # Node state
    # ------------------------------------------------------------------

    def get_node_state(self, node_id: int) -> NodeState:
        with self.lock:
            if node_id not in self.nodes:
                raise KeyError(node_id)
            return self.nodes[node_id]

    def set_node_state(self, node_id: int, partial: Dict, timestamp: Optional[float] = None) -> NodeState:
        """
        Merge fields into a node's snapshot and stamp it.

        Keys outside the NodeState fields are kept under ``extra``.
        Raises KeyError for ids outside the topology.
        """
        with self.lock:
            state = self.nodes.get(node_id)
            if state is None:
                raise KeyError(node_id)

            for key, value in partial.items():
                if key in _NODE_FIELDS:
                    setattr(state, key, value)
                elif key not in ("node_id", "timestamp"):
                    state.extra[key] = value

            state.timestamp = timestamp if timestamp is not None else self.clock()

        self._notify(StateChange("node", node_id))
        return state

    def any_other_node_active(self, exclude_id: Optional[int] = None) -> bool:
        with self.lock:
            return any(
                s.is_active() for node_id, s in self.nodes.items() if node_id != exclude_id
            )

    def set_substation_online(self, online: bool):
        with self.lock:
            self.substation_online = online

    def set_selected_node(self, node_id: Optional[int]):
        with self.lock:
            self.selected_node_id = node_id

    # ------------------------------------------------------------------
    # Analytics
    # ------------------------------------------------------------------

    def record_sample(self, node_id: int, voltage=None, current=None, timestamp: Optional[float] = None) -> bool:
        """
        Append numeric readings to the node's series; each channel is
        skipped independently when its value is not a number.
        """
        v = _numeric(voltage)
        c = _numeric(current)
        if v is None and c is None:
            return False

        with self.lock:
            ts = timestamp if timestamp is not None else self.clock()
            series = self.analytics.get(node_id)
            if series is None:
                logger.warning(f"No analytics series for unregistered node {node_id}")
                return False
            if v is not None:
                series.voltage.push(ts, v)
            if c is not None:
                series.current.push(ts, c)

        self._notify(StateChange("sample", node_id))
        return True

    def get_analytics(self, node_id: int) -> NodeAnalytics:
        with self.lock:
            return self.analytics[node_id]

    def clear_analytics(self, node_id: Optional[int] = None):
        """Empty one node's series, or every node's when node_id is None"""
        with self.lock:
            targets = [node_id] if node_id is not None else list(self.analytics)
            for target in targets:
                if target in self.analytics:
                    self.analytics[target].clear()
        self._notify(StateChange("analytics_cleared", node_id))

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def reset(self):
        """Restore every node to default OK, empty all series, substation online"""
        with self.lock:
            self.nodes = {}
            self.analytics = {}
            self.substation_online = True
            self.selected_node_id = None
            self._initialize_state()
        logger.info("Network state reset")
        self._notify(StateChange("reset"))

    def snapshot(self) -> Dict:
        with self.lock:
            return {
                "substation_online": self.substation_online,
                "selected_node_id": self.selected_node_id,
                "nodes": {node_id: s.to_dict() for node_id, s in sorted(self.nodes.items())},
                "analytics": {node_id: a.to_dict() for node_id, a in sorted(self.analytics.items())},
            }
