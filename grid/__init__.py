"""
Grid Package
============

Feeder-chain domain core:
    - registry: static topology of the substation and its poles
    - state: per-node status, bounded analytics, online flag
    - fault_engine: fault propagation state machine
    - operator: operator actions on top of the engine

Only the topology and state types are re-exported here; the engine and
operator console sit above the visual and monitoring packages and are
imported from their modules.
"""

from grid.registry import Node, NodeRole, Edge, NodeRegistry
from grid.state import NodeState, AnalyticsSeries, NetworkState, StateChange

__all__ = [
    'Node',
    'NodeRole',
    'Edge',
    'NodeRegistry',
    'NodeState',
    'AnalyticsSeries',
    'NetworkState',
    'StateChange',
]
