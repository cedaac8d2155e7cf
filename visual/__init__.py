"""
Visual Package
==============

Rendering side of the feeder dashboard, decoupled from the fault engine:
    - VisualCommandBus: declarative commands fanned out to renderers
    - MapModel: headless render state of nodes and lines
    - DashboardPanel: selected-node detail and substation restart button
"""

from visual.commands import VisualCommand, VisualCommandBus, VisualOperation, LineStyle, CommandRecorder
from visual.map_model import MapModel
from visual.panel import DashboardPanel

__all__ = [
    'VisualCommand',
    'VisualCommandBus',
    'VisualOperation',
    'LineStyle',
    'CommandRecorder',
    'MapModel',
    'DashboardPanel',
]
