"""
Visual Commands
===============

Declarative rendering requests issued by the fault engine.

The engine never touches a renderer directly. It calls the bus methods
(set_node_color, set_node_icon, set_line_style, ...); the bus turns each
call into a VisualCommand and hands it to every attached renderer.

A renderer that raises is logged and skipped. One broken renderer never
blocks the remaining commands, nor the state/log/alert effects of the
transition that issued them.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional, Union

from grid.registry import Edge

logger = logging.getLogger(__name__)

ALL = "*"


class VisualOperation(str, Enum):
    SET_COLOR = "SetColor"
    SET_ICON = "SetIcon"
    CLEAR_ICON = "ClearIcon"
    SET_LINE_STYLE = "SetLineStyle"
    RESET_ALL = "ResetAll"
    ADD_TAG = "AddTag"
    CLEAR_TAGS = "ClearTags"


@dataclass(frozen=True)
class LineStyle:
    color: str
    weight: Optional[float] = None
    opacity: Optional[float] = None

    def to_dict(self) -> Dict:
        data = {"color": self.color}
        if self.weight is not None:
            data["weight"] = self.weight
        if self.opacity is not None:
            data["opacity"] = self.opacity
        return data


Target = Union[int, Edge, str, None]


@dataclass(frozen=True)
class VisualCommand:
    target: Target
    operation: VisualOperation
    params: Dict = field(default_factory=dict)

    def to_dict(self) -> Dict:
        if isinstance(self.target, Edge):
            target = {"line": self.target.key}
        elif self.target is None or self.target == ALL:
            target = ALL
        else:
            target = {"node": self.target}
        params = {
            k: (v.to_dict() if isinstance(v, LineStyle) else list(v) if isinstance(v, (tuple, frozenset)) else v)
            for k, v in self.params.items()
        }
        return {"target": target, "operation": self.operation.value, "params": params}


Renderer = Callable[[VisualCommand], None]


class VisualCommandBus:
    """Fans visual commands out to attached renderers."""

    def __init__(self, renderers: Optional[Iterable[Renderer]] = None):
        self.renderers: List[Renderer] = list(renderers or [])
        self.commands_issued = 0
        self.renderer_failures = 0

    def attach(self, renderer: Renderer):
        self.renderers.append(renderer)

    def detach(self, renderer: Renderer):
        if renderer in self.renderers:
            self.renderers.remove(renderer)

    def dispatch(self, command: VisualCommand):
        self.commands_issued += 1
        for renderer in list(self.renderers):
            try:
                renderer(command)
            except Exception as e:
                self.renderer_failures += 1
                logger.warning(f"Renderer failed on {command.operation.value} {command.target}: {e}")

    # ------------------------------------------------------------------
    # Node commands
    # ------------------------------------------------------------------

    def set_node_color(self, node_id: int, color: str, border_only: bool = False, include_lines: bool = True):
        self.dispatch(VisualCommand(
            node_id, VisualOperation.SET_COLOR,
            {"color": color, "border_only": border_only, "include_lines": include_lines},
        ))

    def set_node_icon(self, node_id: int, ref: str):
        self.dispatch(VisualCommand(node_id, VisualOperation.SET_ICON, {"ref": ref}))

    def clear_node_icon(self, node_id: int):
        self.dispatch(VisualCommand(node_id, VisualOperation.CLEAR_ICON))

    def clear_all_icons(self):
        self.dispatch(VisualCommand(ALL, VisualOperation.CLEAR_ICON))

    def reset_all_visuals(self):
        self.dispatch(VisualCommand(ALL, VisualOperation.RESET_ALL))

    # ------------------------------------------------------------------
    # Line commands
    # ------------------------------------------------------------------

    def set_line_style(self, edge: Edge, style: LineStyle):
        self.dispatch(VisualCommand(edge, VisualOperation.SET_LINE_STYLE, {"style": style}))

    # ------------------------------------------------------------------
    # Tags (voltage and neutral overlays)
    # ------------------------------------------------------------------

    def add_tag(self, target: Union[int, Edge], tag: str):
        self.dispatch(VisualCommand(target, VisualOperation.ADD_TAG, {"tag": tag}))

    def clear_tags(self, tags: Iterable[str]):
        """Remove the given tags from every node and line"""
        self.dispatch(VisualCommand(ALL, VisualOperation.CLEAR_TAGS, {"tags": frozenset(tags)}))


class CommandRecorder:
    """Renderer that keeps every command it receives."""

    def __init__(self):
        self.commands: List[VisualCommand] = []

    def __call__(self, command: VisualCommand):
        self.commands.append(command)

    def clear(self):
        self.commands.clear()

    def of(self, operation: VisualOperation) -> List[VisualCommand]:
        return [c for c in self.commands if c.operation == operation]
