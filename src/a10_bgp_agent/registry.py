"""Tiny event registry dispatching node events to handlers."""

from __future__ import annotations

from typing import Dict

from a10_bgp.reconciler import NodeEventHandler

from .events import NodeAdded, NodeDeleted, NodeEvent, NodeUpdated


class EventRegistry:
    """Dispatch node events to registered handlers, one event at a time."""

    def __init__(self) -> None:
        self._handlers: Dict[str, NodeEventHandler] = {}

    def register(self, name: str, handler: NodeEventHandler) -> None:
        if name in self._handlers:
            raise ValueError(f"handler '{name}' already registered")
        self._handlers[name] = handler

    def unregister(self, name: str) -> None:
        self._handlers.pop(name, None)

    def handle(self, event: NodeEvent) -> None:
        if isinstance(event, NodeAdded):
            for handler in self._handlers.values():
                handler.on_node_added(event.node)
        elif isinstance(event, NodeUpdated):
            for handler in self._handlers.values():
                handler.on_node_updated(event.node)
        elif isinstance(event, NodeDeleted):
            for handler in self._handlers.values():
                handler.on_node_deleted(event.node)
        else:
            raise TypeError(f"Unsupported event type: {type(event)!r}")
