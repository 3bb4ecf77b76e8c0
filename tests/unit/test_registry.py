import pytest

from a10_bgp.reconciler import NeighborReconciler
from a10_bgp_agent.events import NodeAdded, NodeDeleted, NodeUpdated
from a10_bgp_agent.registry import EventRegistry

from conftest import build_node


class RecordingHandler:
    def __init__(self):
        self.events = []

    def on_node_added(self, node):
        self.events.append(("added", node.name))

    def on_node_updated(self, node):
        self.events.append(("updated", node.name))

    def on_node_deleted(self, node):
        self.events.append(("deleted", node.name))


def test_registry_dispatches_events_in_order():
    registry = EventRegistry()
    handler = RecordingHandler()
    registry.register("recorder", handler)

    registry.handle(NodeAdded(build_node("n1")))
    registry.handle(NodeUpdated(build_node("n1")))
    registry.handle(NodeDeleted(build_node("n1")))

    assert handler.events == [("added", "n1"), ("updated", "n1"), ("deleted", "n1")]


def test_registry_drives_reconciler(client):
    registry = EventRegistry()
    registry.register("a10", NeighborReconciler(client, "bgp=cilium"))

    registry.handle(NodeAdded(build_node("n1")))
    assert client.neighbors == ("1.2.3.4",)

    registry.handle(NodeDeleted(build_node("n1")))
    assert client.neighbors == ()


def test_registry_rejects_duplicate_registration():
    registry = EventRegistry()
    handler = RecordingHandler()
    registry.register("a10", handler)

    with pytest.raises(ValueError):
        registry.register("a10", handler)


def test_registry_rejects_unknown_events():
    registry = EventRegistry()

    with pytest.raises(TypeError):
        registry.handle(object())
