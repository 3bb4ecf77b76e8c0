"""Node lifecycle events consumed by the event registry."""

from __future__ import annotations

from dataclasses import dataclass

from a10_bgp.config import NodeRecord


@dataclass(frozen=True)
class NodeAdded:
    """A node appeared in the cluster (or was listed during initial sync)."""

    node: NodeRecord


@dataclass(frozen=True)
class NodeUpdated:
    """The node's status, spec or labels changed.

    The cluster publishes the full node object so handlers can re-evaluate
    it from scratch.
    """

    node: NodeRecord


@dataclass(frozen=True)
class NodeDeleted:
    """The node was removed; ``node`` is its last observed state."""

    node: NodeRecord


NodeEvent = NodeAdded | NodeUpdated | NodeDeleted
