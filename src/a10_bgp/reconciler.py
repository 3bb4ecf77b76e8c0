"""Keep the device's neighbour list equal to the set of eligible nodes.

:class:`NeighborReconciler` runs in two modes.  At startup
:meth:`~NeighborReconciler.full_reconcile` prunes device neighbours that no
eligible node backs; it never adds missing neighbours, those are picked up
from the node events that follow.  Afterwards the ``on_node_*`` handlers
apply one add or remove per event.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from threading import Lock
from typing import Dict, Iterable, List, Optional, Sequence

from .client import A10NeighborClient
from .config import NodeRecord
from .eligibility import evaluate, node_external_address, node_labeled
from .exceptions import DeviceError

LOG = logging.getLogger(__name__)


class NodeEventHandler(ABC):
    """Base class for handlers managed by the agent's event registry."""

    @abstractmethod
    def on_node_added(self, node: NodeRecord) -> None:
        """React to a node appearing in the cluster."""

    @abstractmethod
    def on_node_updated(self, node: NodeRecord) -> None:
        """React to a change of an existing node."""

    @abstractmethod
    def on_node_deleted(self, node: NodeRecord) -> None:
        """React to a node leaving the cluster."""


class NeighborReconciler(NodeEventHandler):
    """Drive :class:`A10NeighborClient` from cluster node state."""

    def __init__(self, client: A10NeighborClient, label_selector: str) -> None:
        self._client = client
        self._label_selector = label_selector
        # Last external address seen per node, used when a node stops
        # reporting one but still has to be removed.
        self._last_address: Dict[str, str] = {}
        self._addresses_lock = Lock()

    @property
    def client(self) -> A10NeighborClient:
        return self._client

    def desired_addresses(self, nodes: Iterable[NodeRecord]) -> List[str]:
        """Return the addresses of eligible ``nodes`` without duplicates."""

        desired: List[str] = []
        for node in nodes:
            self._remember(node)
            result = evaluate(node, self._label_selector)
            if result.eligible and result.address not in desired:
                desired.append(result.address)
        return desired

    # ------------------------------------------------------------------
    # Full reconciliation
    # ------------------------------------------------------------------
    def full_reconcile(self, nodes: Iterable[NodeRecord]) -> Sequence[str]:
        """Remove device neighbours that no eligible node backs.

        Returns the removed addresses.  Device errors propagate; at startup
        they are fatal.
        """

        desired = set(self.desired_addresses(nodes))
        current = list(self._client.neighbors)
        LOG.info(
            "reconciling %d device neighbours against %d eligible nodes",
            len(current),
            len(desired),
        )

        removed = []
        for address in current:
            if address in desired:
                LOG.debug("neighbour %s is backed by an eligible node", address)
                continue
            LOG.info("neighbour %s has no eligible node, removing", address)
            if self._client.remove_neighbor(address):
                removed.append(address)
        return removed

    # ------------------------------------------------------------------
    # Incremental reconciliation
    # ------------------------------------------------------------------
    def on_node_added(self, node: NodeRecord) -> None:
        LOG.info("node %s added", node.name)
        self._remember(node)
        result = evaluate(node, self._label_selector)
        if result.eligible:
            self._apply("add", node, result.address)

    def on_node_updated(self, node: NodeRecord) -> None:
        LOG.info("node %s updated", node.name)
        previous = self._remember(node)
        result = evaluate(node, self._label_selector)
        if result.eligible:
            self._apply("add", node, result.address)
            return

        address = node_external_address(node) or previous
        if address is None:
            LOG.info("node %s is not eligible and has no known address", node.name)
            return
        self._apply("remove", node, address)

    def on_node_deleted(self, node: NodeRecord) -> None:
        LOG.info("node %s deleted", node.name)
        with self._addresses_lock:
            previous = self._last_address.pop(node.name, None)
        if not node_labeled(node, self._label_selector):
            LOG.debug("node %s does not carry %s, skipping", node.name, self._label_selector)
            return

        address = node_external_address(node) or previous
        if address is None:
            LOG.info("deleted node %s has no known address", node.name)
            return
        self._apply("remove", node, address)

    def _remember(self, node: NodeRecord) -> Optional[str]:
        """Record the node's current address and return the previous one."""

        address = node_external_address(node)
        with self._addresses_lock:
            previous = self._last_address.get(node.name)
            if address:
                self._last_address[node.name] = address
        return previous

    def _apply(self, action: str, node: NodeRecord, address: str) -> None:
        try:
            if action == "add":
                self._client.add_neighbor(address)
            else:
                self._client.remove_neighbor(address)
        except DeviceError as exc:
            LOG.error(
                "failed to %s neighbour %s for node %s: %s",
                action,
                address,
                node.name,
                exc,
            )
