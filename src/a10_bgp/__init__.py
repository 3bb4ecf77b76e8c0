"""Synchronise A10 BGP neighbours with Kubernetes nodes.

This package holds the pure library side of the agent: deciding which nodes
should be peered with the device, talking to the device's aXAPI and
reconciling the two.  It does not know how nodes are discovered; the
``a10_bgp_agent`` runtime feeds it :class:`~a10_bgp.config.NodeRecord`
snapshots and lifecycle events.

The main entry points are:

* :func:`a10_bgp.eligibility.evaluate`, the node membership predicate;
* :class:`a10_bgp.client.A10NeighborClient`, which owns the device session
  and the mirrored neighbour set; and
* :class:`a10_bgp.reconciler.NeighborReconciler`, which prunes stale
  neighbours at startup and applies per-event corrections afterwards.
"""

from .client import A10NeighborClient  # noqa: F401
from .reconciler import NeighborReconciler  # noqa: F401

__all__ = ["A10NeighborClient", "NeighborReconciler"]
