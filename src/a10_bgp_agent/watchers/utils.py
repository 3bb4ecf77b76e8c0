from __future__ import annotations

from typing import Any, Optional

from a10_bgp.config import NodeAddress, NodeRecord


def _node_ready(conditions: Any) -> Optional[bool]:
    ready = None
    for condition in conditions or ():
        if condition.type == "Ready":
            ready = condition.status == "True"
    return ready


def node_from_v1(node: Any) -> NodeRecord:
    """Convert a ``kubernetes.client.V1Node`` into a :class:`NodeRecord`."""

    metadata = node.metadata
    spec = node.spec
    status = node.status

    addresses = tuple(
        NodeAddress(type=addr.type, address=addr.address)
        for addr in (getattr(status, "addresses", None) or ())
    )
    return NodeRecord(
        name=metadata.name,
        ready=_node_ready(getattr(status, "conditions", None)),
        cordoned=bool(getattr(spec, "unschedulable", False)),
        labels=dict(metadata.labels or {}),
        addresses=addresses,
    )
