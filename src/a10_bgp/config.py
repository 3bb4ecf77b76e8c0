"""Data structures shared by the evaluator, device client and reconciler.

These light-weight dataclasses describe cluster nodes and device neighbours
without introducing a dependency on the Kubernetes client models.  The agent
runtime converts ``V1Node`` objects into :class:`NodeRecord` before handing
them to the library, which keeps the core testable with plain values.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping, Optional, Sequence


EXTERNAL_IP = "ExternalIP"


@dataclass(frozen=True)
class NodeAddress:
    """A single ``(type, address)`` pair as reported by the node status."""

    type: str
    address: str


@dataclass(frozen=True)
class NodeRecord:
    """Read-only snapshot of a cluster node.

    Attributes
    ----------
    name:
        The node name.
    ready:
        Value of the ``Ready`` condition; ``None`` when the node does not
        report the condition at all.
    cordoned:
        ``True`` when the node is marked unschedulable.
    labels:
        Node labels.
    addresses:
        Addresses in the order reported by the cluster.
    """

    name: str
    ready: Optional[bool] = None
    cordoned: bool = False
    labels: Mapping[str, str] = field(default_factory=dict)
    addresses: Sequence[NodeAddress] = ()


@dataclass(frozen=True)
class LabelSelector:
    """Equality selector in ``key=value`` form."""

    key: str
    value: str

    @classmethod
    def parse(cls, selector: str) -> Optional["LabelSelector"]:
        """Return the parsed selector or ``None`` when it is malformed."""

        parts = selector.split("=")
        if len(parts) != 2:
            return None
        return cls(key=parts[0], value=parts[1])

    def __str__(self) -> str:
        return f"{self.key}={self.value}"


@dataclass(frozen=True)
class Neighbor:
    """BGP neighbour entry as configured on the device."""

    address: str
    remote_asn: int

    def as_payload(self) -> dict:
        return {"neighbor-ipv4": self.address, "nbr-remote-as": self.remote_asn}


@dataclass(frozen=True)
class DeviceConfig:
    """Connection settings for the aXAPI endpoint of the device."""

    address: str
    username: str
    password: str
    local_asn: int
    remote_asn: int
    timeout: float = 10.0
    verify_tls: bool = False

    @property
    def base_url(self) -> str:
        return self.address.rstrip("/")
