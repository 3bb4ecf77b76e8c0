"""Decide whether a cluster node should be peered with the device."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from .config import EXTERNAL_IP, LabelSelector, NodeRecord

LOG = logging.getLogger(__name__)


@dataclass(frozen=True)
class Eligibility:
    eligible: bool
    address: Optional[str] = None

    def __bool__(self) -> bool:
        return self.eligible


NOT_ELIGIBLE = Eligibility(eligible=False)


def node_ready(node: NodeRecord) -> bool:
    return node.ready is True


def node_cordoned(node: NodeRecord) -> bool:
    return bool(node.cordoned)


def node_external_address(node: NodeRecord) -> Optional[str]:
    """Return the first ``ExternalIP`` address of ``node``, if any."""

    for address in node.addresses:
        if address.type == EXTERNAL_IP:
            return address.address
    return None


def node_labeled(node: NodeRecord, selector: str) -> bool:
    """Return ``True`` when ``node`` carries the ``key=value`` label.

    A malformed selector never matches.
    """

    parsed = LabelSelector.parse(selector)
    if parsed is None:
        LOG.error("invalid label selector %r, expected key=value", selector)
        return False
    return parsed.key in node.labels and node.labels[parsed.key] == parsed.value


def evaluate(node: NodeRecord, selector: str) -> Eligibility:
    """Evaluate ``node`` against every neighbour membership criterion."""

    address = node_external_address(node)
    eligible = (
        node_ready(node)
        and not node_cordoned(node)
        and bool(address)
        and node_labeled(node, selector)
    )
    LOG.debug(
        "node %s eligible=%s (ready=%s cordoned=%s address=%s)",
        node.name,
        eligible,
        node.ready,
        node.cordoned,
        address,
    )
    if not eligible:
        return NOT_ELIGIBLE
    return Eligibility(eligible=True, address=address)
