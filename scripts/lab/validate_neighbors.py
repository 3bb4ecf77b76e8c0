#!/usr/bin/env python3
"""Compare the device's BGP neighbours with the eligible cluster nodes.

Nothing is changed on either side; the script exits non-zero when the two
sets differ so it can gate lab checks.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[2]
SRC_PATH = REPO_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from a10_bgp import A10NeighborClient, NeighborReconciler  # noqa: E402
from a10_bgp.exceptions import A10BGPError  # noqa: E402
from a10_bgp_agent.config import load_config  # noqa: E402
from a10_bgp_agent.watchers import KubeNodeSource, build_core_api  # noqa: E402

LOG = logging.getLogger(__name__)


class ValidationError(RuntimeError):
    pass


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Optional YAML file with default settings",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    return parser.parse_args()


def check_neighbors(device: set[str], desired: set[str]) -> None:
    missing = desired - device
    extra = device - desired
    problems = []
    if missing:
        problems.append(f"missing on device: {', '.join(sorted(missing))}")
    if extra:
        problems.append(f"not backed by an eligible node: {', '.join(sorted(extra))}")
    if problems:
        raise ValidationError("; ".join(problems))


def main() -> None:
    args = parse_args()
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    config = load_config(path=args.config)
    source = KubeNodeSource(build_core_api(config.kubeconfig))
    nodes, _ = source.list_nodes(config.label_selector)

    with A10NeighborClient(config.device) as client:
        device = set(client.fetch_neighbors())
        desired = set(NeighborReconciler(client, config.label_selector).desired_addresses(nodes))

    check_neighbors(device, desired)
    print(f"device neighbours match {len(desired)} eligible nodes")


if __name__ == "__main__":
    try:
        main()
    except (ValidationError, A10BGPError) as exc:
        print(f"[validate_neighbors] ERROR: {exc}", file=sys.stderr)
        sys.exit(1)
