"""Entry point for the A10 BGP neighbour agent."""

from __future__ import annotations

import argparse
import logging
import signal
import sys
from pathlib import Path
from threading import Event

import urllib3
from kubernetes.client.rest import ApiException
from kubernetes.config import ConfigException

from a10_bgp import A10NeighborClient, NeighborReconciler
from a10_bgp.client import MAX_REQUEST_ATTEMPTS
from a10_bgp.exceptions import ConfigError, DeviceError

from .config import AgentConfig, load_config
from .registry import EventRegistry
from .watchers import KubeNodeSource, KubeNodeWatcher, build_core_api
from .watchers.kube import WATCH_TIMEOUT

LOG = logging.getLogger(__name__)

SYNC_TIMEOUT = 60.0
JOIN_GRACE = 5.0


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    )


def shutdown_timeout(config: AgentConfig) -> float:
    """Time the watcher may need to finish a pending watch and device call."""

    return WATCH_TIMEOUT + JOIN_GRACE + MAX_REQUEST_ATTEMPTS * config.device.timeout


def bootstrap(
    config: AgentConfig,
    client: A10NeighborClient,
    source: KubeNodeSource,
) -> NeighborReconciler:
    """Fetch device state and prune neighbours without an eligible node."""

    client.fetch_neighbors()
    nodes, _ = source.list_nodes(config.label_selector)
    reconciler = NeighborReconciler(client, config.label_selector)
    removed = reconciler.full_reconcile(nodes)
    LOG.info("startup reconciliation removed %d neighbours: %s", len(removed), removed)
    return reconciler


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Keep A10 BGP neighbours in sync with Kubernetes nodes"
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Optional YAML file with default settings; environment variables win",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    args = parser.parse_args(argv)

    try:
        config = load_config(path=args.config)
    except ConfigError as exc:
        _setup_logging(args.verbose)
        LOG.error("invalid configuration: %s", exc)
        return 2

    _setup_logging(args.verbose or config.debug)
    LOG.info("configuration: %s", config.describe())

    stop_event = Event()

    def _shutdown(signum, frame):  # pragma: no cover - signal handler
        LOG.info("received signal %s, shutting down", signum)
        stop_event.set()

    signal.signal(signal.SIGINT, _shutdown)
    signal.signal(signal.SIGTERM, _shutdown)

    with A10NeighborClient(config.device) as client:
        try:
            source = KubeNodeSource(build_core_api(config.kubeconfig))
            reconciler = bootstrap(config, client, source)
        except DeviceError as exc:
            LOG.error("cannot reconcile device %s: %s", config.device.base_url, exc)
            return 1
        except (ApiException, ConfigException, urllib3.exceptions.HTTPError) as exc:
            LOG.error("cannot list cluster nodes: %s", exc)
            return 1

        registry = EventRegistry()
        registry.register("a10", reconciler)

        watcher = KubeNodeWatcher(registry, source, stop_event)
        watcher.start()
        if not watcher.wait_for_sync(SYNC_TIMEOUT):
            LOG.warning("node watcher has not synced after %.0fs", SYNC_TIMEOUT)

        try:
            while not stop_event.is_set():
                stop_event.wait(1.0)
        except KeyboardInterrupt:  # pragma: no cover - fallback if signal not set
            stop_event.set()

        watcher.stop()
        join_timeout = shutdown_timeout(config)
        watcher.join(join_timeout)
        if watcher.is_alive():
            LOG.warning("node watcher still running after %.0fs, exiting anyway", join_timeout)

    LOG.info("a10 bgp agent stopped")
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
