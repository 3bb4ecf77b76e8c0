"""Kubernetes node watcher feeding lifecycle events to the registry."""

from __future__ import annotations

import logging
from pathlib import Path
from threading import Event, Thread
from typing import Dict, Iterator, List, Optional, Tuple

from kubernetes import client, config, watch
from kubernetes.client.rest import ApiException

from a10_bgp.config import NodeRecord

from ..events import NodeAdded, NodeDeleted, NodeUpdated
from ..registry import EventRegistry
from .utils import node_from_v1

LOG = logging.getLogger(__name__)

WATCH_TIMEOUT = 30
RETRY_INTERVAL = 5.0

_WATCH_EVENTS = {
    "ADDED": NodeAdded,
    "MODIFIED": NodeUpdated,
    "DELETED": NodeDeleted,
}


def build_core_api(kubeconfig: Optional[Path] = None) -> client.CoreV1Api:
    """Return a CoreV1 API client.

    ``kubeconfig`` selects out-of-cluster credentials; without it the
    service account mounted into the pod is used.
    """

    if kubeconfig:
        LOG.info("loading kubeconfig from %s", kubeconfig)
        config.load_kube_config(config_file=str(kubeconfig))
    else:
        LOG.info("using in-cluster configuration")
        config.load_incluster_config()
    return client.CoreV1Api()


class WatchExpired(Exception):
    """The resource version we watch from is no longer available."""


class KubeNodeSource:
    """List and watch cluster nodes as :class:`NodeRecord` values."""

    def __init__(self, core_api: client.CoreV1Api) -> None:
        self._core = core_api
        self._watch: Optional[watch.Watch] = None

    def list_nodes(
        self, label_selector: Optional[str] = None
    ) -> Tuple[List[NodeRecord], str]:
        kwargs = {"label_selector": label_selector} if label_selector else {}
        response = self._core.list_node(**kwargs)
        nodes = [node_from_v1(item) for item in response.items]
        LOG.debug("listed %d nodes (selector=%s)", len(nodes), label_selector)
        return nodes, response.metadata.resource_version

    def watch(
        self, resource_version: str, timeout_seconds: int = WATCH_TIMEOUT
    ) -> Iterator[Tuple[str, NodeRecord, str]]:
        """Yield ``(type, node, resource_version)`` until the server times out."""

        self._watch = watch.Watch()
        try:
            for event in self._watch.stream(
                self._core.list_node,
                resource_version=resource_version,
                timeout_seconds=timeout_seconds,
                _request_timeout=timeout_seconds + 5,
            ):
                kind = event["type"]
                if kind == "ERROR":
                    raise WatchExpired(str(event.get("raw_object") or event["object"]))
                if kind not in _WATCH_EVENTS:
                    LOG.debug("ignoring %s watch event", kind)
                    continue
                obj = event["object"]
                yield kind, node_from_v1(obj), obj.metadata.resource_version
        except ApiException as exc:
            if exc.status == 410:
                raise WatchExpired(exc.reason) from exc
            raise
        finally:
            self._watch = None

    def stop(self) -> None:
        current = self._watch
        if current is not None:
            current.stop()


class KubeNodeWatcher(Thread):
    """Publish node lifecycle events to ``registry`` one at a time.

    The first list of nodes is delivered as add events, like an informer's
    initial sync, after which :attr:`synced` is set.  When the watch expires
    the nodes are listed again: known nodes are replayed as updates and nodes
    that vanished in the meantime as deletes.
    """

    def __init__(
        self,
        registry: EventRegistry,
        source: KubeNodeSource,
        stop_event: Event,
        *,
        timeout_seconds: int = WATCH_TIMEOUT,
        retry_interval: float = RETRY_INTERVAL,
    ) -> None:
        super().__init__(name="kube-node-watcher", daemon=True)
        self._registry = registry
        self._source = source
        self._stop_event = stop_event
        self._timeout_seconds = timeout_seconds
        self._retry_interval = retry_interval
        self._known: Dict[str, NodeRecord] = {}
        self.synced = Event()

    def wait_for_sync(self, timeout: Optional[float] = None) -> bool:
        return self.synced.wait(timeout)

    def stop(self) -> None:
        self._stop_event.set()
        self._source.stop()

    def run(self) -> None:
        resource_version: Optional[str] = None
        while not self._stop_event.is_set():
            try:
                if resource_version is None:
                    resource_version = self.resync()
                resource_version = self.watch_once(resource_version)
            except WatchExpired as exc:
                LOG.info("node watch expired (%s), relisting", exc)
                resource_version = None
            except Exception:  # pragma: no cover - logged and retried
                LOG.exception("node watcher encountered an error")
                resource_version = None
                self._stop_event.wait(self._retry_interval)
        LOG.info("node watcher stopped")

    def resync(self) -> str:
        nodes, resource_version = self._source.list_nodes()
        listed = {node.name: node for node in nodes}
        initial = not self.synced.is_set()

        for node in nodes:
            if initial or node.name not in self._known:
                self._dispatch(NodeAdded(node))
            else:
                self._dispatch(NodeUpdated(node))
        for name in list(self._known):
            if name not in listed:
                self._dispatch(NodeDeleted(self._known[name]))

        self._known = listed
        self.synced.set()
        LOG.info("node watcher synced %d nodes at version %s", len(nodes), resource_version)
        return resource_version

    def watch_once(self, resource_version: str) -> str:
        for kind, node, version in self._source.watch(
            resource_version, self._timeout_seconds
        ):
            event_cls = _WATCH_EVENTS[kind]
            if event_cls is NodeDeleted:
                self._known.pop(node.name, None)
            else:
                self._known[node.name] = node
            self._dispatch(event_cls(node))
            resource_version = version
            if self._stop_event.is_set():
                break
        return resource_version

    def _dispatch(self, event) -> None:
        LOG.debug("dispatching %s for node %s", type(event).__name__, event.node.name)
        self._registry.handle(event)
