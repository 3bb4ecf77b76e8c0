"""Cluster node sources used by the A10 BGP agent."""

from .kube import KubeNodeSource, KubeNodeWatcher, build_core_api  # noqa: F401

__all__ = ["KubeNodeSource", "KubeNodeWatcher", "build_core_api"]
