from __future__ import annotations

from typing import Any, Dict, List, Tuple

import pytest
import requests

from a10_bgp.client import A10NeighborClient
from a10_bgp.config import DeviceConfig, NodeAddress, NodeRecord

BASE_URL = "https://a10.example"
NEIGHBOR_PATH = "/axapi/v3/router/bgp/65000/neighbor/ipv4-neighbor"


class FakeResponse:
    def __init__(self, status_code: int = 200, payload: Any = None) -> None:
        self.status_code = status_code
        self._payload = payload

    def json(self) -> Any:
        if self._payload is None:
            raise ValueError("no JSON body")
        return self._payload


class FakeSession:
    """Stand-in for ``requests.Session`` recording every request."""

    def __init__(self) -> None:
        self.verify = True
        self.closed = False
        self.calls: List[Dict[str, Any]] = []
        self._routes: Dict[Tuple[str, str], List[Any]] = {}

    def queue(self, method: str, path: str, *responses: Any) -> None:
        """Answer ``method path`` with ``responses`` in order.

        The last response keeps being returned once the queue drains.
        Exceptions are raised instead of returned.
        """

        self._routes[(method, path)] = list(responses)

    def request(self, method, url, json=None, headers=None, timeout=None):
        path = url[len(BASE_URL):]
        self.calls.append(
            {"method": method, "path": path, "json": json, "headers": headers, "timeout": timeout}
        )
        queued = self._routes.get((method, path))
        if queued:
            item = queued.pop(0) if len(queued) > 1 else queued[0]
            if isinstance(item, Exception):
                raise item
            return item
        if path == "/axapi/v3/auth":
            return FakeResponse(200, {"authresponse": {"signature": "sig-1"}})
        return FakeResponse(200, {})

    def calls_for(self, method: str, path: str | None = None) -> List[Dict[str, Any]]:
        return [
            call
            for call in self.calls
            if call["method"] == method and (path is None or call["path"] == path)
        ]

    def close(self) -> None:
        self.closed = True


def build_config(**overrides: Any) -> DeviceConfig:
    values = dict(
        address=BASE_URL,
        username="admin",
        password="secret",
        local_asn=65000,
        remote_asn=54321,
        timeout=2.5,
    )
    values.update(overrides)
    return DeviceConfig(**values)


def build_node(
    name: str = "n1",
    *,
    ready: bool | None = True,
    cordoned: bool = False,
    external_ip: str | None = "1.2.3.4",
    labels: Dict[str, str] | None = None,
) -> NodeRecord:
    addresses = [NodeAddress("InternalIP", "10.0.0.1")]
    if external_ip is not None:
        addresses.append(NodeAddress("ExternalIP", external_ip))
    return NodeRecord(
        name=name,
        ready=ready,
        cordoned=cordoned,
        labels={"bgp": "cilium"} if labels is None else labels,
        addresses=tuple(addresses),
    )


def seed_neighbors(session: FakeSession, *entries: Tuple[str, int]) -> None:
    session.queue(
        "GET",
        NEIGHBOR_PATH,
        FakeResponse(
            200,
            {
                "ipv4-neighbor-list": [
                    {"neighbor-ipv4": address, "nbr-remote-as": asn}
                    for address, asn in entries
                ]
            },
        ),
    )


@pytest.fixture
def session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def client(session: FakeSession) -> A10NeighborClient:
    return A10NeighborClient(build_config(), session=session)  # type: ignore[arg-type]


@pytest.fixture
def connection_error() -> requests.ConnectionError:
    return requests.ConnectionError("connection refused")
