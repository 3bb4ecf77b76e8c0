"""aXAPI client owning the device's BGP neighbour list.

The client keeps an in-memory mirror of the neighbours configured on the
device for the target remote AS.  The mirror is populated once by
:meth:`A10NeighborClient.fetch_neighbors` and afterwards only changes through
:meth:`A10NeighborClient.add_neighbor` and
:meth:`A10NeighborClient.remove_neighbor`, each of which updates it right
after the device accepted the call.

TLS verification of the device endpoint is disabled unless
``DeviceConfig.verify_tls`` is set: the management interface of these
appliances ships with a self-signed certificate and we trust the address we
were configured with.
"""

from __future__ import annotations

import logging
from threading import Lock
from typing import Any, List, Optional, Sequence

import requests
import urllib3

from .config import DeviceConfig, Neighbor
from .exceptions import AuthError, RequestError, RetriesExhausted

LOG = logging.getLogger(__name__)

MAX_REQUEST_ATTEMPTS = 3
AUTH_ENDPOINT = "/axapi/v3/auth"
NEIGHBOR_ENDPOINT = "/axapi/v3/router/bgp/{asn}/neighbor/ipv4-neighbor"

DEFAULT_HEADERS = {
    "Accept": "application/json",
    "Content-Type": "application/json",
}


class A10NeighborClient:
    """Add, remove and list BGP neighbours on an A10 device."""

    def __init__(
        self,
        config: DeviceConfig,
        session: Optional[requests.Session] = None,
        *,
        attempts: int = MAX_REQUEST_ATTEMPTS,
    ) -> None:
        self._config = config
        self._attempts = max(1, attempts)
        self._session = session or requests.Session()
        self._session.verify = config.verify_tls
        if not config.verify_tls:
            urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

        self._signature: Optional[str] = None
        self._neighbors: List[str] = []
        # _state_lock guards the mirror and the signature; _mutation_lock
        # makes the check-call-update sequence of add/remove atomic.
        self._state_lock = Lock()
        self._mutation_lock = Lock()

    def __enter__(self) -> "A10NeighborClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        self._session.close()

    @property
    def config(self) -> DeviceConfig:
        return self._config

    @property
    def neighbors(self) -> Sequence[str]:
        """Snapshot of the mirrored neighbour set in insertion order."""

        with self._state_lock:
            return tuple(self._neighbors)

    # ------------------------------------------------------------------
    # Session handling
    # ------------------------------------------------------------------
    def authenticate(self) -> str:
        """Log in and store the returned signature."""

        LOG.debug("logging in to %s as %s", self._config.base_url, self._config.username)
        payload = {
            "credentials": {
                "username": self._config.username,
                "password": self._config.password,
            }
        }
        try:
            response = self._request(
                "POST", AUTH_ENDPOINT, operation="auth", payload=payload, signed=False
            )
        except RequestError as exc:
            raise AuthError(f"login failed: {exc}", operation="auth") from exc

        try:
            signature = response.json()["authresponse"]["signature"]
        except (ValueError, KeyError, TypeError) as exc:
            raise AuthError(
                f"unexpected login response: {exc!r}", operation="auth"
            ) from exc
        if not signature:
            raise AuthError("login response carried an empty signature", operation="auth")

        with self._state_lock:
            self._signature = str(signature)
        LOG.debug("logged in to %s", self._config.base_url)
        return self._signature

    # ------------------------------------------------------------------
    # Neighbour operations
    # ------------------------------------------------------------------
    def fetch_neighbors(self) -> Sequence[str]:
        """Replace the mirror with the device's neighbours for our remote AS."""

        with self._mutation_lock:
            self.authenticate()
            response = self._request("GET", self._neighbor_path(), operation="fetch")
            entries = self._parse_neighbor_list(response)

            matching = []
            for entry in entries:
                address = entry.get("neighbor-ipv4")
                remote_asn = entry.get("nbr-remote-as")
                if not address or remote_asn != self._config.remote_asn:
                    LOG.debug("ignoring device neighbour %s (remote-as %s)", address, remote_asn)
                elif address in matching:
                    LOG.debug("device listed neighbour %s more than once", address)
                else:
                    matching.append(address)

            with self._state_lock:
                self._neighbors = matching

        LOG.info(
            "device has %d neighbours with remote-as %s: %s",
            len(matching),
            self._config.remote_asn,
            matching,
        )
        return tuple(matching)

    def contains_neighbor(self, address: str) -> bool:
        with self._state_lock:
            return address in self._neighbors

    def add_neighbor(self, address: str) -> bool:
        """Create ``address`` on the device.

        Returns ``False`` without contacting the device when the neighbour is
        already mirrored, ``True`` when it was created.
        """

        with self._mutation_lock:
            if self.contains_neighbor(address):
                LOG.info("neighbour %s already present on device", address)
                return False

            self._authenticate_for("add", address)
            LOG.info("adding neighbour %s (remote-as %s)", address, self._config.remote_asn)
            neighbor = Neighbor(address=address, remote_asn=self._config.remote_asn)
            self._request(
                "POST",
                self._neighbor_path(),
                operation="add",
                address=address,
                payload={"ipv4-neighbor": neighbor.as_payload()},
            )

            with self._state_lock:
                self._neighbors.append(address)
        return True

    def remove_neighbor(self, address: str) -> bool:
        """Delete ``address`` from the device.

        Returns ``False`` without contacting the device when the neighbour is
        not mirrored, ``True`` when it was removed.
        """

        with self._mutation_lock:
            if not self.contains_neighbor(address):
                LOG.info("neighbour %s not present on device", address)
                return False

            self._authenticate_for("remove", address)
            LOG.info("removing neighbour %s", address)
            self._request(
                "DELETE",
                f"{self._neighbor_path()}/{address}",
                operation="remove",
                address=address,
            )

            with self._state_lock:
                self._neighbors.remove(address)
                remaining = list(self._neighbors)
        LOG.debug("neighbours after removal: %s", remaining)
        return True

    # ------------------------------------------------------------------
    # HTTP plumbing
    # ------------------------------------------------------------------
    def _authenticate_for(self, operation: str, address: str) -> None:
        try:
            self.authenticate()
        except AuthError as exc:
            raise AuthError(str(exc.args[0]), operation=operation, address=address) from exc

    @staticmethod
    def _parse_neighbor_list(response: requests.Response) -> List[dict]:
        try:
            body = response.json()
        except ValueError as exc:
            raise RequestError(
                f"unexpected neighbour list response: {exc!r}", operation="fetch"
            ) from exc
        if not isinstance(body, dict):
            raise RequestError(
                f"neighbour list response is not an object: {body!r}", operation="fetch"
            )

        entries = body.get("ipv4-neighbor-list")
        if entries is None:
            return []
        if not isinstance(entries, list) or not all(isinstance(e, dict) for e in entries):
            raise RequestError(
                f"malformed ipv4-neighbor-list: {entries!r}", operation="fetch"
            )
        return entries

    def _neighbor_path(self) -> str:
        return NEIGHBOR_ENDPOINT.format(asn=self._config.local_asn)

    def _request(
        self,
        method: str,
        path: str,
        *,
        operation: str,
        address: Optional[str] = None,
        payload: Optional[Any] = None,
        signed: bool = True,
    ) -> requests.Response:
        url = f"{self._config.base_url}{path}"
        headers = dict(DEFAULT_HEADERS)
        if signed:
            with self._state_lock:
                signature = self._signature
            headers["Authorization"] = f"A10 {signature}"

        last_error: Optional[Exception] = None
        for attempt in range(1, self._attempts + 1):
            if last_error is not None:
                LOG.warning(
                    "retrying %s %s (attempt %d/%d): %s",
                    method,
                    url,
                    attempt,
                    self._attempts,
                    last_error,
                )
            try:
                response = self._session.request(
                    method,
                    url,
                    json=payload,
                    headers=headers,
                    timeout=self._config.timeout,
                )
            except requests.RequestException as exc:
                last_error = RequestError(
                    f"{method} {url}: {exc}", operation=operation, address=address
                )
                continue

            if not 200 <= response.status_code < 300:
                last_error = RequestError(
                    f"{method} {url} returned HTTP {response.status_code}",
                    operation=operation,
                    address=address,
                    status_code=response.status_code,
                )
                continue

            return response

        assert last_error is not None
        raise RetriesExhausted(
            last_error, self._attempts, operation=operation, address=address
        )
