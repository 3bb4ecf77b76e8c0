"""Exception hierarchy raised by the A10 BGP neighbour library."""

from __future__ import annotations

from typing import Optional


class A10BGPError(Exception):
    """Base class for every error raised by this package."""


class ConfigError(A10BGPError, ValueError):
    """Startup configuration is missing or malformed."""


class DeviceError(A10BGPError):
    """A call to the device failed.

    ``operation`` names the client operation (``auth``, ``fetch``, ``add``,
    ``remove``) and ``address`` the neighbour it targeted, when any.
    """

    def __init__(
        self,
        message: str,
        *,
        operation: str,
        address: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.operation = operation
        self.address = address

    def __str__(self) -> str:
        context = self.operation
        if self.address:
            context = f"{context} {self.address}"
        return f"{context}: {super().__str__()}"


class RequestError(DeviceError):
    """Transport failure or non-2xx response."""

    def __init__(
        self,
        message: str,
        *,
        operation: str,
        address: Optional[str] = None,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(message, operation=operation, address=address)
        self.status_code = status_code


class RetriesExhausted(RequestError):
    """Every attempt of a request failed."""

    def __init__(
        self,
        last_error: Exception,
        attempts: int,
        *,
        operation: str,
        address: Optional[str] = None,
    ) -> None:
        super().__init__(
            f"request failed after {attempts} attempts: {_describe(last_error)}",
            operation=operation,
            address=address,
            status_code=getattr(last_error, "status_code", None),
        )
        self.attempts = attempts
        self.last_error = last_error


class AuthError(DeviceError):
    """Login to the device failed or returned an unusable response."""


def _describe(error: Exception) -> str:
    if isinstance(error, DeviceError) and error.args:
        return str(error.args[0])
    return str(error)
