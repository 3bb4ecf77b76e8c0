"""Configuration loader for the A10 BGP agent.

Settings come from environment variables (the deployment injects them from a
Secret).  An optional YAML file may provide defaults for the same settings;
environment values always win.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional

import yaml

from a10_bgp.config import DeviceConfig, LabelSelector
from a10_bgp.exceptions import ConfigError

# setting name -> environment variable
ENV_VARS = {
    "address": "A10_ADDRESS",
    "username": "A10_USERNAME",
    "password": "A10_PASSWORD",
    "local_as": "A10_AS",
    "remote_as": "A10_REMOTE_AS",
    "label_selector": "NODES_LABEL_SELECTOR",
    "timeout": "A10_TIMEOUT",
    "verify_tls": "A10_VERIFY_TLS",
}

_TRUE = {"1", "true", "yes", "y", "on"}
_FALSE = {"0", "false", "no", "n", "off", ""}


@dataclass
class AgentConfig:
    device: DeviceConfig
    label_selector: str
    kubeconfig: Optional[Path] = None
    debug: bool = False

    def describe(self) -> Dict[str, Any]:
        """Settings safe to log, with the password masked."""

        return {
            "address": self.device.address,
            "username": self.device.username,
            "password": "********",
            "local_as": self.device.local_asn,
            "remote_as": self.device.remote_asn,
            "label_selector": self.label_selector,
            "timeout": self.device.timeout,
            "verify_tls": self.device.verify_tls,
            "kubeconfig": str(self.kubeconfig) if self.kubeconfig else None,
        }


def _load_file(path: Path) -> Dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text())
    except OSError as exc:
        raise ConfigError(f"cannot read configuration file {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"invalid YAML in {path}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError("Agent configuration must be a mapping")
    unknown = set(data) - set(ENV_VARS)
    if unknown:
        raise ConfigError(f"unknown configuration keys: {', '.join(sorted(unknown))}")
    return data


def _convert(name: str, raw: Any, kind: Callable[[Any], Any], what: str) -> Any:
    try:
        return kind(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{ENV_VARS[name]} must be {what}, got {raw!r}") from exc


def _to_int(raw: Any) -> int:
    if isinstance(raw, bool):
        raise ValueError(raw)
    return int(str(raw).strip())


def _to_bool(raw: Any) -> bool:
    if isinstance(raw, bool):
        return raw
    value = str(raw).strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ValueError(raw)


def load_config(
    environ: Optional[Mapping[str, str]] = None,
    path: Optional[Path] = None,
) -> AgentConfig:
    """Build an :class:`AgentConfig`, raising :class:`ConfigError` on bad input."""

    env = os.environ if environ is None else environ
    values: Dict[str, Any] = _load_file(Path(path)) if path else {}
    for name, variable in ENV_VARS.items():
        if env.get(variable):
            values[name] = env[variable]

    def required(name: str) -> Any:
        value = values.get(name)
        if value is None or str(value).strip() == "":
            raise ConfigError(f"{ENV_VARS[name]} environment variable must be set")
        return value

    address = str(required("address")).strip().rstrip("/")
    username = str(required("username"))
    password = str(required("password"))
    local_as = _convert("local_as", required("local_as"), _to_int, "a number")
    remote_as = _convert("remote_as", required("remote_as"), _to_int, "a number")

    label_selector = str(required("label_selector")).strip()
    if LabelSelector.parse(label_selector) is None:
        raise ConfigError(
            f"{ENV_VARS['label_selector']} must be in the format key=value, "
            f"got {label_selector!r}"
        )

    timeout = _convert("timeout", values.get("timeout", 10.0), float, "a number of seconds")
    if timeout <= 0:
        raise ConfigError(f"{ENV_VARS['timeout']} must be positive, got {timeout}")
    verify_tls = _convert("verify_tls", values.get("verify_tls", False), _to_bool, "a boolean")

    kubeconfig = env.get("KUBECONFIG")

    return AgentConfig(
        device=DeviceConfig(
            address=address,
            username=username,
            password=password,
            local_asn=local_as,
            remote_asn=remote_as,
            timeout=timeout,
            verify_tls=verify_tls,
        ),
        label_selector=label_selector,
        kubeconfig=Path(kubeconfig) if kubeconfig else None,
        debug=bool(env.get("DEBUG")),
    )
