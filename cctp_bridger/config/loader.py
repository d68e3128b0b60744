"""Config loader for the bridger project."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, MutableMapping, Optional

from web3 import Web3

from cctp_bridger.core import registry
from cctp_bridger.core.attestation import DEFAULT_POLL_INTERVAL, IRIS_API_URL, IRIS_SANDBOX_API_URL
from cctp_bridger.core.signer import DEFAULT_FALLBACK_GAS


class ConfigError(ValueError):
    """Raised when configuration data is invalid or missing."""


def _require_keys(data: Mapping[str, Any], keys: Iterable[str], context: str) -> None:
    missing = [key for key in keys if key not in data]
    if missing:
        raise ConfigError(f"{context} missing required keys: {', '.join(missing)}")


def _to_checksum(value: str, *, field_name: str) -> str:
    try:
        return Web3.to_checksum_address(value)
    except Exception as exc:  # web3 raises ValueError for malformed inputs
        raise ConfigError(f"Invalid address for {field_name}: {value}") from exc


@dataclass(frozen=True)
class ChainConfig:
    """RPC access for one CCTP chain."""

    name: str
    chain_id: int
    rpc_url: Optional[str] = None

    def ensure_rpc_url(self) -> str:
        """Return the RPC URL or raise if it is missing."""
        if not self.rpc_url:
            raise ConfigError(f"RPC URL required for {self.name} but not configured")
        return self.rpc_url


@dataclass(frozen=True)
class AttestationConfig:
    """Circle attestation service settings."""

    api_url: str = IRIS_API_URL
    sandbox_api_url: str = IRIS_SANDBOX_API_URL
    poll_interval: float = DEFAULT_POLL_INTERVAL
    max_attempts: Optional[int] = None

    def url_for(self, source_chain_id: int) -> str:
        """Use the sandbox service for bridges that start on a testnet."""
        return self.sandbox_api_url if registry.descriptor(source_chain_id).testnet else self.api_url


@dataclass(frozen=True)
class DefaultsConfig:
    """Default operational parameters."""

    api_timeout: int = 10
    receipt_timeout: int = 300
    fallback_gas: int = DEFAULT_FALLBACK_GAS


@dataclass(frozen=True)
class BridgerConfig:
    """Typed wrapper around the bridger configuration."""

    chains: Dict[int, ChainConfig]
    attestation: AttestationConfig
    defaults: DefaultsConfig
    default_recipient: Optional[str] = None
    raw: Mapping[str, Any] = field(default_factory=dict, repr=False)

    def chain(self, chain_id: int) -> ChainConfig:
        try:
            return self.chains[chain_id]
        except KeyError:
            raise ConfigError(f"Chain {chain_id} is not configured") from None

    def rpc_urls(self) -> Dict[int, str]:
        return {chain_id: chain.rpc_url for chain_id, chain in self.chains.items() if chain.rpc_url}

    def to_dict(self) -> Dict[str, Any]:
        """Return the original configuration mapping."""
        return dict(self.raw)


def _load_json(path: Path) -> MutableMapping[str, Any]:
    try:
        with path.open("r", encoding="utf-8") as fh:
            return json.load(fh)
    except FileNotFoundError as exc:
        raise ConfigError(f"Config file not found: {path}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Config file contains invalid JSON: {path}") from exc


def _parse_chains(chains: Any) -> Dict[int, ChainConfig]:
    if not isinstance(chains, Mapping) or not chains:
        raise ConfigError("chains must be a non-empty mapping of name to chain settings")

    result: Dict[int, ChainConfig] = {}
    for name, chain_data in chains.items():
        _require_keys(chain_data, ["chain_id"], f"chain {name}")
        try:
            chain_id = int(chain_data["chain_id"])
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"chain {name} has a non-integer chain_id") from exc
        if not registry.is_supported(chain_id):
            raise ConfigError(f"chain {name} ({chain_id}) has no CCTP deployment")
        if chain_id in result:
            raise ConfigError(f"chain {chain_id} configured twice")
        rpc_url = chain_data.get("rpc_url")
        result[chain_id] = ChainConfig(name=str(name), chain_id=chain_id, rpc_url=str(rpc_url) if rpc_url else None)
    return result


def _parse_attestation(data: Mapping[str, Any]) -> AttestationConfig:
    attestation = AttestationConfig(
        api_url=str(data.get("api_url", IRIS_API_URL)),
        sandbox_api_url=str(data.get("sandbox_api_url", IRIS_SANDBOX_API_URL)),
        poll_interval=float(data.get("poll_interval", DEFAULT_POLL_INTERVAL)),
        max_attempts=int(data["max_attempts"]) if data.get("max_attempts") is not None else None,
    )
    if attestation.poll_interval <= 0:
        raise ConfigError("attestation.poll_interval must be positive")
    if attestation.max_attempts is not None and attestation.max_attempts <= 0:
        raise ConfigError("attestation.max_attempts must be positive or null")
    return attestation


def _parse_defaults(data: Mapping[str, Any]) -> DefaultsConfig:
    defaults = DefaultsConfig(
        api_timeout=int(data.get("api_timeout", 10)),
        receipt_timeout=int(data.get("receipt_timeout", 300)),
        fallback_gas=int(data.get("fallback_gas", DEFAULT_FALLBACK_GAS)),
    )
    if defaults.api_timeout <= 0:
        raise ConfigError("defaults.api_timeout must be positive")
    if defaults.receipt_timeout <= 0:
        raise ConfigError("defaults.receipt_timeout must be positive")
    if defaults.fallback_gas <= 0:
        raise ConfigError("defaults.fallback_gas must be positive")
    return defaults


def load_config(config_path: Optional[Path] = None) -> BridgerConfig:
    """Load and validate bridger configuration data."""
    config_path = config_path or Path("config.json")
    data = _load_json(config_path)

    _require_keys(data, ["chains"], "config")

    try:
        attestation = _parse_attestation(data.get("attestation") or {})
        defaults = _parse_defaults(data.get("defaults") or {})
    except (TypeError, ValueError) as exc:
        if isinstance(exc, ConfigError):
            raise
        raise ConfigError(f"Invalid numeric setting: {exc}") from exc

    addresses = data.get("addresses") or {}
    default_recipient = None
    if addresses.get("default_recipient"):
        default_recipient = _to_checksum(addresses["default_recipient"], field_name="default_recipient")

    return BridgerConfig(
        chains=_parse_chains(data["chains"]),
        attestation=attestation,
        defaults=defaults,
        default_recipient=default_recipient,
        raw=data,
    )


__all__ = [
    "AttestationConfig",
    "BridgerConfig",
    "ChainConfig",
    "ConfigError",
    "DefaultsConfig",
    "load_config",
]
