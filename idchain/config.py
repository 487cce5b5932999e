"""
Configuration for the publisher and the resolver.

Policy that used to be fixed constants (fee price, fee limit, wait budget,
confirmation depth) lives here so it can be overridden per deployment and
per test. Three ways to build a config:

    - Direct construction: ``PublisherConfig(rpc_url=..., contract_address=...)``.
    - From a mapping validated against a JSON Schema: ``PublisherConfig.from_dict``.
    - From the environment: ``PublisherConfig.from_env()`` reads ``IDCHAIN_*``.

Defaults:
    fee_price          1_000_000_000_000
    fee_limit          3_000_000
    max_wait_attempts  5
    wait_interval      5.0 seconds
    wait_for_confirms  3
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any, Mapping

import jsonschema  # type: ignore[import-untyped]

from idchain.errors import ConfigError

DEFAULT_FEE_PRICE = 1_000_000_000_000
DEFAULT_FEE_LIMIT = 3_000_000
DEFAULT_MAX_WAIT_ATTEMPTS = 5
DEFAULT_WAIT_INTERVAL = 5.0
DEFAULT_WAIT_FOR_CONFIRMS = 3
DEFAULT_RPC_TIMEOUT = 30.0

ENV_PREFIX = "IDCHAIN_"


PUBLISHER_CONFIG_SCHEMA: dict[str, Any] = {
    "type": "object",
    "required": ["rpc_url", "contract_address"],
    "additionalProperties": False,
    "properties": {
        "rpc_url": {"type": "string", "minLength": 1},
        "contract_address": {"type": "string", "pattern": "^0x[0-9a-fA-F]{40}$"},
        "fee_price": {"type": "integer", "minimum": 0},
        "fee_limit": {"type": "integer", "minimum": 21000},
        "max_wait_attempts": {"type": "integer", "minimum": 1},
        "wait_interval": {"type": "number", "minimum": 0},
        "wait_for_confirms": {"type": "integer", "minimum": 0},
        "rpc_timeout": {"type": "number", "exclusiveMinimum": 0},
    },
}

RESOLVER_CONFIG_SCHEMA: dict[str, Any] = {
    "type": "object",
    "required": ["resolver_url"],
    "additionalProperties": False,
    "properties": {
        "resolver_url": {"type": "string", "minLength": 1},
        "rpc_timeout": {"type": "number", "exclusiveMinimum": 0},
    },
}


def _validate(data: Mapping[str, Any], schema: dict[str, Any], what: str) -> None:
    try:
        jsonschema.validate(instance=dict(data), schema=schema)
    except jsonschema.ValidationError as exc:
        path = ".".join(str(p) for p in exc.absolute_path) or "<root>"
        raise ConfigError(
            f"invalid {what} config at {path}: {exc.message}",
            details={"path": path},
        ) from exc


def _env_value(name: str, cast: type, env: Mapping[str, str]) -> Any:
    raw = env.get(ENV_PREFIX + name.upper())
    if raw is None:
        return None
    try:
        return cast(raw)
    except ValueError as exc:
        raise ConfigError(
            f"{ENV_PREFIX}{name.upper()} is not a valid {cast.__name__}: {raw!r}"
        ) from exc


def _collect_env(fields: Mapping[str, type], env: Mapping[str, str]) -> dict[str, Any]:
    collected: dict[str, Any] = {}
    for name, cast in fields.items():
        value = _env_value(name, cast, env)
        if value is not None:
            collected[name] = value
    return collected


# =========================================================================
# Publisher
# =========================================================================


@dataclass(frozen=True)
class FeePolicy:
    """Gas price and gas limit attached to every registry call."""

    fee_price: int = DEFAULT_FEE_PRICE
    fee_limit: int = DEFAULT_FEE_LIMIT

    def __post_init__(self) -> None:
        if self.fee_price < 0:
            raise ConfigError(f"fee_price must be >= 0, got: {self.fee_price}")
        if self.fee_limit <= 0:
            raise ConfigError(f"fee_limit must be > 0, got: {self.fee_limit}")


@dataclass(frozen=True)
class PublisherConfig:
    """Settings for ``TransactionPublisher``.

    Attributes:
        rpc_url: Ledger JSON-RPC endpoint.
        contract_address: Identity-registry contract address (0x + 40 hex).
        fee_policy: Fee parameters for submitted calls.
        max_wait_attempts: Receipt polls before giving up.
        wait_interval: Seconds to sleep between receipt polls.
        wait_for_confirms: Confirmation depth required by ``is_available``.
        rpc_timeout: Per-request HTTP timeout in seconds.
    """

    rpc_url: str
    contract_address: str
    fee_policy: FeePolicy = field(default_factory=FeePolicy)
    max_wait_attempts: int = DEFAULT_MAX_WAIT_ATTEMPTS
    wait_interval: float = DEFAULT_WAIT_INTERVAL
    wait_for_confirms: int = DEFAULT_WAIT_FOR_CONFIRMS
    rpc_timeout: float = DEFAULT_RPC_TIMEOUT

    def __post_init__(self) -> None:
        if self.max_wait_attempts < 1:
            raise ConfigError(
                f"max_wait_attempts must be >= 1, got: {self.max_wait_attempts}"
            )
        if self.wait_interval < 0:
            raise ConfigError(f"wait_interval must be >= 0, got: {self.wait_interval}")
        if self.wait_for_confirms < 0:
            raise ConfigError(
                f"wait_for_confirms must be >= 0, got: {self.wait_for_confirms}"
            )

    @property
    def max_wait_seconds(self) -> float:
        """Upper bound on time spent sleeping in one publish call."""
        return (self.max_wait_attempts - 1) * self.wait_interval

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> PublisherConfig:
        _validate(data, PUBLISHER_CONFIG_SCHEMA, "publisher")
        fee_policy = FeePolicy(
            fee_price=data.get("fee_price", DEFAULT_FEE_PRICE),
            fee_limit=data.get("fee_limit", DEFAULT_FEE_LIMIT),
        )
        return cls(
            rpc_url=data["rpc_url"],
            contract_address=data["contract_address"],
            fee_policy=fee_policy,
            max_wait_attempts=data.get("max_wait_attempts", DEFAULT_MAX_WAIT_ATTEMPTS),
            wait_interval=float(data.get("wait_interval", DEFAULT_WAIT_INTERVAL)),
            wait_for_confirms=data.get("wait_for_confirms", DEFAULT_WAIT_FOR_CONFIRMS),
            rpc_timeout=float(data.get("rpc_timeout", DEFAULT_RPC_TIMEOUT)),
        )

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> PublisherConfig:
        """Build from ``IDCHAIN_*`` environment variables.

        ``IDCHAIN_RPC_URL`` and ``IDCHAIN_CONTRACT_ADDRESS`` are required.
        """
        env = os.environ if env is None else env
        data = _collect_env(
            {
                "rpc_url": str,
                "contract_address": str,
                "fee_price": int,
                "fee_limit": int,
                "max_wait_attempts": int,
                "wait_interval": float,
                "wait_for_confirms": int,
                "rpc_timeout": float,
            },
            env,
        )
        return cls.from_dict(data)


# =========================================================================
# Resolver
# =========================================================================


@dataclass(frozen=True)
class ResolverConfig:
    """Settings for ``BiographyResolver``."""

    resolver_url: str
    rpc_timeout: float = DEFAULT_RPC_TIMEOUT

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ResolverConfig:
        _validate(data, RESOLVER_CONFIG_SCHEMA, "resolver")
        return cls(
            resolver_url=data["resolver_url"],
            rpc_timeout=float(data.get("rpc_timeout", DEFAULT_RPC_TIMEOUT)),
        )

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> ResolverConfig:
        env = os.environ if env is None else env
        data = _collect_env({"resolver_url": str, "rpc_timeout": float}, env)
        return cls.from_dict(data)
