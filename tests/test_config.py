"""
Tests for publisher and resolver configuration.

Test plan:
- Defaults match the documented policy
- from_dict: schema validation, overrides, ConfigError with a path
- from_env: IDCHAIN_* variables, casting, missing required keys
- Direct construction rejects impossible wait policies
"""

import pytest

from idchain.config import FeePolicy, PublisherConfig, ResolverConfig
from idchain.errors import ConfigError

CONTRACT = "0x" + "12" * 20


class TestPublisherConfig:
    def test_defaults(self) -> None:
        config = PublisherConfig(rpc_url="http://node", contract_address=CONTRACT)
        assert config.fee_policy == FeePolicy(fee_price=1_000_000_000_000, fee_limit=3_000_000)
        assert config.max_wait_attempts == 5
        assert config.wait_interval == 5.0
        assert config.wait_for_confirms == 3

    def test_from_dict_overrides(self) -> None:
        config = PublisherConfig.from_dict(
            {
                "rpc_url": "http://node",
                "contract_address": CONTRACT,
                "fee_price": 10,
                "fee_limit": 100_000,
                "max_wait_attempts": 8,
                "wait_interval": 2,
                "wait_for_confirms": 6,
            }
        )
        assert config.fee_policy.fee_price == 10
        assert config.fee_policy.fee_limit == 100_000
        assert config.max_wait_attempts == 8
        assert config.wait_interval == 2.0
        assert config.wait_for_confirms == 6

    def test_from_dict_missing_contract(self) -> None:
        with pytest.raises(ConfigError, match="contract_address"):
            PublisherConfig.from_dict({"rpc_url": "http://node"})

    def test_from_dict_bad_address(self) -> None:
        with pytest.raises(ConfigError) as exc_info:
            PublisherConfig.from_dict({"rpc_url": "http://node", "contract_address": "0x12"})
        assert exc_info.value.details["path"] == "contract_address"

    def test_from_dict_unknown_key(self) -> None:
        with pytest.raises(ConfigError):
            PublisherConfig.from_dict(
                {"rpc_url": "http://node", "contract_address": CONTRACT, "gas": 1}
            )

    def test_from_dict_zero_attempts(self) -> None:
        with pytest.raises(ConfigError):
            PublisherConfig.from_dict(
                {"rpc_url": "http://node", "contract_address": CONTRACT, "max_wait_attempts": 0}
            )

    def test_from_env(self) -> None:
        env = {
            "IDCHAIN_RPC_URL": "http://node:20646",
            "IDCHAIN_CONTRACT_ADDRESS": CONTRACT,
            "IDCHAIN_WAIT_INTERVAL": "0.5",
            "IDCHAIN_WAIT_FOR_CONFIRMS": "1",
            "UNRELATED": "x",
        }
        config = PublisherConfig.from_env(env)
        assert config.rpc_url == "http://node:20646"
        assert config.wait_interval == 0.5
        assert config.wait_for_confirms == 1
        assert config.max_wait_attempts == 5

    def test_from_env_bad_int(self) -> None:
        env = {
            "IDCHAIN_RPC_URL": "http://node",
            "IDCHAIN_CONTRACT_ADDRESS": CONTRACT,
            "IDCHAIN_FEE_LIMIT": "lots",
        }
        with pytest.raises(ConfigError, match="IDCHAIN_FEE_LIMIT"):
            PublisherConfig.from_env(env)

    def test_from_env_missing(self) -> None:
        with pytest.raises(ConfigError):
            PublisherConfig.from_env({})

    @pytest.mark.parametrize(
        "overrides",
        [{"max_wait_attempts": 0}, {"wait_interval": -1.0}, {"wait_for_confirms": -1}],
    )
    def test_direct_construction_checks(self, overrides: dict[str, float]) -> None:
        with pytest.raises(ConfigError):
            PublisherConfig(rpc_url="http://node", contract_address=CONTRACT, **overrides)

    def test_fee_policy_checks(self) -> None:
        with pytest.raises(ConfigError):
            FeePolicy(fee_price=-1)
        with pytest.raises(ConfigError):
            FeePolicy(fee_limit=0)


class TestResolverConfig:
    def test_from_dict(self) -> None:
        config = ResolverConfig.from_dict({"resolver_url": "http://resolver", "rpc_timeout": 5})
        assert config.resolver_url == "http://resolver"
        assert config.rpc_timeout == 5.0

    def test_from_env(self) -> None:
        config = ResolverConfig.from_env({"IDCHAIN_RESOLVER_URL": "http://resolver"})
        assert config.rpc_timeout == 30.0

    def test_missing_url(self) -> None:
        with pytest.raises(ConfigError, match="resolver_url"):
            ResolverConfig.from_dict({})
