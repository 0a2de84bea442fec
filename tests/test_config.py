"""
tests/test_config.py

ProtocolConfig: YAML and mapping loaders, validation of every key.
"""

import pytest

from fusionswap.config import EscrowDurations, ProtocolConfig
from fusionswap.core.exceptions import ConfigError
from fusionswap.core.segments import TerminalPolicy
from fusionswap.settlement.engine import SettlementEngine


class TestDefaults:

    def test_defaults(self):
        config = ProtocolConfig()
        assert config.price_scale == 100
        assert config.safety_deposit_asset == "NATIVE"
        assert config.terminal_policy is TerminalPolicy.REMAINDER
        assert config.wildcard_address == "0x0"
        assert config.escrow_durations == EscrowDurations()
        assert config.journal_path is None

    def test_to_dict_round_trips(self):
        config = ProtocolConfig(price_scale=1000, terminal_policy=TerminalPolicy.REJECT)
        assert ProtocolConfig.from_dict(config.to_dict()) == config

    def test_config_is_frozen(self):
        with pytest.raises(AttributeError):
            ProtocolConfig().price_scale = 7


class TestFromDict:

    def test_unknown_key_rejected(self):
        with pytest.raises(ConfigError) as exc:
            ProtocolConfig.from_dict({"price_scal": 10})
        assert exc.value.details["keys"] == ["price_scal"]

    @pytest.mark.parametrize("raw, policy", [
        ("remainder", TerminalPolicy.REMAINDER),
        ("REJECT",    TerminalPolicy.REJECT),
    ])
    def test_policy_parsing(self, raw, policy):
        assert ProtocolConfig.from_dict({"terminal_policy": raw}).terminal_policy is policy

    def test_bad_policy_rejected(self):
        with pytest.raises(ConfigError, match="terminal_policy"):
            ProtocolConfig.from_dict({"terminal_policy": "refund"})

    @pytest.mark.parametrize("scale", [0, -1, 1.5, True])
    def test_bad_price_scale_rejected(self, scale):
        with pytest.raises(ConfigError):
            ProtocolConfig.from_dict({"price_scale": scale})

    def test_empty_mapping_gives_defaults(self):
        assert ProtocolConfig.from_dict(None) == ProtocolConfig()

    def test_partial_durations(self):
        config = ProtocolConfig.from_dict({"escrow_durations": {"finality": 60}})
        assert config.escrow_durations.finality == 60
        assert config.escrow_durations.exclusive_withdrawal == 1800

    @pytest.mark.parametrize("durations", [
        {"finality": 0},
        {"public_withdrawal": -1},
        {"private_cancellation": "soon"},
    ])
    def test_bad_durations_rejected(self, durations):
        with pytest.raises(ConfigError, match="escrow_durations"):
            ProtocolConfig.from_dict({"escrow_durations": durations})

    def test_unknown_duration_key_rejected(self):
        with pytest.raises(ConfigError):
            ProtocolConfig.from_dict({"escrow_durations": {"grace": 5}})


class TestFromYaml:

    def test_yaml_file(self, tmp_path):
        path = tmp_path / "fusionswap.yaml"
        path.write_text(
            "safety_deposit_asset: ETH\n"
            "price_scale: 10000\n"
            "terminal_policy: reject\n"
            "escrow_durations:\n"
            "  finality: 120\n"
            "  exclusive_withdrawal: 240\n"
            "  public_withdrawal: 60\n"
            "  private_cancellation: 360\n",
            encoding="utf-8",
        )
        config = ProtocolConfig.from_yaml(path)
        assert config.safety_deposit_asset == "ETH"
        assert config.price_scale == 10000
        assert config.terminal_policy is TerminalPolicy.REJECT
        assert config.escrow_durations == EscrowDurations(120, 240, 60, 360)

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("", encoding="utf-8")
        assert ProtocolConfig.from_yaml(path) == ProtocolConfig()

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("price_scale: [unclosed\n", encoding="utf-8")
        with pytest.raises(ConfigError, match="Invalid YAML"):
            ProtocolConfig.from_yaml(path)

    def test_non_mapping_root(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- 1\n- 2\n", encoding="utf-8")
        with pytest.raises(ConfigError, match="mapping"):
            ProtocolConfig.from_yaml(path)


class TestConfigFlowsIntoEngine:

    def test_safety_deposit_asset_is_used(self, clock):
        from tests.helpers.swap_fixtures import MAKER, build_engine, create_order
        engine = build_engine(clock, ProtocolConfig(safety_deposit_asset="ETH"))
        engine.fund(MAKER, "ETH", 1_000)
        create_order(engine)
        assert engine.balance(MAKER, "ETH") == 990

    def test_from_config_builds_engine(self, clock):
        engine = SettlementEngine.from_config(ProtocolConfig(price_scale=10), clock)
        assert engine.config.price_scale == 10
        assert engine.now() == clock.now()
