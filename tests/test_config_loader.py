from pathlib import Path

import pytest

yaml = pytest.importorskip("yaml")

from tradebench.config import compute_config_hash, load_config, serialize_config
from tradebench.errors import ValidationError
from tradebench.session import SessionMode
from tradebench.strategy import BuiltInStrategy, ComparisonOp, CustomStrategy, Logical, LogicalOp


def test_load_config_sample():
    config = load_config(Path("configs") / "tradebench.yaml")
    assert config.symbols == ["AAPL", "MSFT"]
    assert isinstance(config.strategy, BuiltInStrategy)
    assert config.strategy.name == "mean_reversion"
    assert config.strategy.parameters == {"window": 20, "threshold": 0.05}
    assert config.backtest.shares_per_trade == 100
    assert config.backtest.condition_limits == config.conditions
    assert config.session.mode == SessionMode.PAPER
    assert config.session.tiers == {"local": "basic"}
    assert config.monitor.poll_interval_seconds == 60.0


def test_load_custom_strategy_config():
    config = load_config(Path("configs") / "custom_rsi.yaml")
    assert isinstance(config.strategy, CustomStrategy)
    assert config.strategy.name == "rsi_dip"
    assert config.strategy.buy.op == LogicalOp.AND
    assert isinstance(config.strategy.sell, Logical)
    assert config.strategy.sell.children[1].op == ComparisonOp.CROSSES_BELOW
    assert config.backtest.risk.stop_loss_pct == pytest.approx(0.05)
    assert config.run_id_prefix == "tradebench-custom"


def test_config_hash_and_serialize(tmp_path):
    source = Path("configs") / "tradebench.yaml"
    target = tmp_path / "tradebench.yaml"
    target.write_text(source.read_text(encoding="utf-8"), encoding="utf-8")

    assert compute_config_hash(target) == compute_config_hash(source)
    payload = serialize_config(load_config(target))
    assert payload["session"]["mode"] == "paper"
    assert payload["strategy"]["name"] == "mean_reversion"
    assert "webhook_secret" not in payload["monitoring"]


def test_missing_key_is_reported(tmp_path):
    path = tmp_path / "broken.yaml"
    path.write_text(yaml.safe_dump({"name": "x", "version": 1, "symbols": ["AAPL"]}), encoding="utf-8")
    with pytest.raises(ValueError, match="strategy"):
        load_config(path)


def test_invalid_strategy_parameters(tmp_path):
    path = tmp_path / "bad_params.yaml"
    path.write_text(
        yaml.safe_dump(
            {
                "name": "x",
                "version": 1,
                "symbols": ["AAPL"],
                "strategy": {"name": "breakout", "parameters": {"lookback_window": 500}},
            }
        ),
        encoding="utf-8",
    )
    with pytest.raises(ValidationError, match="lookback_window"):
        load_config(path)


def test_invalid_session_mode(tmp_path):
    path = tmp_path / "bad_mode.yaml"
    path.write_text(
        yaml.safe_dump(
            {
                "name": "x",
                "version": 1,
                "symbols": ["AAPL"],
                "strategy": {"name": "momentum"},
                "session": {"mode": "margin"},
            }
        ),
        encoding="utf-8",
    )
    with pytest.raises(ValueError, match="session.mode"):
        load_config(path)
