from datetime import datetime, timedelta, timezone

import pytest

from tradebench.backtest import BacktestParams, run_backtest, run_backtests
from tradebench.errors import DataError, ValidationError
from tradebench.monitoring import AuditLog
from tradebench.simulator import PriceBar, RiskSettings, Signal, TradeReason
from tradebench.strategy import BuiltInStrategy, CustomStrategy, PriceSeries, parse_condition


T0 = datetime(2024, 5, 6, 13, 30, tzinfo=timezone.utc)
MEAN_REVERSION = BuiltInStrategy("mean_reversion", {"window": 20, "threshold": 0.05})


def _bars(closes, symbol="AAPL") -> list[PriceBar]:
    return [
        PriceBar(time=T0 + timedelta(days=idx), open=close, high=close, low=close, close=close, volume=1000, symbol=symbol)
        for idx, close in enumerate(closes)
    ]


def _scenario_closes() -> list[float]:
    closes = [100.0] * 41
    closes[25] = 90.0
    closes[40] = 106.5
    return closes


def test_mean_reversion_backtest(tmp_path):
    audit = AuditLog(tmp_path / "audit.log", run_id="bt-1")
    result = run_backtest(MEAN_REVERSION, _bars(_scenario_closes()), audit_log=audit)

    assert result.signals[25] == Signal.BUY
    assert result.signals[40] == Signal.SELL
    assert result.summary.total_trades == 2
    assert result.summary.final_capital == pytest.approx(11650.0)
    assert result.trades[1].realized_pnl == pytest.approx(1650.0)
    assert len(result.history) == 41

    events = audit.read_events()
    assert events[-1]["event"] == "backtest_completed"
    assert events[-1]["run_id"] == "bt-1"
    assert events[-1]["payload"]["strategy"] == "mean_reversion"
    assert events[-1]["payload"]["trades"] == 2


def test_series_shorter_than_warmup():
    with pytest.raises(DataError, match="warm-up"):
        run_backtest(MEAN_REVERSION, _bars([100.0] * 10))
    with pytest.raises(DataError):
        run_backtest(MEAN_REVERSION, [])


def test_invalid_definition_is_rejected_before_running():
    with pytest.raises(ValidationError):
        run_backtest(BuiltInStrategy("mean_reversion", {"window": 1}), _bars(_scenario_closes()))


def test_stop_loss_overrides_strategy_exit():
    closes = _scenario_closes()
    closes[30] = 80.0
    params = BacktestParams(risk=RiskSettings(stop_loss_pct=0.1))
    result = run_backtest(MEAN_REVERSION, _bars(closes), params)

    stop = result.trades[1]
    assert stop.reason == TradeReason.STOP_LOSS
    assert stop.price == pytest.approx(80.0)
    assert stop.realized_pnl == pytest.approx(-1000.0)


def test_custom_strategy_backtest_reports_warnings():
    definition = CustomStrategy(
        buy=parse_condition({"left": "close", "operator": "lt", "right": {"indicator": "sma", "period": 3}}),
        sell=parse_condition({"left": "close", "operator": "gt", "right": {"indicator": "sma", "period": 3}}),
    )
    series = PriceSeries(_bars([10.0, 10.0, 10.0, 9.0, 9.0, 12.0]), symbol="AAPL")
    result = run_backtest(definition, series)

    assert result.signals[3] == Signal.BUY
    assert result.signals[5] == Signal.SELL
    assert result.trades[-1].realized_pnl == pytest.approx(300.0)
    assert result.warnings


def test_run_backtests_isolates_symbols(tmp_path):
    audit = AuditLog(tmp_path / "audit.log")
    outcomes = run_backtests(
        MEAN_REVERSION,
        {"AAPL": _bars(_scenario_closes()), "MSFT": _bars([100.0] * 5, "MSFT")},
        BacktestParams(),
        max_workers=2,
        audit_log=audit,
    )

    assert outcomes["AAPL"].result is not None
    assert outcomes["AAPL"].result.summary.final_capital == pytest.approx(11650.0)
    assert outcomes["MSFT"].result is None
    assert "warm-up" in outcomes["MSFT"].error
    assert "backtest_failed" in {event["event"] for event in audit.read_events()}


def test_backtest_params_from_dict():
    params = BacktestParams.from_dict({"initial_capital": 5000, "shares_per_trade": 5, "take_profit_pct": 0.2})
    assert params.initial_capital == pytest.approx(5000.0)
    assert params.shares_per_trade == 5
    assert params.risk.take_profit_pct == pytest.approx(0.2)
    assert params.risk.stop_loss_pct is None
