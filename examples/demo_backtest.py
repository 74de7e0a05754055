from dataclasses import asdict
from datetime import datetime, timedelta, timezone

from tradebench.backtest import BacktestParams, run_backtest
from tradebench.simulator import PriceBar, RiskSettings
from tradebench.strategy import BuiltInStrategy, CustomStrategy, parse_condition


start = datetime(2024, 1, 2, 14, 30, tzinfo=timezone.utc)
closes = [100.0] * 41
closes[25] = 90.0
closes[40] = 106.5
bars = [
    PriceBar(time=start + timedelta(days=idx), open=close, high=close, low=close, close=close, volume=1000, symbol="AAPL")
    for idx, close in enumerate(closes)
]

builtin = BuiltInStrategy("mean_reversion", {"window": 20, "threshold": 0.05})
result = run_backtest(builtin, bars)
print("mean_reversion", asdict(result.summary))

custom = CustomStrategy(
    buy=parse_condition({"left": "close", "operator": "lt", "right": {"indicator": "bollinger_lower", "period": 20}}),
    sell=parse_condition({"left": "close", "operator": "gt", "right": {"indicator": "sma", "period": 20}}),
    name="band_fade",
)
params = BacktestParams(initial_capital=25000, shares_per_trade=50, risk=RiskSettings(stop_loss_pct=0.08))
result = run_backtest(custom, bars, params)
print("band_fade", asdict(result.summary))
for warning in result.warnings:
    print("warning:", warning)
for trade in result.trades:
    print(trade.time.date(), trade.action.value, trade.quantity, trade.price, trade.realized_pnl, trade.reason.value)
