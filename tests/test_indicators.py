from datetime import datetime, timedelta, timezone

import pytest

from tradebench.errors import DataError
from tradebench.simulator import PriceBar
from tradebench.strategy import PriceSeries


T0 = datetime(2024, 1, 2, 14, 30, tzinfo=timezone.utc)


def _series(closes, volumes=None) -> PriceSeries:
    volumes = volumes or [1000.0] * len(closes)
    bars = [
        PriceBar(
            time=T0 + timedelta(minutes=idx),
            open=close,
            high=close,
            low=close,
            close=close,
            volume=volume,
            symbol="AAPL",
        )
        for idx, (close, volume) in enumerate(zip(closes, volumes))
    ]
    return PriceSeries(bars, symbol="AAPL")


def test_sma_needs_full_window():
    series = _series([1, 2, 3, 4, 5])
    assert series.sma(3, 1) is None
    assert series.sma(3, 2) == pytest.approx(2.0)
    assert series.sma(3) == pytest.approx(4.0)


def test_ema_seeded_with_sma():
    series = _series([1, 2, 3, 4, 5])
    assert series.ema(3, 1) is None
    assert series.ema(3, 2) == pytest.approx(2.0)
    assert series.ema(3, 3) == pytest.approx(3.0)
    assert series.ema(3, 4) == pytest.approx(4.0)


def test_rsi_extremes_and_warmup():
    rising = _series([float(value) for value in range(1, 17)])
    assert rising.rsi(14, 13) is None
    assert rising.rsi(14, 14) == pytest.approx(100.0)

    flat = _series([50.0] * 16)
    assert flat.rsi(14) == pytest.approx(50.0)


def test_rsi_is_bounded():
    closes = [100, 102, 101, 105, 103, 99, 98, 104, 107, 103, 101, 100, 102, 106, 104, 103]
    series = _series([float(value) for value in closes])
    value = series.rsi(14)
    assert value is not None
    assert 0.0 < value < 100.0


def test_bollinger_collapses_on_flat_prices():
    series = _series([100.0] * 20)
    middle, upper, lower = series.bollinger(20, 2.0)
    assert middle == pytest.approx(100.0)
    assert upper == pytest.approx(100.0)
    assert lower == pytest.approx(100.0)
    assert series.bollinger(20, 2.0, 18) is None


def test_macd_signal_and_histogram_warmup():
    series = _series([100.0] * 40)
    assert series.macd(12, 26, 24) is None
    assert series.macd(12, 26, 25) == pytest.approx(0.0)
    assert series.macd_signal(12, 26, 9, 32) is None
    assert series.macd_signal(12, 26, 9, 33) == pytest.approx(0.0)
    assert series.macd_histogram(12, 26, 9) == pytest.approx(0.0)


def test_vwap_uses_typical_price():
    bars = [
        PriceBar(time=T0, open=10, high=12, low=8, close=10, volume=100),
        PriceBar(time=T0 + timedelta(minutes=1), open=10, high=22, low=18, close=20, volume=300),
    ]
    series = PriceSeries(bars)
    assert series.vwap() == pytest.approx((10 * 100 + 20 * 300) / 400)
    assert series.vwap(period=1) == pytest.approx(20.0)
    assert series.vwap(period=3) is None


def test_vwap_running_sums_match_direct_sums_and_track_updates():
    bars = [
        PriceBar(
            time=T0 + timedelta(minutes=idx),
            open=close,
            high=close + 1.0,
            low=close - 1.0,
            close=close,
            volume=100.0 * (idx % 3 + 1),
        )
        for idx, close in enumerate([10.0, 11.0, 9.5, 12.0, 12.5, 11.0, 13.0])
    ]
    series = PriceSeries(bars)

    def direct(start: int, end: int) -> float:
        window = bars[start:end]
        weighted = sum((bar.high + bar.low + bar.close) / 3.0 * bar.volume for bar in window)
        return weighted / sum(bar.volume for bar in window)

    for index in range(len(bars)):
        assert series.vwap(index=index) == pytest.approx(direct(0, index + 1))
        if index >= 2:
            assert series.vwap(period=3, index=index) == pytest.approx(direct(index - 2, index + 1))

    series.update(PriceBar(time=T0 + timedelta(minutes=7), open=20, high=20, low=20, close=20, volume=1300.0))
    assert series.vwap(period=1) == pytest.approx(20.0)
    assert series.vwap() == pytest.approx(direct(0, 7) * 0.5 + 20.0 * 0.5)


def test_breakout_helpers_exclude_current_bar():
    series = _series([10.0, 11.0, 12.0, 15.0], volumes=[100.0, 200.0, 300.0, 900.0])
    assert series.prior_high(3) == pytest.approx(12.0)
    assert series.prior_average_volume(3) == pytest.approx(200.0)
    assert series.prior_high(3, 2) is None
    assert series.momentum(3) == pytest.approx(0.5)


def test_update_rejects_out_of_order_bars():
    series = _series([1.0, 2.0])
    with pytest.raises(DataError):
        series.update(PriceBar(time=T0, open=3, high=3, low=3, close=3))


def test_cache_invalidated_on_update():
    series = _series([1.0, 2.0, 3.0])
    assert series.ema(3) == pytest.approx(2.0)
    series.update(PriceBar(time=T0 + timedelta(minutes=3), open=5, high=5, low=5, close=5))
    assert series.ema(3) == pytest.approx(3.5)


def test_index_out_of_range():
    series = _series([1.0, 2.0])
    with pytest.raises(IndexError):
        series.sma(1, 5)
