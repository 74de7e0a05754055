from datetime import datetime, timedelta, timezone

import pytest

from tradebench.errors import ValidationError
from tradebench.simulator import PriceBar
from tradebench.strategy import (
    Comparison,
    ComparisonOp,
    ConditionLimits,
    Constant,
    IndicatorRef,
    Logical,
    LogicalOp,
    PriceRef,
    PriceSeries,
    any_of,
    compare,
    evaluate,
    negate,
    parse_condition,
    validate,
    validate_strategy,
)
from tradebench.strategy.conditions import MAX_PARSE_DEPTH, parse_operand, warmup_bars


T0 = datetime(2024, 3, 1, 15, 0, tzinfo=timezone.utc)


def _series(closes) -> PriceSeries:
    return PriceSeries(
        [
            PriceBar(time=T0 + timedelta(minutes=idx), open=close, high=close, low=close, close=close, volume=500)
            for idx, close in enumerate(closes)
        ]
    )


def _rsi(period: int = 14) -> IndicatorRef:
    return IndicatorRef.of("rsi", period=period)


def test_parse_and_evaluate_nested_tree():
    tree = parse_condition(
        {
            "and": [
                {"left": {"indicator": "sma", "period": 3}, "operator": "gt", "right": {"indicator": "sma", "period": 5}},
                {"left": "close", "operator": ">", "right": 10},
            ]
        }
    )
    validate(tree)
    series = _series([float(value) for value in range(1, 21)])
    assert evaluate(tree, series, 19) is True
    assert evaluate(tree, series, 5) is False


def test_warming_up_comparison_is_false_even_when_negated():
    series = _series([100.0, 101.0, 102.0, 103.0, 104.0])
    condition = compare(_rsi(), "gt", 50)
    assert evaluate(condition, series, 4) is False
    assert evaluate(negate(condition), series, 4) is False


def test_or_with_unknown_child_can_still_fire():
    series = _series([100.0])
    tree = any_of(compare(_rsi(), "gt", 50), compare("close", "gt", 0))
    assert evaluate(tree, series, 0) is True


def test_crosses_above_uses_previous_bar():
    series = _series([10.0, 12.0])
    crosses_up = compare("close", "crosses_above", 11)
    crosses_down = compare("close", "crosses_below", 11)
    assert evaluate(crosses_up, series, 0) is False
    assert evaluate(crosses_up, series, 1) is True
    assert evaluate(crosses_down, series, 1) is False


def test_eq_tolerates_float_noise():
    series = _series([0.1 + 0.2])
    assert evaluate(compare("close", "eq", 0.3), series, 0) is True


@pytest.mark.parametrize(
    "node",
    [
        Logical(LogicalOp.AND, (compare("close", "gt", 1),)),
        Logical(LogicalOp.NOT, (compare("close", "gt", 1), compare("close", "lt", 5))),
        compare(IndicatorRef.of("rsi", period=14), "gt", "close"),
        compare("volume", "gt", "close"),
        Comparison(Constant(1), ComparisonOp.GT, Constant(2)),
        compare(IndicatorRef.of("sma", period=0), "gt", "close"),
        compare(IndicatorRef.of("sma", period=2.5), "gt", "close"),
        compare(IndicatorRef.of("sma", window=5), "gt", "close"),
        compare(IndicatorRef.of("macd", fast_period=26, slow_period=12), "gt", 0),
        Comparison(PriceRef("vwap"), ComparisonOp.GT, Constant(1)),
    ],
)
def test_validate_rejects_malformed_nodes(node):
    with pytest.raises(ValidationError):
        validate(node)


def test_depth_and_node_limits():
    node = compare("close", "gt", 1)
    for _ in range(7):
        node = negate(node)
    validate(node)
    with pytest.raises(ValidationError, match="deeper"):
        validate(negate(node))
    validate(negate(node), ConditionLimits(max_depth=12))

    wide = any_of(*[compare("close", "gt", value) for value in range(1, 65)])
    with pytest.raises(ValidationError, match="nodes"):
        validate(wide)
    validate(wide, ConditionLimits(max_nodes=100))


def test_parse_rejects_pathological_nesting():
    data = {"left": "close", "operator": "gt", "right": 1}
    for _ in range(3000):
        data = {"not": data}
    with pytest.raises(ValidationError, match="nesting"):
        parse_condition(data)


def test_parse_accepts_nesting_up_to_the_ceiling():
    data = {"left": "close", "operator": "gt", "right": 1}
    for _ in range(MAX_PARSE_DEPTH - 1):
        data = {"not": data}
    node = parse_condition(data)
    validate(node, ConditionLimits(max_depth=MAX_PARSE_DEPTH, max_nodes=MAX_PARSE_DEPTH))
    with pytest.raises(ValidationError, match="nesting"):
        parse_condition({"not": data})


def test_evaluation_is_repeatable_at_every_index():
    closes = [100.0 + 5.0 * ((idx * 7) % 5 - 2) for idx in range(40)]
    series = _series(closes)
    tree = any_of(
        compare(_rsi(5), "lt", 40),
        compare("close", "crosses_above", {"indicator": "sma", "period": 10}),
    )
    first = [evaluate(tree, series, index) for index in range(len(closes))]
    second = [evaluate(tree, series, index) for index in range(len(closes))]
    backwards = [evaluate(tree, series, index) for index in reversed(range(len(closes)))]
    assert first == second
    assert first == backwards[::-1]
    assert any(first)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("GT", ComparisonOp.GT),
        (">=", ComparisonOp.GTE),
        ("below", ComparisonOp.LT),
        ("crossesAbove", ComparisonOp.CROSSES_ABOVE),
        ("crosses_below", ComparisonOp.CROSSES_BELOW),
    ],
)
def test_operator_spellings(raw, expected):
    node = parse_condition({"left": "close", "operator": raw, "right": 1})
    assert node.op == expected


def test_unknown_operator_reports_path():
    with pytest.raises(ValidationError, match=r"buy\.or\[1\]"):
        parse_condition(
            {"or": [{"left": "close", "op": "gt", "right": 1}, {"left": "close", "op": "nearly", "right": 1}]},
            "buy",
        )


def test_operand_forms():
    assert parse_operand("indicator:sma:period=50") == IndicatorRef.of("sma", period=50)
    assert parse_operand({"indicator": "MACD", "params": {"fastPeriod": 8}}) == IndicatorRef.of(
        "macd", fast_period=8
    )
    assert parse_operand("High") == PriceRef("high")
    assert parse_operand({"value": 3}) == Constant(3)
    with pytest.raises(ValidationError):
        parse_operand(True)


def test_list_is_or_combined():
    node = parse_condition([{"left": "close", "op": "gt", "right": 1}, {"left": "close", "op": "lt", "right": 0.5}])
    assert isinstance(node, Logical)
    assert node.op == LogicalOp.OR
    assert len(node.children) == 2


def test_legacy_indicator_nodes():
    oversold = parse_condition(
        {"type": "indicator", "indicator": {"type": "rsi", "params": {"period": 14}, "condition": "oversold"}}
    )
    assert oversold == Comparison(_rsi(14), ComparisonOp.LT, Constant(30))

    below_band = parse_condition(
        {"type": "indicator", "indicator": {"type": "bollingerBands", "params": {"period": 20}, "condition": "priceBelowLower"}}
    )
    assert below_band == Comparison(
        PriceRef("close"),
        ComparisonOp.LT,
        IndicatorRef.of("bollinger_lower", period=20),
    )


def test_validate_strategy_rejects_identical_trees():
    tree = compare(_rsi(), "lt", 30)
    with pytest.raises(ValidationError, match="identical"):
        validate_strategy(tree, compare(_rsi(), "lt", 30))


def test_validate_strategy_warnings():
    warnings = validate_strategy(compare(_rsi(), "lt", 80), compare(_rsi(), "gt", 20))
    assert any("above sell RSI threshold" in warning for warning in warnings)
    assert any(warning.startswith("buy: consider combining") for warning in warnings)


def test_warmup_bars_covers_slowest_indicator():
    tree = parse_condition(
        {
            "and": [
                {"left": {"indicator": "rsi", "period": 14}, "op": "lt", "right": 30},
                {"left": "close", "op": "crosses_above", "right": {"indicator": "sma", "period": 50}},
            ]
        }
    )
    assert warmup_bars(tree) == 51
