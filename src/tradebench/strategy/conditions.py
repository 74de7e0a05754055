"""Condition trees for custom strategies: model, parsing, validation and evaluation.

A tree is built from ``Logical`` nodes (AND/OR/NOT) over ``Comparison`` leaves.
Each comparison side is an ``IndicatorRef``, a ``PriceRef`` or a ``Constant``.

Evaluation uses three-valued logic internally: a comparison whose operands are
not yet defined (indicator still warming up) is *unknown*, unknown propagates
through AND/OR/NOT, and an unknown root counts as ``False``. Negating a
warming-up comparison therefore never fires a signal.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterator, Optional, Union

from tradebench.errors import ValidationError
from tradebench.strategy.indicators import PRICE_FIELDS, PriceSeries


class LogicalOp(str, Enum):
    AND = "and"
    OR = "or"
    NOT = "not"


class ComparisonOp(str, Enum):
    GT = "gt"
    LT = "lt"
    GTE = "gte"
    LTE = "lte"
    EQ = "eq"
    CROSSES_ABOVE = "crosses_above"
    CROSSES_BELOW = "crosses_below"


class IndicatorKind(str, Enum):
    SMA = "sma"
    EMA = "ema"
    RSI = "rsi"
    MACD = "macd"
    MACD_SIGNAL = "macd_signal"
    MACD_HISTOGRAM = "macd_histogram"
    BOLLINGER_UPPER = "bollinger_upper"
    BOLLINGER_MIDDLE = "bollinger_middle"
    BOLLINGER_LOWER = "bollinger_lower"
    VWAP = "vwap"


class Scale(str, Enum):
    PRICE = "price"
    VOLUME = "volume"
    OSCILLATOR = "oscillator"
    MACD = "macd"


@dataclass(frozen=True)
class ParamSpec:
    default: Optional[float]
    minimum: float
    maximum: float
    integer: bool = True


_MACD_PARAMS = {
    "fast_period": ParamSpec(12, 1, 100),
    "slow_period": ParamSpec(26, 2, 200),
    "signal_period": ParamSpec(9, 1, 100),
}
_BOLLINGER_PARAMS = {
    "period": ParamSpec(20, 2, 200),
    "multiplier": ParamSpec(2.0, 0.1, 5.0, integer=False),
}

INDICATOR_PARAMS: dict[IndicatorKind, dict[str, ParamSpec]] = {
    IndicatorKind.SMA: {"period": ParamSpec(20, 1, 500)},
    IndicatorKind.EMA: {"period": ParamSpec(20, 1, 500)},
    IndicatorKind.RSI: {"period": ParamSpec(14, 2, 100)},
    IndicatorKind.MACD: _MACD_PARAMS,
    IndicatorKind.MACD_SIGNAL: _MACD_PARAMS,
    IndicatorKind.MACD_HISTOGRAM: _MACD_PARAMS,
    IndicatorKind.BOLLINGER_UPPER: _BOLLINGER_PARAMS,
    IndicatorKind.BOLLINGER_MIDDLE: _BOLLINGER_PARAMS,
    IndicatorKind.BOLLINGER_LOWER: _BOLLINGER_PARAMS,
    IndicatorKind.VWAP: {"period": ParamSpec(None, 1, 1000)},
}

_SCALES = {
    IndicatorKind.SMA: Scale.PRICE,
    IndicatorKind.EMA: Scale.PRICE,
    IndicatorKind.RSI: Scale.OSCILLATOR,
    IndicatorKind.MACD: Scale.MACD,
    IndicatorKind.MACD_SIGNAL: Scale.MACD,
    IndicatorKind.MACD_HISTOGRAM: Scale.MACD,
    IndicatorKind.BOLLINGER_UPPER: Scale.PRICE,
    IndicatorKind.BOLLINGER_MIDDLE: Scale.PRICE,
    IndicatorKind.BOLLINGER_LOWER: Scale.PRICE,
    IndicatorKind.VWAP: Scale.PRICE,
}

EQ_REL_TOL = 1e-9
EQ_ABS_TOL = 1e-12
# hard ceiling applied while parsing, before any configured limit is known
MAX_PARSE_DEPTH = 64


@dataclass(frozen=True)
class ConditionLimits:
    max_depth: int = 8
    max_nodes: int = 64


@dataclass(frozen=True)
class IndicatorRef:
    kind: IndicatorKind
    params: tuple[tuple[str, Any], ...] = ()

    @staticmethod
    def of(kind: IndicatorKind | str, **params: Any) -> "IndicatorRef":
        return IndicatorRef(IndicatorKind(kind), tuple(sorted(params.items())))

    def param(self, name: str) -> Any:
        for key, value in self.params:
            if key == name:
                return value
        return INDICATOR_PARAMS[self.kind][name].default

    @property
    def scale(self) -> Scale:
        return _SCALES[self.kind]

    @property
    def warmup_bars(self) -> int:
        kind = self.kind
        if kind == IndicatorKind.RSI:
            return int(self.param("period")) + 1
        if kind == IndicatorKind.MACD:
            return int(self.param("slow_period"))
        if kind in (IndicatorKind.MACD_SIGNAL, IndicatorKind.MACD_HISTOGRAM):
            return int(self.param("slow_period")) + int(self.param("signal_period")) - 1
        if kind == IndicatorKind.VWAP:
            period = self.param("period")
            return int(period) if period is not None else 1
        return int(self.param("period"))

    def value(self, series: PriceSeries, index: int) -> Optional[float]:
        kind = self.kind
        if kind == IndicatorKind.SMA:
            return series.sma(int(self.param("period")), index)
        if kind == IndicatorKind.EMA:
            return series.ema(int(self.param("period")), index)
        if kind == IndicatorKind.RSI:
            return series.rsi(int(self.param("period")), index)
        if kind in (IndicatorKind.MACD, IndicatorKind.MACD_SIGNAL, IndicatorKind.MACD_HISTOGRAM):
            fast = int(self.param("fast_period"))
            slow = int(self.param("slow_period"))
            if kind == IndicatorKind.MACD:
                return series.macd(fast, slow, index)
            signal = int(self.param("signal_period"))
            if kind == IndicatorKind.MACD_SIGNAL:
                return series.macd_signal(fast, slow, signal, index)
            return series.macd_histogram(fast, slow, signal, index)
        if kind == IndicatorKind.VWAP:
            period = self.param("period")
            return series.vwap(int(period) if period is not None else None, index)
        bands = series.bollinger(int(self.param("period")), float(self.param("multiplier")), index)
        if bands is None:
            return None
        middle, upper, lower = bands
        if kind == IndicatorKind.BOLLINGER_UPPER:
            return upper
        if kind == IndicatorKind.BOLLINGER_LOWER:
            return lower
        return middle


@dataclass(frozen=True)
class PriceRef:
    field: str = "close"


@dataclass(frozen=True)
class Constant:
    value: float


Operand = Union[IndicatorRef, PriceRef, Constant]


@dataclass(frozen=True)
class Comparison:
    left: Operand
    op: ComparisonOp
    right: Operand


@dataclass(frozen=True)
class Logical:
    op: LogicalOp
    children: tuple["ConditionNode", ...]


ConditionNode = Union[Logical, Comparison]


def all_of(*children: ConditionNode) -> Logical:
    return Logical(LogicalOp.AND, tuple(children))


def any_of(*children: ConditionNode) -> Logical:
    return Logical(LogicalOp.OR, tuple(children))


def negate(child: ConditionNode) -> Logical:
    return Logical(LogicalOp.NOT, (child,))


def compare(left: Any, op: ComparisonOp | str, right: Any) -> Comparison:
    return Comparison(parse_operand(left), _parse_comparison_op(op), parse_operand(right))


# ---------------------------------------------------------------------------
# Validation


def validate(node: ConditionNode, limits: Optional[ConditionLimits] = None, path: str = "condition") -> None:
    """Check structure, operand compatibility and parameter ranges; raise on the first violation."""
    limits = limits or ConditionLimits()
    counter = [0]
    _validate_node(node, limits, path, 1, counter)


def _validate_node(node: Any, limits: ConditionLimits, path: str, depth: int, counter: list[int]) -> None:
    if depth > limits.max_depth:
        raise ValidationError(f"condition tree deeper than {limits.max_depth} levels", path, node)
    counter[0] += 1
    if counter[0] > limits.max_nodes:
        raise ValidationError(f"condition tree has more than {limits.max_nodes} nodes", path, node)

    if isinstance(node, Logical):
        if not isinstance(node.op, LogicalOp):
            raise ValidationError(f"unknown logical operator {node.op!r}", path, node)
        count = len(node.children)
        if node.op == LogicalOp.NOT and count != 1:
            raise ValidationError(f"NOT takes exactly one child, got {count}", path, node)
        if node.op in (LogicalOp.AND, LogicalOp.OR) and count < 2:
            raise ValidationError(f"{node.op.name} needs at least two children, got {count}", path, node)
        for position, child in enumerate(node.children):
            _validate_node(child, limits, f"{path}.{node.op.value}[{position}]", depth + 1, counter)
        return

    if isinstance(node, Comparison):
        if not isinstance(node.op, ComparisonOp):
            raise ValidationError(f"unknown comparison operator {node.op!r}", path, node)
        left_scale = _validate_operand(node.left, f"{path}.left")
        right_scale = _validate_operand(node.right, f"{path}.right")
        if isinstance(node.left, Constant) and isinstance(node.right, Constant):
            raise ValidationError("comparison needs at least one non-constant operand", path, node)
        if left_scale is not None and right_scale is not None and left_scale != right_scale:
            raise ValidationError(
                f"cannot compare {left_scale.value} operand with {right_scale.value} operand",
                path,
                node,
            )
        return

    raise ValidationError(f"unsupported condition node {type(node).__name__}", path, node)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def _validate_operand(operand: Any, path: str) -> Optional[Scale]:
    if isinstance(operand, Constant):
        if not _is_number(operand.value):
            raise ValidationError(f"constant must be a finite number, got {operand.value!r}", path, operand)
        return None
    if isinstance(operand, PriceRef):
        if operand.field not in PRICE_FIELDS:
            raise ValidationError(f"unknown price field {operand.field!r}", path, operand)
        return Scale.VOLUME if operand.field == "volume" else Scale.PRICE
    if isinstance(operand, IndicatorRef):
        _validate_indicator(operand, path)
        return operand.scale
    raise ValidationError(f"unsupported operand {type(operand).__name__}", path, operand)


def _validate_indicator(ref: IndicatorRef, path: str) -> None:
    if not isinstance(ref.kind, IndicatorKind):
        raise ValidationError(f"unknown indicator {ref.kind!r}", path, ref)
    specs = INDICATOR_PARAMS[ref.kind]
    for name, value in ref.params:
        spec = specs.get(name)
        if spec is None:
            raise ValidationError(f"unknown parameter {name!r} for {ref.kind.value}", path, ref)
        if value is None and spec.default is None:
            continue
        if not _is_number(value):
            raise ValidationError(f"{ref.kind.value}.{name} must be a number, got {value!r}", path, ref)
        if spec.integer and float(value) != int(value):
            raise ValidationError(f"{ref.kind.value}.{name} must be an integer, got {value!r}", path, ref)
        if not spec.minimum <= value <= spec.maximum:
            raise ValidationError(
                f"{ref.kind.value}.{name}={value} outside [{spec.minimum}, {spec.maximum}]",
                path,
                ref,
            )
    if ref.kind in (IndicatorKind.MACD, IndicatorKind.MACD_SIGNAL, IndicatorKind.MACD_HISTOGRAM):
        if ref.param("fast_period") >= ref.param("slow_period"):
            raise ValidationError("MACD fast_period must be less than slow_period", path, ref)


def validate_strategy(
    buy: ConditionNode,
    sell: ConditionNode,
    limits: Optional[ConditionLimits] = None,
) -> list[str]:
    """Validate a buy/sell pair and return non-fatal warnings."""
    validate(buy, limits, "buy")
    validate(sell, limits, "sell")
    if buy == sell:
        raise ValidationError("buy and sell conditions are identical", "sell", sell)

    warnings: list[str] = []
    for side, node in (("buy", buy), ("sell", sell)):
        refs = list(iter_indicators(node))
        for ref in refs:
            if ref.kind in (IndicatorKind.SMA, IndicatorKind.EMA) and ref.param("period") > 200:
                warnings.append(f"{side}: {ref.kind.value} period {ref.param('period')} needs a long history")
            if ref.kind == IndicatorKind.RSI and not 5 <= ref.param("period") <= 50:
                warnings.append(f"{side}: unusual RSI period {ref.param('period')}")
            if ref.kind.value.startswith("bollinger") and not 1.0 <= ref.param("multiplier") <= 3.0:
                warnings.append(f"{side}: unusual Bollinger multiplier {ref.param('multiplier')}")
        if len({ref.kind for ref in refs}) <= 1:
            warnings.append(f"{side}: consider combining more than one indicator")

    buy_rsi = _rsi_threshold(buy)
    sell_rsi = _rsi_threshold(sell)
    if buy_rsi is not None and sell_rsi is not None and buy_rsi > sell_rsi:
        warnings.append(f"buy RSI threshold {buy_rsi} is above sell RSI threshold {sell_rsi}")
    return warnings


def _rsi_threshold(node: ConditionNode) -> Optional[float]:
    for comparison in iter_comparisons(node):
        if isinstance(comparison.left, IndicatorRef) and comparison.left.kind == IndicatorKind.RSI:
            if isinstance(comparison.right, Constant):
                return float(comparison.right.value)
        if isinstance(comparison.right, IndicatorRef) and comparison.right.kind == IndicatorKind.RSI:
            if isinstance(comparison.left, Constant):
                return float(comparison.left.value)
    return None


def iter_comparisons(node: ConditionNode) -> Iterator[Comparison]:
    if isinstance(node, Comparison):
        yield node
        return
    for child in node.children:
        yield from iter_comparisons(child)


def iter_indicators(node: ConditionNode) -> Iterator[IndicatorRef]:
    for comparison in iter_comparisons(node):
        for operand in (comparison.left, comparison.right):
            if isinstance(operand, IndicatorRef):
                yield operand


def warmup_bars(node: ConditionNode) -> int:
    """Bars needed before every indicator in the tree is defined."""
    needed = 1
    for comparison in iter_comparisons(node):
        extra = 1 if comparison.op in (ComparisonOp.CROSSES_ABOVE, ComparisonOp.CROSSES_BELOW) else 0
        for operand in (comparison.left, comparison.right):
            if isinstance(operand, IndicatorRef):
                needed = max(needed, operand.warmup_bars + extra)
    return needed


# ---------------------------------------------------------------------------
# Evaluation


def evaluate(node: ConditionNode, series: PriceSeries, index: int) -> bool:
    return _evaluate(node, series, index) is True


def _evaluate(node: ConditionNode, series: PriceSeries, index: int) -> Optional[bool]:
    if isinstance(node, Logical):
        if node.op == LogicalOp.NOT:
            result = _evaluate(node.children[0], series, index)
            return None if result is None else not result
        unknown = False
        for child in node.children:
            result = _evaluate(child, series, index)
            if result is None:
                unknown = True
            elif node.op == LogicalOp.AND and result is False:
                return False
            elif node.op == LogicalOp.OR and result is True:
                return True
        if unknown:
            return None
        return node.op == LogicalOp.AND
    if isinstance(node, Comparison):
        return _compare(node, series, index)
    raise ValidationError(f"unsupported condition node {type(node).__name__}")


def resolve_operand(operand: Operand, series: PriceSeries, index: int) -> Optional[float]:
    if isinstance(operand, Constant):
        return float(operand.value)
    if isinstance(operand, PriceRef):
        return series.field_value(operand.field, index)
    return operand.value(series, index)


def _compare(node: Comparison, series: PriceSeries, index: int) -> Optional[bool]:
    if node.op in (ComparisonOp.CROSSES_ABOVE, ComparisonOp.CROSSES_BELOW):
        if index < 1:
            return None
        values = (
            resolve_operand(node.left, series, index - 1),
            resolve_operand(node.right, series, index - 1),
            resolve_operand(node.left, series, index),
            resolve_operand(node.right, series, index),
        )
        if any(value is None for value in values):
            return None
        prev_left, prev_right, left, right = values
        if node.op == ComparisonOp.CROSSES_ABOVE:
            return prev_left <= prev_right and left > right
        return prev_left >= prev_right and left < right

    left = resolve_operand(node.left, series, index)
    right = resolve_operand(node.right, series, index)
    if left is None or right is None:
        return None
    if node.op == ComparisonOp.GT:
        return left > right
    if node.op == ComparisonOp.LT:
        return left < right
    if node.op == ComparisonOp.GTE:
        return left >= right
    if node.op == ComparisonOp.LTE:
        return left <= right
    return math.isclose(left, right, rel_tol=EQ_REL_TOL, abs_tol=EQ_ABS_TOL)


# ---------------------------------------------------------------------------
# Parsing


_OPERATOR_ALIASES = {
    ">": ComparisonOp.GT,
    "<": ComparisonOp.LT,
    ">=": ComparisonOp.GTE,
    "<=": ComparisonOp.LTE,
    "==": ComparisonOp.EQ,
    "above": ComparisonOp.GT,
    "below": ComparisonOp.LT,
}

_INDICATOR_ALIASES = {
    "bollinger_bands": IndicatorKind.BOLLINGER_MIDDLE,
    "bollinger": IndicatorKind.BOLLINGER_MIDDLE,
}


def snake_case(name: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()


def _parse_comparison_op(value: Any, path: str = "condition") -> ComparisonOp:
    if isinstance(value, ComparisonOp):
        return value
    text = str(value).strip()
    if text in _OPERATOR_ALIASES:
        return _OPERATOR_ALIASES[text]
    try:
        return ComparisonOp(text.lower() if text.isupper() else snake_case(text))
    except ValueError as exc:
        raise ValidationError(f"unknown comparison operator {value!r}", path) from exc


def _parse_indicator_kind(value: Any, path: str) -> IndicatorKind:
    text = str(value)
    name = text.lower() if text.isupper() else snake_case(text)
    if name in _INDICATOR_ALIASES:
        return _INDICATOR_ALIASES[name]
    try:
        return IndicatorKind(name)
    except ValueError as exc:
        raise ValidationError(f"unknown indicator {value!r}", path) from exc


def parse_operand(value: Any, path: str = "operand") -> Operand:
    if isinstance(value, (IndicatorRef, PriceRef, Constant)):
        return value
    if isinstance(value, bool):
        raise ValidationError(f"boolean is not a valid operand: {value!r}", path)
    if isinstance(value, (int, float)):
        return Constant(value)
    if isinstance(value, str):
        text = value.strip()
        if text.lower() in PRICE_FIELDS:
            return PriceRef(text.lower())
        if text.startswith("indicator:"):
            return _parse_indicator_reference(text, path)
        raise ValidationError(f"unknown operand {value!r}", path)
    if isinstance(value, dict):
        if "indicator" in value:
            kind = _parse_indicator_kind(value["indicator"], path)
            params = dict(value.get("params") or {})
            params.update({key: item for key, item in value.items() if key not in ("indicator", "params")})
            return IndicatorRef.of(kind, **{snake_case(key): item for key, item in params.items()})
        if "field" in value:
            return PriceRef(str(value["field"]).lower())
        if "value" in value:
            return Constant(value["value"])
    raise ValidationError(f"unrecognized operand {value!r}", path)


def _parse_indicator_reference(text: str, path: str) -> IndicatorRef:
    """Parse ``indicator:sma:period=50`` style references."""
    kind_name, *pairs = text[len("indicator:") :].split(":")
    params: dict[str, Any] = {}
    for pair in pairs:
        if "=" not in pair:
            raise ValidationError(f"malformed indicator parameter {pair!r}", path)
        key, raw = pair.split("=", 1)
        try:
            params[snake_case(key)] = float(raw) if "." in raw else int(raw)
        except ValueError as exc:
            raise ValidationError(f"malformed indicator parameter {pair!r}", path) from exc
    return IndicatorRef.of(_parse_indicator_kind(kind_name, path), **params)


def parse_condition(data: Any, path: str = "condition") -> ConditionNode:
    """Build a condition tree from mappings/lists as found in YAML or JSON.

    Nesting deeper than ``MAX_PARSE_DEPTH`` is rejected while parsing; the
    configured ``ConditionLimits`` are enforced later by ``validate``.
    """
    return _parse_node(data, path, 1)


def _parse_node(data: Any, path: str, depth: int) -> ConditionNode:
    if depth > MAX_PARSE_DEPTH:
        raise ValidationError(f"condition nesting exceeds {MAX_PARSE_DEPTH} levels", path)
    if isinstance(data, (Logical, Comparison)):
        return data
    if isinstance(data, list):
        nodes = [_parse_node(item, f"{path}[{position}]", depth + 1) for position, item in enumerate(data)]
        if not nodes:
            raise ValidationError("empty condition list", path)
        if len(nodes) == 1:
            return nodes[0]
        return Logical(LogicalOp.OR, tuple(nodes))
    if not isinstance(data, dict):
        raise ValidationError(f"condition must be a mapping, got {type(data).__name__}", path)

    if data.get("type") == "indicator":
        return _parse_legacy_indicator(data.get("indicator") or {}, path)

    for op in LogicalOp:
        if op.value in data and len(data) == 1:
            return _parse_logical(op, data[op.value], path, depth)

    op_name = data.get("op", data.get("type"))
    if "children" in data and op_name is not None:
        try:
            op = LogicalOp(str(op_name).lower())
        except ValueError as exc:
            raise ValidationError(f"unknown logical operator {op_name!r}", path) from exc
        return _parse_logical(op, data["children"], path, depth)

    if "left" in data and "right" in data:
        operator = data.get("operator", data.get("op"))
        if operator is None:
            raise ValidationError("comparison is missing an operator", path)
        return Comparison(
            parse_operand(data["left"], f"{path}.left"),
            _parse_comparison_op(operator, path),
            parse_operand(data["right"], f"{path}.right"),
        )
    raise ValidationError(f"unrecognized condition node with keys {sorted(data)}", path)


def _parse_logical(op: LogicalOp, children: Any, path: str, depth: int) -> Logical:
    if isinstance(children, dict):
        children = [children]
    if not isinstance(children, list):
        raise ValidationError(f"{op.name} children must be a list", path)
    return Logical(
        op,
        tuple(
            _parse_node(child, f"{path}.{op.value}[{position}]", depth + 1)
            for position, child in enumerate(children)
        ),
    )


def _parse_legacy_indicator(spec: dict, path: str) -> Comparison:
    """Translate ``{type: indicator, indicator: {type, params, condition, value}}`` nodes."""
    kind_name = snake_case(str(spec.get("type", "")))
    condition = str(spec.get("condition", ""))
    value = spec.get("value")
    params = {snake_case(key): item for key, item in (spec.get("params") or {}).items()}
    params.pop("source", None)

    def ref(kind: IndicatorKind) -> IndicatorRef:
        return IndicatorRef.of(kind, **params)

    close = PriceRef("close")
    if kind_name in ("bollinger_bands", "bollinger"):
        if condition == "priceBelowLower":
            return Comparison(close, ComparisonOp.LT, ref(IndicatorKind.BOLLINGER_LOWER))
        if condition == "priceAboveUpper":
            return Comparison(close, ComparisonOp.GT, ref(IndicatorKind.BOLLINGER_UPPER))
        kind = IndicatorKind.BOLLINGER_MIDDLE
    else:
        kind = _parse_indicator_kind(kind_name, path)

    if kind == IndicatorKind.RSI and condition in ("overbought", "oversold"):
        if condition == "overbought":
            return Comparison(ref(kind), ComparisonOp.GT, Constant(value if _is_number(value) else 70))
        return Comparison(ref(kind), ComparisonOp.LT, Constant(value if _is_number(value) else 30))

    if kind == IndicatorKind.MACD:
        signal_ref = ref(IndicatorKind.MACD_SIGNAL)
        histogram_ref = ref(IndicatorKind.MACD_HISTOGRAM)
        macd_conditions = {
            "signalAbove": (ref(kind), ComparisonOp.GT, signal_ref),
            "signalBelow": (ref(kind), ComparisonOp.LT, signal_ref),
            "crossesAboveSignal": (ref(kind), ComparisonOp.CROSSES_ABOVE, signal_ref),
            "crossesBelowSignal": (ref(kind), ComparisonOp.CROSSES_BELOW, signal_ref),
            "histogramPositive": (histogram_ref, ComparisonOp.GT, Constant(0)),
            "histogramNegative": (histogram_ref, ComparisonOp.LT, Constant(0)),
        }
        if condition in macd_conditions:
            return Comparison(*macd_conditions[condition])

    if kind == IndicatorKind.VWAP and condition in ("priceAbove", "priceBelow"):
        op = ComparisonOp.GT if condition == "priceAbove" else ComparisonOp.LT
        return Comparison(close, op, ref(kind))

    if condition in ("above", "below", "crossesAbove", "crossesBelow"):
        op = _parse_comparison_op(condition, path)
        if _is_number(value):
            return Comparison(ref(kind), op, Constant(value))
        if isinstance(value, str) and value.startswith("indicator:"):
            return Comparison(ref(kind), op, _parse_indicator_reference(value, path))
        raise ValidationError(f"{condition} needs a numeric value or indicator reference", path)

    raise ValidationError(f"unknown condition {condition!r} for indicator {kind_name!r}", path)
