"""Built-in strategy catalog, parameter validation and signal source selection."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Optional

from tradebench.errors import ValidationError
from tradebench.strategy.base import SignalSource
from tradebench.strategy.bollinger import build_bollinger_from_config
from tradebench.strategy.breakout import build_breakout_from_config
from tradebench.strategy.conditions import ConditionLimits, snake_case
from tradebench.strategy.crossover import build_crossover_from_config
from tradebench.strategy.custom import ConditionStrategy
from tradebench.strategy.mean_reversion import build_mean_reversion_from_config
from tradebench.strategy.models import BuiltInStrategy, CustomStrategy, StrategyDefinition
from tradebench.strategy.momentum import build_momentum_from_config


@dataclass(frozen=True)
class ParameterSpec:
    default: Any
    minimum: Optional[float] = None
    maximum: Optional[float] = None
    integer: bool = False
    options: tuple[str, ...] = ()
    description: str = ""


BUILTIN_PARAMETERS: dict[str, dict[str, ParameterSpec]] = {
    "mean_reversion": {
        "window": ParameterSpec(20, 5, 200, integer=True, description="Rolling mean window"),
        "threshold": ParameterSpec(0.05, 0.01, 0.2, description="Deviation from the mean that triggers a trade"),
    },
    "moving_average_crossover": {
        "fast_window": ParameterSpec(10, 5, 50, integer=True),
        "slow_window": ParameterSpec(30, 10, 200, integer=True),
        "ma_type": ParameterSpec("SMA", options=("SMA", "EMA")),
    },
    "momentum": {
        "rsi_window": ParameterSpec(14, 5, 50, integer=True),
        "rsi_overbought": ParameterSpec(70.0, 60, 90),
        "rsi_oversold": ParameterSpec(30.0, 10, 40),
        "momentum_window": ParameterSpec(10, 5, 50, integer=True),
        "momentum_threshold": ParameterSpec(0.02, 0.01, 0.1),
    },
    "bollinger_bands": {
        "window": ParameterSpec(20, 5, 50, integer=True),
        "multiplier": ParameterSpec(2.0, 1.0, 3.0),
        "ma_type": ParameterSpec("SMA", options=("SMA", "EMA")),
    },
    "breakout": {
        "lookback_window": ParameterSpec(20, 5, 100, integer=True),
        "breakout_threshold": ParameterSpec(0.01, 0.005, 0.05),
        "min_volume_ratio": ParameterSpec(1.5, 1.0, 5.0),
        "confirmation_period": ParameterSpec(2, 1, 5, integer=True, description="Bars held before exit"),
    },
}

_BUILDERS: dict[str, Callable[[dict], SignalSource]] = {
    "mean_reversion": build_mean_reversion_from_config,
    "moving_average_crossover": build_crossover_from_config,
    "momentum": build_momentum_from_config,
    "bollinger_bands": build_bollinger_from_config,
    "breakout": build_breakout_from_config,
}


def resolve_strategy_name(name: str) -> str:
    canonical = snake_case(str(name))
    if canonical not in BUILTIN_PARAMETERS:
        raise ValidationError(f"unknown strategy {name!r}", "strategy.name")
    return canonical


def default_parameters(name: str) -> dict[str, Any]:
    specs = BUILTIN_PARAMETERS[resolve_strategy_name(name)]
    return {key: spec.default for key, spec in specs.items()}


def _check_value(strategy: str, key: str, spec: ParameterSpec, value: Any) -> Any:
    path = f"parameters.{key}"
    if spec.options:
        text = str(value).upper()
        if text not in spec.options:
            raise ValidationError(f"{strategy}.{key} must be one of {', '.join(spec.options)}, got {value!r}", path)
        return text
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f"{strategy}.{key} must be a number, got {value!r}", path)
    if spec.integer and float(value) != int(value):
        raise ValidationError(f"{strategy}.{key} must be an integer, got {value!r}", path)
    if spec.minimum is not None and value < spec.minimum:
        raise ValidationError(f"{strategy}.{key}={value} is below minimum {spec.minimum}", path)
    if spec.maximum is not None and value > spec.maximum:
        raise ValidationError(f"{strategy}.{key}={value} is above maximum {spec.maximum}", path)
    return int(value) if spec.integer else float(value)


def validate_parameters(name: str, parameters: Optional[dict[str, Any]] = None) -> dict[str, Any]:
    """Return defaults merged with ``parameters``; camelCase keys are accepted."""
    strategy = resolve_strategy_name(name)
    specs = BUILTIN_PARAMETERS[strategy]
    resolved = {key: spec.default for key, spec in specs.items()}
    for key, value in (parameters or {}).items():
        normalized = snake_case(key)
        spec = specs.get(normalized)
        if spec is None:
            raise ValidationError(f"unknown parameter {key!r} for {strategy}", f"parameters.{key}")
        resolved[normalized] = _check_value(strategy, normalized, spec, value)

    if strategy == "moving_average_crossover" and resolved["fast_window"] >= resolved["slow_window"]:
        raise ValidationError("fast_window must be less than slow_window", "parameters.fast_window")
    if strategy == "momentum" and resolved["rsi_oversold"] >= resolved["rsi_overbought"]:
        raise ValidationError("rsi_oversold must be less than rsi_overbought", "parameters.rsi_oversold")
    return resolved


def build_signal_source(
    definition: StrategyDefinition,
    limits: Optional[ConditionLimits] = None,
) -> SignalSource:
    """Validate ``definition`` and return a fresh signal source for it."""
    if isinstance(definition, CustomStrategy):
        return ConditionStrategy(definition.buy, definition.sell, limits)
    if isinstance(definition, BuiltInStrategy):
        strategy = resolve_strategy_name(definition.name)
        parameters = validate_parameters(strategy, definition.parameters)
        return _BUILDERS[strategy](parameters)
    raise ValidationError(f"unsupported strategy definition {type(definition).__name__}", "strategy")


def list_strategies() -> list[dict[str, Any]]:
    catalog = []
    for name, specs in BUILTIN_PARAMETERS.items():
        catalog.append(
            {
                "name": name,
                "parameters": {
                    key: {
                        "default": spec.default,
                        "min": spec.minimum,
                        "max": spec.maximum,
                        "options": list(spec.options),
                        "description": spec.description,
                    }
                    for key, spec in specs.items()
                },
            }
        )
    return catalog
