"""Indicators, condition trees and signal sources."""

from tradebench.strategy.base import SignalSource, generate_signals
from tradebench.strategy.bollinger import BollingerBandsStrategy, BollingerParams, build_bollinger_from_config
from tradebench.strategy.breakout import BreakoutParams, BreakoutStrategy, build_breakout_from_config
from tradebench.strategy.conditions import (
    Comparison,
    ComparisonOp,
    ConditionLimits,
    ConditionNode,
    Constant,
    IndicatorKind,
    IndicatorRef,
    Logical,
    LogicalOp,
    PriceRef,
    all_of,
    any_of,
    compare,
    evaluate,
    negate,
    parse_condition,
    validate,
    validate_strategy,
)
from tradebench.strategy.crossover import CrossoverParams, MovingAverageCrossoverStrategy, build_crossover_from_config
from tradebench.strategy.custom import ConditionStrategy
from tradebench.strategy.indicators import PriceSeries
from tradebench.strategy.market_data import group_by_symbol, read_bars_csv
from tradebench.strategy.mean_reversion import (
    MeanReversionParams,
    MeanReversionStrategy,
    build_mean_reversion_from_config,
)
from tradebench.strategy.models import BuiltInStrategy, CustomStrategy, StrategyDefinition
from tradebench.strategy.momentum import MomentumParams, MomentumStrategy, build_momentum_from_config
from tradebench.strategy.registry import (
    BUILTIN_PARAMETERS,
    build_signal_source,
    default_parameters,
    list_strategies,
    validate_parameters,
)

__all__ = [
    "BUILTIN_PARAMETERS",
    "BollingerBandsStrategy",
    "BollingerParams",
    "BreakoutParams",
    "BreakoutStrategy",
    "BuiltInStrategy",
    "Comparison",
    "ComparisonOp",
    "ConditionLimits",
    "ConditionNode",
    "ConditionStrategy",
    "Constant",
    "CrossoverParams",
    "CustomStrategy",
    "IndicatorKind",
    "IndicatorRef",
    "Logical",
    "LogicalOp",
    "MeanReversionParams",
    "MeanReversionStrategy",
    "MomentumParams",
    "MomentumStrategy",
    "MovingAverageCrossoverStrategy",
    "PriceRef",
    "PriceSeries",
    "SignalSource",
    "StrategyDefinition",
    "all_of",
    "any_of",
    "build_bollinger_from_config",
    "build_breakout_from_config",
    "build_crossover_from_config",
    "build_mean_reversion_from_config",
    "build_momentum_from_config",
    "build_signal_source",
    "compare",
    "default_parameters",
    "evaluate",
    "generate_signals",
    "group_by_symbol",
    "list_strategies",
    "negate",
    "parse_condition",
    "read_bars_csv",
    "validate",
    "validate_parameters",
    "validate_strategy",
]
