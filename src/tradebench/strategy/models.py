"""Strategy definitions."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Union

from tradebench.strategy.conditions import ConditionNode


@dataclass(frozen=True)
class BuiltInStrategy:
    name: str
    parameters: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class CustomStrategy:
    buy: ConditionNode
    sell: ConditionNode
    name: str = "custom"


StrategyDefinition = Union[BuiltInStrategy, CustomStrategy]
