"""Interfaces for the services a session manager depends on, plus in-process implementations."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Iterable, Optional, Sequence

from tradebench.errors import MarketDataNotFoundError
from tradebench.session.models import SessionMode, SessionRecord, SessionStatus
from tradebench.session.store import SessionStore
from tradebench.simulator.models import PerformanceSummary, PortfolioSnapshot, PriceBar, Trade


class MarketDataProvider:
    def get_bars(
        self, symbol: str, start: datetime, end: datetime, interval: str
    ) -> list[PriceBar]:  # pragma: no cover - interface
        raise NotImplementedError


class ReplayMarketData(MarketDataProvider):
    """Serves preloaded bars, e.g. for paper sessions replaying history."""

    def __init__(self, bars_by_symbol: Optional[dict[str, Iterable[PriceBar]]] = None) -> None:
        self._bars: dict[str, list[PriceBar]] = {}
        for symbol, bars in (bars_by_symbol or {}).items():
            self.extend(symbol, bars)

    def extend(self, symbol: str, bars: Iterable[PriceBar]) -> None:
        existing = self._bars.setdefault(symbol, [])
        existing.extend(bars)
        existing.sort(key=lambda bar: bar.time)

    def get_bars(self, symbol: str, start: datetime, end: datetime, interval: str) -> list[PriceBar]:
        if symbol not in self._bars:
            raise MarketDataNotFoundError(f"No bars for {symbol}")
        return [bar for bar in self._bars[symbol] if start <= bar.time <= end]


class SessionRepository:
    """Persistence boundary; writes are idempotent upserts keyed by session id."""

    def save_session(self, record: SessionRecord) -> None:  # pragma: no cover - interface
        raise NotImplementedError

    def update_session_status(
        self,
        session_id: str,
        status: SessionStatus,
        final_stats: Optional[dict[str, Any]] = None,
    ) -> None:  # pragma: no cover - interface
        raise NotImplementedError

    def load_active_session(self, owner_id: str) -> Optional[SessionRecord]:  # pragma: no cover - interface
        raise NotImplementedError

    def save_performance_record(
        self,
        summary: PerformanceSummary,
        trades: Sequence[Trade],
        history: Sequence[PortfolioSnapshot],
        metadata: dict[str, Any],
    ) -> None:  # pragma: no cover - interface
        raise NotImplementedError


class Entitlements:
    def can_owner_start_session(
        self, owner_id: str, mode: SessionMode = SessionMode.PAPER
    ) -> bool:  # pragma: no cover - interface
        raise NotImplementedError


class AllowAllEntitlements(Entitlements):
    def can_owner_start_session(self, owner_id: str, mode: SessionMode = SessionMode.PAPER) -> bool:
        return True


class Tier(str, Enum):
    FREE = "free"
    BASIC = "basic"
    PREMIUM = "premium"
    ENTERPRISE = "enterprise"


@dataclass(frozen=True)
class TierLimits:
    max_running_sessions: int  # -1 means unlimited
    live_trading: bool


DEFAULT_TIER_LIMITS: dict[Tier, TierLimits] = {
    Tier.FREE: TierLimits(max_running_sessions=1, live_trading=False),
    Tier.BASIC: TierLimits(max_running_sessions=5, live_trading=True),
    Tier.PREMIUM: TierLimits(max_running_sessions=25, live_trading=True),
    Tier.ENTERPRISE: TierLimits(max_running_sessions=-1, live_trading=True),
}


class TierEntitlements(Entitlements):
    """Counts an owner's non-terminal sessions (ACTIVE and PAUSED) against the tier limit."""

    def __init__(
        self,
        store: SessionStore,
        tiers: Optional[dict[str, Tier | str]] = None,
        default_tier: Tier = Tier.FREE,
        limits: Optional[dict[Tier, TierLimits]] = None,
    ) -> None:
        self.store = store
        self.tiers = {owner: Tier(tier) for owner, tier in (tiers or {}).items()}
        self.default_tier = default_tier
        self.limits = limits or DEFAULT_TIER_LIMITS

    def tier_for(self, owner_id: str) -> Tier:
        return self.tiers.get(owner_id, self.default_tier)

    def can_owner_start_session(self, owner_id: str, mode: SessionMode = SessionMode.PAPER) -> bool:
        limits = self.limits[self.tier_for(owner_id)]
        if mode == SessionMode.LIVE and not limits.live_trading:
            return False
        if limits.max_running_sessions < 0:
            return True
        return self.store.running_count(owner_id) < limits.max_running_sessions
