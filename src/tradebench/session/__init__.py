"""Trading session lifecycle."""

from tradebench.session.collaborators import (
    DEFAULT_TIER_LIMITS,
    AllowAllEntitlements,
    Entitlements,
    MarketDataProvider,
    ReplayMarketData,
    SessionRepository,
    Tier,
    TierEntitlements,
    TierLimits,
)
from tradebench.session.manager import SessionManager
from tradebench.session.models import (
    ALLOWED_TRANSITIONS,
    SessionEvent,
    SessionMode,
    SessionRecord,
    SessionStatus,
    TickResult,
    TradingSession,
)
from tradebench.session.store import SessionStore

__all__ = [
    "ALLOWED_TRANSITIONS",
    "AllowAllEntitlements",
    "DEFAULT_TIER_LIMITS",
    "Entitlements",
    "MarketDataProvider",
    "ReplayMarketData",
    "SessionEvent",
    "SessionManager",
    "SessionMode",
    "SessionRecord",
    "SessionRepository",
    "SessionStatus",
    "SessionStore",
    "TickResult",
    "Tier",
    "TierEntitlements",
    "TierLimits",
    "TradingSession",
]
