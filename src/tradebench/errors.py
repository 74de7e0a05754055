"""Exception hierarchy shared by the engine, strategies and sessions."""

from __future__ import annotations

from typing import Any, Optional


class TradebenchError(Exception):
    """Base error."""


class ValidationError(TradebenchError, ValueError):
    """Raised when a strategy definition, condition tree or parameter is rejected."""

    def __init__(self, message: str, path: Optional[str] = None, node: Any = None) -> None:
        if path:
            message = f"{path}: {message}"
        super().__init__(message)
        self.path = path
        self.node = node


class DataError(TradebenchError, ValueError):
    """Raised when a price series cannot be used (empty, unordered, too short)."""


class MarketDataError(DataError):
    """Raised by market data providers."""


class TransientMarketDataError(MarketDataError):
    """Provider failure that may succeed on a later attempt."""


class MarketDataNotFoundError(MarketDataError):
    """Symbol or range is not available from the provider."""


class StateTransitionError(TradebenchError, RuntimeError):
    """Raised when a session transition is not allowed from its current status."""


class SessionConflictError(StateTransitionError):
    """Raised when an owner already has an active session."""


class SessionNotFoundError(TradebenchError, LookupError):
    """Raised for unknown session ids."""


class EntitlementError(TradebenchError, PermissionError):
    """Raised when an owner is not allowed to start a session."""


class SimulationInvariantError(TradebenchError, RuntimeError):
    """Raised when portfolio state becomes inconsistent (negative cash, corrupted trade log)."""


class PersistenceError(TradebenchError, RuntimeError):
    """Raised by session repositories when a write or read fails."""
