"""tradesim.core.exceptions

Errors are part of the interface.

Only caller contract violations raise. Thin data degrades to a zero-trade
result instead.
"""

from __future__ import annotations


class TradesimError(Exception):
    """Base exception for tradesim."""


class ConfigError(TradesimError):
    """Configuration is missing, invalid, or inconsistent."""


class InputContractError(TradesimError):
    """The caller handed the core something it promised not to."""


class CandleOrderError(InputContractError):
    """Candles are not time ordered, or mix symbols within one run."""


class ParameterError(InputContractError):
    """A strategy or risk parameter is outside anything that can be clamped."""
