"""snowball.core.exceptions

Errors are part of the interface.

A caller must be able to tell "no data" from "no trades". Anything that
degrades silently belongs in the result, not here.
"""

from __future__ import annotations


class SnowballError(Exception):
    """Base exception for snowball."""


class ConfigError(SnowballError):
    """Configuration is missing, invalid, or inconsistent."""


class BacktestError(SnowballError):
    """A backtest could not be run to completion."""


class InsufficientDataError(BacktestError):
    """Not enough bars to replay. Two is the minimum."""


class UnknownStrategyError(BacktestError):
    """Strategy id is not registered."""


class DataFormatError(SnowballError):
    """Price data is malformed: missing columns, bad numbers, or unordered dates."""
