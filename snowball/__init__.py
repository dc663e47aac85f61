"""snowball: backtest core for the market dashboard.

A snowball only grows if you leave it rolling. Most strategies do not.
"""

from __future__ import annotations

__all__ = ["__version__"]

__version__ = "0.4.0"
