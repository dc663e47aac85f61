"""snowball.core

Core primitives: configuration, errors, logging setup.

Import submodules directly. This package stays import-light so the backtest
core can depend on it without pulling in config loading.
"""

from .exceptions import SnowballError

__all__ = ["SnowballError"]
