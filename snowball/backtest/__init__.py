"""snowball.backtest

Backtest core.

- engine: bar-by-bar replay of one signal function over one price history
- validation: summary statistics + drawdown analysis
- strategies: reference signal generators
- periodic: dollar-cost averaging / lump-sum simulation
"""
