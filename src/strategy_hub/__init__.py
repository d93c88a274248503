"""AI Strategy Hub - generate, refine, backtest and keep AI trading strategies."""

__version__ = "0.1.0"
