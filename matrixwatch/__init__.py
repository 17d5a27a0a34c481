"""
matrixwatch - Decision matrix engine for multi-currency portfolios.

Evaluates holdings against a classification x tier threshold table using
technical indicators (RSI, MACD, moving averages, 52-week range) and
earnings quality to produce ranked advisory alerts.
"""

__version__ = "0.1.0"
