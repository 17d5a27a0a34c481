"""
Custom exceptions for matrixwatch.

Provides a hierarchy of exceptions for configuration, data, and holding
validation failures. Configuration errors are fatal; data and holding errors
are recoverable per symbol.
"""


class MatrixWatchError(Exception):
    """Base exception for all matrixwatch errors."""

    pass


class ConfigurationError(MatrixWatchError):
    """Raised when application configuration is invalid."""

    pass


class ThresholdConfigError(ConfigurationError):
    """
    Raised when the threshold table cannot serve an active rule.

    A missing (rule, classification, tier) cell is a configuration defect,
    never a runtime condition to recover from. The engine refuses to start.
    """

    def __init__(self, message: str, rule_id: str | None = None):
        self.rule_id = rule_id
        super().__init__(message)


class DataError(MatrixWatchError):
    """Base exception for malformed or incomplete input data."""

    pass


class PriceSeriesError(DataError):
    """
    Raised when a price series is not ascending or has duplicate dates.

    Affects only the symbol the series belongs to.
    """

    def __init__(self, symbol: str, reason: str):
        self.symbol = symbol
        self.reason = reason
        super().__init__(f"Invalid price series for {symbol}: {reason}")


class InvalidHoldingError(MatrixWatchError):
    """
    Raised when a holding fails validation.

    The engine records the reason as a skip and continues with the batch.
    """

    def __init__(self, symbol: str, reason: str):
        self.symbol = symbol
        self.reason = reason
        super().__init__(f"Invalid holding {symbol}: {reason}")
