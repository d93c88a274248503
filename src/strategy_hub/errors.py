"""Exception hierarchy shared across the strategy hub."""

from __future__ import annotations


class StrategyHubError(Exception):
    """Base strategy hub error."""


class SchemaValidationError(StrategyHubError):
    """Raised when a generation result does not match the expected shape."""


class GenerationServiceError(StrategyHubError):
    """Raised when the generation service call fails or times out."""


class StrategyNotFoundError(StrategyHubError):
    """Raised when an id is absent from the strategy collection."""

    def __init__(self, strategy_id: str) -> None:
        super().__init__(f"strategy_not_found: {strategy_id}")
        self.strategy_id = strategy_id


class DuplicateStrategyError(StrategyHubError):
    """Raised when inserting an id that already exists in the collection."""

    def __init__(self, strategy_id: str) -> None:
        super().__init__(f"duplicate_strategy_id: {strategy_id}")
        self.strategy_id = strategy_id


class AlreadySavedError(StrategyHubError):
    """Raised when saving a strategy that already has an identity."""

    def __init__(self, strategy_id: str) -> None:
        super().__init__(f"strategy_already_saved: {strategy_id}")
        self.strategy_id = strategy_id


class PersistenceError(StrategyHubError):
    """Raised by key-value stores on read/write failure."""


class NoCurrentStrategyError(StrategyHubError):
    """Raised when an action needs a current strategy and none is loaded."""
