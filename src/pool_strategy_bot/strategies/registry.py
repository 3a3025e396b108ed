"""
Strategy registry for configuration-driven strategy selection.

A worker runs exactly one strategy, chosen by name at startup and built
from its JSON configuration.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional, Type

from pydantic import ValidationError

from pool_strategy_bot.exceptions import ConfigurationError

from .protocol import BaseStrategy


class StrategyNotFoundError(ConfigurationError):
    """No strategy is registered under the requested name."""

    pass


class DuplicateStrategyError(Exception):
    """Two strategy classes claim the same name."""

    pass


class StrategyRegistry:
    """
    Registry of strategy classes by name.

    Usage:
        registry = StrategyRegistry()
        registry.register(GridStrategy)

        strategy = registry.build("grid", {"strategy_token": "...", ...})
        names = registry.list_all()
    """

    def __init__(self) -> None:
        self._classes: Dict[str, Type[BaseStrategy]] = {}

    def register(self, strategy_class: Type[BaseStrategy]) -> None:
        """
        Register a strategy class under its `name`.

        Raises:
            DuplicateStrategyError: If the name is taken
        """
        name = strategy_class.name
        if not name:
            raise ValueError(f"{strategy_class.__name__} has no name")
        if name in self._classes:
            raise DuplicateStrategyError(
                f"Strategy name '{name}' is taken by {self._classes[name].__name__}"
            )
        self._classes[name] = strategy_class

    def get(self, name: str) -> Type[BaseStrategy]:
        """
        Get a strategy class by name.

        Raises:
            StrategyNotFoundError: If the name is unknown
        """
        if name not in self._classes:
            available = ", ".join(self.list_all()) or "none registered"
            raise StrategyNotFoundError(
                f"Unknown strategy '{name}' (available: {available})"
            )
        return self._classes[name]

    def get_optional(self, name: str) -> Optional[Type[BaseStrategy]]:
        return self._classes.get(name)

    def build(self, name: str, raw_config: Dict[str, Any]) -> BaseStrategy:
        """
        Validate configuration and instantiate a strategy.

        Raises:
            StrategyNotFoundError: If the name is unknown
            ConfigurationError: If the configuration is invalid
        """
        strategy_class = self.get(name)
        try:
            return strategy_class.from_dict(raw_config)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration for strategy '{name}': {e}") from e

    def unregister(self, name: str) -> bool:
        """Remove a strategy; True if it was registered."""
        return self._classes.pop(name, None) is not None

    def list_all(self) -> List[str]:
        """Sorted list of registered strategy names."""
        return sorted(self._classes.keys())

    def __len__(self) -> int:
        return len(self._classes)

    def __contains__(self, name: str) -> bool:
        return name in self._classes


# Global default registry
_default_registry: Optional[StrategyRegistry] = None


def get_default_registry() -> StrategyRegistry:
    """Default registry, pre-populated with the built-in strategies."""
    global _default_registry
    if _default_registry is None:
        from .builtin import GridStrategy, StopLossStrategy, TrailingStopStrategy

        _default_registry = StrategyRegistry()
        for strategy_class in (StopLossStrategy, GridStrategy, TrailingStopStrategy):
            _default_registry.register(strategy_class)
    return _default_registry


def build_strategy(name: str, raw_config: Dict[str, Any]) -> BaseStrategy:
    """Build a strategy from the default registry."""
    return get_default_registry().build(name, raw_config)
