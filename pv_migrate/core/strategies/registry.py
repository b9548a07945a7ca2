"""Ordered registry of migration strategies."""

from collections.abc import Iterable, Sequence

from ..exceptions import ConfigurationError
from .base import BaseStrategy
from .mount_both import MountBothStrategy
from .rsync_cross_cluster import RsyncCrossClusterStrategy
from .rsync_in_cluster import RsyncInClusterStrategy


class StrategyRegistry:
    """Strategies in priority order, looked up by name.

    Built once at startup and handed to the engine; never modified afterwards.
    """

    def __init__(self, strategies: Iterable[BaseStrategy]):
        self._strategies: tuple[BaseStrategy, ...] = tuple(strategies)
        names = [strategy.name for strategy in self._strategies]
        if any(not name for name in names):
            raise ConfigurationError("Every strategy must have a name")
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ConfigurationError(f"Duplicate strategy names: {', '.join(duplicates)}")
        self._by_name = {strategy.name: strategy for strategy in self._strategies}

    def __len__(self) -> int:
        return len(self._strategies)

    def __iter__(self):
        return iter(self._strategies)

    def names(self) -> list[str]:
        return [strategy.name for strategy in self._strategies]

    def get(self, name: str) -> BaseStrategy:
        try:
            return self._by_name[name]
        except KeyError:
            raise ConfigurationError(
                f"Unknown strategy '{name}', available: {', '.join(self.names())}"
            ) from None

    def resolve(self, override: Sequence[str] = ()) -> list[BaseStrategy]:
        """Compute the candidate list for a request.

        Args:
            override: Strategy names in the caller's order, empty for all in default order

        Returns:
            Strategies to try, in order

        Raises:
            ConfigurationError: On unknown or duplicate names, or an empty result
        """
        if not override:
            candidates = list(self._strategies)
        else:
            seen: set[str] = set()
            candidates = []
            for name in override:
                if name in seen:
                    raise ConfigurationError(f"Strategy '{name}' listed more than once")
                seen.add(name)
                candidates.append(self.get(name))

        if not candidates:
            raise ConfigurationError("No strategies to try")
        return candidates


def default_registry() -> StrategyRegistry:
    """Built-in strategies, cheapest first."""
    return StrategyRegistry(
        [
            MountBothStrategy(),
            RsyncInClusterStrategy(),
            RsyncCrossClusterStrategy(),
        ]
    )
