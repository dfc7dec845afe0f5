"""
Strategy Factory
Creates launch strategies and keeps a catalogue of every instance built
"""

import logging
import time
from typing import Any, Dict, Mapping, Optional, Type, Union

from errors import UnsupportedStrategyError
from strategies.anti_sniper import AntiSniperStrategy
from strategies.base import LaunchStrategy, StrategyOptions, StrategyResources, StrategyType
from strategies.bundle import BundleLaunchStrategy
from strategies.staggered import StaggeredLaunchStrategy

logger = logging.getLogger(__name__)

OptionsLike = Union[StrategyOptions, Mapping[str, Any], None]

STRATEGY_CLASSES: Dict[StrategyType, Type[LaunchStrategy]] = {
    StrategyType.BUNDLE: BundleLaunchStrategy,
    StrategyType.STAGGERED: StaggeredLaunchStrategy,
    StrategyType.ANTI_SNIPER: AntiSniperStrategy,
}


class StrategyFactory:
    """Builds strategies bound to one set of shared resources"""

    def __init__(self, resources: StrategyResources):
        self.resources = resources
        self._strategies: Dict[str, LaunchStrategy] = {}

    async def create_strategy(self, strategy_type: Union[StrategyType, str],
                              options: OptionsLike = None) -> LaunchStrategy:
        """Create a strategy by type, initializing it only when options are given"""
        try:
            strategy_type = StrategyType(strategy_type)
        except ValueError:
            raise UnsupportedStrategyError(f"Unsupported strategy type: {strategy_type}")

        strategy = STRATEGY_CLASSES[strategy_type](self.resources)

        if options is not None:
            await strategy.initialize(options)

        self._register(strategy_type, strategy)
        return strategy

    async def create_bundle_strategy(self, options: OptionsLike = None) -> LaunchStrategy:
        """Create bundle strategy with its default option set"""
        return await self._create_with_defaults(StrategyType.BUNDLE, options)

    async def create_staggered_strategy(self, options: OptionsLike = None) -> LaunchStrategy:
        """Create staggered strategy with its default option set"""
        return await self._create_with_defaults(StrategyType.STAGGERED, options)

    async def create_anti_sniper_strategy(self, options: OptionsLike = None) -> LaunchStrategy:
        """Create anti-sniper strategy with its default option set"""
        return await self._create_with_defaults(StrategyType.ANTI_SNIPER, options)

    async def _create_with_defaults(self, strategy_type: StrategyType,
                                    options: OptionsLike) -> LaunchStrategy:
        strategy = STRATEGY_CLASSES[strategy_type](self.resources)

        # initialize() merges caller options over the variant defaults
        if options is not None:
            await strategy.initialize(options)

        self._register(strategy_type, strategy)
        return strategy

    def get_strategy(self, strategy_id: str) -> Optional[LaunchStrategy]:
        """Get a strategy by ID"""
        return self._strategies.get(strategy_id)

    def get_all_strategies(self) -> Dict[str, LaunchStrategy]:
        """Get a copy of the catalogue"""
        return dict(self._strategies)

    def _register(self, strategy_type: StrategyType, strategy: LaunchStrategy) -> str:
        base_id = f"{strategy_type.value}-{int(time.time() * 1000)}"
        strategy_id = base_id
        suffix = 1
        while strategy_id in self._strategies:
            strategy_id = f"{base_id}-{suffix}"
            suffix += 1

        self._strategies[strategy_id] = strategy
        logger.debug(f"Registered strategy {strategy_id}")
        return strategy_id
