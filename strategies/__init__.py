"""
Strategies Module
Launch strategies and the factory that builds them
"""

from .base import (
    AntiSniperStrategyOptions, BuyOptions, BundleStrategyOptions, Countermeasure, LaunchStrategy,
    StaggeredStrategyOptions, StrategyOptions, StrategyResources, StrategyStage, StrategyStatus,
    StrategyType, TokenLaunchContext
)
from .bundle import BundleLaunchStrategy
from .staggered import StaggeredLaunchStrategy
from .anti_sniper import AntiSniperStrategy, CountermeasureOutcome
from .factory import StrategyFactory

__all__ = [
    'AntiSniperStrategyOptions', 'BuyOptions', 'BundleStrategyOptions', 'Countermeasure',
    'LaunchStrategy', 'StaggeredStrategyOptions', 'StrategyOptions', 'StrategyResources',
    'StrategyStage', 'StrategyStatus', 'StrategyType', 'TokenLaunchContext',
    'BundleLaunchStrategy', 'StaggeredLaunchStrategy', 'AntiSniperStrategy',
    'CountermeasureOutcome', 'StrategyFactory'
]
