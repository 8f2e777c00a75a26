"""Rollout strategy variants and their registry."""

from rollout_engine.config import RolloutSettings
from rollout_engine.domain.exceptions import UnsupportedStrategyError
from rollout_engine.domain.models.deployment import DeploymentStrategy
from rollout_engine.domain.ports.effects import RolloutEffects
from rollout_engine.domain.ports.services import Tracer
from rollout_engine.domain.services.strategies.base import GateFailed, RolloutStrategy
from rollout_engine.domain.services.strategies.blue_green import BlueGreenStrategy
from rollout_engine.domain.services.strategies.canary import CanaryStrategy
from rollout_engine.domain.services.strategies.hotfix import HotfixStrategy
from rollout_engine.domain.services.strategies.rolling import batch_size, RollingStrategy


STRATEGY_REGISTRY: dict[DeploymentStrategy, type[RolloutStrategy]] = {
    DeploymentStrategy.BLUE_GREEN: BlueGreenStrategy,
    DeploymentStrategy.CANARY: CanaryStrategy,
    DeploymentStrategy.ROLLING: RollingStrategy,
    DeploymentStrategy.HOTFIX: HotfixStrategy,
}


def build_strategy(
    strategy: DeploymentStrategy,
    effects: RolloutEffects,
    settings: RolloutSettings,
    tracer: Tracer,
) -> RolloutStrategy:
    """Create a fresh variant for one run."""
    try:
        cls = STRATEGY_REGISTRY[strategy]
    except KeyError:
        raise UnsupportedStrategyError(f"Unsupported deployment type: {strategy}") from None
    return cls(effects, settings, tracer)


__all__ = [
    "BlueGreenStrategy",
    "CanaryStrategy",
    "GateFailed",
    "HotfixStrategy",
    "RollingStrategy",
    "RolloutStrategy",
    "STRATEGY_REGISTRY",
    "batch_size",
    "build_strategy",
]
