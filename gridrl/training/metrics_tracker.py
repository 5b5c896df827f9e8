# =============================================================================
# Training Metrics
# =============================================================================
"""
Per-episode counters reported with every progress event.
"""

from dataclasses import dataclass, replace
from typing import Any, Dict, List


@dataclass
class TrainingMetrics:
    episode: int = 1
    steps: int = 0
    cumulative_reward: float = 0.0
    epsilon: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "episode": self.episode,
            "steps": self.steps,
            "cumulativeReward": self.cumulative_reward,
            "epsilon": self.epsilon,
        }


def agent_epsilon(agent) -> float:
    return float(getattr(agent, "epsilon", 0.0) or 0.0)


class MetricsTracker:
    """
    Tracks the running episode and the history of episode returns.

    update() and end_episode() return snapshots (copies), so callers can
    keep them without seeing later mutations.
    """

    def __init__(self, agent):
        self.metrics = TrainingMetrics()
        self.episode_rewards: List[float] = []
        self.reset(agent)

    def reset(self, agent) -> None:
        self.metrics = TrainingMetrics(epsilon=agent_epsilon(agent))
        self.episode_rewards = []

    def update(self, reward: float, agent) -> TrainingMetrics:
        self.metrics.steps += 1
        self.metrics.cumulative_reward += reward
        self.metrics.epsilon = agent_epsilon(agent)
        return replace(self.metrics)

    def end_episode(self, agent) -> TrainingMetrics:
        self.episode_rewards.append(self.metrics.cumulative_reward)
        self.metrics.episode += 1
        self.metrics.steps = 0
        self.metrics.cumulative_reward = 0.0
        self.metrics.epsilon = agent_epsilon(agent)
        return replace(self.metrics)

    @property
    def data(self) -> TrainingMetrics:
        return self.metrics
