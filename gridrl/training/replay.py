# =============================================================================
# Experience Replay
# =============================================================================
"""
Bounded transition buffer with uniform or prioritized re-sampling.

Storage:
--------
A ring buffer of transitions with a parallel priority array. Once the
buffer is full, the write pointer wraps and overwrites the oldest slot, so
len(buffer) never exceeds capacity.

Prioritized Sampling:
---------------------
    scaled_i = priority_i ** alpha
    P_i      = scaled_i / sum_j scaled_j
    weight_i = P_i ** beta / max_j P_j ** beta

Indices are drawn by inverse-CDF over P. The importance-sampling weight
corrects the bias of non-uniform sampling; the most likely transition gets
weight 1. After each prioritized call with count > 0, beta anneals toward 1
by `beta_increment`. If all priorities are zero, sampling falls back to
uniform with weight 1.
"""

import logging
from typing import Any, List, NamedTuple, Optional

import numpy as np

logger = logging.getLogger(__name__)


class Transition(NamedTuple):
    state: Any
    action: int
    reward: float
    next_state: Any
    done: bool


class ReplaySample(NamedTuple):
    index: int
    transition: Transition
    weight: float


class ExperienceReplay:
    """
    Fixed-capacity replay buffer.

    Example:
    --------
    >>> replay = ExperienceReplay(capacity=2)
    >>> for i in range(3):
    ...     replay.add(Transition((i, 0), 0, 0.0, (i, 0), False))
    >>> [t.state for t in replay.buffer]
    [(2, 0), (1, 0)]
    """

    def __init__(
        self,
        capacity: int = 1000,
        alpha: float = 0.6,
        beta: float = 0.4,
        beta_increment: float = 0.001,
        rng: Optional[np.random.Generator] = None,
    ):
        """
        Parameters:
        -----------
        capacity : int
            Maximum number of stored transitions
        alpha : float
            Priority exponent (0 = uniform)
        beta : float
            Initial importance-sampling exponent
        beta_increment : float
            Annealing step applied after each prioritized sample call
        rng : numpy.random.Generator, optional
            Source of randomness
        """
        if capacity < 0:
            raise ValueError(f"capacity must be non-negative, got {capacity}")
        self.capacity = int(capacity)
        self.alpha = alpha
        self.beta = beta
        self.beta_increment = beta_increment
        self.rng = rng if rng is not None else np.random.default_rng()
        self.buffer: List[Transition] = []
        self.priorities: List[float] = []
        self.position = 0

    def __len__(self) -> int:
        return len(self.buffer)

    def add(self, transition: Transition, priority: float = 1.0) -> None:
        """Store a transition, evicting the oldest once at capacity."""
        if self.capacity == 0:
            return
        if len(self.buffer) < self.capacity:
            self.buffer.append(transition)
            self.priorities.append(float(priority))
        else:
            self.buffer[self.position] = transition
            self.priorities[self.position] = float(priority)
        self.position = (self.position + 1) % self.capacity

    def max_priority(self) -> float:
        """Largest stored priority (1.0 for an empty buffer)."""
        return max(self.priorities) if self.priorities else 1.0

    def sample(self, count: int, strategy: str = "uniform") -> List[ReplaySample]:
        """
        Draw `count` transitions with replacement.

        Parameters:
        -----------
        count : int
            Number of samples
        strategy : str
            "uniform" or "priority"

        Returns:
        --------
        List[ReplaySample]
            (index, transition, weight) triples
        """
        if not self.buffer or count <= 0:
            return []
        if strategy == "priority":
            return self._sample_priority(count)
        return self._sample_uniform(count)

    def _sample_uniform(self, count: int) -> List[ReplaySample]:
        indices = self.rng.integers(len(self.buffer), size=count)
        return [ReplaySample(int(i), self.buffer[i], 1.0) for i in indices]

    def _sample_priority(self, count: int) -> List[ReplaySample]:
        scaled = np.power(np.asarray(self.priorities, dtype=np.float64), self.alpha)
        total = scaled.sum()
        if not np.isfinite(total) or total <= 0:
            logger.debug("Zero priority mass, sampling uniformly")
            return self._sample_uniform(count)

        probs = scaled / total
        cumulative = np.cumsum(probs)
        draws = self.rng.random(count) * cumulative[-1]
        indices = np.minimum(np.searchsorted(cumulative, draws, side="right"), len(probs) - 1)

        weights = np.power(probs, self.beta)
        weights = weights / weights.max()

        self.beta = min(1.0, self.beta + self.beta_increment)
        return [ReplaySample(int(i), self.buffer[i], float(weights[i])) for i in indices]

    def update_priority(self, index: int, priority: float) -> None:
        """Patch a stored priority; out-of-range indices are ignored."""
        if 0 <= index < len(self.priorities):
            self.priorities[index] = float(priority)

    def clear(self) -> None:
        self.buffer.clear()
        self.priorities.clear()
        self.position = 0


if __name__ == "__main__":
    print("Testing ExperienceReplay...")
    print()

    replay = ExperienceReplay(capacity=4, rng=np.random.default_rng(0))
    for i in range(6):
        replay.add(Transition((i, 0), 3, -0.01, (i + 1, 0), False), priority=float(i + 1))
    print(f"Stored {len(replay)} of 6 transitions (capacity {replay.capacity})")
    print(f"Priorities: {replay.priorities}")

    for strategy in ("uniform", "priority"):
        samples = replay.sample(3, strategy)
        print(f"{strategy:>8}: " + ", ".join(
            f"{s.transition.state}@{s.weight:.2f}" for s in samples))

    replay.update_priority(0, 10.0)
    print(f"Max priority after update: {replay.max_priority()}")
    replay.clear()
    assert len(replay) == 0

    print()
    print("✓ ExperienceReplay test passed!")
