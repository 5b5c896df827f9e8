# =============================================================================
# Action Selection Policies
# =============================================================================
"""
Pure action selection over a vector of action values.

Policies:
---------
- epsilon-greedy: random action with probability epsilon, else arg-max
- greedy:         always arg-max
- softmax:        sample from exp(Q / temperature)
- ucb:            untried actions first, then Q + c * sqrt(ln N / n_a)
- thompson:       arg-max of Gaussian samples N(Q_a, 1 / (n_a + 1))
- random:         uniform, ignores the values

Ties in arg-max always go to the lowest index. UCB and Thompson sampling
read per-state visitation counts and increment the chosen action's count
unless `update=False` (evaluation-only queries).
"""

import math
from enum import Enum
from typing import Optional, Sequence

import numpy as np


class Policy(str, Enum):
    EPSILON_GREEDY = "epsilon-greedy"
    GREEDY = "greedy"
    SOFTMAX = "softmax"
    UCB = "ucb"
    THOMPSON = "thompson"
    RANDOM = "random"

    @classmethod
    def parse(cls, value) -> "Policy":
        """Unknown names fall back to epsilon-greedy."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.EPSILON_GREEDY


def best_action(q_values: Sequence[float]) -> int:
    """Arg-max with ties broken by the lowest index."""
    return int(np.argmax(np.asarray(q_values)))


def softmax_probabilities(q_values: Sequence[float], temperature: float = 1.0) -> Optional[np.ndarray]:
    """
    Temperature-scaled softmax, or None when the distribution is degenerate
    (non-positive temperature, overflow, or zero partition sum).
    """
    if not temperature or temperature <= 0:
        return None
    with np.errstate(over="ignore", invalid="ignore"):
        exps = np.exp(np.asarray(q_values, dtype=np.float64) / temperature)
        total = exps.sum()
    if not math.isfinite(total) or total <= 0:
        return None
    return exps / total


def epsilon_greedy_probabilities(q_values: Sequence[float], epsilon: float) -> np.ndarray:
    """Action distribution of the epsilon-greedy policy."""
    n = len(q_values)
    probs = np.full(n, epsilon / n)
    probs[best_action(q_values)] += 1.0 - epsilon
    return probs


def sample_index(probs: np.ndarray, rng: np.random.Generator) -> int:
    """Inverse-CDF draw from a normalized distribution."""
    cumulative = np.cumsum(probs)
    index = int(np.searchsorted(cumulative, rng.random() * cumulative[-1], side="right"))
    return min(index, len(probs) - 1)


def ucb_action(q_values: Sequence[float], counts: np.ndarray, c: float) -> int:
    untried = np.flatnonzero(counts == 0)
    if untried.size:
        return int(untried[0])
    total = counts.sum()
    scores = np.asarray(q_values) + c * np.sqrt(math.log(total) / counts)
    return best_action(scores)


def thompson_action(q_values: Sequence[float], counts: np.ndarray,
                    rng: np.random.Generator) -> int:
    std = np.sqrt(1.0 / (counts + 1.0))
    samples = rng.normal(np.asarray(q_values, dtype=np.float64), std)
    return best_action(samples)


def select_action(
    policy,
    q_values: Sequence[float],
    rng: np.random.Generator,
    epsilon: float = 0.0,
    temperature: float = 1.0,
    ucb_c: float = 2.0,
    counts: Optional[np.ndarray] = None,
    update: bool = True,
) -> int:
    """
    Choose an action for one state.

    Parameters:
    -----------
    policy : Policy or str
        Policy kind (unknown names behave as epsilon-greedy)
    q_values : sequence of float
        Current action values for the state
    rng : numpy.random.Generator
        Source of randomness
    epsilon, temperature, ucb_c : float
        Policy hyperparameters
    counts : np.ndarray, optional
        Visitation counts for the state (UCB / Thompson); mutated in place
        when `update` is True
    update : bool
        Whether UCB / Thompson should record the visit

    Returns:
    --------
    int
        Chosen action index
    """
    policy = Policy.parse(policy)
    n = len(q_values)

    if policy is Policy.RANDOM:
        return int(rng.integers(n))
    if policy is Policy.GREEDY:
        return best_action(q_values)
    if policy is Policy.SOFTMAX:
        probs = softmax_probabilities(q_values, temperature)
        if probs is None:
            return best_action(q_values)
        return sample_index(probs, rng)
    if policy in (Policy.UCB, Policy.THOMPSON):
        if counts is None:
            counts = np.zeros(n, dtype=np.int64)
        if policy is Policy.UCB:
            action = ucb_action(q_values, counts, ucb_c)
        else:
            action = thompson_action(q_values, counts, rng)
        if update:
            counts[action] += 1
        return action

    if rng.random() < epsilon:
        return int(rng.integers(n))
    return best_action(q_values)
