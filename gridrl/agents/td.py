# =============================================================================
# Temporal-Difference Variants
# =============================================================================
"""
One-step and trace-based TD variants of the tabular base.

- SarsaAgent:         on-policy target r + gamma * Q(s', a'), a' ~ policy
- ExpectedSarsaAgent: r + gamma * sum_a pi(a|s') Q(s', a), pi = epsilon-greedy
- OptimisticAgent:    Q-learning with fresh rows filled with a positive constant
- QLambdaAgent:       Q-learning with eligibility traces over the whole table

SARSA vs. Expected SARSA:
-------------------------
SARSA samples the next action, so its target carries the variance of that
sample. Expected SARSA averages over the policy's distribution instead and
needs no extra action query.
"""

from typing import Any, Dict, Optional

import numpy as np

from gridrl.agents.policies import epsilon_greedy_probabilities
from gridrl.agents.tabular import QLearningAgent, StateKey, state_key
from gridrl.environment.grid_world import NUM_ACTIONS


class SarsaAgent(QLearningAgent):
    """On-policy TD control."""

    agent_type = "sarsa"

    def learn(self, state, action, reward, next_state, done, weight=1.0):
        row = self._ensure(state)
        next_q = self._ensure(next_state)
        target = reward
        if not done:
            next_action = self.act(next_state)
            target += self.gamma * next_q[next_action]
        self._update(row, action, target, weight)
        self.decay_epsilon()


class ExpectedSarsaAgent(QLearningAgent):
    """TD control with the expectation over the epsilon-greedy policy."""

    agent_type = "expected"

    def _bootstrap(self, next_state) -> float:
        next_q = self._ensure(next_state)
        probs = epsilon_greedy_probabilities(next_q, self.epsilon)
        return float(np.dot(probs, next_q))


class OptimisticAgent(QLearningAgent):
    """Q-learning with optimistic initial values to encourage exploration."""

    agent_type = "optimistic"

    def __init__(self, initial_value: float = 1.0, **kwargs):
        self.initial_value = initial_value
        super().__init__(**kwargs)

    def _default_row(self) -> np.ndarray:
        return np.full(NUM_ACTIONS, self.initial_value, dtype=np.float64)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["initialValue"] = self.initial_value
        return data

    @classmethod
    def _options_from_dict(cls, data):
        options = super()._options_from_dict(data)
        if data.get("initialValue") is not None:
            options["initial_value"] = data["initialValue"]
        return options


class QLambdaAgent(QLearningAgent):
    """
    Q(lambda) with accumulating eligibility traces.

    Every learn() call bumps the trace of the taken action, computes a
    single TD error against max Q(s', .), and moves every traced entry by
    alpha * delta * trace. All traces then decay by lambda * gamma; they are
    cleared when the episode ends.
    """

    agent_type = "qlambda"

    def __init__(self, lambda_: float = 0.8, **kwargs):
        super().__init__(**kwargs)
        self.lambda_ = lambda_
        self.eligibility: Dict[StateKey, np.ndarray] = {}

    def _ensure_trace(self, state) -> np.ndarray:
        key = state_key(state)
        trace = self.eligibility.get(key)
        if trace is None:
            trace = np.zeros(NUM_ACTIONS, dtype=np.float64)
            self.eligibility[key] = trace
        return trace

    def learn(self, state, action, reward, next_state, done, weight=1.0):
        row = self._ensure(state)
        self._ensure(next_state)
        self._ensure_trace(state)[action] += 1.0
        target = reward if done else reward + self.gamma * self._bootstrap(next_state)
        delta = target - row[action]
        self.last_td_error = delta
        decay = self.lambda_ * self.gamma
        for key, trace in self.eligibility.items():
            self.q_table[key] += self.learning_rate * weight * delta * trace
            trace *= decay
        if done:
            self.eligibility.clear()
        self.decay_epsilon()

    def reset(self) -> None:
        super().reset()
        self.eligibility.clear()

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["lambda"] = self.lambda_
        return data

    @classmethod
    def _options_from_dict(cls, data):
        options = super()._options_from_dict(data)
        if data.get("lambda") is not None:
            options["lambda_"] = data["lambda"]
        return options
