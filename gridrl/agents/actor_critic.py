# =============================================================================
# Tabular Actor-Critic Agent
# =============================================================================
"""
One-step actor-critic with softmax action preferences.

Why Actor-Critic?
-----------------
Value-based agents need an explicit exploration rule (epsilon, UCB, ...).
Here the actor holds per-state action preferences and acts by sampling

    pi(a|s) = softmax(pref(s, .) / temperature)

so exploration comes from the policy itself and `epsilon` is always 0.

Update:
-------
The critic keeps action values and computes the TD error

    delta = r + gamma * max V(s', .) - V(s, a)     (no bootstrap if done)

then
    V(s, a)      += alpha_critic * delta
    pref(s, i)   += alpha_actor * delta * (1[i = a] - pi(i|s))
"""

from typing import Any, Dict, Optional

import numpy as np

from gridrl.agents.policies import best_action, sample_index
from gridrl.agents.tabular import (
    Table,
    make_agent_rng,
    state_key,
    table_from_dict,
    table_to_dict,
)
from gridrl.environment.grid_world import NUM_ACTIONS


def stable_softmax(preferences: np.ndarray, temperature: float) -> np.ndarray:
    """Max-shifted softmax; uniform when the temperature is unusable."""
    if not temperature or temperature <= 0:
        return np.full(len(preferences), 1.0 / len(preferences))
    shifted = (preferences - np.max(preferences)) / temperature
    exps = np.exp(shifted)
    return exps / exps.sum()


class ActorCriticAgent:
    """Tabular softmax actor with an action-value critic."""

    agent_type = "ac"
    supports_sample_weight = False

    def __init__(
        self,
        gamma: float = 0.95,
        alpha_critic: float = 0.1,
        alpha_actor: float = 0.1,
        temperature: float = 1.0,
        rng: Optional[np.random.Generator] = None,
        seed: Optional[int] = None,
    ):
        self.gamma = gamma
        self.alpha_critic = alpha_critic
        self.alpha_actor = alpha_actor
        self.temperature = temperature
        self.epsilon = 0.0
        self.rng = make_agent_rng(rng, seed)
        self.value_table: Table = {}
        self.policy_table: Table = {}
        self.last_td_error = 0.0

    def _ensure_row(self, table: Table, state) -> np.ndarray:
        key = state_key(state)
        row = table.get(key)
        if row is None:
            row = np.zeros(NUM_ACTIONS, dtype=np.float64)
            table[key] = row
        return row

    def policy_probs(self, state) -> np.ndarray:
        """Action distribution of the actor for a state."""
        return stable_softmax(self._ensure_row(self.policy_table, state), self.temperature)

    def act(self, state, update: bool = True) -> int:
        return sample_index(self.policy_probs(state), self.rng)

    def greedy_action(self, state) -> int:
        return best_action(self._ensure_row(self.policy_table, state))

    def q_values(self, state) -> np.ndarray:
        return self._ensure_row(self.value_table, state).copy()

    def learn(self, state, action, reward, next_state, done, weight=1.0):
        values = self._ensure_row(self.value_table, state)
        next_values = self._ensure_row(self.value_table, next_state)
        prefs = self._ensure_row(self.policy_table, state)
        probs = self.policy_probs(state)

        bootstrap = 0.0 if done else float(np.max(next_values))
        delta = reward + self.gamma * bootstrap - values[action]
        self.last_td_error = delta

        values[action] += self.alpha_critic * delta
        grad = -probs
        grad[action] += 1.0
        prefs += self.alpha_actor * delta * grad

    def reset(self) -> None:
        self.value_table.clear()
        self.policy_table.clear()
        self.last_td_error = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.agent_type,
            "gamma": self.gamma,
            "alphaCritic": self.alpha_critic,
            "alphaActor": self.alpha_actor,
            "temperature": self.temperature,
            "valueTable": table_to_dict(self.value_table),
            "policyTable": table_to_dict(self.policy_table),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], rng: Optional[np.random.Generator] = None,
                  seed: Optional[int] = None) -> "ActorCriticAgent":
        data = data or {}
        mapping = {
            "gamma": "gamma",
            "alphaCritic": "alpha_critic",
            "alphaActor": "alpha_actor",
            "temperature": "temperature",
        }
        options = {name: data[key] for key, name in mapping.items() if data.get(key) is not None}
        agent = cls(rng=rng, seed=seed, **options)
        agent.value_table = table_from_dict(data.get("valueTable"))
        agent.policy_table = table_from_dict(data.get("policyTable"))
        return agent

    def __repr__(self) -> str:
        return (f"ActorCriticAgent(gamma={self.gamma}, temperature={self.temperature}, "
                f"states={len(self.policy_table)})")
