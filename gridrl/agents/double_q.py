# =============================================================================
# Double Q-Learning Agent
# =============================================================================
"""
Double Q-learning: two tables to remove the maximization bias.

Why Two Tables?
---------------
Q-learning bootstraps from max_a Q(s', a). When the estimates are noisy,
the max of noisy estimates is biased upward, and that bias propagates.

Double Q-learning keeps tables A and B. Each update flips a coin:

    update A: a* = argmax_a A(s', a);  target = r + gamma * B(s', a*)
    update B: a* = argmax_a B(s', a);  target = r + gamma * A(s', a*)

One table picks the action, the other evaluates it. Acting uses the
average of both tables.
"""

from typing import Any, Dict

import numpy as np

from gridrl.agents.policies import best_action
from gridrl.agents.tabular import QLearningAgent, Table, table_from_dict, table_to_dict


class DoubleQAgent(QLearningAgent):
    """Tabular Double Q-learning."""

    agent_type = "double"

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.q_table_a: Table = {}
        self.q_table_b: Table = {}

    def _ensure_both(self, state):
        return self._ensure_row(self.q_table_a, state), self._ensure_row(self.q_table_b, state)

    def q_values(self, state) -> np.ndarray:
        qa, qb = self._ensure_both(state)
        return (qa + qb) / 2.0

    def learn(self, state, action, reward, next_state, done, weight=1.0):
        update_a = self.rng.random() < 0.5
        qa, qb = self._ensure_both(state)
        next_a, next_b = self._ensure_both(next_state)
        if update_a:
            row, selector, evaluator = qa, next_a, next_b
        else:
            row, selector, evaluator = qb, next_b, next_a
        target = reward
        if not done:
            target += self.gamma * evaluator[best_action(selector)]
        self._update(row, action, target, weight)
        self.decay_epsilon()

    def reset(self) -> None:
        super().reset()
        self.q_table_a.clear()
        self.q_table_b.clear()

    def to_dict(self) -> Dict[str, Any]:
        return {
            **self._common_dict(),
            "qTableA": table_to_dict(self.q_table_a),
            "qTableB": table_to_dict(self.q_table_b),
        }

    def _load_tables(self, data: Dict[str, Any]) -> None:
        super()._load_tables(data)
        self.q_table_a = table_from_dict(data.get("qTableA"))
        self.q_table_b = table_from_dict(data.get("qTableB"))
