# =============================================================================
# Monte Carlo Control Agent
# =============================================================================
"""
First-visit Monte Carlo control.

Transitions are buffered until the episode ends. Then the buffer is walked
backwards accumulating the return

    G <- r_t + gamma * G

and the first occurrence of each (state, action) pair in the episode moves
Q(s, a) toward G with a running average:

    N(s, a) += 1
    Q(s, a) += (G - Q(s, a)) / N(s, a)

N lives in its own `return_counts` table so it never mixes with the
visitation counts UCB / Thompson sampling keep.

With `exploring_starts`, the first action of every episode is uniformly
random. Epsilon decays once per episode, not once per step.
"""

from typing import Any, Dict, List, Tuple

import numpy as np

from gridrl.agents.tabular import (
    QLearningAgent,
    StateKey,
    Table,
    state_key,
    table_from_dict,
    table_to_dict,
)
from gridrl.environment.grid_world import NUM_ACTIONS


class MonteCarloAgent(QLearningAgent):
    """Episodic first-visit Monte Carlo control."""

    agent_type = "mc"

    def __init__(self, exploring_starts: bool = False, **kwargs):
        super().__init__(**kwargs)
        self.exploring_starts = bool(exploring_starts)
        self.episode: List[Tuple[StateKey, int, float]] = []
        self.return_counts: Table = {}

    def act(self, state, update: bool = True) -> int:
        if self.exploring_starts and not self.episode:
            return int(self.rng.integers(NUM_ACTIONS))
        return super().act(state, update)

    def _ensure_return_counts(self, key: StateKey) -> np.ndarray:
        counts = self.return_counts.get(key)
        if counts is None:
            counts = np.zeros(NUM_ACTIONS, dtype=np.float64)
            self.return_counts[key] = counts
        return counts

    def learn(self, state, action, reward, next_state, done, weight=1.0):
        self.episode.append((state_key(state), int(action), float(reward)))
        if not done:
            return

        first_visit = {}
        for index, (key, a, _) in enumerate(self.episode):
            first_visit.setdefault((key, a), index)

        g = 0.0
        for index in range(len(self.episode) - 1, -1, -1):
            key, a, r = self.episode[index]
            g = r + self.gamma * g
            if first_visit[(key, a)] != index:
                continue
            row = self._ensure(key)
            counts = self._ensure_return_counts(key)
            counts[a] += 1
            self.last_td_error = g - row[a]
            row[a] += self.last_td_error / counts[a]

        self.episode = []
        self.decay_epsilon()

    def reset(self) -> None:
        super().reset()
        self.episode = []
        self.return_counts.clear()

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["returnCounts"] = table_to_dict(self.return_counts)
        data["exploringStarts"] = self.exploring_starts
        return data

    @classmethod
    def _options_from_dict(cls, data):
        options = super()._options_from_dict(data)
        if data.get("exploringStarts") is not None:
            options["exploring_starts"] = bool(data["exploringStarts"])
        return options

    def _load_tables(self, data: Dict[str, Any]) -> None:
        super()._load_tables(data)
        self.return_counts = table_from_dict(data.get("returnCounts"))
