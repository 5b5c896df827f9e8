# =============================================================================
# Dyna-Q Agent
# =============================================================================
"""
Dyna-Q: Q-learning plus planning with a learned model.

Each real step:
1. Regular Q-learning update from the observed transition
2. Record Model[(s, a)] = (s', r, done)   (last observation wins)
3. `planning_steps` synthetic updates, each replaying a (s, a) pair drawn
   uniformly from every pair seen so far through the model
"""

from typing import Any, Dict, List, Optional, Tuple

from gridrl.agents.tabular import (
    QLearningAgent,
    StateKey,
    format_key,
    parse_key,
    state_key,
)

ModelEntry = Tuple[StateKey, float, bool]


class DynaQAgent(QLearningAgent):
    """Model-based acceleration of tabular Q-learning."""

    agent_type = "dyna"

    def __init__(self, planning_steps: int = 5, **kwargs):
        super().__init__(**kwargs)
        self.planning_steps = planning_steps
        self.model: Dict[Tuple[StateKey, int], ModelEntry] = {}
        self.state_actions: List[Tuple[StateKey, int]] = []

    def _update_model(self, state, action, reward, next_state, done) -> None:
        key = (state_key(state), int(action))
        if key not in self.model:
            self.state_actions.append(key)
        self.model[key] = (state_key(next_state), float(reward), bool(done))

    def _q_update(self, state, action, reward, next_state, done, weight=1.0) -> None:
        row = self._ensure(state)
        self._ensure(next_state)
        target = reward if done else reward + self.gamma * self._bootstrap(next_state)
        self._update(row, action, target, weight)

    def _run_planning_steps(self) -> None:
        total = len(self.state_actions)
        if total == 0:
            return
        real_td_error = self.last_td_error
        for _ in range(self.planning_steps):
            state, action = self.state_actions[int(self.rng.integers(total))]
            next_state, reward, done = self.model[(state, action)]
            self._q_update(state, action, reward, next_state, done)
        self.last_td_error = real_td_error

    def learn(self, state, action, reward, next_state, done, weight=1.0):
        self._update_model(state, action, reward, next_state, done)
        self._q_update(state, action, reward, next_state, done, weight)
        self._run_planning_steps()
        self.decay_epsilon()

    def reset(self) -> None:
        super().reset()
        self.model.clear()
        self.state_actions.clear()

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["planningSteps"] = self.planning_steps
        data["model"] = [
            {
                "state": format_key(s),
                "action": a,
                "nextState": format_key(self.model[(s, a)][0]),
                "reward": self.model[(s, a)][1],
                "done": self.model[(s, a)][2],
            }
            for s, a in self.state_actions
        ]
        return data

    @classmethod
    def _options_from_dict(cls, data):
        options = super()._options_from_dict(data)
        if data.get("planningSteps") is not None:
            options["planning_steps"] = int(data["planningSteps"])
        return options

    def _load_tables(self, data: Dict[str, Any]) -> None:
        super()._load_tables(data)
        entries = data.get("model")
        for entry in entries if isinstance(entries, list) else []:
            if not isinstance(entry, dict):
                continue
            state: Optional[StateKey] = parse_key(entry.get("state", ""))
            next_state = parse_key(entry.get("nextState", ""))
            if state is None or next_state is None:
                continue
            self._update_model(state, int(entry.get("action", 0)),
                               entry.get("reward", 0.0), next_state, entry.get("done", False))
