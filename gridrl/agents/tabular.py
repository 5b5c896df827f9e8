# =============================================================================
# Tabular Q-Learning Agent
# =============================================================================
"""
Shared tabular base for the value-based agent family.

This module provides:
- state_key / format_key / parse_key: canonical state keys
- Table helpers: lazy creation and plain-dict (de)serialization
- QLearningAgent: off-policy Q-learning, the base every variant builds on

Q-Learning Explained:
---------------------
Each (state, action) pair keeps an estimate Q(s, a) of the discounted
return. After observing (s, a, r, s', done):

    target = r                        if done
           = r + gamma * max Q(s', .) otherwise
    Q(s, a) += alpha * (target - Q(s, a))

Tables:
-------
Tables are dicts keyed by the (x, y) integer tuple of the state. Rows are
created lazily on first access with the agent's default row (zeros, or an
optimistic constant for OptimisticAgent), so a lookup never sees a missing
entry. On disk the key becomes the string "x,y":

    {"0,0": [0.1, -0.2, 0.0, 0.5]}

Exploration:
------------
The exploration rate decays once per learn() call:

    epsilon <- max(min_epsilon, epsilon * epsilon_decay)
"""

import logging
from typing import Any, Dict, Optional, Sequence, Tuple

import numpy as np

from gridrl.agents.policies import Policy, best_action, select_action
from gridrl.environment.grid_world import NUM_ACTIONS

logger = logging.getLogger(__name__)

StateKey = Tuple[int, int]
Table = Dict[StateKey, np.ndarray]


# =============================================================================
# Keys and tables
# =============================================================================

def state_key(state: Sequence[Any]) -> StateKey:
    """Canonical table key: equal coordinates always give equal keys."""
    return int(state[0]), int(state[1])


def format_key(key: StateKey) -> str:
    return f"{key[0]},{key[1]}"


def parse_key(text: str) -> Optional[StateKey]:
    """Parse "x,y"; returns None for malformed keys."""
    parts = str(text).split(",")
    if len(parts) != 2:
        return None
    try:
        return int(float(parts[0])), int(float(parts[1]))
    except ValueError:
        return None


def table_to_dict(table: Table) -> Dict[str, list]:
    return {format_key(k): [v.item() for v in row] for k, row in table.items()}


def table_from_dict(data: Any, dtype=np.float64) -> Table:
    """Missing or malformed data yields an empty table."""
    table: Table = {}
    if not isinstance(data, dict):
        return table
    for raw_key, values in data.items():
        key = parse_key(raw_key)
        if key is None:
            logger.warning("Skipping malformed table key %r", raw_key)
            continue
        try:
            row = np.asarray(values, dtype=dtype)
        except (TypeError, ValueError):
            logger.warning("Skipping malformed table row for %r", raw_key)
            continue
        if row.shape != (NUM_ACTIONS,):
            logger.warning("Skipping table row %r with shape %s", raw_key, row.shape)
            continue
        table[key] = row
    return table


def make_agent_rng(rng: Optional[np.random.Generator], seed: Optional[int]) -> np.random.Generator:
    return rng if rng is not None else np.random.default_rng(seed)


# =============================================================================
# Base agent
# =============================================================================

class QLearningAgent:
    """
    Tabular Q-learning agent.

    Example:
    --------
    >>> agent = QLearningAgent(epsilon=0.0, seed=0)
    >>> agent.learn((0, 0), 3, 1.0, (1, 0), True)
    >>> agent.q_values((0, 0))
    array([0. , 0. , 0. , 0.1])
    """

    agent_type = "rl"
    supports_sample_weight = True

    def __init__(
        self,
        epsilon: float = 0.1,
        gamma: float = 0.95,
        learning_rate: float = 0.1,
        epsilon_decay: float = 0.99,
        min_epsilon: float = 0.01,
        policy: str = Policy.EPSILON_GREEDY.value,
        temperature: float = 1.0,
        ucb_c: float = 2.0,
        rng: Optional[np.random.Generator] = None,
        seed: Optional[int] = None,
    ):
        """
        Parameters:
        -----------
        epsilon : float
            Initial exploration rate
        gamma : float
            Discount factor in [0, 1)
        learning_rate : float
            Step size in (0, 1]
        epsilon_decay : float
            Multiplicative decay applied after every learn() call
        min_epsilon : float
            Exploration floor
        policy : str
            Action selection policy (see gridrl.agents.policies)
        temperature : float
            Softmax temperature
        ucb_c : float
            UCB exploration constant
        rng / seed
            Source of randomness (injected generator or seed)
        """
        self.initial_epsilon = epsilon
        self.epsilon = epsilon
        self.gamma = gamma
        self.learning_rate = learning_rate
        self.epsilon_decay = epsilon_decay
        self.min_epsilon = min_epsilon
        self.policy = Policy.parse(policy).value
        self.temperature = temperature
        self.ucb_c = ucb_c
        self.rng = make_agent_rng(rng, seed)
        self.q_table: Table = {}
        self.count_table: Dict[StateKey, np.ndarray] = {}
        self.last_td_error = 0.0

    # -------------------------------------------------------------------------
    # Table access
    # -------------------------------------------------------------------------

    def _default_row(self) -> np.ndarray:
        return np.zeros(NUM_ACTIONS, dtype=np.float64)

    def _ensure_row(self, table: Table, state) -> np.ndarray:
        key = state_key(state)
        row = table.get(key)
        if row is None:
            row = self._default_row()
            table[key] = row
        return row

    def _ensure(self, state) -> np.ndarray:
        return self._ensure_row(self.q_table, state)

    def _ensure_counts(self, state) -> np.ndarray:
        key = state_key(state)
        counts = self.count_table.get(key)
        if counts is None:
            counts = np.zeros(NUM_ACTIONS, dtype=np.int64)
            self.count_table[key] = counts
        return counts

    def q_values(self, state) -> np.ndarray:
        """Action values used for acting (a copy)."""
        return self._ensure(state).copy()

    # -------------------------------------------------------------------------
    # Acting
    # -------------------------------------------------------------------------

    def _select(self, state, q_values: np.ndarray, update: bool = True) -> int:
        counts = None
        if self.policy in (Policy.UCB.value, Policy.THOMPSON.value):
            counts = self._ensure_counts(state)
        return select_action(
            self.policy,
            q_values,
            self.rng,
            epsilon=self.epsilon,
            temperature=self.temperature,
            ucb_c=self.ucb_c,
            counts=counts,
            update=update,
        )

    def act(self, state, update: bool = True) -> int:
        """Choose an action with the configured policy."""
        return self._select(state, self.q_values(state), update)

    def greedy_action(self, state) -> int:
        return best_action(self.q_values(state))

    def decay_epsilon(self) -> None:
        """Reduce exploration rate after learning."""
        self.epsilon = max(self.min_epsilon, self.epsilon * self.epsilon_decay)

    # -------------------------------------------------------------------------
    # Learning
    # -------------------------------------------------------------------------

    def _bootstrap(self, next_state) -> float:
        return float(np.max(self._ensure(next_state)))

    def _update(self, row: np.ndarray, action: int, target: float, weight: float = 1.0) -> None:
        self.last_td_error = target - row[action]
        row[action] += self.learning_rate * weight * self.last_td_error

    def learn(self, state, action: int, reward: float, next_state, done: bool,
              weight: float = 1.0) -> None:
        """
        Perform one tabular update.

        Parameters:
        -----------
        state, next_state : State or (x, y)
            Transition endpoints
        action : int
            Action taken
        reward : float
            Reward received
        done : bool
            Whether the episode ended
        weight : float
            Importance-sampling weight scaling the step size
        """
        row = self._ensure(state)
        self._ensure(next_state)
        target = reward if done else reward + self.gamma * self._bootstrap(next_state)
        self._update(row, action, target, weight)
        self.decay_epsilon()

    def reset(self) -> None:
        """Restore the initial exploration rate and clear all tables."""
        self.epsilon = self.initial_epsilon
        self.q_table.clear()
        self.count_table.clear()
        self.last_td_error = 0.0

    # -------------------------------------------------------------------------
    # Serialization
    # -------------------------------------------------------------------------

    def _common_dict(self) -> Dict[str, Any]:
        return {
            "type": self.agent_type,
            "epsilon": self.epsilon,
            "gamma": self.gamma,
            "learningRate": self.learning_rate,
            "epsilonDecay": self.epsilon_decay,
            "minEpsilon": self.min_epsilon,
            "policy": self.policy,
            "temperature": self.temperature,
            "ucbC": self.ucb_c,
            "countTable": table_to_dict(self.count_table),
        }

    def to_dict(self) -> Dict[str, Any]:
        """Serialize hyperparameters and tables to plain data."""
        return {**self._common_dict(), "qTable": table_to_dict(self.q_table)}

    @classmethod
    def _options_from_dict(cls, data: Dict[str, Any]) -> Dict[str, Any]:
        mapping = {
            "epsilon": "epsilon",
            "gamma": "gamma",
            "learningRate": "learning_rate",
            "epsilonDecay": "epsilon_decay",
            "minEpsilon": "min_epsilon",
            "policy": "policy",
            "temperature": "temperature",
            "ucbC": "ucb_c",
        }
        return {name: data[key] for key, name in mapping.items() if data.get(key) is not None}

    def _load_tables(self, data: Dict[str, Any]) -> None:
        self.q_table = table_from_dict(data.get("qTable"))
        self.count_table = table_from_dict(data.get("countTable"), dtype=np.int64)

    @classmethod
    def from_dict(cls, data: Dict[str, Any], rng: Optional[np.random.Generator] = None,
                  seed: Optional[int] = None) -> "QLearningAgent":
        """Recreate an agent from serialized data."""
        data = data or {}
        agent = cls(rng=rng, seed=seed, **cls._options_from_dict(data))
        agent._load_tables(data)
        return agent

    def __repr__(self) -> str:
        return (f"{type(self).__name__}(epsilon={self.epsilon:.3f}, gamma={self.gamma}, "
                f"states={len(self.q_table)})")


if __name__ == "__main__":
    from gridrl.environment.grid_world import GridWorldEnvironment

    print("Testing QLearningAgent...")
    print()

    env = GridWorldEnvironment(size=4)
    agent = QLearningAgent(learning_rate=0.5, epsilon=1.0, epsilon_decay=0.99, seed=7)

    for episode in range(100):
        state = env.reset()
        for _ in range(100):
            action = agent.act(state)
            next_state, reward, done = env.step(action)
            agent.learn(state, action, reward, next_state, done)
            state = next_state
            if done:
                break

    print(agent)
    print(f"Q(0, 0): {np.round(agent.q_values((0, 0)), 3)}")

    restored = QLearningAgent.from_dict(agent.to_dict())
    assert np.allclose(restored.q_values((0, 0)), agent.q_values((0, 0)))

    print()
    print("✓ QLearningAgent test passed!")
