# =============================================================================
# Grid World Environment
# =============================================================================
"""
Deterministic grid-world MDP used by every agent in the package.

This module provides:
- State / StepResult: the plain data exchanged between agents and environments
- RewardConfig: reward shaping constants
- GridWorldEnvironment: the classic grid with obstacles and a static goal

Coordinates:
------------
The agent starts at (0, 0) in the top-left corner. The goal is the
bottom-right cell (size - 1, size - 1). Actions are:

0: up    (y - 1)
1: down  (y + 1)
2: left  (x - 1)
3: right (x + 1)

Movement is clamped to the grid. Moving into an obstacle is rejected: the
agent stays put, receives the obstacle penalty, and the episode continues.

Model Interface:
----------------
Planning agents need the whole MDP, not just sampled steps. The environment
therefore also exposes enumerate_states(), get_available_actions(),
get_transition() and is_terminal_state(). get_transition() is a pure
one-step lookahead: it never moves the agent.
"""

import logging
import math
from dataclasses import asdict, dataclass
from typing import Any, Dict, Iterable, List, NamedTuple, Optional, Tuple

import numpy as np
from gymnasium.utils import seeding

logger = logging.getLogger(__name__)

NUM_ACTIONS = 4
ACTION_NAMES = ["up", "down", "left", "right"]
ACTION_DELTAS = [(0, -1), (0, 1), (-1, 0), (1, 0)]

DEFAULT_SIZE = 5
MIN_SIZE = 2


class State(NamedTuple):
    """Agent position on the grid."""
    x: int
    y: int


class StepResult(NamedTuple):
    """Outcome of a single environment step."""
    state: State
    reward: float
    done: bool


@dataclass
class RewardConfig:
    """Reward shaping constants."""
    step_penalty: float = -0.01
    obstacle_penalty: float = -0.1
    goal_reward: float = 1.0

    # Persisted field names
    _WIRE_NAMES = {
        "step_penalty": "stepPenalty",
        "obstacle_penalty": "obstaclePenalty",
        "goal_reward": "goalReward",
    }

    def to_dict(self) -> Dict[str, float]:
        """Convert to the persisted camelCase form."""
        return {self._WIRE_NAMES[k]: v for k, v in asdict(self).items()}

    def merged(self, overrides: Optional[Dict[str, Any]]) -> "RewardConfig":
        """
        Return a copy with valid overrides applied.

        Accepts camelCase or snake_case keys. Values that are not finite
        numbers are ignored and the current value is kept.
        """
        values = asdict(self)
        if not isinstance(overrides, dict):
            return RewardConfig(**values)
        for field_name, wire_name in self._WIRE_NAMES.items():
            raw = overrides.get(wire_name, overrides.get(field_name))
            if raw is None:
                continue
            number = _as_finite_float(raw)
            if number is None:
                logger.warning("Ignoring invalid reward %s=%r", wire_name, raw)
                continue
            values[field_name] = number
        return RewardConfig(**values)


def _as_finite_float(value: Any) -> Optional[float]:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def clamp_int(value: Any, low: int, high: int) -> Optional[int]:
    """Truncate to int and clamp into [low, high]; None if not numeric."""
    number = _as_finite_float(value)
    if number is None:
        return None
    return min(max(int(number), low), high)


def normalize_size(size: Any, default: int = DEFAULT_SIZE) -> int:
    """Invalid sizes fall back to the default; tiny ones are raised to 2."""
    number = _as_finite_float(size)
    if number is None:
        if size is not None:
            logger.warning("Invalid grid size %r, using %d", size, default)
        return default
    return max(MIN_SIZE, int(number))


def make_rng(rng: Optional[np.random.Generator] = None,
             seed: Optional[int] = None) -> np.random.Generator:
    """Use the injected generator or build a seeded one."""
    if rng is not None:
        return rng
    generator, _ = seeding.np_random(seed)
    return generator


class GridWorldEnvironment:
    """
    Classic grid world with obstacles and a static goal.

    Example:
    --------
    >>> env = GridWorldEnvironment(size=3, obstacles=[{"x": 1, "y": 0}])
    >>> env.reset()
    State(x=0, y=0)
    >>> env.step(3)  # right, into the obstacle
    StepResult(state=State(x=0, y=0), reward=-0.1, done=False)
    """

    scenario_id = "classic"

    def __init__(
        self,
        size: int = DEFAULT_SIZE,
        obstacles: Iterable[Any] = (),
        reward_config: Optional[Dict[str, Any]] = None,
        rng: Optional[np.random.Generator] = None,
        seed: Optional[int] = None,
    ):
        """
        Parameters:
        -----------
        size : int
            Grid side length (minimum 2; invalid values fall back to 5)
        obstacles : iterable
            Cells as {"x": .., "y": ..} dicts or (x, y) pairs
        reward_config : dict, optional
            stepPenalty / obstaclePenalty / goalReward overrides
        rng : numpy.random.Generator, optional
            Source of randomness for stochastic variants
        seed : int, optional
            Seed used when no generator is injected
        """
        self.size = normalize_size(size)
        self.rng = make_rng(rng, seed)
        self.rewards = RewardConfig().merged(reward_config)
        self.obstacles: List[Dict[str, int]] = []
        self.obstacle_set = set()
        self.set_obstacles(obstacles)
        self.agent_pos = State(0, 0)

    # -------------------------------------------------------------------------
    # Core MDP
    # -------------------------------------------------------------------------

    def reset(self) -> State:
        """Reset the agent to the start cell."""
        self.agent_pos = State(0, 0)
        return self.get_state()

    def get_state(self) -> State:
        return self.agent_pos

    def get_goal_position(self) -> State:
        return State(self.size - 1, self.size - 1)

    def step(self, action: int) -> StepResult:
        """
        Step the environment with an action.

        Parameters:
        -----------
        action : int
            0: up, 1: down, 2: left, 3: right

        Returns:
        --------
        StepResult
            (state, reward, done)
        """
        result = self._outcome(self.agent_pos, action)
        self.agent_pos = result.state
        return result

    def _move(self, x: int, y: int, action: int) -> Tuple[int, int]:
        if 0 <= action < NUM_ACTIONS:
            dx, dy = ACTION_DELTAS[action]
            x = min(max(x + dx, 0), self.size - 1)
            y = min(max(y + dy, 0), self.size - 1)
        return x, y

    def _outcome(self, position: State, action: int) -> StepResult:
        x, y = self._move(position.x, position.y, action)
        return self._land(position, x, y)

    def _land(self, position: State, x: int, y: int) -> StepResult:
        """Resolve obstacle, goal and reward for a proposed landing cell."""
        if self.is_obstacle(x, y):
            return StepResult(State(position.x, position.y),
                              self.rewards.obstacle_penalty, False)
        goal = self.get_goal_position()
        done = x == goal.x and y == goal.y
        return StepResult(State(x, y), self.calculate_reward(x, y, done), done)

    def calculate_reward(self, x: int, y: int, done: bool) -> float:
        return self.rewards.goal_reward if done else self.rewards.step_penalty

    # -------------------------------------------------------------------------
    # Obstacles and rewards
    # -------------------------------------------------------------------------

    def is_obstacle(self, x: int, y: int) -> bool:
        return (x, y) in self.obstacle_set

    def _is_protected(self, x: int, y: int) -> bool:
        goal = self.get_goal_position()
        return (x, y) == (0, 0) or (x, y) == (goal.x, goal.y)

    def toggle_obstacle(self, x: int, y: int) -> None:
        """Add or remove an obstacle. Start, goal and off-grid cells are ignored."""
        if not (0 <= x < self.size and 0 <= y < self.size):
            return
        if self._is_protected(x, y):
            return
        if (x, y) in self.obstacle_set:
            self.obstacle_set.discard((x, y))
        else:
            self.obstacle_set.add((x, y))
        self._sync_obstacle_list()

    def set_obstacles(self, obstacles: Iterable[Any]) -> None:
        """Replace all obstacles, dropping malformed and off-grid entries."""
        cells = set()
        for entry in obstacles or ():
            if isinstance(entry, dict):
                raw_x, raw_y = entry.get("x"), entry.get("y")
            else:
                try:
                    raw_x, raw_y = entry
                except (TypeError, ValueError):
                    logger.warning("Skipping malformed obstacle %r", entry)
                    continue
            x, y = _as_finite_float(raw_x), _as_finite_float(raw_y)
            if x is None or y is None:
                logger.warning("Skipping malformed obstacle %r", entry)
                continue
            x, y = int(x), int(y)
            if 0 <= x < self.size and 0 <= y < self.size and not self._is_protected(x, y):
                cells.add((x, y))
        self.obstacle_set = cells
        self._sync_obstacle_list()

    def _sync_obstacle_list(self) -> None:
        self.obstacles = [{"x": x, "y": y} for x, y in sorted(self.obstacle_set)]

    def set_reward_config(self, config: Optional[Dict[str, Any]]) -> None:
        self.rewards = self.rewards.merged(config)

    def get_reward_config(self) -> Dict[str, float]:
        return self.rewards.to_dict()

    @property
    def step_penalty(self) -> float:
        return self.rewards.step_penalty

    @property
    def obstacle_penalty(self) -> float:
        return self.rewards.obstacle_penalty

    @property
    def goal_reward(self) -> float:
        return self.rewards.goal_reward

    # -------------------------------------------------------------------------
    # Model interface (planning agents)
    # -------------------------------------------------------------------------

    def enumerate_states(self) -> List[State]:
        """All non-obstacle cells, row by row."""
        return [
            State(x, y)
            for y in range(self.size)
            for x in range(self.size)
            if not self.is_obstacle(x, y)
        ]

    def get_available_actions(self) -> List[int]:
        return list(range(NUM_ACTIONS))

    def get_transition(self, state: Any, action: int) -> StepResult:
        """Deterministic one-step lookahead; the environment is not mutated."""
        position = State(int(state[0]), int(state[1]))
        return self._outcome(position, action)

    def is_terminal_state(self, state: Any) -> bool:
        goal = self.get_goal_position()
        return int(state[0]) == goal.x and int(state[1]) == goal.y

    # -------------------------------------------------------------------------
    # Description and persistence
    # -------------------------------------------------------------------------

    def describe_cell(self, x: int, y: int) -> Dict[str, Any]:
        """Tags for an external renderer."""
        classes = []
        if self.is_obstacle(x, y):
            classes.append("obstacle")
        goal = self.get_goal_position()
        if (x, y) == (goal.x, goal.y):
            classes.append("goal")
        if (x, y) == (self.agent_pos.x, self.agent_pos.y):
            classes.append("agent")
        return {"x": x, "y": y, "classes": classes}

    def get_scenario_config(self) -> Optional[Dict[str, Any]]:
        return None

    def get_scenario_metadata(self) -> Dict[str, Any]:
        return {"id": self.scenario_id}

    def to_dict(self) -> Dict[str, Any]:
        """Environment persistence schema."""
        return {
            "size": self.size,
            "obstacles": [dict(o) for o in self.obstacles],
            "rewards": self.get_reward_config(),
            "scenarioId": self.scenario_id,
            "scenarioConfig": self.get_scenario_config(),
        }

    def __repr__(self) -> str:
        return (f"{type(self).__name__}(size={self.size}, "
                f"obstacles={len(self.obstacle_set)})")
