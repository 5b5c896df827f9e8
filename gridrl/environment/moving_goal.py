# =============================================================================
# Moving Goal Environment
# =============================================================================
"""
Grid world whose goal cycles through a fixed pattern.

The goal advances to the next cell of the pattern every `move_frequency`
steps, and immediately after an episode ends.
"""

from typing import Any, Dict, Iterable, List, Optional

import numpy as np

from gridrl.environment.grid_world import (
    GridWorldEnvironment,
    State,
    StepResult,
    _as_finite_float,
    clamp_int,
)

DEFAULT_MOVE_FREQUENCY = 6


def default_goal_pattern(size: int) -> List[State]:
    """Bottom-right, top-right, bottom-left, centre (deduplicated)."""
    limit = size - 1
    mid = max(0, limit // 2)
    candidates = [State(limit, limit), State(limit, 0), State(0, limit), State(mid, mid)]
    pattern = []
    for pos in candidates:
        if pos not in pattern:
            pattern.append(pos)
    return pattern


def sanitize_goal_pattern(pattern: Any, size: int) -> List[State]:
    if not isinstance(pattern, (list, tuple)) or not pattern:
        return default_goal_pattern(size)
    limit = size - 1
    unique: List[State] = []
    for entry in pattern:
        if isinstance(entry, dict):
            raw_x, raw_y = entry.get("x"), entry.get("y")
        elif isinstance(entry, (list, tuple)) and len(entry) == 2:
            raw_x, raw_y = entry
        else:
            continue
        x, y = clamp_int(raw_x, 0, limit), clamp_int(raw_y, 0, limit)
        if x is None or y is None:
            continue
        pos = State(x, y)
        if pos not in unique:
            unique.append(pos)
    return unique or default_goal_pattern(size)


class MovingGoalEnvironment(GridWorldEnvironment):
    """Grid world with a goal that moves along a cycle."""

    scenario_id = "moving-goal"

    def __init__(
        self,
        size: int = 5,
        obstacles: Iterable[Any] = (),
        reward_config: Optional[Dict[str, Any]] = None,
        options: Optional[Dict[str, Any]] = None,
        rng: Optional[np.random.Generator] = None,
        seed: Optional[int] = None,
    ):
        self.goal_pattern: List[State] = []
        self.goal_index = 0
        self.goal_pos: Optional[State] = None
        self.move_frequency = DEFAULT_MOVE_FREQUENCY
        self.step_counter = 0
        super().__init__(size, obstacles, reward_config, rng=rng, seed=seed)
        self.apply_scenario_options(options or {})

    def apply_scenario_options(self, options: Dict[str, Any]) -> None:
        """
        Apply goalPattern / moveFrequency / goalIndex.

        Invalid values keep the current setting (frequency) or fall back to
        the default pattern and index 0.
        """
        options = options or {}
        self.goal_pattern = sanitize_goal_pattern(options.get("goalPattern"), self.size)
        frequency = _as_finite_float(options.get("moveFrequency"))
        if frequency is not None and frequency > 0:
            self.move_frequency = int(frequency)
        index = _as_finite_float(options.get("goalIndex"))
        if index is not None:
            self.goal_index = int(index) % len(self.goal_pattern)
        else:
            self.goal_index = 0
        self.goal_pos = self.goal_pattern[self.goal_index]
        self.set_obstacles(self.obstacles)

    def get_goal_position(self) -> State:
        if self.goal_pos is None:
            return super().get_goal_position()
        return self.goal_pos

    def _is_protected(self, x: int, y: int) -> bool:
        # Every cell the goal visits stays free of obstacles.
        if (x, y) == (0, 0):
            return True
        pattern = self.goal_pattern or [super().get_goal_position()]
        return any((x, y) == (pos.x, pos.y) for pos in pattern)

    def advance_goal(self) -> None:
        if not self.goal_pattern:
            return
        self.goal_index = (self.goal_index + 1) % len(self.goal_pattern)
        self.goal_pos = self.goal_pattern[self.goal_index]

    def reset(self) -> State:
        self.step_counter = 0
        if not self.goal_pattern:
            self.goal_pattern = default_goal_pattern(self.size)
            self.goal_index = 0
        self.goal_pos = self.goal_pattern[self.goal_index]
        return super().reset()

    def step(self, action: int) -> StepResult:
        result = super().step(action)
        self.step_counter += 1
        if result.done:
            self.advance_goal()
            self.step_counter = 0
        elif self.move_frequency > 0 and self.step_counter % self.move_frequency == 0:
            self.advance_goal()
        return result

    def describe_cell(self, x: int, y: int) -> Dict[str, Any]:
        info = super().describe_cell(x, y)
        goal = self.get_goal_position()
        if (x, y) == (goal.x, goal.y):
            info["classes"].append("moving-goal")
        elif any((x, y) == (pos.x, pos.y) for i, pos in enumerate(self.goal_pattern)
                 if i != self.goal_index):
            info["classes"].append("future-goal")
        return info

    def get_scenario_config(self) -> Dict[str, Any]:
        return {
            "goalPattern": [{"x": pos.x, "y": pos.y} for pos in self.goal_pattern],
            "moveFrequency": self.move_frequency,
            "goalIndex": self.goal_index,
        }

    def get_scenario_metadata(self) -> Dict[str, Any]:
        goal = self.get_goal_position()
        return {
            "id": self.scenario_id,
            "goal": {"x": goal.x, "y": goal.y},
            "futureGoals": [
                {"x": pos.x, "y": pos.y, "index": i}
                for i, pos in enumerate(self.goal_pattern)
                if i != self.goal_index
            ],
        }
