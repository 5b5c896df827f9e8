# =============================================================================
# Reward Grid Environment
# =============================================================================
"""
Grid world with bonus and penalty cells.

Landing on a reward cell adds its value on top of the base reward, so a
bonus cell on the goal still pays the goal reward plus the bonus.
"""

from typing import Any, Dict, Iterable, List, Optional, Tuple

import numpy as np

from gridrl.environment.grid_world import GridWorldEnvironment, _as_finite_float, clamp_int


def sanitize_reward_cells(cells: Any, size: int) -> List[Dict[str, Any]]:
    """Clamp coordinates, drop non-numeric rewards; last entry per cell wins."""
    if not isinstance(cells, (list, tuple)):
        return []
    limit = size - 1
    sanitized: Dict[Tuple[int, int], Dict[str, Any]] = {}
    for cell in cells:
        if not isinstance(cell, dict):
            continue
        reward = _as_finite_float(cell.get("reward", cell.get("value")))
        x, y = clamp_int(cell.get("x"), 0, limit), clamp_int(cell.get("y"), 0, limit)
        if reward is None or x is None or y is None:
            continue
        sanitized[(x, y)] = {"x": x, "y": y, "reward": reward}
    return list(sanitized.values())


class RewardGridEnvironment(GridWorldEnvironment):
    """Grid world with a fixed bonus/penalty map keyed by landing cell."""

    scenario_id = "reward-grid"

    def __init__(
        self,
        size: int = 5,
        obstacles: Iterable[Any] = (),
        reward_config: Optional[Dict[str, Any]] = None,
        reward_cells: Iterable[Any] = (),
        rng: Optional[np.random.Generator] = None,
        seed: Optional[int] = None,
    ):
        super().__init__(size, obstacles, reward_config, rng=rng, seed=seed)
        self.reward_cells: List[Dict[str, Any]] = []
        self.reward_map: Dict[Tuple[int, int], float] = {}
        self.set_reward_cells(list(reward_cells or ()))

    def set_reward_cells(self, cells: Any) -> None:
        sanitized = sanitize_reward_cells(cells, self.size)
        self.reward_cells = [dict(c) for c in sanitized]
        self.reward_map = {(c["x"], c["y"]): c["reward"] for c in sanitized}

    def calculate_reward(self, x: int, y: int, done: bool) -> float:
        base = super().calculate_reward(x, y, done)
        return base + self.reward_map.get((x, y), 0.0)

    def describe_cell(self, x: int, y: int) -> Dict[str, Any]:
        info = super().describe_cell(x, y)
        if (x, y) in self.reward_map:
            reward = self.reward_map[(x, y)]
            info["classes"].append("reward-bonus" if reward >= 0 else "reward-penalty")
            info["reward"] = reward
        return info

    def get_scenario_config(self) -> Dict[str, Any]:
        return {"rewardCells": [dict(c) for c in self.reward_cells]}

    def get_scenario_metadata(self) -> Dict[str, Any]:
        return {"id": self.scenario_id, **self.get_scenario_config()}

    def apply_scenario_options(self, options: Dict[str, Any]) -> None:
        self.set_reward_cells((options or {}).get("rewardCells") or [])
