# =============================================================================
# Windy Grid Environment
# =============================================================================
"""
Grid world where wind columns push the agent off course.

Each wind column carries a weighted list of offsets. After the regular move,
if the agent lands in a windy column one offset is sampled and applied:

    offsets: [{dx: 0, dy: -1, weight: 0.7},   # pushed up
              {dx: 1, dy:  0, weight: 0.2},   # pushed right
              {dx: 0, dy:  0, weight: 0.1}]   # calm

Weights are normalized into a cumulative threshold table so that a single
uniform draw per step selects the offset.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

import numpy as np

from gridrl.environment.grid_world import (
    GridWorldEnvironment,
    State,
    StepResult,
    _as_finite_float,
    clamp_int,
)

logger = logging.getLogger(__name__)

DEFAULT_OFFSET = {"dx": 0, "dy": -1, "weight": 1.0}


def normalize_wind_columns(columns: Iterable[Any], size: int) -> List[Dict[str, Any]]:
    """
    Sanitize raw wind column configs.

    Returns:
    --------
    list
        Entries of {"x", "offsets", "distribution"} where distribution holds
        the offsets with their cumulative "threshold".
    """
    limit = size - 1
    normalized = []
    for entry in columns or ():
        if not isinstance(entry, dict):
            continue
        x = clamp_int(entry.get("x"), 0, limit)
        if x is None:
            logger.warning("Skipping wind column without a valid x: %r", entry)
            continue
        offsets = []
        for offset in entry.get("offsets") or ():
            if not isinstance(offset, dict):
                continue
            raw_weight = offset.get("weight", offset.get("probability", 1))
            weight = _as_finite_float(raw_weight)
            if weight is None or weight <= 0:
                continue
            dx = clamp_int(offset.get("dx", 0), -limit, limit) or 0
            dy = clamp_int(offset.get("dy", 0), -limit, limit) or 0
            offsets.append({"dx": dx, "dy": dy, "weight": weight})
        if not offsets:
            offsets.append(dict(DEFAULT_OFFSET))

        total = sum(o["weight"] for o in offsets)
        cumulative = 0.0
        distribution = []
        for offset in offsets:
            cumulative += offset["weight"] / total
            distribution.append({**offset, "threshold": cumulative})
        normalized.append({"x": x, "offsets": offsets, "distribution": distribution})
    return normalized


class WindyGridEnvironment(GridWorldEnvironment):
    """Grid world with stochastic drift in designated columns."""

    scenario_id = "windy"

    def __init__(
        self,
        size: int = 5,
        obstacles: Iterable[Any] = (),
        reward_config: Optional[Dict[str, Any]] = None,
        wind_columns: Iterable[Any] = (),
        rng: Optional[np.random.Generator] = None,
        seed: Optional[int] = None,
    ):
        super().__init__(size, obstacles, reward_config, rng=rng, seed=seed)
        self.wind_map: Dict[int, List[Dict[str, Any]]] = {}
        self.raw_wind_config: List[Dict[str, Any]] = []
        self.set_wind(wind_columns)

    def set_wind(self, columns: Iterable[Any]) -> None:
        normalized = normalize_wind_columns(columns, self.size)
        self.wind_map = {entry["x"]: entry["distribution"] for entry in normalized}
        self.raw_wind_config = [
            {"x": entry["x"], "offsets": [dict(o) for o in entry["offsets"]]}
            for entry in normalized
        ]

    def apply_wind(self, x: int, y: int) -> State:
        """Sample one drift offset for column x and clamp the result."""
        distribution = self.wind_map.get(x)
        if not distribution:
            return State(x, y)
        draw = self.rng.random()
        for entry in distribution:
            if draw <= entry["threshold"]:
                limit = self.size - 1
                return State(min(max(x + entry["dx"], 0), limit),
                             min(max(y + entry["dy"], 0), limit))
        return State(x, y)

    def step(self, action: int) -> StepResult:
        x, y = self._move(self.agent_pos.x, self.agent_pos.y, action)
        drifted = self.apply_wind(x, y)
        result = self._land(self.agent_pos, drifted.x, drifted.y)
        self.agent_pos = result.state
        return result

    def describe_cell(self, x: int, y: int) -> Dict[str, Any]:
        info = super().describe_cell(x, y)
        if x in self.wind_map:
            info["classes"].append("wind-zone")
        return info

    def get_scenario_config(self) -> Dict[str, Any]:
        return {
            "windColumns": [
                {"x": entry["x"], "offsets": [dict(o) for o in entry["offsets"]]}
                for entry in self.raw_wind_config
            ]
        }

    def get_scenario_metadata(self) -> Dict[str, Any]:
        return {"id": self.scenario_id, **self.get_scenario_config()}

    def apply_scenario_options(self, options: Dict[str, Any]) -> None:
        self.set_wind((options or {}).get("windColumns") or [])
