# =============================================================================
# Gymnasium Adapter
# =============================================================================
"""
Expose grid environments through the standard Gymnasium interface.

The native environments return (state, reward, done) and keep the agent
position as a State tuple. Gymnasium code expects:

    obs, info = env.reset(seed=...)
    obs, reward, terminated, truncated, info = env.step(action)

This adapter translates between the two and adds an optional step limit
(truncation), so the grids can be used with any Gymnasium-based tooling.
"""

from typing import Any, Dict, Optional, Tuple

import gymnasium as gym
import numpy as np
from gymnasium import spaces

from gridrl.environment.grid_world import ACTION_NAMES, NUM_ACTIONS, GridWorldEnvironment
from gridrl.environment.scenarios import create_environment_from_scenario


class GridWorldGymEnv(gym.Env):
    """
    Gymnasium wrapper around a GridWorldEnvironment.

    Example:
    --------
    >>> env = GridWorldGymEnv(scenario_id="windy", max_steps=100)
    >>> obs, info = env.reset(seed=0)
    >>> obs
    array([0, 0])
    >>> obs, reward, terminated, truncated, info = env.step(3)
    """

    metadata = {"render_modes": []}

    def __init__(
        self,
        env: Optional[GridWorldEnvironment] = None,
        scenario_id: str = "classic",
        max_steps: Optional[int] = None,
        **scenario_kwargs: Any,
    ):
        """
        Parameters:
        -----------
        env : GridWorldEnvironment, optional
            Environment to wrap. Built from `scenario_id` when omitted.
        scenario_id : str
            Scenario preset used when no environment is given
        max_steps : int, optional
            Truncate episodes after this many steps
        **scenario_kwargs
            Passed to create_environment_from_scenario
        """
        super().__init__()
        self.grid = env if env is not None else create_environment_from_scenario(
            scenario_id, **scenario_kwargs
        )
        self.max_steps = max_steps
        self._step_count = 0
        self.action_space = spaces.Discrete(NUM_ACTIONS)
        self.observation_space = spaces.MultiDiscrete([self.grid.size, self.grid.size])

    def _obs(self, state) -> np.ndarray:
        return np.array([state[0], state[1]], dtype=np.int64)

    def reset(
        self,
        seed: Optional[int] = None,
        options: Optional[Dict[str, Any]] = None,
    ) -> Tuple[np.ndarray, Dict[str, Any]]:
        super().reset(seed=seed)
        if seed is not None:
            # Stochastic scenarios draw from the grid's generator.
            self.grid.rng = self.np_random
        self._step_count = 0
        state = self.grid.reset()
        goal = self.grid.get_goal_position()
        return self._obs(state), {"goal": (goal.x, goal.y)}

    def step(self, action: int) -> Tuple[np.ndarray, float, bool, bool, Dict[str, Any]]:
        action = int(action)
        state, reward, done = self.grid.step(action)
        self._step_count += 1
        truncated = (
            not done
            and self.max_steps is not None
            and self._step_count >= self.max_steps
        )
        # Out-of-range actions leave the agent in place
        name = ACTION_NAMES[action] if 0 <= action < NUM_ACTIONS else "none"
        info = {"action_name": name, "steps": self._step_count}
        return self._obs(state), float(reward), bool(done), bool(truncated), info
