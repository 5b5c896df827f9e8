# =============================================================================
# Environment Module
# =============================================================================
"""
Grid-world MDP environments.

This module provides:
- GridWorldEnvironment: classic grid with obstacles and a static goal
- WindyGridEnvironment: stochastic drift in wind columns
- MovingGoalEnvironment: goal cycles through a pattern
- RewardGridEnvironment: bonus/penalty cells
- Scenario presets and the environment persistence schema
- GridWorldGymEnv: Gymnasium adapter
- EpisodeLogger: JSONL episode summaries

Every environment implements the same contract:

    state = env.reset()
    state, reward, done = env.step(action)

plus the model interface used by planning agents (enumerate_states,
get_available_actions, get_transition, is_terminal_state).
"""

from gridrl.environment.grid_world import (
    ACTION_NAMES,
    NUM_ACTIONS,
    GridWorldEnvironment,
    RewardConfig,
    State,
    StepResult,
)
from gridrl.environment.gym_adapter import GridWorldGymEnv
from gridrl.environment.moving_goal import MovingGoalEnvironment
from gridrl.environment.reward_grid import RewardGridEnvironment
from gridrl.environment.scenarios import (
    DEFAULT_SCENARIO_ID,
    SCENARIOS,
    create_environment_from_scenario,
    environment_from_dict,
    get_scenario_by_id,
    get_scenario_definitions,
)
from gridrl.environment.trajectory_logger import EpisodeLogger, EpisodeRecord
from gridrl.environment.windy import WindyGridEnvironment

__all__ = [
    "ACTION_NAMES",
    "NUM_ACTIONS",
    "GridWorldEnvironment",
    "RewardConfig",
    "State",
    "StepResult",
    "GridWorldGymEnv",
    "MovingGoalEnvironment",
    "RewardGridEnvironment",
    "WindyGridEnvironment",
    "DEFAULT_SCENARIO_ID",
    "SCENARIOS",
    "create_environment_from_scenario",
    "environment_from_dict",
    "get_scenario_by_id",
    "get_scenario_definitions",
    "EpisodeLogger",
    "EpisodeRecord",
]
