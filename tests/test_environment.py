"""Tests for the grid-world environments and scenario presets."""
import numpy as np
import pytest

from gridrl.environment import (
    GridWorldEnvironment,
    GridWorldGymEnv,
    MovingGoalEnvironment,
    RewardGridEnvironment,
    State,
    WindyGridEnvironment,
    create_environment_from_scenario,
    environment_from_dict,
    get_scenario_by_id,
    get_scenario_definitions,
)
from gridrl.environment.windy import normalize_wind_columns


class TestClassicGrid:
    """Movement, rewards and the obstacle law."""

    def test_reset_returns_start(self, classic_env):
        classic_env.step(1)
        assert classic_env.reset() == State(0, 0)

    def test_moves_and_step_penalty(self, classic_env):
        state, reward, done = classic_env.step(3)
        assert state == State(1, 0)
        assert reward == pytest.approx(-0.01)
        assert done is False

        state, _, _ = classic_env.step(1)
        assert state == State(1, 1)

    def test_walls_clamp_position(self, classic_env):
        state, reward, done = classic_env.step(0)
        assert state == State(0, 0)
        assert reward == pytest.approx(-0.01)
        state, _, _ = classic_env.step(2)
        assert state == State(0, 0)

    def test_obstacle_keeps_position_with_penalty(self):
        env = GridWorldEnvironment(size=3, obstacles=[{"x": 1, "y": 0}])
        env.reset()
        state, reward, done = env.step(3)
        assert state == State(0, 0)
        assert reward == pytest.approx(-0.1)
        assert done is False

    def test_goal_ends_episode(self):
        env = GridWorldEnvironment(size=2)
        env.reset()
        env.step(3)
        state, reward, done = env.step(1)
        assert state == State(1, 1)
        assert reward == pytest.approx(1.0)
        assert done is True

    def test_invalid_action_stays_put(self, classic_env):
        state, _, done = classic_env.step(7)
        assert state == State(0, 0)
        assert done is False

    def test_custom_rewards_and_invalid_values(self):
        env = GridWorldEnvironment(size=3, reward_config={
            "stepPenalty": -0.5, "goal_reward": 2, "obstaclePenalty": "oops",
        })
        assert env.get_reward_config() == {
            "stepPenalty": -0.5, "obstaclePenalty": -0.1, "goalReward": 2.0,
        }

    def test_invalid_size_falls_back(self):
        assert GridWorldEnvironment(size="big").size == 5
        assert GridWorldEnvironment(size=1).size == 2


class TestObstacles:
    """Obstacle editing keeps start and goal free."""

    def test_start_and_goal_protected(self):
        env = GridWorldEnvironment(size=4, obstacles=[(0, 0), (3, 3), (1, 2)])
        assert env.obstacles == [{"x": 1, "y": 2}]

    def test_toggle(self, classic_env):
        classic_env.toggle_obstacle(2, 2)
        assert classic_env.is_obstacle(2, 2)
        classic_env.toggle_obstacle(2, 2)
        assert not classic_env.is_obstacle(2, 2)
        classic_env.toggle_obstacle(4, 4)
        classic_env.toggle_obstacle(9, 9)
        assert classic_env.obstacles == []

    def test_malformed_entries_dropped(self, classic_env):
        classic_env.set_obstacles([{"x": "a", "y": 1}, None, (1, 1), {"x": 7, "y": 0}])
        assert classic_env.obstacles == [{"x": 1, "y": 1}]


class TestModelInterface:
    """Lookahead used by the planners."""

    def test_enumerate_states_skips_obstacles(self, walled_env):
        states = walled_env.enumerate_states()
        assert len(states) == 25 - 3
        assert State(1, 1) not in states
        assert states[0] == State(0, 0)
        assert states[1] == State(1, 0)

    def test_get_transition_does_not_mutate(self, walled_env):
        walled_env.reset()
        outcome = walled_env.get_transition((1, 0), 1)
        assert outcome.state == State(1, 0)
        assert outcome.reward == pytest.approx(-0.1)
        assert walled_env.get_state() == State(0, 0)

    def test_terminal_state(self, classic_env):
        assert classic_env.is_terminal_state((4, 4))
        assert not classic_env.is_terminal_state(State(0, 4))
        assert classic_env.get_available_actions() == [0, 1, 2, 3]

    def test_describe_cell(self, walled_env):
        walled_env.reset()
        assert walled_env.describe_cell(0, 0)["classes"] == ["agent"]
        assert walled_env.describe_cell(1, 1)["classes"] == ["obstacle"]
        assert walled_env.describe_cell(4, 4)["classes"] == ["goal"]


class TestWindyGrid:
    """Wind drift and its configuration."""

    def test_normalize_wind_columns(self):
        columns = normalize_wind_columns([
            {"x": 9, "offsets": [{"dx": 0, "dy": -1, "weight": 3}, {"dx": 1, "dy": 0, "probability": 1}]},
            {"x": "bad"},
            {"x": 1},
        ], size=5)
        assert [c["x"] for c in columns] == [4, 1]
        thresholds = [d["threshold"] for d in columns[0]["distribution"]]
        assert thresholds == pytest.approx([0.75, 1.0])
        assert columns[1]["offsets"] == [{"dx": 0, "dy": -1, "weight": 1.0}]

    def test_certain_updraft(self):
        env = WindyGridEnvironment(size=5, wind_columns=[
            {"x": 1, "offsets": [{"dx": 0, "dy": -1, "weight": 1}]},
        ], seed=0)
        env.reset()
        env.step(1)
        env.step(1)
        assert env.get_state() == State(0, 2)
        state, _, _ = env.step(3)
        assert state == State(1, 1)

    def test_calm_column_never_drifts(self):
        env = WindyGridEnvironment(size=4, wind_columns=[
            {"x": 1, "offsets": [{"dx": 0, "dy": 0, "weight": 1}]},
        ], seed=3)
        env.reset()
        for _ in range(5):
            env.agent_pos = State(0, 2)
            assert env.step(3).state == State(1, 2)

    def test_drift_is_seeded(self):
        def trajectory(seed):
            env = create_environment_from_scenario("windy", seed=seed)
            env.reset()
            return [env.step(a).state for a in [3, 3, 1, 3, 1, 3, 1, 3]]

        assert trajectory(11) == trajectory(11)

    def test_lookahead_ignores_wind(self):
        env = WindyGridEnvironment(size=5, wind_columns=[
            {"x": 1, "offsets": [{"dx": 0, "dy": 1, "weight": 1}]},
        ])
        assert env.get_transition((0, 0), 3).state == State(1, 0)

    def test_scenario_config_round_trip(self):
        env = create_environment_from_scenario("windy", size=7)
        config = env.get_scenario_config()
        rebuilt = WindyGridEnvironment(size=7, wind_columns=config["windColumns"])
        assert rebuilt.get_scenario_config() == config
        assert "wind-zone" in env.describe_cell(config["windColumns"][0]["x"], 3)["classes"]


class TestMovingGoal:
    """Goal cycling."""

    def test_goal_advances_on_frequency(self):
        env = MovingGoalEnvironment(size=4, options={
            "goalPattern": [{"x": 3, "y": 3}, {"x": 3, "y": 0}], "moveFrequency": 2,
        })
        env.reset()
        assert env.get_goal_position() == State(3, 3)
        env.step(1)
        assert env.get_goal_position() == State(3, 3)
        env.step(1)
        assert env.get_goal_position() == State(3, 0)

    def test_goal_advances_after_reaching_it(self):
        env = MovingGoalEnvironment(size=3, options={
            "goalPattern": [{"x": 1, "y": 0}, {"x": 2, "y": 2}], "moveFrequency": 100,
        })
        env.reset()
        _, reward, done = env.step(3)
        assert done is True
        assert reward == pytest.approx(1.0)
        assert env.get_goal_position() == State(2, 2)
        assert env.step_counter == 0

    def test_pattern_cells_protected_from_obstacles(self):
        env = MovingGoalEnvironment(size=4, obstacles=[(3, 0), (1, 1)], options={
            "goalPattern": [{"x": 3, "y": 3}, {"x": 3, "y": 0}],
        })
        assert env.obstacles == [{"x": 1, "y": 1}]

    def test_invalid_pattern_falls_back_to_default(self):
        env = MovingGoalEnvironment(size=5, options={"goalPattern": "nope", "goalIndex": 5})
        assert env.goal_pattern[0] == State(4, 4)
        assert env.goal_index == 5 % len(env.goal_pattern)

    def test_metadata_lists_future_goals(self):
        env = create_environment_from_scenario("moving-goal", size=6)
        meta = env.get_scenario_metadata()
        assert meta["goal"] == {"x": 5, "y": 5}
        assert len(meta["futureGoals"]) == len(env.goal_pattern) - 1
        assert env.get_scenario_config()["moveFrequency"] == 8


class TestRewardGrid:
    """Bonus and penalty cells."""

    def test_bonus_added_to_base_reward(self):
        env = RewardGridEnvironment(size=3, reward_cells=[
            {"x": 1, "y": 0, "reward": 0.5},
            {"x": 2, "y": 2, "value": 0.25},
        ])
        env.reset()
        _, reward, _ = env.step(3)
        assert reward == pytest.approx(-0.01 + 0.5)
        assert env.calculate_reward(2, 2, True) == pytest.approx(1.25)

    def test_last_entry_wins_and_invalid_dropped(self):
        env = RewardGridEnvironment(size=3, reward_cells=[
            {"x": 1, "y": 1, "reward": 0.1},
            {"x": 1, "y": 1, "reward": -0.4},
            {"x": 0, "y": 1, "reward": "x"},
        ])
        assert env.get_scenario_config() == {"rewardCells": [{"x": 1, "y": 1, "reward": -0.4}]}
        assert "reward-penalty" in env.describe_cell(1, 1)["classes"]


class TestScenarios:
    """Preset factory and persistence schema."""

    def test_definitions(self):
        ids = [d["id"] for d in get_scenario_definitions()]
        assert ids == ["classic", "windy", "moving-goal", "reward-grid"]

    def test_unknown_scenario_falls_back(self):
        assert get_scenario_by_id("lava").id == "classic"
        env = create_environment_from_scenario("lava")
        assert isinstance(env, GridWorldEnvironment)
        assert env.scenario_id == "classic"

    def test_preset_defaults(self):
        env = create_environment_from_scenario("windy")
        assert env.size == 7
        assert env.get_reward_config() == {
            "stepPenalty": -0.04, "obstaclePenalty": -0.2, "goalReward": 1.0,
        }
        env = create_environment_from_scenario("reward-grid", rewards={"goalReward": 3})
        assert env.goal_reward == 3.0
        assert env.obstacle_penalty == -0.15

    @pytest.mark.parametrize("scenario_id", ["classic", "windy", "moving-goal", "reward-grid"])
    def test_to_dict_round_trip(self, scenario_id):
        env = create_environment_from_scenario(scenario_id, size=6, obstacles=[(2, 3)])
        data = env.to_dict()
        rebuilt = environment_from_dict(data)
        assert type(rebuilt) is type(env)
        assert rebuilt.to_dict() == data
        assert data["scenarioId"] == scenario_id


class TestGymAdapter:
    """Gymnasium wrapper."""

    def test_spaces_and_reset(self):
        env = GridWorldGymEnv(scenario_id="classic", size=4)
        obs, info = env.reset(seed=0)
        assert env.action_space.n == 4
        assert list(env.observation_space.nvec) == [4, 4]
        assert np.array_equal(obs, np.array([0, 0]))
        assert info["goal"] == (3, 3)

    def test_truncation(self):
        env = GridWorldGymEnv(scenario_id="classic", max_steps=2)
        env.reset(seed=1)
        _, _, terminated, truncated, _ = env.step(0)
        assert (terminated, truncated) == (False, False)
        _, _, terminated, truncated, info = env.step(0)
        assert (terminated, truncated) == (False, True)
        assert info["action_name"] == "up"

    def test_out_of_range_action_stays_put(self):
        env = GridWorldGymEnv(scenario_id="classic")
        env.reset(seed=0)
        obs, _, _, _, info = env.step(3)
        for action in (4, -1):
            after, _, terminated, _, info = env.step(action)
            assert info["action_name"] == "none"
            assert np.array_equal(after, obs)
            assert terminated is False
