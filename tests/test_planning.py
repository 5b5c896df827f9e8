"""Tests for the value-iteration and policy-iteration planners."""
import pytest

from gridrl.agents import PolicyIterationAgent, ValueIterationAgent
from gridrl.environment import GridWorldEnvironment, State
from gridrl.evaluation.metrics import greedy_rollout, shortest_path_length

PLANNERS = [ValueIterationAgent, PolicyIterationAgent]


@pytest.mark.parametrize("planner_cls", PLANNERS)
class TestPlanners:
    """Shared behaviour of both planners."""

    def test_optimal_on_open_grid(self, planner_cls, classic_env):
        agent = planner_cls(gamma=0.95)
        agent.set_environment(classic_env)
        result = greedy_rollout(agent, classic_env, max_steps=50)
        assert result.success
        assert result.steps == 8

    def test_optimal_around_walls(self, planner_cls, walled_env):
        agent = planner_cls(gamma=0.95)
        agent.set_environment(walled_env)
        result = greedy_rollout(agent, walled_env, max_steps=50)
        assert result.success
        assert result.steps == shortest_path_length(walled_env) == 8
        assert all(not walled_env.is_obstacle(*s) for s in result.path)

    def test_unknown_state_without_model_acts_zero(self, planner_cls):
        agent = planner_cls()
        assert agent.act((3, 3)) == 0
        assert list(agent.q_values((3, 3))) == [0.0] * 4

    def test_learn_is_noop(self, planner_cls, classic_env):
        agent = planner_cls()
        agent.set_environment(classic_env)
        before = dict(agent.policy_map)
        agent.learn((0, 0), 0, 100.0, (0, 0), False)
        assert agent.policy_map == before
        assert agent.epsilon == 0.0

    def test_terminal_value_is_zero(self, planner_cls, classic_env):
        agent = planner_cls()
        agent.set_environment(classic_env)
        assert agent.value_function[(4, 4)] == 0.0
        assert agent.policy_map[(4, 4)] == 0

    def test_reset_replans_against_new_environment(self, planner_cls, classic_env):
        agent = planner_cls()
        agent.set_environment(classic_env)
        blocked = GridWorldEnvironment(size=5, obstacles=[(1, 0)])
        agent.reset(blocked)
        assert agent.environment is blocked
        assert State(1, 0) not in [State(*k) for k in agent.policy_map]
        assert greedy_rollout(agent, blocked, max_steps=50).success

    def test_serialization_drops_plan(self, planner_cls):
        data = planner_cls(gamma=0.9, theta=1e-3).to_dict()
        assert data["gamma"] == 0.9
        assert data["theta"] == 1e-3
        assert "qTable" not in data


class TestValueIteration:

    def test_records_sweeps(self, classic_env):
        agent = ValueIterationAgent(max_iterations=3)
        agent.set_environment(classic_env)
        assert agent.iterations == 3

    def test_value_of_state_next_to_goal(self, classic_env):
        agent = ValueIterationAgent(gamma=0.9, theta=1e-8)
        agent.set_environment(classic_env)
        assert agent.value_function[(3, 4)] == pytest.approx(1.0)
        assert agent.value_function[(2, 4)] == pytest.approx(-0.01 + 0.9 * 1.0)


class TestPolicyIteration:

    def test_converges_to_stable_policy(self, classic_env):
        agent = PolicyIterationAgent(gamma=0.95)
        agent.set_environment(classic_env)
        first = dict(agent.policy_map)
        agent.plan_policy()
        assert agent.policy_map == first
        assert agent.iterations == 1
