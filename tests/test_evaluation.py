"""Tests for greedy evaluation metrics."""
import pytest

from gridrl.agents import QLearningAgent, ValueIterationAgent
from gridrl.environment import GridWorldEnvironment
from gridrl.evaluation import (
    EvaluationSuite,
    compute_spl,
    compute_success_rate,
    greedy_rollout,
    shortest_path_length,
)


class TestMetrics:

    def test_success_rate(self):
        assert compute_success_rate([]) == 0.0
        assert compute_success_rate([True, False, True, True]) == 0.75

    def test_spl(self):
        assert compute_spl([], [], []) == 0.0
        spl = compute_spl([True, True, False], [8, 8, 8], [8, 16, 8])
        assert spl == pytest.approx((1.0 + 0.5 + 0.0) / 3)

    def test_shortest_path(self, classic_env, walled_env):
        assert shortest_path_length(classic_env) == 8
        assert shortest_path_length(walled_env) == 8
        assert shortest_path_length(classic_env, start=(4, 4)) == 0

    def test_unreachable_goal(self):
        env = GridWorldEnvironment(size=3, obstacles=[(2, 1), (1, 2), (1, 1)])
        assert shortest_path_length(env) is None


class TestRollout:

    def test_untrained_agent_times_out(self, classic_env):
        result = greedy_rollout(QLearningAgent(seed=0), classic_env, max_steps=10)
        assert result.success is False
        assert result.steps == 10
        assert len(result.path) == 11

    def test_planner_rollout(self, classic_env):
        agent = ValueIterationAgent()
        agent.set_environment(classic_env)
        result = greedy_rollout(agent, classic_env)
        assert result.success
        assert result.reward == pytest.approx(7 * -0.01 + 1.0)


class TestEvaluationSuite:

    def test_evaluate_planner(self):
        suite = EvaluationSuite(scenario_id="classic", size=5, max_steps=30)
        metrics = suite.evaluate(ValueIterationAgent(), num_episodes=3)
        assert metrics["success_rate"] == 1.0
        assert metrics["spl"] == pytest.approx(1.0)
        assert metrics["mean_length"] == 8.0
        assert len(metrics["episodes"]) == 3

    def test_compare_agents(self):
        suite = EvaluationSuite(scenario_id="classic", size=4, max_steps=20)
        results = suite.compare_agents({
            "planner": ValueIterationAgent(),
            "untrained": QLearningAgent(seed=0),
        }, num_episodes=2)
        assert results["planner"]["success_rate"] == 1.0
        assert results["untrained"]["success_rate"] == 0.0

    def test_env_seeds_follow_episode(self):
        suite = EvaluationSuite(scenario_id="windy", seed=10)
        assert suite.make_env(0).to_dict() == suite.make_env(0).to_dict()
        assert suite.make_env(3).size == 7
