"""Tests for the value-based agent family and the actor-critic agent."""
import numpy as np
import pytest

from gridrl.agents import (
    ActorCriticAgent,
    DoubleQAgent,
    DynaQAgent,
    ExpectedSarsaAgent,
    MonteCarloAgent,
    OptimisticAgent,
    QLambdaAgent,
    QLearningAgent,
    SarsaAgent,
)
from gridrl.environment.grid_world import State


class TestQLearning:
    """Base update rule and exploration schedule."""

    def test_terminal_update(self):
        agent = QLearningAgent(learning_rate=0.5, seed=0)
        agent.learn((0, 0), 3, 1.0, (1, 0), True)
        assert agent.q_values((0, 0)) == pytest.approx([0.0, 0.0, 0.0, 0.5])
        assert agent.last_td_error == pytest.approx(1.0)

    def test_bootstraps_from_max_next_value(self):
        agent = QLearningAgent(learning_rate=1.0, gamma=0.9, seed=0)
        agent.q_table[(1, 0)] = np.array([0.0, 2.0, -1.0, 1.0])
        agent.learn((0, 0), 1, -0.5, (1, 0), False)
        assert agent.q_values((0, 0))[1] == pytest.approx(-0.5 + 0.9 * 2.0)

    def test_weight_scales_step(self):
        agent = QLearningAgent(learning_rate=0.5, seed=0)
        agent.learn((0, 0), 0, 1.0, (0, 0), True, weight=0.5)
        assert agent.q_values((0, 0))[0] == pytest.approx(0.25)

    def test_epsilon_decay_sequence(self):
        agent = QLearningAgent(epsilon=1.0, epsilon_decay=0.5, min_epsilon=0.2, seed=0)
        observed = []
        for _ in range(3):
            agent.learn((0, 0), 0, 0.0, (0, 1), False)
            observed.append(agent.epsilon)
        assert observed == pytest.approx([0.5, 0.25, 0.2])

    def test_equal_keys_share_rows(self):
        agent = QLearningAgent(seed=0)
        agent.learn(State(2, 3), 0, 1.0, State(2, 3), True)
        assert agent.q_values((2, 3))[0] == agent.q_values(np.array([2, 3]))[0]
        assert list(agent.q_table) == [(2, 3)]

    def test_act_greedy_with_zero_epsilon(self):
        agent = QLearningAgent(epsilon=0.0, seed=0)
        agent.q_table[(0, 0)] = np.array([0.1, 0.4, 0.4, 0.0])
        assert agent.act((0, 0)) == 1
        assert agent.greedy_action((0, 0)) == 1

    def test_ucb_counts_tracked_per_state(self):
        agent = QLearningAgent(policy="ucb", seed=0)
        assert [agent.act((0, 0)) for _ in range(4)] == [0, 1, 2, 3]
        assert list(agent.count_table[(0, 0)]) == [1, 1, 1, 1]
        agent.act((0, 0), update=False)
        assert agent.count_table[(0, 0)].sum() == 4

    def test_reset_restores_epsilon_and_clears(self):
        agent = QLearningAgent(epsilon=0.8, epsilon_decay=0.5, seed=0)
        agent.learn((0, 0), 0, 1.0, (0, 1), False)
        agent.reset()
        assert agent.epsilon == 0.8
        assert agent.q_table == {}


class TestSarsa:
    """On-policy targets."""

    def test_closed_form_target(self):
        agent = SarsaAgent(epsilon=0.0, gamma=0.5, learning_rate=1.0, seed=0)
        agent.q_table[(1, 0)] = np.array([0.0, 0.0, 0.0, 4.0])
        agent.learn((0, 0), 3, 3.0, (1, 0), False)
        # a' = argmax Q(s') = 3, so target = 3 + 0.5 * 4
        assert agent.q_values((0, 0))[3] == pytest.approx(5.0)

    def test_partial_step_toward_greedy_next_action(self):
        agent = SarsaAgent(epsilon=0.0, gamma=0.9, learning_rate=0.5, seed=0)
        agent.q_table[(0, 1)] = np.array([0.0, 10.0, 5.0, 0.0])
        agent.learn((0, 0), 0, 1.0, (0, 1), False)
        # a' = 1, target = 1 + 0.9 * 10 = 10, Q = 0 + 0.5 * (10 - 0)
        assert agent.q_values((0, 0))[0] == pytest.approx(5.0)

    def test_no_bootstrap_when_done(self):
        agent = SarsaAgent(epsilon=0.0, learning_rate=1.0, seed=0)
        agent.q_table[(1, 0)] = np.array([9.0, 9.0, 9.0, 9.0])
        agent.learn((0, 0), 2, 1.0, (1, 0), True)
        assert agent.q_values((0, 0))[2] == pytest.approx(1.0)


class TestExpectedSarsa:
    """Expectation over the epsilon-greedy policy."""

    def test_expected_target(self):
        agent = ExpectedSarsaAgent(epsilon=0.4, epsilon_decay=1.0, gamma=1.0,
                                   learning_rate=1.0, seed=0)
        agent.q_table[(1, 0)] = np.array([1.0, 0.0, 0.0, 0.0])
        agent.learn((0, 0), 0, 0.0, (1, 0), False)
        # 0.7 * 1 + 0.1 * 0 * 3
        assert agent.q_values((0, 0))[0] == pytest.approx(0.7)


class TestDoubleQ:
    """Two-table learning."""

    def test_acts_on_average(self):
        agent = DoubleQAgent(epsilon=0.0, seed=0)
        agent.q_table_a[(0, 0)] = np.array([1.0, 0.0, 0.0, 0.0])
        agent.q_table_b[(0, 0)] = np.array([0.0, 0.0, 0.0, 1.5])
        assert agent.q_values((0, 0)) == pytest.approx([0.5, 0.0, 0.0, 0.75])
        assert agent.act((0, 0)) == 3

    def test_updates_exactly_one_table(self):
        agent = DoubleQAgent(learning_rate=1.0, seed=0)
        agent.learn((0, 0), 1, 1.0, (0, 1), True)
        a_value = agent.q_table_a[(0, 0)][1]
        b_value = agent.q_table_b[(0, 0)][1]
        assert sorted([a_value, b_value]) == [0.0, 1.0]

    def test_less_overestimation_than_q_learning(self, two_step_env):
        def estimate(cls, seed):
            env = two_step_env(np.random.default_rng(seed))
            agent = cls(epsilon=1.0, epsilon_decay=1.0, min_epsilon=1.0,
                        gamma=0.99, learning_rate=0.1, seed=seed)
            for _ in range(300):
                state = env.reset()
                done = False
                while not done:
                    action = agent.act(state)
                    next_state, reward, done = env.step(action)
                    agent.learn(state, action, reward, next_state, done)
                    state = next_state
            return float(np.max(agent.q_values((0, 0))))

        seeds = range(8)
        q_bias = np.mean([estimate(QLearningAgent, s) for s in seeds])
        double_bias = np.mean([estimate(DoubleQAgent, s) for s in seeds])
        assert double_bias < q_bias


class TestDynaQ:
    """Model learning and planning."""

    def test_records_model_and_plans(self):
        agent = DynaQAgent(planning_steps=10, learning_rate=0.5, seed=0)
        agent.learn((0, 0), 3, 1.0, (1, 0), True)
        assert agent.model[((0, 0), 3)] == ((1, 0), 1.0, True)
        assert agent.state_actions == [((0, 0), 3)]
        # 1 real + 10 synthetic updates toward the same terminal target
        assert agent.q_values((0, 0))[3] == pytest.approx(1.0 - 0.5 ** 11)

    def test_last_observation_wins(self):
        agent = DynaQAgent(planning_steps=0, seed=0)
        agent.learn((0, 0), 1, 0.0, (0, 1), False)
        agent.learn((0, 0), 1, -1.0, (0, 0), False)
        assert agent.model[((0, 0), 1)] == ((0, 0), -1.0, False)
        assert len(agent.state_actions) == 1

    def test_reset_clears_model(self):
        agent = DynaQAgent(seed=0)
        agent.learn((0, 0), 1, 0.0, (0, 1), False)
        agent.reset()
        assert agent.model == {}
        assert agent.state_actions == []


class TestQLambda:
    """Eligibility traces."""

    def test_trace_propagates_terminal_reward(self):
        agent = QLambdaAgent(lambda_=0.5, gamma=1.0, learning_rate=1.0, seed=0)
        agent.learn((0, 0), 3, 0.0, (1, 0), False)
        agent.learn((1, 0), 3, 1.0, (2, 0), True)
        assert agent.q_values((1, 0))[3] == pytest.approx(1.0)
        # trace of (0,0),3 decayed to lambda * gamma = 0.5 before the update
        assert agent.q_values((0, 0))[3] == pytest.approx(0.5)
        assert agent.eligibility == {}

    def test_traces_decay(self):
        agent = QLambdaAgent(lambda_=0.8, gamma=0.5, seed=0)
        agent.learn((0, 0), 1, 0.0, (0, 1), False)
        assert agent.eligibility[(0, 0)][1] == pytest.approx(0.4)


class TestMonteCarlo:
    """First-visit returns."""

    def test_first_visit_average(self):
        agent = MonteCarloAgent(gamma=1.0, epsilon=0.5, epsilon_decay=0.5, seed=0)
        agent.learn((0, 0), 3, -1.0, (1, 0), False)
        agent.learn((1, 0), 2, -1.0, (0, 0), False)
        assert agent.q_table == {}
        assert agent.epsilon == 0.5
        agent.learn((0, 0), 3, 5.0, (1, 0), True)
        # first visit of ((0,0),3) sees G = -1 - 1 + 5
        assert agent.q_values((0, 0))[3] == pytest.approx(3.0)
        assert agent.q_values((1, 0))[2] == pytest.approx(4.0)
        assert agent.return_counts[(0, 0)][3] == 1
        assert agent.epsilon == 0.25

    def test_running_average_across_episodes(self):
        agent = MonteCarloAgent(gamma=1.0, seed=0)
        agent.learn((0, 0), 0, 2.0, (0, 0), True)
        agent.learn((0, 0), 0, 4.0, (0, 0), True)
        assert agent.q_values((0, 0))[0] == pytest.approx(3.0)

    def test_exploring_starts_randomizes_first_action(self):
        agent = MonteCarloAgent(epsilon=0.0, exploring_starts=True, seed=1)
        agent.q_table[(0, 0)] = np.array([0.0, 0.0, 0.0, 10.0])
        firsts = {agent.act((0, 0)) for _ in range(50)}
        assert len(firsts) > 1
        agent.learn((0, 0), 3, 0.0, (1, 0), False)
        assert agent.act((0, 0)) == 3


class TestOptimistic:
    """Optimistic initial values."""

    def test_fresh_rows_are_optimistic(self):
        agent = OptimisticAgent(initial_value=2.0, seed=0)
        assert agent.q_values((3, 3)) == pytest.approx([2.0] * 4)

    def test_update_uses_base_rule(self):
        agent = OptimisticAgent(initial_value=1.0, learning_rate=0.5, gamma=0.0, seed=0)
        agent.learn((0, 0), 0, 0.0, (0, 1), False)
        assert agent.q_values((0, 0))[0] == pytest.approx(0.5)


class TestActorCritic:
    """Softmax actor and action-value critic."""

    def test_epsilon_is_zero(self):
        assert ActorCriticAgent().epsilon == 0.0

    def test_uniform_policy_initially(self):
        agent = ActorCriticAgent(seed=0)
        assert agent.policy_probs((0, 0)) == pytest.approx([0.25] * 4)

    def test_update(self):
        agent = ActorCriticAgent(gamma=0.9, alpha_critic=0.5, alpha_actor=1.0, seed=0)
        agent.learn((0, 0), 1, 1.0, (0, 1), True)
        assert agent.value_table[(0, 0)][1] == pytest.approx(0.5)
        assert agent.policy_table[(0, 0)] == pytest.approx([-0.25, 0.75, -0.25, -0.25])
        assert agent.greedy_action((0, 0)) == 1
        assert agent.policy_probs((0, 0))[1] > 0.25

    def test_reset_clears_tables(self):
        agent = ActorCriticAgent(seed=0)
        agent.learn((0, 0), 1, 1.0, (0, 1), True)
        agent.reset()
        assert agent.value_table == {} and agent.policy_table == {}
