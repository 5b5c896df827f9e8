# =============================================================================
# Dynamic-Programming Planners
# =============================================================================
"""
Model-based planners that compute a policy from the environment's model
instead of learning from experience.

Both planners read the model interface every environment exposes:

    env.enumerate_states()       -> non-obstacle cells
    env.get_available_actions()  -> [0, 1, 2, 3]
    env.get_transition(s, a)     -> (s', r, done), no mutation
    env.is_terminal_state(s)     -> goal check

Value Iteration:
----------------
Synchronous Bellman-optimality sweeps

    V(s) <- max_a [ r + gamma * V(s') * (1 - done) ]

until the largest change is <= theta (or max_iterations). The policy is the
greedy action under the final V, ties to the lowest action index.

Policy Iteration:
-----------------
Alternate policy evaluation (Bellman expectation sweeps under the fixed
policy) and greedy improvement until the policy is stable. During
improvement the incumbent action is only replaced by a strictly better one,
so ties never make the loop oscillate.

Planners never learn from transitions: `learn()` is a no-op and acting is
an O(1) lookup in the planned policy.
"""

import logging
from typing import Any, Dict, List, Optional

import numpy as np

from gridrl.agents.tabular import QLearningAgent, StateKey, state_key

logger = logging.getLogger(__name__)

# Improvement tolerance for "strictly better"
IMPROVEMENT_EPS = 1e-12


class PlannerAgent(QLearningAgent):
    """Base for agents that plan against an environment model."""

    agent_type = "planner"
    supports_sample_weight = False

    def __init__(self, gamma: float = 0.95, theta: float = 1e-4,
                 rng: Optional[np.random.Generator] = None, seed: Optional[int] = None,
                 **_ignored):
        super().__init__(epsilon=0.0, gamma=gamma, epsilon_decay=1.0, min_epsilon=0.0,
                         rng=rng, seed=seed)
        self.learning_rate = None
        self.theta = theta
        self.environment = None
        self.policy_map: Dict[StateKey, int] = {}
        self.value_function: Dict[StateKey, float] = {}

    # -------------------------------------------------------------------------
    # Environment binding
    # -------------------------------------------------------------------------

    def set_environment(self, environment) -> None:
        """Bind a model and plan against it immediately."""
        self.environment = environment
        if environment is not None:
            self.plan_policy()

    def reset(self, environment=None) -> None:
        """Drop the plan; re-plan when a model is (or becomes) available."""
        super().reset()
        self.epsilon = 0.0
        self.policy_map.clear()
        self.value_function.clear()
        if environment is not None:
            self.set_environment(environment)
        elif self.environment is not None:
            self.plan_policy()

    def plan_policy(self, environment=None) -> None:
        raise NotImplementedError("Planner agents must implement plan_policy()")

    # -------------------------------------------------------------------------
    # Acting
    # -------------------------------------------------------------------------

    def act(self, state, update: bool = True) -> int:
        key = state_key(state)
        if key not in self.policy_map and self.environment is not None:
            self.plan_policy()
        return self.policy_map.get(key, 0)

    def greedy_action(self, state) -> int:
        return self.act(state)

    def learn(self, state, action, reward, next_state, done, weight=1.0):
        pass

    def q_values(self, state) -> np.ndarray:
        """One-step lookahead values under the current value function."""
        env = self.environment
        if env is None:
            return self._default_row()
        return np.array([self._backup(env, state, a) for a in env.get_available_actions()])

    def _backup(self, env, state, action: int, values: Optional[Dict[StateKey, float]] = None) -> float:
        values = self.value_function if values is None else values
        outcome = env.get_transition(state, action)
        if outcome.done:
            return outcome.reward
        return outcome.reward + self.gamma * values.get(state_key(outcome.state), 0.0)

    def _initial_values(self, states: List[Any]) -> Dict[StateKey, float]:
        values = dict(self.value_function)
        for state in states:
            values.setdefault(state_key(state), 0.0)
        return values

    # -------------------------------------------------------------------------
    # Serialization
    # -------------------------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.agent_type, "gamma": self.gamma, "theta": self.theta}

    @classmethod
    def _options_from_dict(cls, data):
        options = {}
        if data.get("gamma") is not None:
            options["gamma"] = data["gamma"]
        if data.get("theta") is not None:
            options["theta"] = data["theta"]
        return options

    def _load_tables(self, data: Dict[str, Any]) -> None:
        pass

    def __repr__(self) -> str:
        return f"{type(self).__name__}(gamma={self.gamma}, states={len(self.policy_map)})"


class ValueIterationAgent(PlannerAgent):
    """Value iteration with a greedy policy read-out."""

    agent_type = "value-iteration"

    def __init__(self, max_iterations: int = 1000, **kwargs):
        super().__init__(**kwargs)
        self.max_iterations = max_iterations
        self.iterations = 0

    def plan_policy(self, environment=None) -> None:
        env = environment if environment is not None else self.environment
        if env is None:
            return
        states = env.enumerate_states()
        if not states:
            self.policy_map.clear()
            self.value_function.clear()
            return
        actions = env.get_available_actions()

        values = self._initial_values(states)
        iterations = 0
        delta = float("inf")
        while delta > self.theta and iterations < self.max_iterations:
            updated = dict(values)
            delta = 0.0
            for state in states:
                key = state_key(state)
                if env.is_terminal_state(state):
                    updated[key] = 0.0
                    continue
                best = max(self._backup(env, state, a, values) for a in actions) if actions else 0.0
                delta = max(delta, abs(best - values.get(key, 0.0)))
                updated[key] = best
            values = updated
            iterations += 1

        self.iterations = iterations
        self.value_function = values
        self.policy_map = {}
        for state in states:
            key = state_key(state)
            if env.is_terminal_state(state) or not actions:
                self.policy_map[key] = 0
                continue
            scores = [self._backup(env, state, a) for a in actions]
            self.policy_map[key] = actions[int(np.argmax(scores))]
        logger.debug("Value iteration converged after %d sweeps", iterations)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["maxIterations"] = self.max_iterations
        return data

    @classmethod
    def _options_from_dict(cls, data):
        options = super()._options_from_dict(data)
        if data.get("maxIterations") is not None:
            options["max_iterations"] = int(data["maxIterations"])
        return options


class PolicyIterationAgent(PlannerAgent):
    """Policy iteration: evaluate, improve, repeat until stable."""

    agent_type = "policy-iteration"

    def __init__(self, max_evaluation_iterations: int = 100,
                 max_policy_iterations: int = 100, **kwargs):
        super().__init__(**kwargs)
        self.max_evaluation_iterations = max_evaluation_iterations
        self.max_policy_iterations = max_policy_iterations
        self.iterations = 0

    def plan_policy(self, environment=None) -> None:
        env = environment if environment is not None else self.environment
        if env is None:
            return
        states = env.enumerate_states()
        if not states:
            self.policy_map.clear()
            self.value_function.clear()
            return
        actions = env.get_available_actions() or [0]

        policy = dict(self.policy_map)
        for state in states:
            key = state_key(state)
            if env.is_terminal_state(state):
                policy[key] = 0
            else:
                policy.setdefault(key, actions[0])
        values = self._initial_values(states)

        stable = False
        iterations = 0
        while not stable and iterations < self.max_policy_iterations:
            values = self._evaluate(env, states, policy, values)
            stable = self._improve(env, states, actions, policy, values)
            iterations += 1

        self.iterations = iterations
        self.policy_map = policy
        self.value_function = values
        logger.debug("Policy iteration finished after %d rounds (stable=%s)", iterations, stable)

    def _evaluate(self, env, states, policy, values) -> Dict[StateKey, float]:
        values = dict(values)
        sweeps = 0
        delta = float("inf")
        while delta > self.theta and sweeps < self.max_evaluation_iterations:
            updated = dict(values)
            delta = 0.0
            for state in states:
                key = state_key(state)
                if env.is_terminal_state(state):
                    updated[key] = 0.0
                    continue
                value = self._backup(env, state, policy[key], values)
                delta = max(delta, abs(value - values.get(key, 0.0)))
                updated[key] = value
            values = updated
            sweeps += 1
        return values

    def _improve(self, env, states, actions, policy, values) -> bool:
        stable = True
        for state in states:
            key = state_key(state)
            if env.is_terminal_state(state):
                policy[key] = 0
                continue
            incumbent = policy[key]
            best_action = incumbent
            best_value = self._backup(env, state, incumbent, values)
            for action in actions:
                candidate = self._backup(env, state, action, values)
                if candidate > best_value + IMPROVEMENT_EPS:
                    best_action, best_value = action, candidate
            if best_action != incumbent:
                stable = False
            policy[key] = best_action
        return stable

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["maxIterations"] = self.max_policy_iterations
        data["maxEvaluationIterations"] = self.max_evaluation_iterations
        data["maxPolicyIterations"] = self.max_policy_iterations
        return data

    @classmethod
    def _options_from_dict(cls, data):
        options = super()._options_from_dict(data)
        if data.get("maxEvaluationIterations") is not None:
            options["max_evaluation_iterations"] = int(data["maxEvaluationIterations"])
        policy_cap = data.get("maxPolicyIterations", data.get("maxIterations"))
        if policy_cap is not None:
            options["max_policy_iterations"] = int(policy_cap)
        return options
