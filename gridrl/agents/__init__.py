# =============================================================================
# Agents Module
# =============================================================================
"""
Tabular learning agents and dynamic-programming planners.

This module provides:
- Action selection policies (epsilon-greedy, softmax, UCB, Thompson, ...)
- The value-based family: Q-learning, SARSA, Expected SARSA, Double Q,
  Dyna-Q, Q(lambda), Monte Carlo, optimistic Q-learning
- ActorCriticAgent: softmax actor with an action-value critic
- ValueIterationAgent / PolicyIterationAgent: model-based planners
- create_agent / agent_from_dict: factory and persistence by type name

Every agent exposes the same surface:

    action = agent.act(state)
    agent.learn(state, action, reward, next_state, done)
    data = agent.to_dict()
"""

from gridrl.agents.actor_critic import ActorCriticAgent
from gridrl.agents.double_q import DoubleQAgent
from gridrl.agents.dyna_q import DynaQAgent
from gridrl.agents.factory import (
    AGENT_TYPES,
    agent_from_dict,
    agent_to_dict,
    apply_agent_params,
    create_agent,
)
from gridrl.agents.monte_carlo import MonteCarloAgent
from gridrl.agents.planning import PlannerAgent, PolicyIterationAgent, ValueIterationAgent
from gridrl.agents.policies import Policy, select_action
from gridrl.agents.tabular import QLearningAgent
from gridrl.agents.td import ExpectedSarsaAgent, OptimisticAgent, QLambdaAgent, SarsaAgent

__all__ = [
    "AGENT_TYPES",
    "ActorCriticAgent",
    "DoubleQAgent",
    "DynaQAgent",
    "ExpectedSarsaAgent",
    "MonteCarloAgent",
    "OptimisticAgent",
    "PlannerAgent",
    "Policy",
    "PolicyIterationAgent",
    "QLambdaAgent",
    "QLearningAgent",
    "SarsaAgent",
    "ValueIterationAgent",
    "agent_from_dict",
    "agent_to_dict",
    "apply_agent_params",
    "create_agent",
    "select_action",
]
