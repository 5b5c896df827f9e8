# =============================================================================
# gridrl: Tabular Reinforcement Learning on Grid Worlds
# =============================================================================
"""
Main package for the tabular grid-world RL engine.

This package implements:
- Grid-world MDPs: classic, windy, moving-goal and reward-grid scenarios
- A family of interchangeable tabular agents and DP planners
- An asyncio trainer with experience replay and progress events

Subpackages:
- environment: MDPs, scenario presets, Gymnasium adapter, episode logging
- agents: policies, value-based agents, actor-critic, planners, factory
- training: trainer, replay, metrics, worker hosting, storage, configs
- evaluation: greedy rollouts, success rate and SPL
"""

__version__ = "0.1.0"
