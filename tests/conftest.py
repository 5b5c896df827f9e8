"""Pytest configuration and shared fixtures."""
import sys
from pathlib import Path

import numpy as np
import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from gridrl.environment.grid_world import GridWorldEnvironment, State, StepResult  # noqa: E402


@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture(scope="function")
def rng():
    """Seeded generator for reproducible tests."""
    return np.random.default_rng(42)


@pytest.fixture(scope="function")
def classic_env(rng):
    """Obstacle-free 5x5 classic grid."""
    return GridWorldEnvironment(size=5, rng=rng)


@pytest.fixture(scope="function")
def walled_env(rng):
    """5x5 grid with a wall that leaves the shortest path intact."""
    return GridWorldEnvironment(
        size=5,
        obstacles=[{"x": 1, "y": 1}, {"x": 2, "y": 1}, {"x": 3, "y": 3}],
        rng=rng,
    )


class TwoStepEnv:
    """
    Two-state MDP used to expose maximization bias.

    From A=(0, 0) every action moves to B=(1, 0) with reward 0. From B
    every action ends the episode with a reward drawn from N(-0.1, 1).
    The true value of A is therefore -0.1 * gamma.
    """

    def __init__(self, rng):
        self.rng = rng
        self.position = State(0, 0)

    def reset(self):
        self.position = State(0, 0)
        return self.position

    def step(self, action):
        if self.position == State(0, 0):
            self.position = State(1, 0)
            return StepResult(self.position, 0.0, False)
        reward = float(self.rng.normal(-0.1, 1.0))
        self.position = State(0, 0)
        return StepResult(State(1, 0), reward, True)


@pytest.fixture(scope="function")
def two_step_env():
    return TwoStepEnv


class ScriptedAgent:
    """Agent that always plays one action and records learn() calls."""

    supports_sample_weight = True

    def __init__(self, action=3):
        self.action = action
        self.epsilon = 0.5
        self.calls = []
        self.weights = []
        self.last_td_error = 0.25
        self.resets = 0

    def act(self, state):
        return self.action

    def learn(self, state, action, reward, next_state, done, weight=1.0):
        self.calls.append((state, action, reward, next_state, done))
        self.weights.append(weight)

    def reset(self):
        self.resets += 1


@pytest.fixture(scope="function")
def scripted_agent():
    return ScriptedAgent()
