# =============================================================================
# Evaluation Metrics
# =============================================================================
"""
Metrics for evaluating trained agents.

Agents are evaluated greedily: no exploration and no learning, so the
numbers describe what the agent has learned, not how it explores.
"""

from collections import deque
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import numpy as np

from gridrl.environment.scenarios import create_environment_from_scenario


def compute_success_rate(
    successes: List[bool],
) -> float:
    """
    Compute success rate.

    Parameters:
    -----------
    successes : List[bool]
        List of success flags per episode

    Returns:
    --------
    float
        Success rate (0.0 to 1.0)
    """
    if not successes:
        return 0.0
    return sum(successes) / len(successes)


def compute_spl(
    successes: List[bool],
    optimal_lengths: List[int],
    actual_lengths: List[int],
) -> float:
    """
    Compute SPL (Success weighted by Path Length).

    This metric rewards both success AND efficiency.
    An agent that succeeds but takes too many steps scores lower.

    Parameters:
    -----------
    successes : List[bool]
        Success flag per episode
    optimal_lengths : List[int]
        Shortest path length per episode
    actual_lengths : List[int]
        Actual path length taken per episode

    Returns:
    --------
    float
        SPL score (0.0 to 1.0)
    """
    if not successes:
        return 0.0

    total = 0.0
    for success, optimal, actual in zip(successes, optimal_lengths, actual_lengths):
        if success and optimal is not None:
            total += optimal / max(optimal, actual, 1)

    return total / len(successes)


def shortest_path_length(env, start=(0, 0)) -> Optional[int]:
    """
    Breadth-first search over the environment model.

    Uses env.get_transition(), so wind and other stochastic effects are
    ignored. Returns None when the goal is unreachable.
    """
    start = (int(start[0]), int(start[1]))
    if env.is_terminal_state(start):
        return 0
    seen = {start}
    frontier = deque([(start, 0)])
    while frontier:
        state, depth = frontier.popleft()
        for action in env.get_available_actions():
            outcome = env.get_transition(state, action)
            if outcome.done:
                return depth + 1
            nxt = (int(outcome.state[0]), int(outcome.state[1]))
            if nxt not in seen:
                seen.add(nxt)
                frontier.append((nxt, depth + 1))
    return None


@dataclass
class RolloutResult:
    success: bool
    reward: float
    steps: int
    path: List[Any] = field(default_factory=list)


def greedy_rollout(agent, env, max_steps: int = 100) -> RolloutResult:
    """Run one episode with agent.greedy_action(); the agent is not updated."""
    state = env.reset()
    path = [state]
    total = 0.0
    for step in range(1, max_steps + 1):
        state, reward, done = env.step(agent.greedy_action(state))
        path.append(state)
        total += reward
        if done:
            return RolloutResult(True, total, step, path)
    return RolloutResult(False, total, max_steps, path)


class EvaluationSuite:
    """
    Greedy evaluation of agents on one scenario.

    Each episode uses a fresh environment seeded with `seed + episode`, so
    every agent sees the same sequence of stochastic effects.

    Example:
    --------
    >>> suite = EvaluationSuite(scenario_id="windy", size=7)
    >>> metrics = suite.evaluate(agent, num_episodes=20)
    >>> print(f"Success rate: {metrics['success_rate']:.1%}")
    """

    def __init__(
        self,
        scenario_id: str = "classic",
        size: Optional[int] = None,
        seed: int = 42,
        max_steps: int = 100,
        env_kwargs: Optional[Dict[str, Any]] = None,
    ):
        """
        Parameters:
        -----------
        scenario_id : str
            Scenario to evaluate on
        size : int, optional
            Grid size (scenario default if None)
        seed : int
            Base seed for the per-episode environments
        max_steps : int
            Maximum steps per episode
        env_kwargs : dict, optional
            Extra arguments for create_environment_from_scenario
            (obstacles, rewards, scenario_config)
        """
        self.scenario_id = scenario_id
        self.size = size
        self.seed = seed
        self.max_steps = max_steps
        self.env_kwargs = dict(env_kwargs or {})

    def make_env(self, episode: int = 0):
        return create_environment_from_scenario(
            self.scenario_id, size=self.size, seed=self.seed + episode, **self.env_kwargs
        )

    def evaluate(self, agent, num_episodes: int = 20, verbose: bool = False) -> Dict[str, Any]:
        """
        Run greedy evaluation episodes.

        Parameters:
        -----------
        agent : object
            Anything with greedy_action(state)
        num_episodes : int
            Number of episodes
        verbose : bool
            Print a summary

        Returns:
        --------
        dict
            success_rate, spl, mean/std reward and length, per-episode data
        """
        successes, rewards, lengths, optimal = [], [], [], []
        episodes = []

        for ep in range(num_episodes):
            env = self.make_env(ep)
            if callable(getattr(agent, "set_environment", None)):
                agent.set_environment(env)
            result = greedy_rollout(agent, env, self.max_steps)
            shortest = shortest_path_length(env)

            successes.append(result.success)
            rewards.append(result.reward)
            lengths.append(result.steps)
            optimal.append(shortest)
            episodes.append({
                "success": result.success,
                "reward": result.reward,
                "length": result.steps,
                "optimal_length": shortest,
            })

        metrics = {
            "success_rate": compute_success_rate(successes),
            "spl": compute_spl(successes, optimal, lengths),
            "mean_reward": float(np.mean(rewards)) if rewards else 0.0,
            "std_reward": float(np.std(rewards)) if rewards else 0.0,
            "mean_length": float(np.mean(lengths)) if lengths else 0.0,
            "std_length": float(np.std(lengths)) if lengths else 0.0,
            "num_episodes": num_episodes,
            "episodes": episodes,
        }

        if verbose:
            print(f"\n=== Evaluation Results ({self.scenario_id}) ===")
            print(f"Success rate: {metrics['success_rate']:.1%}")
            print(f"SPL:          {metrics['spl']:.3f}")
            print(f"Mean reward:  {metrics['mean_reward']:.3f} ± {metrics['std_reward']:.3f}")
            print(f"Mean length:  {metrics['mean_length']:.1f} ± {metrics['std_length']:.1f}")

        return metrics

    def compare_agents(self, agents: Dict[str, Any], num_episodes: int = 20,
                       verbose: bool = False) -> Dict[str, Dict[str, Any]]:
        """
        Evaluate several agents on identical episodes.

        Parameters:
        -----------
        agents : dict
            Mapping from agent name to agent

        Returns:
        --------
        dict
            Metrics per agent name
        """
        results = {name: self.evaluate(agent, num_episodes) for name, agent in agents.items()}

        if verbose:
            print("\n=== Comparison ===")
            print(f"{'Agent':<20} {'Success':<12} {'SPL':<12} {'Reward':<12}")
            print("-" * 56)
            for name, metrics in results.items():
                print(f"{name:<20} {metrics['success_rate']:<12.1%} "
                      f"{metrics['spl']:<12.3f} {metrics['mean_reward']:<12.3f}")

        return results


if __name__ == "__main__":
    from gridrl.agents import QLearningAgent, ValueIterationAgent

    print("Testing evaluation metrics...")
    print()

    successes = [True, True, False, True, False]
    optimal_lengths = [8, 8, 8, 8, 8]
    actual_lengths = [8, 12, 30, 10, 30]

    sr = compute_success_rate(successes)
    spl = compute_spl(successes, optimal_lengths, actual_lengths)

    print(f"Success rate: {sr:.1%}")
    print(f"SPL: {spl:.3f}")
    print()

    print("=== Testing EvaluationSuite ===")
    suite = EvaluationSuite(scenario_id="classic", size=5, max_steps=30)
    results = suite.compare_agents({
        "value-iteration": ValueIterationAgent(),
        "untrained": QLearningAgent(seed=0),
    }, num_episodes=3)
    assert results["value-iteration"]["success_rate"] == 1.0

    print("\n✓ Evaluation metrics test passed!")
