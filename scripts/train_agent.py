#!/usr/bin/env python3
# =============================================================================
# Train a Tabular Agent
# =============================================================================
"""
Train a tabular agent on a grid-world scenario.

Usage:
------
# Basic training (Q-learning on the classic 5x5 grid)
python scripts/train_agent.py

# Custom settings
python scripts/train_agent.py --agent dyna --scenario windy --episodes 500

# From a saved config, with prioritized replay
python scripts/train_agent.py --config experiments/configs/windy.yaml --replay-samples 4

# Planners need no training episodes
python scripts/train_agent.py --agent value-iteration --episodes 0
"""

import argparse
import asyncio
import logging
import os
import sys

# Add project root to path
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, project_root)


def parse_args():
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Train a tabular agent on a grid world")

    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="YAML experiment config; flags below override it"
    )

    # Agent / environment
    parser.add_argument("--agent", type=str, default=None, help="Agent type (default: rl)")
    parser.add_argument("--scenario", type=str, default=None, help="Scenario id (default: classic)")
    parser.add_argument("--size", type=int, default=None, help="Grid size (scenario default)")
    parser.add_argument("--lr", type=float, default=None, help="Learning rate")
    parser.add_argument("--gamma", type=float, default=None, help="Discount factor")

    # Training
    parser.add_argument("--episodes", type=int, default=None, help="Training episodes (default: 200)")
    parser.add_argument("--max-steps", type=int, default=None, help="Max steps per episode (default: 100)")
    parser.add_argument("--replay-samples", type=int, default=None, help="Replayed transitions per step")
    parser.add_argument("--replay-strategy", choices=["uniform", "priority"], default=None)

    # Experiment
    parser.add_argument("--name", type=str, default=None, help="Experiment name")
    parser.add_argument("--seed", type=int, default=None, help="Random seed (default: 42)")
    parser.add_argument("--eval-episodes", type=int, default=20, help="Greedy evaluation episodes")
    parser.add_argument("--log-episodes", action="store_true", help="Write episode JSONL log")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")

    return parser.parse_args()


def apply_overrides(config, args):
    """Command line flags take precedence over the config file."""
    if args.name:
        config.name = args.name
    if args.seed is not None:
        config.seed = args.seed
    if args.agent:
        config.agent.type = args.agent
    if args.lr is not None:
        config.agent.params["learningRate"] = args.lr
    if args.gamma is not None:
        config.agent.params["gamma"] = args.gamma
    if args.scenario:
        config.environment.scenario_id = args.scenario
    if args.size is not None:
        config.environment.size = args.size
    if args.episodes is not None:
        config.trainer.episodes = args.episodes
    if args.max_steps is not None:
        config.trainer.max_steps = args.max_steps
    if args.replay_samples is not None:
        config.trainer.replay_samples = args.replay_samples
    if args.replay_strategy:
        config.trainer.replay_strategy = args.replay_strategy
    if args.log_episodes:
        config.log_episodes = True
    return config


def main():
    """Main training function."""
    args = parse_args()
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format="%(asctime)s %(name)s %(levelname)s: %(message)s")

    from gridrl.evaluation.metrics import EvaluationSuite
    from gridrl.training.experiment_config import build_experiment, create_default_config, load_config
    from gridrl.training.storage import save_agent

    config = load_config(args.config) if args.config else create_default_config("tabular_baseline")
    config = apply_overrides(config, args)

    print("=" * 60)
    print("Tabular Training")
    print("=" * 60)
    print(f"Agent:          {config.agent.type}")
    print(f"Scenario:       {config.environment.scenario_id}")
    print(f"Episodes:       {config.trainer.episodes}")
    print(f"Max steps:      {config.trainer.max_steps}")
    print(f"Replay samples: {config.trainer.replay_samples} ({config.trainer.replay_strategy})")
    print(f"Experiment:     {config.name}")
    print("=" * 60)
    print()

    config_path = f"experiments/configs/{config.name}.yaml"
    config.save(config_path)
    print(f"Saved config to: {config_path}")

    agent, env, trainer = build_experiment(config)
    print(f"Environment: {env!r}")

    rewards = asyncio.run(trainer.run_episodes(config.trainer.episodes, config.trainer.max_steps))

    report_every = max(len(rewards) // 10, 1)
    for i in range(report_every - 1, len(rewards), report_every):
        window = rewards[max(0, i - report_every + 1):i + 1]
        print(f"Episode {i + 1:5d}: mean reward (last {len(window)}) = "
              f"{sum(window) / len(window):.3f}")

    agent_path = save_agent(agent, os.path.join(config.checkpoint_dir, f"{config.name}.json"))
    print(f"\nSaved agent to: {agent_path}")

    print("\nRunning evaluation...")
    suite = EvaluationSuite(
        scenario_id=config.environment.scenario_id,
        size=env.size,
        seed=config.seed,
        max_steps=config.trainer.max_steps,
        env_kwargs={
            "obstacles": config.environment.obstacles,
            "rewards": config.environment.rewards,
            "scenario_config": config.environment.scenario_config,
        },
    )
    metrics = suite.evaluate(agent, num_episodes=args.eval_episodes)

    print("\n" + "=" * 60)
    print("Training Complete!")
    print("=" * 60)
    print(f"Final success rate: {metrics['success_rate']:.1%}")
    print(f"Final SPL:          {metrics['spl']:.3f}")
    print(f"Final mean reward:  {metrics['mean_reward']:.3f}")


if __name__ == "__main__":
    main()
