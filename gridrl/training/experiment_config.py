# =============================================================================
# Experiment Configuration
# =============================================================================
"""
Configuration management for training runs.

This module provides:
- YAML config loading and saving
- Default configurations
- build_experiment(): config -> (agent, environment, trainer)

Why YAML Configs?
-----------------
1. REPRODUCIBILITY: Exact settings (and seed) saved with each run
2. VERSIONING: Config changes can be tracked in git
3. FLEXIBILITY: Swap agent or scenario without code changes

Example config:
---------------
```yaml
name: windy_dyna
seed: 7

agent:
  type: dyna
  params:
    learningRate: 0.2
    planningSteps: 10

environment:
  scenario_id: windy
  size: 7

trainer:
  episodes: 300
  max_steps: 100
  replay_samples: 4
  replay_strategy: priority
```
"""

from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import numpy as np
import yaml

from gridrl.agents.factory import create_agent
from gridrl.environment.scenarios import create_environment_from_scenario
from gridrl.environment.trajectory_logger import EpisodeLogger
from gridrl.training.replay import ExperienceReplay
from gridrl.training.trainer import RLTrainer


@dataclass
class AgentConfig:
    """Agent type and hyperparameters (camelCase or snake_case names)."""
    type: str = "rl"
    params: Dict[str, Any] = field(default_factory=dict)


@dataclass
class EnvironmentConfig:
    """Scenario and overrides."""
    scenario_id: str = "classic"
    size: Optional[int] = None
    obstacles: List[Dict[str, int]] = field(default_factory=list)
    rewards: Dict[str, float] = field(default_factory=dict)
    scenario_config: Optional[Dict[str, Any]] = None


@dataclass
class TrainerConfig:
    """Training loop settings."""
    episodes: int = 200
    max_steps: int = 100
    interval_ms: float = 100

    # Replay
    replay_samples: int = 0
    replay_capacity: int = 1000
    replay_strategy: str = "uniform"
    replay_alpha: float = 0.6
    replay_beta: float = 0.4


@dataclass
class ExperimentConfig:
    """
    Complete experiment configuration.

    Combines all sub-configs into one object.
    Can be loaded from YAML or created programmatically.
    """
    name: str = "experiment"
    seed: int = 42

    agent: AgentConfig = field(default_factory=AgentConfig)
    environment: EnvironmentConfig = field(default_factory=EnvironmentConfig)
    trainer: TrainerConfig = field(default_factory=TrainerConfig)

    # Paths
    checkpoint_dir: str = "experiments/checkpoints"
    log_dir: str = "experiments/logs"
    log_episodes: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)

    def save(self, path: str) -> None:
        """Save configuration to YAML file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w") as f:
            yaml.safe_dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ExperimentConfig":
        """Create from dictionary."""
        d = dict(d or {})
        if isinstance(d.get("agent"), dict):
            d["agent"] = AgentConfig(**d["agent"])
        if isinstance(d.get("environment"), dict):
            d["environment"] = EnvironmentConfig(**d["environment"])
        if isinstance(d.get("trainer"), dict):
            d["trainer"] = TrainerConfig(**d["trainer"])

        return cls(**d)


def load_config(path: str) -> ExperimentConfig:
    """
    Load configuration from YAML file.

    Parameters:
    -----------
    path : str
        Path to YAML config file

    Returns:
    --------
    ExperimentConfig
        Loaded configuration
    """
    with open(path, "r") as f:
        d = yaml.safe_load(f)

    return ExperimentConfig.from_dict(d)


def create_default_config(name: str = "default") -> ExperimentConfig:
    """Create a default configuration."""
    return ExperimentConfig(name=name)


def build_experiment(config: ExperimentConfig, on_step=None) -> Tuple[Any, Any, RLTrainer]:
    """
    Instantiate everything a config describes.

    Agent, environment and replay share one generator seeded from
    `config.seed`, so a saved config reproduces its run.

    Returns:
    --------
    (agent, environment, trainer)
    """
    rng = np.random.default_rng(config.seed)
    env_cfg = config.environment
    env = create_environment_from_scenario(
        env_cfg.scenario_id,
        size=env_cfg.size,
        obstacles=env_cfg.obstacles,
        rewards=env_cfg.rewards,
        scenario_config=env_cfg.scenario_config,
        rng=rng,
    )
    agent = create_agent(config.agent.type, config.agent.params, rng=rng)

    trainer_cfg = config.trainer
    replay = None
    if trainer_cfg.replay_samples > 0:
        replay = ExperienceReplay(
            capacity=trainer_cfg.replay_capacity,
            alpha=trainer_cfg.replay_alpha,
            beta=trainer_cfg.replay_beta,
            rng=rng,
        )
    episode_logger = None
    if config.log_episodes:
        episode_logger = EpisodeLogger(save_dir=config.log_dir, filename=f"{config.name}.jsonl")

    trainer = RLTrainer(
        agent,
        env,
        interval_ms=trainer_cfg.interval_ms,
        on_step=on_step,
        replay=replay,
        replay_samples=trainer_cfg.replay_samples,
        replay_strategy=trainer_cfg.replay_strategy,
        episode_logger=episode_logger,
    )
    return agent, env, trainer


if __name__ == "__main__":
    import asyncio
    import tempfile

    print("Testing experiment configuration...")
    print()

    config = create_default_config("test_experiment")
    config.environment.scenario_id = "windy"
    config.trainer.replay_samples = 2

    print("=== Default Config ===")
    print(f"Name: {config.name}")
    print(f"Seed: {config.seed}")
    print(f"Agent: {config.agent.type}")
    print(f"Scenario: {config.environment.scenario_id}")
    print(f"Episodes: {config.trainer.episodes}")
    print()

    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "experiment.yaml"
        config.save(str(path))
        print(f"Saved to: {path}")

        loaded = load_config(str(path))
        print(f"Loaded name: {loaded.name}")
        assert loaded == config

    agent, env, trainer = build_experiment(loaded)
    rewards = asyncio.run(trainer.run_episodes(3, max_steps=50))
    print(f"Built {type(agent).__name__} on {env.scenario_id}, returns: {[round(r, 2) for r in rewards]}")

    print()
    print("✓ Experiment configuration test passed!")
