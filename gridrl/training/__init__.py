# =============================================================================
# Training Module
# =============================================================================
"""
Training orchestration.

This module provides:
- RLTrainer: asyncio step loop with start / pause / reset lifecycle
- ExperienceReplay: uniform and prioritized transition replay
- MetricsTracker: per-episode counters for progress events
- TrainerWorker / ThreadedTrainerHost: message-driven trainer hosting
- Storage helpers and YAML experiment configs
"""

from gridrl.training.experiment_config import (
    AgentConfig,
    EnvironmentConfig,
    ExperimentConfig,
    TrainerConfig,
    build_experiment,
    create_default_config,
    load_config,
)
from gridrl.training.metrics_tracker import MetricsTracker, TrainingMetrics
from gridrl.training.replay import ExperienceReplay, ReplaySample, Transition
from gridrl.training.storage import load_agent, load_environment, save_agent, save_environment
from gridrl.training.trainer import RLTrainer
from gridrl.training.worker import ThreadedTrainerHost, TrainerWorker

__all__ = [
    "AgentConfig",
    "EnvironmentConfig",
    "ExperimentConfig",
    "TrainerConfig",
    "build_experiment",
    "create_default_config",
    "load_config",
    "MetricsTracker",
    "TrainingMetrics",
    "ExperienceReplay",
    "ReplaySample",
    "Transition",
    "load_agent",
    "load_environment",
    "save_agent",
    "save_environment",
    "RLTrainer",
    "ThreadedTrainerHost",
    "TrainerWorker",
]
