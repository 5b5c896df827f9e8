# =============================================================================
# Agent / Environment Storage
# =============================================================================
"""
Save and load agents and environments as JSON files.

The files hold exactly the persisted schema (agent_to_dict /
GridWorldEnvironment.to_dict), so they can be edited by hand or shared
with other tools.
"""

import json
import logging
from pathlib import Path
from typing import Optional, Union

import numpy as np

from gridrl.agents.factory import agent_from_dict, agent_to_dict
from gridrl.environment.scenarios import environment_from_dict

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def _write_json(data, path: PathLike) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        json.dump(data, f, indent=2)
    return path


def save_agent(agent, path: PathLike) -> Path:
    """Write an agent's hyperparameters and tables to `path`."""
    data = agent_to_dict(agent)
    path = _write_json(data, path)
    logger.info("Saved %s agent to %s", data.get("type"), path)
    return path


def load_agent(path: PathLike, trainer=None, rng: Optional[np.random.Generator] = None):
    """
    Load an agent from `path`.

    Parameters:
    -----------
    path : str or Path
        JSON file written by save_agent
    trainer : RLTrainer, optional
        If given, the loaded agent replaces the trainer's agent and the
        trainer is reset to a fresh episode

    Returns:
    --------
    agent or None
        The loaded agent; when the file does not exist, the trainer's
        current agent (or None without a trainer)
    """
    path = Path(path)
    if not path.exists():
        logger.warning("No saved agent at %s", path)
        return trainer.agent if trainer is not None else None

    with open(path, "r") as f:
        agent = agent_from_dict(json.load(f), rng=rng)

    if trainer is not None:
        trainer.pause()
        trainer.agent = agent
        if callable(getattr(agent, "set_environment", None)):
            agent.set_environment(trainer.env)
        trainer.reset_trainer_state()
    return agent


def save_environment(env, path: PathLike) -> Path:
    return _write_json(env.to_dict(), path)


def load_environment(path: PathLike, rng: Optional[np.random.Generator] = None):
    """Rebuild an environment saved with save_environment (None if missing)."""
    path = Path(path)
    if not path.exists():
        logger.warning("No saved environment at %s", path)
        return None
    with open(path, "r") as f:
        return environment_from_dict(json.load(f), rng=rng)
