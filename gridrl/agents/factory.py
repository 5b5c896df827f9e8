# =============================================================================
# Agent Factory and Serialization
# =============================================================================
"""
Build agents by type name and (de)serialize them as plain data.

Every serialized agent carries a `type` discriminator:

    {"type": "dyna", "epsilon": 0.3, "gamma": 0.95, ..., "qTable": {...}}

Unknown types are not an error: they fall back to plain Q-learning, so a
snapshot written by a newer version still loads.

Hyperparameters are accepted in camelCase (the persisted form) or
snake_case (the Python attribute form).
"""

import inspect
import logging
import re
from typing import Any, Dict, Optional

import numpy as np

from gridrl.agents.actor_critic import ActorCriticAgent
from gridrl.agents.double_q import DoubleQAgent
from gridrl.agents.dyna_q import DynaQAgent
from gridrl.agents.monte_carlo import MonteCarloAgent
from gridrl.agents.planning import PolicyIterationAgent, ValueIterationAgent
from gridrl.agents.policies import Policy
from gridrl.agents.tabular import QLearningAgent
from gridrl.agents.td import ExpectedSarsaAgent, OptimisticAgent, QLambdaAgent, SarsaAgent

logger = logging.getLogger(__name__)

DEFAULT_AGENT_TYPE = "rl"

AGENT_TYPES = {
    "rl": QLearningAgent,
    "sarsa": SarsaAgent,
    "expected": ExpectedSarsaAgent,
    "double": DoubleQAgent,
    "dyna": DynaQAgent,
    "qlambda": QLambdaAgent,
    "mc": MonteCarloAgent,
    "optimistic": OptimisticAgent,
    "ac": ActorCriticAgent,
    "value-iteration": ValueIterationAgent,
    "policy-iteration": PolicyIterationAgent,
}

# Interactive defaults: explore everything at first, settle slowly
INTERACTIVE_DEFAULTS = {
    "epsilon": 1.0,
    "epsilon_decay": 0.995,
    "min_epsilon": 0.05,
    "policy": Policy.EPSILON_GREEDY.value,
}

# Constructor arguments that are wiring, not hyperparameters
_UNPATCHABLE = {"rng", "seed"}

# camelCase names that don't map mechanically to the attribute name
_SPECIAL_NAMES = {
    "lambda": "lambda_",
    "ucbC": "ucb_c",
    "theta": "theta",
}


def to_snake_case(name: str) -> str:
    if name in _SPECIAL_NAMES:
        return _SPECIAL_NAMES[name]
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()


def resolve_agent_class(agent_type: Optional[str]):
    cls = AGENT_TYPES.get(agent_type)
    if cls is None:
        logger.warning("Unknown agent type %r, using %r", agent_type, DEFAULT_AGENT_TYPE)
        cls = AGENT_TYPES[DEFAULT_AGENT_TYPE]
    return cls


def _accepted_options(cls) -> set:
    """Keyword names a constructor accepts, following forwarded **kwargs up the MRO."""
    names = set()
    for klass in cls.__mro__:
        init = klass.__dict__.get("__init__")
        if init is None:
            continue
        params = inspect.signature(init).parameters
        names.update(n for n, p in params.items()
                     if p.kind is p.POSITIONAL_OR_KEYWORD and n != "self")
        # A leading underscore marks **kwargs that are swallowed, not forwarded
        if not any(p.kind is p.VAR_KEYWORD and not n.startswith("_") for n, p in params.items()):
            break
    return names


def patchable_fields(agent) -> set:
    """Hyperparameters apply_agent_params may change on a live agent."""
    return {n for n in _accepted_options(type(agent)) - _UNPATCHABLE if hasattr(agent, n)}


def create_agent(agent_type: str = DEFAULT_AGENT_TYPE, params: Optional[Dict[str, Any]] = None,
                 rng: Optional[np.random.Generator] = None, seed: Optional[int] = None):
    """
    Create an agent by type name.

    Parameters:
    -----------
    agent_type : str
        One of AGENT_TYPES (unknown names fall back to "rl")
    params : dict, optional
        Hyperparameters, camelCase or snake_case. Names the agent does not
        take are ignored.
    rng / seed
        Source of randomness

    Returns:
    --------
    agent
        A fresh agent with empty tables

    Example:
    --------
    >>> agent = create_agent("sarsa", {"learningRate": 0.5})
    >>> agent.epsilon, agent.learning_rate
    (1.0, 0.5)
    """
    cls = resolve_agent_class(agent_type)
    accepted = _accepted_options(cls)
    options = {k: v for k, v in INTERACTIVE_DEFAULTS.items() if k in accepted}
    for name, value in (params or {}).items():
        if value is None:
            continue
        attr = to_snake_case(name)
        if attr in accepted:
            options[attr] = value
    return cls(rng=rng, seed=seed, **options)


def apply_agent_params(agent, params: Optional[Dict[str, Any]]) -> None:
    """
    Patch live hyperparameters in place.

    Only constructor hyperparameters of the agent's own type are touched
    (see patchable_fields); tables, models and the rng are never replaced.
    Setting `epsilon` also resets the value `reset()` restores.
    """
    allowed = patchable_fields(agent)
    for name, value in (params or {}).items():
        attr = to_snake_case(name)
        if attr not in allowed or value is None:
            logger.warning("Ignoring agent field %r for %s", name, type(agent).__name__)
            continue
        current = getattr(agent, attr)
        if attr == "policy":
            value = Policy.parse(value).value
        elif isinstance(current, bool):
            value = bool(value)
        elif isinstance(current, (int, float)):
            try:
                number = float(value)
            except (TypeError, ValueError):
                logger.warning("Ignoring non-numeric value %r for %r", value, name)
                continue
            value = int(number) if isinstance(current, int) and number.is_integer() else number
        setattr(agent, attr, value)
        if attr == "epsilon" and hasattr(agent, "initial_epsilon"):
            agent.initial_epsilon = value


def agent_to_dict(agent) -> Dict[str, Any]:
    return agent.to_dict()


def agent_from_dict(data: Optional[Dict[str, Any]], rng: Optional[np.random.Generator] = None,
                    seed: Optional[int] = None):
    """Rebuild an agent from its persisted form."""
    data = data or {}
    cls = resolve_agent_class(data.get("type", DEFAULT_AGENT_TYPE))
    return cls.from_dict(data, rng=rng, seed=seed)
