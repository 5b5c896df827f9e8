# =============================================================================
# Trainer Worker
# =============================================================================
"""
Message-driven host for an RLTrainer.

A host that wants the trainer off its own thread talks to it only through
plain JSON-compatible messages:

    command:  {"type": "configure", "payload": {...}}
    event:    {"type": "progress", "payload": {...}}

Commands:
---------
- configure                 {agent: {type, params, revision},
                             env: {scenarioId, size, obstacles, rewards, scenarioConfig},
                             trainer: {intervalMs, replaySamples, replayCapacity, replayStrategy}}
- start / pause / reset / resetTrainerState
- setInterval               ms, or {intervalMs}
- updateAgentField          {key, value}, or a {name: value} mapping
- requestAgentSnapshot      {requestId}
- requestEnvironmentMetadata {requestId}

Events:
-------
- progress              {state, reward, done, metrics, episodeRewards}
- agentSnapshot         {requestId, data}
- environmentMetadata   {requestId, metadata}

Reconfiguration is idempotent: while the agent type (and revision) and
the environment scenario and size are unchanged, hyperparameters,
obstacles, rewards and scenario config are patched in place and learning
continues. Otherwise the agent and/or environment is rebuilt along with
the trainer, and a running trainer keeps running.

ThreadedTrainerHost runs a worker on a private asyncio loop in a
background thread. Commands are queued with call_soon_threadsafe, so they
execute in the order they were sent and never concurrently with a step.
"""

import asyncio
import copy
import logging
import queue
import threading
from typing import Any, Callable, Dict, List, Optional

import numpy as np

from gridrl.agents.factory import DEFAULT_AGENT_TYPE, apply_agent_params, create_agent
from gridrl.environment.grid_world import normalize_size
from gridrl.environment.scenarios import DEFAULT_SCENARIO_ID, create_environment_from_scenario
from gridrl.training.metrics_tracker import TrainingMetrics, agent_epsilon
from gridrl.training.replay import ExperienceReplay
from gridrl.training.trainer import RLTrainer

logger = logging.getLogger(__name__)

Message = Dict[str, Any]
DEFAULT_INTERVAL_MS = 100
DEFAULT_REPLAY_CAPACITY = 1000


def state_to_dict(state) -> Optional[Dict[str, int]]:
    if state is None:
        return None
    return {"x": int(state[0]), "y": int(state[1])}


class TrainerWorker:
    """Owns agent, environment and trainer; reacts to command messages."""

    def __init__(self, emit: Callable[[Message], None], seed: Optional[int] = None):
        self.emit = emit
        self.rng = np.random.default_rng(seed)
        self.trainer: Optional[RLTrainer] = None
        self.agent = None
        self.environment = None
        self.agent_type: Optional[str] = None
        self.agent_revision = None
        self.interval_ms: float = DEFAULT_INTERVAL_MS
        self.replay_samples = 0
        self.replay_capacity = DEFAULT_REPLAY_CAPACITY
        self.replay_strategy = "uniform"

        self._handlers = {
            "configure": self._configure,
            "start": lambda payload: self.trainer and self.trainer.start(),
            "pause": lambda payload: self.trainer and self.trainer.pause(),
            "reset": lambda payload: self.trainer and self.trainer.reset(),
            "resetTrainerState": lambda payload: self.trainer and self.trainer.reset_trainer_state(),
            "setInterval": self._set_interval,
            "updateAgentField": self._update_agent,
            "requestAgentSnapshot": self._emit_agent_snapshot,
            "requestEnvironmentMetadata": self._emit_environment_metadata,
        }

    def handle(self, message: Message) -> None:
        """Dispatch one command. Malformed and unknown messages are ignored."""
        if not isinstance(message, dict):
            logger.warning("Ignoring malformed command %r", message)
            return
        handler = self._handlers.get(message.get("type"))
        if handler is None:
            logger.warning("Ignoring unknown command %r", message.get("type"))
            return
        handler(message.get("payload"))

    def shutdown(self) -> None:
        if self.trainer is not None:
            self.trainer.pause()

    # -------------------------------------------------------------------------
    # Events
    # -------------------------------------------------------------------------

    def _emit_progress(self, state, reward: float, done: bool, metrics: TrainingMetrics) -> None:
        self.emit({
            "type": "progress",
            "payload": {
                "state": state_to_dict(state),
                "reward": float(reward),
                "done": bool(done),
                "metrics": metrics.to_dict(),
                "episodeRewards": list(self.trainer.episode_rewards) if self.trainer else [],
            },
        })

    def _emit_agent_snapshot(self, payload) -> None:
        request_id = (payload or {}).get("requestId") if isinstance(payload, dict) else None
        data = self.agent.to_dict() if self.agent is not None else None
        self.emit({"type": "agentSnapshot", "payload": {"requestId": request_id, "data": data}})

    def _emit_environment_metadata(self, payload) -> None:
        request_id = (payload or {}).get("requestId") if isinstance(payload, dict) else None
        metadata = self.environment.to_dict() if self.environment is not None else None
        self.emit({
            "type": "environmentMetadata",
            "payload": {"requestId": request_id, "metadata": metadata},
        })

    # -------------------------------------------------------------------------
    # Commands
    # -------------------------------------------------------------------------

    def _set_interval(self, payload) -> None:
        ms = payload.get("intervalMs") if isinstance(payload, dict) else payload
        if self.trainer is None:
            return
        self.trainer.set_interval_ms(ms)
        self.interval_ms = self.trainer.interval_ms

    def _update_agent(self, payload) -> None:
        if self.agent is None or not isinstance(payload, dict):
            return
        if "key" in payload:
            params = {payload["key"]: payload.get("value")}
        else:
            params = payload
        apply_agent_params(self.agent, params)
        if self.trainer is not None:
            self.trainer.metrics.epsilon = agent_epsilon(self.agent)
            self._emit_progress(self.trainer.state, 0.0, False, self.trainer.metrics)

    def _configure(self, payload) -> None:
        payload = payload if isinstance(payload, dict) else {}
        agent_config = payload.get("agent") or {}
        env_config = payload.get("env") or {}
        trainer_config = payload.get("trainer") or {}

        replace_agent = self._configure_agent(agent_config)
        rebuild_env = self._configure_environment(env_config)
        replay_changed = self._configure_replay(trainer_config)

        interval = trainer_config.get("intervalMs")
        if interval is not None:
            self.interval_ms = interval

        if self.trainer is None or replace_agent or rebuild_env:
            self._rebuild_trainer()
            return

        if interval is not None and interval != self.trainer.interval_ms:
            self.trainer.set_interval_ms(interval)
        if replay_changed:
            self.trainer.replay = self._make_replay()
        self.trainer.replay_samples = self.replay_samples
        self.trainer.replay_strategy = self.replay_strategy
        if self.trainer.state is None:
            self.trainer.reset_trainer_state()

    def _configure_agent(self, config: Dict[str, Any]) -> bool:
        """Create, replace or patch the agent. Returns True if replaced."""
        agent_type = config.get("type") or self.agent_type or DEFAULT_AGENT_TYPE
        revision = config.get("revision")
        params = config.get("params") or {}

        replace = (
            self.agent is None
            or agent_type != self.agent_type
            or (revision is not None and revision != self.agent_revision)
        )
        if replace:
            self.agent = create_agent(agent_type, params, rng=self.rng)
            self.agent_type = agent_type
            logger.info("Created %s agent", agent_type)
        elif params:
            apply_agent_params(self.agent, params)
        if revision is not None:
            self.agent_revision = revision
        return replace

    def _configure_environment(self, config: Dict[str, Any]) -> bool:
        """Create, rebuild or patch the environment. Returns True if rebuilt."""
        env = self.environment
        scenario_id = config.get("scenarioId") or (env.scenario_id if env else DEFAULT_SCENARIO_ID)

        if env is None or scenario_id != env.scenario_id or (
                config.get("size") is not None and normalize_size(config["size"]) != env.size):
            self.environment = create_environment_from_scenario(
                scenario_id,
                size=config.get("size", env.size if env else None),
                obstacles=config.get("obstacles", env.obstacles if env else None),
                rewards=config.get("rewards"),
                scenario_config=copy.deepcopy(config.get("scenarioConfig")),
                rng=self.rng,
            )
            logger.info("Built %s environment (size %d)", self.environment.scenario_id,
                        self.environment.size)
            return True

        if "scenarioConfig" in config and config["scenarioConfig"] != env.get_scenario_config():
            apply = getattr(env, "apply_scenario_options", None)
            if apply is None:
                logger.warning("Environment %s takes no scenario config", env.scenario_id)
            else:
                apply(copy.deepcopy(config["scenarioConfig"]))
        if config.get("obstacles") is not None:
            env.set_obstacles(config["obstacles"])
        if config.get("rewards"):
            env.set_reward_config(config["rewards"])
        return False

    def _configure_replay(self, config: Dict[str, Any]) -> bool:
        changed = False
        if config.get("replaySamples") is not None:
            self.replay_samples = max(0, int(config["replaySamples"]))
        if config.get("replayStrategy") in ("uniform", "priority"):
            self.replay_strategy = config["replayStrategy"]
        capacity = config.get("replayCapacity")
        if capacity is not None and int(capacity) != self.replay_capacity:
            self.replay_capacity = max(0, int(capacity))
            changed = True
        if self.replay_samples > 0 and (self.trainer is None or self.trainer.replay is None):
            changed = True
        return changed

    def _make_replay(self) -> Optional[ExperienceReplay]:
        if self.replay_samples <= 0:
            return None
        return ExperienceReplay(capacity=self.replay_capacity, rng=self.rng)

    def _rebuild_trainer(self) -> None:
        was_running = self.trainer is not None and self.trainer.is_running
        pending = None
        if self.trainer is not None:
            # The old trainer's in-flight step may still hold the agent
            pending = self.trainer.detach()
        self.trainer = RLTrainer(
            self.agent,
            self.environment,
            interval_ms=self.interval_ms,
            on_step=self._emit_progress,
            replay=self._make_replay(),
            replay_samples=self.replay_samples,
            replay_strategy=self.replay_strategy,
        )
        self.trainer.reset_trainer_state()
        if was_running:
            self.trainer.start(after=pending)


class ThreadedTrainerHost:
    """
    Runs a TrainerWorker on its own event loop thread.

    Example:
    --------
    >>> host = ThreadedTrainerHost(seed=0)
    >>> host.send("configure", {"agent": {"type": "sarsa"}, "env": {"size": 4}})
    >>> host.send("start")
    >>> event = host.get_event(timeout=1.0)
    >>> host.close()
    """

    def __init__(self, seed: Optional[int] = None):
        self.events: "queue.Queue[Message]" = queue.Queue()
        self.worker = TrainerWorker(self.events.put, seed=seed)
        self._loop = asyncio.new_event_loop()
        self._closed = False
        self._thread = threading.Thread(target=self._run, name="gridrl-trainer", daemon=True)
        self._thread.start()

    def _run(self) -> None:
        asyncio.set_event_loop(self._loop)
        try:
            self._loop.run_forever()
            pending = asyncio.all_tasks(self._loop)
            for task in pending:
                task.cancel()
            if pending:
                self._loop.run_until_complete(asyncio.gather(*pending, return_exceptions=True))
        finally:
            self._loop.close()

    def send(self, command_type: str, payload: Any = None) -> None:
        """Queue a command; commands run in the order they were sent."""
        if self._closed:
            raise RuntimeError("ThreadedTrainerHost is closed")
        self._loop.call_soon_threadsafe(self.worker.handle, {"type": command_type, "payload": payload})

    def get_event(self, timeout: Optional[float] = None) -> Optional[Message]:
        try:
            return self.events.get(timeout=timeout)
        except queue.Empty:
            return None

    def drain_events(self) -> List[Message]:
        drained = []
        while True:
            try:
                drained.append(self.events.get_nowait())
            except queue.Empty:
                return drained

    def close(self, timeout: float = 5.0) -> None:
        if self._closed:
            return
        self._closed = True
        self._loop.call_soon_threadsafe(self.worker.shutdown)
        self._loop.call_soon_threadsafe(self._loop.stop)
        self._thread.join(timeout)
