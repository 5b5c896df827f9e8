# =============================================================================
# RL Trainer
# =============================================================================
"""
Orchestrates the agent/environment step loop on an asyncio event loop.

Lifecycle:
----------
    idle --start()--> running --pause()--> paused --start()--> running
      ^                                                           |
      +------------------------- reset() -------------------------+

One Step:
---------
1. action = agent.act(state)
2. next_state, reward, done = env.step(action)
3. agent.learn(state, action, reward, next_state, done)
4. Optional replay: push the transition, replay `replay_samples` stored
   transitions through learn(), refresh their priorities
5. Update metrics and call on_step(state, reward, done, metrics)
6. If done: roll metrics to the next episode, reset the environment and
   call on_step(fresh_state, 0.0, False, metrics) a second time

Scheduling:
-----------
Steps run on a single asyncio loop. At most one timer is pending and at
most one step is in flight; the next step is scheduled only after the
previous one has fully completed, including any awaitable returned by
act() or learn(). pause() cancels the pending timer but never interrupts a
step that is already running.

Every reset bumps an epoch counter. A step that was suspended in act(),
learn() or replay when the epoch changed drops its result: it does not
touch the trainer state, the metrics, or on_step.
"""

import asyncio
import inspect
import logging
from dataclasses import replace
from typing import Any, Callable, List, Optional

from gridrl.training.metrics_tracker import MetricsTracker, TrainingMetrics
from gridrl.training.replay import ExperienceReplay, Transition

logger = logging.getLogger(__name__)

# Floor added to |TD error| so refreshed priorities never hit zero
PRIORITY_EPS = 1e-6

StepCallback = Callable[[Any, float, bool, TrainingMetrics], None]


async def _resolve(value):
    """Await the value if act()/learn() returned an awaitable."""
    if inspect.isawaitable(value):
        return await value
    return value


class RLTrainer:
    """
    Steps an agent against an environment and reports progress.

    Example:
    --------
    >>> trainer = RLTrainer(agent, env, interval_ms=50, on_step=print)
    >>> asyncio.run(trainer.run_episodes(10, max_steps=100))
    """

    def __init__(
        self,
        agent,
        env,
        interval_ms: float = 100,
        on_step: Optional[StepCallback] = None,
        replay: Optional[ExperienceReplay] = None,
        replay_samples: int = 0,
        replay_strategy: str = "uniform",
        episode_logger=None,
    ):
        """
        Parameters:
        -----------
        agent : object
            Anything with act(state) and learn(state, action, reward,
            next_state, done); either may return an awaitable
        env : object
            Anything with reset() and step(action)
        interval_ms : float
            Delay between scheduled steps
        on_step : callable, optional
            Progress callback (state, reward, done, metrics)
        replay : ExperienceReplay, optional
            Buffer that every real transition is pushed into
        replay_samples : int
            Stored transitions replayed through learn() after each step
        replay_strategy : str
            "uniform" or "priority"
        episode_logger : EpisodeLogger, optional
            Receives a summary of every finished episode
        """
        if not callable(getattr(env, "reset", None)) or not callable(getattr(env, "step", None)):
            raise TypeError(f"Environment {env!r} must provide reset() and step()")

        self.agent = agent
        self.env = env
        self.interval_ms = interval_ms
        self.on_step = on_step
        self.replay = replay
        self.replay_samples = max(0, int(replay_samples or 0))
        self.replay_strategy = replay_strategy
        self.episode_logger = episode_logger

        self.is_running = False
        self.state = None
        self.tracker = MetricsTracker(agent)

        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._timer: Optional[asyncio.TimerHandle] = None
        self._task: Optional[asyncio.Task] = None
        self._blocker: Optional[asyncio.Future] = None
        self._stepping = False
        self._epoch = 0

        if callable(getattr(agent, "set_environment", None)):
            agent.set_environment(env)

    @property
    def metrics(self) -> TrainingMetrics:
        return self.tracker.data

    @property
    def episode_rewards(self) -> List[float]:
        return self.tracker.episode_rewards

    # -------------------------------------------------------------------------
    # The atomic step
    # -------------------------------------------------------------------------

    async def step(self):
        """
        Run one agent/environment interaction.

        Returns:
        --------
        StepResult or None
            The environment's (state, reward, done); None when another
            step was already in flight, or when the trainer was reset
            while this step was waiting on the agent
        """
        if self._stepping:
            return None
        self._stepping = True
        epoch = self._epoch
        try:
            if self.state is None:
                self.state = self.env.reset()
            state = self.state

            action = await _resolve(self.agent.act(state))
            if epoch != self._epoch:
                return None
            result = self.env.step(action)
            next_state, reward, done = result
            await _resolve(self.agent.learn(state, action, reward, next_state, done))
            if epoch != self._epoch:
                return None
            await self._replay(Transition(state, action, reward, next_state, done), epoch)
            if epoch != self._epoch:
                return None

            self.state = next_state
            self._emit(next_state, reward, done, self.tracker.update(reward, self.agent))
            if done:
                self._finish_episode(success=True)
            return result
        finally:
            self._stepping = False

    async def _replay(self, transition: Transition, epoch: int) -> None:
        if self.replay is None:
            return
        self.replay.add(transition, self.replay.max_priority())
        if self.replay_samples <= 0:
            return
        weighted = getattr(self.agent, "supports_sample_weight", False)
        for sample in self.replay.sample(self.replay_samples, self.replay_strategy):
            t = sample.transition
            if weighted:
                outcome = self.agent.learn(t.state, t.action, t.reward, t.next_state, t.done,
                                           weight=sample.weight)
            else:
                outcome = self.agent.learn(t.state, t.action, t.reward, t.next_state, t.done)
            await _resolve(outcome)
            if epoch != self._epoch:
                return
            td_error = getattr(self.agent, "last_td_error", None)
            if td_error is not None:
                self.replay.update_priority(sample.index, abs(float(td_error)) + PRIORITY_EPS)

    def _finish_episode(self, success: bool) -> None:
        finished = self.tracker.data
        if self.episode_logger is not None:
            self.episode_logger.log_episode(
                episode=finished.episode,
                total_reward=finished.cumulative_reward,
                num_steps=finished.steps,
                success=success,
                scenario=getattr(self.env, "scenario_id", ""),
            )
        logger.debug("Episode %d finished: reward=%.3f steps=%d",
                     finished.episode, finished.cumulative_reward, finished.steps)
        snapshot = self.tracker.end_episode(self.agent)
        self.state = self.env.reset()
        self._emit(self.state, 0.0, False, snapshot)

    def _emit(self, state, reward: float, done: bool, metrics: TrainingMetrics) -> None:
        if self.on_step is not None:
            self.on_step(state, reward, done, metrics)

    # -------------------------------------------------------------------------
    # Scheduling
    # -------------------------------------------------------------------------

    def start(self, after: Optional[asyncio.Future] = None) -> None:
        """
        Begin stepping on the running event loop.

        Parameters:
        -----------
        after : asyncio.Future, optional
            The first step is scheduled only once this completes (e.g. a
            step still in flight on a trainer this one replaces)
        """
        if self.is_running:
            return
        try:
            self._loop = asyncio.get_running_loop()
        except RuntimeError as e:
            raise RuntimeError("RLTrainer.start() requires a running asyncio event loop") from e
        if self.state is None:
            self.state = self.env.reset()
        self.is_running = True
        logger.info("Trainer started (interval %sms)", self.interval_ms)
        if after is None:
            after = self._blocker
        if after is not None and not after.done():
            self._blocker = after
            after.add_done_callback(self._on_blocker_done)
            return
        # An in-flight step reschedules itself on completion
        if self._task is None:
            self._schedule()

    def _on_blocker_done(self, future) -> None:
        if future is self._blocker:
            self._blocker = None
            if self._task is None:
                self._schedule()

    def pause(self) -> None:
        """Stop scheduling steps; state, tables and metrics are kept."""
        if not self.is_running:
            return
        self.is_running = False
        self._cancel_timer()
        logger.info("Trainer paused at episode %d", self.metrics.episode)

    def reset(self) -> None:
        """Pause, clear the agent and metrics, and start a fresh episode."""
        self.pause()
        if callable(getattr(self.agent, "reset", None)):
            self.agent.reset()
        if self.replay is not None:
            self.replay.clear()
        self._restart_episode()

    def reset_trainer_state(self) -> None:
        """Fresh episode and metrics, keeping what the agent has learned."""
        self._restart_episode()

    def detach(self) -> Optional[asyncio.Task]:
        """
        Pause for good and drop the result of any in-flight step.

        Returns the scheduled step task if one is still running, so a
        replacement trainer can wait for it before touching the agent.
        """
        self.pause()
        self._epoch += 1
        self._blocker = None
        return self._task

    def _restart_episode(self) -> None:
        self._epoch += 1
        self.tracker.reset(self.agent)
        self.state = self.env.reset()
        self._emit(self.state, 0.0, False, replace(self.tracker.data))

    def set_interval_ms(self, ms: float) -> None:
        """Change the delay between steps; an in-flight step is unaffected."""
        try:
            ms = float(ms)
        except (TypeError, ValueError):
            logger.warning("Ignoring invalid interval %r", ms)
            return
        if ms < 0:
            logger.warning("Ignoring negative interval %r", ms)
            return
        self.interval_ms = ms
        if self.is_running and self._timer is not None:
            self._cancel_timer()
            self._schedule()

    def _schedule(self) -> None:
        if not self.is_running or self._timer is not None or self._loop is None:
            return
        self._timer = self._loop.call_later(self.interval_ms / 1000.0, self._on_timer)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _on_timer(self) -> None:
        self._timer = None
        if not self.is_running:
            return
        self._task = self._loop.create_task(self._scheduled_step(self._epoch))

    async def _scheduled_step(self, epoch: int) -> None:
        try:
            # Skipped when a reset landed between scheduling and running
            if epoch == self._epoch:
                await self.step()
        except Exception:
            logger.exception("Training step failed, pausing trainer")
            self.pause()
        finally:
            self._task = None
        self._schedule()

    # -------------------------------------------------------------------------
    # Headless drivers
    # -------------------------------------------------------------------------

    async def run_episodes(self, episodes: int, max_steps: Optional[int] = None) -> List[float]:
        """
        Run `episodes` full episodes back to back without the timer.

        An episode that reaches `max_steps` without finishing is closed
        the same way a finished one is (logged as unsuccessful).

        Returns:
        --------
        List[float]
            Return of each episode run by this call
        """
        first = len(self.episode_rewards)
        if self.state is None:
            self.state = self.env.reset()
        for _ in range(episodes):
            steps = 0
            while True:
                result = await self.step()
                if result is None:
                    await asyncio.sleep(0)
                    continue
                steps += 1
                if result[2]:
                    break
                if max_steps is not None and steps >= max_steps:
                    self._finish_episode(success=False)
                    break
        return self.episode_rewards[first:]

    @staticmethod
    async def train_episodes(agent, env, episodes: int = 10, max_steps: int = 50) -> None:
        """Plain training loop without metrics, callbacks or replay."""
        if callable(getattr(agent, "set_environment", None)):
            agent.set_environment(env)
        for _ in range(episodes):
            state = env.reset()
            for _ in range(max_steps):
                action = await _resolve(agent.act(state))
                next_state, reward, done = env.step(action)
                await _resolve(agent.learn(state, action, reward, next_state, done))
                state = next_state
                if done:
                    break
