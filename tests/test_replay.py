"""Tests for the experience replay buffer."""
import numpy as np
import pytest

from gridrl.training.replay import ExperienceReplay, Transition


def transition(i):
    return Transition((i, 0), 0, float(i), (i, 0), False)


class TestStorage:

    def test_ring_eviction(self):
        replay = ExperienceReplay(capacity=2)
        for i in range(3):
            replay.add(transition(i))
        assert len(replay) == 2
        assert [t.state for t in replay.buffer] == [(2, 0), (1, 0)]

    def test_zero_capacity_ignores_adds(self):
        replay = ExperienceReplay(capacity=0)
        replay.add(transition(0))
        assert len(replay) == 0
        assert replay.sample(3) == []

    def test_negative_capacity_rejected(self):
        with pytest.raises(ValueError):
            ExperienceReplay(capacity=-1)

    def test_max_priority(self):
        replay = ExperienceReplay()
        assert replay.max_priority() == 1.0
        replay.add(transition(0), priority=3.0)
        replay.add(transition(1), priority=0.5)
        assert replay.max_priority() == 3.0

    def test_update_priority_out_of_range_ignored(self):
        replay = ExperienceReplay()
        replay.add(transition(0))
        replay.update_priority(5, 9.0)
        replay.update_priority(-1, 9.0)
        assert replay.priorities == [1.0]

    def test_clear(self):
        replay = ExperienceReplay(capacity=2)
        replay.add(transition(0))
        replay.clear()
        assert len(replay) == 0
        assert replay.position == 0


class TestSampling:

    def test_uniform_weights_are_one(self, rng):
        replay = ExperienceReplay(rng=rng)
        for i in range(4):
            replay.add(transition(i))
        samples = replay.sample(10)
        assert len(samples) == 10
        assert all(s.weight == 1.0 for s in samples)
        assert all(s.transition is replay.buffer[s.index] for s in samples)

    def test_empty_or_nonpositive_count(self, rng):
        replay = ExperienceReplay(rng=rng)
        assert replay.sample(4, "priority") == []
        replay.add(transition(0))
        assert replay.sample(0, "priority") == []
        assert replay.beta == 0.4

    def test_priority_weights(self, rng):
        replay = ExperienceReplay(alpha=1.0, beta=0.5, rng=rng)
        replay.add(transition(0), priority=1.0)
        replay.add(transition(1), priority=4.0)
        weights = {s.index: s.weight for s in replay.sample(200, "priority")}
        # P = [0.2, 0.8]; w = sqrt(P) / sqrt(0.8)
        assert weights[0] == pytest.approx(0.5)
        assert weights[1] == pytest.approx(1.0)

    def test_priority_prefers_high_priority(self, rng):
        replay = ExperienceReplay(alpha=1.0, rng=rng)
        replay.add(transition(0), priority=1.0)
        replay.add(transition(1), priority=9.0)
        indices = [s.index for s in replay.sample(1000, "priority")]
        assert 0.85 < np.mean(indices) < 0.95

    def test_zero_priority_entries_never_drawn(self, rng):
        replay = ExperienceReplay(alpha=1.0, rng=rng)
        replay.add(transition(0), priority=0.0)
        replay.add(transition(1), priority=1.0)
        replay.add(transition(2), priority=0.0)
        assert {s.index for s in replay.sample(200, "priority")} == {1}

    def test_all_zero_priorities_fall_back_to_uniform(self, rng):
        replay = ExperienceReplay(rng=rng)
        for i in range(3):
            replay.add(transition(i), priority=0.0)
        samples = replay.sample(100, "priority")
        assert {s.index for s in samples} == {0, 1, 2}
        assert all(s.weight == 1.0 for s in samples)

    def test_beta_anneals_to_one(self, rng):
        replay = ExperienceReplay(beta=0.9, beta_increment=0.06, rng=rng)
        replay.add(transition(0))
        replay.sample(1, "priority")
        assert replay.beta == pytest.approx(0.96)
        replay.sample(1, "priority")
        assert replay.beta == 1.0
        replay.sample(1, "uniform")
        assert replay.beta == 1.0
