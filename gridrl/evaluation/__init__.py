"""Evaluation utilities."""

from gridrl.evaluation.metrics import (
    EvaluationSuite,
    RolloutResult,
    compute_spl,
    compute_success_rate,
    greedy_rollout,
    shortest_path_length,
)

__all__ = [
    "EvaluationSuite",
    "RolloutResult",
    "compute_spl",
    "compute_success_rate",
    "greedy_rollout",
    "shortest_path_length",
]
