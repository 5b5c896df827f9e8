# =============================================================================
# Episode Logger
# =============================================================================
"""
Append-only log of finished training episodes.

Storage Format: JSONL (JSON Lines)
-----------------------------------
Each line is one finished episode:

    {"id": 0, "episode": 1, "reward": 0.93, "steps": 8, "success": true,
     "scenario": "classic", "ts": "2026-01-01T12:00:00", ...metadata}

JSONL is append-friendly, so the trainer can write an entry at every
episode boundary without loading the file.
"""

import json
import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


@dataclass
class EpisodeRecord:
    """A single finished episode."""
    id: int
    episode: int
    reward: float
    steps: int
    success: bool
    scenario: str = ""
    ts: str = field(default_factory=lambda: datetime.now().isoformat())
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        metadata = d.pop("metadata")
        return {**d, **metadata}

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "EpisodeRecord":
        known = {k: d[k] for k in ("id", "episode", "reward", "steps", "success", "scenario", "ts")
                 if k in d}
        metadata = {k: v for k, v in d.items() if k not in known}
        return cls(metadata=metadata, **known)


class EpisodeLogger:
    """
    Lightweight JSONL logger for episode summaries.

    Example:
    --------
    >>> log = EpisodeLogger("experiments/logs", filename="run.jsonl")
    >>> log.log_episode(episode=1, total_reward=0.9, num_steps=8, success=True)
    >>> log.get_stats()["success_rate"]
    1.0
    """

    def __init__(
        self,
        save_dir: str = "experiments/logs",
        filename: str = "episodes.jsonl",
    ):
        self.save_dir = Path(save_dir)
        self.filepath = self.save_dir / filename
        self.save_dir.mkdir(parents=True, exist_ok=True)
        self._counter = self._count_existing()

    def _count_existing(self) -> int:
        if not self.filepath.exists():
            return 0
        with open(self.filepath, "r") as f:
            return sum(1 for line in f if line.strip())

    def log_episode(
        self,
        episode: int,
        total_reward: float,
        num_steps: int,
        success: bool,
        scenario: str = "",
        metadata: Optional[Dict[str, Any]] = None,
    ) -> EpisodeRecord:
        """Append one finished episode."""
        record = EpisodeRecord(
            id=self._counter,
            episode=int(episode),
            reward=float(total_reward),
            steps=int(num_steps),
            success=bool(success),
            scenario=scenario,
            metadata=dict(metadata or {}),
        )
        with open(self.filepath, "a") as f:
            json.dump(record.to_dict(), f)
            f.write("\n")
        self._counter += 1
        return record

    def load_all(self) -> List[EpisodeRecord]:
        if not self.filepath.exists():
            return []
        records = []
        with open(self.filepath, "r") as f:
            for line in f:
                if not line.strip():
                    continue
                try:
                    records.append(EpisodeRecord.from_dict(json.loads(line)))
                except (ValueError, TypeError):
                    logger.warning("Skipping malformed episode line in %s", self.filepath)
        return records

    def get_stats(self) -> Dict[str, Any]:
        """Counts, success rate, average steps and reward."""
        records = self.load_all()
        if not records:
            return {"total_episodes": 0}
        successful = [r for r in records if r.success]
        return {
            "total_episodes": len(records),
            "successful_episodes": len(successful),
            "success_rate": len(successful) / len(records),
            "avg_steps": sum(r.steps for r in records) / len(records),
            "avg_reward": sum(r.reward for r in records) / len(records),
            "scenarios": sorted({r.scenario for r in records}),
        }


if __name__ == "__main__":
    import tempfile

    print("Testing EpisodeLogger...")
    print()

    with tempfile.TemporaryDirectory() as tmpdir:
        episode_log = EpisodeLogger(save_dir=tmpdir)

        for i in range(5):
            record = episode_log.log_episode(
                episode=i + 1,
                total_reward=0.92 if i % 2 == 0 else -0.5,
                num_steps=8 if i % 2 == 0 else 50,
                success=i % 2 == 0,
                scenario="classic",
                metadata={"agent": "rl"},
            )
            print(f"Recorded episode {record.episode}: reward={record.reward} steps={record.steps}")
        print()

        stats = episode_log.get_stats()
        print("Statistics:")
        for key, value in stats.items():
            print(f"  {key}: {value}")
        assert stats["total_episodes"] == 5

        # A second logger on the same file keeps counting
        reopened = EpisodeLogger(save_dir=tmpdir)
        print(f"Reopened logger resumes at id {reopened.log_episode(6, 0.9, 9, True).id}")

    print()
    print("✓ EpisodeLogger test passed!")
