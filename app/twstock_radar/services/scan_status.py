"""Progress of the aggregation run in flight, polled by the dashboard."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class RunProgress:
    running: bool = False
    mode: str = ""
    stock_count: int = 0
    planned: list[str] = field(default_factory=list)
    completed: list[str] = field(default_factory=list)
    stage: str = ""
    message: str = ""
    started_at: str | None = None
    finished_at: str | None = None
    error: str | None = None

    def snapshot(self) -> dict[str, Any]:
        done = len(self.completed)
        total = len(self.planned)
        return {
            "running": self.running,
            "mode": self.mode,
            "stock_count": self.stock_count,
            "stage": self.stage,
            "stages_done": done,
            "stages_total": total,
            "pct": 100 if total == 0 and not self.running else round(done / max(total, 1) * 100),
            "message": self.message,
            "started_at": self.started_at,
            "finished_at": self.finished_at,
            "error": self.error,
        }


_lock = threading.Lock()
_progress = RunProgress()


def get_run_status() -> dict[str, Any]:
    with _lock:
        return _progress.snapshot()


def start_run(mode: str, stages: list[str], stock_count: int) -> None:
    global _progress
    with _lock:
        _progress = RunProgress(
            running=True,
            mode=mode,
            stock_count=stock_count,
            planned=list(stages),
            message=f"Refreshing {stock_count} stocks",
            started_at=_now(),
        )


def enter_stage(stage: str, message: str = "") -> None:
    with _lock:
        # Entering a stage closes the previous one.
        if _progress.stage and _progress.stage not in _progress.completed:
            _progress.completed.append(_progress.stage)
        _progress.stage = stage
        _progress.message = message


def finish_run(message: str) -> None:
    with _lock:
        _progress.running = False
        _progress.completed = list(_progress.planned)
        _progress.stage = "done"
        _progress.message = message
        _progress.finished_at = _now()


def fail_run(error: Exception) -> None:
    with _lock:
        _progress.running = False
        _progress.stage = "failed"
        _progress.error = f"{type(error).__name__}: {error}"
        _progress.message = "Run failed"
        _progress.finished_at = _now()
