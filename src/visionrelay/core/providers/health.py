from __future__ import annotations

import threading
from collections.abc import Iterable
from dataclasses import dataclass, replace
from datetime import datetime, timezone


@dataclass(slots=True)
class HealthRecord:
    success_count: int = 0
    failure_count: int = 0
    last_failure_ts: datetime | None = None

    def as_dict(self) -> dict:
        return {
            "success_count": self.success_count,
            "failure_count": self.failure_count,
            "last_failure_ts": self.last_failure_ts.isoformat() if self.last_failure_ts else None,
        }


class HealthTracker:
    """Additive per-provider success/failure counters.

    Safe to share between concurrent ``analyze`` calls and threads; records are
    never reset or evicted.
    """

    def __init__(self, provider_names: Iterable[str] = ()) -> None:
        self._lock = threading.Lock()
        self._records: dict[str, HealthRecord] = {name: HealthRecord() for name in provider_names}

    @staticmethod
    def _now() -> datetime:
        return datetime.now(timezone.utc)

    def _record(self, name: str) -> HealthRecord:
        return self._records.setdefault(name, HealthRecord())

    def record_success(self, name: str) -> None:
        with self._lock:
            self._record(name).success_count += 1

    def record_failure(self, name: str) -> None:
        now = self._now()
        with self._lock:
            record = self._record(name)
            record.failure_count += 1
            record.last_failure_ts = now

    def snapshot(self) -> dict[str, HealthRecord]:
        with self._lock:
            return {name: replace(record) for name, record in self._records.items()}

    def summary(self) -> dict[str, dict]:
        return {name: record.as_dict() for name, record in self.snapshot().items()}
