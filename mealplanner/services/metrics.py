from __future__ import annotations

import logging
import os
import time
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, Iterator, Optional

from mealplanner.config import Settings
from mealplanner.services.repo.json_repo import _append_line  # reuse the locked JSONL append

logger = logging.getLogger(__name__)


class MetricsLogger:
    """Append-only JSONL logger for latency metrics under data/.

    Writes one JSON object per line with fields:
      - ts: ISO timestamp (UTC)
      - kind: "latency"
      - name: short name ("import", "sync")
      - duration_ms: float
      - ok: whether the operation completed
      - extra: optional dict with contextual fields
    """

    def __init__(self, settings: Optional[Settings] = None, filename: str = "latency_log.jsonl") -> None:
        self.settings = settings or Settings()
        self.path = os.path.join(self.settings.data_dir, filename)

    def log_latency(
        self,
        name: str,
        duration_ms: float,
        ok: bool = True,
        extra: Optional[Dict[str, Any]] = None,
        user_id: Optional[str] = None,
    ) -> None:
        entry: Dict[str, Any] = {
            "ts": datetime.utcnow().isoformat(),
            "kind": "latency",
            "name": name,
            "duration_ms": round(float(duration_ms), 3),
            "ok": ok,
        }
        if user_id:
            entry["user"] = user_id
        if extra:
            entry["extra"] = extra
        try:
            _append_line(self.path, entry)
        except Exception as e:
            # Metrics never impact user flows
            logger.debug("Dropping latency metric %s: %s", name, e)

    @contextmanager
    def timed(self, name: str, **kwargs: Any) -> Iterator[Dict[str, Any]]:
        """Time the block; callers may add keys to the yielded dict as ``extra``."""
        extra: Dict[str, Any] = {}
        t0 = time.perf_counter()
        ok = False
        try:
            yield extra
            ok = True
        finally:
            self.log_latency(name, (time.perf_counter() - t0) * 1000.0, ok=ok, extra=extra or None, **kwargs)
