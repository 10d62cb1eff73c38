"""
Machine-parseable tracing for merge runs.

Trace files are JSON Lines (one JSON object per line). Any object with an
`emit(event: dict)` method can be passed as `trace=` to the merge functions;
`TraceWriter` persists events to disk and `TraceRecorder` keeps them in memory.
"""

from __future__ import annotations

import json
from dataclasses import asdict, is_dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterator, List


def _default(o: Any) -> Any:
    if is_dataclass(o) and not isinstance(o, type):
        return asdict(o)
    if isinstance(o, Enum):
        return o.value
    if isinstance(o, (set, frozenset)):
        return sorted(o)
    return str(o)


class TraceWriter:
    def __init__(self, path: str | Path):
        self._path = Path(path)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._fh = self._path.open("w", encoding="utf-8")

    @property
    def path(self) -> Path:
        return self._path

    def emit(self, event: Dict[str, Any]) -> None:
        # Add a timestamp if caller didn't.
        if "ts" not in event:
            event = dict(event)
            event["ts"] = datetime.now(timezone.utc).isoformat()
        self._fh.write(json.dumps(event, ensure_ascii=False, default=_default) + "\n")
        self._fh.flush()

    def close(self) -> None:
        if not self._fh.closed:
            self._fh.close()

    def __enter__(self) -> "TraceWriter":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class TraceRecorder:
    """In-memory trace sink, handy for tests and previews."""

    def __init__(self) -> None:
        self.events: List[Dict[str, Any]] = []

    def emit(self, event: Dict[str, Any]) -> None:
        self.events.append(dict(event))

    def of(self, name: str) -> List[Dict[str, Any]]:
        return [e for e in self.events if e.get("event") == name]


class TraceReader:
    def __init__(self, path: str | Path):
        self._path = Path(path)

    def __iter__(self) -> Iterator[Dict[str, Any]]:
        with self._path.open("r", encoding="utf-8") as fh:
            for line in fh:
                line = line.strip()
                if not line:
                    continue
                yield json.loads(line)
