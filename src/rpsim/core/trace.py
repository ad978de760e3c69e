from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Optional, TextIO


class RunTrace:
    """JSON-lines record of one simulated run.

    Every row carries ``kind`` (``event_applied``, ``tick``, ``message`` or
    ``route``) and the simulated ``tick``. Without a path the trace records
    nothing and never touches the filesystem.
    """

    def __init__(self, path: str | Path | None = None) -> None:
        self.path = Path(path) if path is not None else None
        self.rows = 0
        self._fh: Optional[TextIO] = None

    @property
    def enabled(self) -> bool:
        return self.path is not None

    def record(self, kind: str, tick: int, **fields: Any) -> None:
        if self.path is None:
            return
        if self._fh is None:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._fh = self.path.open("w", encoding="utf-8")
        row = {"kind": kind, "tick": tick, **fields}
        self._fh.write(json.dumps(row, sort_keys=True) + "\n")
        self.rows += 1

    def close(self) -> None:
        if self._fh is not None:
            self._fh.close()
            self._fh = None

    def __enter__(self) -> "RunTrace":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()
