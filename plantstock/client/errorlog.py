from __future__ import annotations

import json
import traceback
from collections import deque
from datetime import datetime, timezone
from typing import Any

MAX_ERRORS = 50


def _serialize(obj: Any) -> Any:
    if isinstance(obj, BaseException):
        return {"name": type(obj).__name__, "message": str(obj)}
    try:
        return json.loads(json.dumps(obj, default=str))
    except (TypeError, ValueError):
        return {"__serialization_error": repr(obj)}


class ErrorLog:
    """Bounded in-memory record of caught errors, newest first."""

    def __init__(self, max_errors: int = MAX_ERRORS):
        self._errors: deque[dict] = deque(maxlen=max_errors)

    def record(self, error: Any, context: str | None = None) -> dict:
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "context": context,
            "error": _serialize(error),
            "stack": "".join(traceback.format_exception(type(error), error, error.__traceback__))
            if isinstance(error, BaseException) else None,
        }
        self._errors.appendleft(entry)
        return entry

    def entries(self) -> list[dict]:
        return list(self._errors)

    def clear(self) -> None:
        self._errors.clear()

    def __len__(self) -> int:
        return len(self._errors)


error_log = ErrorLog()
