from __future__ import annotations

import json
import logging
from datetime import date, datetime
from pathlib import Path
from typing import Any

"""Key-value persistence for the previous import and user selections.

Each key is an independent JSON document under the state directory, so one
corrupt entry never prevents loading the others. A load failure means "no prior
state" and is only logged.
"""

__all__ = [
    "KEY_RECORDS",
    "KEY_META",
    "KEY_VISIBLE_COLUMNS",
    "KEY_GROUP_BY",
    "KEY_METRIC",
    "StateStore",
]

logger = logging.getLogger(__name__)

KEY_RECORDS = "records"
KEY_META = "meta"
KEY_VISIBLE_COLUMNS = "visible_columns"
KEY_GROUP_BY = "group_by"
KEY_METRIC = "metric"
ALL_KEYS = (KEY_RECORDS, KEY_META, KEY_VISIBLE_COLUMNS, KEY_GROUP_BY, KEY_METRIC)


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if hasattr(value, "item"):  # numpy scalars
        return value.item()
    return str(value)


class StateStore:
    """JSON file per key under ``directory`` (created on first save)."""

    def __init__(self, directory: Path) -> None:
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def save(self, key: str, value: Any) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        self._path(key).write_text(
            json.dumps(value, ensure_ascii=False, default=_json_default), encoding="utf-8"
        )

    def load(self, key: str, expected: type | tuple[type, ...] | None = None) -> Any:
        """Stored value, or None when missing, unreadable or not of ``expected`` type."""
        path = self._path(key)
        if not path.exists():
            return None
        try:
            value = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("state: ignoring unreadable %s: %s", path.name, e)
            return None
        if expected is not None and not isinstance(value, expected):
            logger.warning("state: ignoring %s with unexpected type %s", path.name, type(value).__name__)
            return None
        return value

    def clear(self) -> None:
        for key in ALL_KEYS:
            self._path(key).unlink(missing_ok=True)
