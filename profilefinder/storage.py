"""
Key-value persistence behind the cache and the pattern learner.

Values are JSON-compatible (dicts, lists, strings, numbers). Three backends:
an in-process dict, a single JSON file, and SQLite (see database.py).
"""

import copy
import json
from pathlib import Path
from typing import Any, Dict, Iterator, Optional, Protocol

from .logger import get_logger

logger = get_logger()


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[Any]:
        ...

    def set(self, key: str, value: Any) -> None:
        ...

    def keys(self) -> Iterator[str]:
        ...


class MemoryStore:
    """Dict-backed store; values are deep-copied in and out."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._data: Dict[str, Any] = copy.deepcopy(initial) if initial else {}

    def get(self, key: str) -> Optional[Any]:
        value = self._data.get(key)
        return copy.deepcopy(value) if value is not None else None

    def set(self, key: str, value: Any) -> None:
        self._data[key] = copy.deepcopy(value)

    def keys(self) -> Iterator[str]:
        return iter(list(self._data))

    def __len__(self) -> int:
        return len(self._data)


def load_store(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    try:
        with path.open("r", encoding="utf-8") as f:
            content = f.read().strip()
            if not content:
                return {}
            data = json.loads(content)
    except (json.JSONDecodeError, IOError) as e:
        logger.warning("Store file unreadable, starting empty", path=str(path), error=str(e))
        return {}
    if not isinstance(data, dict):
        logger.warning("Store file is not a JSON object, starting empty", path=str(path))
        return {}
    return data


def save_store(path: Path, store: Dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    with tmp.open("w", encoding="utf-8") as f:
        json.dump(store, f, indent=2, ensure_ascii=False)
    tmp.replace(path)


class JsonFileStore(MemoryStore):
    """Whole-file JSON store; every write rewrites the file."""

    def __init__(self, path: Path):
        self.path = Path(path)
        super().__init__(load_store(self.path))

    def set(self, key: str, value: Any) -> None:
        super().set(key, value)
        save_store(self.path, self._data)
