import json
import logging
from pathlib import Path
from typing import Any, Dict, Union

logger = logging.getLogger(__name__)

USER_NAME_KEY = "userName"
CHAT_HISTORY_KEY = "chatHistory"
SLIDE_DATA_KEY = "slideData"
STEPS_MAP_KEY = "stepsMap"

SESSION_KEYS = (USER_NAME_KEY, CHAT_HISTORY_KEY, SLIDE_DATA_KEY, STEPS_MAP_KEY)


class SessionStore:
    """
    Client-local key-value store backed by a JSON file.

    The file is read once when the store is created; every mutation rewrites it.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._data: Dict[str, Any] = self._load()

    def _load(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Failed to load session from {self.path}: {e}")
            return {}
        if not isinstance(data, dict):
            return {}
        return {key: value for key, value in data.items() if key in SESSION_KEYS}

    def _write(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(self._data, indent=4, ensure_ascii=False), encoding="utf-8")

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        if key not in SESSION_KEYS:
            raise KeyError(f"Unknown session key: {key}")
        self._data[key] = value
        self._write()

    def delete(self, key: str) -> None:
        if key in self._data:
            del self._data[key]
            self._write()

    def clear(self) -> None:
        self._data = {}
        self._write()
