import logging
from pathlib import Path

import yaml

CADENCE_DIR = Path.home() / ".cadence"
DB_PATH = CADENCE_DIR / "cadence.db"
CONFIG_PATH = CADENCE_DIR / "config.yaml"
BACKUP_DIR = Path.home() / ".cadence_backups"

DEFAULT_SCORE_WINDOW = 10
DEFAULT_POINTS = 10

logger = logging.getLogger(__name__)


class Config:
    """Single-instance config manager. Load once, cache in memory."""

    _instance: "Config | None" = None
    _data: dict[str, object]

    def __new__(cls) -> "Config":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._data = {}
            cls._instance._load()
        return cls._instance

    def _load(self) -> None:
        if not CONFIG_PATH.exists():
            self._data = {}
            return
        try:
            with CONFIG_PATH.open() as f:
                loaded = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            logger.warning("ignoring unreadable config %s: %s", CONFIG_PATH, e)
            loaded = None
        self._data = loaded if isinstance(loaded, dict) else {}

    def _save(self) -> None:
        CONFIG_PATH.parent.mkdir(parents=True, exist_ok=True)
        with CONFIG_PATH.open("w") as f:
            yaml.safe_dump(self._data, f, default_flow_style=False, allow_unicode=True)

    def get(self, key: str, default: object = None) -> object:
        return self._data.get(key, default)

    def set(self, key: str, value: object) -> None:
        """Set config value and persist."""
        self._data[key] = value
        self._save()


_config = Config()


def _positive_int(key: str, default: int) -> int:
    val = _config.get(key)
    if isinstance(val, int) and not isinstance(val, bool) and val > 0:
        return val
    return default


def get_score_window() -> int:
    """Days in the trailing score average."""
    return _positive_int("score_window", DEFAULT_SCORE_WINDOW)


def get_default_points() -> int:
    val = _config.get("default_points")
    if isinstance(val, int) and not isinstance(val, bool) and val >= 0:
        return val
    return DEFAULT_POINTS


def get_task_filter() -> dict[str, object]:
    """Saved task list filter, as written by set_task_filter."""
    val = _config.get("task_filter")
    return val if isinstance(val, dict) else {}


def set_task_filter(data: dict[str, object]) -> None:
    _config.set("task_filter", data)
