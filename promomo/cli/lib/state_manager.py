"""
Small JSON state file shared between CLI invocations.

Stored under ``~/.promomo/state.json`` (``%APPDATA%\\promomo`` on Windows);
``PROMOMO_STATE_DIR`` overrides the directory.
"""

import json
import os
from pathlib import Path
from typing import Any, Dict, Optional

from promomo.core.logger import get_logger

logger = get_logger("promomo.cli.state")

STATE_FILE_NAME = "state.json"


def get_state_dir() -> Path:
    custom_dir = os.getenv("PROMOMO_STATE_DIR", "").strip()
    if custom_dir:
        return Path(custom_dir)
    if os.name == "nt":
        app_data = os.getenv("APPDATA")
        if app_data:
            return Path(app_data) / "promomo"
    return Path.home() / ".promomo"


def get_state_path() -> Path:
    return get_state_dir() / STATE_FILE_NAME


def load_state() -> Dict[str, Any]:
    path = get_state_path()
    if not path.exists():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        logger.warning("Ignoring unreadable state file %s: %s", path, e)
        return {}
    return data if isinstance(data, dict) else {}


def get_state_value(key: str, default: Optional[Any] = None) -> Any:
    return load_state().get(key, default)


def update_state(key: str, value: Any) -> None:
    """Set one key; ``None`` removes it."""
    state = load_state()
    if value is None:
        state.pop(key, None)
    else:
        state[key] = value

    path = get_state_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(".tmp")
    tmp_path.write_text(json.dumps(state, indent=2, ensure_ascii=False), encoding="utf-8")
    os.replace(tmp_path, path)
