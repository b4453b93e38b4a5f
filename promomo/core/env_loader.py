import os
from pathlib import Path


def _project_env_path() -> Path:
    return Path(__file__).resolve().parents[2] / ".env"


def load_project_env(override: bool = False, env_path: Path | None = None) -> None:
    """Load KEY=VALUE pairs from the project ``.env`` into ``os.environ``."""
    env_file = env_path or _project_env_path()
    if not env_file.exists():
        return

    for raw_line in env_file.read_text(encoding="utf-8-sig").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue

        if line.startswith("export "):
            line = line[len("export "):].lstrip()

        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip()
        if not key:
            continue

        if (value.startswith('"') and value.endswith('"')) or (
            value.startswith("'") and value.endswith("'")
        ):
            value = value[1:-1]

        if override or key not in os.environ:
            os.environ[key] = value
