import logging
import os

_CONFIGURED = False
_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def _resolve_level() -> int:
    level_name = os.getenv("PROMOMO_LOG_LEVEL", "WARNING").strip().upper()
    level = logging.getLevelName(level_name)
    return level if isinstance(level, int) else logging.WARNING


def configure_logging(level: int | None = None) -> None:
    """Attach a single stderr handler to the ``promomo`` logger tree."""
    global _CONFIGURED
    root = logging.getLogger("promomo")
    root.setLevel(level if level is not None else _resolve_level())
    if _CONFIGURED:
        return
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(_FORMAT))
    root.addHandler(handler)
    root.propagate = False
    _CONFIGURED = True


def get_logger(name: str) -> logging.Logger:
    if not name.startswith("promomo"):
        name = f"promomo.{name}"
    return logging.getLogger(name)
