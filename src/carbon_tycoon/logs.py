"""Log sink configuration.

Modules log through ``loguru`` directly (``from loguru import logger``) with a
bracketed component prefix.  This module only decides where those records go.
"""

from __future__ import annotations

import sys
from dataclasses import dataclass
from typing import Any, Optional

from loguru import logger

_CONFIGURED = False


@dataclass(slots=True)
class LogConfig:
    level: str = "INFO"
    sink: Optional[str] = None  # file path; stderr when unset
    format: str = "{time:YYYY-MM-DD HH:mm:ss} | {level} | {message}"
    rotation: Optional[str] = None
    retention: Optional[str] = None
    backtrace: bool = True
    diagnose: bool = False


def configure_logging(cfg: LogConfig | None = None, *, force: bool = False) -> None:
    """Replace loguru's handlers with a single sink described by ``cfg``.

    Only the first call takes effect unless ``force`` is set, so embedding
    applications and tests can call it freely.
    """

    global _CONFIGURED
    if _CONFIGURED and not force:
        return
    cfg = cfg or LogConfig()
    logger.remove()
    options: dict[str, Any] = {
        "level": cfg.level,
        "format": cfg.format,
        "backtrace": cfg.backtrace,
        "diagnose": cfg.diagnose,
    }
    if cfg.sink:
        if cfg.rotation:
            options["rotation"] = cfg.rotation
        if cfg.retention:
            options["retention"] = cfg.retention
        logger.add(cfg.sink, **options)
    else:
        logger.add(sys.stderr, **options)
    _CONFIGURED = True
    logger.debug(f"[Logs] configured level={cfg.level} sink={cfg.sink or 'stderr'}")


def silence_logging() -> None:
    global _CONFIGURED
    logger.remove()
    logger.add(lambda msg: None)
    _CONFIGURED = True


__all__ = ["LogConfig", "configure_logging", "silence_logging"]
