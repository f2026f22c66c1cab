"""
Logging setup.

`config/logging.yaml` holds the handlers/formatters; the level comes from settings
(`app.log_level`, overridable via `PARENTMAP_LOG_LEVEL`) unless the caller passes one.
"""

from __future__ import annotations

import copy
import logging.config

from parentmap.config.settings import get_logging_config, get_settings


def configure_logging(level: str | None = None) -> None:
    """Apply the packaged dictConfig with the effective level on root and handlers."""
    effective = (level or get_settings().app.log_level).upper()
    # The loaded YAML is cached; work on a copy so repeated calls start clean.
    config = copy.deepcopy(get_logging_config())

    config.setdefault("root", {})["level"] = effective
    for handler in config.get("handlers", {}).values():
        if isinstance(handler, dict):
            handler["level"] = effective

    logging.config.dictConfig(config)
    logging.getLogger(__name__).debug("Logging configured at %s", effective)
