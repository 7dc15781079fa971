"""
Engine settings.

Sources (highest to lowest priority):
    1. Environment variables: STACKPLAN_*
    2. A YAML settings file, if given
    3. Built-in defaults

Settings tune the engine's behaviour only. The decision catalog and the
rule table are static inputs and are never read from here.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

import yaml

from stackplan.errors import StackPlanError

logger = logging.getLogger(__name__)

ENV_PREFIX = "STACKPLAN_"

REQUIRED_SECTIONS = ("integrations", "tooling", "stack")


@dataclass
class Settings:
    """
    Properties:
        config_filename:
            Name of the canonical configuration document in a project root

        max_prompt_attempts:
            How many times the walker re-asks a node after a recoverable
            error before letting the error propagate

        log_level:
            Level used by configure_logging()

        required_sections:
            Top-level sections every canonical document must carry
    """

    config_filename: str = "stackplan.yaml"
    max_prompt_attempts: int = 3
    log_level: str = "WARNING"
    required_sections: Tuple[str, ...] = field(default=REQUIRED_SECTIONS)


def _coerce(name: str, raw: Any) -> Any:
    if name == "max_prompt_attempts":
        value = int(raw)
        if value < 1:
            raise StackPlanError(f"max_prompt_attempts must be >= 1, got {value}")
        return value
    if name == "required_sections":
        if isinstance(raw, str):
            raw = [s.strip() for s in raw.split(",") if s.strip()]
        return tuple(raw)
    if name == "log_level":
        return str(raw).upper()
    return str(raw)


def load_settings(path: Optional[Path] = None, environ: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Build Settings from defaults, an optional YAML file and the environment.

    Unknown keys in the file are ignored with a warning.
    """
    values: Dict[str, Any] = {}
    known = {f.name for f in fields(Settings)}

    if path is not None:
        path = Path(path)
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        if not isinstance(data, dict):
            raise StackPlanError(f"Settings file {path} must contain a mapping")
        for key, raw in data.items():
            if key not in known:
                logger.warning("Ignoring unknown setting %r in %s", key, path)
                continue
            values[key] = _coerce(key, raw)

    env = os.environ if environ is None else environ
    for name in known:
        env_key = ENV_PREFIX + name.upper()
        if env_key in env:
            values[name] = _coerce(name, env[env_key])

    return Settings(**values)


def configure_logging(level: Optional[str] = None) -> None:
    """Attach a basic stderr handler. Meant for demos and scripts, not library use."""
    logging.basicConfig(
        level=(level or Settings().log_level).upper(),
        format="%(levelname)s %(name)s: %(message)s",
    )
