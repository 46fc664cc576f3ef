"""
ParcelTrack Application - Build a tracker from a YAML config file.

Usage:
    from parceltrack import create_tracker

    tracker = create_tracker("parceltrack.yaml")
    tracker.register_user("alice", "alice@example.com", "s3cret")

Config file (every section optional):
    logging:
      level: INFO
    sessions:
      ttl_seconds: 3600
      hash_rounds: 12
    events:
      raise_handler_errors: false
    carriers:
      - code: UPS
        name: UPS
        tracking_pattern: '\\b1Z[A-Z0-9]{16}\\b'
        link_template: 'https://www.ups.com/track?tracknum={tracking_number}'

`${VAR}` in the file is replaced with the environment variable's value.
"""

import logging
import os
import re
from typing import Any, Dict, Optional

import yaml

from .carriers import carrier_from_config
from .errors import ConfigError
from .orchestrator import TrackingOrchestrator
from .sessions.store import BCRYPT_ROUNDS

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(levelname)s: %(name)s - %(message)s"


def load_config(path: str) -> dict:
    """Read YAML config file with ${VAR} environment variable substitution."""
    with open(path, "r", encoding="utf-8") as f:
        raw = f.read()

    # Replace ${VAR} with environment variable values
    def _replace_env(match):
        var_name = match.group(1)
        value = os.environ.get(var_name)
        if value is None:
            raise ConfigError(
                f"Environment variable '{var_name}' not set "
                f"(referenced in config file '{path}')"
            )
        return value

    resolved = re.sub(r"\$\{(\w+)\}", _replace_env, raw)
    try:
        data = yaml.safe_load(resolved)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in config file '{path}': {e}")

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file '{path}' must contain a mapping at the top level")
    return data


def configure_logging(level: str = "INFO") -> None:
    level_value = logging.getLevelName(str(level).upper())
    if not isinstance(level_value, int):
        raise ConfigError(f"Unknown logging level: {level}")
    logging.basicConfig(level=level_value, format=LOG_FORMAT)


def build_orchestrator(config: Optional[Dict[str, Any]] = None) -> TrackingOrchestrator:
    """
    Build a TrackingOrchestrator from a config dict.

    Raises:
        ConfigError: If a section is malformed
    """
    config = config or {}

    sessions_cfg = _section(config, "sessions")
    events_cfg = _section(config, "events")

    carriers = None
    if "carriers" in config:
        carriers_cfg = config["carriers"]
        if not isinstance(carriers_cfg, list) or not carriers_cfg:
            raise ConfigError("'carriers' must be a non-empty list")
        carriers = [carrier_from_config(entry) for entry in carriers_cfg]
        codes = [c.code for c in carriers]
        if len(set(codes)) != len(codes):
            raise ConfigError(f"Duplicate carrier codes in config: {codes}")

    ttl = sessions_cfg.get("ttl_seconds")
    if ttl is not None and (not isinstance(ttl, (int, float)) or ttl <= 0):
        raise ConfigError("'sessions.ttl_seconds' must be a positive number")

    return TrackingOrchestrator(
        carriers=carriers,
        session_ttl=ttl,
        raise_handler_errors=bool(events_cfg.get("raise_handler_errors", False)),
        hash_rounds=int(sessions_cfg.get("hash_rounds", BCRYPT_ROUNDS)),
    )


def create_tracker(path: str) -> TrackingOrchestrator:
    """Load a config file, set up logging and build the orchestrator."""
    config = load_config(path)
    logging_cfg = _section(config, "logging")
    if logging_cfg.get("level"):
        configure_logging(logging_cfg["level"])
    tracker = build_orchestrator(config)
    logger.info(f"Tracker created from config: {path}")
    return tracker


def _section(config: Dict[str, Any], name: str) -> Dict[str, Any]:
    section = config.get(name) or {}
    if not isinstance(section, dict):
        raise ConfigError(f"'{name}' section must be a mapping")
    return section
