"""
Configuration Loader (``portal_config.loader``).

Responsibility
--------------
Reads the YAML configuration file and parses it into the frozen
``portal_config.schema`` dataclasses.  Runtime callers use
``portal_config.get_active_config()``; this module is its implementation.

Invariants enforced
-------------------
* Every parsed object is a frozen dataclass from ``schema.py``.
* Numeric settings are range-checked; bad values raise ``ValueError``.
* ``compute_checksum`` is deterministic over the effective settings.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import asdict, replace
from pathlib import Path
from typing import Any, Mapping

import yaml

from portal_config.schema import (
    DatabaseConfig,
    LoggingConfig,
    PortalConfig,
    SubmissionConfig,
    TrainingConfig,
)

ENV_CONFIG_PATH = "STAFF_PORTAL_CONFIG"
ENV_DATABASE_URL = "STAFF_PORTAL_DATABASE_URL"
ENV_LOG_LEVEL = "STAFF_PORTAL_LOG_LEVEL"


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a YAML file; an empty file yields an empty dict."""
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_database(data: dict[str, Any]) -> DatabaseConfig:
    return DatabaseConfig(
        url=data["url"],
        echo=bool(data.get("echo", False)),
        pool_size=int(data.get("pool_size", 10)),
        max_overflow=int(data.get("max_overflow", 5)),
        pool_timeout=int(data.get("pool_timeout", 30)),
        pool_recycle=int(data.get("pool_recycle", 1800)),
    )


def parse_training(data: dict[str, Any]) -> TrainingConfig:
    threshold = float(data.get("video_watch_threshold", 90.0))
    if not 0 < threshold <= 100:
        raise ValueError(f"training.video_watch_threshold must be in (0, 100], got {threshold}")
    debounce = float(data.get("video_debounce_seconds", 5.0))
    if debounce < 0:
        raise ValueError(f"training.video_debounce_seconds must be >= 0, got {debounce}")
    return TrainingConfig(video_watch_threshold=threshold, video_debounce_seconds=debounce)


def parse_submission(data: dict[str, Any]) -> SubmissionConfig:
    filename = data.get("default_original_filename") or "completed_document.pdf"
    return SubmissionConfig(default_original_filename=str(filename))


def parse_logging(data: dict[str, Any]) -> LoggingConfig:
    return LoggingConfig(level=str(data.get("level", "INFO")).upper())


def parse_roles(data: dict[str, Any] | None) -> dict[str, tuple[str, ...]]:
    return {str(role): tuple(caps or ()) for role, caps in (data or {}).items()}


def parse_config(data: dict[str, Any]) -> PortalConfig:
    """Parse a full configuration document (without checksum)."""
    return PortalConfig(
        config_id=data["config_id"],
        version=int(data["version"]),
        database=parse_database(data["database"]),
        training=parse_training(data.get("training") or {}),
        submission=parse_submission(data.get("submission") or {}),
        logging=parse_logging(data.get("logging") or {}),
        role_capabilities=parse_roles(data.get("roles")),
    )


def apply_env_overrides(config: PortalConfig, environ: Mapping[str, str]) -> PortalConfig:
    """Environment variables win over file values."""
    if environ.get(ENV_DATABASE_URL):
        config = replace(
            config, database=replace(config.database, url=environ[ENV_DATABASE_URL]),
        )
    if environ.get(ENV_LOG_LEVEL):
        config = replace(config, logging=LoggingConfig(level=environ[ENV_LOG_LEVEL].upper()))
    return config


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def with_checksum(config: PortalConfig) -> PortalConfig:
    settings = asdict(replace(config, checksum=""))
    return replace(config, checksum=compute_checksum(settings))
