"""
PortalConfig schema.

Frozen dataclasses parsed from the YAML configuration by the loader.  The
kernel never sees these types; ``portal_config.bridges`` translates them
into constructor arguments.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class DatabaseConfig:
    url: str
    echo: bool = False
    pool_size: int = 10
    max_overflow: int = 5
    pool_timeout: int = 30
    pool_recycle: int = 1800


@dataclass(frozen=True)
class TrainingConfig:
    video_watch_threshold: float = 90.0
    video_debounce_seconds: float = 5.0


@dataclass(frozen=True)
class SubmissionConfig:
    default_original_filename: str = "completed_document.pdf"


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"


@dataclass(frozen=True)
class PortalConfig:
    """The complete runtime configuration."""

    config_id: str
    version: int
    database: DatabaseConfig
    training: TrainingConfig = field(default_factory=TrainingConfig)
    submission: SubmissionConfig = field(default_factory=SubmissionConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    # role name -> capability names; roles absent here keep the built-in set
    role_capabilities: dict[str, tuple[str, ...]] = field(default_factory=dict)
    checksum: str = ""
