"""
portal_config -- single public entrypoint for staff portal configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  No other component reads configuration files
    or environment variables.

Architecture position:
    Configuration -- sits above ``staff_portal``.  The kernel MUST NEVER
    import from ``portal_config``; ``portal_config.bridges`` translates the
    configuration into kernel constructor arguments.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``portal_config_loaded`` log entry with the config id, version and
    checksum.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Mapping

from portal_config.loader import (
    ENV_CONFIG_PATH,
    apply_env_overrides,
    load_yaml_file,
    parse_config,
    with_checksum,
)
from portal_config.schema import (
    DatabaseConfig,
    LoggingConfig,
    PortalConfig,
    SubmissionConfig,
    TrainingConfig,
)

_logger = logging.getLogger("staff_portal.config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults.yaml"


def get_active_config(
    path: Path | str | None = None,
    environ: Mapping[str, str] | None = None,
) -> PortalConfig:
    """The ONLY public configuration entrypoint.

    Resolution order for the file: ``path``, then ``STAFF_PORTAL_CONFIG``,
    then the packaged ``defaults.yaml``.  Environment overrides are applied
    after parsing and are part of the checksum.

    Raises:
        FileNotFoundError: the chosen file does not exist.
        KeyError / ValueError: the file is incomplete or out of range.
    """
    env = os.environ if environ is None else environ
    source = Path(path or env.get(ENV_CONFIG_PATH) or DEFAULT_CONFIG_PATH)

    config = parse_config(load_yaml_file(source))
    config = with_checksum(apply_env_overrides(config, env))

    _logger.info(
        "portal_config_loaded",
        extra={
            "config_id": config.config_id,
            "config_version": config.version,
            "checksum": config.checksum,
            "source": str(source),
        },
    )
    return config


__all__ = [
    "DatabaseConfig",
    "LoggingConfig",
    "PortalConfig",
    "SubmissionConfig",
    "TrainingConfig",
    "get_active_config",
]
