"""
Config -> Kernel Bridges.

Functions that turn a ``PortalConfig`` into kernel objects.  They live in
portal_config (the producer) because the kernel must NEVER import
portal_config.

Usage:
    from portal_config import get_active_config
    from portal_config.bridges import configure_from_config, build_portal_actions

    config = get_active_config()
    configure_from_config(config)
    with session_scope() as session:
        actions = build_portal_actions(config, session, identity)
"""

from __future__ import annotations

import logging

from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from portal_config.schema import PortalConfig
from staff_portal.db.engine import init_engine_from_url
from staff_portal.domain.clock import Clock
from staff_portal.domain.identity import (
    DEFAULT_ROLE_CAPABILITIES,
    Capability,
    CapabilityPolicy,
    IdentityProvider,
    Role,
)
from staff_portal.logging_config import configure_logging
from staff_portal.services.notification_service import NotificationSink
from staff_portal.services.portal_actions import PortalActions
from staff_portal.services.revalidation import Revalidator


def build_capability_policy(config: PortalConfig) -> CapabilityPolicy:
    """Built-in role capabilities, replaced per role by the config's ``roles`` map.

    Raises:
        ValueError: unknown role or capability name.
    """
    mapping = dict(DEFAULT_ROLE_CAPABILITIES)
    for role_name, capability_names in config.role_capabilities.items():
        mapping[Role(role_name)] = frozenset(Capability(name) for name in capability_names)
    return CapabilityPolicy(mapping)


def configure_from_config(config: PortalConfig) -> Engine:
    """Configure logging and the process-wide engine."""
    configure_logging(level=getattr(logging, config.logging.level, logging.INFO))
    db = config.database
    return init_engine_from_url(
        db.url,
        echo=db.echo,
        pool_size=db.pool_size,
        max_overflow=db.max_overflow,
        pool_timeout=db.pool_timeout,
        pool_recycle=db.pool_recycle,
    )


def build_portal_actions(
    config: PortalConfig,
    session: Session,
    identity: IdentityProvider,
    clock: Clock | None = None,
    notifications: NotificationSink | None = None,
    revalidator: Revalidator | None = None,
) -> PortalActions:
    """A request-scoped PortalActions wired with the configured policy and limits."""
    return PortalActions(
        session,
        identity,
        policy=build_capability_policy(config),
        clock=clock,
        notifications=notifications,
        revalidator=revalidator,
        watch_threshold=config.training.video_watch_threshold,
        debounce_seconds=config.training.video_debounce_seconds,
        default_filename=config.submission.default_original_filename,
    )
