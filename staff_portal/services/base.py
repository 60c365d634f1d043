"""
BaseService -- common constructor and side-effect isolation for kernel services.

Responsibility:
    Every write-side service receives a SQLAlchemy ``Session`` and a
    ``Clock`` from its caller and persists through ``session.flush()``;
    it never commits or rolls back.  ``PortalActions`` owns the
    transaction boundary.

Invariants enforced:
    - Best-effort side effects (notifications, audit entries, cache
      revalidation) run inside a SAVEPOINT.  A failure rolls back only that
      savepoint and is logged; the status transition that triggered it is
      kept.
"""

from __future__ import annotations

from typing import Callable, TypeVar

from sqlalchemy.orm import Session

from staff_portal.domain.clock import Clock, SystemClock
from staff_portal.logging_config import get_logger

logger = get_logger("services.base")

T = TypeVar("T")


class BaseService:
    """
    Base class for kernel services.

    Non-goals:
        - Does NOT manage transaction lifecycle (commit/rollback).
        - Does NOT provide pure reads for the admin UI; those live in
          ``staff_portal/selectors/``.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        self.session = session
        self._clock = clock or SystemClock()

    def best_effort(self, name: str, effect: Callable[[], T]) -> T | None:
        """
        Run ``effect`` in a savepoint; log and swallow any failure.

        Returns the effect's result, or None when it failed.
        """
        try:
            with self.session.begin_nested():
                return effect()
        except Exception:
            logger.warning(
                "side_effect_failed",
                extra={"side_effect": name},
                exc_info=True,
            )
            return None
