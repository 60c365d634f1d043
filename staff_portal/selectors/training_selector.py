"""
Module: staff_portal.selectors.training_selector
Responsibility: Training reports -- organisation-wide analytics and the
    per-module completion breakdown shown on the admin dashboard.
Architecture position: Kernel > Selectors.
"""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import func, select

from staff_portal.domain.dtos import TrainingProgressInfo
from staff_portal.domain.training import TrainingStatus
from staff_portal.models.training import (
    TrainingAssignment,
    TrainingModule,
    TrainingProgress,
    VideoWatchProgress,
)
from staff_portal.selectors.base import BaseSelector
from staff_portal.selectors.onboarding_selector import percent


@dataclass(frozen=True)
class ModuleCompletion:
    module_id: UUID
    title: str
    assigned: int
    completed: int
    completion_rate: int


@dataclass(frozen=True)
class TrainingAnalytics:
    total_modules: int
    total_assignments: int
    total_completions: int
    in_progress_count: int
    completion_rate: int
    average_score: int
    average_watch_percentage: int
    modules: tuple[ModuleCompletion, ...] = ()


class TrainingSelector(BaseSelector[TrainingProgress]):
    def analytics(self) -> TrainingAnalytics:
        """
        Totals and averages across all modules.

        ``completion_rate`` is completions over assignments; averages ignore
        progress rows without a score.  All figures are whole percentages.
        """
        total_modules = self._count(select(func.count(TrainingModule.id)))
        total_assignments = self._count(select(func.count(TrainingAssignment.id)))
        total_completions = self._count_status(TrainingStatus.COMPLETED)
        in_progress = self._count_status(TrainingStatus.IN_PROGRESS)

        average_score = self._scalar(
            select(func.avg(TrainingProgress.score)).where(TrainingProgress.score.is_not(None))
        )
        average_watch = self._scalar(
            select(func.avg(VideoWatchProgress.watched_percentage))
        )

        return TrainingAnalytics(
            total_modules=total_modules,
            total_assignments=total_assignments,
            total_completions=total_completions,
            in_progress_count=in_progress,
            completion_rate=percent(total_completions, total_assignments),
            average_score=percent(float(average_score or 0), 100),
            average_watch_percentage=percent(float(average_watch or 0), 100),
            modules=tuple(self.module_breakdown()),
        )

    def module_breakdown(self) -> list[ModuleCompletion]:
        assigned = dict(
            self.session.execute(
                select(TrainingAssignment.module_id, func.count(TrainingAssignment.id))
                .group_by(TrainingAssignment.module_id)
            ).all()
        )
        completed = dict(
            self.session.execute(
                select(TrainingProgress.module_id, func.count(TrainingProgress.id))
                .where(TrainingProgress.status == TrainingStatus.COMPLETED.value)
                .group_by(TrainingProgress.module_id)
            ).all()
        )
        modules = self._all(select(TrainingModule).order_by(TrainingModule.title))
        return [
            ModuleCompletion(
                module_id=module.id,
                title=module.title,
                assigned=assigned.get(module.id, 0),
                completed=completed.get(module.id, 0),
                completion_rate=percent(
                    completed.get(module.id, 0), assigned.get(module.id, 0),
                ),
            )
            for module in modules
        ]

    def progress_for_user(self, user_id: UUID) -> list[TrainingProgressInfo]:
        rows = self._all(
            select(TrainingProgress).where(TrainingProgress.user_id == user_id)
        )
        return [row.to_dto() for row in rows]

    def _count_status(self, status: TrainingStatus) -> int:
        return self._count(
            select(func.count(TrainingProgress.id)).where(TrainingProgress.status == status.value)
        )
