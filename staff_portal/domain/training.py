"""
Training domain rules (``staff_portal.domain.training``).

Responsibility
--------------
Training progress lifecycle, video watch percentage computation, the video
gate and calendar-month expiry arithmetic.  Pure functions only.

Architecture position
---------------------
**Kernel domain layer** -- ZERO I/O.

Invariants enforced
-------------------
* Watch percentage is always within [0, 100].
* A module with a video cannot be completed below the watch threshold
  unless the caller asserts the video was completed.
* ``expires_at`` is ``completed_at`` plus N calendar months, with the day
  clamped to the last day of the target month.
"""

from __future__ import annotations

import calendar
from datetime import datetime, timedelta
from enum import Enum

from staff_portal.domain.lifecycle import Guard, Lifecycle, Transition

DEFAULT_WATCH_THRESHOLD = 90.0
DEFAULT_DEBOUNCE_SECONDS = 5.0


class TrainingStatus(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    EXPIRED = "expired"


class AssignmentType(str, Enum):
    INDIVIDUAL = "individual"
    DEPARTMENT = "department"


class Difficulty(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


VIDEO_GATE = Guard(
    name="video_gate",
    description="Modules with a video require the watch threshold or an explicit completion flag",
)

TRAINING_LIFECYCLE: Lifecycle[TrainingStatus] = Lifecycle(
    name="training_completion",
    description="Staff progress through a training module",
    initial_state=TrainingStatus.NOT_STARTED,
    states=tuple(TrainingStatus),
    transitions=(
        Transition(TrainingStatus.NOT_STARTED, TrainingStatus.IN_PROGRESS, "start"),
        Transition(TrainingStatus.IN_PROGRESS, TrainingStatus.IN_PROGRESS, "start"),
        Transition(TrainingStatus.EXPIRED, TrainingStatus.IN_PROGRESS, "start"),
        Transition(TrainingStatus.NOT_STARTED, TrainingStatus.COMPLETED, "complete", VIDEO_GATE),
        Transition(TrainingStatus.IN_PROGRESS, TrainingStatus.COMPLETED, "complete", VIDEO_GATE),
        Transition(TrainingStatus.EXPIRED, TrainingStatus.COMPLETED, "complete", VIDEO_GATE),
        Transition(TrainingStatus.COMPLETED, TrainingStatus.COMPLETED, "complete", VIDEO_GATE),
        Transition(TrainingStatus.COMPLETED, TrainingStatus.EXPIRED, "expire"),
    ),
)


def watch_percentage(current_time_seconds: float, duration_seconds: float) -> float:
    """current / duration * 100, clamped to [0, 100]; 0 for a non-positive duration."""
    if duration_seconds <= 0:
        return 0.0
    pct = current_time_seconds / duration_seconds * 100.0
    return max(0.0, min(100.0, pct))


def passes_video_gate(
    has_video: bool,
    watched_percentage: float | None,
    video_completed: bool = False,
    threshold: float = DEFAULT_WATCH_THRESHOLD,
) -> bool:
    if not has_video or video_completed:
        return True
    return (watched_percentage or 0.0) >= threshold


def should_persist_sample(
    last_written_at: datetime | None,
    now: datetime,
    window_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
    *,
    new_percentage: float | None = None,
    stored_percentage: float | None = None,
    threshold: float = DEFAULT_WATCH_THRESHOLD,
) -> bool:
    """
    True when no sample was written within the debounce window.

    A sample that finishes the video, or that first lifts the stored
    percentage to the watch threshold or above it, is written even inside
    the window so the completion gate sees it.
    """
    if last_written_at is None:
        return True
    if now - last_written_at >= timedelta(seconds=window_seconds):
        return True
    if new_percentage is None:
        return False
    if new_percentage >= 100.0:
        return True
    return new_percentage >= threshold and new_percentage > (stored_percentage or 0.0)


def add_months(moment: datetime, months: int) -> datetime:
    """Calendar month arithmetic: Jan 31 + 1 month -> Feb 28/29."""
    month_index = moment.month - 1 + months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def compute_expiry(completed_at: datetime, expiry_months: int | None) -> datetime | None:
    if not expiry_months:
        return None
    return add_months(completed_at, expiry_months)
