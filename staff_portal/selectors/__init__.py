"""Selectors for the staff portal kernel (read side)."""

from staff_portal.selectors.base import BaseSelector
from staff_portal.selectors.onboarding_selector import OnboardingProgress, OnboardingSelector
from staff_portal.selectors.submission_selector import SubmissionSelector
from staff_portal.selectors.training_selector import (
    ModuleCompletion,
    TrainingAnalytics,
    TrainingSelector,
)

__all__ = [
    "BaseSelector",
    "ModuleCompletion",
    "OnboardingProgress",
    "OnboardingSelector",
    "SubmissionSelector",
    "TrainingAnalytics",
    "TrainingSelector",
]
