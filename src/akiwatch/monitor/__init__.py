"""Availability checking, notification decisions and the check cycle."""

from .checker import SiteChecker
from .decision import DecisionEngine, NotificationDecision
from .evaluator import ConditionEvaluator, Evaluation
from .runner import (
    AvailabilityMonitor,
    RunSummary,
    SiteOutcome,
    resolve_credentials,
    run_check,
)

__all__ = [
    "ConditionEvaluator",
    "Evaluation",
    "DecisionEngine",
    "NotificationDecision",
    "SiteChecker",
    "AvailabilityMonitor",
    "RunSummary",
    "SiteOutcome",
    "resolve_credentials",
    "run_check",
]
