"""Data models for the review matcher."""

from models.config_models import AssignmentPolicy, Config, CredentialsConfig, NotificationConfig
from models.data_models import (
    AssignmentBatch,
    AssignmentResult,
    Extension,
    QueueAssignmentSummary,
    ReviewAssignment,
    Reviewer,
)

__all__ = [
    "AssignmentPolicy",
    "Config",
    "CredentialsConfig",
    "NotificationConfig",
    "AssignmentBatch",
    "AssignmentResult",
    "Extension",
    "QueueAssignmentSummary",
    "ReviewAssignment",
    "Reviewer",
]
