"""Data models for reviewers, extensions, and review assignments."""

from datetime import datetime, timezone
from typing import Literal, Optional, Tuple
from pydantic import BaseModel


ExtensionStatus = Literal[
    "library",
    "pending_verification",
    "verified",
    "queued",
    "assigned",
    "reviewed",
    "completed",
    "rejected",
]


class Reviewer(BaseModel):
    """A user record as seen by the matcher."""

    id: str
    email: str
    name: Optional[str] = None
    has_completed_qualification: bool = False
    subscription_status: Optional[str] = None  # None means free

    @property
    def is_premium(self) -> bool:
        return (self.subscription_status or "free") == "premium"


class Extension(BaseModel):
    """An extension row.

    Only extensions with status 'queued' are candidates for assignment.
    The owner is embedded when the bulk pass joins it in.
    """

    id: str
    owner_id: str
    name: str
    status: ExtensionStatus = "queued"
    submitted_to_queue_at: Optional[datetime] = None
    owner: Optional[Reviewer] = None

    def queue_position(self) -> Tuple[int, datetime]:
        """Sort key for FIFO order; unsubmitted rows sort last."""
        submitted = self.submitted_to_queue_at
        if submitted is None:
            return (1, datetime.max.replace(tzinfo=timezone.utc))
        if submitted.tzinfo is None:
            submitted = submitted.replace(tzinfo=timezone.utc)
        return (0, submitted)


class AssignmentBatch(BaseModel):
    """Grouping envelope created once per assignment request."""

    id: str
    reviewer_id: str
    assignment_type: Literal["single", "dual"] = "single"
    status: Literal["active", "completed"] = "active"


class ReviewAssignment(BaseModel):
    """Binds one reviewer to one extension for a bounded review window."""

    id: str
    batch_id: str
    extension_id: str
    reviewer_id: str
    assignment_number: int
    due_at: datetime
    status: Literal["assigned", "submitted", "approved"] = "assigned"


class AssignmentResult(BaseModel):
    """Successful outcome of a single assignment request."""

    id: str
    assignment_number: int
    extension_name: str
    due_date: datetime
    reviewer_email: str

    @property
    def message(self) -> str:
        return (
            f'Assignment created successfully! You have been assigned to review '
            f'"{self.extension_name}".'
        )

    def to_response(self) -> dict:
        """Public payload returned to the requesting reviewer."""
        return {
            "id": self.id,
            "assignment_number": self.assignment_number,
            "extension_name": self.extension_name,
            "due_date": self.due_date.isoformat(),
        }


class QueueAssignmentSummary(BaseModel):
    """Counts reported after a bulk queue pass."""

    assignments_created: int = 0
    premium_assignments: int = 0
    free_assignments: int = 0
    extensions_processed: int = 0

    @property
    def message(self) -> str:
        if self.extensions_processed == 0:
            return "No extensions currently need review assignments"
        return (
            f"Successfully created {self.assignments_created} review assignments "
            f"({self.premium_assignments} premium, {self.free_assignments} free)"
        )
