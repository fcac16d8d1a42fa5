"""Review assignment: single-reviewer requests and bulk queue passes."""

from matcher.assignment_matcher import AssignmentMatcher
from matcher.errors import AssignmentError, ErrorKind
from matcher.queue_assigner import QueueAssigner

__all__ = ["AssignmentMatcher", "AssignmentError", "ErrorKind", "QueueAssigner"]
