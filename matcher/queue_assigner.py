"""
Bulk queue pass - push queued extensions out to free reviewers.

Unlike AssignmentMatcher (reviewer pulls one extension), this walks the queue
and picks a reviewer for each extension. Extensions whose owner has a premium
subscription are interleaved ahead of free ones at a fixed ratio, FIFO within
each tier. Reviewers are chosen at random among those who:

- completed qualification and do not own the extension
- have never reviewed an extension by the same owner
- are below the active-assignment limit

A failure on one extension is logged and the pass moves on.
"""

import random
from datetime import timedelta
from typing import Any, Dict, List, Optional

from matcher.assignment_matcher import Scheduler, run_inline
from matcher.commit import AssignmentWriter, ExtensionAlreadyClaimed, utc_now
from matcher.errors import AssignmentStoreError
from models.config_models import AssignmentPolicy
from models.data_models import Extension, QueueAssignmentSummary, ReviewAssignment, Reviewer
from notifications.dispatcher import EXTENSION_ASSIGNED_TO_REVIEWER, NotificationDispatcher
from utils.logger import setup_logger

logger = setup_logger(name=__name__)


def build_assignment_queue(
    premium: List[Extension],
    free: List[Extension],
    ratio: int,
    limit: int,
) -> List[Extension]:
    """
    Interleave premium and free extensions.

    Each cycle has `ratio + 1` slots: the first `ratio` go to premium, the
    last to free. When one tier runs dry the other fills its slot.

    Example (ratio=3): P1 P2 P3 F1 P4 P5 P6 F2 ...
    """
    queue: List[Extension] = []
    premium_index = 0
    free_index = 0

    while (premium_index < len(premium) or free_index < len(free)) and len(queue) < limit:
        premium_slot = len(queue) % (ratio + 1) < ratio
        take_premium = (
            premium_index < len(premium)
            if premium_slot
            else free_index >= len(free)
        )
        if take_premium:
            queue.append(premium[premium_index])
            premium_index += 1
        else:
            queue.append(free[free_index])
            free_index += 1

    return queue


class QueueAssigner:
    """Assign queued extensions to randomly chosen eligible reviewers."""

    def __init__(
        self,
        store,
        notifier: Optional[NotificationDispatcher] = None,
        policy: Optional[AssignmentPolicy] = None,
        rng: Optional[random.Random] = None,
        clock=utc_now,
    ):
        self.store = store
        self.notifier = notifier
        self.policy = policy or AssignmentPolicy()
        self.rng = rng or random.Random()
        self.clock = clock
        self.writer = AssignmentWriter(store, clock=clock)

    def assign_queue(self, max_assignments: int = 10, schedule: Optional[Scheduler] = None) -> QueueAssignmentSummary:
        """
        Run one bulk pass over the queue.

        Args:
            max_assignments: Upper bound on extensions processed in this pass
            schedule: Runs owner notifications off the request path

        Returns:
            QueueAssignmentSummary with counts per tier

        Raises:
            AssignmentStoreError: if the queue or active assignments cannot be read
        """
        schedule = schedule or run_inline

        try:
            rows = self.store.get_queued_extensions(limit=max_assignments * 2, with_owner=True)
        except Exception as e:
            raise AssignmentStoreError(
                "Failed to fetch extensions needing review", details=str(e), step="queued_extensions"
            ) from e

        if not rows:
            logger.info("No extensions currently need review assignments")
            return QueueAssignmentSummary()

        extensions = sorted((Extension(**row) for row in rows), key=Extension.queue_position)
        premium = [ext for ext in extensions if ext.owner and ext.owner.is_premium]
        free = [ext for ext in extensions if not (ext.owner and ext.owner.is_premium)]
        logger.info(f"Separated into queues: {len(premium)} premium, {len(free)} free")

        queue = build_assignment_queue(
            premium, free, ratio=self.policy.premium_to_free_ratio, limit=max_assignments
        )

        try:
            active_counts = self.store.get_active_assignment_counts()
        except Exception as e:
            raise AssignmentStoreError(
                "Failed to fetch active assignments", details=str(e), step="active_assignments"
            ) from e

        summary = QueueAssignmentSummary(extensions_processed=len(queue))
        for extension in queue:
            try:
                assignment = self._assign_extension(extension, active_counts)
            except Exception as e:
                logger.error(f"Error processing extension {extension.name}: {e}")
                continue

            if assignment is None:
                continue

            active_counts[assignment.reviewer_id] = active_counts.get(assignment.reviewer_id, 0) + 1
            summary.assignments_created += 1
            if extension.owner and extension.owner.is_premium:
                summary.premium_assignments += 1
            else:
                summary.free_assignments += 1

            self._notify_owner(extension, assignment, schedule)

        logger.info(
            f"Review assignment pass completed: {summary.assignments_created} created "
            f"({summary.premium_assignments} premium, {summary.free_assignments} free) "
            f"from {summary.extensions_processed} processed"
        )
        return summary

    def _assign_extension(self, extension: Extension, active_counts: Dict[str, int]) -> Optional[ReviewAssignment]:
        """Pick a reviewer and commit. Returns None when nobody is available."""
        reviewers = [
            Reviewer(**row)
            for row in self.store.get_qualified_reviewers(exclude_user_id=extension.owner_id)
        ]
        if not reviewers:
            logger.info(f"No qualified reviewers available for extension {extension.name}")
            return None

        excluded = set(self.store.get_reviewer_ids_for_owner(extension.owner_id))
        available = [
            r for r in reviewers
            if r.id != extension.owner_id
            and r.id not in excluded
            and active_counts.get(r.id, 0) < self.policy.max_active_assignments
        ]
        if not available:
            logger.info(f"No free reviewers available for extension {extension.name}")
            return None

        reviewer = self.rng.choice(available)
        logger.info(f"Selected reviewer {reviewer.id} for extension {extension.name}")

        try:
            assignment = self.writer.commit(
                reviewer.id,
                extension,
                review_window=timedelta(days=self.policy.queue_review_window_days),
            )
        except ExtensionAlreadyClaimed:
            logger.warning(f"Extension {extension.name} left the queue before it could be assigned")
            return None
        except AssignmentStoreError as e:
            logger.error(f"❌ Assignment failed at step '{e.step}' for {extension.name}: {e.details}")
            return None

        logger.info(f"✅ Created assignment #{assignment.assignment_number} for extension {extension.name}")
        return assignment

    def _notify_owner(self, extension: Extension, assignment: ReviewAssignment, schedule: Scheduler) -> None:
        if self.notifier is None or extension.owner is None:
            return

        custom_data: Dict[str, Any] = {
            "extension_name": extension.name,
            "owner_name": extension.owner.name,
            "assignment_number": assignment.assignment_number,
            "assignment_date": self.clock().isoformat(),
            "due_date": assignment.due_at.isoformat(),
        }
        try:
            schedule(
                self.notifier.send_event,
                extension.owner.email,
                EXTENSION_ASSIGNED_TO_REVIEWER,
                custom_data,
            )
        except Exception as e:
            logger.error(f"❌ Failed to schedule owner notification for {extension.name}: {e}")
