"""
Assignment matcher - hands one queued extension to a requesting reviewer.

Pipeline, each step a short-circuit failure:
1. Reviewer exists                         -> ReviewerNotFoundError
2. Reviewer passed qualification           -> NotQualifiedError
3. Reviewer is below the active limit      -> ActiveAssignmentLimitError
4. Queued extensions not owned by reviewer -> NoExtensionsAvailableError
5. Drop owners the reviewer already reviewed -> NoExtensionsAvailableError

The oldest remaining extension (FIFO by submitted_to_queue_at) is committed
through AssignmentWriter. If another request claims it first, the next
candidate is tried.
"""

from datetime import timedelta
from typing import Any, Callable, Dict, List, Optional

from matcher.commit import AssignmentWriter, ExtensionAlreadyClaimed, utc_now
from matcher.errors import (
    ActiveAssignmentLimitError,
    AssignmentStoreError,
    InvalidRequestError,
    NoExtensionsAvailableError,
    NotQualifiedError,
    ReviewerNotFoundError,
)
from models.config_models import AssignmentPolicy
from models.data_models import AssignmentResult, Extension, Reviewer
from notifications.dispatcher import REVIEW_ASSIGNED, NotificationDispatcher
from utils.logger import setup_logger

logger = setup_logger(name=__name__)

# schedule(fn, *args, **kwargs); BackgroundTasks.add_task fits this shape
Scheduler = Callable[..., Any]


def run_inline(fn: Callable[..., Any], *args: Any, **kwargs: Any) -> None:
    fn(*args, **kwargs)


def filter_reviewed_owners(extensions: List[Extension], reviewed_owner_ids: List[str]) -> List[Extension]:
    """Drop extensions whose owner the reviewer has already reviewed. Order is kept."""
    excluded = set(reviewed_owner_ids)
    return [ext for ext in extensions if ext.owner_id not in excluded]


class AssignmentMatcher:
    """Select and assign one queued extension to a reviewer."""

    def __init__(
        self,
        store,
        notifier: Optional[NotificationDispatcher] = None,
        policy: Optional[AssignmentPolicy] = None,
        clock=utc_now,
    ):
        """
        Args:
            store: SupabaseClient (or anything with the same methods)
            notifier: Optional dispatcher for the reviewer confirmation
            policy: Assignment limits and windows (defaults apply if omitted)
            clock: Returns the current aware datetime
        """
        self.store = store
        self.notifier = notifier
        self.policy = policy or AssignmentPolicy()
        self.clock = clock
        self.writer = AssignmentWriter(store, clock=clock)

    def request_assignment(self, user_id: str, schedule: Optional[Scheduler] = None) -> AssignmentResult:
        """
        Assign the oldest eligible queued extension to `user_id`.

        Args:
            user_id: Requesting reviewer
            schedule: Runs the notification off the request path
                (e.g. BackgroundTasks.add_task); runs inline if omitted

        Returns:
            AssignmentResult for the new assignment

        Raises:
            AssignmentError subclass describing why no assignment was made
        """
        if not user_id or not str(user_id).strip():
            raise InvalidRequestError("User ID is required")

        logger.info(f"Processing assignment request for user: {user_id}")

        reviewer = self._load_reviewer(user_id)
        self._check_active_limit(reviewer)
        candidates = self._eligible_extensions(reviewer)

        for extension in candidates:
            try:
                assignment = self.writer.commit(
                    reviewer.id,
                    extension,
                    review_window=timedelta(hours=self.policy.review_window_hours),
                )
            except ExtensionAlreadyClaimed:
                logger.warning(
                    f"Extension {extension.name} ({extension.id}) was claimed by another "
                    f"request, trying next candidate"
                )
                continue
            except AssignmentStoreError as e:
                logger.error(f"❌ Assignment failed at step '{e.step}': {e.details}")
                raise

            logger.info(
                f"✅ Created assignment #{assignment.assignment_number} for extension "
                f"{extension.name} (reviewer {reviewer.id})"
            )
            result = AssignmentResult(
                id=assignment.id,
                assignment_number=assignment.assignment_number,
                extension_name=extension.name,
                due_date=assignment.due_at,
                reviewer_email=reviewer.email,
            )
            self._notify(result, schedule or run_inline)
            return result

        logger.info(f"Every eligible extension was claimed concurrently for user: {user_id}")
        raise NoExtensionsAvailableError(
            "No extensions are currently available for review. Please check back later."
        )

    def _load_reviewer(self, user_id: str) -> Reviewer:
        try:
            row = self.store.get_user(user_id)
        except Exception as e:
            raise AssignmentStoreError(
                "User not found or database error", details=str(e), step="get_user"
            ) from e

        if not row:
            logger.info(f"User not found: {user_id}")
            raise ReviewerNotFoundError("User not found")

        reviewer = Reviewer(**row)
        if not reviewer.has_completed_qualification:
            logger.info(f"User not qualified: {user_id}")
            raise NotQualifiedError(
                "User must complete qualification before requesting assignments"
            )
        return reviewer

    def _check_active_limit(self, reviewer: Reviewer) -> None:
        try:
            active = self.store.get_active_assignment_ids(reviewer.id)
        except Exception as e:
            raise AssignmentStoreError(
                "Failed to check active assignments", details=str(e), step="active_assignments"
            ) from e

        logger.debug(f"Active assignments for {reviewer.id}: {len(active)}")
        if len(active) >= self.policy.max_active_assignments:
            raise ActiveAssignmentLimitError(
                "You already have an active assignment. Please complete your current "
                "review before requesting another."
            )

    def _eligible_extensions(self, reviewer: Reviewer) -> List[Extension]:
        try:
            rows = self.store.get_queued_extensions(exclude_owner_id=reviewer.id)
        except Exception as e:
            raise AssignmentStoreError(
                "Failed to fetch available extensions", details=str(e), step="queued_extensions"
            ) from e

        # The store already filters and orders; re-apply both so selection
        # never depends on what a store implementation returns.
        extensions = [
            Extension(**row) for row in rows
            if row.get("owner_id") != reviewer.id and row.get("status", "queued") == "queued"
        ]
        extensions.sort(key=Extension.queue_position)

        if not extensions:
            raise NoExtensionsAvailableError(
                "No extensions are currently available for review. Please check back later."
            )

        try:
            reviewed_owner_ids = self.store.get_reviewed_owner_ids(reviewer.id)
        except Exception as e:
            raise AssignmentStoreError(
                "Failed to check review relationships", details=str(e), step="review_relationships"
            ) from e

        eligible = filter_reviewed_owners(extensions, reviewed_owner_ids)
        logger.info(
            f"Eligible extensions for {reviewer.id}: {len(eligible)} of {len(extensions)} "
            f"({len(set(reviewed_owner_ids))} owners excluded)"
        )

        if not eligible:
            raise NoExtensionsAvailableError(
                "No new extensions available for review. You have already reviewed "
                "extensions from all available developers."
            )
        return eligible

    def _notify(self, result: AssignmentResult, schedule: Scheduler) -> None:
        if self.notifier is None:
            return

        custom_data: Dict[str, Any] = {
            "extension_name": result.extension_name,
            "assignment_number": result.assignment_number,
            "due_date": result.due_date.isoformat(),
            "assignment_date": self.clock().isoformat(),
        }
        try:
            schedule(self.notifier.send_event, result.reviewer_email, REVIEW_ASSIGNED, custom_data)
        except Exception as e:
            logger.error(f"❌ Failed to schedule review assignment notification: {e}")
