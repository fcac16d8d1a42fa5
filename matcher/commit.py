"""
Writes the rows that make up one review assignment.

The sequence is batch -> assignment number -> assignment -> extension claim.
There is no transaction around it: when a step fails, rows created earlier in
the same attempt are deleted again (best effort) before the error surfaces.
"""

from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from matcher.errors import AssignmentStoreError
from models.data_models import AssignmentBatch, Extension, ReviewAssignment
from utils.logger import setup_logger

logger = setup_logger(name=__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ExtensionAlreadyClaimed(Exception):
    """The extension left the queue between selection and claim."""

    def __init__(self, extension_id: str):
        super().__init__(f"Extension {extension_id} is no longer queued")
        self.extension_id = extension_id


class AssignmentWriter:
    """Creates batch + assignment rows and claims the extension."""

    def __init__(self, store, clock: Callable[[], datetime] = utc_now):
        self.store = store
        self.clock = clock

    def commit(
        self,
        reviewer_id: str,
        extension: Extension,
        review_window: timedelta,
    ) -> ReviewAssignment:
        """
        Persist an assignment of `extension` to `reviewer_id`.

        Returns:
            The created ReviewAssignment

        Raises:
            AssignmentStoreError: a store call failed (earlier rows rolled back)
            ExtensionAlreadyClaimed: another request claimed the extension
                first (earlier rows rolled back)
        """
        try:
            batch = AssignmentBatch(**self.store.create_batch(reviewer_id, assignment_type="single"))
        except Exception as e:
            raise AssignmentStoreError(
                "Failed to create assignment batch", details=str(e), step="create_batch"
            ) from e
        batch_id = batch.id
        logger.debug(f"Assignment batch created: {batch_id}")

        try:
            assignment_number = self.store.next_assignment_number()
        except Exception as e:
            self._rollback(batch_id=batch_id)
            raise AssignmentStoreError(
                "Failed to generate assignment number", details=str(e), step="assignment_number"
            ) from e

        due_at = self.clock() + review_window

        try:
            row = self.store.create_assignment(
                batch_id=batch_id,
                extension_id=extension.id,
                reviewer_id=reviewer_id,
                assignment_number=assignment_number,
                due_at=due_at,
            )
        except Exception as e:
            self._rollback(batch_id=batch_id)
            raise AssignmentStoreError(
                "Failed to create review assignment", details=str(e), step="create_assignment"
            ) from e
        assignment_id = row["id"]

        try:
            claimed = self.store.claim_extension(extension.id)
        except Exception as e:
            self._rollback(batch_id=batch_id, assignment_id=assignment_id)
            raise AssignmentStoreError(
                "Failed to update extension status", details=str(e), step="claim_extension"
            ) from e

        if not claimed:
            self._rollback(batch_id=batch_id, assignment_id=assignment_id)
            raise ExtensionAlreadyClaimed(extension.id)

        return ReviewAssignment(
            id=assignment_id,
            batch_id=batch_id,
            extension_id=extension.id,
            reviewer_id=reviewer_id,
            assignment_number=assignment_number,
            due_at=due_at,
        )

    def _rollback(self, batch_id: str, assignment_id: Optional[str] = None) -> None:
        """Delete rows created by a failed attempt. Failures are logged only."""
        if assignment_id:
            try:
                self.store.delete_assignment(assignment_id)
            except Exception as e:
                logger.error(f"🧹 Failed to clean up assignment {assignment_id}: {e}")

        try:
            self.store.delete_batch(batch_id)
        except Exception as e:
            logger.error(f"🧹 Failed to clean up batch {batch_id}: {e}")
            return

        logger.info(
            f"🧹 Cleaned up batch {batch_id}"
            + (f" and assignment {assignment_id}" if assignment_id else "")
        )
