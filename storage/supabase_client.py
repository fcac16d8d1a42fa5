"""
Supabase storage client for review assignment data.

Wraps the handful of reads and writes the matcher needs:
- Lookups: reviewers, queued extensions, active assignments, review relationships
- Writes: assignment batches, review assignments, extension claims
- Compensation: deleting a batch/assignment created by a failed request

Every method logs failures with context and re-raises the client exception;
callers decide how to report them.
"""

from datetime import datetime
from typing import Dict, List, Optional, Any
from supabase import Client, create_client

from utils.logger import setup_logger

logger = setup_logger(name=__name__)

QUEUED_STATUS = "queued"
ASSIGNED_STATUS = "assigned"

EXTENSION_WITH_OWNER_COLUMNS = """
    id,
    name,
    owner_id,
    status,
    submitted_to_queue_at,
    owner:users!extensions_owner_id_fkey(
        id,
        name,
        email,
        has_completed_qualification,
        subscription_status
    )
"""


class SupabaseClient:
    """Client for interacting with Supabase storage."""

    def __init__(self, supabase_url: str, supabase_key: str):
        """
        Initialize Supabase client.

        Args:
            supabase_url: Supabase project URL
            supabase_key: Supabase service role key (bypasses row level security)
        """
        self.client: Client = create_client(supabase_url, supabase_key)
        logger.info(f"Initialized SupabaseClient for {supabase_url}")

    # ------------------------------------------------------------------
    # Reviewers
    # ------------------------------------------------------------------

    def get_user(self, user_id: str) -> Optional[Dict[str, Any]]:
        """
        Get a single user by ID.

        Returns:
            User record, or None if no user has this ID
        """
        try:
            result = (
                self.client.table("users")
                .select("id, name, email, has_completed_qualification, subscription_status")
                .eq("id", user_id)
                .limit(1)
                .execute()
            )
            return result.data[0] if result.data else None

        except Exception as e:
            logger.error(f"Failed to fetch user {user_id}: {e}")
            raise

    def get_qualified_reviewers(self, exclude_user_id: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        Get every user who has completed qualification.

        Args:
            exclude_user_id: Optional user to leave out (an extension's owner)
        """
        try:
            query = (
                self.client.table("users")
                .select("id, name, email, has_completed_qualification, subscription_status")
                .eq("has_completed_qualification", True)
            )
            if exclude_user_id:
                query = query.neq("id", exclude_user_id)

            result = query.execute()
            return result.data or []

        except Exception as e:
            logger.error(f"Failed to fetch qualified reviewers: {e}")
            raise

    # ------------------------------------------------------------------
    # Assignments
    # ------------------------------------------------------------------

    def get_active_assignment_ids(self, reviewer_id: str) -> List[str]:
        """Get IDs of the reviewer's assignments still in 'assigned' status."""
        try:
            result = (
                self.client.table("review_assignments")
                .select("id")
                .eq("reviewer_id", reviewer_id)
                .eq("status", ASSIGNED_STATUS)
                .execute()
            )
            return [row["id"] for row in result.data or []]

        except Exception as e:
            logger.error(f"Failed to check active assignments for {reviewer_id}: {e}")
            raise

    def get_active_assignment_counts(self) -> Dict[str, int]:
        """
        Count assignments in 'assigned' status per reviewer.

        Returns:
            Dict mapping reviewer_id -> number of active assignments
        """
        try:
            result = (
                self.client.table("review_assignments")
                .select("reviewer_id")
                .eq("status", ASSIGNED_STATUS)
                .execute()
            )
            counts: Dict[str, int] = {}
            for row in result.data or []:
                counts[row["reviewer_id"]] = counts.get(row["reviewer_id"], 0) + 1
            return counts

        except Exception as e:
            logger.error(f"Failed to count active assignments: {e}")
            raise

    def next_assignment_number(self) -> int:
        """
        Draw the next human-readable assignment number.

        Backed by the `next_assignment_number()` SQL function, which calls
        nextval() on a sequence seeded from the current max. Numbers are
        unique and increasing under concurrent callers; gaps are possible.
        """
        try:
            result = self.client.rpc("next_assignment_number").execute()
            return int(result.data)

        except Exception as e:
            logger.error(f"Failed to generate assignment number: {e}")
            raise

    def create_batch(self, reviewer_id: str, assignment_type: str = "single") -> Dict[str, Any]:
        """
        Insert an active assignment batch for the reviewer.

        Returns:
            The inserted batch record
        """
        record = {
            "reviewer_id": reviewer_id,
            "assignment_type": assignment_type,
            "status": "active",
        }
        try:
            result = self.client.table("assignment_batches").insert(record).execute()
            if not result.data:
                raise RuntimeError("Insert returned no rows")
            return result.data[0]

        except Exception as e:
            logger.error(f"Failed to create assignment batch for {reviewer_id}: {e}")
            raise

    def create_assignment(
        self,
        batch_id: str,
        extension_id: str,
        reviewer_id: str,
        assignment_number: int,
        due_at: datetime,
    ) -> Dict[str, Any]:
        """
        Insert a review assignment in 'assigned' status.

        Returns:
            The inserted assignment record
        """
        record = {
            "batch_id": batch_id,
            "extension_id": extension_id,
            "reviewer_id": reviewer_id,
            "assignment_number": assignment_number,
            "due_at": due_at.isoformat(),
            "status": ASSIGNED_STATUS,
        }
        try:
            result = self.client.table("review_assignments").insert(record).execute()
            if not result.data:
                raise RuntimeError("Insert returned no rows")
            return result.data[0]

        except Exception as e:
            logger.error(
                f"Failed to create assignment #{assignment_number} "
                f"(extension {extension_id}, reviewer {reviewer_id}): {e}"
            )
            raise

    def delete_assignment(self, assignment_id: str) -> None:
        """Delete a review assignment (rollback of a failed request)."""
        try:
            self.client.table("review_assignments").delete().eq("id", assignment_id).execute()
            logger.debug(f"Deleted assignment {assignment_id}")

        except Exception as e:
            logger.error(f"Failed to delete assignment {assignment_id}: {e}")
            raise

    def delete_batch(self, batch_id: str) -> None:
        """Delete an assignment batch (rollback of a failed request)."""
        try:
            self.client.table("assignment_batches").delete().eq("id", batch_id).execute()
            logger.debug(f"Deleted batch {batch_id}")

        except Exception as e:
            logger.error(f"Failed to delete batch {batch_id}: {e}")
            raise

    # ------------------------------------------------------------------
    # Extensions
    # ------------------------------------------------------------------

    def get_queued_extensions(
        self,
        exclude_owner_id: Optional[str] = None,
        limit: Optional[int] = None,
        with_owner: bool = False,
    ) -> List[Dict[str, Any]]:
        """
        Get queued extensions, oldest submission first (FIFO).

        Args:
            exclude_owner_id: Leave out extensions owned by this user
            limit: Optional maximum number of rows
            with_owner: Embed the owner's user record under "owner"

        Returns:
            List of extension records, possibly empty
        """
        columns = EXTENSION_WITH_OWNER_COLUMNS if with_owner else "*"
        try:
            query = (
                self.client.table("extensions")
                .select(columns)
                .eq("status", QUEUED_STATUS)
            )
            if exclude_owner_id:
                query = query.neq("owner_id", exclude_owner_id)

            query = query.order("submitted_to_queue_at", desc=False)
            if limit:
                query = query.limit(limit)

            result = query.execute()
            logger.debug(f"Found {len(result.data or [])} queued extensions")
            return result.data or []

        except Exception as e:
            logger.error(f"Failed to fetch queued extensions: {e}")
            raise

    def claim_extension(self, extension_id: str) -> bool:
        """
        Move an extension from 'queued' to 'assigned'.

        The update only matches while the row is still queued, so two
        requests racing for the same extension cannot both claim it.

        Returns:
            True if this call claimed the extension, False if it was no
            longer queued
        """
        try:
            result = (
                self.client.table("extensions")
                .update({"status": ASSIGNED_STATUS})
                .eq("id", extension_id)
                .eq("status", QUEUED_STATUS)
                .execute()
            )
            return bool(result.data)

        except Exception as e:
            logger.error(f"Failed to update extension status for {extension_id}: {e}")
            raise

    # ------------------------------------------------------------------
    # Review relationships
    # ------------------------------------------------------------------

    def get_reviewed_owner_ids(self, reviewer_id: str) -> List[str]:
        """Get owners whose extensions this reviewer has already reviewed."""
        try:
            result = (
                self.client.table("review_relationships")
                .select("reviewed_owner_id")
                .eq("reviewer_id", reviewer_id)
                .execute()
            )
            return [row["reviewed_owner_id"] for row in result.data or []]

        except Exception as e:
            logger.error(f"Failed to check review relationships for {reviewer_id}: {e}")
            raise

    def get_reviewer_ids_for_owner(self, owner_id: str) -> List[str]:
        """Get reviewers who have already reviewed an extension by this owner."""
        try:
            result = (
                self.client.table("review_relationships")
                .select("reviewer_id")
                .eq("reviewed_owner_id", owner_id)
                .execute()
            )
            return [row["reviewer_id"] for row in result.data or []]

        except Exception as e:
            logger.error(f"Failed to check review relationships for owner {owner_id}: {e}")
            raise
