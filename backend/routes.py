"""
API routes for review assignment.

Paths mirror the Supabase edge functions the web app already calls, so the
front end can point at this service without changes. Every response is JSON
of the form `{success, ...}` and carries permissive CORS headers.
"""

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel, Field, ValidationError

from backend.dependencies import get_matcher, get_queue_assigner
from matcher.assignment_matcher import AssignmentMatcher
from matcher.errors import AssignmentError
from matcher.queue_assigner import QueueAssigner
from utils.logger import setup_logger

logger = setup_logger(name=__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
}

router = APIRouter(prefix="/functions/v1", tags=["assignments"])


class RequestAssignmentBody(BaseModel):
    """Request body for a reviewer asking for their next assignment."""
    user_id: str


class AssignReviewsBody(BaseModel):
    """Request body for a bulk queue pass."""
    max_assignments: int = Field(10, ge=1, le=100)


def json_response(body: dict, status_code: int = 200) -> JSONResponse:
    return JSONResponse(content=body, status_code=status_code, headers=CORS_HEADERS)


async def read_assign_reviews_body(request: Request) -> AssignReviewsBody:
    """Missing or malformed JSON runs the pass with defaults; bad values are still rejected."""
    try:
        payload = await request.json()
    except ValueError:
        payload = {}
    if not isinstance(payload, dict):
        payload = {}

    try:
        return AssignReviewsBody(**payload)
    except ValidationError as e:
        raise RequestValidationError(e.errors())


@router.options("/request-review-assignment")
@router.options("/assign-reviews")
def preflight():
    """Answer CORS preflight requests."""
    return PlainTextResponse("ok", headers=CORS_HEADERS)


@router.post("/request-review-assignment")
def request_review_assignment(
    body: RequestAssignmentBody,
    background_tasks: BackgroundTasks,
    matcher: AssignmentMatcher = Depends(get_matcher),
):
    """
    Assign the oldest eligible queued extension to the requesting reviewer.

    Returns:
    - 200: `{success: true, message, assignment: {id, assignment_number, extension_name, due_date}}`
    - 400: missing user_id, reviewer not qualified, or active assignment limit reached
    - 404: reviewer not found, or no eligible extension in the queue
    - 500: store failure (rows created by the request are rolled back)

    The confirmation email is sent after the response goes out; its outcome
    never changes the response.
    """
    try:
        result = matcher.request_assignment(body.user_id, schedule=background_tasks.add_task)

    except AssignmentError as e:
        logger.warning(f"Assignment request for {body.user_id} failed ({e.kind.value}): {e.message}")
        return json_response(e.to_response(), status_code=e.status_code)
    except Exception as e:
        logger.exception(f"💥 Unexpected error assigning review to {body.user_id}: {e}")
        return json_response(
            {
                "success": False,
                "error": "Internal server error occurred while processing assignment request",
                "details": str(e),
            },
            status_code=500,
        )

    return json_response({
        "success": True,
        "message": result.message,
        "assignment": result.to_response(),
    })


@router.post("/assign-reviews")
def assign_reviews(
    background_tasks: BackgroundTasks,
    body: AssignReviewsBody = Depends(read_assign_reviews_body),
    assigner: QueueAssigner = Depends(get_queue_assigner),
):
    """
    Run one bulk pass assigning queued extensions to free reviewers.

    Body is optional; `max_assignments` defaults to 10.
    """
    max_assignments = body.max_assignments

    try:
        summary = assigner.assign_queue(max_assignments, schedule=background_tasks.add_task)

    except AssignmentError as e:
        logger.error(f"Bulk assignment failed ({e.kind.value}): {e.message}")
        return json_response(e.to_response(), status_code=e.status_code)
    except Exception as e:
        logger.exception(f"💥 Unexpected error in bulk assignment: {e}")
        return json_response(
            {
                "success": False,
                "error": "Internal server error occurred while processing assignments",
                "details": str(e),
            },
            status_code=500,
        )

    return json_response({
        "success": True,
        "message": summary.message,
        **summary.model_dump(),
    })
