"""
FastAPI application for review assignment.

Serves the request-review-assignment and assign-reviews endpoints that the
React front end calls.
"""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from backend.routes import json_response, router
from utils.logger import setup_logger

logger = setup_logger(name=__name__)

# Create FastAPI app
app = FastAPI(
    title="Review Matcher API",
    description="Assigns queued Chrome extensions to qualified reviewers",
    version="1.0.0"
)

# Any origin may call with any headers; the functions are authorized by the Supabase key
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Report body validation failures as 400 `{success: false, error}`."""
    errors = exc.errors()
    if any(err.get("type") == "json_invalid" for err in errors):
        message = "Invalid JSON in request body"
    elif request.url.path.endswith("/request-review-assignment"):
        message = "User ID is required"
    else:
        message = "Invalid request body"

    logger.warning(f"❌ Rejected request to {request.url.path}: {message}")
    return json_response({"success": False, "error": message}, status_code=400)


@app.get("/health")
def health():
    """Liveness probe."""
    return {"status": "ok"}


logger.info("FastAPI app initialized")
