"""Shared API dependencies — external clients and envelope status mapping."""

from fastapi import Request, Response, status

from jewelshot.schemas import ActionResult
from jewelshot.services.errors import INSUFFICIENT_CREDITS, NOT_AUTHENTICATED
from jewelshot.services.fal_service import FalClient
from jewelshot.services.storage_service import ObjectStore


def get_object_store(request: Request) -> ObjectStore:
    """The ObjectStore created at startup (see main.lifespan)."""
    return request.app.state.object_store


def get_inference_client(request: Request) -> FalClient:
    """The fal.ai client created at startup (see main.lifespan)."""
    return request.app.state.inference_client


def respond(
    result: ActionResult,
    response: Response,
    error_status: int = status.HTTP_400_BAD_REQUEST,
) -> ActionResult:
    """Set the HTTP status for a failed envelope; bodies are unchanged."""
    if not result.success:
        if result.error == NOT_AUTHENTICATED:
            response.status_code = status.HTTP_401_UNAUTHORIZED
        elif result.error and result.error.endswith("not found"):
            response.status_code = status.HTTP_404_NOT_FOUND
        elif result.error == INSUFFICIENT_CREDITS:
            response.status_code = status.HTTP_402_PAYMENT_REQUIRED
        elif result.error and result.error.startswith("Rate limit exceeded"):
            response.status_code = status.HTTP_429_TOO_MANY_REQUESTS
        else:
            response.status_code = error_status
    return result
