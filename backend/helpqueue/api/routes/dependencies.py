"""Route Dependencies — access to the QueueCore built by the app lifespan."""

from fastapi import Request, status
from fastapi.responses import JSONResponse

from helpqueue.schemas.question import OperationResult
from helpqueue.services.queue_core import QueueCore


def get_core(request: Request) -> QueueCore:
    return request.app.state.core


def operation_response(result: OperationResult, success_status: int = status.HTTP_200_OK):
    """Business-rule rejections are answered with 409 and the result body."""
    if result.ok:
        return JSONResponse(status_code=success_status, content=result.model_dump())
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT, content=result.model_dump(),
    )
