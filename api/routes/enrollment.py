"""
Enrollment API Routes

POST /api/enroll relays a multipart enrollment (image(s) plus identity
fields) to the verification backend.
"""

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from api.forwarding import forward
from api.schemas import RelayErrorResponse

router = APIRouter(tags=["enrollment"])


@router.post(
    "/api/enroll",
    responses={502: {"model": RelayErrorResponse}, 504: {"model": RelayErrorResponse}},
)
async def enroll(request: Request) -> JSONResponse:
    """
    Forward an enrollment to the backend.

    Expects parts ``image`` (single frame) or repeated ``images``, plus
    ``firstName``, ``lastName`` and optional ``id``, ``age``, ``gender``,
    ``email``, ``phone``.
    """
    return await forward(request, request.app.state.enroll_path, "enrollment")
