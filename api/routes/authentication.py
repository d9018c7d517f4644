"""
Authentication API Routes

POST /api/authenticate relays a single captured image to the verification
backend and returns its answer.
"""

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from api.forwarding import forward
from api.schemas import RelayErrorResponse

router = APIRouter(tags=["authentication"])


@router.post(
    "/api/authenticate",
    responses={502: {"model": RelayErrorResponse}, 504: {"model": RelayErrorResponse}},
)
async def authenticate(request: Request) -> JSONResponse:
    """Forward an authentication image (part ``image``) to the backend."""
    return await forward(request, request.app.state.authenticate_path, "authentication")
