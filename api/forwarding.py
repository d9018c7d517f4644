"""
Upstream forwarding for the relay routes.

Re-sends an incoming multipart request to the verification backend and
turns every upstream failure into the relay error envelope:

    timeout          -> 504 TIMEOUT_ERROR
    no response      -> 502 NETWORK_ERROR
    status >= 500    -> upstream status, code derived from the status
    non-JSON answer  -> 502 INTERNAL_ERROR

Answers with a status below 500 are passed through with status 200 and the
backend's body, so the client-side normalizer sees the backend's own code.
"""

import logging
from typing import Any, Dict, List, Tuple

import httpx
from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.datastructures import UploadFile

from api.schemas import RelayErrorDetails, RelayErrorResponse

logger = logging.getLogger(__name__)

STATUS_ERROR_CODES = {
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
}


def error_code_for_status(status: int) -> str:
    return STATUS_ERROR_CODES.get(status, "INTERNAL_ERROR")


def error_response(status: int, message: str, error_code: str, error_message: str) -> JSONResponse:
    body = RelayErrorResponse(
        message=message,
        details=RelayErrorDetails(errorCode=error_code, errorMessage=error_message),
    )
    return JSONResponse(status_code=status, content=body.model_dump())


async def read_multipart(request: Request) -> Tuple[Dict[str, List[str]], List[Tuple[str, Tuple[str, bytes, str]]]]:
    """
    Split an incoming multipart form into httpx ``data`` and ``files``.

    Repeated fields (several ``images`` parts) keep their order.
    """
    form = await request.form()
    data: Dict[str, List[str]] = {}
    files: List[Tuple[str, Tuple[str, bytes, str]]] = []

    for name, value in form.multi_items():
        if isinstance(value, UploadFile):
            content = await value.read()
            files.append((name, (value.filename or "image.jpg", content, value.content_type or "image/jpeg")))
        else:
            data.setdefault(name, []).append(value)

    return data, files


async def forward(request: Request, path: str, action: str) -> JSONResponse:
    """
    Forward the request body to ``path`` on the verification backend.

    Args:
        request: Incoming request (multipart form).
        path: Backend path, e.g. "/api/v1/authenticate".
        action: Name used in log lines and error messages.
    """
    client: httpx.AsyncClient = request.app.state.upstream
    data, files = await read_multipart(request)
    failure = f"Error processing {action} request"

    logger.info(f"Forwarding {action}: {len(files)} file(s) to {client.base_url}{path}")

    try:
        response = await client.post(
            path,
            data=data,
            files=files,
            headers={"Accept": "application/json"},
        )
    except httpx.TimeoutException as e:
        logger.error(f"{action} upstream timed out: {e!r}")
        return error_response(504, failure, "TIMEOUT_ERROR", "Request to the verification backend timed out")
    except httpx.RequestError as e:
        logger.error(f"{action} upstream unreachable: {e!r}")
        return error_response(502, failure, "NETWORK_ERROR", f"Could not reach the verification backend: {type(e).__name__}")

    if response.status_code >= 500:
        logger.error(f"{action} upstream failed with HTTP {response.status_code}")
        return error_response(
            response.status_code,
            failure,
            error_code_for_status(response.status_code),
            response.text or f"Upstream status {response.status_code}",
        )

    try:
        body: Any = response.json()
    except ValueError:
        logger.error(f"{action} upstream returned a non-JSON body")
        return error_response(502, failure, "INTERNAL_ERROR", "Verification backend returned a non-JSON response")

    logger.info(f"{action} upstream answered HTTP {response.status_code}")
    return JSONResponse(status_code=200, content=body)
