"""
API client for the Face ID verification backend.

Submits enrollment and authentication payloads as multipart POST requests
and classifies every failure into exactly one error type:

    RequestTimeout      - no complete response before the deadline
    NetworkUnreachable  - the request never got a response
    BackendRejected     - a response with a non-success HTTP status
    MalformedResponse   - a response body that isn't JSON

Requests are never retried: a repeated enrollment could store the identity
twice and a repeated authentication counts as another attempt.

Includes a mock mode for development without a backend.
"""

import asyncio
import logging
from enum import Enum
from typing import Any, Dict, Optional

import httpx

from core.errors import (
    BackendRejected,
    MalformedResponse,
    NetworkUnreachable,
    RequestTimeout,
)
from core.outcome import AuthenticationCode, EnrollmentCode, Route
from core.schemas import RawResponse
from frontend.components.image_packager import Payload

logger = logging.getLogger(__name__)


class ConnectionMode(Enum):
    """API connection mode."""
    MOCK = "mock"          # Simulated responses (no backend needed)
    LIVE = "live"          # Real backend connection


class MockBackend:
    """
    Simulates the verification backend with canonical coded responses.

    The codes, score and liveness verdict are fixed at construction so that a
    developer can walk the UI through a specific outcome.
    """

    def __init__(
        self,
        enroll_code: EnrollmentCode = EnrollmentCode.SUCCESS,
        auth_code: AuthenticationCode = AuthenticationCode.SUCCESS,
        match_score: float = 0.92,
        is_real: bool = True,
        latency_sec: float = 0.3,
        enroll_path: str = "/api/v1/enroll",
        authenticate_path: str = "/api/v1/authenticate",
    ):
        self.enroll_code = enroll_code
        self.auth_code = auth_code
        self.match_score = match_score
        self.is_real = is_real
        self.latency_sec = latency_sec
        self.enroll_path = enroll_path
        self.authenticate_path = authenticate_path
        self.requests_seen = 0

    def _anti_spoofing(self) -> Dict[str, Any]:
        return {
            "is_real": self.is_real,
            "antispoof_score": 0.98 if self.is_real else 0.12,
            "confidence": 0.95,
        }

    def enroll_body(self) -> Dict[str, Any]:
        return {
            "code": int(self.enroll_code),
            "message": self.enroll_code.name.replace("_", " ").capitalize(),
            "anti_spoofing": self._anti_spoofing(),
            "details": None,
        }

    def authenticate_body(self) -> Dict[str, Any]:
        match = None
        if self.auth_code == AuthenticationCode.SUCCESS:
            match = {
                "id": "usr_0001",
                "score": self.match_score,
                "metadata": {"firstName": "Alice", "lastName": "Doe"},
            }
        return {
            "code": int(self.auth_code),
            "message": self.auth_code.name.replace("_", " ").capitalize(),
            "match": match,
            "similarity_score": self.match_score if match else None,
            "anti_spoofing": self._anti_spoofing(),
            "details": None,
        }

    async def handle(self, request: httpx.Request) -> httpx.Response:
        """httpx.MockTransport handler."""
        if request.url.path == "/health":
            return httpx.Response(200, json={"status": "healthy"})

        self.requests_seen += 1
        await asyncio.sleep(self.latency_sec)

        if request.url.path == self.enroll_path:
            return httpx.Response(200, json=self.enroll_body())
        if request.url.path == self.authenticate_path:
            return httpx.Response(200, json=self.authenticate_body())
        return httpx.Response(404, json={"message": "Not found"})


class VerificationClient:
    """
    Client for the remote verification backend.

    Supports both live (real backend) and mock (simulated) modes.

    Args:
        config: Verification configuration containing:
            - base_url: Backend root URL
            - enroll_path / authenticate_path: Route paths
            - enroll_timeout_sec / authenticate_timeout_sec: Deadlines
            - mode: "live" or "mock"
        transport: Optional httpx transport, overrides the mode's transport.
        mock_backend: Backend used in mock mode.
    """

    def __init__(
        self,
        config: Optional[Dict[str, Any]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        mock_backend: Optional[MockBackend] = None,
    ):
        config = config or {}
        self.base_url = config.get("base_url", "http://localhost:5000")
        self.paths = {
            Route.ENROLL: config.get("enroll_path", "/api/v1/enroll"),
            Route.AUTHENTICATE: config.get("authenticate_path", "/api/v1/authenticate"),
        }
        self.timeouts = {
            Route.ENROLL: float(config.get("enroll_timeout_sec", 200.0)),
            Route.AUTHENTICATE: float(config.get("authenticate_timeout_sec", 200.0)),
        }
        self.mode = ConnectionMode(config.get("mode", ConnectionMode.LIVE.value))

        self._transport = transport
        self._mock = mock_backend or MockBackend(
            enroll_path=self.paths[Route.ENROLL],
            authenticate_path=self.paths[Route.AUTHENTICATE],
        )

    def set_mode(self, mode: ConnectionMode) -> None:
        """Switch between mock and live mode."""
        self.mode = mode
        logger.info(f"Switched to {mode.value.upper()} mode")

    def _client(self, timeout: float) -> httpx.AsyncClient:
        transport = self._transport
        if transport is None and self.mode == ConnectionMode.MOCK:
            transport = httpx.MockTransport(self._mock.handle)
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

    async def check_backend_available(self) -> bool:
        """Check if the backend server is reachable."""
        try:
            async with self._client(2.0) as client:
                response = await client.get("/health")
        except httpx.HTTPError as e:
            logger.info(f"Backend not reachable at {self.base_url}: {e}")
            return False
        return response.status_code == 200

    async def submit(self, payload: Payload, route: Route) -> RawResponse:
        """
        Send one payload.

        Args:
            payload: Packaged images and fields.
            route: Route to submit to (must match the payload's route).

        Returns:
            The decoded JSON body of a successful response.

        Raises:
            RequestTimeout, NetworkUnreachable, BackendRejected, MalformedResponse
        """
        if payload.route != route:
            raise ValueError(f"Payload built for {payload.route.value}, submitted to {route.value}")

        path = self.paths[route]
        timeout = self.timeouts[route]
        data, files = payload.to_multipart()

        logger.info(f"POST {path}: {len(files)} image(s), {len(data)} field(s), timeout {timeout:.0f}s")

        try:
            async with self._client(timeout) as client:
                response = await asyncio.wait_for(
                    client.post(
                        path,
                        data=data,
                        files=files,
                        headers={"Accept": "application/json"},
                    ),
                    timeout=timeout,
                )
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            logger.error(f"{route.value} request timed out after {timeout:.0f}s")
            raise RequestTimeout(
                f"The verification service did not answer within {timeout:.0f} seconds"
            ) from e
        except httpx.DecodingError as e:
            raise MalformedResponse(f"Could not decode response: {e}") from e
        except httpx.RequestError as e:
            logger.error(f"{route.value} request failed: {e!r}")
            raise NetworkUnreachable(
                f"Could not reach the verification service: {type(e).__name__}"
            ) from e

        if not response.is_success:
            body = _body_or_text(response)
            message = None
            if isinstance(body, dict):
                message = body.get("message") or body.get("error")
            logger.error(f"{route.value} rejected with HTTP {response.status_code}")
            raise BackendRejected(response.status_code, body, message)

        try:
            return response.json()
        except ValueError as e:
            logger.error(f"{route.value} returned a non-JSON body")
            raise MalformedResponse("The verification service returned a non-JSON response") from e


def _body_or_text(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


def get_verification_client(config: Optional[Dict[str, Any]] = None) -> VerificationClient:
    """
    Factory function to create a VerificationClient.

    Args:
        config: Optional configuration dict. If None, loads from config.yaml.
    """
    if config is None:
        try:
            from core.config import get_verification_config
            config = get_verification_config()
        except (FileNotFoundError, KeyError):
            config = {}

    return VerificationClient(config)
