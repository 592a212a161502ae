"""Async client for the AI proxy, used by app code instead of raw HTTP."""
from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any

import httpx
from pydantic import ValidationError

from wod_gateway.schemas import (
    GENERATE_STRATEGY,
    PARSE_WOD,
    LimitsResponse,
    ParsedWorkout,
    UserProfile,
    WodStrategy,
)

from .cancel import CancelSignal
from .errors import (
    MalformedResponseError,
    NotSignedInError,
    QuotaExceededError,
    RetryableError,
)
from .retry import (
    AI_RETRY_OPTIONS,
    AI_TIMEOUT,
    DEFAULT_TIMEOUT,
    RetryOptions,
    fetch_with_timeout,
    with_retry,
)

PROXY_PATH = "/v1/ai/proxy"
LIMITS_PATH = "/v1/limits"

QUOTA_MESSAGE = "Daily limit reached. Upgrade to Pro for more analyses!"

# Failures a repeat cannot fix, whatever their status code
NON_RETRYABLE_CODES = frozenset(
    {
        "UNAUTHENTICATED",
        "INVALID_REQUEST",
        "IMAGE_TOO_LARGE",
        "QUOTA_EXCEEDED",
        "MODEL_BACKEND_ERROR",
        "MALFORMED_MODEL_OUTPUT",
    }
)

TokenProvider = Callable[[], Awaitable[str | None]]


def _error_from_response(response: httpx.Response, body: dict[str, Any]) -> RetryableError:
    if response.status_code == 429:
        return QuotaExceededError(
            body.get("message") or QUOTA_MESSAGE,
            remaining=int(body.get("remaining") or 0),
        )
    code = body.get("code")
    return RetryableError(
        body.get("error") or "API request failed",
        response.status_code,
        code not in NON_RETRYABLE_CODES,
        code=code,
    )


class GatewayClient:
    """Calls the gateway with a session token, timeout and bounded retries.

    ``remaining`` holds the allowance reported by the last successful call.
    """

    def __init__(
        self,
        base_url: str,
        project_key: str,
        token_provider: TokenProvider,
        *,
        timeout: float = AI_TIMEOUT,
        retry_options: RetryOptions = AI_RETRY_OPTIONS,
        http_client: httpx.AsyncClient | None = None,
    ):
        self._project_key = project_key
        self._token_provider = token_provider
        self.timeout = timeout
        self.retry_options = retry_options
        self._owns_client = http_client is None
        # per-request deadlines come from fetch_with_timeout
        self._http = http_client or httpx.AsyncClient(base_url=base_url.rstrip("/"), timeout=None)
        self.remaining: int | None = None

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    async def __aenter__(self) -> "GatewayClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def _headers(self) -> dict[str, str]:
        token = await self._token_provider()
        if not token:
            raise NotSignedInError()
        return {
            "Authorization": f"Bearer {token}",
            "apikey": self._project_key,
            "Content-Type": "application/json",
        }

    async def _request(
        self,
        method: str,
        path: str,
        *,
        timeout: float,
        signal: CancelSignal | None,
        json: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        headers = await self._headers()

        async def _attempt() -> dict[str, Any]:
            response = await fetch_with_timeout(
                self._http,
                method,
                path,
                timeout=timeout,
                signal=signal,
                headers=headers,
                json=json,
            )
            try:
                body = response.json()
            except ValueError:
                body = {}
            if not isinstance(body, dict):
                body = {}
            if response.is_error:
                raise _error_from_response(response, body)
            if body.get("error"):
                raise RetryableError(str(body["error"]), response.status_code, False)
            return body

        return await with_retry(_attempt, self.retry_options, signal=signal)

    async def _proxy(self, action: str, payload: dict[str, Any], signal: CancelSignal | None) -> Any:
        body = await self._request(
            "POST",
            PROXY_PATH,
            timeout=self.timeout,
            signal=signal,
            json={"action": action, **payload},
        )
        remaining = body.get("remaining")
        if isinstance(remaining, int):
            self.remaining = remaining
        if "data" not in body:
            raise MalformedResponseError("Gateway response has no data")
        return body["data"]

    async def parse_wod(
        self,
        image_base64: str,
        mime_type: str = "image/png",
        *,
        signal: CancelSignal | None = None,
    ) -> ParsedWorkout:
        data = await self._proxy(
            PARSE_WOD, {"imageBase64": image_base64, "mimeType": mime_type}, signal
        )
        try:
            return ParsedWorkout.model_validate(data)
        except ValidationError as exc:
            raise MalformedResponseError("Failed to parse workout from image") from exc

    async def generate_strategy(
        self,
        workout: ParsedWorkout,
        user_profile: UserProfile | None = None,
        *,
        signal: CancelSignal | None = None,
    ) -> WodStrategy:
        payload: dict[str, Any] = {"workout": workout.to_wire()}
        if user_profile is not None:
            payload["userProfile"] = user_profile.to_wire()
        data = await self._proxy(GENERATE_STRATEGY, payload, signal)
        try:
            return WodStrategy.model_validate(data)
        except ValidationError as exc:
            raise MalformedResponseError("Failed to generate strategy") from exc

    async def get_limits(self, *, signal: CancelSignal | None = None) -> LimitsResponse:
        body = await self._request("GET", LIMITS_PATH, timeout=DEFAULT_TIMEOUT, signal=signal)
        try:
            limits = LimitsResponse.model_validate(body)
        except ValidationError as exc:
            raise MalformedResponseError("Unexpected limits response") from exc
        self.remaining = limits.remaining
        return limits


__all__ = ["GatewayClient", "NON_RETRYABLE_CODES", "TokenProvider"]
