"""Development-only client that calls the model backend without the gateway.

The model credential has to live in the client for this to work, so it is
refused in production builds.
"""
from __future__ import annotations

import logging

from wod_gateway.config import Settings
from wod_gateway.schemas import GENERATE_STRATEGY, PARSE_WOD, ParsedWorkout, UserProfile, WodStrategy
from wod_gateway.services.errors import GatewayError, MalformedModelOutput
from wod_gateway.services.model import ModelBackend
from wod_gateway.services.model_output import parse_model_output
from wod_gateway.services.prompts import build_parse_wod_messages, build_strategy_messages

from .cancel import CancelSignal
from .errors import MalformedResponseError, RetryableError
from .retry import AI_RETRY_OPTIONS, AI_TIMEOUT, RetryOptions, with_retry, with_timeout

logger = logging.getLogger(__name__)


class DirectModelClient:
    def __init__(
        self,
        backend: ModelBackend,
        *,
        timeout: float = AI_TIMEOUT,
        retry_options: RetryOptions = AI_RETRY_OPTIONS,
    ):
        self._backend = backend
        self.timeout = timeout
        self.retry_options = retry_options

    @classmethod
    def from_settings(cls, cfg: Settings) -> "DirectModelClient":
        if cfg.is_production:
            raise RuntimeError("Direct model access is disabled in production")
        if not cfg.allow_direct_model:
            raise RuntimeError("Direct model access is not enabled (ALLOW_DIRECT_MODEL)")
        logger.warning("Using direct model access; the API key is held by the client")
        return cls(ModelBackend.from_settings(cfg))

    async def _complete(self, messages: list[dict], signal: CancelSignal | None) -> str:
        async def _attempt() -> str:
            try:
                return await self._backend.complete(messages)
            except GatewayError as exc:
                raise RetryableError(
                    exc.message, exc.status_code, exc.retryable, code=exc.code.value
                ) from exc

        return await with_retry(
            lambda: with_timeout(_attempt, self.timeout, signal=signal, description="Model call"),
            self.retry_options,
            signal=signal,
        )

    async def parse_wod(
        self,
        image_base64: str,
        mime_type: str = "image/png",
        *,
        signal: CancelSignal | None = None,
    ) -> ParsedWorkout:
        text = await self._complete(build_parse_wod_messages(image_base64, mime_type), signal)
        try:
            return parse_model_output(PARSE_WOD, text)
        except MalformedModelOutput as exc:
            raise MalformedResponseError("Failed to parse workout from image") from exc

    async def generate_strategy(
        self,
        workout: ParsedWorkout,
        user_profile: UserProfile | None = None,
        *,
        signal: CancelSignal | None = None,
    ) -> WodStrategy:
        text = await self._complete(build_strategy_messages(workout, user_profile), signal)
        try:
            return parse_model_output(GENERATE_STRATEGY, text)
        except MalformedModelOutput as exc:
            raise MalformedResponseError("Failed to generate strategy") from exc

    async def aclose(self) -> None:
        await self._backend.close()


__all__ = ["DirectModelClient"]
