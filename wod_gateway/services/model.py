"""Vision/text model backend using the OpenAI client."""

from __future__ import annotations

import logging

import openai
from openai import AsyncOpenAI

from wod_gateway.config import Settings
from wod_gateway.metrics import model_error_total, model_timeout_total
from wod_gateway.services.errors import MalformedModelOutput, ModelBackendError, ModelTimeout

logger = logging.getLogger(__name__)

# Upstream statuses worth another attempt by the caller
TRANSIENT_STATUSES = frozenset({408, 409, 429, 500, 502, 503, 504, 529})


class ModelBackend:
    """Single call-and-response completion endpoint.

    The client is built with ``max_retries=0``: retrying is the caller's
    decision, the gateway never re-sends a prompt on its own.
    """

    def __init__(
        self,
        client: AsyncOpenAI,
        *,
        model: str,
        timeout: float = 60.0,
        max_tokens: int = 2048,
    ):
        self._client = client
        self.model = model
        self.timeout = timeout
        self.max_tokens = max_tokens

    @classmethod
    def from_settings(cls, cfg: Settings) -> "ModelBackend":
        if not cfg.openai_api_key:
            raise RuntimeError("OPENAI_API_KEY environment variable is not set")
        client = AsyncOpenAI(
            api_key=cfg.openai_api_key,
            base_url=cfg.openai_base_url,
            timeout=cfg.model_timeout_seconds,
            max_retries=0,
        )
        return cls(
            client,
            model=cfg.model_name,
            timeout=cfg.model_timeout_seconds,
            max_tokens=cfg.model_max_tokens,
        )

    async def complete(self, messages: list[dict]) -> str:
        """Send ``messages`` and return the text of the first choice."""
        try:
            response = await self._client.chat.completions.create(
                model=self.model,
                messages=messages,
                max_tokens=self.max_tokens,
                timeout=self.timeout,
            )
        except openai.APITimeoutError as exc:
            model_timeout_total.inc()
            logger.warning("Model request timed out after %ss", self.timeout)
            raise ModelTimeout() from exc
        except openai.APIConnectionError as exc:
            model_error_total.labels(kind="transient").inc()
            logger.warning("Model connection failed: %s", exc)
            raise ModelBackendError("Model backend unreachable", transient=True) from exc
        except openai.APIStatusError as exc:
            transient = exc.status_code in TRANSIENT_STATUSES
            model_error_total.labels(kind="transient" if transient else "permanent").inc()
            logger.warning(
                "Model backend error: %s", exc.message, extra={"upstream_status": exc.status_code}
            )
            raise ModelBackendError(
                f"Model backend error ({exc.status_code})",
                transient=transient,
                upstream_status=exc.status_code,
            ) from exc
        except openai.OpenAIError as exc:
            model_error_total.labels(kind="permanent").inc()
            logger.exception("Model request failed")
            raise ModelBackendError("Model request failed", transient=False) from exc

        try:
            content = response.choices[0].message.content
        except (AttributeError, IndexError, TypeError) as exc:
            raise MalformedModelOutput("Empty model response") from exc
        if not content:
            raise MalformedModelOutput("Empty model response")
        return content

    async def close(self) -> None:
        await self._client.close()


_backend: ModelBackend | None = None


def init_model_backend(cfg: Settings) -> ModelBackend:
    """Build the process-wide backend; called once from the app lifespan."""
    global _backend
    _backend = ModelBackend.from_settings(cfg)
    return _backend


def get_model_backend() -> ModelBackend:
    if _backend is None:
        raise RuntimeError("Model backend not initialized")
    return _backend


async def close_model_backend() -> None:
    global _backend
    if _backend is not None:
        await _backend.close()
    _backend = None


__all__ = [
    "TRANSIENT_STATUSES",
    "ModelBackend",
    "init_model_backend",
    "get_model_backend",
    "close_model_backend",
]
