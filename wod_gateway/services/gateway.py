"""AI proxy request cycle: admit, call the model, shape the result, charge.

Admission (read count, compare to ceiling) and the final increment are two
separate ledger operations with no per-user lock. Concurrent requests near
the ceiling may all be admitted before any increment lands; the overshoot is
bounded by the number of requests a user has in flight.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import logging
import time
from typing import Any

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from wod_gateway.config import Settings
from wod_gateway.metrics import (
    malformed_output_total,
    proxy_latency_seconds,
    proxy_requests_total,
    quota_reject_total,
    usage_increment_fail_total,
)
from wod_gateway.schemas import (
    GenerateStrategyRequest,
    ParseWodRequest,
    ProxyResponse,
    WireModel,
    proxy_request_adapter,
)
from wod_gateway.services import usage
from wod_gateway.services.errors import (
    ImageTooLarge,
    InvalidRequest,
    MalformedModelOutput,
    QuotaExceeded,
    ServiceUnavailable,
)
from wod_gateway.services.identity import SessionIdentity
from wod_gateway.services.model import ModelBackend
from wod_gateway.services.model_output import parse_model_output
from wod_gateway.services.prompts import build_parse_wod_messages, build_strategy_messages
from wod_gateway.services.quota import (
    UPGRADE_MESSAGE,
    Admission,
    admit,
    remaining_after_success,
)

logger = logging.getLogger(__name__)

ALLOWED_MIME_TYPES = frozenset({"image/png", "image/jpeg", "image/gif", "image/webp"})


async def check_admission(user_id: str, day: str) -> Admission:
    """Read tier and today's count and decide whether the call may proceed."""
    try:
        tier = await asyncio.to_thread(usage.get_subscription_tier_sync, user_id)
    except SQLAlchemyError as exc:
        logger.warning(
            "Tier lookup failed, assuming free: %s", exc, extra={"user_id": user_id}
        )
        tier = None
    try:
        used = await asyncio.to_thread(usage.get_usage_sync, user_id, day)
    except SQLAlchemyError as exc:
        logger.exception(
            "Usage ledger unavailable: %s", exc, extra={"user_id": user_id, "usage_date": day}
        )
        raise ServiceUnavailable("Usage tracking unavailable") from exc
    return admit(tier, used)


def validate_request(payload: Any, cfg: Settings) -> ParseWodRequest | GenerateStrategyRequest:
    """Check the action-specific fields and the image limits."""
    if not isinstance(payload, dict):
        raise InvalidRequest("Request body must be a JSON object")
    action = payload.get("action")
    if action not in {"parse_wod", "generate_strategy"}:
        raise InvalidRequest("Invalid action")
    if action == "parse_wod" and not payload.get("imageBase64"):
        raise InvalidRequest("Missing imageBase64")
    if action == "generate_strategy" and not payload.get("workout"):
        raise InvalidRequest("Missing workout data")
    try:
        request = proxy_request_adapter.validate_python(payload)
    except ValidationError as err:
        message = "; ".join(
            f"{'.'.join(str(p) for p in e.get('loc', ()))}: {e.get('msg', '')}"
            for e in err.errors()
        )
        raise InvalidRequest(message or "Invalid request") from err

    if isinstance(request, ParseWodRequest):
        _validate_image(request, cfg.max_image_bytes)
    return request


def _validate_image(request: ParseWodRequest, limit: int) -> None:
    if request.mime_type not in ALLOWED_MIME_TYPES:
        raise InvalidRequest(f"Unsupported mimeType: {request.mime_type}")
    b64_limit = ((limit + 2) // 3) * 4
    if len(request.image_base64) > b64_limit:
        raise ImageTooLarge("image too large")
    try:
        contents = base64.b64decode(request.image_base64, validate=True)
    except binascii.Error as exc:
        raise InvalidRequest("invalid base64") from exc
    if not contents:
        raise InvalidRequest("Missing imageBase64")
    if len(contents) > limit:
        raise ImageTooLarge("image too large")


async def run_action(
    request: ParseWodRequest | GenerateStrategyRequest, backend: ModelBackend
) -> WireModel:
    """Build the prompt, call the model once and parse its answer."""
    if isinstance(request, ParseWodRequest):
        messages = build_parse_wod_messages(request.image_base64, request.mime_type)
    else:
        messages = build_strategy_messages(request.workout, request.user_profile)
    text = await backend.complete(messages)
    try:
        return parse_model_output(request.action, text)
    except MalformedModelOutput:
        malformed_output_total.inc()
        raise


async def record_usage(user_id: str, day: str) -> None:
    """Charge one call. Failures are logged, never raised or retried."""
    try:
        await asyncio.to_thread(usage.increment_usage_sync, user_id, day)
    except SQLAlchemyError:
        usage_increment_fail_total.inc()
        logger.exception(
            "Usage increment failed", extra={"user_id": user_id, "usage_date": day}
        )


async def handle_proxy_request(
    identity: SessionIdentity,
    payload: Any,
    backend: ModelBackend,
    cfg: Settings,
) -> ProxyResponse:
    """Run one authenticated proxy request end to end."""
    day = usage.today_key()
    admission = await check_admission(identity.user_id, day)
    if not admission.allowed:
        quota_reject_total.inc()
        logger.info(
            "Quota reached (%d/%d)",
            admission.used,
            admission.limit,
            extra={"user_id": identity.user_id, "tier": admission.tier, "usage_date": day},
        )
        raise QuotaExceeded(UPGRADE_MESSAGE, limit=admission.limit)

    request = validate_request(payload, cfg)
    proxy_requests_total.labels(action=request.action).inc()

    start_time = time.perf_counter()
    try:
        result = await run_action(request, backend)
    finally:
        proxy_latency_seconds.observe(time.perf_counter() - start_time)

    await record_usage(identity.user_id, day)
    logger.info(
        "Proxy request served", extra={"user_id": identity.user_id, "action": request.action}
    )
    return ProxyResponse(
        data=result.to_wire(),
        remaining=remaining_after_success(admission),
    )


async def get_limits(identity: SessionIdentity) -> tuple[Admission, str]:
    """Today's allowance for the caller, without charging anything."""
    day = usage.today_key()
    return await check_admission(identity.user_id, day), day


__all__ = [
    "ALLOWED_MIME_TYPES",
    "check_admission",
    "validate_request",
    "run_action",
    "record_usage",
    "handle_proxy_request",
    "get_limits",
]
