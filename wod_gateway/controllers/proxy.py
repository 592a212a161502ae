from __future__ import annotations

import json
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from wod_gateway.config import Settings
from wod_gateway.dependencies import get_backend, get_settings, require_session
from wod_gateway.schemas import ErrorResponse, LimitsResponse, ProxyResponse
from wod_gateway.services import gateway
from wod_gateway.services.errors import GatewayError
from wod_gateway.services.identity import SessionIdentity
from wod_gateway.services.model import ModelBackend

logger = logging.getLogger(__name__)

router = APIRouter()


async def gateway_error_handler(request: Request, exc: GatewayError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.body())


@router.post(
    "/ai/proxy",
    response_model=ProxyResponse,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        413: {"model": ErrorResponse},
        429: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
        504: {"model": ErrorResponse},
    },
)
async def proxy(
    request: Request,
    identity: SessionIdentity = Depends(require_session),
    backend: ModelBackend = Depends(get_backend),
    cfg: Settings = Depends(get_settings),
):
    try:
        try:
            payload = await request.json()
        except (json.JSONDecodeError, ValueError, RuntimeError):
            # rejected as InvalidRequest after admission
            payload = None
        return await gateway.handle_proxy_request(identity, payload, backend, cfg)
    except GatewayError:
        raise
    except Exception as exc:
        logger.exception("Proxy request failed")
        raise GatewayError("Internal error") from exc


@router.get(
    "/limits",
    response_model=LimitsResponse,
    responses={401: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
)
async def limits(identity: SessionIdentity = Depends(require_session)):
    admission, day = await gateway.get_limits(identity)
    return LimitsResponse(
        tier=admission.tier,
        limit=admission.limit,
        used=admission.used,
        remaining=admission.remaining,
        date=day,
    )


__all__ = ["router", "gateway_error_handler"]
