from __future__ import annotations

import asyncio
import logging
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator

from wod_gateway.controllers import v1
from wod_gateway.controllers.proxy import gateway_error_handler
from wod_gateway.db import init_db
from wod_gateway.dependencies import settings
from wod_gateway.logger import setup_logging
from wod_gateway.services.errors import GatewayError
from wod_gateway.services.model import close_model_backend, init_model_backend

setup_logging(settings.log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # The model credential never leaves this process
    init_model_backend(settings)
    await asyncio.to_thread(init_db, settings)
    yield
    await close_model_backend()

if sys.version_info[:2] < (3, 11):
    raise RuntimeError("Python 3.11+ is required")

app = FastAPI(
    title="WOD Gateway API",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
)
app.add_exception_handler(GatewayError, gateway_error_handler)

app.include_router(v1.router)

Instrumentator().instrument(app).expose(app)
