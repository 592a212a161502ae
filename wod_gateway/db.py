from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from wod_gateway.config import Settings
from wod_gateway.models import Base

logger = logging.getLogger(__name__)


engine: Engine | None = None
_session_factory: sessionmaker | None = None


class _SessionWrapper:
    """Callable proxy returning sessions from the current factory."""

    def __call__(self, *args: Any, **kwargs: Any):
        if _session_factory is None:
            raise RuntimeError("Database not initialized")
        return _session_factory(*args, **kwargs)


SessionLocal = _SessionWrapper()


def init_db(cfg: Settings) -> None:
    """Create engine and session factory.

    Must run once before the first request; the usage ledger and tier lookups
    go through :data:`SessionLocal` and fail loudly until this is called.
    """
    global engine, _session_factory

    kwargs: dict[str, Any] = {"future": True, "pool_pre_ping": True}
    if not cfg.database_url.startswith("sqlite"):
        kwargs.update(pool_size=20, max_overflow=0, pool_recycle=300)
    engine = create_engine(cfg.database_url, **kwargs)
    _session_factory = sessionmaker(
        bind=engine,
        autoflush=False,
        autocommit=False,
        future=True,
    )

    if cfg.db_create_all:
        Base.metadata.create_all(engine)
    logger.info("Database initialized (%s)", engine.dialect.name)
