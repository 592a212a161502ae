from fastapi import APIRouter

from . import proxy

router = APIRouter(prefix="/v1")
router.include_router(proxy.router)
