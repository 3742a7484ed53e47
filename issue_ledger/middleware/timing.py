import logging
import time

from fastapi import Request

logger = logging.getLogger(__name__)


async def timing_middleware(request: Request, call_next):
    """Log request duration and expose it as X-Process-Time."""
    start = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - start) * 1000

    response.headers["X-Process-Time"] = f"{elapsed_ms:.1f}ms"
    logger.info(
        f"{request.method} {request.url.path} -> {response.status_code} in {elapsed_ms:.1f}ms",
        extra={"path": request.url.path, "duration_ms": round(elapsed_ms, 1)},
    )
    return response
