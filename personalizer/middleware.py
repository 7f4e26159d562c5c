# personalizer/middleware.py
import time
import uuid
from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from .logging_setup import request_id_var, get_logger

logger = get_logger("personalizer.http")

REQUEST_ID_HEADER = "X-Request-ID"


class RequestContextMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        # Reuse the caller's id when it sends one, so logs line up across services
        req_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:12]
        token = request_id_var.set(req_id)

        start = time.perf_counter()
        response: Optional[Response] = None

        try:
            logger.debug("REQUEST_START", extra={"method": request.method, "path": request.url.path})
            response = await call_next(request)
            response.headers[REQUEST_ID_HEADER] = req_id
            return response
        except Exception:
            # Re-raised so the registered exception handlers respond
            logger.exception("REQUEST_EXCEPTION", extra={"method": request.method, "path": request.url.path})
            raise
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000
            status = getattr(response, "status_code", 500)  # 500 if response never got set
            logger.info(
                "REQUEST_END",
                extra={
                    "method": request.method,
                    "path": request.url.path,
                    "status": status,
                    "elapsed_ms": round(elapsed_ms, 1),
                },
            )
            request_id_var.reset(token)
