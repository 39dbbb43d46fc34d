"""Request body size cap."""

from typing import Callable

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware


class BodySizeLimitMiddleware(BaseHTTPMiddleware):
    """Reject requests whose body exceeds max_bytes with 413."""

    def __init__(self, app, max_bytes: int = 16 * 1024):
        super().__init__(app)
        self.max_bytes = max_bytes

    def _too_large(self) -> JSONResponse:
        return JSONResponse(status_code=413, content={"error": "Request body too large"})

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.method in ("GET", "HEAD", "OPTIONS"):
            return await call_next(request)

        declared = request.headers.get("content-length")
        if declared is not None:
            try:
                if int(declared) > self.max_bytes:
                    return self._too_large()
            except ValueError:
                return JSONResponse(status_code=400, content={"error": "Invalid Content-Length"})
        else:
            # chunked upload: read it once here, starlette caches it for the route
            body = await request.body()
            if len(body) > self.max_bytes:
                return self._too_large()

        return await call_next(request)
