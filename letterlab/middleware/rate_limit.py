"""Rate limiting middleware for the LetterLab API."""

import time
from typing import Callable

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

# Routes that trigger a model call
MODEL_ROUTES = ["/api/generate-email", "/api/chat"]

EXEMPT_PATHS = {"/", "/healthz", "/api/health"}


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Fixed one-minute window counter per client address.

    Counts live in process memory, so each worker limits independently.
    """

    WINDOW_SECONDS = 60
    # Prune stale client keys every 5 minutes
    _CLEANUP_INTERVAL = 300

    def __init__(self, app, requests_per_minute: int = 60, model_requests_per_minute: int = 10, clock: Callable[[], float] = time.time):
        super().__init__(app)
        self.requests_per_minute = requests_per_minute
        self.model_requests_per_minute = model_requests_per_minute
        self._clock = clock
        # key -> (window index, count)
        self._windows: dict[str, tuple[int, int]] = {}
        self._last_cleanup = clock()

    def _get_client_id(self, request: Request) -> str:
        """Get a client identifier from the request."""
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            return forwarded.split(",")[0].strip()
        if request.client:
            return request.client.host
        return "unknown"

    def _is_model_route(self, path: str) -> bool:
        return any(path.startswith(route) for route in MODEL_ROUTES)

    def _current_window(self) -> int:
        return int(self._clock() // self.WINDOW_SECONDS)

    def _cleanup_stale_keys(self) -> None:
        """Drop counters from windows that have already closed."""
        now = self._clock()
        if now - self._last_cleanup < self._CLEANUP_INTERVAL:
            return
        self._last_cleanup = now
        window = self._current_window()
        stale_keys = [key for key, (w, _) in self._windows.items() if w < window]
        for key in stale_keys:
            del self._windows[key]

    def _count(self, key: str) -> int:
        """Requests key has made in the current window."""
        current, count = self._windows.get(key, (None, 0))
        return count if current == self._current_window() else 0

    def _record(self, key: str) -> None:
        self._windows[key] = (self._current_window(), self._count(key) + 1)

    def _check_rate(self, key: str, limit: int) -> bool:
        """Count this request against key's window; False once limit is hit."""
        if self._count(key) >= limit:
            return False
        self._record(key)
        return True

    def _too_many(self, message: str) -> JSONResponse:
        retry_after = self.WINDOW_SECONDS - int(self._clock() % self.WINDOW_SECONDS)
        return JSONResponse(
            status_code=429,
            content={"error": message},
            headers={"Retry-After": str(retry_after)},
        )

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        path = request.url.path
        if path in EXEMPT_PATHS or not path.startswith("/api/"):
            return await call_next(request)

        self._cleanup_stale_keys()

        client_id = self._get_client_id(request)

        buckets = [(client_id, self.requests_per_minute, "Rate limit exceeded. Please wait before trying again.")]
        # Stricter limit on model routes
        if self._is_model_route(path):
            buckets.append((
                f"{client_id}:model",
                self.model_requests_per_minute,
                "Model request rate limit exceeded. Please wait before trying again.",
            ))

        # A rejected request is not counted against any bucket
        for key, limit, message in buckets:
            if self._count(key) >= limit:
                return self._too_many(message)
        for key, _, _ in buckets:
            self._record(key)

        return await call_next(request)
