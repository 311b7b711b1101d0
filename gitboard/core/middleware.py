from collections import defaultdict
from collections import deque
from collections.abc import Awaitable
from collections.abc import Callable
from threading import RLock
from time import monotonic

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

HEATMAP_PREFIX = "/heatmap/"
EXPORT_SUFFIX = "/svg"


class HeatmapRateLimitMiddleware(BaseHTTPMiddleware):
    """In-memory per-IP sliding window limiter for GitHub-backed heatmap reads.

    SVG exports are served from the store and are not limited.
    """

    def __init__(
        self, app, requests_per_window: int = 30, window_seconds: int = 60
    ) -> None:
        super().__init__(app)
        # Non-positive settings are clamped to 1.
        self.max_requests = max(1, requests_per_window)
        self.window_seconds = max(1, window_seconds)
        # Timestamps of accepted requests, one queue per client IP.
        self._ip_buckets: dict[str, deque[float]] = defaultdict(deque)
        self._lock = RLock()

    @staticmethod
    def is_limited_path(method: str, path: str) -> bool:
        return (
            method == "GET"
            and path.startswith(HEATMAP_PREFIX)
            and not path.endswith(EXPORT_SUFFIX)
        )

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        # Only the endpoint that calls GitHub is limited.
        if not self.is_limited_path(request.method, request.url.path):
            return await call_next(request)

        ip = self._client_ip(request)
        now = monotonic()

        with self._lock:
            # Drop timestamps that fell out of the window.
            bucket = self._ip_buckets[ip]
            cutoff = now - self.window_seconds
            while bucket and bucket[0] <= cutoff:
                bucket.popleft()

            # Full bucket: reject until the oldest request leaves the window.
            if len(bucket) >= self.max_requests:
                retry_after = max(1, int(self.window_seconds - (now - bucket[0])))
                return JSONResponse(
                    status_code=429,
                    content={"detail": "Too Many Requests"},
                    headers={"Retry-After": str(retry_after)},
                )

            # Accepted.
            bucket.append(now)

        return await call_next(request)

    @staticmethod
    def _client_ip(request: Request) -> str:
        # Reverse proxies set X-Forwarded-For; the first hop is the client.
        forwarded_for = request.headers.get("x-forwarded-for")
        if forwarded_for:
            return forwarded_for.split(",")[0].strip() or "unknown"

        if request.client and request.client.host:
            return request.client.host

        return "unknown"
