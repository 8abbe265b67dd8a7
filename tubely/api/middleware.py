"""
Request body size limits for upload routes.

FastAPI parses multipart bodies before any dependency runs, so the limit
has to sit in front of the router. Requests whose Content-Length is
already too large are refused without reading the body; bodies without a
usable Content-Length are counted as they stream in and cut off once
they pass the limit.

The limit covers the whole multipart body. The staging step applies the
exact limit to the file part itself.
"""

import logging
from typing import Optional

from fastapi import HTTPException, status
from fastapi.responses import JSONResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from ..core.media.errors import PayloadTooLarge
from ..infrastructure.staging.stager import check_declared_size

logger = logging.getLogger(__name__)

# Room for multipart boundaries and part headers
MULTIPART_OVERHEAD_BYTES = 64 * 1024


class UploadSizeLimitMiddleware:
    def __init__(self, app: ASGIApp, limits: dict[str, int]) -> None:
        """
        Args:
            limits: path prefix -> maximum file size in bytes
        """
        self.app = app
        self._limits = limits

    def _limit_for(self, path: str) -> Optional[int]:
        for prefix, limit in self._limits.items():
            if path.startswith(prefix):
                return limit + MULTIPART_OVERHEAD_BYTES
        return None

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or scope["method"] not in ("POST", "PUT"):
            await self.app(scope, receive, send)
            return

        limit = self._limit_for(scope["path"])
        if limit is None:
            await self.app(scope, receive, send)
            return

        headers = dict(scope.get("headers") or [])
        content_length = headers.get(b"content-length", b"").decode("latin-1")
        try:
            check_declared_size(content_length, limit)
        except PayloadTooLarge as e:
            logger.warning(
                "Rejected oversized upload",
                extra={"path": scope["path"], "content_length": content_length}
            )
            response = JSONResponse(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                content={"detail": e.message},
            )
            await response(scope, receive, send)
            return

        received = 0

        async def limited_receive() -> Message:
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > limit:
                    raise HTTPException(
                        status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                        detail=f"Request body exceeds the {limit} byte limit",
                    )
            return message

        await self.app(scope, limited_receive, send)
