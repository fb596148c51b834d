from __future__ import annotations

from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.types import ASGIApp

from .context import request_scope

REQUEST_ID_HEADER = "x-request-id"


def _client_ip(request: Request) -> Optional[str]:
    if request.client and request.client.host:
        return request.client.host
    return None


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Open a logging request scope for every HTTP request.

    Events logged while the request is handled carry the peer address, the
    User-Agent and, when the client sends them, the session and user ids.
    The generated request id is echoed in the ``X-Request-ID`` response header.
    Handlers that learn the user later (after authentication) can call
    `codeflow_logger.bind_request_context` to add it.
    """

    def __init__(
        self,
        app: ASGIApp,
        *,
        session_header: str = "x-session-id",
        user_header: str = "x-user-id",
    ):
        super().__init__(app)
        self._session_header = session_header
        self._user_header = user_header

    async def dispatch(self, request: Request, call_next):
        with request_scope(
            session_id=request.headers.get(self._session_header) or None,
            user_id=request.headers.get(self._user_header) or None,
            ip_address=_client_ip(request),
            user_agent=request.headers.get("user-agent") or None,
        ) as ctx:
            response = await call_next(request)
            response.headers[REQUEST_ID_HEADER] = ctx.request_id
        return response
