"""
Request identity and context enrichment.

Request-scoped metadata lives in a ``ContextVar`` so that concurrent requests
(threads or asyncio tasks) never see each other's request id. Code running
outside any request scope shares one process-wide context, which gives a CLI
or worker process a single stable id for its whole lifetime.

Usage:
    with request_scope(ip_address="10.0.0.7", user_agent="curl/8.0"):
        logger.info("Order created", {"order_id": 7})   # tagged with req_...
"""

from __future__ import annotations

import threading
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any, Iterator, Mapping, Optional

from .sanitizer import sanitize

REQUEST_ID_PREFIX = "req_"
UNKNOWN = "unknown"


def generate_request_id() -> str:
    return f"{REQUEST_ID_PREFIX}{uuid.uuid4().hex}"


@dataclass
class RequestContext:
    """Ambient metadata of one logical request.

    The request id is generated on first access and never changes afterwards.
    """

    session_id: Optional[str] = None
    user_id: Optional[Any] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    _request_id: Optional[str] = field(default=None, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    @property
    def request_id(self) -> str:
        if self._request_id is None:
            with self._lock:
                if self._request_id is None:
                    self._request_id = generate_request_id()
        return self._request_id


# =============================================================================
# Global State
# =============================================================================

_request_context: ContextVar[Optional[RequestContext]] = ContextVar("codeflow_request_context", default=None)
_process_context = RequestContext()
_process_lock = threading.Lock()


def current_request_context() -> RequestContext:
    """Context of the active request scope, else the process-wide one."""
    ctx = _request_context.get()
    if ctx is not None:
        return ctx
    with _process_lock:
        return _process_context


def current_request_id() -> str:
    """Request id shared by every event of the current request (``req_...``)."""
    return current_request_context().request_id


def reset_request_identity() -> None:
    """Discard the process-wide context; the next event gets a fresh id."""
    global _process_context
    with _process_lock:
        _process_context = RequestContext()


@contextmanager
def request_scope(
    *,
    session_id: Optional[str] = None,
    user_id: Optional[Any] = None,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> Iterator[RequestContext]:
    """
    Open a request-local context for the duration of the ``with`` block.

    Works in sync and async code alike; asyncio tasks created inside the block
    inherit the scope.
    """
    ctx = RequestContext(
        session_id=session_id,
        user_id=user_id,
        ip_address=ip_address,
        user_agent=user_agent,
    )
    token = _request_context.set(ctx)
    try:
        yield ctx
    finally:
        _request_context.reset(token)


def bind_request_context(
    *,
    session_id: Optional[str] = None,
    user_id: Optional[Any] = None,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> RequestContext:
    """
    Fill ambient fields of the current context once they become known
    (e.g. after authentication). ``None`` arguments leave fields untouched.
    """
    ctx = current_request_context()
    if session_id is not None:
        ctx.session_id = session_id
    if user_id is not None:
        ctx.user_id = user_id
    if ip_address is not None:
        ctx.ip_address = ip_address
    if user_agent is not None:
        ctx.user_agent = user_agent
    return ctx


def build_context(caller_context: Optional[Mapping[str, Any]] = None) -> dict[str, Any]:
    """
    Build the enriched context of one event.

    Base keys come first (``request_id``, ``session_id`` and ``user_id`` when
    known, ``ip_address`` and ``user_agent`` defaulting to ``"unknown"``);
    the sanitized caller context is merged on top and wins on collisions.
    """
    ctx = current_request_context()
    context: dict[str, Any] = {"request_id": ctx.request_id}
    if ctx.session_id is not None:
        context["session_id"] = ctx.session_id
    if ctx.user_id is not None:
        context["user_id"] = ctx.user_id
    context["ip_address"] = ctx.ip_address or UNKNOWN
    context["user_agent"] = ctx.user_agent or UNKNOWN
    context.update(sanitize(caller_context))
    return context
