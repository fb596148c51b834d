"""
Request scope middleware tests (Starlette).
"""

from __future__ import annotations

import pytest
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route
from starlette.testclient import TestClient

from codeflow_logger import bind_request_context, current_request_id
from codeflow_logger.middleware import REQUEST_ID_HEADER, RequestContextMiddleware


@pytest.fixture
def client(logger):
    async def orders(request: Request) -> JSONResponse:
        logger.info("Order listed", {"page": 1})
        return JSONResponse({"request_id": current_request_id()})

    async def login(request: Request) -> JSONResponse:
        bind_request_context(user_id="u-42")
        logger.info("User authenticated")
        return JSONResponse({"ok": True})

    app = Starlette(
        routes=[Route("/orders", orders), Route("/login", login, methods=["POST"])],
        middleware=[Middleware(RequestContextMiddleware)],
    )
    with TestClient(app) as client:
        yield client


# ================================
# Request scope
# ================================


class TestRequestContextMiddleware:
    def test_request_id_header_matches_logged_event(self, client, logger, read_events):
        response = client.get("/orders")
        request_id = response.headers[REQUEST_ID_HEADER]
        assert request_id.startswith("req_")
        assert response.json()["request_id"] == request_id
        (event,) = read_events(logger.registry.log_path)
        assert event["context"]["request_id"] == request_id
        assert event["context"]["page"] == 1

    def test_peer_and_user_agent_recorded(self, client, logger, read_events):
        client.get("/orders")
        (event,) = read_events(logger.registry.log_path)
        assert event["context"]["ip_address"] == "testclient"
        assert event["context"]["user_agent"] == "testclient"
        assert "session_id" not in event["context"]
        assert "user_id" not in event["context"]

    def test_session_and_user_headers(self, client, logger, read_events):
        client.get("/orders", headers={"X-Session-ID": "sess-1", "X-User-ID": "7"})
        (event,) = read_events(logger.registry.log_path)
        assert event["context"]["session_id"] == "sess-1"
        assert event["context"]["user_id"] == "7"

    def test_each_request_gets_own_id(self, client):
        first = client.get("/orders").headers[REQUEST_ID_HEADER]
        second = client.get("/orders").headers[REQUEST_ID_HEADER]
        assert first != second
        assert current_request_id() not in {first, second}

    def test_bind_inside_handler(self, client, logger, read_events):
        response = client.post("/login")
        (event,) = read_events(logger.registry.log_path)
        assert event["context"]["user_id"] == "u-42"
        assert event["context"]["request_id"] == response.headers[REQUEST_ID_HEADER]
