"""Tests for roost.app — HttpRouter, the request pipeline, and lifespan."""

import logging
from typing import Any

import pytest

from roost import HttpRouter, RouterConfig, Status, create_router
from roost.errors import PayloadError
from roost.http.request import Request
from roost.http.response import ServerResponse
from roost.testing import TestClient


def _capture() -> tuple[list[dict[str, Any]], Any]:
    messages: list[dict[str, Any]] = []

    async def send(message: dict[str, Any]) -> None:
        messages.append(message)

    return messages, send


class TestRendering:
    @pytest.mark.asyncio
    async def test_rest_payload_rendered_as_json(self) -> None:
        app = HttpRouter()
        app.get("/", lambda request, response: response.rest.set("ok", True))

        response = await TestClient(app).get("/")
        assert response.status == 200
        assert response.content_type == "text/json"
        assert response.text == '{\n  "ok": true\n}'
        assert response.headers["content-length"] == str(len(response.body))
        assert response.finished

    @pytest.mark.asyncio
    async def test_content_defaults_to_html(self) -> None:
        app = HttpRouter()
        app.get("/", lambda request, response: response.content.set("<p>hi</p>"))

        response = await TestClient(app).get("/")
        assert response.status == 200
        assert response.content_type == "text/html"
        assert response.text == "<p>hi</p>"

    @pytest.mark.asyncio
    async def test_content_keeps_existing_content_type(self) -> None:
        app = HttpRouter()

        @app.get("/")
        def plain(request: Request, response: ServerResponse) -> None:
            response.set_header("Content-Type", "text/plain")
            response.content.set("hi")

        response = await TestClient(app).get("/")
        assert response.content_type == "text/plain"

    @pytest.mark.asyncio
    async def test_content_wins_over_rest(self) -> None:
        app = HttpRouter()

        @app.get("/")
        def both(request: Request, response: ServerResponse) -> None:
            response.rest.set("ignored", True)
            response.content.set("content")

        response = await TestClient(app).get("/")
        assert response.text == "content"
        assert response.content_type == "text/html"

    @pytest.mark.asyncio
    async def test_handler_status_kept(self) -> None:
        app = HttpRouter()

        @app.post("/users")
        def create(request: Request, response: ServerResponse) -> None:
            response.status = 201
            response.rest.set_results([{"id": 1}], total=1)

        response = await TestClient(app).post("/users")
        assert response.status == 201
        assert response.json() == {"error": False, "results": [{"id": 1}], "total": 1}

    @pytest.mark.asyncio
    async def test_json_indent_from_config(self) -> None:
        app = HttpRouter(RouterConfig(json_indent=4, rest_content_type="application/json"))
        app.get("/", lambda request, response: response.rest.set("a", 1))

        response = await TestClient(app).get("/")
        assert response.text == '{\n    "a": 1\n}'
        assert response.content_type == "application/json"

    @pytest.mark.asyncio
    async def test_rest_payload_keeps_non_ascii(self) -> None:
        app = HttpRouter()
        app.get("/", lambda request, response: response.rest.set("name", "caf\u00e9"))

        response = await TestClient(app).get("/")
        assert response.text == '{\n  "name": "caf\u00e9"\n}'
        assert response.headers["content-length"] == str(len(response.body))

    @pytest.mark.asyncio
    async def test_unmatched_request_sends_nothing(self) -> None:
        app = HttpRouter()
        calls: list[str] = []
        app.on("response", lambda request, response: calls.append("response"))

        response = await TestClient(app).get("/missing")
        assert not response.started
        assert response.status is None
        assert calls == []


class TestStages:
    @pytest.mark.asyncio
    async def test_request_stage_runs_before_routes(self) -> None:
        app = HttpRouter()
        calls: list[str] = []
        app.on("request", lambda request, response: calls.append("request"))
        app.on("response", lambda request, response: calls.append("response"))

        @app.get("/")
        def index(request: Request, response: ServerResponse) -> None:
            calls.append("route")
            response.content.set("ok")

        await TestClient(app).get("/")
        assert calls == ["request", "route", "response"]

    @pytest.mark.asyncio
    async def test_incomplete_request_stage_skips_everything(self) -> None:
        app = HttpRouter()
        calls: list[str] = []

        @app.on("request", priority=10)
        def reject(request: Request, response: ServerResponse) -> Status:
            return Status.INCOMPLETE

        @app.get("/")
        def index(request: Request, response: ServerResponse) -> None:
            calls.append("route")
            response.content.set("never")

        app.on("response", lambda request, response: calls.append("response"))

        response = await TestClient(app).get("/")
        assert calls == []
        assert not response.started

    @pytest.mark.asyncio
    async def test_incomplete_route_skips_render(self) -> None:
        app = HttpRouter()

        @app.get("/")
        def index(request: Request, response: ServerResponse) -> Status:
            response.content.set("buffered")
            return Status.INCOMPLETE

        response = await TestClient(app).get("/")
        assert not response.started

    @pytest.mark.asyncio
    async def test_handler_that_writes_still_gets_response_stage(self) -> None:
        app = HttpRouter()
        calls: list[str] = []

        @app.get("/")
        async def stream(request: Request, response: ServerResponse) -> None:
            await response.write_head(202, {"Content-Type": "text/plain"})
            await response.write("part one, ")
            await response.end("part two")

        app.on("response", lambda request, response: calls.append("response"))

        response = await TestClient(app).get("/")
        assert response.status == 202
        assert response.text == "part one, part two"
        assert calls == ["response"]

    @pytest.mark.asyncio
    async def test_route_info_on_request_and_response(self) -> None:
        app = HttpRouter()
        seen: dict[str, Any] = {}

        @app.get("/users/:id")
        def show(request: Request, response: ServerResponse) -> None:
            seen["params"] = request.params
            seen["response"] = response.route.parameters
            response.rest.set("id", request.stage["id"])

        response = await TestClient(app).get("/users/42")
        assert seen == {"params": {"id": "42"}, "response": {"id": "42"}}
        assert response.json() == {"id": "42"}

    @pytest.mark.asyncio
    async def test_query_and_body_in_stage(self) -> None:
        app = HttpRouter()

        @app.post("/search/:scope")
        def search(request: Request, response: ServerResponse) -> None:
            response.rest.set(request.stage)

        response = await TestClient(app).post(
            "/search/all?q=owls&page=1", json={"page": 2, "scope": "body"}
        )
        assert response.json() == {"q": "owls", "page": 2, "scope": "all"}

    @pytest.mark.asyncio
    async def test_encoded_delimiters_stay_in_path(self) -> None:
        app = HttpRouter()
        app.get("/files/:name", lambda request, response: response.rest.set(request.params))

        response = await TestClient(app).get("/files/a%3Fb%23c?download=1")
        assert response.json() == {"name": "a%3Fb%23c"}

    @pytest.mark.asyncio
    async def test_event_built_from_raw_path(self) -> None:
        app = HttpRouter()
        seen: list[str] = []

        @app.get("/files/:name")
        def show(request: Request, response: ServerResponse) -> None:
            seen.append(request.route.event)
            response.rest.set(request.params)

        scope = {
            "type": "http",
            "method": "GET",
            "path": "/files/a?b",
            "raw_path": b"/files/a%3Fb",
            "query_string": b"",
            "headers": [],
        }

        async def receive() -> dict[str, Any]:
            return {"type": "http.request", "body": b"", "more_body": False}

        messages, send = _capture()
        await app(scope, receive, send)
        assert seen == ["GET /files/a%3Fb"]
        assert messages[-1]["body"] == b'{\n  "name": "a%3Fb"\n}'

    @pytest.mark.asyncio
    async def test_server_info(self) -> None:
        app = HttpRouter()

        @app.get("/")
        def info(request: Request, response: ServerResponse) -> None:
            response.rest.set({"origin": request.server.origin, "port": request.server.port})

        response = await TestClient(app).get("/")
        assert response.json() == {"origin": "http://testserver", "port": 80}

    @pytest.mark.asyncio
    async def test_disabled_traits(self) -> None:
        app = HttpRouter(RouterConfig(content=False, rest=False, server=False, stage=False))
        seen: dict[str, Any] = {}

        @app.get("/users/:id")
        def show(request: Request, response: ServerResponse) -> None:
            seen.update(
                content=response.content,
                rest=response.rest,
                server=request.server,
                stage=request.stage,
                params=request.params,
            )

        response = await TestClient(app).get("/users/1")
        assert seen == {
            "content": None,
            "rest": None,
            "server": None,
            "stage": None,
            "params": {"id": "1"},
        }
        assert not response.started


class TestErrors:
    @pytest.mark.asyncio
    async def test_route_error_goes_to_next(self) -> None:
        app = HttpRouter()
        errors: list[Exception] = []

        @app.get("/boom")
        def boom(request: Request, response: ServerResponse) -> None:
            raise ValueError("boom")

        messages, send = _capture()
        await app.handle(Request(method="GET", url="/boom"), ServerResponse(send), errors.append)
        assert len(errors) == 1
        assert isinstance(errors[0], ValueError)
        assert messages == []

    @pytest.mark.asyncio
    async def test_async_next(self) -> None:
        app = HttpRouter()
        errors: list[Exception] = []

        @app.on("request")
        def boom(request: Request, response: ServerResponse) -> None:
            raise RuntimeError("request stage")

        async def next_handler(error: Exception) -> None:
            errors.append(error)

        _, send = _capture()
        await app.handle(Request(method="GET", url="/"), ServerResponse(send), next_handler)
        assert [str(error) for error in errors] == ["request stage"]

    @pytest.mark.asyncio
    async def test_response_stage_error_goes_to_next(self) -> None:
        app = HttpRouter()
        errors: list[Exception] = []
        app.get("/", lambda request, response: response.content.set("ok"))

        @app.on("response")
        def boom(request: Request, response: ServerResponse) -> None:
            raise KeyError("late")

        messages, send = _capture()
        await app.handle(Request(method="GET", url="/"), ServerResponse(send), errors.append)
        assert isinstance(errors[0], KeyError)
        assert messages[-1]["body"] == b"ok"

    @pytest.mark.asyncio
    async def test_default_next_emits_error_event(self, caplog: pytest.LogCaptureFixture) -> None:
        app = HttpRouter()

        @app.get("/boom")
        def boom(request: Request, response: ServerResponse) -> None:
            raise ValueError("boom")

        @app.on("error")
        async def error_page(error: Exception, request: Request, response: ServerResponse) -> None:
            await response.write_head(500)
            await response.end(f"failed: {error}")

        with caplog.at_level(logging.ERROR, logger="roost.server"):
            response = await TestClient(app).get("/boom")

        assert response.status == 500
        assert response.text == "failed: boom"
        assert "GET /boom failed" in caplog.text

    @pytest.mark.asyncio
    async def test_malformed_json_body(self) -> None:
        app = HttpRouter()
        calls: list[str] = []
        errors: list[Exception] = []
        app.post("/", lambda request, response: calls.append("route"))
        app.on("error", lambda error, request, response: errors.append(error))

        response = await TestClient(app).post(
            "/", body=b"{not json", headers={"content-type": "application/json"}
        )
        assert calls == []
        assert isinstance(errors[0], PayloadError)
        assert errors[0].status == 400
        assert not response.started

    @pytest.mark.asyncio
    async def test_oversized_body(self) -> None:
        app = HttpRouter(RouterConfig(max_body_size=4))
        errors: list[Exception] = []
        app.on("error", lambda error, request, response: errors.append(error))

        await TestClient(app).post("/", body=b"too large")
        assert isinstance(errors[0], PayloadError)
        assert errors[0].status == 413


class TestRouterSurface:
    @pytest.mark.asyncio
    async def test_use_mounts_other_routers(self) -> None:
        users = HttpRouter()
        users.get("/users", lambda request, response: response.rest.set("users", []))

        app = create_router().use(users)
        response = await TestClient(app).get("/users")
        assert response.json() == {"users": []}
        assert users.meta is app.meta
        assert [(route.verb, route.path) for route in app.routes] == [("GET", "/users")]

    @pytest.mark.asyncio
    async def test_at_and_route_to(self) -> None:
        app = HttpRouter()
        calls: list[str] = []
        app.at("/items").get(lambda request, response: calls.append("get"))

        status = await app.route_to("GET", "/items", Request(method="GET", url="/items"), None)
        assert status is Status.OK
        assert calls == ["get"]

    def test_unknown_attribute(self) -> None:
        with pytest.raises(AttributeError, match="fetch"):
            HttpRouter().fetch  # noqa: B018

    def test_create_router_defaults(self) -> None:
        app = create_router()
        assert app.config == RouterConfig()
        assert app.routes == []

    @pytest.mark.asyncio
    async def test_non_http_scope_ignored(self) -> None:
        messages, send = _capture()

        async def receive() -> dict[str, Any]:
            return {"type": "websocket.connect"}

        await HttpRouter()({"type": "websocket"}, receive, send)
        assert messages == []


class TestLifespan:
    @pytest.mark.asyncio
    async def test_startup_and_shutdown(self) -> None:
        app = HttpRouter()
        calls: list[str] = []
        app.on("startup", lambda router: calls.append("startup"))
        app.on("shutdown", lambda router: calls.append("shutdown"))

        sent = await TestClient(app).lifespan("startup", "shutdown")
        assert sent == ["lifespan.startup.complete", "lifespan.shutdown.complete"]
        assert calls == ["startup", "shutdown"]

    @pytest.mark.asyncio
    async def test_startup_receives_router(self) -> None:
        app = HttpRouter()
        seen: list[object] = []
        app.on("startup", seen.append)

        await TestClient(app).lifespan("startup", "shutdown")
        assert seen == [app]

    @pytest.mark.asyncio
    async def test_failed_startup(self) -> None:
        app = HttpRouter()

        @app.on("startup")
        def fail(router: HttpRouter) -> None:
            raise RuntimeError("no database")

        sent = await TestClient(app).lifespan("startup", "shutdown")
        assert sent == ["lifespan.startup.failed"]
