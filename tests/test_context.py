"""Tests for chainmux.context — the current request as each layer binds it."""

import anyio
import pytest

from chainmux.context import bind_request, get_request
from chainmux.http.request import Request
from chainmux.http.response import Response
from chainmux.middleware import with_values
from chainmux.middleware.protocol import Handler
from chainmux.router import Router
from chainmux.testing import TestClient


class TestBindRequest:
    def test_get_request_raises_outside_context(self) -> None:
        """get_request raises LookupError when no request is active."""
        with pytest.raises(LookupError):
            get_request()

    def test_bind_and_reset(self) -> None:
        request = Request.build("GET", "/test")
        with bind_request(request) as bound:
            assert bound is request
            assert get_request() is request
        with pytest.raises(LookupError):
            get_request()

    def test_inner_binding_restores_outer(self) -> None:
        outer = Request.build("GET", "/outer")
        inner = outer.with_path("/inner")
        with bind_request(outer):
            with bind_request(inner):
                assert get_request().path == "/inner"
            assert get_request() is outer

    def test_reset_on_error(self) -> None:
        with pytest.raises(RuntimeError), bind_request(Request.build("GET", "/")):
            msg = "boom"
            raise RuntimeError(msg)
        with pytest.raises(LookupError):
            get_request()


class TestCurrentRequestInPipeline:
    @pytest.mark.asyncio
    async def test_handler_sees_matched_request(self) -> None:
        router = Router()

        @router.get("/u/{id}")
        def show(request: Request) -> Response:
            current = get_request()
            return Response(
                f"{current.value('user')}|{current.path_value('id')}|{request.value('user')}"
            )

        router.add_middleware(with_values(user="alice"))

        async with TestClient(router) as client:
            response = await client.get("/u/7")

        assert response.text == "alice|7|alice"

    @pytest.mark.asyncio
    async def test_handler_gets_the_same_object(self) -> None:
        seen: list[bool] = []

        def capture(request: Request) -> Response:
            seen.append(get_request() is request)
            return Response("ok")

        router = Router()
        router.get("/", capture)

        await router.serve(Request.build("GET", "/"))

        assert seen == [True]

    @pytest.mark.asyncio
    async def test_middleware_sees_request_before_matching(self) -> None:
        seen: list[str] = []

        def observe(next: Handler) -> Handler:
            async def handler(request: Request) -> Response:
                seen.append(get_request().pattern)
                response = await next(request)
                seen.append(get_request().pattern)
                return response

            return handler

        router = Router()
        router.get("/x", lambda request: Response("ok"))
        router.add_middleware(observe)

        async with TestClient(router) as client:
            await client.get("/x")

        assert seen == ["", ""]

    @pytest.mark.asyncio
    async def test_nested_router_rebinds_then_restores(self) -> None:
        seen: list[str] = []

        api = Router()
        api.get("/api/users/{id}", lambda request: Response(get_request().pattern))

        def observe(next: Handler) -> Handler:
            async def handler(request: Request) -> Response:
                response = await next(request)
                seen.append(get_request().pattern)
                return response

            return handler

        api.add_middleware(observe)
        outer = Router()
        outer.handle("/api/", api)

        response = await outer.serve(Request.build("GET", "/api/users/1"))

        assert response.text == "GET /api/users/{id}"
        assert seen == ["/api/"]

    @pytest.mark.asyncio
    async def test_concurrent_requests_isolated(self) -> None:
        router = Router()

        @router.get("/items/{id}")
        async def show(request: Request) -> Response:
            await anyio.sleep(0)
            return Response(get_request().path_value("id"))

        results: dict[str, str] = {}

        async def fetch(client: TestClient, item: str) -> None:
            results[item] = (await client.get(f"/items/{item}")).text

        async with TestClient(router) as client, anyio.create_task_group() as tg:
            for item in ("1", "2", "3", "4"):
                tg.start_soon(fetch, client, item)

        assert results == {"1": "1", "2": "2", "3": "3", "4": "4"}
