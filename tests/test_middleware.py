"""Tests for chainmux.middleware — handler adaptation and built-in middleware."""

import logging

import pytest

from chainmux.http.request import Request
from chainmux.http.response import Response
from chainmux.middleware import (
    Recoverer,
    RecovererConfig,
    as_handler,
    request_logger,
    strip_prefix,
    with_values,
)
from chainmux.router import Router


def _ok(request: Request) -> Response:
    return Response("ok")


def _boom(request: Request) -> Response:
    msg = "kaboom"
    raise RuntimeError(msg)


class TestAsHandler:
    @pytest.mark.asyncio
    async def test_async_function_returned_unchanged(self) -> None:
        async def handler(request: Request) -> Response:
            return Response("async")

        assert as_handler(handler) is handler

    @pytest.mark.asyncio
    async def test_sync_function_wrapped(self) -> None:
        handler = as_handler(_ok)
        response = await handler(Request.build("GET", "/"))
        assert response.text == "ok"
        assert handler.__wrapped__ is _ok

    @pytest.mark.asyncio
    async def test_servable_object(self) -> None:
        class Hello:
            async def serve(self, request: Request) -> Response:
                return Response("hello")

        response = await as_handler(Hello())(Request.build("GET", "/"))
        assert response.text == "hello"

    @pytest.mark.asyncio
    async def test_sync_servable_object(self) -> None:
        class Hello:
            def serve(self, request: Request) -> Response:
                return Response("sync hello")

        response = await as_handler(Hello())(Request.build("GET", "/"))
        assert response.text == "sync hello"

    @pytest.mark.asyncio
    async def test_callable_object(self) -> None:
        class Callable:
            def __call__(self, request: Request) -> Response:
                return Response("called")

        response = await as_handler(Callable())(Request.build("GET", "/"))
        assert response.text == "called"

    @pytest.mark.asyncio
    async def test_router_is_servable(self) -> None:
        router = Router()
        router.get("/", _ok)
        response = await as_handler(router)(Request.build("GET", "/"))
        assert response.text == "ok"

    def test_rejects_non_handler(self) -> None:
        with pytest.raises(TypeError, match="not a handler"):
            as_handler(42)


class TestRequestLogger:
    @pytest.mark.asyncio
    async def test_logs_method_path_status(self, caplog: pytest.LogCaptureFixture) -> None:
        router = Router()
        router.get("/users/{id}", _ok)
        router.add_middleware(request_logger())

        with caplog.at_level(logging.INFO, logger="chainmux.middleware"):
            await router.serve(Request.build("GET", "/users/1?full=1"))

        assert "GET /users/1?full=1 -> 200" in caplog.text

    @pytest.mark.asyncio
    async def test_logs_fallback_status(self, caplog: pytest.LogCaptureFixture) -> None:
        router = Router()
        router.add_middleware(request_logger())

        with caplog.at_level(logging.INFO, logger="chainmux.middleware"):
            await router.serve(Request.build("GET", "/missing"))

        assert "GET /missing -> 404" in caplog.text

    @pytest.mark.asyncio
    async def test_custom_logger_and_level(self, caplog: pytest.LogCaptureFixture) -> None:
        router = Router()
        router.get("/", _ok)
        router.add_middleware(request_logger(logging.getLogger("myapp.access"), level=logging.DEBUG))

        with caplog.at_level(logging.DEBUG, logger="myapp.access"):
            await router.serve(Request.build("GET", "/"))

        records = [r for r in caplog.records if r.name == "myapp.access"]
        assert len(records) == 1
        assert records[0].levelno == logging.DEBUG


class TestRecoverer:
    @pytest.mark.asyncio
    async def test_exception_becomes_500(self, caplog: pytest.LogCaptureFixture) -> None:
        router = Router()
        router.get("/boom", _boom)
        router.add_middleware(Recoverer())

        with caplog.at_level(logging.ERROR, logger="chainmux.middleware"):
            response = await router.serve(Request.build("GET", "/boom"))

        assert response.status == 500
        assert response.text == "Internal Server Error\n"
        assert "recovered from error in GET /boom" in caplog.text

    @pytest.mark.asyncio
    async def test_traceback_shown_when_enabled(self) -> None:
        router = Router()
        router.get("/boom", _boom)
        router.add_middleware(Recoverer(RecovererConfig(show_traceback=True)))

        response = await router.serve(Request.build("GET", "/boom"))

        assert "RuntimeError: kaboom" in response.text

    @pytest.mark.asyncio
    async def test_without_recoverer_exception_propagates(self) -> None:
        router = Router()
        router.get("/boom", _boom)
        with pytest.raises(RuntimeError, match="kaboom"):
            await router.serve(Request.build("GET", "/boom"))

    @pytest.mark.asyncio
    async def test_only_inner_layers_are_covered(self) -> None:
        def explode(next):
            async def handler(request: Request) -> Response:
                msg = "outer failure"
                raise ValueError(msg)

            return handler

        router = Router()
        router.get("/", _ok)
        router.add_middleware(explode)
        router.add_middleware(Recoverer())

        with pytest.raises(ValueError, match="outer failure"):
            await router.serve(Request.build("GET", "/"))

    @pytest.mark.asyncio
    async def test_success_passes_through(self) -> None:
        router = Router()
        router.get("/", _ok)
        router.add_middleware(Recoverer())
        response = await router.serve(Request.build("GET", "/"))
        assert response.status == 200


class TestStripPrefix:
    @pytest.mark.asyncio
    async def test_mount_root_router_under_prefix(self) -> None:
        api = Router()
        api.get("/users", _ok)
        api.add_middleware(strip_prefix("/api"))
        outer = Router()
        outer.handle("/api/", api)

        response = await outer.serve(Request.build("GET", "/api/users"))
        assert response.text == "ok"

    @pytest.mark.asyncio
    async def test_exact_prefix_becomes_root(self) -> None:
        seen: list[str] = []

        def capture(request: Request) -> Response:
            seen.append(request.path)
            return Response("ok")

        router = Router()
        router.handle_func("/", capture)
        router.add_middleware(strip_prefix("/api/"))

        await router.serve(Request.build("GET", "/api"))

        assert seen == ["/"]

    @pytest.mark.asyncio
    async def test_missing_prefix_is_404(self) -> None:
        router = Router()
        router.handle_func("/", _ok)
        router.add_middleware(strip_prefix("/api"))

        response = await router.serve(Request.build("GET", "/apix"))

        assert response.status == 404
        assert response.text == "404 page not found\n"


class TestWithValues:
    @pytest.mark.asyncio
    async def test_values_attached(self) -> None:
        seen: dict[str, object] = {}

        def capture(request: Request) -> Response:
            seen.update(request.context)
            return Response("ok")

        router = Router()
        router.get("/", capture)
        router.add_middleware(with_values({"env": "test"}, region="eu"))

        await router.serve(Request.build("GET", "/"))

        assert seen == {"env": "test", "region": "eu"}

    @pytest.mark.asyncio
    async def test_later_middleware_overrides(self) -> None:
        seen: list[object] = []

        def capture(request: Request) -> Response:
            seen.append(request.value("env"))
            return Response("ok")

        router = Router()
        router.get("/", capture)
        router.add_middleware(with_values(env="outer"))
        router.add_middleware(with_values(env="inner"))

        await router.serve(Request.build("GET", "/"))

        assert seen == ["inner"]
