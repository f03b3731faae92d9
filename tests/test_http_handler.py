"""
Tests for the httpx JSON handler.
"""

import httpx
import pytest

from ctrequest import ABSENT, CTRequest, HandlerError
from ctrequest.handlers import FetchError, HttpJsonHandler, RateLimitError

BASE_URL = "https://api.example.test/1.1"


class MockApi:
    """Programmable httpx transport recording every request."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        return httpx.Response(
            response.status_code,
            headers=response.headers,
            content=response.content,
        )

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


def make_handler(api: MockApi, **kwargs) -> HttpJsonHandler:
    kwargs.setdefault("max_retries", 3)
    return HttpJsonHandler(
        BASE_URL,
        transport=api.transport(),
        min_wait=0,
        max_wait=0,
        **kwargs,
    )


class TestHttpJsonHandler:
    """Test cases for HttpJsonHandler."""

    @pytest.mark.asyncio
    async def test_get_json(self):
        api = MockApi(httpx.Response(200, json={"statuses": [{"id": 1}]}))

        async with make_handler(api) as handler:
            data = await handler("search/tweets.json", {"q": "banana", "count": 100})

        assert data == {"statuses": [{"id": 1}]}
        request = api.requests[0]
        assert request.method == "GET"
        assert request.url.path == "/1.1/search/tweets.json"
        assert request.url.params["q"] == "banana"
        assert request.url.params["count"] == "100"
        assert request.headers["Accept"] == "application/json"

    @pytest.mark.asyncio
    async def test_custom_headers(self):
        api = MockApi(httpx.Response(200, json={}))

        async with make_handler(api, headers={"Authorization": "Bearer t0k3n"}) as handler:
            await handler("me")

        assert api.requests[0].headers["Authorization"] == "Bearer t0k3n"

    @pytest.mark.asyncio
    async def test_bind(self):
        api = MockApi(httpx.Response(200, json={"ok": True}))

        async with make_handler(api) as handler:
            search = handler.bind("search/tweets.json")
            data = await search({"q": "apple"})

        assert data == {"ok": True}
        assert api.requests[0].url.params["q"] == "apple"

    @pytest.mark.asyncio
    async def test_retries_server_errors(self):
        api = MockApi(
            httpx.Response(503),
            httpx.Response(502),
            httpx.Response(200, json={"ok": True}),
        )

        async with make_handler(api) as handler:
            data = await handler("status")

        assert data == {"ok": True}
        assert len(api.requests) == 3

    @pytest.mark.asyncio
    async def test_client_error_not_retried(self):
        api = MockApi(httpx.Response(404, json={"error": "not found"}))

        async with make_handler(api) as handler:
            with pytest.raises(FetchError) as exc_info:
                await handler("missing")

        assert exc_info.value.status_code == 404
        assert len(api.requests) == 1

    @pytest.mark.asyncio
    async def test_rate_limit_exhausts_retries(self):
        api = MockApi(httpx.Response(429, headers={"Retry-After": "15"}))

        async with make_handler(api, max_retries=2) as handler:
            with pytest.raises(RateLimitError) as exc_info:
                await handler("search")

        assert exc_info.value.retry_after == 15.0
        assert exc_info.value.status_code == 429
        assert len(api.requests) == 2

    @pytest.mark.asyncio
    async def test_transport_error(self):
        api = MockApi(httpx.ConnectError("connection refused"))

        async with make_handler(api, max_retries=2) as handler:
            with pytest.raises(FetchError, match="Transport error"):
                await handler("search")

        assert len(api.requests) == 2

    @pytest.mark.asyncio
    @pytest.mark.parametrize("path", ["search/tweets.json", "/search/tweets.json"])
    async def test_transport_error_reports_request_url(self, path):
        api = MockApi(httpx.ConnectError("connection refused"))

        async with make_handler(api, max_retries=1) as handler:
            with pytest.raises(FetchError) as exc_info:
                await handler(path, {"q": "banana"})

        assert exc_info.value.url == f"{BASE_URL}/search/tweets.json?q=banana"

    @pytest.mark.asyncio
    async def test_invalid_json(self):
        api = MockApi(httpx.Response(200, text="<html>oops</html>"))

        async with make_handler(api) as handler:
            with pytest.raises(FetchError, match="not valid JSON"):
                await handler("page")

    def test_errors_are_handler_errors(self):
        assert issubclass(FetchError, HandlerError)
        assert issubclass(RateLimitError, FetchError)

    @pytest.mark.asyncio
    async def test_aclose_is_idempotent(self):
        handler = make_handler(MockApi(httpx.Response(200, json={})))
        await handler("x")

        await handler.aclose()
        await handler.aclose()


class TestHttpJsonHandlerThroughMediator:
    """The HTTP handler used behind CTRequest."""

    @pytest.mark.asyncio
    async def test_cached_search(self, cache_dir):
        api = MockApi(httpx.Response(200, json={"data": ["tweet"]}))

        async with make_handler(api) as handler:
            req = CTRequest(
                handler=handler.bind("search/tweets.json"),
                scope="twitter search api",
                ctype="file",
                cparams=str(cache_dir),
                ttype="RateLimiter",
                tparams=[5, 1000],
            )
            params = [{"q": "banana since:2011-07-11", "count": 100}]

            first = await req.issue(params, check_cache=True)
            second = await req.issue(params, check_cache=True)

        assert first == second == {"data": ["tweet"]}
        assert len(api.requests) == 1
        assert req.bulkcache([params, [{"q": "apple"}]])[0] == {"data": ["tweet"]}

    @pytest.mark.asyncio
    async def test_fetch_error_reaches_caller(self, cache_dir):
        api = MockApi(httpx.Response(401, json={"errors": ["bad auth"]}))

        async with make_handler(api) as handler:
            req = CTRequest(handler=handler.bind("search"), ctype="file", cparams=str(cache_dir))

            with pytest.raises(FetchError):
                await req.issue([{"q": "x"}])

        assert req.cache([{"q": "x"}]) is ABSENT
