"""Tests for the FIG registry HTTP client."""

import httpx
import pytest

from figsync.errors import (
    ImageNotFound,
    ImageTooLarge,
    RateLimited,
    UpstreamFormatError,
    UpstreamTimeout,
    UpstreamUnavailable,
)
from figsync.mock_registry import PLACEHOLDER_PNG, SyntheticRegistry, create_mock_app
from figsync.models import PersonKind
from figsync.registry_client import RegistryClient


def _client(settings, handler) -> RegistryClient:
    return RegistryClient(settings, transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_fetch_sends_fixed_query_and_returns_array(settings):
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=[{"id": "C1"}])

    client = _client(settings, handler)
    try:
        data = await client.fetch_coaches()
    finally:
        await client.aclose()

    assert data == [{"id": "C1"}]
    assert client.requests_made == 1
    request = seen[0]
    assert request.url.path == "/api/coaches.php"
    assert request.url.params["function"] == "searchAcademic"
    assert request.url.params["discipline"] == "AER"
    assert request.url.params["lastname"] == ""
    assert request.headers["user-agent"] == settings.user_agent


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response, expected",
    [
        (httpx.Response(429), RateLimited),
        (httpx.Response(500), UpstreamUnavailable),
        (httpx.Response(503, text="maintenance"), UpstreamUnavailable),
        (httpx.Response(200, json={"error": "bad"}), UpstreamFormatError),
        (httpx.Response(200, text="<html>oops</html>"), UpstreamFormatError),
    ],
)
async def test_fetch_error_classification(settings, response, expected):
    client = _client(settings, lambda request: response)
    try:
        with pytest.raises(expected):
            await client.fetch(PersonKind.ATHLETES)
    finally:
        await client.aclose()


@pytest.mark.asyncio
async def test_fetch_timeout_is_classified(settings):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    client = _client(settings, handler)
    try:
        with pytest.raises(UpstreamTimeout) as excinfo:
            await client.fetch_judges()
    finally:
        await client.aclose()
    assert excinfo.value.status_code == 504


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error",
    [httpx.RemoteProtocolError, httpx.ReadError],
)
async def test_connection_aborted_mid_response_is_a_timeout(settings, error):
    def handler(request: httpx.Request) -> httpx.Response:
        raise error("connection dropped", request=request)

    client = _client(settings, handler)
    try:
        with pytest.raises(UpstreamTimeout):
            await client.fetch_coaches()
        with pytest.raises(UpstreamTimeout):
            await client.fetch_image("123")
    finally:
        await client.aclose()


@pytest.mark.asyncio
async def test_fetch_connection_error_is_unavailable(settings):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    client = _client(settings, handler)
    try:
        with pytest.raises(UpstreamUnavailable):
            await client.fetch_athletes()
    finally:
        await client.aclose()


@pytest.mark.asyncio
async def test_fetch_image_success(settings):
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params["id"] == "bpic_123"
        return httpx.Response(
            200,
            content=b"\x89PNG\r\n\x1a\n",
            headers={"content-type": "image/png", "etag": '"abc"'},
        )

    client = _client(settings, handler)
    try:
        image = await client.fetch_image("123")
    finally:
        await client.aclose()
    assert image.data == b"\x89PNG\r\n\x1a\n"
    assert image.content_type == "image/png"
    assert image.content_length == 8
    assert image.etag == '"abc"'


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response, expected",
    [
        (httpx.Response(404), ImageNotFound),
        (httpx.Response(429), RateLimited),
        (httpx.Response(200, content=b""), UpstreamFormatError),
        (
            httpx.Response(200, content=b"<html/>", headers={"content-type": "text/html"}),
            UpstreamFormatError,
        ),
        (
            httpx.Response(200, content=b"x" * 64, headers={"content-type": "image/jpeg"}),
            ImageTooLarge,
        ),
    ],
)
async def test_fetch_image_errors(settings, response, expected):
    settings.max_image_bytes = 32
    client = _client(settings, lambda request: response)
    try:
        with pytest.raises(expected):
            await client.fetch_image("123")
    finally:
        await client.aclose()


@pytest.mark.asyncio
async def test_against_mock_registry(settings):
    registry = SyntheticRegistry(athletes=12, coaches=3, judges=4, seed=7)
    client = RegistryClient(
        settings, transport=httpx.ASGITransport(app=create_mock_app(registry))
    )
    try:
        athletes = await client.fetch(PersonKind.ATHLETES)
        coaches = await client.fetch(PersonKind.COACHES)
        judges = await client.fetch(PersonKind.JUDGES)
        image = await client.fetch_image(athletes[0]["gymnastid"])
        with pytest.raises(ImageNotFound):
            await client.fetch_image("does-not-exist")
    finally:
        await client.aclose()

    assert len(athletes) == 12
    assert len(coaches) == 3
    assert len(judges) == 4
    assert image.data == PLACEHOLDER_PNG
    assert image.content_type == "image/png"
