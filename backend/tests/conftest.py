"""
Pantry Proxy Backend — Test Configuration (conftest.py)
========================================================

What:  Shared pytest fixtures for the entire test suite.
How:   Upstream services are replaced by an httpx.MockTransport routed through
       FakeUpstream, so no test touches the network. Settings are built
       explicitly (never from the environment).

Fixture Hierarchy (all function-scoped):
    ├── settings:          Settings with fake Grist/AI endpoints
    ├── upstream:          FakeUpstream recording every outbound request
    ├── document_client:   DocumentClient over the mock transport
    ├── ai_relay:          AIRelayService over the mock transport
    ├── sample_image_bytes: Minimal JPEG bytes
    └── test_client:       HTTPX AsyncClient talking to create_app() in-process
"""

from typing import Any, Callable, Dict, List, Tuple, Union

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from python_multipart.multipart import MultipartParser, parse_options_header

from pantry_proxy.config import Settings
from pantry_proxy.main import create_app
from pantry_proxy.services.ai_relay import AIRelayService
from pantry_proxy.services.document_client import DocumentClient

DOC_ROOT = "/api/docs/doc123"
AI_PATH = "/chat"


# ══════════════════════════════════════════════════════════════════════════
# Fake upstream
# ══════════════════════════════════════════════════════════════════════════

ResponseFactory = Callable[[httpx.Request], httpx.Response]


class FakeUpstream:
    """
    MockTransport handler that serves canned responses by (method, path).

    Responses are registered as factories so every request gets a fresh
    httpx.Response (streams can only be consumed once). Unregistered routes
    answer 404. Every request is recorded in `requests`.
    """

    def __init__(self):
        self.routes: Dict[Tuple[str, str], ResponseFactory] = {}
        self.requests: List[httpx.Request] = []

    def add(self, method: str, path: str, response: Union[ResponseFactory, Dict[str, Any]]) -> None:
        if callable(response):
            factory = response
        else:
            kwargs = dict(response)

            def factory(request: httpx.Request) -> httpx.Response:
                # Serve bytes content as an unread stream, as a real transport does.
                call_kwargs = dict(kwargs)
                content = call_kwargs.get("content")
                if isinstance(content, bytes):
                    async def body(data: bytes = content):
                        yield data
                    call_kwargs["content"] = body()
                return httpx.Response(**call_kwargs)
        self.routes[(method, path)] = factory

    def fail(self, method: str, path: str, exc_type=httpx.ConnectError) -> None:
        def _raise(request: httpx.Request) -> httpx.Response:
            raise exc_type("connection refused", request=request)
        self.routes[(method, path)] = _raise

    def requests_to(self, method: str, path: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.method == method and r.url.path == path]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        factory = self.routes.get((request.method, request.url.path))
        if factory is None:
            return httpx.Response(404, json={"error": f"no route for {request.method} {request.url.path}"})
        return factory(request)


def parse_multipart(request: httpx.Request) -> Dict[str, Dict[str, Any]]:
    """
    Split a recorded multipart request into {field: {filename, content_type, content}}.

    Uses python-multipart's streaming parser, the same one Starlette uses
    for inbound forms.
    """
    media_type, params = parse_options_header(request.headers["content-type"])
    assert media_type == b"multipart/form-data"

    parts: Dict[str, Dict[str, Any]] = {}
    current: Dict[str, Any] = {}
    header_field = bytearray()
    header_value = bytearray()

    def on_part_begin() -> None:
        current.clear()
        current.update(headers={}, content=bytearray())

    def on_header_field(data: bytes, start: int, end: int) -> None:
        header_field.extend(data[start:end])

    def on_header_value(data: bytes, start: int, end: int) -> None:
        header_value.extend(data[start:end])

    def on_header_end() -> None:
        current["headers"][bytes(header_field).lower()] = bytes(header_value)
        header_field.clear()
        header_value.clear()

    def on_part_data(data: bytes, start: int, end: int) -> None:
        current["content"].extend(data[start:end])

    def on_part_end() -> None:
        _, disposition = parse_options_header(current["headers"][b"content-disposition"])
        filename = disposition.get(b"filename")
        part_type = current["headers"].get(b"content-type")
        parts[disposition[b"name"].decode()] = {
            "filename": filename.decode() if filename is not None else None,
            "content_type": part_type.decode() if part_type is not None else None,
            "content": bytes(current["content"]),
        }

    parser = MultipartParser(
        params[b"boundary"],
        callbacks={
            "on_part_begin": on_part_begin,
            "on_header_field": on_header_field,
            "on_header_value": on_header_value,
            "on_header_end": on_header_end,
            "on_part_data": on_part_data,
            "on_part_end": on_part_end,
        },
    )
    parser.write(request.content)
    parser.finalize()
    return parts


# ══════════════════════════════════════════════════════════════════════════
# Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def settings() -> Settings:
    """Complete configuration pointing at fake hosts."""
    return Settings(
        _env_file=None,
        grist_base_url="https://grist.test/",
        grist_api_key="test-key-not-real",
        grist_doc_id="doc123",
        ai_service_url=f"https://ai.test{AI_PATH}",
        ai_provider="ollama",
        ai_chat_model="chat-model",
        ai_vision_model="vision-model",
        ai_model_api_key="model-key",
        ai_model_base_url="http://ollama.test:11434",
        ai_service_api_key="",
        api_prefix="",
        static_dir=None,
        log_level="WARNING",
    )


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest_asyncio.fixture
async def document_client(settings, upstream):
    http = DocumentClient.build_http_client(settings, httpx.MockTransport(upstream))
    yield DocumentClient(settings, http)
    await http.aclose()


@pytest_asyncio.fixture
async def ai_relay(settings, upstream):
    http = AIRelayService.build_http_client(settings, httpx.MockTransport(upstream))
    yield AIRelayService(settings, http)
    await http.aclose()


@pytest.fixture
def sample_image_bytes() -> bytes:
    """Minimal JPEG: SOI marker + JFIF header + EOI marker."""
    return (
        b'\xff\xd8\xff\xe0\x00\x10JFIF\x00\x01\x01\x00\x00\x01\x00\x01\x00\x00'
        b'\xff\xd9'
    )


@pytest_asyncio.fixture
async def test_client(settings, upstream):
    """
    HTTPX AsyncClient routed in-process to a fresh app.

    Usage:
        async def test_list(test_client, upstream):
            upstream.add("GET", f"{DOC_ROOT}/tables/Food/records", {"status_code": 200, "json": {}})
            response = await test_client.get("/food")
    """
    app = create_app(settings, transport=httpx.MockTransport(upstream))
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    await app.state.document_http.aclose()
    await app.state.ai_http.aclose()
