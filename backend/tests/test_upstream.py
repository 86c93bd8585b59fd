"""
Pantry Proxy Backend — Outbound Client Tests
=============================================

What:  Configuration of the two shared httpx clients and how their transport
       failures surface.

What we test:
    ✅ Both clients carry the configured bounded timeout
    ✅ A read timeout on either upstream becomes UpstreamError
    ✅ Authorization headers: always for the document service, only when
       configured for the AI microservice
    ✅ upstream_message() fallbacks
"""

import httpx
import pytest

from conftest import AI_PATH, DOC_ROOT
from pantry_proxy.exceptions import UpstreamError
from pantry_proxy.schemas.ai import PantryItem
from pantry_proxy.services.ai_relay import AIRelayService
from pantry_proxy.services.document_client import DocumentClient
from pantry_proxy.services.record_service import RecordService
from pantry_proxy.services.upstream import upstream_message

FOOD_RECORDS = f"{DOC_ROOT}/tables/Food/records"
ITEMS = [PantryItem.model_validate({"Name": "Milk", "Quantity": 1, "Expiration": 1700000000})]


class TestClientTimeouts:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("builder", [DocumentClient.build_http_client, AIRelayService.build_http_client])
    async def test_timeout_follows_settings(self, settings, builder):
        tuned = settings.model_copy(
            update={"upstream_timeout_seconds": 12.5, "upstream_connect_timeout_seconds": 3.0}
        )

        async with builder(tuned) as client:
            assert client.timeout == httpx.Timeout(12.5, connect=3.0)
            assert client.timeout.read == 12.5
            assert client.timeout.connect == 3.0

    @pytest.mark.asyncio
    async def test_default_timeout_is_bounded(self, settings):
        async with DocumentClient.build_http_client(settings) as client:
            assert client.timeout == httpx.Timeout(
                settings.upstream_timeout_seconds,
                connect=settings.upstream_connect_timeout_seconds,
            )
            assert None not in (client.timeout.connect, client.timeout.read, client.timeout.pool)


class TestTimeoutFailures:

    @pytest.mark.asyncio
    async def test_document_read_timeout(self, document_client, upstream):
        upstream.fail("GET", FOOD_RECORDS, exc_type=httpx.ReadTimeout)

        with pytest.raises(UpstreamError) as exc_info:
            await RecordService(document_client, "Food").list()

        assert exc_info.value.context["service"] == "document"
        assert len(upstream.requests) == 1

    @pytest.mark.asyncio
    async def test_analysis_read_timeout(self, ai_relay, upstream, sample_image_bytes):
        upstream.fail("POST", AI_PATH, exc_type=httpx.ReadTimeout)

        with pytest.raises(UpstreamError) as exc_info:
            await ai_relay.analyze_image(sample_image_bytes, "apple.jpg")

        assert exc_info.value.context["service"] == "ai"

    @pytest.mark.asyncio
    async def test_chat_connect_timeout(self, ai_relay, upstream):
        upstream.fail("POST", AI_PATH, exc_type=httpx.ConnectTimeout)

        with pytest.raises(UpstreamError):
            await ai_relay.open_pantry_chat(ITEMS, "What can I make?")


class TestAuthorizationHeaders:

    @pytest.mark.asyncio
    async def test_ai_header_omitted_without_key(self, ai_relay, upstream):
        upstream.add("POST", AI_PATH, {"status_code": 200, "content": b"ok"})

        response = await ai_relay.open_pantry_chat(ITEMS, "What can I make?")
        await response.aclose()

        assert "authorization" not in upstream.requests[0].headers

    @pytest.mark.asyncio
    async def test_ai_header_sent_with_key(self, settings, upstream):
        keyed = settings.model_copy(update={"ai_service_api_key": "svc-key"})
        upstream.add("POST", AI_PATH, {"status_code": 200, "content": b"ok"})

        async with AIRelayService.build_http_client(keyed, httpx.MockTransport(upstream)) as http:
            response = await AIRelayService(keyed, http).open_pantry_chat(ITEMS, "What can I make?")
            await response.aclose()

        assert upstream.requests[0].headers["authorization"] == "Bearer svc-key"

    @pytest.mark.asyncio
    async def test_document_header_never_sent_to_ai(self, ai_relay, upstream):
        upstream.add("POST", AI_PATH, {"status_code": 200, "content": b"ok"})

        response = await ai_relay.open_pantry_chat(ITEMS, "What can I make?")
        await response.aclose()

        assert "test-key-not-real" not in str(upstream.requests[0].headers)


class TestUpstreamMessage:

    @pytest.mark.parametrize(
        "response, expected",
        [
            (httpx.Response(400, json={"error": "Invalid row id"}), "Invalid row id"),
            (httpx.Response(400, json={"error": {"message": "nested"}}), "nested"),
            (httpx.Response(422, json={"detail": "bad schema"}), "bad schema"),
            (httpx.Response(502, text="Bad Gateway"), "Bad Gateway"),
            (httpx.Response(503, content=b""), "status 503"),
            (httpx.Response(500, json={"unrelated": 1}), "status 500"),
        ],
    )
    def test_fallbacks(self, response, expected):
        assert upstream_message(response) == expected
