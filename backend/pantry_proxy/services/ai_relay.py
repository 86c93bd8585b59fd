"""
Pantry Proxy Backend — AI Relay
================================

What:  Builds chat-completion requests for the AI microservice and handles its
       two response modes: one buffered JSON answer (image analysis) or a raw
       byte stream (pantry chat).
How:   Both entry points share payload and multipart construction
       (build_chat_payload, _build_request) and diverge entirely at response
       handling:

         analyze_image()                     open_pantry_chat() + relay_stream()
         ───────────────                     ───────────────────────────────────
         client.send()                       client.send(stream=True)
         read full JSON body                 check status before any byte is sent
         extract text → strip fence          yield upstream chunks unchanged
         json.loads → AnalysisResult         on mid-stream failure: log, re-raise
Who:   Routes in routes/ai.py.

Outbound contract:
    POST {ai_service_url}, multipart/form-data
        payload  JSON-encoded ChatPayload
        image    binary (image analysis only)

Failure policy:
    Callers only ever see generic messages. The microservice's own error text,
    the HTTP status and any unparseable model output go to the log.
"""

import json
import logging
import re
import time
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Dict, Iterable, List, Optional, Union

import httpx
from pydantic import ValidationError as PydanticValidationError

from pantry_proxy.config import Settings
from pantry_proxy.exceptions import ParseError, UpstreamError, ValidationError
from pantry_proxy.schemas.ai import (
    ANALYSIS_SCHEMA,
    AnalysisResult,
    ChatMessage,
    ChatPayload,
    PantryItem,
)
from pantry_proxy.services.upstream import build_timeout, upstream_message

logger = logging.getLogger(__name__)

ANALYSIS_FAILED_MESSAGE = "Failed to analyze image"
CHAT_FAILED_MESSAGE = "Failed to get a response from the AI service"

_LEADING_FENCE = re.compile(r"^```(?:json)?", re.IGNORECASE)
_TRAILING_FENCE = re.compile(r"```$")

# Raw model output is logged on parse failure; keep log lines bounded
_MAX_LOGGED_TEXT = 500


# ══════════════════════════════════════════════════════════════════════════
# Text helpers
# ══════════════════════════════════════════════════════════════════════════


def strip_code_fence(text: str) -> str:
    """
    Remove a leading ```json / ``` marker and a trailing ``` marker.

    Each marker is stripped independently, so a reply that only opens or only
    closes a fence is cleaned too. Text without fences is returned trimmed.
    """
    cleaned = text.strip()
    cleaned = _LEADING_FENCE.sub("", cleaned, count=1)
    cleaned = _TRAILING_FENCE.sub("", cleaned.rstrip(), count=1)
    return cleaned.strip()


def extract_text(body: Any) -> Optional[str]:
    """
    Find the model's text in a non-streaming microservice reply.

    Checked in order: "text", "response", "content", then "message.content".
    """
    if isinstance(body, str):
        return body
    if not isinstance(body, dict):
        return None

    for key in ("text", "response", "content"):
        value = body.get(key)
        if isinstance(value, str):
            return value

    message = body.get("message")
    if isinstance(message, dict) and isinstance(message.get("content"), str):
        return message["content"]
    return None


def parse_analysis(text: str) -> AnalysisResult:
    """
    Fence-stripped model text → AnalysisResult.

    Raises:
        ParseError: invalid JSON or a missing/mistyped field. Never returns a
                    partially populated result.
    """
    cleaned = strip_code_fence(text)
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise ParseError(
            message=ANALYSIS_FAILED_MESSAGE,
            context={"reason": f"invalid JSON: {e.msg}", "raw_text": text[:_MAX_LOGGED_TEXT]},
        ) from e

    try:
        return AnalysisResult.model_validate(data)
    except PydanticValidationError as e:
        raise ParseError(
            message=ANALYSIS_FAILED_MESSAGE,
            context={
                "reason": "missing or invalid fields",
                "errors": [err["loc"] for err in e.errors()],
                "raw_text": text[:_MAX_LOGGED_TEXT],
            },
        ) from e


def _format_quantity(quantity: Union[int, float]) -> str:
    if isinstance(quantity, float) and quantity.is_integer():
        return str(int(quantity))
    return str(quantity)


def _format_expiration(expiration: Optional[float]) -> str:
    """Unix seconds → UTC calendar date (YYYY-MM-DD)."""
    if expiration is None:
        return "an unknown date"
    try:
        return datetime.fromtimestamp(expiration, tz=timezone.utc).date().isoformat()
    except (OverflowError, OSError, ValueError) as e:
        raise ValidationError(
            message=f"Invalid expiration timestamp: {expiration}",
            field="items",
        ) from e


def render_pantry_context(items: Iterable[PantryItem]) -> str:
    """
    One line per item: "<name> (x<quantity>) expiring on <YYYY-MM-DD>".

    Example:
        Milk (x1) expiring on 2023-11-14
        Eggs (x12) expiring on 2023-11-20
    """
    return "\n".join(
        f"{item.name} (x{_format_quantity(item.quantity)}) "
        f"expiring on {_format_expiration(item.expiration)}"
        for item in items
    )


# ══════════════════════════════════════════════════════════════════════════
# AI Relay Service
# ══════════════════════════════════════════════════════════════════════════


class AIRelayService:
    """
    Client of the AI microservice's single chat endpoint.

    Holds no per-request state; the shared httpx client is created by the app
    factory and closed on shutdown.
    """

    ANALYSIS_SYSTEM_PROMPT = (
        "You are a food recognition assistant. Identify the grocery item in the "
        "image and estimate how many days it will stay fresh when stored properly. "
        "Respond with ONLY a JSON object matching this schema, with no commentary "
        "and no markdown:\n"
        '{"item": string, "expiration_days": integer, "notes": string or null}'
    )
    ANALYSIS_USER_PROMPT = (
        "Analyze the attached image. Name the food item, estimate its shelf life "
        "in days, and add any storage notes."
    )
    CHAT_SYSTEM_PROMPT = (
        "You are a helpful kitchen assistant. The user's pantry currently contains:\n"
        "{context}\n\n"
        "Answer the user's question using these items where possible, and point "
        "out anything that is expiring soon."
    )

    def __init__(self, settings: Settings, client: httpx.AsyncClient):
        self.settings = settings
        self._client = client

    @staticmethod
    def build_http_client(
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> httpx.AsyncClient:
        """Creates the shared connection pool for the AI microservice."""
        headers = {}
        if settings.ai_service_api_key:
            headers["Authorization"] = f"Bearer {settings.ai_service_api_key}"
        return httpx.AsyncClient(
            headers=headers,
            timeout=build_timeout(settings),
            transport=transport,
        )

    # ── Shared request construction ───────────────────────────────────────

    def build_chat_payload(
        self,
        messages: List[ChatMessage],
        stream: bool,
        model: Optional[str] = None,
        response_format: Optional[Dict[str, Any]] = None,
    ) -> ChatPayload:
        """
        Fill a ChatPayload from Settings plus the per-request pieces.

        Args:
            messages:        Ordered system/user messages.
            stream:          Selects the microservice's response mode.
            model:           Overrides the default chat model.
            response_format: JSON schema the model must follow, if any.
        """
        return ChatPayload(
            model=model or self.settings.ai_chat_model,
            messages=messages,
            provider_type=self.settings.ai_provider,
            api_key=self.settings.ai_model_api_key,
            model_url=self.settings.ai_model_base_url,
            stream=stream,
            format=response_format,
            temperature=self.settings.ai_temperature,
            max_tokens=self.settings.ai_max_tokens,
            think=self.settings.ai_think,
        )

    def _build_request(
        self,
        payload: ChatPayload,
        image: Optional[tuple] = None,
    ) -> httpx.Request:
        """
        Multipart request carrying `payload` and, optionally, `image`.

        The payload part has no filename so the microservice reads it as a
        plain form field.
        """
        files: Dict[str, tuple] = {
            "payload": (
                None,
                json.dumps(payload.model_dump(by_alias=True, exclude_none=True)).encode("utf-8"),
                "application/json",
            ),
        }
        if image is not None:
            files["image"] = image
        return self._client.build_request("POST", self.settings.ai_service_url, files=files)

    async def _send(self, request: httpx.Request, stream: bool, failure_message: str) -> httpx.Response:
        """
        Send and check status. On non-2xx the body is read, the response is
        closed, and UpstreamError carries the upstream's message in context.
        """
        try:
            response = await self._client.send(request, stream=stream)
        except httpx.HTTPError as e:
            logger.error("AI service request failed: %s", str(e) or type(e).__name__)
            raise UpstreamError(
                message=failure_message,
                context={"service": "ai", "upstream_message": str(e) or type(e).__name__},
            ) from e

        if not response.is_success:
            await response.aread()
            detail = upstream_message(response)
            await response.aclose()
            logger.error("AI service returned %d: %s", response.status_code, detail)
            raise UpstreamError(
                message=failure_message,
                status_code=response.status_code,
                context={"service": "ai", "upstream_message": detail},
            )
        return response

    # ── Image analysis (buffered) ─────────────────────────────────────────

    async def analyze_image(
        self,
        content: bytes,
        filename: str,
        content_type: Optional[str] = None,
    ) -> AnalysisResult:
        """
        Identify a food item from a photo.

        Flow:
            1. Reject an empty image
            2. Build a stream=False payload with the analysis schema
            3. Send payload + image; non-2xx → UpstreamError
            4. Extract text, strip fences, parse → AnalysisResult

        Raises:
            ValidationError: empty image.
            UpstreamError:   microservice unreachable or non-2xx.
            ParseError:      reply not usable as an AnalysisResult.
        """
        if not content:
            raise ValidationError(message="No image uploaded", field="image")

        payload = self.build_chat_payload(
            messages=[
                ChatMessage(role="system", content=self.ANALYSIS_SYSTEM_PROMPT),
                ChatMessage(role="user", content=self.ANALYSIS_USER_PROMPT),
            ],
            stream=False,
            model=self.settings.ai_vision_model,
            response_format=ANALYSIS_SCHEMA,
        )
        request = self._build_request(
            payload,
            image=(filename, content, content_type or "application/octet-stream"),
        )

        start_time = time.perf_counter()
        response = await self._send(request, stream=False, failure_message=ANALYSIS_FAILED_MESSAGE)
        duration_ms = (time.perf_counter() - start_time) * 1000

        try:
            body = response.json()
        except ValueError as e:
            raise ParseError(
                message=ANALYSIS_FAILED_MESSAGE,
                context={"reason": "reply is not JSON", "raw_text": response.text[:_MAX_LOGGED_TEXT]},
            ) from e

        text = extract_text(body)
        if text is None:
            raise ParseError(
                message=ANALYSIS_FAILED_MESSAGE,
                context={"reason": "reply has no text field", "keys": sorted(body) if isinstance(body, dict) else None},
            )

        result = parse_analysis(text)
        logger.info(
            "Image %s analyzed in %.0fms: item=%s expiration_days=%d",
            filename,
            duration_ms,
            result.item,
            result.expiration_days,
        )
        return result

    # ── Pantry chat (streamed) ────────────────────────────────────────────

    async def open_pantry_chat(
        self,
        items: Optional[List[PantryItem]],
        message: Optional[str],
    ) -> httpx.Response:
        """
        Start a streamed answer grounded in the pantry contents.

        Returns:
            An open, successful streaming response. The caller must consume it
            with relay_stream(), which closes it.

        Raises:
            ValidationError: items or message missing.
            UpstreamError:   microservice unreachable or non-2xx (raised before
                             any byte reaches the caller).
        """
        if not items:
            raise ValidationError(message="Pantry items are required", field="items")
        if not message or not message.strip():
            raise ValidationError(message="A message is required", field="message")

        context = render_pantry_context(items)
        payload = self.build_chat_payload(
            messages=[
                ChatMessage(role="system", content=self.CHAT_SYSTEM_PROMPT.format(context=context)),
                ChatMessage(role="user", content=message),
            ],
            stream=True,
        )

        logger.info("Opening pantry chat stream with %d item(s)", len(items))
        return await self._send(
            self._build_request(payload),
            stream=True,
            failure_message=CHAT_FAILED_MESSAGE,
        )

    async def relay_stream(self, response: httpx.Response) -> AsyncIterator[bytes]:
        """
        Yield the upstream body chunk by chunk, unmodified.

        Chunks are read raw: a compressed body stays compressed, and the
        route forwards the upstream Content-Encoding alongside it.

        Headers are already on the wire when this runs, so a failure can't be
        turned into an error body: it is logged and re-raised, and the server
        aborts the connection. The upstream response is always closed.
        """
        relayed = 0
        try:
            async for chunk in response.aiter_raw():
                relayed += len(chunk)
                yield chunk
        except httpx.HTTPError as e:
            logger.error(
                "Pantry chat stream failed after %d bytes: %s",
                relayed,
                str(e) or type(e).__name__,
            )
            raise
        finally:
            await response.aclose()
        logger.info("Pantry chat stream completed (%d bytes)", relayed)
