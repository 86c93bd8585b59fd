"""
Pantry Proxy Backend — AI Relay Schemas
========================================

What:  Inbound pantry-chat body, the outbound ChatPayload sent to the AI
       microservice, and the AnalysisResult returned by image analysis.
How:   ChatPayload uses camelCase aliases because the microservice expects
       `providerType`, `apiKey`, `modelUrl` and `maxTokens`; it is always
       serialized with `model_dump(by_alias=True, exclude_none=True)`.
"""

from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


# ══════════════════════════════════════════════════════════════════════════
# Inbound: pantry chat
# ══════════════════════════════════════════════════════════════════════════


class PantryItem(BaseModel):
    """
    One pantry row as the front end sends it.

    The front end forwards Grist rows verbatim, so the capitalized column names
    (Name, Quantity, Expiration) are accepted alongside lowercase ones.
    `expiration` is a Unix timestamp in seconds (Grist date column).
    """
    name: str = Field(validation_alias=AliasChoices("Name", "name"))
    quantity: Union[int, float] = Field(
        default=1,
        validation_alias=AliasChoices("Quantity", "quantity"),
    )
    expiration: Optional[float] = Field(
        default=None,
        validation_alias=AliasChoices("Expiration", "expiration"),
    )

    model_config = ConfigDict(extra="ignore")


class PantryChatRequest(BaseModel):
    """
    Body of POST /pantryChat.

    Both fields are optional at the schema level so that a missing value
    reaches PantryChat validation and becomes a 400 with a clear message,
    instead of FastAPI's generic 422.
    """
    items: Optional[List[PantryItem]] = None
    message: Optional[str] = None


# ══════════════════════════════════════════════════════════════════════════
# Outbound: AI microservice
# ══════════════════════════════════════════════════════════════════════════


class ChatMessage(BaseModel):
    role: Literal["system", "user", "assistant"]
    content: str


class ChatPayload(BaseModel):
    """
    The JSON document carried in the `payload` multipart field.

    Built fresh for every inbound request by AIRelayService.build_chat_payload;
    never stored.
    """
    model: str
    messages: List[ChatMessage]
    provider_type: str = Field(alias="providerType")
    api_key: str = Field(default="", alias="apiKey")
    model_url: str = Field(default="", alias="modelUrl")
    stream: bool = False
    format: Optional[Dict[str, Any]] = None
    temperature: float = 0.2
    max_tokens: int = Field(default=1024, alias="maxTokens")
    think: bool = False

    model_config = ConfigDict(populate_by_name=True, protected_namespaces=())


class AnalysisResult(BaseModel):
    """
    Structured description of one grocery item, parsed from model output.

    All three keys are required; `notes` may be null.
    """
    item: str
    expiration_days: int
    notes: Optional[str]


# What: JSON schema sent as `format`, constraining the model's output
ANALYSIS_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "item": {"type": "string"},
        "expiration_days": {"type": "integer"},
        "notes": {"type": ["string", "null"]},
    },
    "required": ["item", "expiration_days", "notes"],
}
