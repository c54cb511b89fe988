"""
Pydantic models for the HTTP surface and the chat transcript.
These are pure data objects; the navigation state machine keeps its own
frozen dataclasses and is converted here only at the edge.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


# ── Enums ──────────────────────────────────────────────────────────────

class Role(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class NoticeKind(str, Enum):
    LOCATION_NOT_SUPPORTED = "location_not_supported"
    PLACE_NOT_SUPPORTED = "place_not_supported"
    REPLY_FAILED = "reply_failed"


# ── Chat ──────────────────────────────────────────────────────────────

class ChatMessage(BaseModel):
    role: Role
    content: str


class ChatRequest(BaseModel):
    """Body of POST /chat, as sent by the browser client."""
    messages: list[ChatMessage] = Field(default_factory=list)
    selected_city: Optional[str] = Field(None, alias="selectedCity")

    model_config = {"populate_by_name": True}


class ChatResponse(BaseModel):
    content: str
    selected_city: Optional[str] = Field(None, alias="selectedCity")

    model_config = {"populate_by_name": True}


class Notice(BaseModel):
    """A user-facing notice: something could not be shown on the globe."""
    kind: NoticeKind
    text: str
    raw_text: Optional[str] = None


# ── Commands ──────────────────────────────────────────────────────────

class ClickRequest(BaseModel):
    lng: float = Field(..., ge=-180, le=180)
    lat: float = Field(..., ge=-90, le=90)


class CitySelectRequest(BaseModel):
    city: str = Field(..., min_length=1, max_length=200)


class TextRequest(BaseModel):
    text: str = Field(..., min_length=1, max_length=8000)


# ── Responses ─────────────────────────────────────────────────────────

class PlaceResponse(BaseModel):
    name: str
    longitude: float
    latitude: float


class CitiesResponse(BaseModel):
    cities: list[PlaceResponse]
    total: int
    query: Optional[str] = None


class CameraResponse(BaseModel):
    longitude: float
    latitude: float
    zoom: float
    mode: str
    spin_enabled: bool
    is_user_interacting: bool
    is_animating: bool
    target_longitude: Optional[float] = None
    target_latitude: Optional[float] = None


class SessionResponse(BaseModel):
    active_city: Optional[str] = None
    chat_active: bool = False
    awaiting_reply: bool = False
    camera: CameraResponse
    messages: list[ChatMessage] = Field(default_factory=list)
    notices: list[Notice] = Field(default_factory=list)


class SelectionResponse(BaseModel):
    """Outcome of a click, city pick or message: what (if anything) was selected."""
    selected: Optional[str] = None
    notice: Optional[Notice] = None
    camera: CameraResponse


class HealthResponse(BaseModel):
    status: str = "ok"
    supported_cities: int = 0
    scheduler_running: bool = False
