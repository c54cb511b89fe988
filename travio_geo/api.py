"""
FastAPI service for the globe + chat front end.

Endpoints:
  GET  /state               - Camera, conversation context, transcript, notices
  GET  /cities              - Supported cities (optionally filtered by ?q=)
  GET  /health              - Liveness + scheduler status
  POST /click               - Globe click at lng/lat
  POST /city                - Explicit city pick (e.g. a chosen suggestion)
  POST /message             - User message: full chat round trip
  POST /reply               - Feed an assistant reply produced elsewhere
  POST /reset               - Fly back to the overview and clear the active city
  POST /spin/toggle         - Pause/resume auto-rotation
  POST /interaction/start   - Pointer/touch down on the globe
  POST /interaction/end     - Pointer/touch up on the globe
  POST /chat                - Stateless forwarder to the chat-completion API
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware

from travio_geo import scheduler
from travio_geo.chat import ChatClient, MalformedReplyError, get_chat_client
from travio_geo.config import get_settings
from travio_geo.gazetteer import Place
from travio_geo.models import (
    CameraResponse,
    ChatRequest,
    ChatResponse,
    CitiesResponse,
    CitySelectRequest,
    ClickRequest,
    HealthResponse,
    Notice,
    PlaceResponse,
    SelectionResponse,
    SessionResponse,
    TextRequest,
)
from travio_geo.navigation import NavigationController, NavigationState
from travio_geo.orchestrator import SyncOrchestrator

logger = logging.getLogger(__name__)


# ── Session ───────────────────────────────────────────────────────────

# One globe view per process
_orchestrator: Optional[SyncOrchestrator] = None


def get_orchestrator() -> SyncOrchestrator:
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = SyncOrchestrator(
            navigation=NavigationController(),
            chat=get_chat_client(),
        )
    return _orchestrator


# ── Lifespan ──────────────────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup: start the globe clock. Shutdown: stop it."""
    logger.info("Starting up API server...")
    scheduler.start_scheduler(get_orchestrator().navigation)
    yield
    scheduler.stop_scheduler()
    logger.info("API server shut down.")


# ── App ───────────────────────────────────────────────────────────────

app = FastAPI(
    title="Travio Geo API",
    description="Keep a spinning globe and a travel chat pointed at the same city",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in get_settings().api.cors_origins.split(",")],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── Helpers ───────────────────────────────────────────────────────────

def _format_camera(state: NavigationState) -> CameraResponse:
    target = state.target
    return CameraResponse(
        longitude=state.center[0],
        latitude=state.center[1],
        zoom=state.zoom,
        mode=state.mode.value,
        spin_enabled=state.spin_enabled,
        is_user_interacting=state.is_user_interacting,
        is_animating=state.is_animating,
        target_longitude=target[0] if target else None,
        target_latitude=target[1] if target else None,
    )


def _format_place(place: Place) -> PlaceResponse:
    return PlaceResponse(name=place.name, longitude=place.longitude, latitude=place.latitude)


def _selection(
    session: SyncOrchestrator,
    place: Optional[Place],
    notices_before: int,
) -> SelectionResponse:
    new_notices: list[Notice] = session.notices[notices_before:]
    return SelectionResponse(
        selected=place.name if place else None,
        notice=new_notices[-1] if new_notices else None,
        camera=_format_camera(session.navigation.advance()),
    )


# ══════════════════════════════════════════════════════════════════════
# ENDPOINTS
# ══════════════════════════════════════════════════════════════════════

@app.get("/state", response_model=SessionResponse)
async def get_state(session: SyncOrchestrator = Depends(get_orchestrator)):
    """Snapshot for the renderer and the chat panel."""
    state = session.navigation.advance()
    return SessionResponse(
        active_city=session.context.active_city,
        chat_active=session.chat_active,
        awaiting_reply=session.awaiting_reply,
        camera=_format_camera(state),
        messages=session.messages,
        notices=session.notices,
    )


@app.get("/cities", response_model=CitiesResponse)
async def list_cities(
    q: Optional[str] = Query(None, max_length=200, description="Substring of a city name"),
    limit: Optional[int] = Query(None, ge=1, le=200),
    session: SyncOrchestrator = Depends(get_orchestrator),
):
    """All supported cities (for markers), or the suggestions matching ?q=."""
    if q is None:
        places = list(session.gazetteer)
        if limit is not None:
            places = places[:limit]
    else:
        places = session.gazetteer.search(q, limit=limit or get_settings().api.max_search_results)
    return CitiesResponse(cities=[_format_place(p) for p in places], total=len(places), query=q)


@app.get("/health", response_model=HealthResponse)
async def health_check(session: SyncOrchestrator = Depends(get_orchestrator)):
    return HealthResponse(
        status="ok",
        supported_cities=len(session.gazetteer),
        scheduler_running=scheduler.is_running(),
    )


@app.post("/click", response_model=SelectionResponse)
async def globe_click(body: ClickRequest, session: SyncOrchestrator = Depends(get_orchestrator)):
    before = len(session.notices)
    place = session.on_globe_click(body.lng, body.lat)
    return _selection(session, place, before)


@app.post("/city", response_model=SelectionResponse)
async def select_city(body: CitySelectRequest, session: SyncOrchestrator = Depends(get_orchestrator)):
    before = len(session.notices)
    place = session.on_city_selected(body.city)
    return _selection(session, place, before)


@app.post("/message", response_model=SessionResponse)
async def send_message(body: TextRequest, session: SyncOrchestrator = Depends(get_orchestrator)):
    """
    Append the user's message, ask the assistant, and sync the globe with
    whatever place either side mentioned.
    """
    await session.send_message(body.text)
    return await get_state(session)


@app.post("/reply", response_model=SelectionResponse)
async def assistant_reply(body: TextRequest, session: SyncOrchestrator = Depends(get_orchestrator)):
    before = len(session.notices)
    event = session.on_assistant_reply(body.text)
    place = event.place if event is not None and event.is_recognized else None
    return _selection(session, place, before)


@app.post("/reset", response_model=CameraResponse)
async def reset_view(session: SyncOrchestrator = Depends(get_orchestrator)):
    session.reset_all()
    return _format_camera(session.navigation.state)


@app.post("/spin/toggle", response_model=CameraResponse)
async def toggle_spin(session: SyncOrchestrator = Depends(get_orchestrator)):
    session.navigation.toggle_spin()
    return _format_camera(session.navigation.state)


@app.post("/interaction/start", response_model=CameraResponse)
async def interaction_start(session: SyncOrchestrator = Depends(get_orchestrator)):
    return _format_camera(session.navigation.interaction_start())


@app.post("/interaction/end", response_model=CameraResponse)
async def interaction_end(session: SyncOrchestrator = Depends(get_orchestrator)):
    return _format_camera(session.navigation.interaction_end())


@app.post("/chat", response_model=ChatResponse)
async def chat(body: ChatRequest, client: ChatClient = Depends(get_chat_client)):
    """Forward a conversation to the chat-completion API and return the reply text."""
    try:
        content = await client.complete(body.messages, body.selected_city)
    except MalformedReplyError as e:
        logger.error("Chat API error: %s", e)
        raise HTTPException(502, "Error processing chat request")
    return ChatResponse(content=content, selected_city=body.selected_city)
