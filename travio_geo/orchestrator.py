"""
Keeps the chat and the globe pointing at the same place.

Inputs:
  - globe clicks and explicit city picks (from the renderer)
  - the user's own messages and the assistant's replies (from the chat)
Outputs:
  - fly-to / reset commands to the NavigationController
  - the conversation context (active city) read by the prompt builder
  - transcript entries and user-facing notices

Resolution rules:
  - click: nearest supported city within `click_max_distance` degrees
  - text: MentionDetector; a recognized city moves the globe, an
    unrecognized place-like phrase only produces a notice
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from travio_geo.chat import ChatCollaborator, MalformedReplyError
from travio_geo.config import get_settings
from travio_geo.gazetteer import Gazetteer, Place
from travio_geo.mentions import MentionDetector, SelectionEvent
from travio_geo.models import ChatMessage, Notice, NoticeKind, Role
from travio_geo.navigation import NavigationController

logger = logging.getLogger(__name__)

LOCATION_NOT_SUPPORTED = "City not supported yet. Stay tuned! 🌍"
PLACE_NOT_SUPPORTED = "{place} is not supported yet. Stay tuned! 🌍"
NOW_CHATTING = "🌍 Now chatting about {city}! Ask me anything about this amazing city."
REPLY_FALLBACK = (
    "Sorry, I encountered an error. Please try again or make sure your "
    "LLM API key is configured."
)


@dataclass
class ConversationContext:
    active_city: Optional[str] = None


NoticeListener = Callable[[Notice], None]


class SyncOrchestrator:
    """One per globe view. Owns the conversation context and the transcript."""

    def __init__(
        self,
        navigation: NavigationController,
        chat: Optional[ChatCollaborator] = None,
        gazetteer: Optional[Gazetteer] = None,
        detector: Optional[MentionDetector] = None,
        click_max_distance: Optional[float] = None,
    ):
        self.navigation = navigation
        self.chat = chat
        self.gazetteer = gazetteer if gazetteer is not None else navigation.gazetteer
        self.detector = detector if detector is not None else MentionDetector(self.gazetteer)
        self.click_max_distance = (
            click_max_distance
            if click_max_distance is not None
            else get_settings().navigation.click_max_distance
        )

        self.context = ConversationContext()
        self.messages: list[ChatMessage] = []
        self.notices: list[Notice] = []
        self.chat_active = False
        self._pending_replies = 0
        self._notice_listeners: list[NoticeListener] = []

    @property
    def awaiting_reply(self) -> bool:
        return self._pending_replies > 0

    def subscribe_notices(self, listener: NoticeListener) -> None:
        self._notice_listeners.append(listener)

    # ── Map-side inputs ──

    def on_globe_click(self, lng: float, lat: float) -> Optional[Place]:
        place = self.gazetteer.nearest(lng, lat, self.click_max_distance)
        if place is None:
            logger.info("Click at (%.4f, %.4f): no supported city nearby", lng, lat)
            self._notify(Notice(kind=NoticeKind.LOCATION_NOT_SUPPORTED, text=LOCATION_NOT_SUPPORTED))
            return None
        logger.info("Click at (%.4f, %.4f) resolved to %s", lng, lat, place.name)
        self._select(place)
        return place

    def on_city_selected(self, city_name: str) -> Optional[Place]:
        place = self.gazetteer.lookup(city_name)
        if place is None:
            logger.info("City pick '%s' is not a supported city", city_name)
            self._notify(Notice(
                kind=NoticeKind.LOCATION_NOT_SUPPORTED,
                text=LOCATION_NOT_SUPPORTED,
                raw_text=city_name,
            ))
            return None
        self._select(place)
        return place

    def reset_all(self) -> None:
        self.navigation.reset_view()
        self.context.active_city = None

    # ── Chat-side inputs ──

    def on_assistant_reply(self, text: str) -> Optional[SelectionEvent]:
        return self._apply_mention(text, source="reply")

    def on_user_message(self, text: str) -> Optional[SelectionEvent]:
        return self._apply_mention(text, source="message")

    async def send_message(self, text: str) -> Optional[str]:
        """
        Full round trip for one user message. Returns the assistant's reply,
        or None when the input was blank or the collaborator failed (in which
        case the fallback message is in the transcript).
        """
        if self.chat is None:
            raise RuntimeError("SyncOrchestrator has no chat collaborator configured")

        text = text.strip()
        if not text:
            return None

        self.chat_active = True
        prior = list(self.messages)
        self.messages.append(ChatMessage(role=Role.USER, content=text))
        self.on_user_message(text)

        self._pending_replies += 1
        try:
            reply = await self.chat.complete(
                prior + [ChatMessage(role=Role.USER, content=text)],
                self.context.active_city,
            )
        except MalformedReplyError as e:
            logger.error("Chat reply failed: %s", e)
            self.messages.append(ChatMessage(role=Role.ASSISTANT, content=REPLY_FALLBACK))
            self._record_notice(Notice(kind=NoticeKind.REPLY_FAILED, text=REPLY_FALLBACK))
            return None
        finally:
            self._pending_replies -= 1

        self.messages.append(ChatMessage(role=Role.ASSISTANT, content=reply))
        self.on_assistant_reply(reply)
        return reply

    # ── Internals ──

    def _apply_mention(self, text: str, source: str) -> Optional[SelectionEvent]:
        event = self.detector.detect(text)
        if event is None:
            return None

        if event.is_recognized:
            logger.info("City %s mentioned in %s", event.place.name, source)
            self._select(event.place)
        else:
            logger.info("Unsupported place '%s' mentioned in %s", event.raw_text, source)
            self._notify(Notice(
                kind=NoticeKind.PLACE_NOT_SUPPORTED,
                text=PLACE_NOT_SUPPORTED.format(place=event.raw_text),
                raw_text=event.raw_text,
            ))
        return event

    def _select(self, place: Place) -> None:
        self.navigation.fly_to(place)
        self.chat_active = True
        if self.context.active_city != place.name:
            self.context.active_city = place.name
            self.messages.append(ChatMessage(
                role=Role.ASSISTANT,
                content=NOW_CHATTING.format(city=place.name),
            ))

    def _notify(self, notice: Notice) -> None:
        self.messages.append(ChatMessage(role=Role.ASSISTANT, content=notice.text))
        self._record_notice(notice)

    def _record_notice(self, notice: Notice) -> None:
        self.notices.append(notice)
        for listener in list(self._notice_listeners):
            listener(notice)
