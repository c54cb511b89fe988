"""
Place-mention detection in free-form chat text.

Two passes, in strict priority order:
  1. Exact gazetteer scan. Every known city name is matched with a
     boundary-aware, case-insensitive pattern; the first city (in gazetteer
     order) found anywhere in the text wins.
  2. Heuristic rules. When no known city is present, an ordered list of
     patterns looks for a capitalized phrase in a place-like position
     ("Springfield, Illinois", "in Springfield", "to Springfield",
     "visit Springfield"). A hit is reported as an unrecognized place so the
     caller can say it is not supported instead of moving the globe.

Detection is a pure function of the text and the gazetteer.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from travio_geo.gazetteer import Gazetteer, Place, get_gazetteer, normalize_name


class SelectionKind(str, Enum):
    RECOGNIZED = "recognized"
    UNRECOGNIZED = "unrecognized"


@dataclass(frozen=True)
class SelectionEvent:
    """A place picked out of a click or a message, consumed once by the orchestrator."""
    kind: SelectionKind
    place: Optional[Place] = None
    raw_text: Optional[str] = None

    @classmethod
    def recognized(cls, place: Place) -> "SelectionEvent":
        return cls(kind=SelectionKind.RECOGNIZED, place=place, raw_text=place.name)

    @classmethod
    def unrecognized(cls, raw_text: str) -> "SelectionEvent":
        return cls(kind=SelectionKind.UNRECOGNIZED, raw_text=raw_text)

    @property
    def is_recognized(self) -> bool:
        return self.kind is SelectionKind.RECOGNIZED


# ── Exact matching ────────────────────────────────────────────────────

# A "letter" is any word character that is not a digit or underscore, so
# accented names ("São Paulo") get proper boundaries too.
_NOT_AFTER_LETTER = r"(?<![^\W\d_])"
_NOT_BEFORE_LETTER = r"(?![^\W\d_])"


def name_pattern(name: str) -> re.Pattern:
    """Boundary-aware pattern for a place name; inner spaces match any whitespace run."""
    words = [re.escape(w) for w in name.split()]
    return re.compile(
        _NOT_AFTER_LETTER + r"\s+".join(words) + _NOT_BEFORE_LETTER,
        re.IGNORECASE,
    )


# ── Heuristic rules ───────────────────────────────────────────────────

# One or more words, each an uppercase letter followed by lowercase letters
CAPITALIZED_PHRASE = r"[A-Z][a-z]+(?:\s+[A-Z][a-z]+)*"


@dataclass(frozen=True)
class HeuristicRule:
    name: str
    pattern: re.Pattern

    def first_phrase(self, text: str) -> Optional[str]:
        match = self.pattern.search(text)
        if match is None:
            return None
        return " ".join(match.group("phrase").split())


def _rule(name: str, regex: str) -> HeuristicRule:
    return HeuristicRule(name, re.compile(regex))


# Trigger words are case-insensitive ("Visit", "IN"); the phrase is not.
DEFAULT_RULES: tuple[HeuristicRule, ...] = (
    _rule("city_region", rf"\b(?P<phrase>{CAPITALIZED_PHRASE}),\s*{CAPITALIZED_PHRASE}"),
    _rule("in_city", rf"\b(?i:in)\s+(?P<phrase>{CAPITALIZED_PHRASE})"),
    _rule("to_city", rf"\b(?i:to)\s+(?P<phrase>{CAPITALIZED_PHRASE})"),
    _rule("visit_city", rf"\b(?i:visit)\s+(?P<phrase>{CAPITALIZED_PHRASE})"),
)


class MentionDetector:
    """
    Finds at most one place mention in a piece of text.

    detect() returns:
      - SelectionEvent.recognized(place) for a known city,
      - SelectionEvent.unrecognized(phrase) for a place-like phrase that is
        not in the gazetteer,
      - None when nothing place-like is present.
    """

    def __init__(
        self,
        gazetteer: Optional[Gazetteer] = None,
        rules: tuple[HeuristicRule, ...] = DEFAULT_RULES,
    ):
        self.gazetteer = gazetteer if gazetteer is not None else get_gazetteer()
        self.rules = rules
        # Gazetteer order is the scan order
        self._patterns: list[tuple[re.Pattern, Place]] = [
            (name_pattern(place.name), place) for place in self.gazetteer
        ]

    def find_known(self, text: str) -> Optional[Place]:
        for pattern, place in self._patterns:
            if pattern.search(text):
                return place
        return None

    def find_place_like(self, text: str) -> Optional[str]:
        for rule in self.rules:
            phrase = rule.first_phrase(text)
            if phrase is None:
                continue
            # A known name here means the boundary scan and the rule disagree;
            # the rule's hit is dropped and the next rule gets a chance.
            if normalize_name(phrase) in self.gazetteer:
                continue
            return phrase
        return None

    def detect(self, text: str) -> Optional[SelectionEvent]:
        if not text:
            return None

        place = self.find_known(text)
        if place is not None:
            return SelectionEvent.recognized(place)

        phrase = self.find_place_like(text)
        if phrase is not None:
            return SelectionEvent.unrecognized(phrase)

        return None


# Singleton detector instance
_detector: Optional[MentionDetector] = None


def get_detector() -> MentionDetector:
    global _detector
    if _detector is None:
        _detector = MentionDetector()
    return _detector
