"""Domain models for a single Tarot reading session."""

from __future__ import annotations

import base64
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional, Tuple


@dataclass(frozen=True)
class ImagePayload:
    """Uploaded portrait held in memory for the lifetime of a session.

    Attributes:
        data: Raw encoded image bytes as uploaded.
        media_type: MIME type of ``data`` (e.g. ``image/jpeg``).
        filename: Original filename, used when the image is sent to the model.
    """

    data: bytes
    media_type: str
    filename: str = "portrait"

    @property
    def base64(self) -> str:
        return base64.b64encode(self.data).decode("utf-8")

    @property
    def data_url(self) -> str:
        """Preview reference that a browser can resolve without a round trip."""
        return f"data:{self.media_type};base64,{self.base64}"


@dataclass(frozen=True)
class TarotCard:
    """One entry of the card catalog."""

    name: str
    keywords: str


@dataclass(frozen=True)
class CategoryCatalog:
    """Ordered, read-only list of the cards a reading can draw from."""

    cards: Tuple[TarotCard, ...]

    def __len__(self) -> int:
        return len(self.cards)

    def __iter__(self):
        return iter(self.cards)

    def names(self) -> list[str]:
        return [card.name for card in self.cards]

    def contains(self, name: str) -> bool:
        """Case-exact membership test."""
        return any(card.name == name for card in self.cards)

    @classmethod
    def from_entries(cls, entries: Iterable[dict]) -> "CategoryCatalog":
        return cls(tuple(TarotCard(name=entry["name"], keywords=entry.get("keywords", "")) for entry in entries))


@dataclass(frozen=True)
class AnalysisResult:
    """Structured answer of the primary analysis call."""

    person_description: str
    card_name: str
    explanation: str

    def to_dict(self) -> dict:
        return {
            "personDescription": self.person_description,
            "cardName": self.card_name,
            "explanation": self.explanation,
        }


@dataclass(frozen=True)
class GeneratedArtifact:
    """Illustration rendered for one card."""

    card_name: str
    data: bytes
    media_type: str = "image/png"


class ReadingState(str, Enum):
    """Workflow states of a reading session."""

    IDLE = "idle"
    ANALYZING = "analyzing"
    ILLUSTRATING = "illustrating"
    AWAITING_CHOICE = "awaiting_choice"
    SECONDARY_ANALYZING = "secondary_analyzing"
    SECONDARY_ILLUSTRATING = "secondary_illustrating"
    READY = "ready"
    ERRORED = "errored"

    @property
    def in_flight(self) -> bool:
        return self in IN_FLIGHT_STATES


IN_FLIGHT_STATES = frozenset(
    {
        ReadingState.ANALYZING,
        ReadingState.ILLUSTRATING,
        ReadingState.SECONDARY_ANALYZING,
        ReadingState.SECONDARY_ILLUSTRATING,
    }
)


@dataclass
class SessionState:
    """Everything a reading session knows. Replaced wholesale on reset."""

    state: ReadingState = ReadingState.IDLE
    image: Optional[ImagePayload] = None
    analysis: Optional[AnalysisResult] = None
    primary_artifact: Optional[GeneratedArtifact] = None
    choices: Tuple[str, ...] = field(default_factory=tuple)
    secondary_card_name: Optional[str] = None
    secondary_explanation: Optional[str] = None
    secondary_artifact: Optional[GeneratedArtifact] = None
    loading_message: str = ""
    error: Optional[str] = None

    def clear_secondary(self) -> None:
        self.secondary_card_name = None
        self.secondary_explanation = None
        self.secondary_artifact = None
