"""In-memory stand-ins for the OpenAI-backed collaborators."""

from __future__ import annotations

import asyncio
import io
from typing import Dict, List, Optional, Tuple

from PIL import Image

from models.reading_models import AnalysisResult, GeneratedArtifact, ImagePayload


def make_png(size: Tuple[int, int] = (40, 60), color: Tuple[int, int, int] = (200, 120, 40)) -> bytes:
    out_io = io.BytesIO()
    Image.new("RGB", size, color).save(out_io, format="PNG")
    return out_io.getvalue()


def make_portrait() -> ImagePayload:
    return ImagePayload(data=make_png(color=(180, 30, 30)), media_type="image/png", filename="me.png")


STAR_READING = AnalysisResult(person_description="d", card_name="The Star", explanation="e")


class FakeAnalyzer:
    def __init__(
        self,
        result: AnalysisResult = STAR_READING,
        explanation: str = "e2",
        primary_error: Optional[Exception] = None,
        secondary_error: Optional[Exception] = None,
    ) -> None:
        self.result = result
        self.explanation = explanation
        self.primary_error = primary_error
        self.secondary_error = secondary_error
        self.calls: List[Tuple[str, str]] = []
        self.gate: Optional[asyncio.Event] = None

    async def suggest_primary(self, image: ImagePayload) -> AnalysisResult:
        self.calls.append(("primary", image.filename))
        if self.gate is not None:
            await self.gate.wait()
        if self.primary_error is not None:
            raise self.primary_error
        return self.result

    async def explain_secondary(self, image: ImagePayload, primary: AnalysisResult, chosen_name: str) -> str:
        self.calls.append(("secondary", chosen_name))
        if self.secondary_error is not None:
            raise self.secondary_error
        return self.explanation


class FakeIllustrator:
    def __init__(self, failures: Optional[Dict[str, Exception]] = None) -> None:
        self.failures = failures or {}
        self.calls: List[str] = []

    async def render(self, image: ImagePayload, card_name: str) -> GeneratedArtifact:
        self.calls.append(card_name)
        if card_name in self.failures:
            raise self.failures[card_name]
        return GeneratedArtifact(card_name=card_name, data=make_png(color=(20, 90, 160)), media_type="image/png")
