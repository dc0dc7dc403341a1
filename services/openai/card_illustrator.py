"""Card illustration using OpenAI's Images API with the portrait as reference."""

import base64
import binascii
import logging
import os
import time
from typing import Any

from openai import AsyncOpenAI

from models.errors import IllustrationError, NoArtifactError
from models.reading_models import GeneratedArtifact, ImagePayload
from services.openai.tarot_prompts import build_illustration_prompt

LOGGER = logging.getLogger(__name__)
DEFAULT_IMAGE_MODEL = os.getenv("OPENAI_IMAGE_MODEL", "gpt-image-1")
# Portrait orientation, close to the 1:1.5 card panels of the composite.
CARD_SIZE = "1024x1536"


class CardIllustrator:
    """Render a portrait as the artwork of a given Tarot card."""

    def __init__(self, client: AsyncOpenAI, model: str = DEFAULT_IMAGE_MODEL, size: str = CARD_SIZE) -> None:
        if client is None:
            raise ValueError("OpenAI client must be provided.")
        self.client = client
        self.model = model
        self.size = size

    async def render(self, image: ImagePayload, card_name: str) -> GeneratedArtifact:
        """Generate the card illustration for ``card_name``.

        Raises:
            IllustrationError: If the Images API call fails.
            NoArtifactError: If the response carries no image payload.
        """
        start_time = time.time()
        try:
            response = await self.client.images.edit(
                model=self.model,
                image=(image.filename, image.data, image.media_type),
                prompt=build_illustration_prompt(card_name),
                size=self.size,
                output_format="png",
            )
        except Exception as exc:
            LOGGER.exception("Error during OpenAI Images API call for %s", card_name)
            raise IllustrationError(f"Images API call failed: {exc}") from exc

        data = self._extract_image(response)
        LOGGER.info("Illustration for %s generated in %.3fs", card_name, time.time() - start_time)
        return GeneratedArtifact(card_name=card_name, data=data, media_type="image/png")

    @staticmethod
    def _extract_image(response: Any) -> bytes:
        """Pull the decoded image bytes out of an Images API result."""
        for item in getattr(response, "data", None) or []:
            b64_json = getattr(item, "b64_json", None)
            if not b64_json:
                continue
            try:
                decoded = base64.b64decode(b64_json, validate=True)
            except (binascii.Error, ValueError) as exc:
                raise NoArtifactError(f"Image payload is not valid base64: {exc}") from exc
            if decoded:
                return decoded
        LOGGER.error("Images API response contained no image payload: %r", response)
        raise NoArtifactError("No image was generated by the model.")
