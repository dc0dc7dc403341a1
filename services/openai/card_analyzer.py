"""Portrait analysis and card explanation using OpenAI's Responses API."""

import logging
import os
import time
from typing import Any, Dict, List

from openai import AsyncOpenAI

from models.errors import AnalysisError
from models.reading_models import AnalysisResult, CategoryCatalog, ImagePayload
from services.openai.media_inputs import build_inputs
from services.openai.response_parser import extract_usage, parse_function_call
from services.openai.tarot_prompts import build_primary_prompt, build_secondary_prompt, build_system_prompt
from services.openai.tarot_schema import (
    PRIMARY_FUNCTION_NAME,
    SECONDARY_FUNCTION_DEFINITION,
    SECONDARY_FUNCTION_NAME,
    build_primary_tool,
)
from services.tarot_catalog import catalog_prompt_lines

LOGGER = logging.getLogger(__name__)
DEFAULT_MODEL = os.getenv("OPENAI_MODEL", "gpt-5")


class CardAnalyzer:
    """Pick a card for a portrait and explain user-chosen cards."""

    def __init__(self, client: AsyncOpenAI, catalog: CategoryCatalog, model: str = DEFAULT_MODEL) -> None:
        """Initialize the analyzer with an OpenAI async client and the card catalog."""
        if client is None:
            raise ValueError("OpenAI client must be provided.")
        self.client = client
        self.catalog = catalog
        self.model = model
        self.system_prompt = build_system_prompt()
        self.primary_tool = build_primary_tool(catalog.names())

    async def suggest_primary(self, image: ImagePayload) -> AnalysisResult:
        """Describe the person in the portrait and choose the best matching card.

        Args:
            image: The uploaded portrait.

        Returns:
            The description, a catalog card name, and a short rationale.

        Raises:
            AnalysisError: If the call fails, the output cannot be parsed, a field
                is empty, or the card name is not an exact catalog entry.
        """
        user_prompt = build_primary_prompt(catalog_prompt_lines(self.catalog))
        args = await self._call_tool(image, user_prompt, self.primary_tool, PRIMARY_FUNCTION_NAME)

        person_description = (args.get("personDescription") or "").strip()
        card_name = (args.get("cardName") or "").strip()
        explanation = (args.get("explanation") or "").strip()
        if not (person_description and card_name and explanation):
            LOGGER.error("Incomplete card suggestion received: %r", args)
            raise AnalysisError("Incomplete card suggestion received from OpenAI.")
        if not self.catalog.contains(card_name):
            LOGGER.error("Model suggested a card outside the catalog: %r", card_name)
            raise AnalysisError(f"Model returned an unknown card name: {card_name!r}")

        return AnalysisResult(person_description=person_description, card_name=card_name, explanation=explanation)

    async def explain_secondary(self, image: ImagePayload, primary: AnalysisResult, chosen_name: str) -> str:
        """Explain what a user-chosen second card means for the person.

        Raises:
            AnalysisError: If the call fails or no explanation is returned.
        """
        user_prompt = build_secondary_prompt(primary.card_name, chosen_name)
        args = await self._call_tool(image, user_prompt, SECONDARY_FUNCTION_DEFINITION, SECONDARY_FUNCTION_NAME)

        explanation = (args.get("explanation") or "").strip()
        if not explanation:
            raise AnalysisError("No explanation returned for the chosen card.")
        return explanation

    async def _call_tool(
        self,
        image: ImagePayload,
        user_prompt: str,
        tool: Dict[str, Any],
        tool_name: str,
    ) -> Dict[str, Any]:
        """Send one forced function call and return its decoded arguments."""
        start_time = time.time()
        inputs: List[Dict[str, Any]] = build_inputs(self.system_prompt, user_prompt, image=image)
        try:
            response = await self.client.responses.create(
                model=self.model,
                input=inputs,
                tools=[tool],
                tool_choice={"type": "function", "name": tool_name},
            )
        except Exception as exc:
            LOGGER.exception("Error during OpenAI Responses API call for %s", tool_name)
            raise AnalysisError(f"Responses API call failed: {exc}") from exc

        try:
            args = parse_function_call(response, tool_name=tool_name)
        except (RuntimeError, ValueError) as exc:
            LOGGER.error("Error parsing OpenAI response: %s", exc)
            LOGGER.debug("Full response object: %r", response)
            raise AnalysisError(str(exc)) from exc

        usage = extract_usage(response)
        LOGGER.info(
            "%s completed in %.3fs (input_tokens=%s, output_tokens=%s)",
            tool_name,
            time.time() - start_time,
            usage["input_tokens"],
            usage["output_tokens"],
        )
        return args
