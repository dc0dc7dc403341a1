"""Function tool schemas for the card analysis calls."""

from typing import Any, Dict, List

PRIMARY_FUNCTION_NAME = "suggest_tarot_card"
SECONDARY_FUNCTION_NAME = "explain_second_card"


def build_primary_tool(card_names: List[str]) -> Dict[str, Any]:
    """Create the strict tool definition for choosing the primary card.

    Args:
        card_names: Catalog names the model is allowed to answer with.
    """
    return {
        "type": "function",
        "name": PRIMARY_FUNCTION_NAME,
        "description": "Return a description of the person, the best matching card, and why it fits.",
        "parameters": {
            "type": "object",
            "properties": {
                "personDescription": {
                    "type": "string",
                    "description": "A concise, one-sentence description of the person in the image.",
                },
                "cardName": {
                    "type": "string",
                    "description": "The exact name of the Major Arcana card (e.g. 'The Magician').",
                    "enum": list(card_names),
                },
                "explanation": {
                    "type": "string",
                    "description": "A brief, insightful explanation (max two sentences) for the choice.",
                },
            },
            "required": ["personDescription", "cardName", "explanation"],
            "additionalProperties": False,
        },
        "strict": True,
    }


SECONDARY_FUNCTION_DEFINITION: Dict[str, Any] = {
    "type": "function",
    "name": SECONDARY_FUNCTION_NAME,
    "description": "Explain why the card the user picked is relevant to the person.",
    "parameters": {
        "type": "object",
        "properties": {
            "explanation": {
                "type": "string",
                "description": "A brief, insightful explanation (max two sentences) for the chosen card.",
            },
        },
        "required": ["explanation"],
        "additionalProperties": False,
    },
    "strict": True,
}
