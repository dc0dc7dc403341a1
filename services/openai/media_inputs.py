"""Utilities to build multimodal input payloads for the Responses API."""

from typing import Any, Dict, List

from models.reading_models import ImagePayload


def build_inputs(system_prompt: str, user_prompt: str, *, image: ImagePayload) -> List[Dict[str, Any]]:
    """Build the Responses API input array with the portrait as its own message."""
    return [
        {
            "type": "message",
            "role": "system",
            "content": [{"type": "input_text", "text": system_prompt}],
        },
        {"type": "message", "role": "user", "content": [{"type": "input_text", "text": user_prompt}]},
        {"type": "message", "role": "user", "content": [{"type": "input_image", "image_url": image.data_url}]},
    ]
