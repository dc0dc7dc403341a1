"""Prompt builders for card analysis and illustration."""


def build_system_prompt() -> str:
    """Return the system prompt shared by both analysis calls."""
    return (
        "You are an insightful Tarot reader with a painter's eye. "
        "You read people from their expression, attire, and overall aura, "
        "and you explain your choices warmly and briefly."
    )


def build_primary_prompt(catalog_text: str) -> str:
    """Return the prompt asking for a description and the best matching card."""
    return (
        "Analyze the person in this image (their expression, attire, and overall aura). "
        "Provide a concise, one-sentence description of the person. "
        "Then, from the following list of Major Arcana Tarot cards, choose the ONE that best represents them. "
        "Provide the exact card name and a brief, insightful explanation for your choice (max two sentences).\n\n"
        f"Here is the list of cards and their meanings:\n{catalog_text}"
    )


def build_secondary_prompt(primary_card_name: str, chosen_card_name: str) -> str:
    """Return the prompt explaining a card the user picked as their second card."""
    return (
        f"The person in the image has been identified as embodying '{primary_card_name}'. "
        f"The user has now actively chosen '{chosen_card_name}' as their second card.\n\n"
        "Based on the person in the image and their primary card, provide a brief, insightful explanation "
        f"(max two sentences) for the significance of this choice. How does '{chosen_card_name}' represent "
        "a path, challenge, or hidden aspect for them?"
    )


def build_illustration_prompt(card_name: str) -> str:
    """Return the style instructions for rendering the portrait as a card."""
    return (
        f"Create a beautiful and artistic Tarot Card illustration for '{card_name}'. "
        "The main character of the card must be the person from the provided photograph.\n\n"
        "Key instructions:\n"
        "1. Facial likeness and style: render the person's face in a detailed, illustrative style that "
        "harmonizes with the rest of the artwork. The facial features must be clearly recognizable and true "
        "to the person in the photo, artistically interpreted rather than photorealistically pasted.\n"
        "2. Mood and color matching: carry the mood, lighting, and color palette of the original photograph "
        "into the card's overall aesthetic.\n"
        f"3. Tarot theming: weave the traditional symbols, themes, and iconography of '{card_name}' into the "
        "background, clothing, and composition.\n"
        "4. Format: the final image must be a vertical, portrait-oriented tarot card."
    )
