"""Error kinds raised by the reading workflow and its collaborators."""

from __future__ import annotations


class TarotError(Exception):
    """Base error carrying a short message that is safe to show to the user.

    Attributes:
        user_message: Non-technical text for the presentation layer. The
            exception's own message (``str(exc)``) holds the diagnostic detail.
    """

    default_user_message = "Something went wrong. Please try again."

    def __init__(self, detail: str = "", user_message: str | None = None) -> None:
        super().__init__(detail or self.default_user_message)
        self.user_message = user_message or self.default_user_message


class ReadError(TarotError):
    """The uploaded image could not be read."""

    default_user_message = "Could not read the image file. Please try another one."


class AnalysisError(TarotError):
    """The analysis call failed or returned an unusable result."""

    default_user_message = "Failed to analyze the image and suggest a Tarot card."


class IllustrationError(TarotError):
    """The illustration call failed at the transport level."""

    default_user_message = "Failed to generate the Tarot card image."


class NoArtifactError(IllustrationError):
    """The illustration call succeeded but returned no image payload."""

    default_user_message = "No image was generated. Please try again."


class CompositionError(TarotError):
    """An image could not be decoded while building the composite."""

    default_user_message = "Could not load images to create the composite image. Please try again."


class MissingArtifactError(TarotError):
    """The composite was requested before the second card exists."""

    default_user_message = "Choose a second card before saving the full reading."


class WorkflowBusyError(TarotError):
    """A transition was requested while another step is still in flight."""

    default_user_message = "Your reading is still being prepared. Please wait."
