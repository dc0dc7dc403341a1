"""State machine driving one Tarot reading from upload to the second card."""

from __future__ import annotations

import logging
import random
from typing import Any, Callable, Dict, List, Optional, Protocol

from models.errors import AnalysisError, IllustrationError, TarotError, WorkflowBusyError
from models.reading_models import (
    AnalysisResult,
    CategoryCatalog,
    GeneratedArtifact,
    ImagePayload,
    ReadingState,
    SessionState,
)
from services.choice_generator import pick

LOGGER = logging.getLogger(__name__)

ANALYZING_MESSAGE = "Consulting the cosmos..."
SECONDARY_ANALYZING_MESSAGE = "Interpreting your choice..."

Listener = Callable[[Dict[str, Any]], None]


def illustrating_message(card_name: str) -> str:
    return f"Summoning the essence of {card_name}..."


class Analyzer(Protocol):
    async def suggest_primary(self, image: ImagePayload) -> AnalysisResult: ...

    async def explain_secondary(self, image: ImagePayload, primary: AnalysisResult, chosen_name: str) -> str: ...


class Illustrator(Protocol):
    async def render(self, image: ImagePayload, card_name: str) -> GeneratedArtifact: ...


class ReadingWorkflow:
    """Own the session state of one reading and expose its transitions.

    Every transition notifies subscribers with a fresh `snapshot()`. Steps run
    strictly one after the other; starting a new step while one is in flight
    raises `WorkflowBusyError`. `reset()` is always allowed and makes any
    in-flight step discard its result when it settles.
    """

    def __init__(
        self,
        analyzer: Analyzer,
        illustrator: Illustrator,
        catalog: CategoryCatalog,
        *,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.analyzer = analyzer
        self.illustrator = illustrator
        self.catalog = catalog
        self.rng = rng or random.Random()
        self.session = SessionState()
        self._generation = 0
        self._listeners: List[Listener] = []

    @property
    def state(self) -> ReadingState:
        return self.session.state

    # -- observers ---------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a state-change listener and return a function that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                LOGGER.exception("State listener failed; removing it")
                self._listeners.remove(listener)

    def _enter(self, state: ReadingState, loading_message: str = "") -> None:
        LOGGER.debug("Reading %s -> %s", self.session.state.value, state.value)
        self.session.state = state
        self.session.loading_message = loading_message
        self._notify()

    def _ensure_settled(self) -> None:
        if self.session.state.in_flight:
            raise WorkflowBusyError(f"Cannot start a new step while {self.session.state.value}.")

    def _is_stale(self, generation: int, phase: str) -> bool:
        if generation == self._generation:
            return False
        LOGGER.info("Discarding %s result for a reading that was reset", phase)
        return True

    # -- transitions -------------------------------------------------------

    def reset(self) -> None:
        """Discard all session state and return to idle."""
        self._generation += 1
        self.session = SessionState()
        self._notify()

    def fail_ingestion(self, error: TarotError) -> None:
        """Record an upload that could not be read, without keeping any of it."""
        self._ensure_settled()
        LOGGER.error("Image ingestion failed: %s", error)
        self._generation += 1
        self.session = SessionState(state=ReadingState.ERRORED, error=error.user_message)
        self._notify()

    async def upload(self, image: ImagePayload) -> SessionState:
        """Run the primary phase for a freshly uploaded portrait.

        Clears any previous reading, then analyzes the portrait, illustrates
        the suggested card, and offers the initial second-card choices. A
        failure in either call ends in the errored state with nothing from
        this upload but the image kept.
        """
        self._ensure_settled()
        self._generation += 1
        generation = self._generation
        self.session = SessionState(image=image)
        self._enter(ReadingState.ANALYZING, ANALYZING_MESSAGE)

        try:
            analysis = await self.analyzer.suggest_primary(image)
        except Exception as exc:
            if self._is_stale(generation, "primary"):
                return self.session
            return self._fail_primary(exc if isinstance(exc, TarotError) else AnalysisError(str(exc)))
        if self._is_stale(generation, "primary"):
            return self.session

        self.session.analysis = analysis
        self._enter(ReadingState.ILLUSTRATING, illustrating_message(analysis.card_name))

        try:
            artifact = await self.illustrator.render(image, analysis.card_name)
        except Exception as exc:
            if self._is_stale(generation, "primary"):
                return self.session
            return self._fail_primary(exc if isinstance(exc, TarotError) else IllustrationError(str(exc)))
        if self._is_stale(generation, "primary"):
            return self.session

        self.session.primary_artifact = artifact
        self.session.choices = pick(analysis.card_name, self.catalog, rng=self.rng)
        self.session.error = None
        self._enter(ReadingState.AWAITING_CHOICE)
        return self.session

    def _fail_primary(self, error: TarotError) -> SessionState:
        LOGGER.error("Primary reading failed (%s): %s", type(error).__name__, error, exc_info=error)
        self.session.analysis = None
        self.session.primary_artifact = None
        self.session.choices = ()
        self.session.error = error.user_message
        self._enter(ReadingState.ERRORED)
        return self.session

    async def select_card(self, card_name: str) -> bool:
        """Run the secondary phase for a card picked from the current choices.

        Returns:
            False without changing anything when the selection is not allowed
            (wrong state, unknown choice, or no primary reading); True once the
            secondary phase has settled, whether it succeeded or not.
        """
        self._ensure_settled()
        session = self.session
        if (
            session.state is not ReadingState.AWAITING_CHOICE
            or card_name not in session.choices
            or session.image is None
            or session.analysis is None
        ):
            LOGGER.warning("Ignoring selection of %r in state %s", card_name, session.state.value)
            return False

        generation = self._generation
        session.error = None
        session.secondary_card_name = card_name
        self._enter(ReadingState.SECONDARY_ANALYZING, SECONDARY_ANALYZING_MESSAGE)

        try:
            explanation = await self.analyzer.explain_secondary(session.image, session.analysis, card_name)
        except Exception as exc:
            if not self._is_stale(generation, "secondary"):
                self._fail_secondary(exc if isinstance(exc, TarotError) else AnalysisError(str(exc)))
            return True
        if self._is_stale(generation, "secondary"):
            return True

        session.secondary_explanation = explanation
        self._enter(ReadingState.SECONDARY_ILLUSTRATING, illustrating_message(card_name))

        try:
            artifact = await self.illustrator.render(session.image, card_name)
        except Exception as exc:
            if not self._is_stale(generation, "secondary"):
                self._fail_secondary(exc if isinstance(exc, TarotError) else IllustrationError(str(exc)))
            return True
        if self._is_stale(generation, "secondary"):
            return True

        session.secondary_artifact = artifact
        self._enter(ReadingState.READY)
        return True

    def _fail_secondary(self, error: TarotError) -> None:
        LOGGER.error("Second card failed (%s): %s", type(error).__name__, error, exc_info=error)
        self.session.clear_secondary()
        self.session.error = error.user_message
        self._enter(ReadingState.AWAITING_CHOICE)

    def shuffle(self) -> bool:
        """Draw a fresh set of second-card choices. Only allowed while awaiting a choice."""
        self._ensure_settled()
        session = self.session
        if session.state is not ReadingState.AWAITING_CHOICE or session.analysis is None:
            return False
        session.choices = pick(session.analysis.card_name, self.catalog, rng=self.rng)
        self._notify()
        return True

    # -- views ---------------------------------------------------------------

    def snapshot(self) -> Dict[str, Any]:
        """Return a JSON-ready view of the session without any image bytes."""
        session = self.session
        analysis = session.analysis
        return {
            "state": session.state.value,
            "loading": session.state.in_flight,
            "loading_message": session.loading_message,
            "error": session.error,
            "has_image": session.image is not None,
            "analysis": analysis.to_dict() if analysis else None,
            "has_primary_card": session.primary_artifact is not None,
            "choices": list(session.choices),
            "second_card_name": session.secondary_card_name,
            "second_card_explanation": session.secondary_explanation,
            "has_second_card": session.secondary_artifact is not None,
        }
