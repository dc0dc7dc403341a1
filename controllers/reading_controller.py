from fastapi import Request, UploadFile, HTTPException
from fastapi.responses import Response
from typing import Dict, Any
import asyncio
import logging

from models.errors import CompositionError, MissingArtifactError, ReadError, WorkflowBusyError
from services.composite_renderer import CompositeRenderer, card_filename, composite_filename
from services.reading.session_store import SessionStore
from services.reading.workflow import ReadingWorkflow
from utils.media_validation import read_image_payload

LOGGER = logging.getLogger(__name__)


def _get_workflow(request: Request, session_id: str) -> ReadingWorkflow:
    """Look up the reading for a session id, raising 404 when it does not exist."""
    store: SessionStore = request.app.state.session_store
    try:
        return store.get(session_id)
    except KeyError as exc:
        raise HTTPException(status_code=404, detail="Reading not found") from exc


def _download(content: bytes, media_type: str, filename: str) -> Response:
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


async def create_reading(request: Request) -> Dict[str, Any]:
    """Start a new, empty reading and return its id with the initial snapshot."""
    store: SessionStore = request.app.state.session_store
    session_id, workflow = store.create()
    return {"session_id": session_id, **workflow.snapshot()}


async def get_reading(request: Request, session_id: str) -> Dict[str, Any]:
    return _get_workflow(request, session_id).snapshot()


async def upload_portrait(request: Request, session_id: str, file: UploadFile) -> Dict[str, Any]:
    """Read the uploaded portrait and run the primary card phase.

    Args:
        request: FastAPI Request object (used to access the session store).
        session_id: Reading to upload into.
        file: Uploaded portrait image.

    Returns:
        The reading snapshot once the primary phase has settled. A failed
        analysis or illustration is reported through the snapshot's
        ``state`` and ``error`` fields rather than an HTTP error.

    Raises:
        HTTPException(400) if the file cannot be read, 409 if a step is still running.
    """
    workflow = _get_workflow(request, session_id)
    if workflow.state.in_flight:
        raise HTTPException(status_code=409, detail=WorkflowBusyError.default_user_message)

    try:
        image = await read_image_payload(file)
    except ReadError as exc:
        try:
            workflow.fail_ingestion(exc)
        except WorkflowBusyError as busy:
            raise HTTPException(status_code=409, detail=busy.user_message) from exc
        raise HTTPException(status_code=400, detail=exc.user_message) from exc

    try:
        await workflow.upload(image)
    except WorkflowBusyError as exc:
        raise HTTPException(status_code=409, detail=exc.user_message) from exc
    return workflow.snapshot()


async def select_second_card(request: Request, session_id: str, card_name: str) -> Dict[str, Any]:
    """Run the secondary phase for a card picked from the offered choices.

    Raises:
        HTTPException(409) if the reading is busy or the card is not on offer.
    """
    workflow = _get_workflow(request, session_id)
    try:
        accepted = await workflow.select_card(card_name)
    except WorkflowBusyError as exc:
        raise HTTPException(status_code=409, detail=exc.user_message) from exc
    if not accepted:
        raise HTTPException(status_code=409, detail=f"'{card_name}' cannot be chosen right now.")
    return workflow.snapshot()


async def shuffle_choices(request: Request, session_id: str) -> Dict[str, Any]:
    workflow = _get_workflow(request, session_id)
    try:
        shuffled = workflow.shuffle()
    except WorkflowBusyError as exc:
        raise HTTPException(status_code=409, detail=exc.user_message) from exc
    if not shuffled:
        raise HTTPException(status_code=409, detail="Choices can only be shuffled before a second card is chosen.")
    return workflow.snapshot()


async def reset_reading(request: Request, session_id: str) -> Dict[str, Any]:
    workflow = _get_workflow(request, session_id)
    workflow.reset()
    return workflow.snapshot()


async def delete_reading(request: Request, session_id: str) -> Dict[str, Any]:
    store: SessionStore = request.app.state.session_store
    try:
        store.discard(session_id)
    except KeyError as exc:
        raise HTTPException(status_code=404, detail="Reading not found") from exc
    return {"session_id": session_id, "deleted": True}


async def get_source_image(request: Request, session_id: str) -> Response:
    """Return the uploaded portrait bytes for preview."""
    image = _get_workflow(request, session_id).session.image
    if image is None:
        raise HTTPException(status_code=404, detail="No portrait uploaded")
    return Response(content=image.data, media_type=image.media_type)


async def get_card_image(request: Request, session_id: str, which: str) -> Response:
    """Return the primary or secondary card as a named download.

    Raises:
        HTTPException(404) if the card has not been generated.
    """
    session = _get_workflow(request, session_id).session
    if which == "primary":
        artifact = session.primary_artifact
    elif which == "secondary":
        artifact = session.secondary_artifact
    else:
        raise HTTPException(status_code=404, detail="Unknown card")
    if artifact is None:
        raise HTTPException(status_code=404, detail="Card not available yet")
    return _download(artifact.data, artifact.media_type, card_filename(artifact.card_name))


async def get_composite(request: Request, session_id: str) -> Response:
    """Render the source portrait and both cards into one downloadable PNG.

    Raises:
        HTTPException(409) before the second card exists, 500 if an image cannot be decoded.
    """
    session = _get_workflow(request, session_id).session
    # Read every field now; a reset may replace the session while rendering runs.
    analysis = session.analysis
    try:
        if session.image is None or analysis is None or session.primary_artifact is None:
            raise MissingArtifactError("The composite needs a primary reading.")
        # Pillow work is blocking -> run in thread
        png_bytes = await asyncio.to_thread(
            CompositeRenderer().render,
            session.image,
            session.primary_artifact,
            session.secondary_artifact,
            person_description=analysis.person_description,
            primary_name=analysis.card_name,
            primary_explanation=analysis.explanation,
            secondary_name=session.secondary_card_name,
            secondary_explanation=session.secondary_explanation,
        )
    except MissingArtifactError as exc:
        raise HTTPException(status_code=409, detail=exc.user_message) from exc
    except CompositionError as exc:
        LOGGER.exception("Composite rendering failed for reading %s", session_id)
        raise HTTPException(status_code=500, detail=exc.user_message) from exc

    return _download(png_bytes, "image/png", composite_filename(analysis.card_name))
