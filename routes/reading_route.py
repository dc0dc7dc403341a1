"""FastAPI routes for Tarot readings."""

from fastapi import APIRouter, File, HTTPException, Request, UploadFile
from pydantic import BaseModel

from controllers.reading_controller import (
	create_reading,
	delete_reading,
	get_card_image,
	get_composite,
	get_reading,
	get_source_image,
	reset_reading,
	select_second_card,
	shuffle_choices,
	upload_portrait,
)

router = APIRouter(prefix="/readings", tags=["readings"])


class SelectionPayload(BaseModel):
	card_name: str


@router.post("")
async def create_reading_route(request: Request):
	return await create_reading(request)


@router.get("/{session_id}")
async def get_reading_route(request: Request, session_id: str):
	return await get_reading(request, session_id)


@router.delete("/{session_id}")
async def delete_reading_route(request: Request, session_id: str):
	return await delete_reading(request, session_id)


@router.post("/{session_id}/image")
async def upload_portrait_route(request: Request, session_id: str, image: UploadFile = File(...)):
	"""Upload a portrait and run the primary card phase."""
	try:
		return await upload_portrait(request, session_id, image)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.post("/{session_id}/selection")
async def select_second_card_route(request: Request, session_id: str, payload: SelectionPayload):
	"""Choose the second card from the offered choices."""
	try:
		return await select_second_card(request, session_id, payload.card_name)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.post("/{session_id}/shuffle")
async def shuffle_choices_route(request: Request, session_id: str):
	return await shuffle_choices(request, session_id)


@router.post("/{session_id}/reset")
async def reset_reading_route(request: Request, session_id: str):
	return await reset_reading(request, session_id)


@router.get("/{session_id}/source")
async def get_source_image_route(request: Request, session_id: str):
	return await get_source_image(request, session_id)


@router.get("/{session_id}/cards/{which}")
async def get_card_image_route(request: Request, session_id: str, which: str):
	"""Download the primary or secondary card image."""
	return await get_card_image(request, session_id, which)


@router.get("/{session_id}/composite")
async def get_composite_route(request: Request, session_id: str):
	"""Download the full reading as a single composite image."""
	return await get_composite(request, session_id)
