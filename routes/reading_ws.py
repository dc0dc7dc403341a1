"""WebSocket endpoint streaming reading state changes."""

from __future__ import annotations

import asyncio
import json
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, WebSocket
from starlette.websockets import WebSocketDisconnect

from services.reading.session_store import SessionStore

router = APIRouter()


def _require_session_store(websocket: WebSocket) -> SessionStore:
	store = getattr(websocket.app.state, "session_store", None)
	if store is None:
		raise HTTPException(status_code=500, detail="Session store unavailable")
	return store


async def _wait_for_disconnect(websocket: WebSocket) -> None:
	"""Drain client messages until the socket closes. Clients never send anything meaningful."""
	while True:
		message = await websocket.receive()
		if message["type"] == "websocket.disconnect":
			return


@router.websocket("/ws/readings/{session_id}")
async def reading_events(websocket: WebSocket, session_id: str, store: SessionStore = Depends(_require_session_store)):
	"""Send the current reading snapshot, then one per state change until the client leaves."""
	await websocket.accept()
	try:
		workflow = store.get(session_id)
	except KeyError:
		await websocket.send_text(json.dumps({"type": "error", "detail": "Session not found"}))
		await websocket.close()
		return

	queue: asyncio.Queue[Dict[str, Any]] = asyncio.Queue()
	unsubscribe = workflow.subscribe(queue.put_nowait)
	disconnected = asyncio.create_task(_wait_for_disconnect(websocket))
	next_snapshot: asyncio.Task | None = None
	try:
		snapshot = workflow.snapshot()
		while True:
			await websocket.send_text(json.dumps({"type": "reading.state", **snapshot}))
			next_snapshot = asyncio.create_task(queue.get())
			await asyncio.wait({next_snapshot, disconnected}, return_when=asyncio.FIRST_COMPLETED)
			if disconnected.done():
				break
			snapshot = next_snapshot.result()
	except WebSocketDisconnect:
		pass
	finally:
		unsubscribe()
		for task in (next_snapshot, disconnected):
			if task is not None and not task.done():
				task.cancel()
