from __future__ import annotations

import asyncio
import io
import random
from types import SimpleNamespace

import pytest
from fastapi import HTTPException, UploadFile
from fastapi.testclient import TestClient
from PIL import Image
from starlette.datastructures import Headers

import controllers.reading_controller as reading_controller
from main import create_app
from models.errors import AnalysisError
from models.reading_models import ReadingState
from routes.reading_ws import _wait_for_disconnect
from services.reading.session_store import SessionStore
from services.reading.workflow import ReadingWorkflow
from tests.fakes import FakeAnalyzer, FakeIllustrator, make_png


def _client(catalog, analyzer: FakeAnalyzer | None = None) -> TestClient:
    app = create_app()
    app.state.catalog = catalog
    app.state.session_store = SessionStore(
        lambda: ReadingWorkflow(analyzer or FakeAnalyzer(), FakeIllustrator(), catalog, rng=random.Random(5))
    )
    return TestClient(app)


def _start(client: TestClient) -> str:
    response = client.post("/readings")
    assert response.status_code == 200
    assert response.json()["state"] == "idle"
    return response.json()["session_id"]


def _upload(client: TestClient, session_id: str):
    return client.post(
        f"/readings/{session_id}/image",
        files={"image": ("me.png", make_png(color=(180, 30, 30)), "image/png")},
    )


def test_full_reading_over_http(catalog) -> None:
    client = _client(catalog)
    session_id = _start(client)

    reading = _upload(client, session_id)
    assert reading.status_code == 200
    body = reading.json()
    assert body["state"] == "awaiting_choice"
    assert body["analysis"] == {"personDescription": "d", "cardName": "The Star", "explanation": "e"}
    assert len(body["choices"]) == 4

    card = client.get(f"/readings/{session_id}/cards/primary")
    assert card.status_code == 200
    assert card.headers["content-type"] == "image/png"
    assert 'filename="The_Star-Card.png"' in card.headers["content-disposition"]

    early = client.get(f"/readings/{session_id}/composite")
    assert early.status_code == 409
    assert client.get(f"/readings/{session_id}/cards/secondary").status_code == 404

    shuffled = client.post(f"/readings/{session_id}/shuffle")
    assert shuffled.status_code == 200
    choice = shuffled.json()["choices"][0]

    selected = client.post(f"/readings/{session_id}/selection", json={"card_name": choice})
    assert selected.status_code == 200
    assert selected.json()["state"] == "ready"
    assert selected.json()["second_card_explanation"] == "e2"

    composite = client.get(f"/readings/{session_id}/composite")
    assert composite.status_code == 200
    assert 'filename="My-The_Star-Reading.png"' in composite.headers["content-disposition"]
    with Image.open(io.BytesIO(composite.content)) as image:
        assert image.format == "PNG"

    assert client.post(f"/readings/{session_id}/shuffle").status_code == 409

    reset = client.post(f"/readings/{session_id}/reset")
    assert reset.json()["state"] == "idle"
    assert reset.json()["analysis"] is None
    assert client.get(f"/readings/{session_id}/source").status_code == 404


def test_primary_failure_is_reported_in_the_snapshot(catalog) -> None:
    client = _client(catalog, FakeAnalyzer(primary_error=AnalysisError("bad schema")))
    session_id = _start(client)

    body = _upload(client, session_id).json()

    assert body["state"] == "errored"
    assert body["analysis"] is None
    assert body["error"] == AnalysisError.default_user_message


def test_unreadable_upload_returns_400_and_errors_the_session(catalog) -> None:
    client = _client(catalog)
    session_id = _start(client)

    response = client.post(
        f"/readings/{session_id}/image",
        files={"image": ("notes.txt", b"not a portrait", "text/plain")},
    )

    assert response.status_code == 400
    snapshot = client.get(f"/readings/{session_id}").json()
    assert snapshot["state"] == "errored"
    assert snapshot["has_image"] is False


def test_selection_not_on_offer_is_rejected(catalog) -> None:
    client = _client(catalog)
    session_id = _start(client)
    _upload(client, session_id)

    response = client.post(f"/readings/{session_id}/selection", json={"card_name": "The Star"})

    assert response.status_code == 409
    assert client.get(f"/readings/{session_id}").json()["state"] == "awaiting_choice"


def test_unknown_and_deleted_sessions_are_404(catalog) -> None:
    client = _client(catalog)
    assert client.get("/readings/nope").status_code == 404

    session_id = _start(client)
    assert client.delete(f"/readings/{session_id}").json() == {"session_id": session_id, "deleted": True}
    assert client.get(f"/readings/{session_id}").status_code == 404


def test_catalog_and_health(catalog) -> None:
    client = _client(catalog)

    cards = client.get("/catalog").json()["cards"]
    assert len(cards) == 22
    assert cards[0]["name"] == "The Fool"

    health = client.get("/health").json()
    assert health["ok"] is True
    assert health["sessions_ready"] is True


def test_websocket_sends_current_snapshot(catalog) -> None:
    client = _client(catalog)
    session_id = _start(client)
    _upload(client, session_id)

    with client.websocket_connect(f"/ws/readings/{session_id}") as websocket:
        message = websocket.receive_json()

    assert message["type"] == "reading.state"
    assert message["state"] == "awaiting_choice"
    assert message["analysis"]["cardName"] == "The Star"


def test_websocket_unknown_session(catalog) -> None:
    client = _client(catalog)
    with client.websocket_connect("/ws/readings/missing") as websocket:
        message = websocket.receive_json()
    assert message == {"type": "error", "detail": "Session not found"}


def test_websocket_unsubscribes_when_client_disconnects(catalog) -> None:
    client = _client(catalog)
    session_id = _start(client)
    workflow = client.app.state.session_store.get(session_id)

    with client.websocket_connect(f"/ws/readings/{session_id}") as websocket:
        assert websocket.receive_json()["state"] == "idle"
        assert len(workflow._listeners) == 1

    assert workflow._listeners == []


def test_wait_for_disconnect_ignores_client_messages() -> None:
    messages = iter(
        [
            {"type": "websocket.receive", "text": "hello"},
            {"type": "websocket.disconnect", "code": 1000},
        ]
    )
    received = []

    async def receive():
        message = next(messages)
        received.append(message["type"])
        return message

    asyncio.run(_wait_for_disconnect(SimpleNamespace(receive=receive)))

    assert received == ["websocket.receive", "websocket.disconnect"]


def test_composite_renders_off_the_event_loop(catalog, monkeypatch) -> None:
    seen = {}

    class _RecordingRenderer:
        def render(self, image, primary, secondary, **text):
            try:
                asyncio.get_running_loop()
                seen["on_loop"] = True
            except RuntimeError:
                seen["on_loop"] = False
            seen["primary_name"] = text["primary_name"]
            return make_png()

    monkeypatch.setattr(reading_controller, "CompositeRenderer", _RecordingRenderer)
    client = _client(catalog)
    session_id = _start(client)
    choice = _upload(client, session_id).json()["choices"][0]
    client.post(f"/readings/{session_id}/selection", json={"card_name": choice})

    response = client.get(f"/readings/{session_id}/composite")

    assert response.status_code == 200
    assert response.content == make_png()
    assert seen == {"on_loop": False, "primary_name": "The Star"}


def test_unreadable_upload_during_a_running_step_is_409(catalog) -> None:
    store = SessionStore(lambda: ReadingWorkflow(FakeAnalyzer(), FakeIllustrator(), catalog))
    session_id, workflow = store.create()

    class _FileReadDuringAnalysis:
        def read(self, *args) -> bytes:
            # Another request starts the primary phase while this body is read.
            workflow.session.state = ReadingState.ANALYZING
            raise OSError("connection reset")

        def seek(self, *args) -> int:
            return 0

        def close(self) -> None:
            pass

    upload = UploadFile(
        file=_FileReadDuringAnalysis(),
        filename="me.png",
        headers=Headers({"content-type": "image/png"}),
    )
    request = SimpleNamespace(app=SimpleNamespace(state=SimpleNamespace(session_store=store)))

    with pytest.raises(HTTPException) as excinfo:
        asyncio.run(reading_controller.upload_portrait(request, session_id, upload))

    assert excinfo.value.status_code == 409
    assert workflow.state is ReadingState.ANALYZING


def test_index_route_is_not_served(catalog) -> None:
    client = _client(catalog)
    assert client.get("/").status_code == 404


def test_startup_requires_openai_api_key(monkeypatch) -> None:
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    with pytest.raises(RuntimeError, match="OPENAI_API_KEY"):
        with TestClient(create_app()):
            pass
