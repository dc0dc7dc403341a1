import inspect
import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request, HTTPException
from fastapi.staticfiles import StaticFiles
from openai import AsyncOpenAI

from routes.reading_route import router as reading_router
from routes.reading_ws import router as reading_ws_router
from services.openai.card_analyzer import CardAnalyzer
from services.openai.card_illustrator import CardIllustrator
from services.reading.session_store import DEFAULT_MAX_SESSIONS, SessionStore
from services.reading.workflow import ReadingWorkflow
from services.tarot_catalog import load_catalog

BASE_DIR = Path(__file__).resolve().parent
PUBLIC_DIR = BASE_DIR / "public"

from dotenv import load_dotenv

load_dotenv()  # Load environment variables from .env file if present

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
LOGGER = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan manager to initialize:
      - the Major Arcana catalog (read once, shared by every reading)
      - the OpenAI async client
      - the in-memory session store that builds one workflow per reading
    and attach them to `app.state`.
    """
    catalog = load_catalog()
    app.state.catalog = catalog

    # Initialize OpenAI async client
    openai_api_key = os.getenv("OPENAI_API_KEY")
    if not openai_api_key:
        raise RuntimeError("OPENAI_API_KEY environment variable is not set")

    try:
        openai_client = AsyncOpenAI()
    except Exception as exc:
        raise RuntimeError("Failed to initialize OpenAI Async client") from exc

    app.state.openai_client = openai_client

    analyzer = CardAnalyzer(openai_client, catalog)
    illustrator = CardIllustrator(openai_client)
    app.state.session_store = SessionStore(
        lambda: ReadingWorkflow(analyzer, illustrator, catalog),
        max_sessions=int(os.getenv("TAROT_MAX_SESSIONS", DEFAULT_MAX_SESSIONS)),
    )
    LOGGER.info("Loaded %d cards; analysis model %s, image model %s", len(catalog), analyzer.model, illustrator.model)

    try:
        yield
    finally:
        # Gracefully close the OpenAI client if it exposes a close/aclose method.
        client = getattr(app.state, "openai_client", None)
        if client is not None:
            aclose = getattr(client, "aclose", None) or getattr(client, "close", None)
            if aclose is not None:
                try:
                    if inspect.iscoroutinefunction(aclose):
                        await aclose()
                    else:
                        result = aclose()
                        if inspect.isawaitable(result):
                            await result
                except Exception:
                    LOGGER.warning("Error while closing the OpenAI client", exc_info=True)


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application instance.
    """
    app = FastAPI(lifespan=lifespan)

    # Serve static assets from the public directory, if it exists.
    if PUBLIC_DIR.exists():
        app.mount("/public", StaticFiles(directory=PUBLIC_DIR), name="public")

    @app.get("/catalog")
    async def get_catalog(request: Request):
        """List the cards a reading can draw from."""
        catalog = getattr(request.app.state, "catalog", None)
        if catalog is None:
            raise HTTPException(status_code=500, detail="Card catalog not loaded")
        return {"cards": [{"name": card.name, "keywords": card.keywords} for card in catalog]}

    @app.get("/health")
    async def health(request: Request):
        """
        Simple health check that verifies the session store and OpenAI client presence.
        """
        has_store = getattr(request.app.state, "session_store", None) is not None
        has_openai = getattr(request.app.state, "openai_client", None) is not None
        return {"ok": True, "sessions_ready": has_store, "openai_available": has_openai}

    # Register application routers
    app.include_router(reading_router)
    app.include_router(reading_ws_router)

    return app


app = create_app()
