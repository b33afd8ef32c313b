import logging
import os
from contextlib import asynccontextmanager

from audio import ClockedAudioResource
from backend import Backend
from database import init_db
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from functions import create_functions_app
from models import Beat
from player import PlaybackController, ResourceFactory
from routers import admin, browse, contact, player
from storage import BUCKETS, MEDIA_URL_PREFIX, MediaStorage
from store import CatalogStore

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(name)s %(levelname)s %(message)s",
)
logger = logging.getLogger(__name__)

FUNCTIONS_PREFIX = "/functions"


class SiteCORSMiddleware(CORSMiddleware):
    """Site CORS policy for everything except /functions, which sets its own."""

    async def __call__(self, scope, receive, send):
        if scope["type"] == "http" and scope["path"].startswith(FUNCTIONS_PREFIX + "/"):
            await self.app(scope, receive, send)
            return
        await super().__call__(scope, receive, send)


def media_resource_factory(storage: MediaStorage) -> ResourceFactory:
    def factory(beat: Beat) -> ClockedAudioResource:
        return ClockedAudioResource(storage.resolve(beat.audio_url), fallback_duration=beat.duration)

    return factory


def create_app(
    backend: Backend | None = None,
    storage: MediaStorage | None = None,
    resource_factory: ResourceFactory | None = None,
) -> FastAPI:
    site_name = os.getenv("SITE_NAME", "Beat Alchemy")
    storage = storage or MediaStorage()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting up %s API", site_name)
        for bucket in BUCKETS:
            os.makedirs(storage.bucket_dir(bucket), exist_ok=True)
        nonlocal backend
        if backend is None:
            init_db()
            backend = Backend()
        store = CatalogStore(backend)
        controller = PlaybackController(store, resource_factory or media_resource_factory(storage))
        app.state.backend = backend
        app.state.storage = storage
        app.state.store = store
        app.state.controller = controller
        functions_app.state.backend = backend
        store.fetch_all()
        yield
        logger.info("Shutting down %s API", site_name)
        controller.close()

    app = FastAPI(title=site_name + " API", lifespan=lifespan)

    _hostname = os.environ.get("SERVER_HOSTNAME", "")
    _origins = [f"https://{_hostname}"] if _hostname else ["http://localhost", "http://localhost:8000"]

    app.add_middleware(
        SiteCORSMiddleware,
        allow_origins=_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "DELETE"],
        allow_headers=["Content-Type"],
    )

    app.include_router(browse.router)
    app.include_router(player.router)
    app.include_router(contact.router)
    app.include_router(admin.router)

    functions_app = create_functions_app(backend)
    app.mount(FUNCTIONS_PREFIX, functions_app)
    app.mount(MEDIA_URL_PREFIX, StaticFiles(directory=storage.media_dir, check_dir=False), name="media")

    @app.get("/health")
    def health():
        return {"ok": True}

    return app


app = create_app()
