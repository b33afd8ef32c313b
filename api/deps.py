from fastapi import Request

from backend import Backend
from models import Beat
from player import PlaybackController
from storage import MediaStorage
from store import CatalogStore
from timefmt import format_time


def get_store(request: Request) -> CatalogStore:
    return request.app.state.store


def get_controller(request: Request) -> PlaybackController:
    return request.app.state.controller


def get_backend(request: Request) -> Backend:
    return request.app.state.backend


def get_storage(request: Request) -> MediaStorage:
    return request.app.state.storage


def beat_payload(beat: Beat) -> dict:
    data = beat.to_dict()
    data["duration_display"] = format_time(beat.duration)
    return data
