import logging

from auth import is_admin
from deps import beat_payload, get_controller, get_store
from fastapi import APIRouter, Cookie, Depends, HTTPException
from player import PlaybackController
from pydantic import BaseModel, Field
from store import CatalogStore
from timefmt import format_time

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/player")


class SelectRequest(BaseModel):
    beat_id: str | None = None


class SeekRequest(BaseModel):
    seconds: float


class VolumeRequest(BaseModel):
    volume: float = Field(ge=0.0, le=1.0)


def _player_state(store: CatalogStore, controller: PlaybackController) -> dict:
    playback = controller.snapshot()
    state = store.state
    return {
        "is_open": state.is_player_open,
        "beat": beat_payload(state.current_beat) if state.current_beat else None,
        "is_playing": playback.is_playing,
        "is_loading": playback.is_loading,
        "current_time": playback.current_time,
        "duration": playback.duration,
        "current_time_display": format_time(playback.current_time),
        "duration_display": format_time(playback.duration),
        "volume": playback.volume,
        "error": playback.error,
    }


@router.get("")
def get_player(
    store: CatalogStore = Depends(get_store),
    controller: PlaybackController = Depends(get_controller),
):
    return _player_state(store, controller)


@router.post("/select")
def select_beat(
    req: SelectRequest,
    admin_authenticated: str = Cookie(None),
    store: CatalogStore = Depends(get_store),
    controller: PlaybackController = Depends(get_controller),
):
    """Bind the player to a beat, or clear it with ``beat_id: null``."""
    if req.beat_id is None:
        store.select(None)
        return _player_state(store, controller)

    beat = store.get(req.beat_id)
    if beat is None or (not beat.is_published and not is_admin(admin_authenticated)):
        raise HTTPException(404, "Beat not found")
    store.select(beat)
    logger.info(f"Selected beat {beat.id}")
    return _player_state(store, controller)


@router.post("/toggle")
def toggle_play(
    store: CatalogStore = Depends(get_store),
    controller: PlaybackController = Depends(get_controller),
):
    controller.toggle_play()
    return _player_state(store, controller)


@router.post("/seek")
def seek(
    req: SeekRequest,
    store: CatalogStore = Depends(get_store),
    controller: PlaybackController = Depends(get_controller),
):
    controller.seek(req.seconds)
    return _player_state(store, controller)


@router.post("/skip-forward")
def skip_forward(
    store: CatalogStore = Depends(get_store),
    controller: PlaybackController = Depends(get_controller),
):
    controller.skip_forward()
    return _player_state(store, controller)


@router.post("/skip-backward")
def skip_backward(
    store: CatalogStore = Depends(get_store),
    controller: PlaybackController = Depends(get_controller),
):
    controller.skip_backward()
    return _player_state(store, controller)


@router.post("/volume")
def set_volume(
    req: VolumeRequest,
    store: CatalogStore = Depends(get_store),
    controller: PlaybackController = Depends(get_controller),
):
    controller.set_volume(req.volume)
    return _player_state(store, controller)


@router.post("/close")
def close_player(
    store: CatalogStore = Depends(get_store),
    controller: PlaybackController = Depends(get_controller),
):
    store.select(None)
    return _player_state(store, controller)
