import logging
import os

from audio import estimate_tempo, probe_duration
from auth import USERNAME_COOKIE, forget_admin, is_admin, remember_admin, require_admin
from backend import Backend, BackendError
from catalog import published_only
from deps import beat_payload, get_backend, get_storage, get_store
from fastapi import APIRouter, Cookie, Depends, File, Form, HTTPException, Response, UploadFile
from models import DEFAULT_ARTIST
from pydantic import BaseModel, Field
from starlette.concurrency import run_in_threadpool
from storage import AUDIO_BUCKET, COVER_BUCKET, FileTooLarge, MediaStorage, StorageError
from store import CatalogStore

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/admin")

AUDIO_EXTENSIONS = {".mp3", ".wav", ".flac", ".m4a", ".ogg"}
COVER_EXTENSIONS = {".png", ".jpg", ".jpeg", ".webp"}
MAX_AUDIO_SIZE = int(os.environ.get("MAX_AUDIO_SIZE", str(20 * 1024 * 1024)))  # 20MB
MAX_COVER_SIZE = int(os.environ.get("MAX_COVER_SIZE", str(2 * 1024 * 1024)))  # 2MB
DEFAULT_TITLE = "Untitled Beat"
DEFAULT_GENRE = "Hip Hop"
DEFAULT_BPM = 120

ADMIN_TABS = ("all", "published", "drafts")


class LoginRequest(BaseModel):
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)


class BeatUpdate(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=200)
    genre: str | None = Field(None, min_length=1, max_length=50)
    bpm: int | None = Field(None, gt=0, le=999)
    is_published: bool | None = None


class ProcessedUpdate(BaseModel):
    processed: bool


@router.post("/login")
def login(req: LoginRequest, response: Response, backend: Backend = Depends(get_backend)):
    try:
        ok = backend.verify_admin_credentials(req.username, req.password)
    except BackendError as e:
        logger.error(f"Authentication error: {e}")
        raise HTTPException(503, "Authentication failed. Please try again.")
    if not ok:
        logger.info("Rejected admin login")
        raise HTTPException(401, "Invalid username or password")
    remember_admin(response, req.username)
    logger.info(f"Admin '{req.username}' logged in")
    return {"ok": True, "username": req.username}


@router.post("/logout")
def logout(response: Response):
    forget_admin(response)
    return {"ok": True}


@router.get("/session")
def session(admin_authenticated: str = Cookie(None), admin_username: str = Cookie(None)):
    authenticated = is_admin(admin_authenticated)
    return {"authenticated": authenticated, USERNAME_COOKIE: admin_username if authenticated else None}


@router.get("/beats")
def list_all_beats(tab: str = "all", auth=Depends(require_admin), store: CatalogStore = Depends(get_store)):
    """Every beat, drafts included."""
    if tab not in ADMIN_TABS:
        raise HTTPException(400, f"tab must be one of: {', '.join(ADMIN_TABS)}")
    beats = list(store.beats)
    if tab == "published":
        beats = published_only(beats)
    elif tab == "drafts":
        beats = [b for b in beats if not b.is_published]
    return {"beats": [beat_payload(b) for b in beats]}


def _check_extension(file: UploadFile, allowed: set[str]):
    ext = os.path.splitext(file.filename or "")[1].lower()
    if ext not in allowed:
        raise HTTPException(400, f"Unsupported file type: {ext or '(none)'}")


async def _upload(storage: MediaStorage, bucket: str, file: UploadFile, max_size: int):
    try:
        return await storage.upload(bucket, file, max_size)
    except FileTooLarge as e:
        raise HTTPException(413, str(e))
    except StorageError as e:
        logger.error(f"Upload failed: {e}")
        raise HTTPException(502, f"Upload failed: {e}")


@router.post("/beats", status_code=201)
async def add_beat(
    title: str = Form(""),
    genre: str = Form(""),
    bpm: int | None = Form(None),
    artist: str = Form(DEFAULT_ARTIST),
    is_published: bool = Form(True),
    audio: UploadFile = File(None),
    cover: UploadFile = File(None),
    auth=Depends(require_admin),
    store: CatalogStore = Depends(get_store),
    backend: Backend = Depends(get_backend),
    storage: MediaStorage = Depends(get_storage),
):
    """Upload audio, then cover art, then insert the row and add it to the catalog.

    Uploads are not rolled back if a later step fails.
    """
    if audio is None or not audio.filename:
        raise HTTPException(400, "Please upload an audio file")
    _check_extension(audio, AUDIO_EXTENSIONS)
    has_cover = cover is not None and bool(cover.filename)
    if has_cover:
        _check_extension(cover, COVER_EXTENSIONS)
    if bpm is not None and bpm <= 0:
        raise HTTPException(400, "bpm must be a positive integer")

    stored_audio = await _upload(storage, AUDIO_BUCKET, audio, MAX_AUDIO_SIZE)

    try:
        duration = await run_in_threadpool(probe_duration, stored_audio.path)
    except Exception as e:
        logger.error(f"Could not decode {stored_audio.path}: {e}")
        raise HTTPException(400, "Could not read the audio file")

    if bpm is None:
        try:
            bpm = await run_in_threadpool(estimate_tempo, stored_audio.path)
        except Exception as e:
            logger.warning(f"Tempo estimation failed, using {DEFAULT_BPM}: {e}")
            bpm = DEFAULT_BPM

    cover_url = None
    if has_cover:
        cover_url = (await _upload(storage, COVER_BUCKET, cover, MAX_COVER_SIZE)).public_url

    try:
        beat = backend.insert_beat(
            title=title.strip()[:200] or DEFAULT_TITLE,
            artist=artist.strip()[:200] or DEFAULT_ARTIST,
            genre=genre.strip()[:50] or DEFAULT_GENRE,
            bpm=bpm,
            duration=duration,
            audio_url=stored_audio.public_url,
            cover_art_url=cover_url,
            is_published=is_published,
        )
    except BackendError as e:
        logger.error(f"Error adding beat: {e}")
        raise HTTPException(502, str(e))

    store.create(beat)
    return beat_payload(beat)


@router.patch("/beats/{beat_id}")
def update_beat(
    beat_id: str,
    update: BeatUpdate,
    auth=Depends(require_admin),
    store: CatalogStore = Depends(get_store),
    backend: Backend = Depends(get_backend),
):
    if store.get(beat_id) is None:
        raise HTTPException(404, "Beat not found")
    changes = {k: v for k, v in update.model_dump(exclude_unset=True).items() if v is not None}
    if not changes:
        raise HTTPException(400, "Nothing to update")
    try:
        backend.update_beat(beat_id, changes)
    except BackendError as e:
        logger.error(f"Error updating beat {beat_id}: {e}")
        raise HTTPException(502, str(e))
    store.update(beat_id, **changes)
    return beat_payload(store.get(beat_id))


@router.post("/beats/{beat_id}/toggle-published")
def toggle_published(
    beat_id: str,
    auth=Depends(require_admin),
    store: CatalogStore = Depends(get_store),
    backend: Backend = Depends(get_backend),
):
    beat = store.get(beat_id)
    if beat is None:
        raise HTTPException(404, "Beat not found")
    published = not beat.is_published
    try:
        backend.update_beat(beat_id, {"is_published": published})
    except BackendError as e:
        logger.error(f"Error toggling beat {beat_id}: {e}")
        raise HTTPException(502, str(e))
    store.update(beat_id, is_published=published)
    logger.info(f"Beat {beat_id} {'published' if published else 'unpublished'}")
    return beat_payload(store.get(beat_id))


@router.delete("/beats/{beat_id}")
def delete_beat(
    beat_id: str,
    auth=Depends(require_admin),
    store: CatalogStore = Depends(get_store),
    backend: Backend = Depends(get_backend),
):
    if store.get(beat_id) is None:
        raise HTTPException(404, "Beat not found")
    try:
        backend.delete_beat(beat_id)
    except BackendError as e:
        logger.error(f"Error deleting beat {beat_id}: {e}")
        raise HTTPException(502, str(e))
    store.remove(beat_id)
    return {"ok": True}


@router.get("/submissions")
def list_submissions(auth=Depends(require_admin), backend: Backend = Depends(get_backend)):
    try:
        submissions = backend.list_contact_submissions()
    except BackendError as e:
        logger.error(f"Error loading submissions: {e}")
        raise HTTPException(502, str(e))
    return {"submissions": [s.to_dict() for s in submissions]}


@router.post("/submissions/{submission_id}/processed")
def mark_processed(
    submission_id: str,
    update: ProcessedUpdate,
    auth=Depends(require_admin),
    backend: Backend = Depends(get_backend),
):
    try:
        backend.set_submission_processed(submission_id, update.processed)
    except BackendError as e:
        logger.error(f"Error updating submission {submission_id}: {e}")
        raise HTTPException(502, str(e))
    return {"ok": True}
