import logging

from catalog import ALL_GENRES, SORT_ORDERS, browse, featured, genres
from deps import beat_payload, get_store
from fastapi import APIRouter, Depends, HTTPException
from store import CatalogStore

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/beats")
def list_beats(
    search: str = "",
    genre: str = ALL_GENRES,
    sort: str = "newest",
    store: CatalogStore = Depends(get_store),
):
    """Published beats, filtered and sorted the way the browse page asks."""
    if sort not in SORT_ORDERS:
        raise HTTPException(400, f"sort must be one of: {', '.join(SORT_ORDERS)}")
    state = store.state
    beats = browse(state.beats, search=search, genre=genre, order=sort)
    return {
        "beats": [beat_payload(b) for b in beats],
        "is_loading": state.is_loading,
        "error": state.error,
    }


@router.get("/beats/genres")
def list_genres(store: CatalogStore = Depends(get_store)):
    return {"genres": genres(store.beats)}


@router.get("/beats/featured")
def featured_beats(store: CatalogStore = Depends(get_store)):
    return {"beats": [beat_payload(b) for b in featured(store.beats)]}


@router.get("/beats/{beat_id}")
def get_beat(beat_id: str, store: CatalogStore = Depends(get_store)):
    beat = store.get(beat_id)
    if beat is None or not beat.is_published:
        raise HTTPException(404, "Beat not found")
    return beat_payload(beat)


@router.get("/catalog/status")
def catalog_status(store: CatalogStore = Depends(get_store)):
    state = store.state
    return {"is_loading": state.is_loading, "error": state.error, "count": len(state.beats)}


@router.post("/catalog/refresh")
def refresh_catalog(store: CatalogStore = Depends(get_store)):
    """Re-run the catalog fetch. Failures are reported, not raised."""
    store.fetch_all()
    state = store.state
    return {"ok": state.error is None, "error": state.error, "count": len(state.beats)}
