from typing import Iterable

from models import Beat

SORT_ORDERS = ("newest", "oldest", "bpm-asc", "bpm-desc")
ALL_GENRES = "all"
FEATURED_COUNT = 3


def published_only(beats: Iterable[Beat]) -> list[Beat]:
    return [b for b in beats if b.is_published]


def filter_beats(beats: Iterable[Beat], search: str = "", genre: str = ALL_GENRES) -> list[Beat]:
    """Case-insensitive match of ``search`` on title or artist, plus an exact lower-cased genre match."""
    query = (search or "").lower()
    genre = (genre or ALL_GENRES).lower()
    result = []
    for beat in beats:
        matches_search = query in beat.title.lower() or query in beat.artist.lower()
        matches_genre = genre == ALL_GENRES or beat.genre.lower() == genre
        if matches_search and matches_genre:
            result.append(beat)
    return result


def sort_beats(beats: Iterable[Beat], order: str = "newest") -> list[Beat]:
    beats = list(beats)
    if order == "newest":
        return sorted(beats, key=lambda b: b.date_created, reverse=True)
    if order == "oldest":
        return sorted(beats, key=lambda b: b.date_created)
    if order == "bpm-asc":
        return sorted(beats, key=lambda b: b.bpm)
    if order == "bpm-desc":
        return sorted(beats, key=lambda b: b.bpm, reverse=True)
    return beats


def browse(beats: Iterable[Beat], search: str = "", genre: str = ALL_GENRES, order: str = "newest") -> list[Beat]:
    """What the public catalog page shows."""
    return sort_beats(filter_beats(published_only(beats), search, genre), order)


def genres(beats: Iterable[Beat]) -> list[str]:
    seen = [ALL_GENRES]
    for beat in beats:
        g = beat.genre.lower()
        if g not in seen:
            seen.append(g)
    return seen


def featured(beats: Iterable[Beat], limit: int = FEATURED_COUNT) -> list[Beat]:
    return published_only(beats)[:limit]
