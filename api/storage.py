import logging
import os
import re
import time
from dataclasses import dataclass

from fastapi import UploadFile

logger = logging.getLogger(__name__)

MEDIA_DIR = os.environ.get("MEDIA_DIR", "/media")
MEDIA_URL_PREFIX = "/media"

AUDIO_BUCKET = "beats"
COVER_BUCKET = "covers"
BUCKETS = (AUDIO_BUCKET, COVER_BUCKET)

CHUNK_SIZE = 65536


class StorageError(Exception):
    pass


class FileTooLarge(StorageError):
    pass


@dataclass
class StoredObject:
    bucket: str
    name: str
    path: str
    public_url: str


def unique_name(original: str) -> str:
    """Timestamp-prefixed file name, e.g. ``1718000000000_my_beat.mp3``."""
    base = os.path.basename(original or "upload")
    base = re.sub(r"[^A-Za-z0-9._-]+", "_", base).strip("._") or "upload"
    return f"{int(time.time() * 1000)}_{base}"


class MediaStorage:
    def __init__(self, media_dir: str | None = None):
        self.media_dir = media_dir or MEDIA_DIR

    def bucket_dir(self, bucket: str) -> str:
        if bucket not in BUCKETS:
            raise StorageError(f"Unknown bucket: {bucket}")
        return os.path.join(self.media_dir, bucket)

    def public_url(self, bucket: str, name: str) -> str:
        return f"{MEDIA_URL_PREFIX}/{bucket}/{name}"

    def resolve(self, url: str) -> str | None:
        """Local path for a public media URL, or None if it is not stored here."""
        prefix = MEDIA_URL_PREFIX + "/"
        if not url or not url.startswith(prefix):
            return None
        bucket, _, name = url[len(prefix):].partition("/")
        if bucket not in BUCKETS or not name or name != os.path.basename(name):
            return None
        path = os.path.join(self.media_dir, bucket, name)
        return path if os.path.exists(path) else None

    async def upload(self, bucket: str, file: UploadFile, max_size: int) -> StoredObject:
        bucket_dir = self.bucket_dir(bucket)
        os.makedirs(bucket_dir, exist_ok=True)
        name = unique_name(file.filename or "")
        dest = os.path.join(bucket_dir, name)

        size = 0
        try:
            with open(dest, "wb") as f_out:
                while chunk := await file.read(CHUNK_SIZE):
                    size += len(chunk)
                    if size > max_size:
                        raise FileTooLarge(f"File too large (max {max_size // (1024 * 1024)}MB)")
                    f_out.write(chunk)
        except FileTooLarge:
            os.unlink(dest)
            raise
        except OSError as e:
            raise StorageError(f"Upload to {bucket} failed: {e}") from e

        logger.info(f"Stored {bucket}/{name} ({size} bytes)")
        return StoredObject(bucket=bucket, name=name, path=dest, public_url=self.public_url(bucket, name))
