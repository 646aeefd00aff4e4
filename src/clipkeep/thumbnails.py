import base64
import io
import logging
import threading
from dataclasses import dataclass
from typing import Protocol

from PIL import Image, UnidentifiedImageError

from clipkeep.config import THUMBNAIL_SIZE
from clipkeep.errors import ThumbnailUnavailable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Thumbnail:
    data_uri: str
    width: int
    height: int

    @property
    def is_placeholder(self) -> bool:
        return not self.data_uri


PLACEHOLDER = Thumbnail(data_uri="", width=0, height=0)


class ThumbnailGenerator(Protocol):
    def generate(self, file_path: str) -> Thumbnail: ...


class PillowThumbnailGenerator:
    def __init__(self, max_size: int = THUMBNAIL_SIZE):
        self._max_size = max_size

    def generate(self, file_path: str) -> Thumbnail:
        """Render a PNG preview that fits in a max_size square, keeping aspect ratio.

        Raises:
            ThumbnailUnavailable: the file is missing, unreadable or not an image.
        """
        try:
            with Image.open(file_path) as img:
                img.thumbnail((self._max_size, self._max_size), Image.Resampling.LANCZOS)
                if img.mode not in ("RGB", "RGBA", "L", "LA", "P"):
                    img = img.convert("RGBA")
                buffer = io.BytesIO()
                img.save(buffer, format="PNG")
                width, height = img.size
        except (OSError, UnidentifiedImageError, ValueError) as exc:
            raise ThumbnailUnavailable(f"Cannot render {file_path}: {exc}") from exc

        encoded = base64.b64encode(buffer.getvalue()).decode("ascii")
        return Thumbnail(f"data:image/png;base64,{encoded}", width, height)


class ThumbnailCache:
    """Memoized previews keyed by image file path.

    A failed generation is remembered as PLACEHOLDER so the path is not retried
    until invalidated. Lookups for different paths never wait on each other.
    """

    def __init__(self, generator: ThumbnailGenerator):
        self._generator = generator
        self._cache: dict[str, Thumbnail] = {}
        self._path_locks: dict[str, threading.Lock] = {}
        self._guard = threading.Lock()

    def get(self, file_path: str) -> Thumbnail:
        cached = self._cache.get(file_path)
        if cached is not None:
            return cached

        with self._lock_for(file_path):
            cached = self._cache.get(file_path)
            if cached is not None:
                return cached
            try:
                thumbnail = self._generator.generate(file_path)
            except Exception as exc:
                logger.warning("Thumbnail unavailable for %s: %s", file_path, exc)
                thumbnail = PLACEHOLDER
            self._cache[file_path] = thumbnail
            return thumbnail

    def invalidate(self, file_path: str) -> None:
        with self._guard:
            self._cache.pop(file_path, None)

    def clear(self) -> None:
        with self._guard:
            self._cache.clear()

    def __contains__(self, file_path: object) -> bool:
        return file_path in self._cache

    def __len__(self) -> int:
        return len(self._cache)

    def _lock_for(self, file_path: str) -> threading.Lock:
        with self._guard:
            lock = self._path_locks.get(file_path)
            if lock is None:
                lock = self._path_locks[file_path] = threading.Lock()
            return lock
