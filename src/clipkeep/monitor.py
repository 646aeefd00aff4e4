import logging
import threading
from collections.abc import Callable
from pathlib import Path
from typing import Protocol

from clipkeep.config import IMAGE_DIR, MAX_IMAGE_SIZE, MAX_TEXT_SIZE, POLL_INTERVAL
from clipkeep.errors import ClipboardError, ClipkeepError
from clipkeep.models import ClipboardEntry, Content, ImageRef, TextContent
from clipkeep.store import EntryStore
from clipkeep.utils import compute_hash, format_dimensions, get_image_dimensions, read_image_dimensions

logger = logging.getLogger(__name__)

IMAGE_SUFFIXES = {".png", ".jpg", ".jpeg", ".gif", ".bmp", ".webp", ".tiff", ".tif"}

ChangeCallback = Callable[[Content], None]


class ClipboardSource(Protocol):
    def on_change(self, callback: ChangeCallback) -> None: ...

    def write(self, content: Content) -> None: ...


def _load_appkit():
    import AppKit

    return AppKit


class PasteboardSource:
    """macOS general pasteboard, polled for changes via its change count."""

    def __init__(self, image_dir: Path | None = None, poll_interval: float = POLL_INTERVAL):
        self._appkit = _load_appkit()
        self._pasteboard = self._appkit.NSPasteboard.generalPasteboard()
        self._last_change_count = self._pasteboard.changeCount()
        self._image_dir = Path(image_dir) if image_dir else IMAGE_DIR
        self._poll_interval = poll_interval
        self._callbacks: list[ChangeCallback] = []
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        self._image_dir.mkdir(parents=True, exist_ok=True)

    def on_change(self, callback: ChangeCallback) -> None:
        self._callbacks.append(callback)

    def check_clipboard(self) -> bool:
        current_count = self._pasteboard.changeCount()
        if current_count == self._last_change_count:
            return False

        self._last_change_count = current_count

        try:
            content = self._read_clipboard()
            if content is None:
                return False

            for callback in self._callbacks:
                callback(content)
            return True
        except Exception:
            logger.exception("Error reading clipboard")
            return False

    def sync_change_count(self) -> None:
        self._last_change_count = self._pasteboard.changeCount()

    def write(self, content: Content) -> None:
        appkit = self._appkit
        if isinstance(content, TextContent):
            self._pasteboard.clearContents()
            self._pasteboard.setString_forType_(content.text, appkit.NSPasteboardTypeString)
        else:
            data = appkit.NSData.dataWithContentsOfFile_(content.file_path)
            if not data:
                raise ClipboardError(f"Cannot read image file {content.file_path}")
            is_png = Path(content.file_path).suffix.lower() == ".png"
            self._pasteboard.clearContents()
            self._pasteboard.setData_forType_(data, appkit.NSPasteboardTypePNG if is_png else appkit.NSPasteboardTypeTIFF)
        self.sync_change_count()

    def start(self) -> None:
        if self._thread is not None:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._poll_loop, name="clipkeep-monitor", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join()
            self._thread = None

    def _poll_loop(self) -> None:
        while not self._stop.wait(self._poll_interval):
            self.check_clipboard()

    def _read_clipboard(self) -> Content | None:
        appkit = self._appkit
        types = self._pasteboard.types()
        if types is None:
            return None

        if appkit.NSPasteboardTypeString in types:
            content = self._read_text()
            if content:
                return content

        for img_type in (appkit.NSPasteboardTypePNG, appkit.NSPasteboardTypeTIFF):
            if img_type in types:
                content = self._read_image(img_type)
                if content:
                    return content

        if appkit.NSFilenamesPboardType in types:
            return self._read_files()

        return None

    def _read_text(self) -> TextContent | None:
        text = self._pasteboard.stringForType_(self._appkit.NSPasteboardTypeString)
        if not text or not text.strip():
            return None

        if len(text.encode("utf-8")) > MAX_TEXT_SIZE:
            logger.warning("Text too large, skipping")
            return None

        return TextContent(text)

    def _read_image(self, img_type) -> ImageRef | None:
        data = self._pasteboard.dataForType_(img_type)
        if data is None:
            return None

        img_bytes = bytes(data)
        if len(img_bytes) > MAX_IMAGE_SIZE:
            logger.warning("Image too large (%d bytes), skipping", len(img_bytes))
            return None

        is_png = img_type == self._appkit.NSPasteboardTypePNG
        path = self._save_image(img_bytes, is_png)
        if is_png:
            width, height = get_image_dimensions(img_bytes)
            return ImageRef(str(path), format_dimensions(width, height))
        return ImageRef(str(path), read_image_dimensions(str(path)))

    def _read_files(self) -> Content | None:
        filenames = self._pasteboard.propertyListForType_(self._appkit.NSFilenamesPboardType)
        if not filenames:
            return None

        file_list = [str(f) for f in filenames]
        if len(file_list) == 1 and Path(file_list[0]).suffix.lower() in IMAGE_SUFFIXES:
            return ImageRef(file_list[0], read_image_dimensions(file_list[0]))
        return TextContent("\n".join(file_list))

    def _save_image(self, img_bytes: bytes, is_png: bool) -> Path:
        ext = ".png" if is_png else ".tiff"
        path = self._image_dir / (compute_hash(img_bytes)[:12] + ext)
        if not path.exists():
            path.write_bytes(img_bytes)
        return path


class HistoryRecorder:
    """Feeds clipboard changes into the history and restores entries on request."""

    def __init__(self, source: ClipboardSource, store: EntryStore):
        self._source = source
        self._store = store
        source.on_change(self.record)

    def record(self, content: Content) -> int | None:
        try:
            return self._store.capture(content)
        except ClipkeepError:
            logger.exception("Could not record clipboard change")
            return None

    def restore(self, entry_id: int) -> ClipboardEntry:
        entry = self._store.get(entry_id)
        self._source.write(entry.content)
        self._store.capture(entry.content)
        return self._store.get(entry_id)
