from dataclasses import dataclass, field
from enum import Enum


class ContentType(str, Enum):
    TEXT = "text"
    IMAGE = "image"


@dataclass(frozen=True)
class TextContent:
    text: str

    @property
    def content_type(self) -> ContentType:
        return ContentType.TEXT

    @property
    def dedup_key(self) -> tuple[str, str]:
        return (ContentType.TEXT.value, self.text)

    @property
    def primary_text(self) -> str:
        return self.text


@dataclass(frozen=True)
class ImageRef:
    file_path: str
    dimensions: str = "Unknown"

    @property
    def content_type(self) -> ContentType:
        return ContentType.IMAGE

    @property
    def dedup_key(self) -> tuple[str, str]:
        # Images are identified by file path; the dimensions label is metadata.
        return (ContentType.IMAGE.value, self.file_path)

    @property
    def primary_text(self) -> str:
        return self.dimensions


Content = TextContent | ImageRef


@dataclass(frozen=True)
class ClipboardEntry:
    id: int
    content: Content
    captured_at: int
    is_favorite: bool = False
    tags: frozenset[str] = field(default_factory=frozenset)

    @property
    def content_type(self) -> ContentType:
        return self.content.content_type

    @property
    def dedup_key(self) -> tuple[str, str]:
        return self.content.dedup_key

    @property
    def primary_text(self) -> str:
        return self.content.primary_text
