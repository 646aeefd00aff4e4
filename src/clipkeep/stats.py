from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass, field

from clipkeep.models import ClipboardEntry, ContentType


@dataclass(frozen=True)
class Stats:
    total_items: int = 0
    text_items: int = 0
    image_items: int = 0
    favorite_items: int = 0
    top_tags: list[tuple[str, int]] = field(default_factory=list)
    earliest_timestamp: int | None = None
    latest_timestamp: int | None = None

    def to_dict(self) -> dict:
        return {
            "totalItems": self.total_items,
            "textItems": self.text_items,
            "imageItems": self.image_items,
            "favoriteItems": self.favorite_items,
            "topTags": [[tag, count] for tag, count in self.top_tags],
            "earliestTimestamp": self.earliest_timestamp,
            "latestTimestamp": self.latest_timestamp,
        }


def compute_stats(entries: Iterable[ClipboardEntry], top_n: int | None = None) -> Stats:
    total = text = image = favorite = 0
    earliest: int | None = None
    latest: int | None = None
    tag_counts: Counter[str] = Counter()

    for entry in entries:
        total += 1
        if entry.content_type == ContentType.IMAGE:
            image += 1
        else:
            text += 1
        if entry.is_favorite:
            favorite += 1
        tag_counts.update(entry.tags)
        if earliest is None or entry.captured_at < earliest:
            earliest = entry.captured_at
        if latest is None or entry.captured_at > latest:
            latest = entry.captured_at

    top_tags = sorted(tag_counts.items(), key=lambda item: (-item[1], item[0]))
    if top_n is not None:
        top_tags = top_tags[:top_n]

    return Stats(
        total_items=total,
        text_items=text,
        image_items=image,
        favorite_items=favorite,
        top_tags=top_tags,
        earliest_timestamp=earliest,
        latest_timestamp=latest,
    )
