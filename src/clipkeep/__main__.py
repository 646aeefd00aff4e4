import argparse
import json
import logging
import sys
import time
from datetime import datetime
from pathlib import Path

from clipkeep import __version__
from clipkeep.codec import export_history, import_history
from clipkeep.config import DB_PATH, LOG_PATH, MAX_AGE_SECONDS, MAX_ENTRIES, PREVIEW_LENGTH
from clipkeep.errors import ClipkeepError
from clipkeep.favorites import FavoriteSet
from clipkeep.models import ClipboardEntry, ImageRef
from clipkeep.retention import RetentionPolicy
from clipkeep.search import filter_entries
from clipkeep.stats import compute_stats
from clipkeep.storage import StorageManager
from clipkeep.store import EntryStore
from clipkeep.tags import TagIndex
from clipkeep.thumbnails import PillowThumbnailGenerator, ThumbnailCache
from clipkeep.utils import ensure_dirs, truncate_text

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    ensure_dirs()
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[
            logging.FileHandler(LOG_PATH),
            logging.StreamHandler(sys.stderr),
        ],
    )


def format_entry(entry: ClipboardEntry) -> str:
    """One listing line: id, favorite marker, capture time, preview and tags."""
    if isinstance(entry.content, ImageRef):
        preview = f"[Image {entry.content.dimensions}] {entry.content.file_path}"
    else:
        preview = entry.content.text
    line = "{:>5} {} {}  {}".format(
        entry.id,
        "*" if entry.is_favorite else " ",
        datetime.fromtimestamp(entry.captured_at).strftime("%Y-%m-%d %H:%M:%S"),
        truncate_text(preview, PREVIEW_LENGTH),
    )
    if entry.tags:
        line += "  #" + " #".join(sorted(entry.tags))
    return line


def cmd_run(store: EntryStore, args) -> int:
    from clipkeep.monitor import HistoryRecorder, PasteboardSource

    removed = RetentionPolicy(store).cleanup(args.max_age)
    if removed:
        logger.info("Startup cleanup removed %d entries", removed)

    source = PasteboardSource()
    HistoryRecorder(source, store)
    source.start()
    logger.info("Watching the clipboard (history: %d entries)", store.count())
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        pass
    finally:
        source.stop()
    return 0


def cmd_list(store: EntryStore, args) -> int:
    entries = filter_entries(store.all(), args.query or "", args.favorites, args.tag)
    if args.limit:
        entries = entries[: args.limit]
    if not entries:
        print("(No clipboard history)")
        return 0
    for entry in entries:
        print(format_entry(entry))
    return 0


def cmd_stats(store: EntryStore, args) -> int:
    stats = compute_stats(store.all(), top_n=args.top)
    print(json.dumps(stats.to_dict(), indent=2))
    return 0


def cmd_export(store: EntryStore, args) -> int:
    document = export_history(store.all())
    if args.file:
        Path(args.file).write_text(document, encoding="utf-8")
        print(f"Exported {store.count()} entries to {args.file}")
    else:
        print(document)
    return 0


def cmd_import(store: EntryStore, args) -> int:
    document = Path(args.file).read_bytes()
    added = import_history(store, document)
    print(f"Imported {added} new entries.")
    return 0


def cmd_cleanup(store: EntryStore, args) -> int:
    policy = RetentionPolicy(store, exempt_favorites=not args.include_favorites)
    removed = policy.cleanup(args.max_age)
    print(f"Removed {removed} entries.")
    return 0


def cmd_favorite(store: EntryStore, args) -> int:
    is_favorite = FavoriteSet(store).toggle(args.id)
    print("Favorited" if is_favorite else "Unfavorited")
    return 0


def cmd_tag(store: EntryStore, args) -> int:
    TagIndex(store).add(args.id, args.tag)
    return 0


def cmd_untag(store: EntryStore, args) -> int:
    TagIndex(store).remove(args.id, args.tag)
    return 0


def cmd_remove(store: EntryStore, args) -> int:
    if not store.remove(args.id):
        print(f"No entry with id {args.id}.")
    return 0


def cmd_thumbnail(store: EntryStore, args) -> int:
    entry = store.get(args.id)
    if not isinstance(entry.content, ImageRef):
        print(f"Entry {args.id} is not an image.")
        return 1
    thumbnail = ThumbnailCache(PillowThumbnailGenerator()).get(entry.content.file_path)
    if thumbnail.is_placeholder:
        print(f"No preview available for {entry.content.file_path}")
        return 1
    print(thumbnail.data_uri)
    return 0


def cmd_clear(store: EntryStore, args) -> int:
    if not args.yes:
        print("Refusing to clear history without --yes.")
        return 1
    store.clear()
    print("History cleared.")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="clipkeep",
        description="clipkeep - clipboard history with tags, favorites and retention",
    )
    parser.add_argument("--version", action="version", version=f"clipkeep {__version__}")
    parser.add_argument("--db", default=None, help=f"History database (default: {DB_PATH})")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log informational messages")
    sub = parser.add_subparsers(dest="command")

    run = sub.add_parser("run", help="Watch the clipboard in the foreground (macOS)")
    run.add_argument("--max-age", type=int, default=MAX_AGE_SECONDS, help="Startup cleanup age in seconds")
    run.set_defaults(func=cmd_run)

    ls = sub.add_parser("list", help="Show clipboard history")
    ls.add_argument("-n", "--limit", type=int, default=None)
    ls.add_argument("-q", "--query", default="")
    ls.add_argument("-f", "--favorites", action="store_true", help="Only favorites")
    ls.add_argument("-t", "--tag", default=None)
    ls.set_defaults(func=cmd_list)

    stats = sub.add_parser("stats", help="Show usage statistics")
    stats.add_argument("--top", type=int, default=5, help="Number of tags to show")
    stats.set_defaults(func=cmd_stats)

    export = sub.add_parser("export", help="Export history as JSON")
    export.add_argument("file", nargs="?")
    export.set_defaults(func=cmd_export)

    imp = sub.add_parser("import", help="Import history from a JSON export")
    imp.add_argument("file")
    imp.set_defaults(func=cmd_import)

    cleanup = sub.add_parser("cleanup", help="Remove entries older than --max-age seconds")
    cleanup.add_argument("--max-age", type=int, default=MAX_AGE_SECONDS)
    cleanup.add_argument("--include-favorites", action="store_true", help="Expire favorites too")
    cleanup.set_defaults(func=cmd_cleanup)

    fav = sub.add_parser("favorite", help="Toggle the favorite flag of an entry")
    fav.add_argument("id", type=int)
    fav.set_defaults(func=cmd_favorite)

    for name, func, help_text in (
        ("tag", cmd_tag, "Add a tag to an entry"),
        ("untag", cmd_untag, "Remove a tag from an entry"),
    ):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("id", type=int)
        p.add_argument("tag")
        p.set_defaults(func=func)

    rm = sub.add_parser("remove", help="Delete an entry")
    rm.add_argument("id", type=int)
    rm.set_defaults(func=cmd_remove)

    thumb = sub.add_parser("thumbnail", help="Print a data URI preview of an image entry")
    thumb.add_argument("id", type=int)
    thumb.set_defaults(func=cmd_thumbnail)

    clear = sub.add_parser("clear", help="Delete all history")
    clear.add_argument("--yes", action="store_true")
    clear.set_defaults(func=cmd_clear)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help()
        return 0

    setup_logging(args.verbose or args.command == "run")
    try:
        with StorageManager(args.db or DB_PATH) as storage:
            store = EntryStore(storage, max_entries=MAX_ENTRIES)
            return args.func(store, args)
    except (ClipkeepError, OSError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
