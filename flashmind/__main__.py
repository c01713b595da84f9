"""CLI interface for FlashMind.

Usage:
    python -m flashmind review [--tag ID]       Start a study session
    python -m flashmind stats                   Show collection statistics
    python -m flashmind due                     Show how many cards are due
    python -m flashmind add "front" "back"      Add a new card
    python -m flashmind tags [--add NAME]       List or add tags
    python -m flashmind export [PATH]           Write a JSON backup
    python -m flashmind import PATH             Replace all data from a backup
"""

import argparse
import asyncio
import logging
from pathlib import Path

from backend.config import now_ms, settings
from backend.srs.selection import due_cards, new_cards
from backend.srs.session import start_session
from backend.srs.sm2 import Rating
from backend.srs.stats import dashboard_stats
from backend.store import CardDraft, CardStore
from backend.transfer import (
    InvalidBundleError,
    backup_filename,
    dumps_bundle,
    export_store,
    import_into_store,
)

logger = logging.getLogger(__name__)

RATING_KEYS = {
    "1": Rating.AGAIN,
    "2": Rating.HARD,
    "3": Rating.GOOD,
    "4": Rating.EASY,
}


async def cmd_review(store: CardStore, args: argparse.Namespace) -> None:
    """Run an interactive study session."""
    session = await start_session(store, tag_id=args.tag)

    if session.total == 0:
        print("\nNo cards due for review. You're all caught up!")
        return

    print("\n  Study Session")
    print(
        f"  {session.queue.review_count} review + {session.queue.new_count} new"
        f" -> {session.total} cards\n"
    )
    print("  Ratings: 1=Again  2=Hard  3=Good  4=Easy")
    print("  Type 'q' to quit\n")

    while not session.is_complete:
        card = session.current_card
        position = session.total - session.remaining + 1
        label = f"  [{position}/{session.total}]"
        if card.is_new:
            label += " (NEW)"
        print(label)
        print(f"  {card.front}")

        if input("\n  Press Enter to reveal: ").strip().lower() == "q":
            print("\n  Session ended early.")
            break
        session.flip()
        print(f"  {card.back}\n")

        rate_input = input("  Rate [1-4]: ").strip().lower()
        while rate_input not in RATING_KEYS and rate_input != "q":
            rate_input = input("  Rate [1-4]: ").strip().lower()
        if rate_input == "q":
            print("\n  Session ended early.")
            break

        updated = await session.rate(RATING_KEYS[rate_input])
        if updated is None:
            print("  Card was deleted; skipped\n")
        else:
            print(f"  Next review in {updated.interval} day(s)\n")

    s = session.stats
    print("\n  Session Complete!")
    print(f"  Again: {s.again}  Hard: {s.hard}  Good: {s.good}  Easy: {s.easy}")
    print(f"  Reviewed: {s.total_reviewed}  Accuracy: {s.accuracy}%\n")


async def cmd_stats(store: CardStore, args: argparse.Namespace) -> None:
    """Show collection statistics."""
    stats = dashboard_stats(await store.get_all(), await store.get_tags())

    print("\n  FlashMind Statistics")
    print(f"  {'Total cards:':<20} {stats.total_cards}")
    print(f"  {'Tags:':<20} {stats.total_tags}")
    print(f"  {'Due now:':<20} {stats.due}")
    print(f"  {'New (unseen):':<20} {stats.new}")
    print(f"  {'Learning:':<20} {stats.learning}")
    print(f"  {'Mature (3+ reps):':<20} {stats.mature}")
    print(f"  {'Mastery:':<20} {stats.mastery_percentage}%")
    print()


async def cmd_due(store: CardStore, args: argparse.Namespace) -> None:
    """Show how many cards are due."""
    cards = await store.get_all()
    now = now_ms()
    due = len(due_cards(cards, tag_id=args.tag, now=now))
    new = len(new_cards(cards, tag_id=args.tag))
    print(f"  {due} cards due, {new} new cards available")


async def cmd_add(store: CardStore, args: argparse.Namespace) -> None:
    """Add a new card."""
    try:
        draft = CardDraft(front=args.front, back=args.back, tags=args.tag or [])
    except ValueError as e:
        print(f"  Cannot add card: {e}")
        return

    card_id = await store.insert(draft)
    print(f"  Added card {card_id} (ready for review)")


async def cmd_tags(store: CardStore, args: argparse.Namespace) -> None:
    """List tags, or add one."""
    if args.add:
        tag_id = await store.add_tag(args.add, args.color)
        print(f"  Added tag {tag_id}")
        return

    cards = await store.get_all()
    for tag in await store.get_tags():
        count = sum(1 for c in cards if tag.id in c.tags)
        print(f"  {tag.id}  {tag.color}  {tag.name} ({count})")


async def cmd_export(store: CardStore, args: argparse.Namespace) -> None:
    """Write a JSON backup of all cards and tags."""
    now = now_ms()
    bundle = await export_store(store, now=now)
    path = Path(args.path or backup_filename(now))
    path.write_text(dumps_bundle(bundle), encoding="utf-8")
    print(f"  Exported {len(bundle['cards'])} cards and {len(bundle['tags'])} tags to {path}")


async def cmd_import(store: CardStore, args: argparse.Namespace) -> None:
    """Replace all cards and tags from a JSON backup."""
    text = Path(args.path).read_text(encoding="utf-8")
    try:
        cards, tags = await import_into_store(store, text)
    except InvalidBundleError as e:
        print(f"  Failed to import: {e}")
        return
    print(f"  Imported {cards} cards and {tags} tags")


COMMANDS = {
    "review": cmd_review,
    "stats": cmd_stats,
    "due": cmd_due,
    "add": cmd_add,
    "tags": cmd_tags,
    "export": cmd_export,
    "import": cmd_import,
}


async def run(args: argparse.Namespace) -> None:
    async with CardStore(args.database or settings.database_url) as store:
        await COMMANDS[args.command](store, args)


def main() -> None:
    """Entry point for the FlashMind CLI application."""
    parser = argparse.ArgumentParser(
        prog="flashmind",
        description="FlashMind flashcard study tool",
    )
    parser.add_argument("-v", "--verbose", action="store_true")
    parser.add_argument("--database", help="SQLAlchemy database URL")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # review
    review_parser = subparsers.add_parser("review", help="Start a study session")
    review_parser.add_argument("--tag", help="Only study cards with this tag id")

    # stats
    subparsers.add_parser("stats", help="Show collection statistics")

    # due
    due_parser = subparsers.add_parser("due", help="Show cards due for review")
    due_parser.add_argument("--tag", help="Only count cards with this tag id")

    # add
    add_parser = subparsers.add_parser("add", help="Add a new card")
    add_parser.add_argument("front", help="Front (question) text")
    add_parser.add_argument("back", help="Back (answer) text")
    add_parser.add_argument("-t", "--tag", action="append", help="Tag id (repeatable)")

    # tags
    tags_parser = subparsers.add_parser("tags", help="List or add tags")
    tags_parser.add_argument("--add", metavar="NAME", help="Create a tag")
    tags_parser.add_argument("--color", help="Hex colour for the new tag")

    # export / import
    export_parser = subparsers.add_parser("export", help="Write a JSON backup")
    export_parser.add_argument("path", nargs="?", help="Output file")
    import_parser = subparsers.add_parser("import", help="Replace all data from a JSON backup")
    import_parser.add_argument("path", help="Backup file")

    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG)

    if not args.command:
        parser.print_help()
        return

    asyncio.run(run(args))


if __name__ == "__main__":
    main()
