from __future__ import annotations

import datetime
from typing import Optional

import click

from .config import load_settings
from .db import DeckStore
from .errors import FlashdeckError, StorageLocationError
from .models import MAX_DIFFICULTY, MIN_DIFFICULTY, Card, Deck, StudySession
from .session import SessionRunner
from .system import FlashcardSystem

RATING_LABELS = {
    0: "Completely wrong",
    1: "Mostly wrong",
    2: "Partially correct",
    3: "Mostly correct with mistakes",
    4: "Almost perfect",
    5: "Perfect",
}

DIVIDER = "-" * 48


class ClickStudyInterface:
    """StudyInterface that talks to the terminal."""

    def __init__(self, include_new: Optional[bool] = None) -> None:
        self.include_new = include_new

    def offer_new_cards(self, deck: Deck) -> bool:
        if self.include_new is not None:
            return self.include_new
        click.echo("\nNo cards are due for review in this deck!")
        return click.confirm("Would you like to study new cards?", default=False)

    def ask(self, card: Card, deck: Deck) -> str:
        click.echo(f"\n{DIVIDER}")
        click.echo(f"{deck.native_language}: {card.back}")
        return click.prompt(f"\nWrite the word in {deck.target_language}", default="", show_default=False)

    def rate(self, card: Card, answer: str, matched: bool) -> int:
        click.echo(f"\nCorrect answer: {card.front}")
        click.echo("Correct!" if matched else "Not quite right.")
        if card.notes:
            click.echo(f"Notes: {card.notes}")

        click.echo("\nHow well did you do? (0-5)")
        for value, label in RATING_LABELS.items():
            click.echo(f"{value}: {label}")
        return click.prompt("Your rating", type=click.IntRange(0, 5), default=3)

    def reviewed(self, session: StudySession, total: int) -> None:
        click.echo(f"\nProgress: {session.cards_reviewed}/{total} cards reviewed")


def _format_timestamp(value: datetime.datetime) -> str:
    return value.astimezone().strftime("%Y-%m-%d %H:%M")


def _warn_if_unsaved(system: FlashcardSystem) -> None:
    if system.last_save_error is not None:
        click.echo(f"Warning: changes could not be saved ({system.last_save_error})", err=True)


@click.group()
@click.option("--db", "db_path", type=click.Path(dir_okay=False), default=None,
              help="Path of the deck store (defaults to $FLASHDECK_DB or ~/.flashdeck)")
@click.pass_context
def cli(ctx: click.Context, db_path: Optional[str]) -> None:
    """Language flashcards with spaced repetition."""
    try:
        settings = load_settings(db_path)
    except StorageLocationError as e:
        raise click.ClickException(str(e))

    system = FlashcardSystem(DeckStore(settings.storage_path))
    if system.load_error is not None:
        click.echo(f"Warning: could not read saved decks, starting empty ({system.load_error})", err=True)
    ctx.obj = system


@cli.command("create-deck")
@click.argument("name")
@click.argument("target_language")
@click.argument("native_language")
@click.pass_obj
def create_deck(system: FlashcardSystem, name: str, target_language: str, native_language: str) -> None:
    """Create a new deck."""
    try:
        deck = system.create_deck(name, target_language, native_language)
    except FlashdeckError as e:
        raise click.ClickException(str(e))
    click.echo(f"Deck '{deck.name}' has been created!")
    _warn_if_unsaved(system)


@cli.command("decks")
@click.pass_obj
def list_decks(system: FlashcardSystem) -> None:
    """List all decks."""
    decks = system.decks
    if not decks:
        click.echo("You don't have any decks yet. Create one to get started!")
        return

    for number, deck in enumerate(decks, start=1):
        click.echo(f"{number}. {deck.name} ({deck.target_language} / {deck.native_language})")
        click.echo(f"   Total cards: {len(deck.cards)}, Due for review: {deck.due_card_count()}")
        if deck.last_studied:
            click.echo(f"   Last studied: {_format_timestamp(deck.last_studied)}")
        else:
            click.echo("   Not studied yet")


@cli.command("add-card")
@click.argument("deck_number", type=int)
@click.option("--front", prompt="Word or phrase", help="Word or phrase in the target language")
@click.option("--back", prompt="Translation", help="Translation in your native language")
@click.option("--difficulty", type=int, default=3, show_default=True,
              help=f"Difficulty from {MIN_DIFFICULTY} (easiest) to {MAX_DIFFICULTY} (hardest)")
@click.option("--notes", default=None, help="Optional notes")
@click.pass_obj
def add_card(system: FlashcardSystem, deck_number: int, front: str, back: str,
             difficulty: int, notes: Optional[str]) -> None:
    """Add a card to a deck."""
    try:
        deck = system.deck_at(deck_number)
        card = system.add_card(deck.id, front, back, difficulty=difficulty, notes=notes)
    except FlashdeckError as e:
        raise click.ClickException(str(e))
    click.echo(f"Card '{card.front}' has been added to '{deck.name}'!")
    _warn_if_unsaved(system)


@cli.command("study")
@click.argument("deck_number", type=int)
@click.option("--new/--no-new", "include_new", default=None,
              help="Study unreviewed cards when nothing is due (asks if not given)")
@click.pass_obj
def study(system: FlashcardSystem, deck_number: int, include_new: Optional[bool]) -> None:
    """Study the due cards of a deck."""
    try:
        deck = system.deck_at(deck_number)
    except FlashdeckError as e:
        raise click.ClickException(str(e))

    runner = SessionRunner(system, deck.id, ClickStudyInterface(include_new))
    cards = runner.select_cards()
    if not cards:
        click.echo("\nNo cards to study right now.")
        return

    click.echo(f"\nStudy session started for '{deck.name}'")
    click.echo(f"Cards to review: {len(cards)}")
    session = runner.run(cards)

    click.echo("\n=== SESSION SUMMARY ===")
    click.echo(f"Cards reviewed: {session.cards_reviewed}")
    click.echo(f"Correct responses: {session.correct_responses}")
    click.echo(f"Accuracy: {session.accuracy_percentage:.1f}%")
    if session.duration is not None:
        minutes, seconds = divmod(int(session.duration.total_seconds()), 60)
        click.echo(f"Time spent: {minutes}m {seconds}s")
    _warn_if_unsaved(system)


@cli.command("stats")
@click.pass_obj
def stats(system: FlashcardSystem) -> None:
    """Show learning statistics for every deck."""
    all_stats = system.statistics()
    if not all_stats:
        click.echo("You don't have any decks yet!")
        return

    for number, deck_stats in enumerate(all_stats, start=1):
        click.echo(f"\n{number}. {deck_stats.deck_name} ({deck_stats.target_language})")
        click.echo(f"   Total cards: {deck_stats.total_cards}")
        click.echo("   Difficulty distribution:")
        for level, count in deck_stats.difficulty_counts.items():
            click.echo(f"     Level {level}: {count} cards ({deck_stats.difficulty_percentage(level):.1f}%)")
        click.echo(
            f"   Mastery progress: {deck_stats.mastered_cards}/{deck_stats.total_cards} cards "
            f"({deck_stats.mastery_percentage:.1f}%)"
        )
        click.echo(f"   Cards due for review: {deck_stats.due_cards}")
        if deck_stats.last_studied:
            click.echo(f"   Last studied: {_format_timestamp(deck_stats.last_studied)}")


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
