"""
Persistence for the deck collection.

The whole collection lives in one SQLite file. `DeckStore.save` builds the
new document in a staging file in the same directory and renames it over
the old one, so a reader sees either the previous document or the new one.
The public API speaks in the dataclasses from models.py; ORM rows never
leave this module.
"""
from __future__ import annotations

import datetime
import os
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Generator, List, Optional

from sqlalchemy import ForeignKey, Integer, String, Text, create_engine, inspect, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, relationship, sessionmaker
from sqlalchemy.types import TypeDecorator

from .errors import CorruptDataError, FlashdeckError, PersistenceWriteError
from .logging_util import setup_logger
from .models import Card, Deck

logger = setup_logger(__name__)


class ISODateTime(TypeDecorator):
    """Timezone-aware datetimes stored as ISO-8601 text in UTC."""

    impl = String(40)
    cache_ok = True

    def process_bind_param(self, value: Optional[datetime.datetime], dialect: Any) -> Optional[str]:
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=datetime.UTC)
        return value.astimezone(datetime.UTC).isoformat()

    def process_result_value(self, value: Optional[str], dialect: Any) -> Optional[datetime.datetime]:
        if value is None:
            return None
        parsed = datetime.datetime.fromisoformat(value)
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=datetime.UTC)
        return parsed


class Base(DeclarativeBase):
    pass


class DeckRow(Base):
    __tablename__ = "decks"
    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    target_language: Mapped[str] = mapped_column(Text, nullable=False)
    native_language: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime.datetime] = mapped_column(ISODateTime, nullable=False)
    last_studied: Mapped[Optional[datetime.datetime]] = mapped_column(ISODateTime)
    cards: Mapped[List["CardRow"]] = relationship(
        back_populates="deck", order_by="CardRow.position", cascade="all, delete-orphan"
    )


class CardRow(Base):
    __tablename__ = "cards"
    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    deck_id: Mapped[str] = mapped_column(ForeignKey("decks.id"), nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    front: Mapped[str] = mapped_column(Text, nullable=False)
    back: Mapped[str] = mapped_column(Text, nullable=False)
    difficulty: Mapped[int] = mapped_column(Integer, nullable=False, default=3)
    next_review_date: Mapped[datetime.datetime] = mapped_column(ISODateTime, nullable=False)
    review_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    consecutive_correct: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_reviewed: Mapped[Optional[datetime.datetime]] = mapped_column(ISODateTime)
    notes: Mapped[Optional[str]] = mapped_column(Text)
    deck: Mapped[DeckRow] = relationship(back_populates="cards")


REQUIRED_TABLES = {"decks", "cards"}


def card_row_to_dataclass(row: CardRow) -> Card:
    return Card(
        id=row.id,
        front=row.front,
        back=row.back,
        difficulty=row.difficulty,
        next_review_date=row.next_review_date,
        review_count=row.review_count,
        consecutive_correct=row.consecutive_correct,
        last_reviewed=row.last_reviewed,
        notes=row.notes,
    )


def deck_row_to_dataclass(row: DeckRow) -> Deck:
    return Deck(
        id=row.id,
        name=row.name,
        target_language=row.target_language,
        native_language=row.native_language,
        cards=[card_row_to_dataclass(card) for card in row.cards],
        created_at=row.created_at,
        last_studied=row.last_studied,
    )


def deck_dataclass_to_row(deck: Deck, position: int) -> DeckRow:
    row = DeckRow(
        id=deck.id,
        position=position,
        name=deck.name,
        target_language=deck.target_language,
        native_language=deck.native_language,
        created_at=deck.created_at,
        last_studied=deck.last_studied,
    )
    row.cards = [
        CardRow(
            id=card.id,
            position=index,
            front=card.front,
            back=card.back,
            difficulty=card.difficulty,
            next_review_date=card.next_review_date,
            review_count=card.review_count,
            consecutive_correct=card.consecutive_correct,
            last_reviewed=card.last_reviewed,
            notes=card.notes,
        )
        for index, card in enumerate(deck.cards)
    ]
    return row


class DeckStore:
    """Loads and saves the full deck collection at `path`."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def _engine(self, path: Optional[Path] = None) -> Engine:
        return create_engine(f"sqlite:///{path or self.path}")

    @contextmanager
    def _session(self, path: Optional[Path] = None) -> Generator[Session, None, None]:
        engine = self._engine(path)
        session = sessionmaker(bind=engine, expire_on_commit=False)()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()
            engine.dispose()

    def exists(self) -> bool:
        return self.path.is_file() and self.path.stat().st_size > 0

    def load(self) -> Optional[List[Deck]]:
        """Return the stored decks, or None if nothing has been saved yet."""
        if not self.exists():
            logger.debug(f"No deck store at {self.path}")
            return None

        engine = self._engine()
        try:
            tables = set(inspect(engine).get_table_names())
        except SQLAlchemyError as e:
            raise CorruptDataError(f"{self.path} is not a readable deck store: {e}") from e
        finally:
            engine.dispose()

        missing = REQUIRED_TABLES - tables
        if missing:
            raise CorruptDataError(f"{self.path} is missing tables: {', '.join(sorted(missing))}")

        try:
            with self._session() as session:
                rows = session.execute(select(DeckRow).order_by(DeckRow.position)).scalars().all()
                decks = [deck_row_to_dataclass(row) for row in rows]
        except (SQLAlchemyError, FlashdeckError, ValueError, TypeError) as e:
            raise CorruptDataError(f"Could not parse decks from {self.path}: {e}") from e

        logger.debug(f"Loaded {len(decks)} decks from {self.path}")
        return decks

    def save(self, decks: List[Deck]) -> None:
        """Write `decks` to a fresh file beside the store, then swap it into place.

        Whatever was at `path` before, including a file that could not be
        loaded, is replaced only once the new document is complete.
        """
        try:
            fd, name = tempfile.mkstemp(prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent)
            os.close(fd)
        except OSError as e:
            raise PersistenceWriteError(f"Could not save decks to {self.path}: {e}") from e

        staging = Path(name)
        try:
            with self._session(staging) as session:
                Base.metadata.create_all(bind=session.get_bind())
                for position, deck in enumerate(decks):
                    session.add(deck_dataclass_to_row(deck, position))
            os.replace(staging, self.path)
        except (SQLAlchemyError, OSError) as e:
            staging.unlink(missing_ok=True)
            raise PersistenceWriteError(f"Could not save decks to {self.path}: {e}") from e

        logger.debug(f"Saved {len(decks)} decks to {self.path}")
