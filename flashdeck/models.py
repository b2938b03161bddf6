"""
Deck and card data model.

Cards and decks are plain dataclasses; the database layer in db.py converts
them to and from ORM rows.
"""
from __future__ import annotations

import datetime
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .errors import NotFoundError, ValidationError

MIN_DIFFICULTY = 1
MAX_DIFFICULTY = 5
DEFAULT_DIFFICULTY = 3
MASTERY_THRESHOLD = 3


def utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.UTC)


def new_id() -> str:
    return str(uuid.uuid4())


def require_text(value: Optional[str], label: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{label} cannot be empty.")
    return value.strip()


def validate_difficulty(difficulty: int) -> int:
    if isinstance(difficulty, bool) or not isinstance(difficulty, int):
        raise ValidationError(f"Difficulty must be an integer, got {difficulty!r}.")
    if not MIN_DIFFICULTY <= difficulty <= MAX_DIFFICULTY:
        raise ValidationError(
            f"Difficulty must be between {MIN_DIFFICULTY} and {MAX_DIFFICULTY}, got {difficulty}."
        )
    return difficulty


class _WriteOnce:
    """Mixin that refuses to rebind fields listed in _immutable once set."""

    _immutable: tuple = ()

    def __setattr__(self, name: str, value: Any) -> None:
        if name in self._immutable and name in self.__dict__:
            raise AttributeError(f"{type(self).__name__}.{name} is read-only")
        super().__setattr__(name, value)


@dataclass
class Card(_WriteOnce):
    """One vocabulary item and its review state.

    `front` is the word in the language being learned, `back` its
    translation. Difficulty runs from 1 (easiest) to 5 (hardest).
    """

    _immutable = ("id", "front", "back")

    front: str
    back: str
    difficulty: int = DEFAULT_DIFFICULTY
    next_review_date: datetime.datetime = field(default_factory=utcnow)
    review_count: int = 0
    consecutive_correct: int = 0
    last_reviewed: Optional[datetime.datetime] = None
    notes: Optional[str] = None
    id: str = field(default_factory=new_id)

    def __post_init__(self) -> None:
        validate_difficulty(self.difficulty)
        if self.review_count < 0:
            raise ValidationError(f"Review count cannot be negative, got {self.review_count}.")
        if not 0 <= self.consecutive_correct <= self.review_count:
            raise ValidationError(
                f"Consecutive correct ({self.consecutive_correct}) must be between 0 "
                f"and the review count ({self.review_count})."
            )

    def is_due(self, now: Optional[datetime.datetime] = None) -> bool:
        return self.next_review_date <= (now or utcnow())

    @property
    def is_new(self) -> bool:
        return self.review_count == 0

    @property
    def is_mastered(self) -> bool:
        return self.consecutive_correct >= MASTERY_THRESHOLD


@dataclass
class Deck(_WriteOnce):
    """A named, ordered collection of cards for one language pair."""

    _immutable = ("id", "name", "target_language", "native_language", "created_at")

    name: str
    target_language: str
    native_language: str
    cards: List[Card] = field(default_factory=list)
    created_at: datetime.datetime = field(default_factory=utcnow)
    last_studied: Optional[datetime.datetime] = None
    id: str = field(default_factory=new_id)

    def find_card(self, card_id: str) -> Card:
        for card in self.cards:
            if card.id == card_id:
                return card
        raise NotFoundError(f"Card {card_id} not found in deck '{self.name}'.")

    def due_cards(self, now: Optional[datetime.datetime] = None) -> List[Card]:
        now = now or utcnow()
        return [card for card in self.cards if card.is_due(now)]

    def due_card_count(self, now: Optional[datetime.datetime] = None) -> int:
        return len(self.due_cards(now))

    def new_cards(self) -> List[Card]:
        return [card for card in self.cards if card.is_new]


@dataclass
class StudySession:
    """Running tally for one pass over a deck. Never persisted."""

    deck: Deck
    start_time: datetime.datetime = field(default_factory=utcnow)
    end_time: Optional[datetime.datetime] = None
    cards_reviewed: int = 0
    correct_responses: int = 0

    def record(self, is_correct: bool) -> None:
        self.cards_reviewed += 1
        if is_correct:
            self.correct_responses += 1

    def finish(self, now: Optional[datetime.datetime] = None) -> None:
        self.end_time = now or utcnow()

    @property
    def duration(self) -> Optional[datetime.timedelta]:
        if self.end_time is None:
            return None
        return self.end_time - self.start_time

    @property
    def accuracy_percentage(self) -> float:
        if self.cards_reviewed == 0:
            return 0.0
        return self.correct_responses / self.cards_reviewed * 100


@dataclass
class DeckStatistics:
    deck_name: str
    target_language: str
    total_cards: int
    difficulty_counts: Dict[int, int]
    mastered_cards: int
    due_cards: int
    last_studied: Optional[datetime.datetime] = None

    @classmethod
    def for_deck(cls, deck: Deck, now: Optional[datetime.datetime] = None) -> "DeckStatistics":
        counts = {level: 0 for level in range(MIN_DIFFICULTY, MAX_DIFFICULTY + 1)}
        for card in deck.cards:
            counts[card.difficulty] += 1
        return cls(
            deck_name=deck.name,
            target_language=deck.target_language,
            total_cards=len(deck.cards),
            difficulty_counts=counts,
            mastered_cards=sum(1 for card in deck.cards if card.is_mastered),
            due_cards=deck.due_card_count(now),
            last_studied=deck.last_studied,
        )

    def difficulty_percentage(self, level: int) -> float:
        if self.total_cards == 0:
            return 0.0
        return self.difficulty_counts.get(level, 0) / self.total_cards * 100

    @property
    def mastery_percentage(self) -> float:
        if self.total_cards == 0:
            return 0.0
        return self.mastered_cards / self.total_cards * 100
