"""
FlashcardSystem owns the in-memory deck collection and is the only place it
gets mutated. Every mutation is followed by a whole-collection save; reads
hand out deep copies so callers cannot change stored cards behind its back.
"""
from __future__ import annotations

import copy
import datetime
from typing import List, Optional

from . import scheduler
from .db import DeckStore
from .errors import CorruptDataError, NotFoundError, PersistenceWriteError, ValidationError
from .logging_util import setup_logger
from .models import (
    DEFAULT_DIFFICULTY,
    MAX_DIFFICULTY,
    MIN_DIFFICULTY,
    Card,
    Deck,
    DeckStatistics,
    require_text,
    utcnow,
    validate_difficulty,
)

logger = setup_logger(__name__)


class FlashcardSystem:
    def __init__(self, store: DeckStore) -> None:
        self.store = store
        self._decks: List[Deck] = []
        self.load_error: Optional[CorruptDataError] = None
        self.last_save_error: Optional[PersistenceWriteError] = None

        try:
            loaded = store.load()
        except CorruptDataError as e:
            logger.error(f"Error loading decks, starting with an empty collection: {e}")
            self.load_error = e
            loaded = None

        if loaded is not None:
            self._decks = loaded

    # --- queries -------------------------------------------------------

    @property
    def decks(self) -> List[Deck]:
        return copy.deepcopy(self._decks)

    def __len__(self) -> int:
        return len(self._decks)

    def _find_deck(self, deck_id: str) -> Deck:
        for deck in self._decks:
            if deck.id == deck_id:
                return deck
        raise NotFoundError(f"Deck {deck_id} not found.")

    def get_deck(self, deck_id: str) -> Deck:
        return copy.deepcopy(self._find_deck(deck_id))

    def deck_at(self, position: int) -> Deck:
        """Deck by 1-based position, as listed to the user."""
        if not 1 <= position <= len(self._decks):
            raise ValidationError(f"Deck number must be between 1 and {len(self._decks)}, got {position}.")
        return copy.deepcopy(self._decks[position - 1])

    def get_due_cards(self, deck_id: str, now: Optional[datetime.datetime] = None) -> List[Card]:
        return copy.deepcopy(self._find_deck(deck_id).due_cards(now))

    def get_new_cards(self, deck_id: str) -> List[Card]:
        return copy.deepcopy(self._find_deck(deck_id).new_cards())

    def statistics(self, now: Optional[datetime.datetime] = None) -> List[DeckStatistics]:
        return [DeckStatistics.for_deck(deck, now) for deck in self._decks]

    # --- mutations -----------------------------------------------------

    def create_deck(self, name: str, target_language: str, native_language: str) -> Deck:
        deck = Deck(
            name=require_text(name, "Deck name"),
            target_language=require_text(target_language, "Target language"),
            native_language=require_text(native_language, "Native language"),
        )
        self._decks.append(deck)
        logger.info(f"Created deck '{deck.name}' ({deck.target_language} / {deck.native_language})")
        self._save()
        return copy.deepcopy(deck)

    def add_card(
        self,
        deck_id: str,
        front: str,
        back: str,
        difficulty: int = DEFAULT_DIFFICULTY,
        notes: Optional[str] = None,
    ) -> Card:
        deck = self._find_deck(deck_id)
        front = require_text(front, "Word/phrase")
        back = require_text(back, "Translation")
        validate_difficulty(difficulty)
        if notes is not None and not notes.strip():
            notes = None

        card = Card(front=front, back=back, difficulty=difficulty, notes=notes)
        deck.cards.append(card)
        logger.info(f"Added card '{card.front}' to deck '{deck.name}'")
        self._save()
        return copy.deepcopy(card)

    def review_card(
        self,
        deck_id: str,
        card_id: str,
        rating: int,
        is_correct: bool,
        now: Optional[datetime.datetime] = None,
    ) -> Deck:
        """Apply one review to a card and reschedule it.

        `is_correct` is taken as given; it is not derived from `rating`.
        """
        deck = self._find_deck(deck_id)
        card = deck.find_card(card_id)
        scheduler.validate_rating(rating)
        now = now or utcnow()

        card.review_count += 1
        card.last_reviewed = now

        if is_correct:
            card.consecutive_correct += 1
        else:
            card.consecutive_correct = 0

        if rating <= 1:
            card.difficulty = min(MAX_DIFFICULTY, card.difficulty + 1)
        elif rating >= 4:
            card.difficulty = max(MIN_DIFFICULTY, card.difficulty - 1)

        card.next_review_date = scheduler.compute_next_review(card, rating, now)
        deck.last_studied = now

        logger.debug(
            f"Reviewed '{card.front}' rating={rating} correct={is_correct} "
            f"difficulty={card.difficulty} next={card.next_review_date.isoformat()}"
        )
        self._save()
        return copy.deepcopy(deck)

    def _save(self) -> bool:
        try:
            self.store.save(self._decks)
        except PersistenceWriteError as e:
            logger.error(f"Error saving decks: {e}")
            self.last_save_error = e
            return False
        self.last_save_error = None
        return True

    def retry_save(self) -> bool:
        return self._save()
