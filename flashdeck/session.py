"""
Study session orchestration.

SessionRunner picks the cards to study, asks a StudyInterface for answers
and ratings, and pushes every review back through FlashcardSystem.
"""
from __future__ import annotations

import random
from typing import Callable, List, Optional, Protocol

from .errors import NotFoundError
from .logging_util import setup_logger
from .models import Card, Deck, StudySession
from .system import FlashcardSystem

logger = setup_logger(__name__)

CORRECT_RATING_THRESHOLD = 3


class StudyInterface(Protocol):
    def offer_new_cards(self, deck: Deck) -> bool:
        """Called when nothing is due. Return True to study unreviewed cards instead."""
        ...

    def ask(self, card: Card, deck: Deck) -> str:
        """Show the card's back and return the user's attempt at the front."""
        ...

    def rate(self, card: Card, answer: str, matched: bool) -> int:
        """Reveal the answer and return a self-rating from 0 to 5."""
        ...

    def reviewed(self, session: StudySession, total: int) -> None:
        ...


def default_correctness(rating: int) -> bool:
    return rating >= CORRECT_RATING_THRESHOLD


def answer_matches(card: Card, answer: str) -> bool:
    return answer.strip().lower() == card.front.strip().lower()


class SessionRunner:
    def __init__(
        self,
        system: FlashcardSystem,
        deck_id: str,
        interface: StudyInterface,
        correctness: Callable[[int], bool] = default_correctness,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.system = system
        self.deck_id = deck_id
        self.interface = interface
        self.correctness = correctness
        self.rng = rng or random.Random()

    def select_cards(self) -> List[Card]:
        """Due cards, or new cards if nothing is due and the user opts in."""
        cards = self.system.get_due_cards(self.deck_id)
        if not cards:
            deck = self.system.get_deck(self.deck_id)
            if self.interface.offer_new_cards(deck):
                cards = self.system.get_new_cards(self.deck_id)
        self.rng.shuffle(cards)
        return cards

    def run(self, cards: Optional[List[Card]] = None) -> StudySession:
        if cards is None:
            cards = self.select_cards()

        session = StudySession(deck=self.system.get_deck(self.deck_id))
        total = len(cards)
        logger.info(f"Study session started for '{session.deck.name}' with {total} cards")

        for card in cards:
            answer = self.interface.ask(card, session.deck)
            rating = self.interface.rate(card, answer, answer_matches(card, answer))
            is_correct = self.correctness(rating)

            try:
                self.system.review_card(self.deck_id, card.id, rating, is_correct)
            except NotFoundError as e:
                logger.warning(f"Skipping card that is no longer in the deck: {e}")
                continue

            session.record(is_correct)
            self.interface.reviewed(session, total)

        session.finish()
        logger.info(
            f"Study session finished: {session.correct_responses}/{session.cards_reviewed} correct"
        )
        return session
