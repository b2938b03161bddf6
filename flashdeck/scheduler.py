import datetime
import math
from typing import Optional

from .errors import ValidationError
from .models import Card, utcnow

MIN_RATING = 0
MAX_RATING = 5

BASE_EASE = 2.5
MIN_EASE = 1.3
EASE_STEP = 0.1

POOR_RECALL_FACTOR = 0.5
STRONG_RECALL_FACTOR = 1.3


def validate_rating(rating: int) -> int:
    if isinstance(rating, bool) or not isinstance(rating, int):
        raise ValidationError(f"Rating must be an integer, got {rating!r}.")
    if not MIN_RATING <= rating <= MAX_RATING:
        raise ValidationError(f"Rating must be between {MIN_RATING} and {MAX_RATING}, got {rating}.")
    return rating


def ease_factor(difficulty: int, rating: int) -> float:
    """
    Ease factor derived from the card's difficulty and this review's rating.

    Starts from 2.5 and moves 0.1 per step of difficulty below 3 and per step
    of rating above 3. Never drops below 1.3.
    """
    return max(MIN_EASE, BASE_EASE + (3 - difficulty) * EASE_STEP + (rating - 3) * EASE_STEP)


def elapsed_days(last_reviewed: Optional[datetime.datetime], now: datetime.datetime) -> int:
    """Whole days since the last review, counted as at least one.

    A card without a last review also counts as one day.
    """
    if last_reviewed is None:
        return 1
    return max(1, (now - last_reviewed).days)


def review_interval(card: Card, rating: int, ease: float, now: datetime.datetime) -> int:
    """
    Days until the next review.

    Rating scale (0-5):
      0-1 – forgot
      2   – recalled with real difficulty
      3   – recalled with some effort
      4-5 – recalled easily

    Algorithm:
      1. First review (review_count == 0): 1 day if rating <= 2, else 2 days.
      2. Forgot (rating <= 1): back to 1 day.
      3. Otherwise grow the elapsed time by the ease factor (floored), then
         halve it for rating 2 or stretch it by 1.3 for rating 4-5.
    """
    if card.review_count == 0:
        return 1 if rating <= 2 else 2

    if rating <= 1:
        return 1

    base = math.floor(elapsed_days(card.last_reviewed, now) * ease)

    if rating <= 2:
        interval = max(1, math.floor(base * POOR_RECALL_FACTOR))
    elif rating >= 4:
        interval = math.floor(base * STRONG_RECALL_FACTOR)
    else:
        interval = base

    return max(1, interval)


def compute_next_review(card: Card, rating: int, now: Optional[datetime.datetime] = None) -> datetime.datetime:
    """
    Next review date for `card` after a review rated `rating`.

    Reads difficulty, review_count and last_reviewed; `card` is not modified.
    """
    validate_rating(rating)
    now = now or utcnow()

    ease = ease_factor(card.difficulty, rating)
    interval = review_interval(card, rating, ease, now)

    return now + datetime.timedelta(days=interval)
