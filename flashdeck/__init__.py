"""
flashdeck

Language flashcard decks with spaced-repetition review scheduling.
"""

from . import errors
from . import models
from . import scheduler
from . import db
from . import system
from . import session

__version__ = "0.1.0"
__all__ = ["errors", "models", "scheduler", "db", "system", "session"]
