"""
Exceptions raised by the flashdeck core.
"""


class FlashdeckError(Exception):
    """Base exception for all flashdeck errors."""
    pass


class ValidationError(FlashdeckError):
    """Raised when an input is empty or out of range. Nothing is mutated."""
    pass


class NotFoundError(FlashdeckError):
    """Raised when a deck or card id does not exist."""
    pass


class CorruptDataError(FlashdeckError):
    """Raised when the stored document exists but cannot be read back."""
    pass


class PersistenceWriteError(FlashdeckError):
    """Raised when the deck collection could not be written to disk."""
    pass


class StorageLocationError(FlashdeckError):
    """Raised when no writable storage location can be determined."""
    pass
