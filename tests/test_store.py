"""Tests for the SQLite-backed deck store."""

import datetime

import pytest
from sqlalchemy import create_engine, text

from flashdeck.db import DeckStore
from flashdeck.errors import CorruptDataError, PersistenceWriteError
from flashdeck.models import Card, Deck

NOW = datetime.datetime(2026, 3, 1, 12, 0, 0, 123456, tzinfo=datetime.UTC)


@pytest.fixture
def store(tmp_path) -> DeckStore:
    return DeckStore(tmp_path / "decks.db")


@pytest.fixture
def sample_decks():
    spanish = Deck(
        name="Spanish Basics",
        target_language="Spanish",
        native_language="English",
        created_at=NOW - datetime.timedelta(days=30),
        last_studied=NOW,
        cards=[
            Card(
                front="perro",
                back="dog",
                difficulty=2,
                next_review_date=NOW + datetime.timedelta(days=2),
                review_count=4,
                consecutive_correct=3,
                last_reviewed=NOW,
                notes="masculine noun",
            ),
            Card(front="gato", back="cat", next_review_date=NOW),
            Card(front="pájaro", back="bird", difficulty=5, next_review_date=NOW - datetime.timedelta(days=1)),
        ],
    )
    swedish = Deck(
        name="Svenska",
        target_language="Swedish",
        native_language="English",
        created_at=NOW,
    )
    return [spanish, swedish]


def test_load_without_document_returns_none(store) -> None:
    assert store.load() is None


def test_load_empty_file_returns_none(store) -> None:
    store.path.touch()
    assert store.load() is None


def test_round_trip(store, sample_decks) -> None:
    store.save(sample_decks)
    loaded = store.load()
    assert loaded == sample_decks


def test_round_trip_keeps_absent_optionals(store, sample_decks) -> None:
    store.save(sample_decks)
    loaded = store.load()
    gato = loaded[0].cards[1]
    assert gato.last_reviewed is None
    assert gato.notes is None
    assert loaded[1].last_studied is None
    assert loaded[1].cards == []


def test_round_trip_keeps_timezone(store, sample_decks) -> None:
    store.save(sample_decks)
    loaded = store.load()
    assert loaded[0].created_at.tzinfo is not None
    assert loaded[0].last_studied == NOW


def test_save_overwrites_previous_document(store, sample_decks) -> None:
    store.save(sample_decks)
    store.save(sample_decks[1:])
    loaded = store.load()
    assert [deck.name for deck in loaded] == ["Svenska"]


def test_card_order_preserved(store) -> None:
    fronts = ["uno", "dos", "tres", "cuatro", "cinco"]
    deck = Deck(name="Numbers", target_language="Spanish", native_language="English",
                cards=[Card(front=front, back=str(i)) for i, front in enumerate(fronts)])
    store.save([deck])
    assert [card.front for card in store.load()[0].cards] == fronts


def test_timestamps_stored_as_iso_text(store, sample_decks) -> None:
    store.save(sample_decks)
    engine = create_engine(f"sqlite:///{store.path}")
    with engine.connect() as conn:
        stored = conn.execute(text("SELECT created_at FROM decks WHERE name = 'Svenska'")).scalar_one()
    engine.dispose()
    assert stored == NOW.isoformat()


def test_garbage_file_is_corrupt(store) -> None:
    store.path.write_bytes(b"this is not a database at all" * 10)
    with pytest.raises(CorruptDataError):
        store.load()


def test_database_without_schema_is_corrupt(store) -> None:
    engine = create_engine(f"sqlite:///{store.path}")
    with engine.begin() as conn:
        conn.execute(text("CREATE TABLE unrelated (id INTEGER PRIMARY KEY)"))
    engine.dispose()
    with pytest.raises(CorruptDataError):
        store.load()


def test_invalid_card_row_is_corrupt(store, sample_decks) -> None:
    store.save(sample_decks)
    engine = create_engine(f"sqlite:///{store.path}")
    with engine.begin() as conn:
        conn.execute(text("UPDATE cards SET difficulty = 9"))
    engine.dispose()
    with pytest.raises(CorruptDataError):
        store.load()


def test_unparsable_timestamp_is_corrupt(store, sample_decks) -> None:
    store.save(sample_decks)
    engine = create_engine(f"sqlite:///{store.path}")
    with engine.begin() as conn:
        conn.execute(text("UPDATE decks SET created_at = 'yesterday-ish'"))
    engine.dispose()
    with pytest.raises(CorruptDataError):
        store.load()


def test_save_to_missing_directory_fails(tmp_path, sample_decks) -> None:
    store = DeckStore(tmp_path / "does" / "not" / "exist" / "decks.db")
    with pytest.raises(PersistenceWriteError):
        store.save(sample_decks)


def test_failed_save_keeps_previous_document(store, sample_decks) -> None:
    store.save(sample_decks)

    card = Card(front="perro", back="dog")
    broken = Deck(name="Broken", target_language="Spanish", native_language="English", cards=[card, card])
    with pytest.raises(PersistenceWriteError):
        store.save([broken])

    assert store.load() == sample_decks
    assert [p.name for p in store.path.parent.iterdir()] == [store.path.name]


def test_save_replaces_unreadable_file(store, sample_decks) -> None:
    store.path.write_bytes(b"this is not a database at all" * 10)
    store.save(sample_decks)
    assert store.load() == sample_decks
