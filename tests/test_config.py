from pathlib import Path

import pytest

from flashdeck import config
from flashdeck.errors import StorageLocationError


def test_explicit_path_wins(tmp_path, monkeypatch) -> None:
    monkeypatch.setenv("FLASHDECK_DB", str(tmp_path / "env.db"))
    assert config.resolve_storage_path(str(tmp_path / "explicit.db")) == tmp_path / "explicit.db"


def test_environment_path(tmp_path, monkeypatch) -> None:
    monkeypatch.setenv("FLASHDECK_DB", str(tmp_path / "nested" / "env.db"))
    path = config.resolve_storage_path()
    assert path == tmp_path / "nested" / "env.db"
    assert path.parent.is_dir()


def test_default_path_under_home(tmp_path, monkeypatch) -> None:
    monkeypatch.delenv("FLASHDECK_DB", raising=False)
    monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path))
    path = config.resolve_storage_path()
    assert path == tmp_path / ".flashdeck" / "language_learning_data.db"
    assert path.parent.is_dir()


def test_unknown_home_aborts(monkeypatch) -> None:
    monkeypatch.delenv("FLASHDECK_DB", raising=False)

    def no_home(cls):
        raise RuntimeError("Could not determine home directory.")

    monkeypatch.setattr(Path, "home", classmethod(no_home))
    with pytest.raises(StorageLocationError):
        config.resolve_storage_path()


def test_directory_path_rejected(tmp_path) -> None:
    with pytest.raises(StorageLocationError):
        config.resolve_storage_path(str(tmp_path))


def test_uncreatable_directory_rejected(tmp_path) -> None:
    blocker = tmp_path / "file"
    blocker.write_text("in the way")
    with pytest.raises(StorageLocationError):
        config.resolve_storage_path(str(blocker / "decks.db"))


def test_load_settings(tmp_path) -> None:
    settings = config.load_settings(str(tmp_path / "decks.db"))
    assert settings.storage_path == tmp_path / "decks.db"
