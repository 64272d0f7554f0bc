from __future__ import annotations

from pathlib import Path  # noqa: TC003

import pytest  # noqa: TC002

from crudmerge.config import storage


def test_storage_config_prefers_explicit_env(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    custom = tmp_path / "custom-data"
    monkeypatch.setenv("CRUDMERGE_DATA_DIR", str(custom))

    result = storage.get_storage_config().resolve_data_dir()

    assert result == custom.resolve()


def test_database_config_uses_env_override(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DATABASE_URI", "sqlite:///override.db")

    config = storage.get_database_config()

    assert config.uri == "sqlite:///override.db"


def test_database_config_creates_data_dir(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    monkeypatch.delenv("DATABASE_URI", raising=False)
    monkeypatch.setenv("CRUDMERGE_DATA_DIR", str(tmp_path / "data-dir"))

    config = storage.get_database_config()

    expected_path = (tmp_path / "data-dir" / storage.DEFAULT_DB_FILENAME).resolve()
    assert config.uri == f"sqlite+pysqlite:///{expected_path}"
    assert expected_path.parent.exists()
