from __future__ import annotations

from pathlib import Path

import pytest

from archive.exceptions import ConfigurationError
from archive.settings import Settings, StorageSettings
from archive.storage import create_storage
from archive.storage.local import LocalStorage


def test_default_config_file_loads():
    settings = Settings.load(Path("config/default.yaml"))

    assert settings.storage.backend == "s3"
    assert settings.upload.timeout_seconds == 50
    assert settings.upload.chunk_size == 8 * 1024 * 1024


def test_bucket_comes_from_environment(monkeypatch):
    monkeypatch.setenv("ARCHIVE_BUCKET", "exam-archive")
    assert StorageSettings().bucket_name == "exam-archive"


def test_explicit_bucket_wins(monkeypatch):
    monkeypatch.setenv("ARCHIVE_BUCKET", "from-env")
    assert StorageSettings(bucket="from-yaml").bucket_name == "from-yaml"


def test_missing_bucket_is_a_configuration_error(monkeypatch):
    monkeypatch.delenv("ARCHIVE_BUCKET", raising=False)
    with pytest.raises(ConfigurationError):
        StorageSettings().bucket_name


def test_missing_file(tmp_path):
    with pytest.raises(ConfigurationError):
        Settings.load(tmp_path / "nope.yaml")


def test_invalid_values(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text("upload:\n  timeout_seconds: -1\n", encoding="utf-8")

    with pytest.raises(ConfigurationError):
        Settings.load(path)


def test_local_backend_factory(tmp_path):
    path = tmp_path / "local.yaml"
    path.write_text(
        f"storage:\n  backend: local\n  local_root: {tmp_path / 'archive'}\n  prefix: /docs/\n",
        encoding="utf-8",
    )
    settings = Settings.load(path)

    storage = create_storage(settings)

    assert isinstance(storage, LocalStorage)
    assert storage.root == tmp_path / "archive"
    assert settings.storage.prefix == "docs"
