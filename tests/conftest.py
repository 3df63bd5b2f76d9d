from __future__ import annotations

import os
from typing import Callable, Iterator

import pytest

from core.domain.models import PackageRecord
from core.logging_config import reset_logging


@pytest.fixture(autouse=True)
def _clean_logging() -> Iterator[None]:
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path_factory: pytest.TempPathFactory) -> None:
    """Keep project .env files and CRX_PKGSYNC_* variables out of tests."""

    for key in list(os.environ):
        if key.startswith("CRX_PKGSYNC_"):
            monkeypatch.delenv(key)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path_factory.mktemp("xdg")))
    monkeypatch.chdir(tmp_path_factory.mktemp("cwd"))


@pytest.fixture
def make_record() -> Callable[..., PackageRecord]:
    def _make(
        version: str,
        *,
        name: str = "site-content",
        download_name: str | None = None,
        last_unpacked: str | None = None,
    ) -> PackageRecord:
        return PackageRecord(
            name=name,
            version=version,
            group="my_packages",
            download_name=download_name or f"{name}-{version}.zip",
            last_unpacked=last_unpacked,
        )

    return _make
