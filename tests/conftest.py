"""
pytest configuration and shared fixtures for modhatch tests.

Fixtures
--------
project_dir : Path
    An empty (not yet created) project directory under ``tmp_path``.
user_config_dir : Path
    Points ``MODHATCH_CONFIG_DIR`` at a temporary directory so tests never
    read or write the real user config. Applied to every test.
stub_fetcher : StubFetcher
    A version fetcher returning canned versions without network access.
failing_fetcher : StubFetcher
    A version fetcher whose every lookup fails.
sample_spec : ProjectSpec
    The ``testmod`` / ``com.example.testmod`` project with both loaders.
"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path

import pytest

from modhatch.errors import FetchError
from modhatch.models import Language, ModuleKind, ProjectSpec, VersionKey


FETCHED = {
    VersionKey.MINECRAFT: "1.21.5",
    VersionKey.FABRIC_LOADER: "0.16.14",
    VersionKey.FABRIC_API: "0.128.0+1.21.5",
    VersionKey.NEOFORGE: "21.5.95",
}


class StubFetcher:
    """
    In-memory :class:`~modhatch.versions.VersionFetcher`.

    Parameters
    ----------
    versions : Mapping[VersionKey, str]
        Answers per key. Missing keys raise :class:`FetchError`.
    """

    def __init__(self, versions: Mapping[VersionKey, str] | None = None) -> None:
        self.versions = dict(FETCHED if versions is None else versions)
        self.calls: list[tuple[VersionKey, dict[VersionKey, str]]] = []

    def fetch(self, key: VersionKey, context: Mapping[VersionKey, str]) -> str:
        self.calls.append((key, dict(context)))
        try:
            return self.versions[key]
        except KeyError:
            raise FetchError(f"no answer for {key.value}") from None


@pytest.fixture(autouse=True)
def user_config_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate the user config from the developer's machine."""
    config_dir = tmp_path / "user-config"
    monkeypatch.setenv("MODHATCH_CONFIG_DIR", str(config_dir))
    return config_dir


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    """Target directory for a new project; it does not exist yet."""
    return tmp_path / "testmod"


@pytest.fixture
def stub_fetcher() -> StubFetcher:
    return StubFetcher()


@pytest.fixture
def failing_fetcher() -> StubFetcher:
    return StubFetcher({})


@pytest.fixture
def sample_spec() -> ProjectSpec:
    """The reference project used across the generator tests."""
    return ProjectSpec(
        project_id="testmod",
        display_name="Test Mod",
        package="com.example.testmod",
        author="Test Author",
        language=Language.JAVA,
        enabled_modules=frozenset({ModuleKind.FABRIC, ModuleKind.NEOFORGE}),
    )
