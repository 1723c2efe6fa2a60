"""
modhatch.versions - Dependency Version Resolution
=================================================

Every generated workspace pins four external versions (Minecraft, Fabric
Loader, Fabric API, NeoForge). This module decides which value each one
gets and remembers where the value came from.

Resolution Order
----------------
For each :class:`~modhatch.models.VersionKey`:

    1. explicit override (``--minecraft-version`` and friends)
    2. network lookup through a :class:`VersionFetcher`
    3. prior value (state record on ``add``, checked-in
       ``gradle.properties`` on ``init``)
    4. the key's hardcoded default

A failed lookup is never fatal. It is logged and recorded on the
:class:`ResolvedVersion`, and resolution moves on to the next tier.

Keys are resolved in dependency order: Fabric API and NeoForge lookups are
scoped to the *resolved* Minecraft version, whichever tier produced it.
Independent lookups of the same generation run concurrently.

Usage
-----
>>> report = resolve_versions(offline=True)
>>> report[VersionKey.MINECRAFT].value
'1.21.4'
>>> report[VersionKey.MINECRAFT].source
<VersionSource.DEFAULT: 'default'>
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from graphlib import TopologicalSorter
from typing import TYPE_CHECKING, Protocol

import httpx

from modhatch.errors import FetchError
from modhatch.logger import get_logger
from modhatch.models import VersionKey


if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping
    from pathlib import Path


logger = get_logger(__name__)


# =============================================================================
# Endpoints
# =============================================================================

FABRIC_GAME_VERSIONS_URL = "https://meta.fabricmc.net/v2/versions/game"
FABRIC_LOADER_VERSIONS_URL = "https://meta.fabricmc.net/v2/versions/loader"
FABRIC_API_METADATA_URL = (
    "https://maven.fabricmc.net/net/fabricmc/fabric-api/fabric-api/maven-metadata.xml"
)
NEOFORGE_METADATA_URL = (
    "https://maven.neoforged.net/releases/net/neoforged/neoforge/maven-metadata.xml"
)

DEFAULT_TIMEOUT = 10.0


# =============================================================================
# Result Types
# =============================================================================


class VersionSource(str, Enum):
    """Which tier of the fallback chain produced a version."""

    OVERRIDE = "override"
    FETCHED = "fetched"
    PRIOR = "prior"
    DEFAULT = "default"


@dataclass(frozen=True)
class ResolvedVersion:
    """
    Outcome of resolving one version key.

    Attributes
    ----------
    key : VersionKey
        The artifact.
    value : str
        The version that will be used.
    source : VersionSource
        Which tier supplied ``value``.
    fetch_error : str | None
        Why the network lookup failed, when it was attempted and failed.
    """

    key: VersionKey
    value: str
    source: VersionSource
    fetch_error: str | None = None

    @property
    def degraded(self) -> bool:
        """True when a lookup was attempted but a fallback was used."""
        return self.fetch_error is not None


class VersionReport:
    """Ordered mapping of :class:`VersionKey` to :class:`ResolvedVersion`."""

    def __init__(self, resolved: Mapping[VersionKey, ResolvedVersion]) -> None:
        self._resolved = {key: resolved[key] for key in VersionKey if key in resolved}

    def __getitem__(self, key: VersionKey) -> ResolvedVersion:
        return self._resolved[key]

    def __iter__(self) -> Iterator[ResolvedVersion]:
        return iter(self._resolved.values())

    def __len__(self) -> int:
        return len(self._resolved)

    def values(self) -> dict[VersionKey, str]:
        """Plain ``key -> version`` mapping for templates and the state record."""
        return {key: resolved.value for key, resolved in self._resolved.items()}

    @property
    def degraded(self) -> list[ResolvedVersion]:
        """Keys whose lookup failed and fell back to another tier."""
        return [resolved for resolved in self if resolved.degraded]


# =============================================================================
# Fetchers
# =============================================================================


class VersionFetcher(Protocol):
    """
    Capability to look up the latest version of an artifact.

    Implementations raise :class:`~modhatch.errors.FetchError` on any failure.
    ``context`` holds the resolved values of the key's dependencies.
    """

    def fetch(self, key: VersionKey, context: Mapping[VersionKey, str]) -> str: ...


class MetaVersionFetcher:
    """
    Looks versions up on the Fabric meta API and the loaders' Maven repos.

    Parameters
    ----------
    client : httpx.Client | None
        Client to use. A client with ``timeout`` is created when omitted.
    timeout : float
        Per-request timeout in seconds.
    """

    def __init__(self, client: httpx.Client | None = None, timeout: float = DEFAULT_TIMEOUT) -> None:
        self.client = client or httpx.Client(
            timeout=httpx.Timeout(timeout, connect=min(timeout, 5.0)),
            headers={"User-Agent": "modhatch"},
            follow_redirects=True,
        )

    def fetch(self, key: VersionKey, context: Mapping[VersionKey, str]) -> str:
        if key is VersionKey.MINECRAFT:
            return self._latest_stable(FABRIC_GAME_VERSIONS_URL, "Minecraft")
        if key is VersionKey.FABRIC_LOADER:
            return self._latest_stable(FABRIC_LOADER_VERSIONS_URL, "Fabric Loader")

        minecraft = context.get(VersionKey.MINECRAFT, VersionKey.MINECRAFT.default)
        if key is VersionKey.FABRIC_API:
            suffix = f"+{minecraft}"
            return self._last_matching(
                FABRIC_API_METADATA_URL,
                lambda v: v.endswith(suffix),
                f"No Fabric API version found for {minecraft}",
            )
        if key is VersionKey.NEOFORGE:
            prefix = neoforge_prefix(minecraft)
            return self._last_matching(
                NEOFORGE_METADATA_URL,
                lambda v: v.startswith(prefix),
                f"No NeoForge version found for {minecraft}",
            )
        raise FetchError(f"No lookup defined for {key.value}")

    def close(self) -> None:
        self.client.close()

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _get(self, url: str) -> httpx.Response:
        try:
            response = self.client.get(url)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise FetchError(f"{url} returned {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise FetchError(f"{url}: {e}") from e
        return response

    def _latest_stable(self, url: str, what: str) -> str:
        try:
            entries = self._get(url).json()
        except ValueError as e:
            raise FetchError(f"Invalid JSON from {url}: {e}") from e

        if not isinstance(entries, list):
            raise FetchError(f"Unexpected payload from {url}")

        for entry in entries:
            if isinstance(entry, dict) and entry.get("stable") is True:
                version = entry.get("version")
                if isinstance(version, str) and version:
                    return version
        raise FetchError(f"No stable {what} version found")

    def _last_matching(self, url: str, predicate, missing: str) -> str:
        matching = [v for v in parse_maven_versions(self._get(url).text) if predicate(v)]
        if not matching:
            raise FetchError(missing)
        return matching[-1]


def parse_maven_versions(body: str) -> list[str]:
    """
    Extract ``<versioning><versions><version>`` entries from maven-metadata.xml.

    Raises
    ------
    FetchError
        If the document is not well-formed XML.
    """
    try:
        root = ET.fromstring(body)
    except ET.ParseError as e:
        raise FetchError(f"Invalid maven metadata: {e}") from e
    return [
        element.text.strip()
        for element in root.iterfind("./versioning/versions/version")
        if element.text and element.text.strip()
    ]


def neoforge_prefix(minecraft: str) -> str:
    """
    NeoForge versions drop the leading ``1.`` of the Minecraft version.

    >>> neoforge_prefix("1.21.4")
    '21.4.'
    >>> neoforge_prefix("1.21")
    '21.'
    """
    parts = minecraft.split(".", 2)
    if len(parts) >= 3:
        return f"{parts[1]}.{parts[2]}."
    if len(parts) == 2:
        return f"{parts[1]}."
    raise FetchError(f"Cannot parse Minecraft version: {minecraft}")


# =============================================================================
# Resolution
# =============================================================================


def resolution_order() -> list[list[VersionKey]]:
    """
    Group version keys into generations by declared dependency.

    Keys inside one generation do not depend on each other and may be
    fetched concurrently.
    """
    sorter = TopologicalSorter({key: set(key.depends_on) for key in VersionKey})
    sorter.prepare()
    generations: list[list[VersionKey]] = []
    while sorter.is_active():
        ready = sorted(sorter.get_ready(), key=list(VersionKey).index)
        generations.append(ready)
        sorter.done(*ready)
    return generations


def resolve_versions(
    overrides: Mapping[VersionKey, str] | None = None,
    prior: Mapping[VersionKey, str] | None = None,
    fetcher: VersionFetcher | None = None,
    *,
    offline: bool = False,
    max_workers: int = 4,
) -> VersionReport:
    """
    Resolve every :class:`VersionKey` through the fallback chain.

    Parameters
    ----------
    overrides : Mapping[VersionKey, str] | None
        Explicit values from the command line. Empty strings are ignored.
    prior : Mapping[VersionKey, str] | None
        Values from the state record or the checked-in template.
    fetcher : VersionFetcher | None
        Network collaborator. A :class:`MetaVersionFetcher` is created when
        omitted and ``offline`` is False.
    offline : bool
        Skip the network tier entirely.
    max_workers : int
        Upper bound on concurrent lookups within one generation.

    Returns
    -------
    VersionReport
        One :class:`ResolvedVersion` per key. Never raises for fetch failures.
    """
    overrides = {k: v for k, v in (overrides or {}).items() if v}
    prior = {k: v for k, v in (prior or {}).items() if v}

    owned_fetcher = None
    if not offline and fetcher is None:
        fetcher = owned_fetcher = MetaVersionFetcher()

    resolved: dict[VersionKey, ResolvedVersion] = {}
    try:
        for generation in resolution_order():
            to_fetch = [key for key in generation if key not in overrides]
            for key in generation:
                if key in overrides:
                    resolved[key] = ResolvedVersion(key, overrides[key], VersionSource.OVERRIDE)

            outcomes: dict[VersionKey, tuple[str | None, str | None]] = {}
            if offline or fetcher is None:
                outcomes = {key: (None, None) for key in to_fetch}
            elif to_fetch:
                context = {key: resolved[key].value for key in resolved}
                with ThreadPoolExecutor(max_workers=min(max_workers, len(to_fetch))) as pool:
                    futures = {
                        key: pool.submit(_try_fetch, fetcher, key, context)
                        for key in to_fetch
                    }
                    outcomes = {key: future.result() for key, future in futures.items()}

            for key in to_fetch:
                value, error = outcomes[key]
                resolved[key] = _fallback(key, value, error, prior)
    finally:
        if owned_fetcher is not None:
            owned_fetcher.close()

    return VersionReport(resolved)


def _try_fetch(
    fetcher: VersionFetcher,
    key: VersionKey,
    context: Mapping[VersionKey, str],
) -> tuple[str | None, str | None]:
    try:
        return fetcher.fetch(key, context), None
    except FetchError as e:
        logger.warning("Could not fetch %s version: %s", key.label, e)
        return None, str(e)


def _fallback(
    key: VersionKey,
    fetched: str | None,
    error: str | None,
    prior: Mapping[VersionKey, str],
) -> ResolvedVersion:
    if fetched:
        return ResolvedVersion(key, fetched, VersionSource.FETCHED)
    if key in prior:
        return ResolvedVersion(key, prior[key], VersionSource.PRIOR, error)
    return ResolvedVersion(key, key.default, VersionSource.DEFAULT, error)


def read_checked_in_versions(root: Path) -> dict[VersionKey, str]:
    """
    Read ``*_version`` properties from an existing ``gradle.properties``.

    Used as the prior tier on ``init`` when the target directory already
    holds a checked-out starter template.
    """
    path = root / "gradle.properties"
    if not path.is_file():
        return {}

    wanted = {key.property_name: key for key in VersionKey}
    found: dict[VersionKey, str] = {}
    for raw_line in path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        name, _, value = line.partition("=")
        key = wanted.get(name.strip())
        if key is not None and value.strip():
            found[key] = value.strip()
    return found
