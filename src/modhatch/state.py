"""
modhatch.state - Project State Record
=====================================

``modhatch.toml`` at the project root remembers what ``init`` generated so
that ``add`` can work out what is still missing. It is read with
:mod:`tomllib` and written with :mod:`tomlkit` so that the file carries
section comments.

Format
------
::

    format_version = 1

    [project]
    mod_id = "testmod"
    mod_name = "Test Mod"
    package = "com.example.testmod"
    author = "Your Name"
    description = "A Minecraft mod"
    language = "java"

    [modules]
    common = true
    fabric = true
    neoforge = false

    [features]
    ci = true

    [versions]
    minecraft = "1.21.4"
    fabric_loader = "0.16.9"
    fabric_api = "0.111.0+1.21.4"
    neoforge = "21.4.156"
"""

from __future__ import annotations

import tomllib
from pathlib import Path

import tomlkit
from pydantic import BaseModel, ConfigDict, Field, ValidationError, ValidationInfo, field_validator

from modhatch.errors import FileSystemFailure, StateRecordCorrupt, StateRecordNotFound
from modhatch.identifiers import validate_package, validate_project_id, validate_text
from modhatch.models import FeatureKind, Language, ModuleKind, ProjectSpec, VersionKey
from modhatch.plan import STATE_FILE


FORMAT_VERSION = 1


# =============================================================================
# Record Model
# =============================================================================


class ProjectInfo(BaseModel):
    model_config = ConfigDict(extra="forbid")

    mod_id: str
    mod_name: str
    package: str
    author: str = "Your Name"
    description: str = "A Minecraft mod"
    language: Language = Language.JAVA

    @field_validator("mod_id")
    @classmethod
    def validate_id(cls, v: str) -> str:
        validate_project_id(v)
        return v

    @field_validator("package")
    @classmethod
    def validate_package_name(cls, v: str) -> str:
        validate_package(v)
        return v

    @field_validator("mod_name", "author", "description")
    @classmethod
    def validate_free_text(cls, v: str, info: ValidationInfo) -> str:
        validate_text(info.field_name.replace("_", " "), v)
        return v


class ModuleFlags(BaseModel):
    model_config = ConfigDict(extra="forbid")

    common: bool = True
    fabric: bool = False
    neoforge: bool = False


class FeatureFlags(BaseModel):
    model_config = ConfigDict(extra="forbid")

    ci: bool = False


class VersionPins(BaseModel):
    model_config = ConfigDict(extra="forbid")

    minecraft: str = VersionKey.MINECRAFT.default
    fabric_loader: str = VersionKey.FABRIC_LOADER.default
    fabric_api: str = VersionKey.FABRIC_API.default
    neoforge: str = VersionKey.NEOFORGE.default

    def as_dict(self) -> dict[VersionKey, str]:
        return {key: getattr(self, key.value) for key in VersionKey}


class ProjectStateRecord(BaseModel):
    """
    Parsed ``modhatch.toml``.

    Attributes
    ----------
    format_version : int
        Schema version; newer versions than :data:`FORMAT_VERSION` are
        rejected rather than guessed at.
    project : ProjectInfo
        Identifiers and metadata.
    modules : ModuleFlags
        Which modules exist.
    features : FeatureFlags
        Which optional features exist.
    versions : VersionPins
        Versions the project was generated with.
    """

    model_config = ConfigDict(extra="forbid")

    format_version: int = Field(default=FORMAT_VERSION, ge=1)
    project: ProjectInfo
    modules: ModuleFlags = Field(default_factory=ModuleFlags)
    features: FeatureFlags = Field(default_factory=FeatureFlags)
    versions: VersionPins = Field(default_factory=VersionPins)

    @property
    def enabled_modules(self) -> frozenset[ModuleKind]:
        return frozenset(m for m in ModuleKind if getattr(self.modules, m.value))

    @property
    def enabled_features(self) -> frozenset[FeatureKind]:
        return frozenset(f for f in FeatureKind if getattr(self.features, f.value))


# =============================================================================
# Conversions
# =============================================================================


def record_from_spec(spec: ProjectSpec) -> ProjectStateRecord:
    """Snapshot a validated spec for ``modhatch.toml``."""
    return ProjectStateRecord(
        project=ProjectInfo(
            mod_id=spec.project_id,
            mod_name=spec.display_name,
            package=spec.package,
            author=spec.author,
            description=spec.description,
            language=spec.language,
        ),
        modules=ModuleFlags(**{m.value: m in spec.enabled_modules for m in ModuleKind}),
        features=FeatureFlags(**{f.value: f in spec.enabled_features for f in FeatureKind}),
        versions=VersionPins(**{k.value: spec.version(k) for k in VersionKey}),
    )


def spec_from_record(record: ProjectStateRecord) -> ProjectSpec:
    """Rebuild the :class:`ProjectSpec` a record was saved from."""
    info = record.project
    return ProjectSpec(
        project_id=info.mod_id,
        display_name=info.mod_name,
        package=info.package,
        author=info.author,
        description=info.description,
        language=info.language,
        enabled_modules=record.enabled_modules,
        enabled_features=record.enabled_features,
        resolved_versions=record.versions.as_dict(),
    )


# =============================================================================
# Load / Save
# =============================================================================


def state_path(root: Path) -> Path:
    return Path(root) / STATE_FILE


def load_state(root: Path) -> ProjectStateRecord:
    """
    Read ``modhatch.toml`` from a project directory.

    Raises
    ------
    StateRecordNotFound
        If the file does not exist.
    StateRecordCorrupt
        If it is not valid TOML, does not match the schema, or was written
        by a newer modhatch.
    """
    path = state_path(root)
    if not path.is_file():
        raise StateRecordNotFound(path)

    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as e:
        raise StateRecordCorrupt(path, f"invalid TOML ({e})") from e
    except (OSError, UnicodeDecodeError) as e:
        raise StateRecordCorrupt(path, str(e)) from e

    version = data.get("format_version", FORMAT_VERSION)
    if isinstance(version, int) and version > FORMAT_VERSION:
        raise StateRecordCorrupt(
            path,
            f"format_version {version} is newer than supported ({FORMAT_VERSION}); "
            "upgrade modhatch",
        )

    try:
        record = ProjectStateRecord.model_validate(data)
    except ValidationError as e:
        first = e.errors()[0]
        location = ".".join(str(part) for part in first["loc"])
        raise StateRecordCorrupt(path, f"{location}: {first['msg']}") from e

    if not record.modules.fabric and not record.modules.neoforge:
        raise StateRecordCorrupt(path, "no loader module is enabled")
    return record


def _table(comment: str, values: dict[str, object]) -> tomlkit.items.Table:
    table = tomlkit.table()
    table.add(tomlkit.comment(comment))
    for key, value in values.items():
        table.add(key, value)
    return table


def dumps_state(record: ProjectStateRecord) -> str:
    """Serialise a record as commented TOML."""
    doc = tomlkit.document()
    doc.add(tomlkit.comment("Managed by modhatch. Edit with care; 'modhatch add' reads this file."))
    doc.add("format_version", record.format_version)
    doc.add(tomlkit.nl())

    info = record.project.model_dump(mode="json")
    doc.add("project", _table("Mod identity", info))
    doc.add("modules", _table("Generated modules", record.modules.model_dump()))
    doc.add("features", _table("Optional features", record.features.model_dump()))
    doc.add("versions", _table("Versions the project was generated with", record.versions.model_dump()))
    return tomlkit.dumps(doc)


def save_state(root: Path, record: ProjectStateRecord) -> Path:
    """
    Write ``modhatch.toml``. Unchanged content is not rewritten.

    Raises
    ------
    FileSystemFailure
        If the file cannot be written.
    """
    path = state_path(root)
    content = dumps_state(record)
    try:
        if path.is_file() and path.read_text(encoding="utf-8") == content:
            return path
        path.write_text(content, encoding="utf-8")
    except OSError as e:
        raise FileSystemFailure(path, "save state", e) from e
    return path
