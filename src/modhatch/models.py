"""
modhatch.models - Pydantic Models for Mod Projects
==================================================

This module defines the data model shared by the engine and the CLI.
Pydantic gives us validation with readable error messages and a frozen,
hashable-by-value record once validation passes.

Architecture Notes
------------------
    ProjectSpec (main, frozen)
    ├── Language (enum)          java | kotlin
    ├── ModuleKind (enum)        common | fabric | neoforge
    ├── FeatureKind (enum)       ci
    └── VersionKey (enum)        minecraft | fabric_loader | fabric_api | neoforge

Usage Example
-------------
>>> from modhatch.models import ProjectSpec, ModuleKind, Language
>>> spec = ProjectSpec(
...     project_id="testmod",
...     display_name="Test Mod",
...     package="com.example.testmod",
...     language=Language.KOTLIN,
...     enabled_modules={ModuleKind.FABRIC, ModuleKind.NEOFORGE},
... )
>>> spec.class_name
'TestmodMod'
>>> spec.enabled_platforms
'fabric,neoforge'
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    ValidationInfo,
    field_validator,
    model_validator,
)

from modhatch.errors import InvalidInput
from modhatch.identifiers import (
    derive_class_name,
    package_to_path,
    validate_package,
    validate_project_id,
    validate_text,
)


# =============================================================================
# Enumerations
# =============================================================================


class Language(str, Enum):
    """
    Source language of the generated entry points.

    Java is the primary language. Kotlin projects keep the same module
    layout but place sources under ``src/main/kotlin``.
    """

    JAVA = "java"
    KOTLIN = "kotlin"

    @property
    def source_dir(self) -> str:
        """Directory under ``src/main`` that holds sources for this language."""
        return self.value

    @property
    def extension(self) -> str:
        """File extension of entry-point sources."""
        return "java" if self is Language.JAVA else "kt"


class ModuleKind(str, Enum):
    """
    Independently buildable subtrees of a mod workspace.

    Attributes
    ----------
    COMMON : str
        Shared, loader-agnostic code. Always present.
    FABRIC : str
        Fabric loader integration.
    NEOFORGE : str
        NeoForge loader integration.
    """

    COMMON = "common"
    FABRIC = "fabric"
    NEOFORGE = "neoforge"

    @property
    def is_loader(self) -> bool:
        """Whether this module integrates with a specific mod loader."""
        return self is not ModuleKind.COMMON

    @property
    def class_suffix(self) -> str:
        """Suffix appended to the entry-point class of this module."""
        return {
            ModuleKind.COMMON: "",
            ModuleKind.FABRIC: "Fabric",
            ModuleKind.NEOFORGE: "NeoForge",
        }[self]

    @property
    def description(self) -> str:
        """Human-readable description for CLI prompts."""
        return {
            ModuleKind.COMMON: "Shared code used by every loader",
            ModuleKind.FABRIC: "Fabric loader module",
            ModuleKind.NEOFORGE: "NeoForge loader module",
        }[self]


class FeatureKind(str, Enum):
    """Optional project features outside the module tree."""

    CI = "ci"

    @property
    def description(self) -> str:
        return {FeatureKind.CI: "GitHub Actions build workflow"}[self]


class VersionKey(str, Enum):
    """
    External artifacts whose versions are resolved at generation time.

    Each key knows its hardcoded fallback and which other keys must be
    resolved before it can be looked up.
    """

    MINECRAFT = "minecraft"
    FABRIC_LOADER = "fabric_loader"
    FABRIC_API = "fabric_api"
    NEOFORGE = "neoforge"

    @property
    def default(self) -> str:
        """Hardcoded version used when nothing better is available."""
        return {
            VersionKey.MINECRAFT: "1.21.4",
            VersionKey.FABRIC_LOADER: "0.16.9",
            VersionKey.FABRIC_API: "0.111.0+1.21.4",
            VersionKey.NEOFORGE: "21.4.156",
        }[self]

    @property
    def depends_on(self) -> tuple[VersionKey, ...]:
        """Keys whose resolved value scopes the lookup of this key."""
        if self in {VersionKey.FABRIC_API, VersionKey.NEOFORGE}:
            return (VersionKey.MINECRAFT,)
        return ()

    @property
    def property_name(self) -> str:
        """Key used in ``gradle.properties`` and as a template placeholder."""
        return f"{self.value}_version"

    @property
    def label(self) -> str:
        return {
            VersionKey.MINECRAFT: "Minecraft",
            VersionKey.FABRIC_LOADER: "Fabric Loader",
            VersionKey.FABRIC_API: "Fabric API",
            VersionKey.NEOFORGE: "NeoForge",
        }[self]


# Canonical module order used for output, settings.gradle and enabled_platforms
MODULE_ORDER: tuple[ModuleKind, ...] = (
    ModuleKind.COMMON,
    ModuleKind.FABRIC,
    ModuleKind.NEOFORGE,
)


def as_invalid_input(error: ValidationError) -> InvalidInput:
    """
    The first problem in a pydantic ``ValidationError`` as an :class:`InvalidInput`.

    Errors our own validators raised (``InvalidId``, ``InvalidText``, ...)
    come back unchanged; pydantic's built-in checks are prefixed with the
    offending field.
    """
    first = error.errors()[0]
    cause = first.get("ctx", {}).get("error")
    if isinstance(cause, InvalidInput):
        return cause
    location = ".".join(str(part) for part in first["loc"])
    return InvalidInput(f"{location}: {first['msg']}" if location else first["msg"])


# =============================================================================
# Main Project Model
# =============================================================================


class ProjectSpec(BaseModel):
    """
    Everything needed to scaffold one mod workspace.

    A ``ProjectSpec`` is built once per invocation, either from CLI input
    (``init``) or from CLI input merged with the project's state record
    (``add``). It is frozen once validation passes.

    Attributes
    ----------
    project_id : str
        Mod id, ``^[a-z][a-z0-9_]*$``.
    display_name : str
        Human-readable mod name.
    package : str
        Dotted JVM package for generated sources.
    author : str
        Author shown in manifests and the LICENSE.
    description : str
        Short description for manifests.
    language : Language
        Entry-point language.
    enabled_modules : frozenset[ModuleKind]
        Modules to generate. ``common`` is always added.
    enabled_features : frozenset[FeatureKind]
        Optional features.
    resolved_versions : dict[VersionKey, str]
        Versions picked by the resolver; empty until resolution ran.
    """

    model_config = ConfigDict(frozen=True)

    project_id: str = Field(description="Mod id")
    display_name: str = Field(min_length=1, max_length=100, description="Mod name")
    package: str = Field(description="JVM package of generated sources")
    author: str = Field(default="Your Name", min_length=1, description="Mod author")
    description: str = Field(default="A Minecraft mod", description="Mod description")
    language: Language = Field(default=Language.JAVA)
    enabled_modules: frozenset[ModuleKind] = Field(
        default_factory=lambda: frozenset(MODULE_ORDER),
    )
    enabled_features: frozenset[FeatureKind] = Field(default_factory=frozenset)
    resolved_versions: dict[VersionKey, str] = Field(default_factory=dict)

    def __init__(self, **data: Any) -> None:
        """Validate ``data``, raising :class:`InvalidInput` instead of pydantic's error."""
        try:
            super().__init__(**data)
        except ValidationError as e:
            raise as_invalid_input(e) from e

    # -------------------------------------------------------------------------
    # Validators
    # -------------------------------------------------------------------------

    @field_validator("project_id")
    @classmethod
    def validate_id(cls, v: str) -> str:
        validate_project_id(v)
        return v

    @field_validator("package")
    @classmethod
    def validate_package_name(cls, v: str) -> str:
        validate_package(v)
        return v

    @field_validator("display_name", "author", "description")
    @classmethod
    def validate_free_text(cls, v: str, info: ValidationInfo) -> str:
        validate_text(info.field_name.replace("_", " "), v)
        return v

    @field_validator("enabled_modules")
    @classmethod
    def include_common(cls, v: frozenset[ModuleKind]) -> frozenset[ModuleKind]:
        """Every workspace has a common module; loaders depend on it."""
        return frozenset(v) | {ModuleKind.COMMON}

    @model_validator(mode="after")
    def validate_loaders(self) -> ProjectSpec:
        if not self.loaders:
            msg = "At least one loader (fabric, neoforge) must be selected."
            raise InvalidInput(msg)
        return self

    # -------------------------------------------------------------------------
    # Computed Properties
    # -------------------------------------------------------------------------

    @property
    def class_name(self) -> str:
        """Entry-point class of the common module, e.g. ``TestmodMod``."""
        return derive_class_name(self.project_id)

    @property
    def package_path(self) -> str:
        """Package as a POSIX path, e.g. ``com/example/testmod``."""
        return package_to_path(self.package)

    @property
    def modules(self) -> tuple[ModuleKind, ...]:
        """Enabled modules in canonical order."""
        return tuple(m for m in MODULE_ORDER if m in self.enabled_modules)

    @property
    def loaders(self) -> tuple[ModuleKind, ...]:
        """Enabled loader modules in canonical order."""
        return tuple(m for m in self.modules if m.is_loader)

    @property
    def enabled_platforms(self) -> str:
        """Value of ``enabled_platforms`` in ``gradle.properties``."""
        return ",".join(m.value for m in self.loaders)

    def version(self, key: VersionKey) -> str:
        """Resolved version for ``key``, or its hardcoded default."""
        return self.resolved_versions.get(key, key.default)
