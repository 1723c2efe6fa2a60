"""
modhatch.plan - Template Plan
=============================

The plan says which template becomes which file. Every entry names a
template key, a destination path template (rendered with the same
placeholders as the template bodies), and the module, feature or language
it belongs to. The engine never hardcodes a file name; it asks
:func:`select_entries` for the entries that apply to a request.

Root entries (``module is None and feature is None``) are written once, at
``init``. Module entries are written at ``init`` and again by ``add`` for a
newly enabled loader.
"""

from __future__ import annotations

import datetime
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from modhatch.identifiers import neoforge_major
from modhatch.models import FeatureKind, Language, ModuleKind, VersionKey


if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from modhatch.models import ProjectSpec


KOTLIN_VERSION = "2.1.0"

STATE_FILE = "modhatch.toml"

FABRIC_MANIFEST = "fabric/src/main/resources/fabric.mod.json"
NEOFORGE_MANIFEST = "neoforge/src/main/resources/META-INF/neoforge.mods.toml"


class OnExisting(str, Enum):
    """What ``init`` does when a destination file is already present."""

    OVERWRITE = "overwrite"
    KEEP = "keep"
    PATCH = "patch"


@dataclass(frozen=True)
class PlanEntry:
    """One template-to-file mapping."""

    template: str
    destination: str
    module: ModuleKind | None = None
    feature: FeatureKind | None = None
    language: Language | None = None
    executable: bool = False
    entry_point: bool = False
    on_existing: OnExisting = OnExisting.OVERWRITE

    @property
    def is_root(self) -> bool:
        return self.module is None and self.feature is None


def _source(module: ModuleKind, language: Language, relative: str) -> str:
    return f"{module.value}/src/main/{language.source_dir}/{{{{ package_path }}}}/{relative}"


def _entry_points(module: ModuleKind, template: str, relative: str) -> list[PlanEntry]:
    return [
        PlanEntry(
            template=f"{module.value}/{template}.{lang.extension}.j2",
            destination=_source(module, lang, f"{relative}.{lang.extension}"),
            module=module,
            language=lang,
            entry_point=True,
        )
        for lang in Language
    ]


# =============================================================================
# The Plan
# =============================================================================

TEMPLATE_PLAN: tuple[PlanEntry, ...] = (
    # Root build files
    PlanEntry("build.gradle", "build.gradle", on_existing=OnExisting.KEEP),
    PlanEntry("settings.gradle.j2", "settings.gradle", on_existing=OnExisting.PATCH),
    PlanEntry("gradle.properties.j2", "gradle.properties", on_existing=OnExisting.PATCH),
    PlanEntry("gitignore", ".gitignore", on_existing=OnExisting.KEEP),
    PlanEntry("LICENSE.j2", "LICENSE", on_existing=OnExisting.PATCH),
    PlanEntry(
        "gradle/gradle-wrapper.properties",
        "gradle/wrapper/gradle-wrapper.properties",
        on_existing=OnExisting.KEEP,
    ),
    PlanEntry("gradle/gradlew", "gradlew", executable=True, on_existing=OnExisting.KEEP),
    PlanEntry("gradle/gradlew.bat", "gradlew.bat", on_existing=OnExisting.KEEP),
    # common
    PlanEntry("common/build.gradle", "common/build.gradle", module=ModuleKind.COMMON),
    *_entry_points(ModuleKind.COMMON, "CommonMod", "{{ class_name }}"),
    PlanEntry(
        "common/icon.png",
        "common/src/main/resources/assets/{{ mod_id }}/icon.png",
        module=ModuleKind.COMMON,
    ),
    # fabric
    PlanEntry("fabric/build.gradle", "fabric/build.gradle", module=ModuleKind.FABRIC),
    PlanEntry("fabric/gradle.properties", "fabric/gradle.properties", module=ModuleKind.FABRIC),
    *_entry_points(ModuleKind.FABRIC, "FabricMod", "fabric/{{ class_name }}Fabric"),
    # Mixins are always Java, even in Kotlin projects
    PlanEntry(
        "fabric/mixin_package_info.java.j2",
        _source(ModuleKind.FABRIC, Language.JAVA, "mixin/package-info.java"),
        module=ModuleKind.FABRIC,
    ),
    PlanEntry(
        "fabric/fabric.mod.json.j2",
        FABRIC_MANIFEST,
        module=ModuleKind.FABRIC,
    ),
    PlanEntry(
        "fabric/mixins.json.j2",
        "fabric/src/main/resources/{{ mod_id }}.mixins.json",
        module=ModuleKind.FABRIC,
    ),
    # neoforge
    PlanEntry("neoforge/build.gradle", "neoforge/build.gradle", module=ModuleKind.NEOFORGE),
    PlanEntry(
        "neoforge/gradle.properties", "neoforge/gradle.properties", module=ModuleKind.NEOFORGE
    ),
    *_entry_points(ModuleKind.NEOFORGE, "NeoForgeMod", "neoforge/{{ class_name }}NeoForge"),
    PlanEntry(
        "neoforge/neoforge.mods.toml.j2",
        NEOFORGE_MANIFEST,
        module=ModuleKind.NEOFORGE,
    ),
    # Features
    PlanEntry("ci/build.yml.j2", ".github/workflows/build.yml", feature=FeatureKind.CI),
)


def select_entries(
    modules: Iterable[ModuleKind] = (),
    features: Iterable[FeatureKind] = (),
    language: Language = Language.JAVA,
    include_root: bool = False,
) -> list[PlanEntry]:
    """
    Plan entries for the given modules and features, in plan order.

    Parameters
    ----------
    modules : Iterable[ModuleKind]
        Modules whose files are wanted.
    features : Iterable[FeatureKind]
        Features whose files are wanted.
    language : Language
        Entry points for other languages are skipped.
    include_root : bool
        Also return root build files.
    """
    modules = set(modules)
    features = set(features)
    selected = []
    for entry in TEMPLATE_PLAN:
        if entry.language is not None and entry.language is not language:
            continue
        if entry.is_root:
            if include_root:
                selected.append(entry)
        elif entry.module is not None:
            if entry.module in modules:
                selected.append(entry)
        elif entry.feature in features:
            selected.append(entry)
    return selected


def entry_point_for(module: ModuleKind, language: Language) -> PlanEntry:
    """The entry-point plan entry of ``module`` in ``language``."""
    for entry in TEMPLATE_PLAN:
        if entry.entry_point and entry.module is module and entry.language is language:
            return entry
    raise LookupError(f"No {language.value} entry point for module {module.value}")


# =============================================================================
# Placeholder Values
# =============================================================================


def build_params(
    spec: ProjectSpec,
    versions: Mapping[VersionKey, str] | None = None,
    *,
    year: int | None = None,
) -> dict[str, str]:
    """
    The closed placeholder mapping for one project.

    Every placeholder used by a packaged template or destination path must
    be present here; the renderer refuses anything else.

    Parameters
    ----------
    spec : ProjectSpec
        The validated project.
    versions : Mapping[VersionKey, str] | None
        Resolved versions. Falls back to ``spec.resolved_versions`` and then
        to the hardcoded defaults.
    year : int | None
        Copyright year; defaults to the current year.
    """
    resolved = {key: spec.version(key) for key in VersionKey}
    resolved.update(versions or {})

    params = {
        "mod_id": spec.project_id,
        "mod_name": spec.display_name,
        "package": spec.package,
        "package_path": spec.package_path,
        "class_name": spec.class_name,
        "author": spec.author,
        "description": spec.description,
        "language": spec.language.value,
        "enabled_platforms": spec.enabled_platforms,
        "neoforge_major": neoforge_major(resolved[VersionKey.NEOFORGE]),
        "kotlin_version": KOTLIN_VERSION,
        "year": str(year or datetime.date.today().year),
    }
    for key, value in resolved.items():
        params[key.property_name] = value
    return params


# =============================================================================
# Starter Layout
# =============================================================================


@dataclass(frozen=True)
class ModuleLayout:
    """Where the starter template keeps a module's placeholder files."""

    package_dir: str
    asset_dir: str
    obsolete_entry_points: tuple[str, ...]


DEFAULT_PACKAGE_PATH = "io/github/yourname/modid"
DEFAULT_ASSET_ID = "modid"


def _layout(module: ModuleKind, *obsolete: str) -> ModuleLayout:
    return ModuleLayout(
        package_dir=f"{module.value}/src/main/java/{DEFAULT_PACKAGE_PATH}",
        asset_dir=f"{module.value}/src/main/resources/assets/{DEFAULT_ASSET_ID}",
        obsolete_entry_points=obsolete,
    )


# Obsolete entry points are relative to the relocated package directory
DEFAULT_LAYOUT: dict[ModuleKind, ModuleLayout] = {
    ModuleKind.COMMON: _layout(ModuleKind.COMMON, "ExampleMod.java"),
    ModuleKind.FABRIC: _layout(ModuleKind.FABRIC, "fabric/ExampleModFabric.java"),
    ModuleKind.NEOFORGE: _layout(ModuleKind.NEOFORGE, "neoforge/ExampleModNeoForge.java"),
}

