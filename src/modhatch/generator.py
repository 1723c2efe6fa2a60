"""
modhatch.generator - Scaffolding Engine
=======================================

This module drives project generation. It turns a validated
:class:`~modhatch.models.ProjectSpec` into a directory tree on disk
(``init``) and extends an existing tree with more loaders, features or the
Kotlin language (``add``).

Pipeline
--------
Every run walks the same states:

    collecting_input -> validating -> resolving_versions -> rendering
        -> materializing_tree -> patching_config -> persisting_state -> done

and moves to ``failed`` from whichever state raised. Nothing is written
before ``materializing_tree``: invalid input, an unreadable state record,
a template referencing an unknown placeholder, or a destination that would
be overwritten without ``force`` all stop the run with the tree untouched.
Failures after that point raise :class:`~modhatch.errors.GenerationFailed`
naming the state and file; files already written stay on disk.

``add`` only ever touches what the request adds. Asking for something that
is already enabled changes nothing at all.

Usage Example
-------------
>>> from modhatch.generator import create_project, add_to_project
>>> from modhatch.models import ProjectSpec
>>>
>>> spec = ProjectSpec(
...     project_id="testmod",
...     display_name="Test Mod",
...     package="com.example.testmod",
... )
>>> result = create_project(spec, Path("testmod"), offline=True)
>>> add_to_project(Path("testmod"), ["ci"]).added
['ci']
"""

from __future__ import annotations

import datetime
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING

from rich.panel import Panel

from modhatch.errors import (
    FileSystemFailure,
    GenerationFailed,
    InvalidInput,
    ModhatchError,
    ProjectExists,
)
from modhatch.global_config import GlobalConfig
from modhatch.identifiers import neoforge_major
from modhatch.logger import console, get_logger
from modhatch.materializer import (
    ProjectRoot,
    RenderedFile,
    ensure_dir,
    has_starter_layout,
    materialize_module,
    prune_empty_ancestors,
    remove_file,
    source_root,
    write_file,
)
from modhatch.models import FeatureKind, Language, ModuleKind, VersionKey
from modhatch.patcher import (
    append_list_value,
    apply_substitutions,
    ensure_include,
    replace_copyright,
    set_dependency_range,
    set_json_string,
    set_property,
    set_root_project_name,
)
from modhatch.plan import (
    FABRIC_MANIFEST,
    KOTLIN_VERSION,
    NEOFORGE_MANIFEST,
    STATE_FILE,
    OnExisting,
    build_params,
    entry_point_for,
    select_entries,
)
from modhatch.renderer import PackageTemplateStore, Renderer
from modhatch.state import load_state, record_from_spec, save_state, spec_from_record
from modhatch.versions import read_checked_in_versions, resolve_versions


if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from modhatch.materializer import Relocation
    from modhatch.models import ProjectSpec
    from modhatch.patcher import PatchReport, Substitution
    from modhatch.plan import PlanEntry
    from modhatch.renderer import TemplateStore
    from modhatch.versions import VersionFetcher, VersionReport


logger = get_logger(__name__)


# =============================================================================
# Engine State and Results
# =============================================================================


class EngineState(str, Enum):
    """Where a generation run is. ``failed`` is terminal, like ``done``."""

    COLLECTING_INPUT = "collecting_input"
    VALIDATING = "validating"
    RESOLVING_VERSIONS = "resolving_versions"
    RENDERING = "rendering"
    MATERIALIZING_TREE = "materializing_tree"
    PATCHING_CONFIG = "patching_config"
    PERSISTING_STATE = "persisting_state"
    DONE = "done"
    FAILED = "failed"

    @property
    def mutates(self) -> bool:
        """Whether the project tree may already have been modified in this state."""
        return self in {
            EngineState.MATERIALIZING_TREE,
            EngineState.PATCHING_CONFIG,
            EngineState.PERSISTING_STATE,
        }


AddTarget = ModuleKind | FeatureKind | Language

ADD_TARGETS: dict[str, AddTarget] = {
    "fabric": ModuleKind.FABRIC,
    "neoforge": ModuleKind.NEOFORGE,
    "ci": FeatureKind.CI,
    "kotlin": Language.KOTLIN,
}


def parse_add_target(name: str) -> AddTarget:
    """
    Map a CLI feature name to what it enables.

    Raises
    ------
    InvalidInput
        For names other than fabric, neoforge, ci and kotlin.
    """
    try:
        return ADD_TARGETS[name.strip().lower()]
    except KeyError:
        valid = ", ".join(ADD_TARGETS)
        raise InvalidInput(f"Unknown feature: {name}. Valid features: {valid}") from None


@dataclass
class GenerationResult:
    """
    Result of an ``init`` or ``add`` run.

    Attributes
    ----------
    success : bool
        Whether the run reached ``done``.
    project_path : Path
        Absolute project directory.
    spec : ProjectSpec | None
        The project as recorded after the run.
    state : EngineState
        Final engine state.
    files_written : list[PurePosixPath]
        Files created or overwritten, relative to the project.
    files_kept : list[PurePosixPath]
        Pre-existing root files left as they were.
    relocations : list[Relocation]
        Starter-layout moves.
    removed : list[PurePosixPath]
        Files deleted (starter entry points, migrated Java entry points).
    patches : list[PatchReport]
        One report per patched file.
    warnings : list[str]
        Non-fatal problems worth showing to the user.
    versions : VersionReport | None
        How each version was picked.
    added : list[str]
        Targets ``add`` actually enabled.
    noop : bool
        ``add`` found nothing to do and touched nothing.
    """

    success: bool
    project_path: Path
    spec: ProjectSpec | None = None
    state: EngineState = EngineState.COLLECTING_INPUT
    files_written: list[PurePosixPath] = field(default_factory=list)
    files_kept: list[PurePosixPath] = field(default_factory=list)
    relocations: list[Relocation] = field(default_factory=list)
    removed: list[PurePosixPath] = field(default_factory=list)
    patches: list[PatchReport] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    versions: VersionReport | None = None
    added: list[str] = field(default_factory=list)
    noop: bool = False

    @property
    def unmatched_patches(self) -> list[str]:
        return [f"{p.path}: {d}" for p in self.patches for d in p.unmatched]


# =============================================================================
# Engine
# =============================================================================


class ScaffoldingEngine:
    """
    Generates and extends one project directory.

    Parameters
    ----------
    root : Path
        Project directory.
    store : TemplateStore | None
        Template source; the packaged templates by default.
    fetcher : VersionFetcher | None
        Version lookup collaborator; a network fetcher is created on demand.
    verbose : bool
        Print progress to the console.
    year : int | None
        Copyright year, for reproducible output.
    """

    def __init__(
        self,
        root: Path,
        store: TemplateStore | None = None,
        fetcher: VersionFetcher | None = None,
        *,
        verbose: bool = False,
        year: int | None = None,
    ) -> None:
        self.root = ProjectRoot(root)
        self.renderer = Renderer(store or PackageTemplateStore())
        self.fetcher = fetcher
        self.verbose = verbose
        self.year = year or datetime.date.today().year
        self.state = EngineState.COLLECTING_INPUT

    # -------------------------------------------------------------------------
    # State Handling
    # -------------------------------------------------------------------------

    def _advance(self, state: EngineState, result: GenerationResult) -> None:
        logger.debug("%s -> %s", self.state.value, state.value)
        self.state = result.state = state

    def _fail(self, result: GenerationResult, error: ModhatchError) -> ModhatchError:
        failed_in = self.state
        self.state = result.state = EngineState.FAILED
        if failed_in.mutates and not isinstance(error, GenerationFailed):
            return GenerationFailed(failed_in.value, error)
        return error

    def _say(self, message: str) -> None:
        if self.verbose:
            console.print(message)

    # -------------------------------------------------------------------------
    # Rendering
    # -------------------------------------------------------------------------

    def _render(self, entries: Iterable[PlanEntry], params: Mapping[str, str]) -> list[RenderedFile]:
        return [
            RenderedFile(
                entry=entry,
                path=self.renderer.render_path(entry.destination, params),
                content=self.renderer.render_template(entry.template, params),
            )
            for entry in entries
        ]

    # -------------------------------------------------------------------------
    # init
    # -------------------------------------------------------------------------

    def init(
        self,
        spec: ProjectSpec,
        overrides: Mapping[VersionKey, str] | None = None,
        *,
        offline: bool = False,
    ) -> GenerationResult:
        """
        Generate a complete project.

        The directory may be empty, missing, or a checked-out starter
        template. Root build files that already exist are patched (or kept)
        instead of overwritten, and the starter's placeholder package and
        asset directories are moved into place.

        Parameters
        ----------
        spec : ProjectSpec
            Validated project description. Its ``resolved_versions`` are
            ignored; versions are resolved here.
        overrides : Mapping[VersionKey, str] | None
            Explicit versions; they always win.
        offline : bool
            Skip network lookups.

        Raises
        ------
        ProjectExists
            If the directory already holds ``modhatch.toml``.
        GenerationFailed
            If writing the tree fails part-way.
        """
        result = GenerationResult(success=False, project_path=self.root.path)
        try:
            self._advance(EngineState.VALIDATING, result)
            if self.root.path.is_file():
                raise InvalidInput(f"{self.root.path} is a file, not a directory")
            if self.root.exists(STATE_FILE):
                raise ProjectExists(self.root.resolve(STATE_FILE))

            self._advance(EngineState.RESOLVING_VERSIONS, result)
            self._say("[bold]Resolving versions...[/]")
            prior = read_checked_in_versions(self.root.path)
            report = resolve_versions(overrides, prior, self.fetcher, offline=offline)
            result.versions = report
            result.warnings.extend(
                f"{v.key.label} version fell back to {v.value} ({v.source.value}): {v.fetch_error}"
                for v in report.degraded
            )
            spec = spec.model_copy(update={"resolved_versions": report.values()})
            result.spec = spec

            self._advance(EngineState.RENDERING, result)
            params = build_params(spec, year=self.year)
            entries = select_entries(
                spec.modules, spec.enabled_features, spec.language, include_root=True
            )
            rendered = self._render(entries, params)

            self._advance(EngineState.MATERIALIZING_TREE, result)
            self._say(f"[bold]Creating project in {self.root.path}...[/]")
            ensure_dir(self.root, ".")
            starter = has_starter_layout(self.root)
            if starter:
                self._say("  [dim]Starter template detected; relocating its package[/]")
            self._materialize_init(rendered, spec, params, starter, result)

            self._advance(EngineState.PATCHING_CONFIG, result)
            self._patch(self._init_patches(spec, params), result)

            self._advance(EngineState.PERSISTING_STATE, result)
            save_state(self.root.path, record_from_spec(spec))
            result.files_written.append(PurePosixPath(STATE_FILE))

            self._advance(EngineState.DONE, result)
            result.success = True
            return result
        except ModhatchError as e:
            raise self._fail(result, e) from e

    def _materialize_init(
        self,
        rendered: list[RenderedFile],
        spec: ProjectSpec,
        params: Mapping[str, str],
        starter: bool,
        result: GenerationResult,
    ) -> None:
        for file in rendered:
            if not file.entry.is_root:
                continue
            if self.root.exists(file.path) and file.entry.on_existing is not OnExisting.OVERWRITE:
                # PATCH entries are brought in line during patching_config
                result.files_kept.append(file.path)
                continue
            write_file(self.root, file.path, file.content, executable=file.executable)
            result.files_written.append(file.path)

        for module in spec.modules:
            files = [f for f in rendered if f.entry.module is module]
            outcome = materialize_module(
                self.root, module, files, params, language=spec.language, starter_layout=starter
            )
            result.files_written.extend(outcome.written)
            result.relocations.extend(outcome.relocations)
            result.removed.extend(outcome.removed)
            result.warnings.extend(outcome.warnings)
            self._say(f"  [green]✓[/] {module.value}/ module")

        if starter:
            result.warnings.extend(
                f"{module.value}/ exists but is not enabled; it was left as is"
                for module in ModuleKind
                if module.is_loader
                and module not in spec.enabled_modules
                and self.root.exists(module.value)
            )

        for file in rendered:
            if file.entry.feature is not None:
                write_file(self.root, file.path, file.content, executable=file.executable)
                result.files_written.append(file.path)
                self._say(f"  [green]✓[/] {file.path}")

    def _init_patches(
        self, spec: ProjectSpec, params: Mapping[str, str]
    ) -> dict[str, list[Substitution]]:
        properties = [
            set_property("maven_group", spec.package),
            set_property("archives_base_name", spec.project_id),
            set_property("mod_id", spec.project_id),
            set_property("enabled_platforms", spec.enabled_platforms),
            *(set_property(key.property_name, spec.version(key)) for key in VersionKey),
        ]
        if spec.language is Language.KOTLIN:
            properties += _kotlin_properties()

        settings = [
            set_root_project_name(spec.project_id),
            *(ensure_include(module.value) for module in spec.modules),
        ]
        return {
            "settings.gradle": settings,
            "gradle.properties": properties,
            "LICENSE": [replace_copyright(params["year"], spec.author)],
        }

    def _patch(
        self, patches: Mapping[str, list[Substitution]], result: GenerationResult
    ) -> None:
        for relative, substitutions in patches.items():
            if not self.root.exists(relative):
                result.warnings.append(f"{relative} not found; skipped patching it")
                continue
            report = apply_substitutions(self.root, relative, substitutions)
            result.patches.append(report)
            if report.written:
                self._say(f"  [cyan]~[/] {relative}")

    # -------------------------------------------------------------------------
    # add
    # -------------------------------------------------------------------------

    def add(
        self,
        targets: Iterable[AddTarget | str],
        *,
        force: bool = False,
        refresh_versions: bool = False,
        overrides: Mapping[VersionKey, str] | None = None,
    ) -> GenerationResult:
        """
        Enable loaders, features or Kotlin in an existing project.

        Only the difference between the request and what ``modhatch.toml``
        records is generated. An empty difference is a no-op: no file is
        read for writing, touched or rewritten.

        Parameters
        ----------
        targets : Iterable[AddTarget | str]
            What to enable (``"fabric"``, ``ModuleKind.NEOFORGE``, ...).
        force : bool
            Overwrite files that already exist at generated destinations.
        refresh_versions : bool
            Look versions up again instead of reusing the recorded ones.
        overrides : Mapping[VersionKey, str] | None
            Explicit versions. Any version change also moves the dependency
            lines of the loader manifests already on disk.

        Raises
        ------
        StateRecordNotFound, StateRecordCorrupt
            If ``modhatch.toml`` is missing or unusable.
        FileExistsError
            If a destination exists and ``force`` is not set.
        """
        result = GenerationResult(success=False, project_path=self.root.path)
        try:
            self._advance(EngineState.VALIDATING, result)
            requested = [parse_add_target(t) if isinstance(t, str) else t for t in targets]
            record = load_state(self.root.path)
            current = spec_from_record(record)
            result.spec = current

            new_modules = [
                m for m in ModuleKind if m in requested and m not in current.enabled_modules
            ]
            new_features = [
                f for f in FeatureKind if f in requested and f not in current.enabled_features
            ]
            migrate = Language.KOTLIN in requested and current.language is not Language.KOTLIN
            refresh = refresh_versions or bool(overrides)

            if not (new_modules or new_features or migrate or refresh):
                result.noop = True
                self._advance(EngineState.DONE, result)
                result.success = True
                return result

            self._advance(EngineState.RESOLVING_VERSIONS, result)
            report = resolve_versions(
                overrides, record.versions.as_dict(), self.fetcher, offline=not refresh_versions
            )
            result.versions = report
            result.warnings.extend(
                f"{v.key.label} version fell back to {v.value} ({v.source.value}): {v.fetch_error}"
                for v in report.degraded
            )
            spec = current.model_copy(
                update={
                    "enabled_modules": current.enabled_modules | set(new_modules),
                    "enabled_features": current.enabled_features | set(new_features),
                    "language": Language.KOTLIN if migrate else current.language,
                    "resolved_versions": report.values(),
                }
            )
            result.spec = spec

            self._advance(EngineState.RENDERING, result)
            params = build_params(spec, year=self.year)
            rendered = self._render(
                select_entries(new_modules, new_features, spec.language), params
            )
            migrations = self._plan_migration(current, params, result) if migrate else []

            destinations = [f.path for f in rendered] + [kt.path for _, kt in migrations]
            existing = [str(p) for p in destinations if self.root.exists(p)]
            if existing and not force:
                raise FileExistsError(
                    f"{', '.join(existing)} already exist. Use --force to overwrite."
                )

            self._advance(EngineState.MATERIALIZING_TREE, result)
            for module in new_modules:
                files = [f for f in rendered if f.entry.module is module]
                outcome = materialize_module(
                    self.root, module, files, params, language=spec.language
                )
                result.files_written.extend(outcome.written)
                result.added.append(module.value)
                self._say(f"  [green]✓[/] {module.value}/ module")
            for feature in new_features:
                for file in rendered:
                    if file.entry.feature is feature:
                        write_file(self.root, file.path, file.content, executable=file.executable)
                        result.files_written.append(file.path)
                result.added.append(feature.value)
                self._say(f"  [green]✓[/] {feature.value}")
            if migrate:
                self._migrate(migrations, result)
                result.added.append(Language.KOTLIN.value)

            self._advance(EngineState.PATCHING_CONFIG, result)
            self._patch(self._add_patches(spec, new_modules, migrate, refresh), result)

            self._advance(EngineState.PERSISTING_STATE, result)
            save_state(self.root.path, record_from_spec(spec))

            self._advance(EngineState.DONE, result)
            result.success = True
            return result
        except ModhatchError as e:
            raise self._fail(result, e) from e
        except FileExistsError:
            self.state = result.state = EngineState.FAILED
            raise

    def _plan_migration(
        self,
        current: ProjectSpec,
        params: Mapping[str, str],
        result: GenerationResult,
    ) -> list[tuple[PurePosixPath | None, RenderedFile]]:
        """
        Pair every enabled module's Java entry point with its Kotlin one.

        A Java entry point that no longer matches its template was edited by
        the user; that module is skipped with a warning so nothing is lost.
        """
        migrations = []
        for module in current.modules:
            java_entry = entry_point_for(module, Language.JAVA)
            java = self._render([java_entry], params)[0]
            kotlin = self._render([entry_point_for(module, Language.KOTLIN)], params)[0]

            java_path = self.root.resolve(java.path)
            if not java_path.is_file():
                migrations.append((None, kotlin))
                continue
            try:
                edited = java_path.read_bytes() != java.content
            except OSError as e:
                raise FileSystemFailure(java_path, "read", e) from e
            if edited:
                result.warnings.append(
                    f"{java.path} was edited; convert it to Kotlin by hand"
                )
                continue
            migrations.append((java.path, kotlin))
        return migrations

    def _migrate(
        self,
        migrations: list[tuple[PurePosixPath | None, RenderedFile]],
        result: GenerationResult,
    ) -> None:
        for java_path, kotlin in migrations:
            module = kotlin.entry.module
            if java_path is not None and remove_file(self.root, java_path):
                result.removed.append(java_path)
                prune_empty_ancestors(
                    self.root, java_path.parent, source_root(module, Language.JAVA)
                )
            write_file(self.root, kotlin.path, kotlin.content)
            result.files_written.append(kotlin.path)
            self._say(f"  [green]✓[/] {kotlin.path}")

    def _add_patches(
        self,
        spec: ProjectSpec,
        new_modules: list[ModuleKind],
        migrate: bool,
        refresh: bool,
    ) -> dict[str, list[Substitution]]:
        settings = [ensure_include(module.value) for module in new_modules]
        properties = [
            append_list_value("enabled_platforms", module.value)
            for module in new_modules
            if module.is_loader
        ]
        if migrate:
            properties += _kotlin_properties()
        if refresh:
            properties += [set_property(key.property_name, spec.version(key)) for key in VersionKey]

        patches: dict[str, list[Substitution]] = {}
        if settings:
            patches["settings.gradle"] = settings
        if properties:
            patches["gradle.properties"] = properties
        if refresh:
            # Modules added in this run were rendered with the new versions already
            existing = [m for m in spec.loaders if m not in new_modules]
            patches.update(_manifest_patches(spec, existing))
        return patches


def _manifest_patches(
    spec: ProjectSpec, loaders: Iterable[ModuleKind]
) -> dict[str, list[Substitution]]:
    """Dependency lines of the loader manifests, moved to the versions of ``spec``."""
    minecraft = spec.version(VersionKey.MINECRAFT)
    patches: dict[str, list[Substitution]] = {}
    for module in loaders:
        if module is ModuleKind.FABRIC:
            patches[FABRIC_MANIFEST] = [
                set_json_string("fabricloader", f">={spec.version(VersionKey.FABRIC_LOADER)}"),
                set_json_string("minecraft", f"~{minecraft}"),
            ]
        elif module is ModuleKind.NEOFORGE:
            patches[NEOFORGE_MANIFEST] = [
                set_dependency_range(
                    "neoforge", f"[{neoforge_major(spec.version(VersionKey.NEOFORGE))},)"
                ),
                set_dependency_range("minecraft", f"[{minecraft},)"),
            ]
    return patches


def _kotlin_properties() -> list[Substitution]:
    return [
        set_property("mod_language", Language.KOTLIN.value),
        set_property("kotlin_version", KOTLIN_VERSION),
    ]


# =============================================================================
# Convenience Wrappers
# =============================================================================


def create_project(
    spec: ProjectSpec,
    path: Path,
    *,
    overrides: Mapping[VersionKey, str] | None = None,
    offline: bool = False,
    fetcher: VersionFetcher | None = None,
    store: TemplateStore | None = None,
    global_config: GlobalConfig | None = None,
    verbose: bool = False,
) -> GenerationResult:
    """
    Create a project at ``path`` and seed ``run/options.txt``.

    Parameters
    ----------
    spec : ProjectSpec
        Validated project description.
    path : Path
        Target directory (created if missing).
    global_config : GlobalConfig | None
        Source of the client options; loaded from the user config when
        omitted.
    verbose : bool
        Print progress and a summary panel.

    See Also
    --------
    ScaffoldingEngine.init : The generation pipeline itself.
    """
    engine = ScaffoldingEngine(path, store=store, fetcher=fetcher, verbose=verbose)
    if verbose:
        console.print()
        console.print(
            Panel(
                f"[bold blue]Creating mod:[/] [green]{spec.display_name}[/] ({spec.project_id})\n"
                f"[dim]Package: {spec.package} | Language: {spec.language.value} | "
                f"Loaders: {', '.join(m.value for m in spec.loaders)}[/]",
                title="[bold]modhatch[/]",
                border_style="blue",
            )
        )

    result = engine.init(spec, overrides, offline=offline)

    config = global_config or GlobalConfig.load()
    options = engine.root.resolve("run/options.txt")
    try:
        if config.copy_options_to(options):
            result.files_written.append(PurePosixPath("run/options.txt"))
    except OSError as e:
        result.warnings.append(f"Could not create run/options.txt: {e}")
    return result


def add_to_project(
    path: Path,
    targets: Iterable[AddTarget | str],
    *,
    force: bool = False,
    refresh_versions: bool = False,
    overrides: Mapping[VersionKey, str] | None = None,
    fetcher: VersionFetcher | None = None,
    store: TemplateStore | None = None,
    verbose: bool = False,
) -> GenerationResult:
    """Enable ``targets`` in the project at ``path``. See :meth:`ScaffoldingEngine.add`."""
    engine = ScaffoldingEngine(path, store=store, fetcher=fetcher, verbose=verbose)
    return engine.add(
        targets, force=force, refresh_versions=refresh_versions, overrides=overrides
    )
