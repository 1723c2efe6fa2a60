"""
modhatch.materializer - Tree Materializer
=========================================

Everything that creates, moves or deletes files in a project goes through
this module. All paths are relative POSIX paths resolved against an
explicit :class:`ProjectRoot`; nothing here depends on the process working
directory.

Any ``OSError`` is re-raised as :class:`~modhatch.errors.FileSystemFailure`
carrying the path and the step that failed. There is no rollback: files
written before a failure stay on disk and the engine reports them.

Starter Layout
--------------
A project may be initialised on top of a checked-out starter template that
keeps its sources in a placeholder package (``io/github/yourname/modid``)
and its assets under ``assets/modid``. :func:`materialize_module` moves
those into the real package and asset directories, merging with anything
already there, and prunes the directories left empty.
"""

from __future__ import annotations

import os
import shutil
import stat
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING

from modhatch.errors import FileSystemFailure
from modhatch.logger import get_logger
from modhatch.models import Language, ModuleKind
from modhatch.plan import DEFAULT_LAYOUT


if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping

    from modhatch.plan import PlanEntry


logger = get_logger(__name__)


@contextmanager
def _step(path: Path, step: str) -> Iterator[None]:
    try:
        yield
    except FileSystemFailure:
        raise
    except OSError as e:
        raise FileSystemFailure(path, step, e) from e


# =============================================================================
# Project Root
# =============================================================================


class ProjectRoot:
    """
    The directory a project lives in.

    Parameters
    ----------
    path : Path
        Project directory. It does not have to exist yet.
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path).absolute()

    def __repr__(self) -> str:
        return f"ProjectRoot({str(self.path)!r})"

    def resolve(self, relative: str | PurePosixPath) -> Path:
        """
        Absolute path for a project-relative POSIX path.

        Raises
        ------
        FileSystemFailure
            If ``relative`` is absolute or climbs out of the project.
        """
        rel = PurePosixPath(relative)
        if rel.is_absolute() or ".." in rel.parts:
            raise FileSystemFailure(self.path / str(rel), "resolve")
        return self.path.joinpath(*rel.parts)

    def relative(self, path: Path) -> PurePosixPath:
        """Project-relative POSIX form of an absolute path inside the root."""
        return PurePosixPath(path.relative_to(self.path).as_posix())

    def exists(self, relative: str | PurePosixPath) -> bool:
        return self.resolve(relative).exists()


# =============================================================================
# Primitive Operations
# =============================================================================


def ensure_dir(root: ProjectRoot, relative: str | PurePosixPath) -> Path:
    """Create a directory and its parents; existing directories are fine."""
    path = root.resolve(relative)
    with _step(path, "create directory"):
        path.mkdir(parents=True, exist_ok=True)
    return path


def write_file(
    root: ProjectRoot,
    relative: str | PurePosixPath,
    content: bytes | str,
    *,
    executable: bool = False,
) -> Path:
    """
    Write a file, creating parent directories as needed.

    Parameters
    ----------
    content : bytes | str
        File content; ``str`` is encoded as UTF-8 without newline
        translation.
    executable : bool
        Add the execute bits for user, group and others.
    """
    path = root.resolve(relative)
    data = content.encode("utf-8") if isinstance(content, str) else content
    with _step(path, "write"):
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        if executable:
            mode = path.stat().st_mode
            path.chmod(mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    logger.debug("Wrote %s", relative)
    return path


def remove_file(root: ProjectRoot, relative: str | PurePosixPath) -> bool:
    """Delete a file. Returns False if there was nothing to delete."""
    path = root.resolve(relative)
    if not path.is_file():
        return False
    with _step(path, "delete"):
        path.unlink()
    logger.debug("Deleted %s", relative)
    return True


def prune_empty_ancestors(
    root: ProjectRoot,
    start: str | PurePosixPath,
    stop_at: str | PurePosixPath,
) -> list[PurePosixPath]:
    """
    Remove ``start`` and its parents while they are empty.

    Stops at the first non-empty directory. ``stop_at`` itself and anything
    above it are never removed, and neither is anything outside it.

    Returns
    -------
    list[PurePosixPath]
        Removed directories, innermost first.
    """
    stop = root.resolve(stop_at)
    current = root.resolve(start)
    removed: list[PurePosixPath] = []

    while current != stop and current.is_relative_to(stop):
        if not current.is_dir() or any(current.iterdir()):
            break
        with _step(current, "prune"):
            current.rmdir()
        removed.append(root.relative(current))
        current = current.parent
    return removed


@dataclass
class Relocation:
    """Outcome of moving one file or directory tree."""

    source: PurePosixPath
    destination: PurePosixPath
    moved: list[PurePosixPath] = field(default_factory=list)
    conflicts: list[PurePosixPath] = field(default_factory=list)


def relocate(
    root: ProjectRoot,
    source: str | PurePosixPath,
    destination: str | PurePosixPath,
    stop_at: str | PurePosixPath,
) -> Relocation | None:
    """
    Move a file or directory tree to a new location.

    When ``destination`` already exists the trees are merged file by file.
    A file already present at the destination is kept and the source copy
    is left where it was (reported in ``conflicts``). Afterwards, directories
    emptied by the move are pruned up to (not including) ``stop_at``.

    Returns
    -------
    Relocation | None
        None when ``source`` does not exist.
    """
    src = root.resolve(source)
    dest = root.resolve(destination)
    if not src.exists():
        return None

    outcome = Relocation(PurePosixPath(source), PurePosixPath(destination))
    if src == dest:
        return outcome
    if dest.is_relative_to(src):
        outcome.conflicts.append(root.relative(dest))
        logger.warning("Cannot relocate %s into its own subdirectory %s", source, destination)
        return outcome

    if not dest.exists():
        with _step(src, "relocate"):
            dest.parent.mkdir(parents=True, exist_ok=True)
            shutil.move(os.fspath(src), os.fspath(dest))
        outcome.moved.append(root.relative(dest))
    elif src.is_file():
        outcome.conflicts.append(root.relative(dest))
    else:
        _merge_tree(root, src, dest, outcome)

    for conflict in outcome.conflicts:
        logger.warning("Kept existing %s; the starter copy was left in place", conflict)

    if src.is_dir():
        _prune_tree(root, src)
    prune_empty_ancestors(root, root.relative(src.parent), stop_at)
    return outcome


def _merge_tree(root: ProjectRoot, src: Path, dest: Path, outcome: Relocation) -> None:
    for item in sorted(src.rglob("*")):
        if not item.is_file():
            continue
        target = dest / item.relative_to(src)
        if target.exists():
            outcome.conflicts.append(root.relative(target))
            continue
        with _step(item, "relocate"):
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.move(os.fspath(item), os.fspath(target))
        outcome.moved.append(root.relative(target))


def _prune_tree(root: ProjectRoot, top: Path) -> None:
    """Remove empty directories under and including ``top``, deepest first."""
    if not top.is_dir():
        return
    for directory in sorted((p for p in top.rglob("*") if p.is_dir()), reverse=True):
        if not any(directory.iterdir()):
            with _step(directory, "prune"):
                directory.rmdir()
    if not any(top.iterdir()):
        with _step(top, "prune"):
            top.rmdir()


# =============================================================================
# Module Materialization
# =============================================================================


@dataclass(frozen=True)
class RenderedFile:
    """A plan entry rendered in memory, ready to be written."""

    entry: PlanEntry
    path: PurePosixPath
    content: bytes

    @property
    def executable(self) -> bool:
        return self.entry.executable


@dataclass
class ModuleOutcome:
    """What :func:`materialize_module` did to one module."""

    module: ModuleKind
    written: list[PurePosixPath] = field(default_factory=list)
    relocations: list[Relocation] = field(default_factory=list)
    removed: list[PurePosixPath] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


def source_root(module: ModuleKind, language: Language) -> PurePosixPath:
    return PurePosixPath(module.value, "src", "main", language.source_dir)


def package_dir(module: ModuleKind, language: Language, package_path: str) -> PurePosixPath:
    return source_root(module, language) / package_path


def has_starter_layout(root: ProjectRoot) -> bool:
    """Whether ``root`` looks like a checked-out starter template."""
    return any(
        root.exists(layout.package_dir) or root.exists(layout.asset_dir)
        for layout in DEFAULT_LAYOUT.values()
    )


def materialize_module(
    root: ProjectRoot,
    module: ModuleKind,
    files: list[RenderedFile],
    params: Mapping[str, str],
    *,
    language: Language = Language.JAVA,
    starter_layout: bool = False,
) -> ModuleOutcome:
    """
    Write one module and fold the starter layout into it.

    Steps, in order:

    1. create the package directory (and the mixin package for Fabric)
    2. write the rendered files
    3. move the starter's default package into the real package
    4. move the starter's default asset directory
    5. delete the starter's example entry points

    Steps 3-5 only run when ``starter_layout`` is set. A default location
    that is missing in that case is reported as a warning.

    Parameters
    ----------
    files : list[RenderedFile]
        Rendered plan entries belonging to ``module``.
    params : Mapping[str, str]
        Placeholder values; ``package_path`` and ``mod_id`` are used here.
    """
    outcome = ModuleOutcome(module)
    package_path = params["package_path"]

    ensure_dir(root, package_dir(module, language, package_path))
    if module is ModuleKind.FABRIC:
        ensure_dir(root, package_dir(module, Language.JAVA, package_path) / "mixin")

    for rendered in files:
        write_file(root, rendered.path, rendered.content, executable=rendered.executable)
        outcome.written.append(rendered.path)

    if not starter_layout:
        return outcome

    layout = DEFAULT_LAYOUT[module]
    java_root = source_root(module, Language.JAVA)
    java_package = java_root / package_path
    assets_root = PurePosixPath(module.value, "src", "main", "resources", "assets")

    moves = (
        (layout.package_dir, java_package, java_root, "package"),
        (layout.asset_dir, assets_root / params["mod_id"], assets_root, "asset directory"),
    )
    for source, destination, stop_at, what in moves:
        relocation = relocate(root, source, destination, stop_at)
        if relocation is None:
            outcome.warnings.append(f"{module.value}: default {what} {source} not found")
            continue
        outcome.relocations.append(relocation)
        outcome.warnings.extend(
            f"{module.value}: kept existing {conflict}" for conflict in relocation.conflicts
        )

    for obsolete in layout.obsolete_entry_points:
        path = java_package / obsolete
        if remove_file(root, path):
            outcome.removed.append(path)
            prune_empty_ancestors(root, path.parent, java_root)

    return outcome
