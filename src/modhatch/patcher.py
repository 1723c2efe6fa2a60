"""
modhatch.patcher - Config Patcher
=================================

Small, line-oriented edits to files that already exist: enabling a
platform in ``gradle.properties``, adding an ``include`` to
``settings.gradle``, updating the LICENSE copyright line and moving the
dependency versions of the loader manifests.

A :class:`Substitution` is a compiled pattern matched against each line
body (the line without its terminator) plus a replacement. Patching is:

- **faithful**: only matched lines change; every other byte, including
  ``\\r\\n`` line endings and a missing final newline, is preserved;
- **idempotent**: applying the same substitutions twice leaves the file
  exactly as the first application did, and an unchanged file is not
  rewritten at all;
- **forgiving**: a pattern that matches nothing is logged and listed in the
  :class:`PatchReport`, never raised.

Example
-------
>>> text, results = patch_text("enabled_platforms=fabric\\n",
...                            [append_list_value("enabled_platforms", "neoforge")])
>>> text
'enabled_platforms=fabric,neoforge\\n'
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import TYPE_CHECKING

from modhatch.errors import FileSystemFailure
from modhatch.logger import get_logger


if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from modhatch.materializer import ProjectRoot


logger = get_logger(__name__)


@dataclass(frozen=True)
class Substitution:
    """
    One line-level edit.

    Attributes
    ----------
    description : str
        Human-readable summary, used in reports and logs.
    pattern : re.Pattern[str]
        Must match a whole line body (``fullmatch``).
    replacement : str | Callable[[re.Match[str]], str]
        New line body. A callable receives the match; a string is expanded
        with :meth:`re.Match.expand` (so ``\\1`` works).
    first_only : bool
        Stop after the first matching line.
    append_if_missing : str | None
        Line added when nothing matched.
    insert_after : re.Pattern[str] | None
        Where to add ``append_if_missing``: after the last line matching
        this pattern.
    insert_before : re.Pattern[str] | None
        Fallback position: before the first line matching this pattern.
        Without either, the line is added at the end of the file.
    after : re.Pattern[str] | None
        Only lines following a line matching this pattern are considered.
    until : re.Pattern[str] | None
        Ends the region opened by ``after``; a later ``after`` line opens
        it again.
    """

    description: str
    pattern: re.Pattern[str]
    replacement: str | Callable[[re.Match[str]], str]
    first_only: bool = False
    append_if_missing: str | None = None
    insert_after: re.Pattern[str] | None = None
    insert_before: re.Pattern[str] | None = None
    after: re.Pattern[str] | None = None
    until: re.Pattern[str] | None = None

    def replace(self, match: re.Match[str]) -> str:
        if callable(self.replacement):
            return self.replacement(match)
        return match.expand(self.replacement)

    def in_scope(self, lines: Sequence[tuple[str, str]]) -> list[bool]:
        """For every line, whether this substitution may edit it."""
        if self.after is None:
            return [True] * len(lines)
        scope = []
        active = False
        for body, _ in lines:
            if self.after.fullmatch(body):
                active = True
                scope.append(False)
                continue
            if self.until is not None and self.until.fullmatch(body):
                active = False
            scope.append(active)
        return scope


@dataclass
class SubstitutionResult:
    """What one substitution did."""

    description: str
    matched: int = 0
    changed: int = 0
    inserted: bool = False


@dataclass
class PatchReport:
    """Outcome of patching one file."""

    path: PurePosixPath
    results: list[SubstitutionResult] = field(default_factory=list)
    written: bool = False

    @property
    def unmatched(self) -> list[str]:
        """Substitutions that found nothing to change and added nothing."""
        return [r.description for r in self.results if not r.matched and not r.inserted]

    @property
    def changed(self) -> bool:
        return self.written


# =============================================================================
# Substitution Factories
# =============================================================================


def set_property(key: str, value: str) -> Substitution:
    """
    Set ``key=value`` in a ``.properties`` file.

    Grammar: ``^[ \\t]*(?:#[ \\t]*)?KEY[ \\t]*=.*$``. The first matching
    line, commented out or not, becomes ``KEY=value``; this is how the
    ``# mod_language=kotlin`` toggle is switched on. Appended when missing.
    """
    return Substitution(
        description=f"set {key}={value}",
        pattern=re.compile(rf"[ \t]*(?:#[ \t]*)?{re.escape(key)}[ \t]*=.*"),
        replacement=lambda _: f"{key}={value}",
        first_only=True,
        append_if_missing=f"{key}={value}",
    )


def append_list_value(key: str, item: str) -> Substitution:
    """
    Add ``item`` to a comma-separated property value unless already there.

    Grammar: ``^KEY=(.*)$``. Surrounding whitespace of items is dropped;
    order is kept and ``item`` goes last.
    """

    def add(match: re.Match[str]) -> str:
        items = [part.strip() for part in match.group(1).split(",") if part.strip()]
        if item not in items:
            items.append(item)
        return f"{key}={','.join(items)}"

    return Substitution(
        description=f"add {item} to {key}",
        pattern=re.compile(rf"{re.escape(key)}=(.*)"),
        replacement=add,
    )


def replace_copyright(year: str | int, author: str) -> Substitution:
    """Grammar: ``^Copyright \\(c\\) \\d{4} .*$``."""
    return Substitution(
        description="update copyright line",
        pattern=re.compile(r"Copyright \(c\) \d{4} .*"),
        replacement=lambda _: f"Copyright (c) {year} {author}",
    )


def set_root_project_name(name: str) -> Substitution:
    """Grammar: ``^rootProject\\.name[ \\t]*=.*$`` becomes ``rootProject.name = "NAME"``."""
    return Substitution(
        description=f"set rootProject.name to {name}",
        pattern=re.compile(r"rootProject\.name[ \t]*=.*"),
        replacement=lambda _: f'rootProject.name = "{name}"',
    )


def set_json_string(key: str, value: str) -> Substitution:
    """
    Set the string value of ``"KEY": "..."`` in a JSON file.

    Grammar: ``^([ \\t]*"KEY"[ \\t]*:[ \\t]*)"[^"]*"(.*)$``. Indentation
    and a trailing comma are kept. Used for the ``depends`` entries of
    ``fabric.mod.json``.
    """
    return Substitution(
        description=f'set "{key}" to "{value}"',
        pattern=re.compile(rf'([ \t]*"{re.escape(key)}"[ \t]*:[ \t]*)"[^"]*"(.*)'),
        replacement=lambda match: f'{match.group(1)}"{value}"{match.group(2)}',
    )


_TOML_TABLE_LINE = re.compile(r"[ \t]*\[.*")


def set_dependency_range(mod_id: str, version_range: str) -> Substitution:
    """
    Set ``versionRange`` of one ``[[dependencies.*]]`` entry in ``neoforge.mods.toml``.

    Only the ``versionRange`` line that follows ``modId = "MOD_ID"`` inside
    the same table is changed. Grammar: ``^([ \\t]*versionRange[ \\t]*=[ \\t]*)"[^"]*"(.*)$``.
    """
    return Substitution(
        description=f"set versionRange of {mod_id} to {version_range}",
        pattern=re.compile(r'([ \t]*versionRange[ \t]*=[ \t]*)"[^"]*"(.*)'),
        replacement=lambda match: f'{match.group(1)}"{version_range}"{match.group(2)}',
        after=re.compile(rf'[ \t]*modId[ \t]*=[ \t]*"{re.escape(mod_id)}".*'),
        until=_TOML_TABLE_LINE,
    )


_INCLUDE_LINE = re.compile(r"[ \t]*include[ \t]*\(.*")
_ROOT_PROJECT_LINE = re.compile(r"[ \t]*rootProject\.name.*")


def ensure_include(module: str) -> Substitution:
    """
    Make sure ``settings.gradle`` includes ``module``.

    Grammar: ``^[ \\t]*include[ \\t]*\\([ \\t]*["']MODULE["'][ \\t]*\\)``.
    When missing, ``include("MODULE")`` is inserted after the last
    ``include(`` line, else before ``rootProject.name``, else at the end.
    """
    return Substitution(
        description=f"include {module}",
        pattern=re.compile(
            rf"[ \t]*include[ \t]*\([ \t]*[\"']{re.escape(module)}[\"'][ \t]*\).*"
        ),
        replacement=lambda match: match.group(0),
        append_if_missing=f'include("{module}")',
        insert_after=_INCLUDE_LINE,
        insert_before=_ROOT_PROJECT_LINE,
    )


# =============================================================================
# Applying Substitutions
# =============================================================================


def _split_lines(text: str) -> list[tuple[str, str]]:
    """Split into ``(body, terminator)`` pairs; the terminator may be empty."""
    lines = []
    for chunk in re.findall(r"[^\n]*\n|[^\n]+$", text):
        if chunk.endswith("\r\n"):
            lines.append((chunk[:-2], "\r\n"))
        elif chunk.endswith("\n"):
            lines.append((chunk[:-1], "\n"))
        else:
            lines.append((chunk, ""))
    return lines


def _newline_style(lines: list[tuple[str, str]]) -> str:
    for _, eol in lines:
        if eol:
            return eol
    return "\n"


def _insert(lines: list[tuple[str, str]], sub: Substitution, newline: str) -> None:
    index = len(lines)
    after = []
    if sub.insert_after is not None:
        after = [i for i, (body, _) in enumerate(lines) if sub.insert_after.fullmatch(body)]
    if after:
        index = after[-1] + 1
    elif sub.insert_before is not None:
        before = [i for i, (body, _) in enumerate(lines) if sub.insert_before.fullmatch(body)]
        if before:
            index = before[0]

    if index == len(lines):
        # Keep the file's "no final newline" shape when appending
        if lines and not lines[-1][1]:
            lines[-1] = (lines[-1][0], newline)
            lines.append((sub.append_if_missing, ""))
            return
    lines.insert(index, (sub.append_if_missing, newline))


def patch_text(text: str, substitutions: Sequence[Substitution]) -> tuple[str, list[SubstitutionResult]]:
    """
    Apply substitutions to ``text`` in order. Pure.

    Returns
    -------
    tuple[str, list[SubstitutionResult]]
        The patched text and one result per substitution.
    """
    lines = _split_lines(text)
    newline = _newline_style(lines)
    results = []

    for sub in substitutions:
        result = SubstitutionResult(sub.description)
        scope = sub.in_scope(lines)
        for i, (body, eol) in enumerate(lines):
            if not scope[i]:
                continue
            match = sub.pattern.fullmatch(body)
            if match is None:
                continue
            result.matched += 1
            new_body = sub.replace(match)
            if new_body != body:
                lines[i] = (new_body, eol)
                result.changed += 1
            if sub.first_only:
                break

        if not result.matched and sub.append_if_missing is not None:
            _insert(lines, sub, newline)
            result.inserted = True
        results.append(result)

    return "".join(body + eol for body, eol in lines), results


def apply_substitutions(
    root: ProjectRoot,
    relative: str | PurePosixPath,
    substitutions: Sequence[Substitution],
) -> PatchReport:
    """
    Patch a project file in place.

    The file is read and written as raw UTF-8 bytes, so line endings survive
    untouched. Nothing is written when no line changed.

    Raises
    ------
    FileSystemFailure
        If the file is missing or cannot be read or written.
    """
    path = root.resolve(relative)
    report = PatchReport(PurePosixPath(relative))
    try:
        original = path.read_bytes().decode("utf-8")
    except OSError as e:
        raise FileSystemFailure(path, "patch", e) from e
    except UnicodeDecodeError as e:
        raise FileSystemFailure(path, "patch (not UTF-8)") from e

    patched, report.results = patch_text(original, substitutions)
    for description in report.unmatched:
        logger.debug("%s: nothing matched '%s'", relative, description)

    if patched != original:
        try:
            path.write_bytes(patched.encode("utf-8"))
        except OSError as e:
            raise FileSystemFailure(path, "patch", e) from e
        report.written = True
        logger.debug("Patched %s", relative)
    return report
