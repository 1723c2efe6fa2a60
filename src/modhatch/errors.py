"""
modhatch.errors - Exception Taxonomy
====================================

Every failure modhatch reports to a user derives from :class:`ModhatchError`
so the CLI can turn it into a single ``Error:`` line and a non-zero exit.

Hierarchy
---------
    ModhatchError
    ├── InvalidInput (also ValueError)
    │   ├── InvalidId
    │   ├── InvalidPackage
    │   ├── InvalidText
    │   └── ProjectExists
    ├── TemplateConsistencyError
    │   ├── UnknownTemplate
    │   └── UnresolvedPlaceholder
    ├── FetchError
    ├── FileSystemFailure
    ├── GenerationFailed
    └── StateRecordError
        ├── StateRecordNotFound
        └── StateRecordCorrupt

``InvalidInput`` is raised before anything touches the disk.
``TemplateConsistencyError`` means modhatch itself is broken (a template
references something the engine never supplies). ``FetchError`` never leaves
the version resolver; it is downgraded to a fallback value there.
"""

from __future__ import annotations

from pathlib import Path


class ModhatchError(Exception):
    """Base class for all modhatch errors."""


# =============================================================================
# Input Errors
# =============================================================================


class InvalidInput(ModhatchError, ValueError):
    """User supplied input that cannot be scaffolded."""


class InvalidId(InvalidInput):
    """Mod id does not match ``^[a-z][a-z0-9_]*$`` or is reserved."""

    def __init__(self, value: str, reason: str | None = None) -> None:
        self.value = value
        message = f"Invalid mod ID '{value}': must match ^[a-z][a-z0-9_]*$"
        if reason:
            message = f"Invalid mod ID '{value}': {reason}"
        super().__init__(message)


class InvalidPackage(InvalidInput):
    """Package is not a dotted sequence of ``[a-z][a-z0-9_]*`` segments."""

    def __init__(self, value: str) -> None:
        self.value = value
        super().__init__(
            f"Invalid package '{value}': must match "
            r"^[a-z][a-z0-9_]*(\.[a-z][a-z0-9_]*)*$"
        )


class InvalidText(InvalidInput):
    """A free-text field holds characters generated files cannot quote."""

    def __init__(self, field: str, value: str, reason: str) -> None:
        self.field = field
        self.value = value
        super().__init__(f"Invalid {field} {value!r}: {reason}")


class ProjectExists(InvalidInput):
    """``init`` was pointed at a directory that already holds a modhatch project."""

    def __init__(self, path: Path) -> None:
        self.path = path
        super().__init__(f"{path} already exists. Use 'modhatch add' to extend the project.")


# =============================================================================
# Template Errors
# =============================================================================


class TemplateConsistencyError(ModhatchError):
    """The packaged templates and the engine disagree."""


class UnknownTemplate(TemplateConsistencyError, KeyError):
    """A template key is not present in the template store."""

    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(f"Unknown template '{key}'")

    def __str__(self) -> str:
        return f"Unknown template '{self.key}'"


class UnresolvedPlaceholder(TemplateConsistencyError):
    """A template references a placeholder with no value."""

    def __init__(self, name: str, template: str | None = None) -> None:
        self.name = name
        self.template = template
        where = f" in template '{template}'" if template else ""
        super().__init__(f"Unresolved placeholder '{name}'{where}")


# =============================================================================
# Network Errors
# =============================================================================


class FetchError(ModhatchError):
    """A version lookup failed (timeout, bad status, unparsable payload)."""


# =============================================================================
# File System Errors
# =============================================================================


class FileSystemFailure(ModhatchError):
    """
    An I/O operation failed while the project tree was being modified.

    Attributes
    ----------
    path : Path
        The file or directory being touched.
    step : str
        Which step was running (e.g. ``"write"``, ``"relocate"``).
    """

    def __init__(self, path: Path, step: str, cause: OSError | None = None) -> None:
        self.path = path
        self.step = step
        self.cause = cause
        detail = f": {cause.strerror or cause}" if cause else ""
        super().__init__(f"{step} failed for {path}{detail}")


# =============================================================================
# State Record Errors
# =============================================================================


class StateRecordError(ModhatchError):
    """Problems with the project's modhatch.toml."""


class StateRecordNotFound(StateRecordError, FileNotFoundError):
    """No modhatch.toml in the project directory."""

    def __init__(self, path: Path) -> None:
        self.path = path
        super().__init__(f"{path} not found. Run 'modhatch init' first.")

    def __str__(self) -> str:
        return f"{self.path} not found. Run 'modhatch init' first."


class StateRecordCorrupt(StateRecordError):
    """modhatch.toml exists but cannot be trusted."""

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot read {path}: {reason}")


# =============================================================================
# Engine Errors
# =============================================================================


class GenerationFailed(ModhatchError):
    """
    A step failed after the project directory was already modified.

    Files written before the failure are left in place.

    Attributes
    ----------
    state : str
        Engine state in which the failure happened.
    path : Path | None
        File involved, when the cause names one.
    """

    def __init__(self, state: str, cause: ModhatchError) -> None:
        self.state = state
        self.cause = cause
        self.path = getattr(cause, "path", None)
        super().__init__(f"{cause} (while {state.replace('_', ' ')})")
