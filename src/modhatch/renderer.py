"""
modhatch.renderer - Template Store and Placeholder Renderer
===========================================================

Templates are addressed by a logical key (``"fabric/fabric.mod.json.j2"``)
and come in two flavours:

- **text** templates (keys ending in ``.j2``) are UTF-8 documents with
  ``{{ placeholder }}`` tokens rendered by Jinja2;
- **verbatim** templates (everything else) are copied byte for byte.
  Placeholder syntax inside them is never interpreted.

Rendering is strict: a placeholder without a value raises
:class:`~modhatch.errors.UnresolvedPlaceholder` instead of leaving the raw
token in a generated file.

Storage is behind :class:`TemplateStore`, so the engine does not care whether
templates live in the installed package (:class:`PackageTemplateStore`) or in
memory (:class:`DictTemplateStore`).

Usage
-----
>>> render("rootProject.name = \\"{{ mod_id }}\\"", {"mod_id": "testmod"})
'rootProject.name = "testmod"'
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from importlib import resources
from pathlib import PurePosixPath
from typing import TYPE_CHECKING

from jinja2 import Environment, StrictUndefined, TemplateSyntaxError, meta

from modhatch.errors import TemplateConsistencyError, UnknownTemplate, UnresolvedPlaceholder


if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping

    from importlib.resources.abc import Traversable


TEXT_SUFFIX = ".j2"


# =============================================================================
# Template Store
# =============================================================================


class RenderMode(str, Enum):
    """How a template's content becomes file content."""

    TEXT = "text"
    VERBATIM = "verbatim"


def mode_for_key(key: str) -> RenderMode:
    """Text templates are marked by the ``.j2`` suffix."""
    return RenderMode.TEXT if key.endswith(TEXT_SUFFIX) else RenderMode.VERBATIM


@dataclass(frozen=True)
class Template:
    """A template's raw content and how to treat it."""

    key: str
    content: bytes
    mode: RenderMode

    @property
    def text(self) -> str:
        return self.content.decode("utf-8")


class TemplateStore(ABC):
    """Read-only mapping of template keys to templates."""

    @abstractmethod
    def get(self, key: str) -> Template:
        """
        Fetch a template.

        Raises
        ------
        UnknownTemplate
            If no template is stored under ``key``.
        """

    @abstractmethod
    def keys(self) -> Iterator[str]:
        """All keys held by the store."""

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and key in set(self.keys())


class PackageTemplateStore(TemplateStore):
    """
    Templates shipped as package data in ``modhatch/templates``.

    Parameters
    ----------
    package : str
        Package whose resources hold the templates.
    """

    def __init__(self, package: str = "modhatch.templates") -> None:
        self._root = resources.files(package)

    def get(self, key: str) -> Template:
        node = self._root
        for part in PurePosixPath(key).parts:
            node = node.joinpath(part)
        if not node.is_file() or key.endswith(".py"):
            raise UnknownTemplate(key)
        return Template(key, node.read_bytes(), mode_for_key(key))

    def keys(self) -> Iterator[str]:
        yield from _walk(self._root, PurePosixPath())


def _walk(node: Traversable, prefix: PurePosixPath) -> Iterator[str]:
    for child in sorted(node.iterdir(), key=lambda c: c.name):
        if child.name == "__pycache__":
            continue
        if child.is_dir():
            yield from _walk(child, prefix / child.name)
        elif not child.name.endswith((".py", ".pyc")):
            yield str(prefix / child.name)


class DictTemplateStore(TemplateStore):
    """In-memory store; values may be ``str`` (UTF-8 encoded) or ``bytes``."""

    def __init__(self, templates: Mapping[str, str | bytes]) -> None:
        self._templates = {
            key: value.encode("utf-8") if isinstance(value, str) else bytes(value)
            for key, value in templates.items()
        }

    def get(self, key: str) -> Template:
        try:
            content = self._templates[key]
        except KeyError:
            raise UnknownTemplate(key) from None
        return Template(key, content, mode_for_key(key))

    def keys(self) -> Iterator[str]:
        yield from self._templates


# =============================================================================
# Rendering
# =============================================================================


def create_jinja_env() -> Environment:
    """
    Create the Jinja2 environment used for every text template.

    Autoescaping is off because we generate source and config files, not
    HTML. It must be ``False`` rather than ``select_autoescape([])``: the
    latter still escapes unnamed templates built with ``from_string``.
    ``StrictUndefined`` backs up the explicit placeholder check in
    :func:`render`.
    """
    return Environment(
        autoescape=False,
        undefined=StrictUndefined,
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
    )


_ENV = create_jinja_env()


def placeholders(text: str) -> set[str]:
    """Names of all placeholders referenced by ``text``."""
    try:
        return set(meta.find_undeclared_variables(_ENV.parse(text)))
    except TemplateSyntaxError as e:
        raise TemplateConsistencyError(f"Template syntax error: {e}") from e


def render(text: str, params: Mapping[str, str], *, template: str | None = None) -> str:
    """
    Substitute every ``{{ name }}`` in ``text`` with ``params[name]``.

    Parameters
    ----------
    text : str
        Template body.
    params : Mapping[str, str]
        Placeholder values.
    template : str | None
        Template key, only used in error messages.

    Raises
    ------
    UnresolvedPlaceholder
        If ``text`` references a name missing from ``params``.
    """
    missing = placeholders(text) - set(params)
    if missing:
        raise UnresolvedPlaceholder(sorted(missing)[0], template)
    return _ENV.from_string(text).render(**params)


class Renderer:
    """Turns store templates and path templates into concrete output."""

    def __init__(self, store: TemplateStore) -> None:
        self.store = store

    def render_template(self, key: str, params: Mapping[str, str]) -> bytes:
        """Rendered content of template ``key``; verbatim templates pass through."""
        template = self.store.get(key)
        if template.mode is RenderMode.VERBATIM:
            return template.content
        return render(template.text, params, template=key).encode("utf-8")

    def render_path(self, path_template: str, params: Mapping[str, str]) -> PurePosixPath:
        """Destination path for a plan entry, relative to the project root."""
        return PurePosixPath(render(path_template, params, template=path_template))
