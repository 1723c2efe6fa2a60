"""
modhatch.identifiers - Mod ID and Package Helpers
=================================================

Pure functions that turn the identifiers a user types into the names the
generated sources use. Nothing here touches the file system.

Examples
--------
>>> derive_class_name("my_cool_mod")
'MyCoolModMod'
>>> package_to_path("com.example.mymod")
'com/example/mymod'
>>> neoforge_major("21.4.156")
'21.4'
"""

from __future__ import annotations

import re

from modhatch.errors import InvalidId, InvalidPackage, InvalidText


MOD_ID_PATTERN = re.compile(r"[a-z][a-z0-9_]*")
PACKAGE_SEGMENT_PATTERN = re.compile(r"[a-z][a-z0-9_]*")

# Suffix appended to the PascalCase mod id to form the entry-point class
CLASS_SUFFIX = "Mod"

# Mod ids already claimed by the game, the JVM or the loaders themselves
RESERVED_MOD_IDS = frozenset({"minecraft", "java", "fabricloader", "neoforge", "forge"})

# Substrings that would end or reinterpret a quoted string in a generated file
FORBIDDEN_TEXT = ('"', "\\", "$", "{{", "}}", "*/", "'''")


def validate_project_id(value: str) -> None:
    """
    Validate a mod id.

    Parameters
    ----------
    value : str
        Candidate mod id.

    Raises
    ------
    InvalidId
        If the id does not fully match ``[a-z][a-z0-9_]*`` or is reserved.
    """
    if not MOD_ID_PATTERN.fullmatch(value):
        raise InvalidId(value)
    if value in RESERVED_MOD_IDS:
        raise InvalidId(value, "this id is reserved by Minecraft or a mod loader")


def to_path_segments(package: str) -> list[str]:
    """
    Split a dotted package into its segments.

    Raises
    ------
    InvalidPackage
        If any segment is empty (``"com..example"``, ``".com"``, ``"com."``).
    """
    segments = package.split(".")
    if not package or any(not segment for segment in segments):
        raise InvalidPackage(package)
    return segments


def validate_package(package: str) -> None:
    """Raise :class:`InvalidPackage` unless every segment is a valid identifier."""
    for segment in to_path_segments(package):
        if not PACKAGE_SEGMENT_PATTERN.fullmatch(segment):
            raise InvalidPackage(package)


def validate_text(field: str, value: str) -> None:
    """
    Validate a display name, author or description.

    The value is substituted verbatim into JSON, TOML and YAML strings, Java
    and Kotlin string literals and a Java comment, so it may not contain
    anything that would end or reinterpret one of those.

    Raises
    ------
    InvalidText
        On a control character or any of :data:`FORBIDDEN_TEXT`.
    """
    if any(ord(char) < 0x20 or char == "\x7f" for char in value):
        raise InvalidText(field, value, "control characters and line breaks are not allowed")
    for token in FORBIDDEN_TEXT:
        if token in value:
            raise InvalidText(field, value, f"{token!r} is not allowed")


def package_to_path(package: str) -> str:
    """``com.example.mymod`` -> ``com/example/mymod``."""
    return "/".join(to_path_segments(package))


def to_pascal_case(value: str) -> str:
    """``my_cool_mod`` -> ``MyCoolMod``. Empty segments are dropped."""
    return "".join(part[0].upper() + part[1:] for part in value.split("_") if part)


def derive_class_name(project_id: str) -> str:
    """
    Entry-point class name for a mod id.

    Examples
    --------
    >>> derive_class_name("testmod")
    'TestmodMod'
    >>> derive_class_name("my_mod")
    'MyModMod'
    """
    return f"{to_pascal_case(project_id)}{CLASS_SUFFIX}"


def default_display_name(project_id: str) -> str:
    """``my_cool_mod`` -> ``My Cool Mod``; used as the prompt default."""
    return " ".join(part[0].upper() + part[1:] for part in project_id.split("_") if part)


def neoforge_major(version: str) -> str:
    """
    NeoForge major version used in ``versionRange`` entries.

    >>> neoforge_major("21.4.156")
    '21.4'
    >>> neoforge_major("21")
    '21'
    """
    parts = version.split(".", 2)
    if len(parts) >= 2:
        return f"{parts[0]}.{parts[1]}"
    return version
