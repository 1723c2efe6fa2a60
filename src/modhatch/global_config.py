"""
modhatch.global_config - User Preferences
=========================================

Per-user settings that apply to every project:

- ``defaults.author`` / ``defaults.language`` pre-fill the ``init`` prompts;
- ``options.*`` are Minecraft client options written to ``run/options.txt``
  when a project is created, so the dev client starts the way you like.

The file lives at ``$XDG_CONFIG_HOME/modhatch/config.toml`` (falling back to
``~/.config/modhatch``, or ``%APPDATA%\\modhatch`` on Windows).
``MODHATCH_CONFIG_DIR`` overrides the directory.

Keys may be given in dotted (``options.auto_jump``), short snake_case
(``auto_jump``) or Minecraft's camelCase (``autoJump``) form.
"""

from __future__ import annotations

import os
import sys
import tomllib
from pathlib import Path

import tomlkit
from pydantic import BaseModel, ValidationError

from modhatch.errors import InvalidInput
from modhatch.identifiers import validate_text
from modhatch.logger import get_logger
from modhatch.models import Language


logger = get_logger(__name__)

CONFIG_FILENAME = "config.toml"
CONFIG_DIR_ENV = "MODHATCH_CONFIG_DIR"

NOT_SET = "(not set)"


def config_dir() -> Path:
    """Directory holding ``config.toml``."""
    override = os.environ.get(CONFIG_DIR_ENV)
    if override:
        return Path(override)
    if sys.platform == "win32" and os.environ.get("APPDATA"):
        return Path(os.environ["APPDATA"]) / "modhatch"
    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / "modhatch"
    return Path.home() / ".config" / "modhatch"


def config_path() -> Path:
    return config_dir() / CONFIG_FILENAME


# =============================================================================
# Models
# =============================================================================


class Defaults(BaseModel):
    author: str | None = None
    language: Language | None = None


class ClientOptions(BaseModel):
    """Subset of Minecraft's ``options.txt``; None means "leave to the game"."""

    fullscreen: bool | None = True
    pause_on_lost_focus: bool | None = False
    auto_jump: bool | None = False
    reduced_debug_info: bool | None = False
    gamma: float | None = None


# dotted key -> (section title, display key, Minecraft options.txt key)
KNOWN_KEYS: dict[str, tuple[str, str, str | None]] = {
    "defaults.author": ("Defaults", "author", None),
    "defaults.language": ("Defaults", "language", None),
    "options.fullscreen": ("Client Options", "fullscreen", "fullscreen"),
    "options.pause_on_lost_focus": ("Client Options", "pauseOnLostFocus", "pauseOnLostFocus"),
    "options.auto_jump": ("Client Options", "autoJump", "autoJump"),
    "options.reduced_debug_info": ("Client Options", "reducedDebugInfo", "reducedDebugInfo"),
    "options.gamma": ("Client Options", "gamma", "gamma"),
}


def normalize_key(key: str) -> str:
    """
    Map any accepted spelling of a key to its dotted form.

    >>> normalize_key("pauseOnLostFocus")
    'options.pause_on_lost_focus'
    >>> normalize_key("author")
    'defaults.author'

    Unknown keys are returned unchanged.
    """
    if key in KNOWN_KEYS:
        return key
    for dotted, (_, display, _) in KNOWN_KEYS.items():
        short = dotted.split(".", 1)[1]
        if key in (short, display):
            return dotted
    return key


def parse_bool(value: str) -> bool:
    """Accept ``true/false/yes/no/1/0`` in any case."""
    lowered = value.strip().lower()
    if lowered in ("true", "yes", "1"):
        return True
    if lowered in ("false", "no", "0"):
        return False
    raise InvalidInput(f"Invalid boolean '{value}': must be true/false/yes/no/1/0")


def _format(value: object) -> str:
    if value is None:
        return NOT_SET
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        return f"{value:g}"
    if isinstance(value, Language):
        return value.value
    return str(value)


class GlobalConfig(BaseModel):
    """
    Contents of the user's ``config.toml``.

    Examples
    --------
    >>> config = GlobalConfig()
    >>> config.set("autoJump", "yes")
    >>> config.get("options.auto_jump")
    'true'
    """

    defaults: Defaults = Defaults()
    options: ClientOptions = ClientOptions()

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    @classmethod
    def load(cls, path: Path | None = None) -> GlobalConfig:
        """
        Load the config; a missing or broken file gives the defaults.

        Preferences must never stop ``init``, so problems are only logged.
        """
        path = path or config_path()
        if not path.is_file():
            return cls()
        try:
            data = tomllib.loads(path.read_text(encoding="utf-8"))
            return cls.model_validate(data)
        except (OSError, UnicodeDecodeError, tomllib.TOMLDecodeError, ValidationError) as e:
            logger.warning("Ignoring unreadable config %s: %s", path, e)
            return cls()

    def save(self, path: Path | None = None) -> Path:
        """Write the config, creating its directory if needed."""
        path = path or config_path()
        doc = tomlkit.document()
        doc.add(tomlkit.comment("modhatch user configuration ('modhatch config list')"))
        for section in ("defaults", "options"):
            table = tomlkit.table()
            for key, value in getattr(self, section).model_dump(mode="json").items():
                if value is not None:
                    table.add(key, value)
            doc.add(section, table)

        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(tomlkit.dumps(doc), encoding="utf-8")
        return path

    # -------------------------------------------------------------------------
    # Key Access
    # -------------------------------------------------------------------------

    def get(self, key: str) -> str | None:
        """Value of ``key`` as displayed by the CLI; None when unset."""
        dotted = normalize_key(key)
        if dotted not in KNOWN_KEYS:
            raise InvalidInput(f"Unknown config key '{key}'. Run 'modhatch config list' to see valid keys.")
        section, field = dotted.split(".", 1)
        value = getattr(getattr(self, section), field)
        return None if value is None else _format(value)

    def set(self, key: str, value: str) -> None:
        """
        Validate and store ``value`` under ``key``. Call :meth:`save` to persist.

        Raises
        ------
        InvalidInput
            For unknown keys, unquotable authors, unknown languages, bad
            booleans or numbers.
        """
        dotted = normalize_key(key)
        if dotted not in KNOWN_KEYS:
            raise InvalidInput(f"Unknown config key '{key}'. Run 'modhatch config list' to see valid keys.")
        section, field = dotted.split(".", 1)

        parsed: object
        if dotted == "defaults.author":
            validate_text("author", value)
            parsed = value
        elif dotted == "defaults.language":
            try:
                parsed = Language(value.lower())
            except ValueError:
                raise InvalidInput(
                    f"Invalid language '{value}': must be 'java' or 'kotlin'"
                ) from None
        elif dotted == "options.gamma":
            try:
                parsed = float(value)
            except ValueError:
                raise InvalidInput(f"Invalid gamma value '{value}': must be a number") from None
        else:
            parsed = parse_bool(value)

        setattr(getattr(self, section), field, parsed)

    def entries(self) -> list[tuple[str, str, str]]:
        """``(section title, display key, display value)`` for every known key."""
        rows = []
        for dotted, (title, display, _) in KNOWN_KEYS.items():
            section, field = dotted.split(".", 1)
            rows.append((title, display, _format(getattr(getattr(self, section), field))))
        return rows

    # -------------------------------------------------------------------------
    # options.txt
    # -------------------------------------------------------------------------

    def render_options_txt(self) -> str:
        """Minecraft ``options.txt`` content for the configured client options."""
        lines = ["lang:en_us"]
        for dotted, (_, _, option) in KNOWN_KEYS.items():
            section, field = dotted.split(".", 1)
            value = getattr(getattr(self, section), field)
            if option and value is not None:
                lines.append(f"{option}:{_format(value)}")
        return "\n".join(lines) + "\n"

    def copy_options_to(self, dest: Path) -> bool:
        """
        Write ``options.txt`` to ``dest`` unless a file is already there.

        Returns
        -------
        bool
            True if the file was written.
        """
        if dest.exists():
            return False
        dest.parent.mkdir(parents=True, exist_ok=True)
        dest.write_text(self.render_options_txt(), encoding="utf-8")
        return True
