"""
modhatch.cli - Command Line Interface
=====================================

Typer front end for the scaffolding engine. The CLI collects input
(flags first, interactive questionary prompts for whatever is missing),
builds a :class:`~modhatch.models.ProjectSpec`, hands it to the engine and
prints the outcome with Rich.

Commands
--------
    app
    ├── init      - Create a mod workspace
    ├── add       - Enable fabric, neoforge, ci or kotlin in a workspace
    ├── status    - Show what modhatch.toml records
    ├── versions  - Show which versions would be used, and why
    └── config    - Manage user preferences (set / get / list / path)

Usage Examples
--------------
Interactive:
    $ modhatch init mymod

Scripted:
    $ modhatch init mymod --mod-id mymod --package com.example.mymod \\
          --loader fabric --loader neoforge --language kotlin --yes

Extend later:
    $ modhatch add neoforge ci
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import questionary
import typer
from rich import print as rprint
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from modhatch import __version__
from modhatch.errors import InvalidInput, ModhatchError
from modhatch.generator import ADD_TARGETS, add_to_project, create_project
from modhatch.global_config import GlobalConfig, config_path
from modhatch.identifiers import (
    default_display_name,
    validate_package,
    validate_project_id,
    validate_text,
)
from modhatch.logger import console, set_verbose
from modhatch.models import MODULE_ORDER, FeatureKind, Language, ModuleKind, ProjectSpec, VersionKey
from modhatch.state import load_state
from modhatch.versions import read_checked_in_versions, resolve_versions


# =============================================================================
# CLI Application Setup
# =============================================================================

app = typer.Typer(
    name="modhatch",
    help="Scaffold and extend multi-loader Minecraft mod workspaces.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=True,
)

config_app = typer.Typer(
    help="Manage user preferences (defaults and client options).",
    no_args_is_help=True,
    rich_markup_mode="rich",
)
app.add_typer(config_app, name="config")


# =============================================================================
# Callbacks
# =============================================================================


def version_callback(value: bool) -> None:
    """Display version information and exit."""
    if value:
        console.print(Panel(
            f"[bold green]modhatch[/] version [cyan]{__version__}[/]\n\n"
            f"[dim]Multi-loader Minecraft mod scaffolder[/]\n"
            f"[dim]Loaders: Fabric + NeoForge | Languages: Java, Kotlin[/]",
            border_style="green",
        ))
        raise typer.Exit()


def fail(message: object) -> typer.Exit:
    """Print a red error line and return the exit to raise."""
    rprint(f"[red]Error:[/] {escape(str(message))}")
    return typer.Exit(1)


# =============================================================================
# Interactive Prompts
# =============================================================================


def _ask(question: questionary.Question):
    result = question.ask()
    if result is None:
        raise typer.Abort()
    return result


def _validator(check):
    def validate(value: str) -> bool | str:
        try:
            check(value)
        except InvalidInput as e:
            return str(e)
        return True

    return validate


def prompt_mod_id(default: str) -> str:
    return _ask(questionary.text(
        "Mod ID:",
        default=default,
        validate=_validator(validate_project_id),
    ))


def prompt_text(message: str, default: str, field: str) -> str:
    return _ask(questionary.text(
        message,
        default=default,
        validate=_validator(lambda value: validate_text(field, value)),
    ))


def prompt_package(default: str) -> str:
    return _ask(questionary.text(
        "Package:",
        default=default,
        validate=_validator(validate_package),
    ))


def prompt_language(default: Language) -> Language:
    """
    Interactively prompt for the entry-point language.

    Returns
    -------
    Language
        The selected language.
    """
    choices = [questionary.Choice(title=lang.value, value=lang) for lang in Language]
    return _ask(questionary.select("Language?", choices=choices, default=default))


def prompt_loaders() -> list[ModuleKind]:
    """
    Interactively prompt for the loader modules to generate.

    At least one loader has to be ticked.
    """
    choices = [
        questionary.Choice(f"{m.value:<9} - {m.description}", value=m, checked=True)
        for m in MODULE_ORDER
        if m.is_loader
    ]
    return _ask(questionary.checkbox(
        "Loaders:",
        choices=choices,
        validate=lambda selected: bool(selected) or "Select at least one loader",
    ))


def prompt_ci() -> bool:
    return _ask(questionary.confirm("Enable CI (GitHub Actions)?", default=True))


# =============================================================================
# Option Parsing Helpers
# =============================================================================


def parse_language(value: str) -> Language:
    try:
        return Language(value.lower())
    except ValueError:
        valid = ", ".join(lang.value for lang in Language)
        raise fail(f"Invalid language '{value}'. Valid: {valid}") from None


def parse_loaders(values: list[str]) -> list[ModuleKind]:
    loaders = []
    for value in values:
        for name in value.split(","):
            try:
                module = ModuleKind(name.strip().lower())
            except ValueError:
                module = None
            if module is None or not module.is_loader:
                raise fail(f"Invalid loader '{name}'. Valid: fabric, neoforge")
            loaders.append(module)
    return loaders


def version_overrides(
    minecraft: str | None,
    fabric_loader: str | None,
    fabric_api: str | None,
    neoforge: str | None,
) -> dict[VersionKey, str]:
    given = {
        VersionKey.MINECRAFT: minecraft,
        VersionKey.FABRIC_LOADER: fabric_loader,
        VersionKey.FABRIC_API: fabric_api,
        VersionKey.NEOFORGE: neoforge,
    }
    return {key: value for key, value in given.items() if value}


def print_warnings(warnings: list[str]) -> None:
    for warning in warnings:
        console.print(f"  [yellow]⚠[/] {escape(warning)}")


# Reusable version override options
MinecraftVersion = Annotated[
    str | None, typer.Option("--minecraft-version", help="Pin the Minecraft version")
]
FabricLoaderVersion = Annotated[
    str | None, typer.Option("--fabric-loader-version", help="Pin the Fabric Loader version")
]
FabricApiVersion = Annotated[
    str | None, typer.Option("--fabric-api-version", help="Pin the Fabric API version")
]
NeoForgeVersion = Annotated[
    str | None, typer.Option("--neoforge-version", help="Pin the NeoForge version")
]


# =============================================================================
# Main Application Callback
# =============================================================================


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Show debug logging."),
    ] = False,
) -> None:
    """
    [bold]modhatch[/] - multi-loader Minecraft mod scaffolder.

    Generates a Gradle workspace with a shared [cyan]common[/] module and
    [cyan]fabric[/] / [cyan]neoforge[/] loader modules, in Java or Kotlin.

    [bold]Quick Start:[/]

        modhatch init mymod
    """
    set_verbose(verbose)


# =============================================================================
# init
# =============================================================================


@app.command()
def init(
    directory: Annotated[
        Path,
        typer.Argument(help="Directory to create the project in", file_okay=False),
    ] = Path("."),
    mod_id: Annotated[
        str | None, typer.Option("--mod-id", help="Mod ID, e.g. mymod")
    ] = None,
    name: Annotated[
        str | None, typer.Option("--name", "-n", help="Display name")
    ] = None,
    package: Annotated[
        str | None, typer.Option("--package", "-p", help="Java package, e.g. com.example.mymod")
    ] = None,
    author: Annotated[
        str | None, typer.Option("--author", "-a", help="Author name")
    ] = None,
    description: Annotated[
        str | None, typer.Option("--description", "-d", help="Short mod description")
    ] = None,
    language: Annotated[
        str | None, typer.Option("--language", "-l", help="Language: java or kotlin")
    ] = None,
    loaders: Annotated[
        list[str] | None,
        typer.Option("--loader", help="Loader module to generate (repeatable): fabric, neoforge"),
    ] = None,
    ci: Annotated[
        bool | None, typer.Option("--ci/--no-ci", help="Generate a GitHub Actions workflow")
    ] = None,
    offline: Annotated[
        bool, typer.Option("--offline", help="Do not look up the latest versions")
    ] = False,
    minecraft_version: MinecraftVersion = None,
    fabric_loader_version: FabricLoaderVersion = None,
    fabric_api_version: FabricApiVersion = None,
    neoforge_version: NeoForgeVersion = None,
    yes: Annotated[
        bool, typer.Option("--yes", "-y", help="Skip all prompts, use defaults")
    ] = False,
) -> None:
    """
    Create a new mod workspace.

    Works in an empty directory or on top of a checked-out starter
    template, whose placeholder package is moved into place.

    [bold]Examples:[/]

        # Interactive
        modhatch init mymod

        # Fabric only, Kotlin, no network
        modhatch init mymod --mod-id mymod --loader fabric --language kotlin --offline --yes
    """
    should_prompt = not yes and mod_id is None
    user = GlobalConfig.load()
    directory = directory.resolve()

    # Mod ID
    if mod_id is None:
        if not should_prompt:
            raise fail("--mod-id is required with --yes")
        mod_id = prompt_mod_id(directory.name.lower().replace("-", "_"))
    try:
        validate_project_id(mod_id)
    except InvalidInput as e:
        raise fail(e) from None

    # Display name, package, author, description
    if name is None:
        name = default_display_name(mod_id)
        if should_prompt:
            name = prompt_text("Mod name:", name, "display name")

    if package is None:
        package = f"com.example.{mod_id}"
        if should_prompt:
            package = prompt_package(package)
    try:
        validate_package(package)
    except InvalidInput as e:
        raise fail(e) from None

    default_author = user.defaults.author or "Your Name"
    if author is None:
        author = prompt_text("Author:", default_author, "author") if should_prompt else default_author

    if description is None:
        description = "A Minecraft mod"
        if should_prompt:
            description = prompt_text("Description:", description, "description")

    # Language
    default_language = user.defaults.language or Language.JAVA
    if language is not None:
        resolved_language = parse_language(language)
    elif should_prompt:
        resolved_language = prompt_language(default_language)
    else:
        resolved_language = default_language

    # Loaders
    if loaders:
        resolved_loaders = parse_loaders(loaders)
    elif should_prompt:
        resolved_loaders = prompt_loaders()
    else:
        resolved_loaders = [ModuleKind.FABRIC, ModuleKind.NEOFORGE]

    # CI
    if ci is None:
        ci = prompt_ci() if should_prompt else True

    try:
        spec = ProjectSpec(
            project_id=mod_id,
            display_name=name,
            package=package,
            author=author,
            description=description,
            language=resolved_language,
            enabled_modules=frozenset(resolved_loaders),
            enabled_features=frozenset({FeatureKind.CI} if ci else set()),
        )
    except ValueError as e:
        raise fail(e) from None

    if should_prompt:
        console.print()
        table = Table(title="Mod Configuration", show_header=False)
        table.add_column("Setting", style="cyan")
        table.add_column("Value", style="green")
        table.add_row("Mod ID", spec.project_id)
        table.add_row("Name", spec.display_name)
        table.add_row("Package", spec.package)
        table.add_row("Class", spec.class_name)
        table.add_row("Language", spec.language.value)
        table.add_row("Loaders", ", ".join(m.value for m in spec.loaders))
        table.add_row("CI", "yes" if ci else "no")
        console.print(table)
        console.print()
        if not questionary.confirm("Create project with these settings?", default=True).ask():
            raise typer.Abort()

    overrides = version_overrides(
        minecraft_version, fabric_loader_version, fabric_api_version, neoforge_version
    )
    try:
        result = create_project(
            spec,
            directory,
            overrides=overrides,
            offline=offline,
            global_config=user,
            verbose=True,
        )
    except ModhatchError as e:
        raise fail(e) from None

    print_warnings(result.warnings)
    if result.versions is not None:
        console.print()
        console.print(versions_table(result.versions, title="Versions"))

    console.print()
    console.print(Panel(
        f"[bold green]Project created successfully![/]\n\n"
        f"[dim]Location:[/] {result.project_path}\n"
        f"[dim]Files written:[/] {len(result.files_written)}\n\n"
        f"[bold]Next steps:[/]\n"
        f"  cd {result.project_path}\n"
        f"  ./gradlew build",
        title="[bold green]Success[/]",
        border_style="green",
    ))


# =============================================================================
# add
# =============================================================================


@app.command()
def add(
    features: Annotated[
        list[str],
        typer.Argument(help=f"What to enable: {', '.join(ADD_TARGETS)}"),
    ],
    path: Annotated[
        Path,
        typer.Option(
            "--path",
            help="Path to the project",
            exists=True,
            file_okay=False,
            dir_okay=True,
        ),
    ] = Path("."),
    force: Annotated[
        bool, typer.Option("--force", "-f", help="Overwrite existing files")
    ] = False,
    refresh_versions: Annotated[
        bool,
        typer.Option("--refresh-versions", help="Look up versions again instead of reusing recorded ones"),
    ] = False,
    minecraft_version: MinecraftVersion = None,
    fabric_loader_version: FabricLoaderVersion = None,
    fabric_api_version: FabricApiVersion = None,
    neoforge_version: NeoForgeVersion = None,
) -> None:
    """
    Add a loader module, a feature or Kotlin to an existing project.

    - fabric / neoforge: generate the loader module and register it
    - ci: GitHub Actions build workflow
    - kotlin: convert the generated entry points to Kotlin

    Adding something that is already enabled does nothing.

    [bold]Examples:[/]

        modhatch add neoforge
        modhatch add ci kotlin --path ./mymod
    """
    path = path.resolve()
    overrides = version_overrides(
        minecraft_version, fabric_loader_version, fabric_api_version, neoforge_version
    )

    console.print()
    console.print(f"[bold]Adding {escape(', '.join(features))} to {escape(str(path))}[/]")
    try:
        result = add_to_project(
            path,
            features,
            force=force,
            refresh_versions=refresh_versions,
            overrides=overrides,
            verbose=True,
        )
    except FileExistsError as e:
        raise fail(e) from None
    except ModhatchError as e:
        raise fail(e) from None

    print_warnings(result.warnings)
    console.print()
    if result.noop:
        console.print(Panel(
            "[bold]Nothing to do[/]: everything requested is already enabled.",
            border_style="blue",
        ))
        return

    changed = [str(p.path) for p in result.patches if p.written]
    body = f"[bold green]Added {', '.join(result.added) or 'versions'}![/]\n\n"
    body += f"Created {len(result.files_written)} file(s)"
    if result.removed:
        body += f", removed {len(result.removed)}"
    if changed:
        body += f"\nUpdated: {', '.join(changed)}"
    console.print(Panel(body, title="[bold]Success[/]", border_style="green"))


# =============================================================================
# status / versions
# =============================================================================


@app.command()
def status(
    path: Annotated[
        Path,
        typer.Option("--path", help="Path to the project", file_okay=False),
    ] = Path("."),
) -> None:
    """Show what the project's modhatch.toml records."""
    try:
        record = load_state(path.resolve())
    except ModhatchError as e:
        raise fail(e) from None

    info = record.project
    table = Table(title=f"{info.mod_name} ({info.mod_id})", show_header=False)
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Package", info.package)
    table.add_row("Author", info.author)
    table.add_row("Language", info.language.value)
    table.add_row(
        "Modules",
        ", ".join(m.value for m in MODULE_ORDER if m in record.enabled_modules),
    )
    table.add_row("Features", ", ".join(f.value for f in record.enabled_features) or "none")
    for key, value in record.versions.as_dict().items():
        table.add_row(key.label, value)
    console.print(table)


def versions_table(report, title: str = "Resolved Versions") -> Table:
    table = Table(title=title, show_header=True)
    table.add_column("Artifact", style="cyan")
    table.add_column("Version", style="green")
    table.add_column("Source", style="dim")
    for resolved in report:
        source = resolved.source.value
        if resolved.fetch_error:
            source += " [yellow](lookup failed)[/]"
        table.add_row(resolved.key.label, resolved.value, source)
    return table


@app.command()
def versions(
    path: Annotated[
        Path,
        typer.Option("--path", help="Project whose recorded versions act as fallback", file_okay=False),
    ] = Path("."),
    offline: Annotated[
        bool, typer.Option("--offline", help="Do not look up the latest versions")
    ] = False,
) -> None:
    """Show the versions a new project would use, and where each comes from."""
    path = path.resolve()
    try:
        prior = load_state(path).versions.as_dict()
    except ModhatchError:
        prior = read_checked_in_versions(path)

    report = resolve_versions(prior=prior, offline=offline)
    console.print(versions_table(report))


# =============================================================================
# config
# =============================================================================


@config_app.command("set")
def config_set(
    key: Annotated[str, typer.Argument(help="Key, e.g. author or pauseOnLostFocus")],
    value: Annotated[str, typer.Argument(help="New value")],
) -> None:
    """Set a preference."""
    config = GlobalConfig.load()
    try:
        config.set(key, value)
        saved = config.save()
    except InvalidInput as e:
        raise fail(e) from None
    except OSError as e:
        raise fail(f"Could not write {config_path()}: {e}") from None
    console.print(f"[green]✓[/] {key} = {config.get(key)}  [dim]({saved})[/]")


@config_app.command("get")
def config_get(
    key: Annotated[str, typer.Argument(help="Key to read")],
) -> None:
    """Print a preference value."""
    try:
        value = GlobalConfig.load().get(key)
    except InvalidInput as e:
        raise fail(e) from None
    console.print(value if value is not None else "[dim](not set)[/]")


@config_app.command("list")
def config_list() -> None:
    """List all preferences."""
    config = GlobalConfig.load()
    table = Table(title="modhatch configuration", show_header=True)
    table.add_column("Section", style="dim")
    table.add_column("Key", style="cyan")
    table.add_column("Value", style="green")
    for section, key, value in config.entries():
        table.add_row(section, key, value)
    console.print(table)
    console.print(f"[dim]{config_path()}[/]")


@config_app.command("path")
def config_path_command() -> None:
    """Print where the config file lives."""
    console.print(str(config_path()))


if __name__ == "__main__":
    app()
