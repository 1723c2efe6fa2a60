"""
modhatch - Multi-Loader Minecraft Mod Scaffolder
================================================

A CLI tool that creates multi-loader Minecraft mod workspaces (a shared
``common`` module plus Fabric and/or NeoForge loader modules) from packaged
templates, and grows them later with ``modhatch add``.

Features
--------
- **One command setup**: mod id, package, loaders and language in one go
- **Live versions**: latest Minecraft, Fabric and NeoForge versions are
  fetched at generation time, with offline fallbacks
- **Incremental**: add a loader, CI or switch to Kotlin after the fact
  without touching the files you already edited

Quick Start
-----------
```bash
pip install modhatch

# Interactive
modhatch init mymod

# Scripted
modhatch init mymod --mod-id mymod --package com.example.mymod --yes
```

Architecture
------------
- ``identifiers``: mod id / package validation and name derivation
- ``versions``: version resolution with network lookup and fallbacks
- ``renderer``: template store and placeholder renderer
- ``plan``: which template goes where
- ``materializer``: file tree writes, relocations and cleanup
- ``patcher``: line-level edits of existing config files
- ``state``: the ``modhatch.toml`` project state record
- ``generator``: the scaffolding engine behind ``init`` and ``add``
- ``cli``: Typer-based command line interface
"""

# =============================================================================
# Package Metadata
# =============================================================================
__version__ = "0.1.0"
__license__ = "MIT"

# =============================================================================
# Public API Exports
# =============================================================================

from modhatch.generator import add_to_project, create_project
from modhatch.models import FeatureKind, Language, ModuleKind, ProjectSpec


__all__ = [
    "FeatureKind",
    "Language",
    "ModuleKind",
    "ProjectSpec",
    "__version__",
    "add_to_project",
    "create_project",
]
