"""
Tests for modhatch.state
========================

Test Organization
-----------------
- TestConversions: ProjectSpec <-> ProjectStateRecord
- TestLoadSave: Reading and writing modhatch.toml
- TestCorruptRecords: Every way the file can be unusable
"""

import tomllib
from pathlib import Path

import pytest

from modhatch.errors import StateRecordCorrupt, StateRecordNotFound
from modhatch.models import FeatureKind, Language, ModuleKind, ProjectSpec, VersionKey
from modhatch.state import (
    FORMAT_VERSION,
    dumps_state,
    load_state,
    record_from_spec,
    save_state,
    spec_from_record,
    state_path,
)


VALID = """\
format_version = 1

[project]
mod_id = "testmod"
mod_name = "Test Mod"
package = "com.example.testmod"

[modules]
common = true
fabric = true
neoforge = false
"""


def write_state(root: Path, content: str) -> Path:
    path = state_path(root)
    path.write_text(content, encoding="utf-8")
    return path


class TestConversions:
    """Tests for record_from_spec and spec_from_record."""

    def test_round_trip(self, sample_spec: ProjectSpec) -> None:
        spec = sample_spec.model_copy(
            update={
                "language": Language.KOTLIN,
                "enabled_features": frozenset({FeatureKind.CI}),
                "resolved_versions": {VersionKey.MINECRAFT: "1.21.5"},
            }
        )
        restored = spec_from_record(record_from_spec(spec))

        assert restored.project_id == "testmod"
        assert restored.language is Language.KOTLIN
        assert restored.enabled_modules == spec.enabled_modules
        assert restored.enabled_features == frozenset({FeatureKind.CI})
        assert restored.version(VersionKey.MINECRAFT) == "1.21.5"
        assert restored.version(VersionKey.NEOFORGE) == VersionKey.NEOFORGE.default

    def test_record_flags(self, sample_spec: ProjectSpec) -> None:
        record = record_from_spec(sample_spec)
        assert record.modules.common
        assert record.modules.fabric
        assert record.modules.neoforge
        assert not record.features.ci
        assert record.enabled_modules == frozenset(ModuleKind)


class TestLoadSave:
    """Tests for save_state and load_state."""

    def test_save_and_load(self, tmp_path: Path, sample_spec: ProjectSpec) -> None:
        record = record_from_spec(sample_spec)
        save_state(tmp_path, record)
        assert load_state(tmp_path) == record

    def test_file_is_commented_toml(self, sample_spec: ProjectSpec) -> None:
        text = dumps_state(record_from_spec(sample_spec))
        assert text.startswith("# Managed by modhatch")
        data = tomllib.loads(text)
        assert data["format_version"] == FORMAT_VERSION
        assert data["project"]["mod_id"] == "testmod"
        assert data["modules"] == {"common": True, "fabric": True, "neoforge": True}
        assert data["versions"]["minecraft"] == "1.21.4"

    def test_unchanged_record_not_rewritten(self, tmp_path: Path, sample_spec: ProjectSpec) -> None:
        record = record_from_spec(sample_spec)
        path = save_state(tmp_path, record)
        before = path.stat().st_mtime_ns
        save_state(tmp_path, record)
        assert path.stat().st_mtime_ns == before

    def test_defaults_fill_missing_sections(self, tmp_path: Path) -> None:
        write_state(tmp_path, VALID)
        record = load_state(tmp_path)
        assert record.project.author == "Your Name"
        assert record.project.language is Language.JAVA
        assert record.enabled_modules == frozenset({ModuleKind.COMMON, ModuleKind.FABRIC})
        assert record.enabled_features == frozenset()
        assert record.versions.minecraft == VersionKey.MINECRAFT.default


class TestCorruptRecords:
    """Tests for load_state failures."""

    def test_missing(self, tmp_path: Path) -> None:
        with pytest.raises(StateRecordNotFound, match="modhatch init"):
            load_state(tmp_path)

    def test_invalid_toml(self, tmp_path: Path) -> None:
        write_state(tmp_path, "[project\nmod_id = ")
        with pytest.raises(StateRecordCorrupt, match="invalid TOML"):
            load_state(tmp_path)

    def test_newer_format(self, tmp_path: Path) -> None:
        write_state(tmp_path, VALID.replace("format_version = 1", "format_version = 99"))
        with pytest.raises(StateRecordCorrupt, match="newer"):
            load_state(tmp_path)

    def test_invalid_mod_id(self, tmp_path: Path) -> None:
        write_state(tmp_path, VALID.replace('"testmod"', '"Bad-Id"'))
        with pytest.raises(StateRecordCorrupt, match="project.mod_id"):
            load_state(tmp_path)

    def test_unquotable_mod_name(self, tmp_path: Path) -> None:
        write_state(tmp_path, VALID.replace('"Test Mod"', '"The \\"Best\\" Mod"'))
        with pytest.raises(StateRecordCorrupt, match="project.mod_name"):
            load_state(tmp_path)

    def test_unknown_key(self, tmp_path: Path) -> None:
        write_state(tmp_path, VALID + "forge = true\n")
        with pytest.raises(StateRecordCorrupt, match="modules.forge"):
            load_state(tmp_path)

    def test_missing_project(self, tmp_path: Path) -> None:
        write_state(tmp_path, "format_version = 1\n")
        with pytest.raises(StateRecordCorrupt, match="project"):
            load_state(tmp_path)

    def test_no_loader(self, tmp_path: Path) -> None:
        write_state(tmp_path, VALID.replace("fabric = true", "fabric = false"))
        with pytest.raises(StateRecordCorrupt, match="no loader"):
            load_state(tmp_path)
