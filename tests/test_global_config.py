"""
Tests for modhatch.global_config
================================

The autouse ``user_config_dir`` fixture points ``MODHATCH_CONFIG_DIR`` at a
temporary directory for every test.

Test Organization
-----------------
- TestLocation: Where the config file lives
- TestKeys: Key spellings and value parsing
- TestPersistence: load / save
- TestOptionsTxt: Minecraft options.txt output
"""

from pathlib import Path

import pytest

from modhatch.errors import InvalidInput
from modhatch.global_config import GlobalConfig, config_dir, config_path, normalize_key, parse_bool
from modhatch.models import Language


class TestLocation:
    """Tests for config_dir."""

    def test_env_override(self, user_config_dir: Path) -> None:
        assert config_dir() == user_config_dir
        assert config_path() == user_config_dir / "config.toml"

    def test_xdg(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("MODHATCH_CONFIG_DIR")
        monkeypatch.setattr("sys.platform", "linux")
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
        assert config_dir() == tmp_path / "xdg" / "modhatch"


class TestKeys:
    """Tests for key normalisation and value parsing."""

    @pytest.mark.parametrize(
        ("key", "expected"),
        [
            ("options.auto_jump", "options.auto_jump"),
            ("auto_jump", "options.auto_jump"),
            ("autoJump", "options.auto_jump"),
            ("author", "defaults.author"),
            ("unknown", "unknown"),
        ],
    )
    def test_normalize_key(self, key: str, expected: str) -> None:
        assert normalize_key(key) == expected

    @pytest.mark.parametrize(("value", "expected"), [("YES", True), ("1", True), ("false", False), ("no", False)])
    def test_parse_bool(self, value: str, expected: bool) -> None:
        assert parse_bool(value) is expected

    def test_parse_bool_invalid(self) -> None:
        with pytest.raises(InvalidInput, match="Invalid boolean"):
            parse_bool("maybe")

    def test_set_and_get(self) -> None:
        config = GlobalConfig()
        config.set("pauseOnLostFocus", "true")
        config.set("gamma", "0.5")
        config.set("language", "Kotlin")
        assert config.get("options.pause_on_lost_focus") == "true"
        assert config.get("gamma") == "0.5"
        assert config.defaults.language is Language.KOTLIN

    def test_get_unset(self) -> None:
        assert GlobalConfig().get("author") is None

    def test_unknown_key(self) -> None:
        with pytest.raises(InvalidInput, match="Unknown config key"):
            GlobalConfig().set("render_distance", "12")
        with pytest.raises(InvalidInput):
            GlobalConfig().get("render_distance")

    def test_invalid_values(self) -> None:
        config = GlobalConfig()
        with pytest.raises(InvalidInput, match="language"):
            config.set("language", "scala")
        with pytest.raises(InvalidInput, match="gamma"):
            config.set("gamma", "bright")
        with pytest.raises(InvalidInput, match="author"):
            config.set("author", "back\\slash")
        assert config.get("author") is None

    def test_entries(self) -> None:
        rows = GlobalConfig().entries()
        assert ("Defaults", "author", "(not set)") in rows
        assert ("Client Options", "autoJump", "false") in rows


class TestPersistence:
    """Tests for load and save."""

    def test_missing_file_gives_defaults(self) -> None:
        assert GlobalConfig.load() == GlobalConfig()

    def test_save_and_load(self) -> None:
        config = GlobalConfig()
        config.set("author", "Jane Doe")
        config.set("fullscreen", "no")
        path = config.save()

        assert path == config_path()
        loaded = GlobalConfig.load()
        assert loaded.defaults.author == "Jane Doe"
        assert loaded.options.fullscreen is False

    def test_unset_values_are_not_written(self) -> None:
        path = GlobalConfig().save()
        text = path.read_text(encoding="utf-8")
        assert "author" not in text
        assert "gamma" not in text

    def test_broken_file_gives_defaults(self) -> None:
        path = config_path()
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("[defaults\n", encoding="utf-8")
        assert GlobalConfig.load() == GlobalConfig()


class TestOptionsTxt:
    """Tests for options.txt generation."""

    def test_render(self) -> None:
        config = GlobalConfig()
        config.set("gamma", "1")
        assert config.render_options_txt() == (
            "lang:en_us\n"
            "fullscreen:true\n"
            "pauseOnLostFocus:false\n"
            "autoJump:false\n"
            "reducedDebugInfo:false\n"
            "gamma:1\n"
        )

    def test_copy_does_not_overwrite(self, tmp_path: Path) -> None:
        dest = tmp_path / "run" / "options.txt"
        assert GlobalConfig().copy_options_to(dest)
        dest.write_text("mine\n", encoding="utf-8")
        assert not GlobalConfig().copy_options_to(dest)
        assert dest.read_text(encoding="utf-8") == "mine\n"
