"""
Tests for modhatch.identifiers
==============================

Test Organization
-----------------
- TestValidateProjectId: Mod id grammar and reserved ids
- TestPackages: Package validation and path conversion
- TestValidateText: Free text that generated files can hold verbatim
- TestNameDerivation: Class and display names
- TestNeoForgeMajor: versionRange helper
"""

import pytest

from modhatch.errors import InvalidId, InvalidInput, InvalidPackage, InvalidText
from modhatch.identifiers import (
    default_display_name,
    derive_class_name,
    neoforge_major,
    package_to_path,
    to_pascal_case,
    to_path_segments,
    validate_package,
    validate_project_id,
    validate_text,
)


class TestValidateProjectId:
    """Tests for validate_project_id."""

    @pytest.mark.parametrize("value", ["testmod", "my_mod", "a", "mod2", "a_b_c_1"])
    def test_valid_ids(self, value: str) -> None:
        validate_project_id(value)

    @pytest.mark.parametrize(
        "value",
        ["", "TestMod", "1mod", "_mod", "my-mod", "my mod", "mod.id", "modé"],
    )
    def test_invalid_ids(self, value: str) -> None:
        with pytest.raises(InvalidId) as exc_info:
            validate_project_id(value)
        assert exc_info.value.value == value
        assert "^[a-z][a-z0-9_]*$" in str(exc_info.value)

    def test_trailing_newline_is_rejected(self) -> None:
        """The whole string must match, not just a prefix."""
        with pytest.raises(InvalidId):
            validate_project_id("testmod\n")

    @pytest.mark.parametrize("value", ["minecraft", "java", "fabricloader", "neoforge", "forge"])
    def test_reserved_ids(self, value: str) -> None:
        with pytest.raises(InvalidId, match="reserved"):
            validate_project_id(value)

    def test_invalid_id_is_invalid_input(self) -> None:
        """Callers can catch every input error at once."""
        with pytest.raises(InvalidInput):
            validate_project_id("Bad")
        with pytest.raises(ValueError):
            validate_project_id("Bad")


class TestPackages:
    """Tests for package validation and conversion."""

    def test_segments(self) -> None:
        assert to_path_segments("com.example.testmod") == ["com", "example", "testmod"]

    def test_single_segment(self) -> None:
        assert to_path_segments("testmod") == ["testmod"]

    @pytest.mark.parametrize("value", ["", "com..example", ".com", "com."])
    def test_empty_segments(self, value: str) -> None:
        with pytest.raises(InvalidPackage):
            to_path_segments(value)

    def test_package_to_path(self) -> None:
        assert package_to_path("com.example.testmod") == "com/example/testmod"

    @pytest.mark.parametrize("value", ["com.example.testmod", "io.github.me.my_mod", "a.b2"])
    def test_valid_packages(self, value: str) -> None:
        validate_package(value)

    @pytest.mark.parametrize("value", ["Com.example", "com.1example", "com.my-mod", "com..x"])
    def test_invalid_packages(self, value: str) -> None:
        with pytest.raises(InvalidPackage) as exc_info:
            validate_package(value)
        assert exc_info.value.value == value


class TestValidateText:
    """Tests for validate_text."""

    @pytest.mark.parametrize(
        "value",
        ["Test Mod", "Tom O'Brien", "Pipes & <filters>", "100% safe", "Ünïcödé", "{single}", "it's"],
    )
    def test_quotable(self, value: str) -> None:
        validate_text("display name", value)

    @pytest.mark.parametrize(
        "value",
        ['say "hi"', "back\\slash", "$name", "{{ x }}", "a }} b", "end */ here", "x ''' y", "tab\there", "cr\rlf"],
    )
    def test_unquotable(self, value: str) -> None:
        with pytest.raises(InvalidText) as exc_info:
            validate_text("author", value)
        assert exc_info.value.field == "author"
        assert isinstance(exc_info.value, InvalidInput)


class TestNameDerivation:
    """Tests for class and display name derivation."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [("testmod", "Testmod"), ("my_cool_mod", "MyCoolMod"), ("a__b", "AB"), ("mod_2", "Mod2")],
    )
    def test_pascal_case(self, value: str, expected: str) -> None:
        assert to_pascal_case(value) == expected

    def test_class_name(self) -> None:
        assert derive_class_name("testmod") == "TestmodMod"
        assert derive_class_name("my_mod") == "MyModMod"

    def test_display_name(self) -> None:
        assert default_display_name("my_cool_mod") == "My Cool Mod"
        assert default_display_name("testmod") == "Testmod"


class TestNeoForgeMajor:
    """Tests for neoforge_major."""

    def test_three_part_version(self) -> None:
        assert neoforge_major("21.4.156") == "21.4"

    def test_beta_suffix(self) -> None:
        assert neoforge_major("21.5.0-beta") == "21.5"

    def test_single_part(self) -> None:
        assert neoforge_major("21") == "21"
