"""Unit tests for Configuration."""

from pathlib import Path

import pytest

from m4j_gen.core.configuration import Configuration
from m4j_gen.exceptions import (
    ConfigMalformedException,
    ConfigNotFoundException,
    ConfigUndefinedException,
    ConfigUnreadableException,
    MissingKeyException,
)


class TestConfigurationLoad:
    """Tests for reading configuration sources."""

    def test_load_properties_separators(self, temp_dir: Path):
        """Test '=', ':' and whitespace separators."""
        path = temp_dir / "a.properties"
        path.write_text(
            "# comment\n"
            "! another comment\n"
            "equals = one\n"
            "colon:two\n"
            "space three\n"
            "empty =\n",
            encoding="utf-8",
        )

        config = Configuration.load(path)

        assert dict(config) == {"equals": "one", "colon": "two", "space": "three", "empty": ""}

    def test_load_properties_continuation_and_escapes(self, temp_dir: Path):
        """Test line continuation, escaped separators and unicode escapes."""
        path = temp_dir / "a.properties"
        path.write_text(
            "long = first, \\\n"
            "       second\n"
            "key\\=with\\:separators = value\n"
            "unicode = caf\\u00e9\n"
            "tab = a\\tb\n",
            encoding="utf-8",
        )

        config = Configuration.load(path)

        assert config["long"] == "first, second"
        assert config["key=with:separators"] == "value"
        assert config["unicode"] == "café"
        assert config["tab"] == "a\tb"

    def test_load_yaml_flattens_nested_keys(self, temp_dir: Path):
        """Test YAML sources are flattened into dotted keys."""
        path = temp_dir / "a.yaml"
        path.write_text(
            "useForcedArguments: true\n"
            "thread_group:\n"
            "  num_threads: 10\n"
            "  delay:\n",
            encoding="utf-8",
        )

        config = Configuration.load(path)

        assert config["useForcedArguments"] == "true"
        assert config["thread_group.num_threads"] == "10"
        assert config["thread_group.delay"] == ""

    def test_later_sources_win(self, temp_dir: Path):
        """Test layering of several sources."""
        base = temp_dir / "base.properties"
        base.write_text("a = 1\nb = 2\n", encoding="utf-8")
        override = temp_dir / "override.properties"
        override.write_text("b = 3\n", encoding="utf-8")

        config = Configuration.load(base, override)

        assert config["a"] == "1"
        assert config["b"] == "3"

    def test_load_returns_fresh_objects(self, temp_dir: Path):
        """Test repeated loads never share state."""
        first_path = temp_dir / "first.properties"
        first_path.write_text("a = 1\n", encoding="utf-8")
        second_path = temp_dir / "second.properties"
        second_path.write_text("b = 2\n", encoding="utf-8")

        first = Configuration.load(first_path)
        second = Configuration.load(second_path)

        assert first is not second
        assert "b" not in first
        assert "a" not in second

    def test_configuration_is_immutable(self):
        """Test values cannot be changed after creation."""
        config = Configuration({"a": "1"})

        with pytest.raises(TypeError):
            config._values["a"] = "2"  # noqa: SLF001

    def test_undefined_source(self):
        """Test None as source."""
        with pytest.raises(ConfigUndefinedException):
            Configuration.load(None)

    def test_missing_source(self, temp_dir: Path):
        """Test non-existing file."""
        with pytest.raises(ConfigNotFoundException, match="Could not find configuration file"):
            Configuration.load(temp_dir / "missing.properties")

    def test_directory_source(self, temp_dir: Path):
        """Test a directory is unreadable."""
        with pytest.raises(ConfigUnreadableException):
            Configuration.load(temp_dir)

    def test_malformed_unicode_escape(self, temp_dir: Path):
        """Test broken \\uXXXX escape."""
        path = temp_dir / "a.properties"
        path.write_text("bad = \\u00zz\n", encoding="utf-8")

        with pytest.raises(ConfigMalformedException):
            Configuration.load(path)

    def test_malformed_yaml(self, temp_dir: Path):
        """Test invalid YAML syntax and non-mapping documents."""
        broken = temp_dir / "broken.yaml"
        broken.write_text("a: [1, 2\n", encoding="utf-8")
        listing = temp_dir / "list.yml"
        listing.write_text("- a\n- b\n", encoding="utf-8")

        with pytest.raises(ConfigMalformedException):
            Configuration.load(broken)
        with pytest.raises(ConfigMalformedException):
            Configuration.load(listing)


class TestConfigurationAccessors:
    """Tests for typed accessors in forced and lenient mode."""

    @pytest.fixture
    def values(self):
        return {
            "name": "Shop",
            "flag_yes": "yes",
            "flag_off": "OFF",
            "flag_bad": "maybe",
            "number": "2.5",
            "integer": "42",
            "blank": "",
        }

    def test_typed_values(self, values):
        """Test conversion of present keys."""
        config = Configuration(values)

        assert config.get_string("name") == "Shop"
        assert config.get_boolean("flag_yes") is True
        assert config.get_boolean("flag_off") is False
        assert config.get_number("number") == 2.5
        assert config.get_int("integer") == 42

    def test_lenient_mode_returns_neutral_values(self, values):
        """Test absent keys give "", False and 0 in lenient mode."""
        config = Configuration(values, forced=False)

        assert config.get_string("absent") == ""
        assert config.get_boolean("absent") is False
        assert config.get_number("absent") == 0
        assert config.get_int("blank") == 0

    def test_forced_mode_fails_for_absent_keys(self, values):
        """Test absent keys raise MissingKeyException in forced mode."""
        config = Configuration(values, forced=True)

        with pytest.raises(MissingKeyException) as exc_info:
            config.get_string("absent")
        assert exc_info.value.key == "absent"

        with pytest.raises(MissingKeyException):
            config.get_boolean("blank")
        with pytest.raises(MissingKeyException):
            config.get_number("absent")

    def test_forced_mode_accepts_empty_strings(self, values):
        """Test a defined but empty key is a valid string."""
        config = Configuration(values, forced=True)

        assert config.get_string("blank") == ""

    def test_malformed_values(self, values):
        """Test values of the wrong type."""
        config = Configuration(values)

        with pytest.raises(ConfigMalformedException):
            config.get_boolean("flag_bad")
        with pytest.raises(ConfigMalformedException):
            config.get_number("name")
        with pytest.raises(ConfigMalformedException):
            config.get_int("number")

    def test_with_forced_keeps_values(self, values):
        """Test switching mode creates a new object with same values."""
        lenient = Configuration(values)
        forced = lenient.with_forced(True)

        assert forced.forced is True
        assert lenient.forced is False
        assert dict(forced) == dict(lenient)

    def test_get_section(self):
        """Test prefix selection keeps read order."""
        config = Configuration(
            {
                "header_defaults.Accept": "*/*",
                "header_defaults.User-Agent": "m4j",
                "header_defaultsX": "ignored",
                "other.Accept": "ignored",
            }
        )

        section = config.get_section("header_defaults")

        assert list(section.items()) == [("Accept", "*/*"), ("User-Agent", "m4j")]
