"""Layered key/value configuration for the Test Plan Generator.

This module reads Java-style properties files (or YAML mappings) into an
immutable Configuration object with typed accessors. It is used for both
the generator settings and the Test Plan element defaults.
"""

import re
from collections.abc import Iterator, Mapping
from pathlib import Path
from types import MappingProxyType
from typing import Any, Optional, Union

import yaml

from m4j_gen.exceptions import (
    ConfigMalformedException,
    ConfigNotFoundException,
    ConfigUndefinedException,
    ConfigUnreadableException,
    MissingKeyException,
)

# Values accepted by get_boolean()
TRUE_VALUES = frozenset({"true", "yes", "on", "1"})
FALSE_VALUES = frozenset({"false", "no", "off", "0"})

# File suffixes handled as YAML; everything else is read as properties
YAML_SUFFIXES = frozenset({".yaml", ".yml"})

# Single-character escapes of the properties format
_ESCAPES = {"t": "\t", "n": "\n", "r": "\r", "f": "\f"}

# Unescaped key terminator: "=", ":" or whitespace
_SEPARATOR_PATTERN = re.compile(r"(?<!\\)(?:\\\\)*[=:\s]")

PathLike = Union[str, Path]


class Configuration(Mapping[str, str]):
    """Immutable set of configuration properties.

    Sources are layered in the order given to load(); a key defined by a
    later source replaces the value of an earlier one. Each load() returns
    a new object and never touches a previously returned one.

    In forced-argument mode every typed accessor raises MissingKeyException
    for an absent key. Otherwise a neutral value is returned: "" for
    strings, False for booleans and 0 for numbers.

    Example:
        >>> config = Configuration.load("generator.default.properties")
        >>> config.get_boolean("useForcedArguments")
        False
    """

    def __init__(self, values: Optional[Mapping[str, str]] = None, forced: bool = False) -> None:
        """Initialize configuration.

        Args:
            values: Key/value pairs (copied)
            forced: Whether absent keys are errors
        """
        self._values = MappingProxyType(dict(values or {}))
        self._forced = forced

    @classmethod
    def load(cls, *sources: Optional[PathLike], forced: bool = False) -> "Configuration":
        """Read the given sources into a new Configuration.

        Args:
            *sources: Properties or YAML files, lowest priority first
            forced: Whether absent keys are errors

        Returns:
            New Configuration instance

        Raises:
            ConfigUndefinedException: A source path is None
            ConfigNotFoundException: A source file does not exist
            ConfigUnreadableException: A source file cannot be read
            ConfigMalformedException: A source file has invalid content
        """
        values: dict[str, str] = {}

        for source in sources:
            values.update(cls._read_source(source))

        return cls(values, forced=forced)

    @property
    def forced(self) -> bool:
        """Whether absent keys are errors."""
        return self._forced

    def with_forced(self, forced: bool) -> "Configuration":
        """Return a copy of this configuration with the given mode."""
        return Configuration(self._values, forced=forced)

    def __getitem__(self, key: str) -> str:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"Configuration({dict(self._values)!r}, forced={self._forced})"

    def get_string(self, key: str) -> str:
        """Return the value of key as string.

        Raises:
            MissingKeyException: Key is absent in forced mode
        """
        if key not in self._values:
            return self._missing(key, "")
        return self._values[key]

    def get_boolean(self, key: str) -> bool:
        """Return the value of key as boolean.

        Accepts true/false, yes/no, on/off and 1/0 (case-insensitive).

        Raises:
            MissingKeyException: Key is absent (or empty) in forced mode
            ConfigMalformedException: Value is not a boolean
        """
        value = self._values.get(key, "").strip().lower()
        if not value:
            return self._missing(key, False)

        if value in TRUE_VALUES:
            return True
        if value in FALSE_VALUES:
            return False
        raise ConfigMalformedException(f"Value of '{key}' is not a boolean: '{value}'")

    def get_number(self, key: str) -> float:
        """Return the value of key as float.

        Raises:
            MissingKeyException: Key is absent (or empty) in forced mode
            ConfigMalformedException: Value is not a number
        """
        value = self._values.get(key, "").strip()
        if not value:
            return self._missing(key, 0.0)

        try:
            return float(value)
        except ValueError as e:
            raise ConfigMalformedException(f"Value of '{key}' is not a number: '{value}'") from e

    def get_int(self, key: str) -> int:
        """Return the value of key as integer.

        Raises:
            MissingKeyException: Key is absent (or empty) in forced mode
            ConfigMalformedException: Value is not an integer
        """
        value = self._values.get(key, "").strip()
        if not value:
            return self._missing(key, 0)

        try:
            return int(value)
        except ValueError as e:
            raise ConfigMalformedException(f"Value of '{key}' is not an integer: '{value}'") from e

    def get_section(self, prefix: str) -> dict[str, str]:
        """Return all entries below prefix, with the prefix stripped.

        Entries keep the order in which they were read.

        Example:
            "header_defaults.Accept = */*" with prefix "header_defaults"
            yields {"Accept": "*/*"}
        """
        start = f"{prefix}."
        return {
            key[len(start):]: value
            for key, value in self._values.items()
            if key.startswith(start) and len(key) > len(start)
        }

    def _missing(self, key: str, neutral: Any) -> Any:
        if self._forced:
            raise MissingKeyException(key)
        return neutral

    # === Source readers ===

    @classmethod
    def _read_source(cls, source: Optional[PathLike]) -> dict[str, str]:
        """Read one source file into a flat dictionary."""
        if source is None:
            raise ConfigUndefinedException("Configuration file is undefined")

        path = Path(source)

        if not path.exists():
            raise ConfigNotFoundException(f'Could not find configuration file "{source}"')
        if not path.is_file():
            raise ConfigUnreadableException(
                f'Could not read configuration file "{source}": not a regular file'
            )

        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise ConfigUnreadableException(
                f'Could not read configuration file "{source}": {e}'
            ) from e

        if path.suffix.lower() in YAML_SUFFIXES:
            return cls._parse_yaml(text, str(source))
        return cls._parse_properties(text, str(source))

    @classmethod
    def _parse_yaml(cls, text: str, source: str) -> dict[str, str]:
        """Parse YAML mapping and flatten nested keys with dots."""
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise ConfigMalformedException(f"Invalid YAML syntax in {source}: {e}") from e

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigMalformedException(
                f"Invalid configuration format in {source}: expected dictionary"
            )

        values: dict[str, str] = {}
        cls._flatten(data, "", values)
        return values

    @classmethod
    def _flatten(cls, data: dict, prefix: str, values: dict[str, str]) -> None:
        for key, value in data.items():
            full_key = f"{prefix}{key}"
            if isinstance(value, dict):
                cls._flatten(value, f"{full_key}.", values)
            elif value is None:
                values[full_key] = ""
            elif isinstance(value, bool):
                values[full_key] = "true" if value else "false"
            else:
                values[full_key] = str(value)

    @classmethod
    def _parse_properties(cls, text: str, source: str) -> dict[str, str]:
        """Parse Java properties text.

        Supports "#" and "!" comments, "=", ":" or whitespace separators,
        backslash line continuation and escape sequences.
        """
        values: dict[str, str] = {}

        for line_number, line in cls._logical_lines(text):
            match = _SEPARATOR_PATTERN.search(line)
            if match is None:
                raw_key, raw_value = line, ""
            else:
                raw_key = line[: match.end() - 1]
                rest = line[match.end() - 1:].lstrip(" \t\f")
                if rest[:1] in ("=", ":"):
                    rest = rest[1:]
                raw_value = rest.lstrip(" \t\f")

            key = cls._unescape(raw_key, source, line_number)
            values[key] = cls._unescape(raw_value, source, line_number)

        return values

    @staticmethod
    def _logical_lines(text: str) -> Iterator[tuple[int, str]]:
        """Join continued lines and drop blanks and comments."""
        buffer = ""
        start = 0

        for number, raw in enumerate(text.splitlines(), start=1):
            line = raw.lstrip(" \t\f")
            if not buffer:
                if not line or line[0] in "#!":
                    continue
                start = number

            trailing = len(line) - len(line.rstrip("\\"))
            if trailing % 2 == 1:
                buffer += line[:-1]
                continue

            yield start, buffer + line
            buffer = ""

        if buffer:
            yield start, buffer

    @staticmethod
    def _unescape(value: str, source: str, line_number: int) -> str:
        result = []
        i = 0
        while i < len(value):
            char = value[i]
            if char != "\\" or i + 1 == len(value):
                result.append(char)
                i += 1
                continue

            escaped = value[i + 1]
            if escaped == "u":
                digits = value[i + 2:i + 6]
                if len(digits) != 4 or not all(c in "0123456789abcdefABCDEF" for c in digits):
                    raise ConfigMalformedException(
                        f"Malformed \\uXXXX escape in {source}, line {line_number}"
                    )
                result.append(chr(int(digits, 16)))
                i += 6
            else:
                result.append(_ESCAPES.get(escaped, escaped))
                i += 2

        return "".join(result)
