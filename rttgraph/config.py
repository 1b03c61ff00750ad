# Copyright 2025 icecake0141
# SPDX-License-Identifier: Apache-2.0
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# This file was created or modified with the assistance of an AI (Large Language Model).
# Review required for correctness, security, and licensing.

"""
Persistent defaults for rttgraph options.

``~/.rttgraph.conf`` may hold any of the long option names (underscored, e.g.
``interval_ms``) under an INI ``[default]`` section or a YAML ``default:``
mapping. Values given on the command line win over the file; the file wins
over built-in defaults.
"""

import configparser
import logging
import os
from typing import Any, Dict, Iterable, Optional, Tuple

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = os.path.expanduser("~/.rttgraph.conf")

# Option name -> type; "color = false" is the file form of --no-color
_OPTION_TYPES: Dict[str, type] = {
    "host": str,
    "interval_ms": int,
    "timeout_ms": int,
    "history": int,
    "backend": str,
    "ping_command": str,
    "color": bool,
    "log_level": str,
    "log_file": str,
}

_TRUTHY = frozenset(("true", "yes", "1", "on"))
_FALSY = frozenset(("false", "no", "0", "off"))


def _parse_bool(value: str) -> bool:
    word = value.lower()
    if word in _TRUTHY:
        return True
    if word in _FALSY:
        return False
    raise ValueError(f"'{value}' is not a boolean (true/false, yes/no, 1/0, on/off).")


def _coerce_option(name: str, value: Any) -> Any:
    """Convert a file value to the type argparse would have produced for the option."""
    expected = _OPTION_TYPES[name]
    try:
        if expected is bool:
            return value if isinstance(value, bool) else _parse_bool(str(value))
        if expected is int and isinstance(value, bool):
            raise TypeError("boolean is not an integer")
        return value if isinstance(value, expected) else expected(value)
    except (ValueError, TypeError) as exc:
        raise ValueError(f"Option '{name}' in config expects {expected.__name__}, got {value!r}") from exc


def _known_options(items: Iterable[Tuple[str, Any]], path: str) -> Dict[str, Any]:
    options: Dict[str, Any] = {}
    for name, value in items:
        if name not in _OPTION_TYPES:
            logger.warning("Ignoring unknown option '%s' in %s", name, path)
            continue
        if value is None:
            logger.warning("Ignoring option '%s' without a value in %s", name, path)
            continue
        options[name] = _coerce_option(name, value)
    return options


def load_ini_config(path: str) -> Dict[str, Any]:
    """
    Read the ``[default]`` section of an INI file.

    A file without that section yields no options.

    Raises:
        ValueError: The file is unreadable, malformed, or holds a bad value
    """
    parser = configparser.ConfigParser(allow_no_value=True, delimiters=("=", ":"))
    try:
        found = parser.read(path, encoding="utf-8")
    except configparser.Error as exc:
        raise ValueError(f"Invalid config file '{path}': {exc}") from exc

    if not found:
        raise ValueError(f"Config file '{path}' could not be read.")
    if not parser.has_section("default"):
        return {}
    return _known_options(parser.items("default"), path)


def load_yaml_config(path: str) -> Dict[str, Any]:
    """
    Read the ``default:`` mapping of a YAML file.

    Raises:
        ImportError: PyYAML is missing
        ValueError: The file is unreadable, not a mapping, or holds a bad value
    """
    try:
        import yaml  # type: ignore[import-untyped]  # pylint: disable=import-outside-toplevel
    except ImportError as exc:
        raise ImportError("YAML config files need PyYAML: pip install pyyaml") from exc

    try:
        with open(path, "r", encoding="utf-8") as fh:
            document = yaml.safe_load(fh)
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid YAML in config file '{path}': {exc}") from exc
    except OSError as exc:
        raise ValueError(f"Cannot read config file '{path}': {exc}") from exc

    if document is None:
        return {}
    if not isinstance(document, dict):
        raise ValueError(f"Config file '{path}' must be a mapping, not {type(document).__name__}.")

    section = document.get("default") or {}
    if not isinstance(section, dict):
        raise ValueError(f"'default' in '{path}' must be a mapping of option names to values.")
    return _known_options(((str(name), value) for name, value in section.items()), path)


def _is_yaml_file(path: str) -> bool:
    """INI if the first meaningful line is a ``[section]`` header, YAML otherwise."""
    try:
        with open(path, "r", encoding="utf-8") as fh:
            for line in fh:
                text = line.strip()
                if text and not text.startswith(("#", ";")):
                    return not text.startswith("[")
    except OSError:
        return False
    return False


def load_config(path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load option defaults from ``path`` (``~/.rttgraph.conf`` by default).

    A missing file is not an error and yields no options.
    """
    if path is None:
        path = DEFAULT_CONFIG_PATH

    if not os.path.exists(path):
        return {}

    if _is_yaml_file(path):
        logger.debug("Reading YAML config %s", path)
        return load_yaml_config(path)

    logger.debug("Reading INI config %s", path)
    return load_ini_config(path)
