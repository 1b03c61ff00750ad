#!/usr/bin/env python3
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
"""Tests that runtime dependencies are declared and installed for default setups."""

import re
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[2]
RUNTIME_REQUIREMENTS = ("readchar", "PyYAML", "scapy")


def _requirement_names(lines):
    names = []
    for line in lines:
        stripped = line.split("#", 1)[0].strip()
        if stripped:
            names.append(re.split(r"[<>=!~\[; ]", stripped, maxsplit=1)[0].lower())
    return names


def test_default_venv_installs_runtime_requirements() -> None:
    """Ensure default venv setup installs runtime dependencies."""
    makefile_path = REPO_ROOT / "Makefile"
    requirements_path = REPO_ROOT / "requirements.txt"
    assert requirements_path.is_file(), "requirements.txt not found in repository root."
    lines = makefile_path.read_text(encoding="utf-8").splitlines()
    target_index = next((index for index, line in enumerate(lines) if line.strip() == "$(VENV):"), None)
    assert target_index is not None, "Expected $(VENV) target not found in Makefile."
    recipe_lines = []
    for line in lines[target_index + 1 :]:
        if line.startswith("\t"):
            recipe_lines.append(line)
            continue
        if line.strip() == "":
            continue
        break
    pattern = r"\$\(VENV\)/bin/pip\s+install\b[^\n]*requirements\.txt"
    assert re.search(pattern, "\n".join(recipe_lines)), "Expected runtime requirements to be installed in $(VENV) target."


def test_requirements_list_runtime_libraries() -> None:
    """requirements.txt and pyproject.toml agree on the runtime libraries."""
    requirements = _requirement_names((REPO_ROOT / "requirements.txt").read_text(encoding="utf-8").splitlines())
    pyproject = (REPO_ROOT / "pyproject.toml").read_text(encoding="utf-8").lower()
    for name in RUNTIME_REQUIREMENTS:
        assert name.lower() in requirements, f"{name} missing from requirements.txt"
        assert f'"{name.lower()}' in pyproject, f"{name} missing from pyproject.toml"
