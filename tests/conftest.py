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
# Review for correctness and security.

"""
Pytest configuration helpers for rttgraph tests.
"""

from __future__ import annotations

import shutil
import sys

import pytest


def pytest_collection_modifyitems(config, items):  # pylint: disable=unused-argument
    """Skip tests marked ``needs_ping`` when no ping binary is available."""
    if shutil.which("ping") is not None and sys.platform.startswith("linux"):
        return
    skip = pytest.mark.skip(reason="requires the system ping utility on Linux")
    for item in items:
        if "needs_ping" in item.keywords:
            item.add_marker(skip)


def pytest_configure(config):
    config.addinivalue_line("markers", "needs_ping: test runs the real system ping utility")
