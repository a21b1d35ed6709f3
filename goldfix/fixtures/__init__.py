# Copyright Red Hat
#
# goldfix/fixtures/__init__.py - Golden fixture package
#
# This file is part of the goldfix project.
#
# SPDX-License-Identifier: Apache-2.0
"""
Golden fixture package.

Provides in-memory fixture sets, fixture tree loading, three-way diffs
between fixture sets and the ``GoldenFixtures`` reconciler that compares a
test's output with golden files on disk or updates them. The main entry
points are ``default_config()`` and ``FixtureConfig``.
"""
from .byteset import Diff, DiffEntry, Fixtures
from .config import FixtureConfig, default_config, env_config, flag_config
from .difftypes import DiffKind
from .golden import GoldenFixtures
from .loader import is_dotfile, load_fixture, load_fixtures
from .options import FLAG_DIFF, FLAG_UPDATE, FixtureOptions, parse_flags

__all__ = [
    "Diff",
    "DiffEntry",
    "DiffKind",
    "FLAG_DIFF",
    "FLAG_UPDATE",
    "FixtureConfig",
    "FixtureOptions",
    "Fixtures",
    "GoldenFixtures",
    "default_config",
    "env_config",
    "flag_config",
    "is_dotfile",
    "load_fixture",
    "load_fixtures",
    "parse_flags",
]
