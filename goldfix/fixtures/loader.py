# Copyright Red Hat
#
# goldfix/fixtures/loader.py - Golden fixture tree loading
#
# This file is part of the goldfix project.
#
# SPDX-License-Identifier: Apache-2.0
"""
Fixture tree loading support.
"""
from typing import Callable
import logging
import stat
import os

from goldfix import GOLDFIX_SUBSYSTEM_FIXTURES, GoldfixLoadError

from .byteset import Fixtures, fixture_path, path_sort_key

_log = logging.getLogger(__name__)

_log_debug = _log.debug
_log_info = _log.info
_log_warn = _log.warning
_log_error = _log.error


def _log_debug_fixtures(msg, *args, **kwargs):
    """A wrapper for fixtures subsystem debug logs."""
    _log.debug(msg, *args, extra={"subsystem": GOLDFIX_SUBSYSTEM_FIXTURES}, **kwargs)


#: Type of fixture exclusion predicates: return ``True`` to skip a path.
ExcludeFunc = Callable[[str], bool]


def is_dotfile(path: str) -> bool:
    """
    Return ``True`` if the final component of ``path`` starts with a ".".
    Useful for skipping hidden files such as editor swap and undo files.

    :param path: The path to test.
    :type path: ``str``
    :returns: ``True`` if ``path`` names a dotfile.
    :rtype: ``bool``
    """
    return os.path.basename(path).startswith(".")


def load_fixture(path: str) -> bytes:
    """
    Read the complete content of the single fixture file at ``path``.

    :param path: The fixture file to read.
    :type path: ``str``
    :returns: The file content.
    :rtype: ``bytes``
    :raises GoldfixLoadError: If the file cannot be read.
    """
    try:
        with open(path, "rb") as f:
            return f.read()
    except OSError as err:
        raise GoldfixLoadError(path, err) from err


def _add_file(fixtures: Fixtures, file_path: str, exclude: ExcludeFunc) -> bool:
    """
    Add the file at ``file_path`` to ``fixtures`` unless it is excluded or
    is not a regular file.

    :returns: ``True`` if the file was added.
    """
    key = fixture_path(file_path)
    if exclude(key):
        _log_debug_fixtures("Excluding '%s'", key)
        return False
    try:
        file_stat = os.stat(file_path)
    except OSError as err:
        raise GoldfixLoadError(file_path, err) from err
    if not stat.S_ISREG(file_stat.st_mode):
        _log_debug_fixtures("Skipping non-regular file '%s'", key)
        return False
    fixtures.add(load_fixture(file_path), key)
    return True


def load_fixtures(path: str, exclude: ExcludeFunc = is_dotfile) -> Fixtures:
    """
    Load all regular files below ``path`` into a new ``Fixtures`` set.

    Keys are the normalised file paths including ``path`` itself. The
    ``exclude`` predicate is called with the key of every file and skips the
    file if it returns ``True``. A ``path`` that does not exist yields an
    empty set; a ``path`` naming a regular file yields a set containing only
    that file.

    :param path: The fixture directory to load.
    :type path: ``str``
    :param exclude: Exclusion predicate.
    :type exclude: ``Callable[[str], bool]``
    :returns: The loaded fixture set.
    :rtype: ``Fixtures``
    :raises GoldfixLoadError: If any part of the tree cannot be read.
    """
    fixtures = Fixtures()

    try:
        root_stat = os.stat(path)
    except FileNotFoundError:
        _log_debug_fixtures("Fixture path '%s' does not exist", path)
        return fixtures
    except OSError as err:
        raise GoldfixLoadError(path, err) from err

    if not stat.S_ISDIR(root_stat.st_mode):
        _add_file(fixtures, path, exclude)
        return fixtures

    def _walk_error(err: OSError):
        raise GoldfixLoadError(err.filename or path, err) from err

    for root, dirs, files in os.walk(path, onerror=_walk_error):
        dirs.sort(key=path_sort_key)
        for name in sorted(files, key=path_sort_key):
            _add_file(fixtures, os.path.join(root, name), exclude)

    _log_debug_fixtures("Loaded %d fixtures from '%s'", len(fixtures), path)
    return fixtures


__all__ = [
    "ExcludeFunc",
    "is_dotfile",
    "load_fixture",
    "load_fixtures",
]
