# Copyright Red Hat
#
# goldfix/_goldfix.py - Golden fixture global definitions
#
# This file is part of the goldfix project.
#
# SPDX-License-Identifier: Apache-2.0
"""
Global definitions for the top-level goldfix package.
"""
from typing import List, Tuple, TYPE_CHECKING
import logging

if TYPE_CHECKING:
    from .fixtures.byteset import Diff

_log = logging.getLogger("goldfix")

_log_debug = _log.debug
_log_info = _log.info
_log_warn = _log.warning
_log_error = _log.error

# Goldfix debugging subsystem mask (legacy interface)
GOLDFIX_DEBUG_FIXTURES = 1
GOLDFIX_DEBUG_CONFIG = 2
GOLDFIX_DEBUG_COMMAND = 4
GOLDFIX_DEBUG_ALL = (
    GOLDFIX_DEBUG_FIXTURES | GOLDFIX_DEBUG_CONFIG | GOLDFIX_DEBUG_COMMAND
)

# Goldfix debugging subsystem names
GOLDFIX_SUBSYSTEM_FIXTURES = "goldfix.fixtures"
GOLDFIX_SUBSYSTEM_CONFIG = "goldfix.config"
GOLDFIX_SUBSYSTEM_COMMAND = "goldfix.command"

_DEBUG_MASK_TO_SUBSYSTEM = {
    GOLDFIX_DEBUG_FIXTURES: GOLDFIX_SUBSYSTEM_FIXTURES,
    GOLDFIX_DEBUG_CONFIG: GOLDFIX_SUBSYSTEM_CONFIG,
    GOLDFIX_DEBUG_COMMAND: GOLDFIX_SUBSYSTEM_COMMAND,
}

_debug_subsystems = set()

#: Environment variable consulted by ``default_config()``
DEFAULT_ENV_NAME = "GOLDFIX"

#: Command line option registered by the goldfix pytest plugin
DEFAULT_FLAG_NAME = "goldfix"

#: Base directory for input and golden fixtures
DEFAULT_FIXTURES_DIR = "test-fixtures"

#: Permissions for directories created when updating golden fixtures
FIXTURE_DIR_MODE = 0o700

#: Permissions for golden fixture files written on update
FIXTURE_FILE_MODE = 0o600


class SubsystemFilter(logging.Filter):
    """
    Filters DEBUG records based on a set of enabled subsystem names.
    Non-DEBUG records or DEBUG records without a 'subsystem' attribute
    are always passed through.
    """

    def __init__(self, name=""):
        super().__init__(name)
        self.enabled_subsystems = set(_debug_subsystems)

    def filter(self, record):
        # Always pass non-DEBUG messages.
        if record.levelno != logging.DEBUG:
            return True

        # Always pass DEBUG messages that aren't for a specific subsystem.
        if not hasattr(record, "subsystem"):
            return True

        return record.subsystem in self.enabled_subsystems

    def set_debug_subsystems(self, subsystems):
        """Sets the collection of subsystems to allow."""
        self.enabled_subsystems = set(subsystems)


def get_debug_mask():
    """
    Return the current debug mask for the ``goldfix`` package.

    :returns: The current debug mask value
    :rtype: int
    """
    enabled_subsystems = set(_debug_subsystems)
    goldfix_log = logging.getLogger("goldfix")

    for handler in goldfix_log.handlers:
        for f in handler.filters:
            if isinstance(f, SubsystemFilter):
                enabled_subsystems.update(f.enabled_subsystems)

    mask_map = {v: k for k, v in _DEBUG_MASK_TO_SUBSYSTEM.items()}
    mask = 0
    for subsystem_name in enabled_subsystems:
        mask |= mask_map.get(subsystem_name, 0)
    return mask


def set_debug_mask(mask):
    """
    Set the debug mask for the ``goldfix`` package.

    :param mask: the logical OR of the ``GOLDFIX_DEBUG_*``
                 values to log.
    :rtype: None
    """
    # pylint: disable=global-statement
    global _debug_subsystems

    if mask < 0 or mask > GOLDFIX_DEBUG_ALL:
        raise ValueError(f"Invalid goldfix debug mask: {mask}")

    enabled_subsystems = []
    for flag, subsystem_name in _DEBUG_MASK_TO_SUBSYSTEM.items():
        if mask & flag:
            enabled_subsystems.append(subsystem_name)

    goldfix_log = logging.getLogger("goldfix")
    for handler in goldfix_log.handlers:
        for f in handler.filters:
            if isinstance(f, SubsystemFilter):
                f.set_debug_subsystems(enabled_subsystems)

    _debug_subsystems = set(enabled_subsystems)


#
# Goldfix exception types
#


class GoldfixError(Exception):
    """
    Base class for golden fixture errors.
    """


class GoldfixDuplicatePathError(GoldfixError):
    """
    The same fixture path was added twice to one fixture set. This is a
    programming error in the calling test.
    """

    def __init__(self, path: str):
        """
        Initialise a new ``GoldfixDuplicatePathError`` exception.

        :param path: The duplicated fixture path.
        """
        self.path = path
        super().__init__(f"set already has path: {path}")


class GoldfixLoadError(GoldfixError):
    """
    An error reading fixtures from disk other than a missing fixture
    directory.
    """

    def __init__(self, path: str, err: Exception):
        """
        Initialise a new ``GoldfixLoadError`` exception.

        :param path: The path that could not be read.
        :param err: The underlying ``OSError``.
        """
        self.path, self.err = path, err
        super().__init__(f"failed to load fixtures: {path}: {err}")


class GoldfixUpdateError(GoldfixError):
    """
    One or more file system operations failed while updating golden
    fixtures. Every entry of the diff was attempted.
    """

    def __init__(self, failures: List[Tuple[str, str, str]]):
        """
        Initialise a new ``GoldfixUpdateError`` exception.

        :param failures: A list of ``(action, path, reason)`` tuples, one for
                         each failed operation.
        """
        self.failures = list(failures)
        lines = [
            f"could not {action}: {path}: {reason}"
            for action, path, reason in failures
        ]
        super().__init__(f"{len(lines)} errors:\n" + "\n".join(lines))

    @property
    def paths(self) -> List[str]:
        """
        The paths that could not be updated.

        :returns: A list of path strings in failure order.
        :rtype: ``List[str]``
        """
        return [path for _, path, _ in self.failures]


class GoldfixCompareError(GoldfixError, AssertionError):
    """
    In-memory fixtures differ from the golden fixtures on disk and update
    mode is not enabled.
    """

    def __init__(self, msg: str, diff: "Diff"):
        """
        Initialise a new ``GoldfixCompareError`` exception.

        :param msg: The formatted mismatch report.
        :param diff: The ``Diff`` that caused the failure.
        """
        self.diff = diff
        super().__init__(msg)


class GoldfixConfigError(GoldfixError):
    """
    Invalid fixture configuration, for example an unknown mode flag.
    """


__all__ = [
    "GOLDFIX_DEBUG_FIXTURES",
    "GOLDFIX_DEBUG_CONFIG",
    "GOLDFIX_DEBUG_COMMAND",
    "GOLDFIX_DEBUG_ALL",
    # Debug logging - subsystem name interface
    "SubsystemFilter",
    "GOLDFIX_SUBSYSTEM_FIXTURES",
    "GOLDFIX_SUBSYSTEM_CONFIG",
    "GOLDFIX_SUBSYSTEM_COMMAND",
    # Debug logging - legacy interface
    "set_debug_mask",
    "get_debug_mask",
    "DEFAULT_ENV_NAME",
    "DEFAULT_FLAG_NAME",
    "DEFAULT_FIXTURES_DIR",
    "FIXTURE_DIR_MODE",
    "FIXTURE_FILE_MODE",
    "GoldfixError",
    "GoldfixDuplicatePathError",
    "GoldfixLoadError",
    "GoldfixUpdateError",
    "GoldfixCompareError",
    "GoldfixConfigError",
]
