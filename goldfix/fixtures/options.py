# Copyright Red Hat
#
# goldfix/fixtures/options.py - Golden fixture mode options
#
# This file is part of the goldfix project.
#
# SPDX-License-Identifier: Apache-2.0
"""
Golden fixture mode flags and options.
"""
from dataclasses import dataclass
from typing import Any, Callable, FrozenSet
import logging

from goldfix import GOLDFIX_SUBSYSTEM_CONFIG, GoldfixConfigError

_log = logging.getLogger(__name__)

_log_debug = _log.debug
_log_info = _log.info
_log_warn = _log.warning
_log_error = _log.error


def _log_debug_config(msg, *args, **kwargs):
    """A wrapper for config subsystem debug logs."""
    _log.debug(msg, *args, extra={"subsystem": GOLDFIX_SUBSYSTEM_CONFIG}, **kwargs)


#: Overwrite golden fixtures on disk instead of comparing
FLAG_UPDATE = "update"
#: Render content diffs for changed fixtures in compare failures
FLAG_DIFF = "diff"

_KNOWN_FLAGS = (FLAG_UPDATE, FLAG_DIFF)


def parse_flags(value: str) -> FrozenSet[str]:
    """
    Parse a comma separated mode flag string such as ``"update,diff"``.

    :param value: The flag string. Empty tokens are ignored.
    :type value: ``str``
    :returns: The set of flags present in ``value``.
    :rtype: ``FrozenSet[str]``
    :raises GoldfixConfigError: If ``value`` contains an unknown flag.
    """
    flags = set()
    for token in (value or "").split(","):
        token = token.strip()
        if not token:
            continue
        if token not in _KNOWN_FLAGS:
            raise GoldfixConfigError(f'unknown flag: "{token}"')
        flags.add(token)
    return frozenset(flags)


@dataclass(frozen=True)
class FixtureOptions:
    """
    Effective options for one golden fixture test run.
    """

    #: Update golden fixtures on disk
    update: bool = False
    #: Include content diffs for changed fixtures in compare failures
    show_diff: bool = False

    def __str__(self):
        """
        Return the flag string equivalent to this ``FixtureOptions``.

        :returns: A comma separated flag string.
        :rtype: ``str``
        """
        flags = []
        if self.update:
            flags.append(FLAG_UPDATE)
        if self.show_diff:
            flags.append(FLAG_DIFF)
        return ",".join(flags)

    @classmethod
    def from_flags(cls, value: str) -> "FixtureOptions":
        """
        Initialise ``FixtureOptions`` from a mode flag string.

        :param value: A comma separated flag string.
        :type value: ``str``
        :returns: A new ``FixtureOptions`` instance.
        :rtype: ``FixtureOptions``
        :raises GoldfixConfigError: If ``value`` contains an unknown flag.
        """
        flags = parse_flags(value)
        options = cls(update=FLAG_UPDATE in flags, show_diff=FLAG_DIFF in flags)
        _log_debug_config("Initialised FixtureOptions from flags: %s", repr(options))
        return options


#: Suffix of the option taking an explicit mode flag string
FLAGS_OPTION_SUFFIX = "-flags"


def flags_dest(dest: str) -> str:
    """
    Return the destination attribute of ``--name-flags`` given the
    destination of ``--name``.
    """
    return f"{dest}_flags"


def add_flag_options(add_option: Callable[..., Any], name: str, dest: str):
    """
    Add the ``--name`` and ``--name-flags`` mode flag options using
    ``add_option``: either ``ArgumentParser.add_argument`` or the
    ``addoption`` method of a pytest option group.

    A bare ``--name`` takes no value and selects update mode, so a following
    positional argument is never consumed as a flag string.

    :param add_option: The option registration method.
    :type add_option: ``Callable``
    :param name: The option name without leading dashes.
    :type name: ``str``
    :param dest: The destination attribute for ``--name``.
    :type dest: ``str``
    """
    add_option(
        f"--{name}",
        dest=dest,
        action="store_const",
        const=FLAG_UPDATE,
        default="",
        help="Update golden fixtures to match the test results",
    )
    add_option(
        f"--{name}{FLAGS_OPTION_SUFFIX}",
        dest=flags_dest(dest),
        metavar="FLAGS",
        default="",
        help="Golden fixture mode flags, e.g. 'update,diff'",
    )


__all__ = [
    "FLAG_DIFF",
    "FLAG_UPDATE",
    "FLAGS_OPTION_SUFFIX",
    "add_flag_options",
    "flags_dest",
    "FixtureOptions",
    "parse_flags",
]
