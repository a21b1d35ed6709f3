# Copyright Red Hat
#
# goldfix/fixtures/config.py - Golden fixture configuration
#
# This file is part of the goldfix project.
#
# SPDX-License-Identifier: Apache-2.0
"""
Golden fixture configuration and update mode sources.
"""
from argparse import ArgumentParser
from configparser import ConfigParser
from dataclasses import dataclass, replace
from typing import Callable, Dict, List, Optional
from os.path import exists, join
import threading
import logging
import sys
import os

from goldfix import (
    DEFAULT_ENV_NAME,
    DEFAULT_FIXTURES_DIR,
    GOLDFIX_SUBSYSTEM_CONFIG,
    GoldfixConfigError,
)

from .byteset import Fixtures
from .golden import GoldenFixtures
from .loader import ExcludeFunc, is_dotfile, load_fixture, load_fixtures
from .options import (
    FLAG_UPDATE,
    FLAGS_OPTION_SUFFIX,
    add_flag_options,
    flags_dest,
    parse_flags,
)

_log = logging.getLogger(__name__)

_log_debug = _log.debug
_log_info = _log.info
_log_warn = _log.warning
_log_error = _log.error


def _log_debug_config(msg, *args, **kwargs):
    """A wrapper for config subsystem debug logs."""
    _log.debug(msg, *args, extra={"subsystem": GOLDFIX_SUBSYSTEM_CONFIG}, **kwargs)


#: Type of mode flag sources: return a comma separated flag string.
FlagsFunc = Callable[[], str]

_GOLDFIX_CFG_SECTION = "fixtures"
_GOLDFIX_CFG_DIR = "dir"
_GOLDFIX_CFG_HINT = "hint"
_GOLDFIX_CFG_IGNORE_UNEXPECTED = "ignore_unexpected"
_GOLDFIX_CFG_ENV = "env"


def _no_flags() -> str:
    return ""


@dataclass(frozen=True)
class FixtureConfig:
    """
    Golden fixture configuration. Most users should use ``default_config()``
    rather than initialising this class directly.
    """

    #: Base directory for input and golden fixtures
    dir: str = ""
    #: Query returning the current mode flags, e.g. ``"update,diff"``. It is
    #: a callable rather than a value so that flags can be read after command
    #: line parsing has happened.
    flags: Optional[FlagsFunc] = None
    #: Message displayed when golden fixtures fail comparison, telling the
    #: user how to update them
    hint: str = ""
    #: Inherited by all ``GoldenFixtures`` created from this config
    ignore_unexpected: bool = False
    #: Called for every on-disk fixture path: return ``True`` to skip it
    exclude: Optional[ExcludeFunc] = None

    def with_defaults(self) -> "FixtureConfig":
        """
        Return a copy of this config with unset fields replaced by their
        defaults.

        :returns: A new ``FixtureConfig`` instance.
        :rtype: ``FixtureConfig``
        """
        return replace(
            self,
            dir=self.dir or DEFAULT_FIXTURES_DIR,
            flags=self.flags or _no_flags,
            exclude=self.exclude or is_dotfile,
        )

    def _flags(self) -> str:
        return self.flags() if self.flags else ""

    def update_requested(self) -> bool:
        """
        Return ``True`` if the mode flags currently request an update of the
        golden fixtures.

        :returns: Whether update mode is enabled.
        :rtype: ``bool``
        :raises GoldfixConfigError: If the mode flags are invalid.
        """
        return FLAG_UPDATE in parse_flags(self._flags())

    def golden_fixtures(self, *path: str) -> GoldenFixtures:
        """
        Return a new ``GoldenFixtures`` for the directory ``path`` inside
        ``self.dir``.

        :param path: Path segments relative to ``self.dir``.
        :type path: ``str``
        :returns: A new, empty ``GoldenFixtures`` instance.
        :rtype: ``GoldenFixtures``
        """
        gf = GoldenFixtures(
            join(self.dir or DEFAULT_FIXTURES_DIR, *path),
            flags=self._flags(),
            hint=self.hint,
            ignore_unexpected=self.ignore_unexpected,
            exclude=self.exclude,
        )
        _log_debug_config("Created %r", gf)
        return gf

    def golden_fixture(self, data: bytes, *path: str):
        """
        Compare (or update) the single golden fixture file at ``path`` inside
        ``self.dir`` with ``data``.

        :param data: The expected file content.
        :type data: ``bytes``
        :param path: Path segments of the fixture file relative to
                     ``self.dir``.
        :type path: ``str``
        :raises GoldfixCompareError: If the fixture does not match.
        """
        gf = self.golden_fixtures(*path)
        gf.ignore_unexpected = True
        gf.add(data)
        gf.test()

    def input_fixtures(self, *path: str) -> Fixtures:
        """
        Load the input fixtures from the directory ``path`` inside
        ``self.dir``.

        :param path: Path segments relative to ``self.dir``.
        :type path: ``str``
        :returns: The loaded fixtures.
        :rtype: ``Fixtures``
        :raises GoldfixLoadError: If the fixtures cannot be read.
        """
        return load_fixtures(
            join(self.dir or DEFAULT_FIXTURES_DIR, *path),
            self.exclude or is_dotfile,
        )

    def input_fixture(self, *path: str) -> bytes:
        """
        Return the content of the input fixture file at ``path`` inside
        ``self.dir``.

        :param path: Path segments relative to ``self.dir``.
        :type path: ``str``
        :returns: The file content.
        :rtype: ``bytes``
        :raises GoldfixLoadError: If the file cannot be read.
        """
        return load_fixture(join(self.dir or DEFAULT_FIXTURES_DIR, *path))

    @classmethod
    def from_file(cls, config_file: str) -> "FixtureConfig":
        """
        Load ``FixtureConfig`` from an INI-style configuration file located at
        ``config_file``::

            [fixtures]
            dir = tests/golden
            env = MYPROJECT_GOLDEN
            ignore_unexpected = no

        Mode flags are read from the environment variable named by ``env``
        (default ``GOLDFIX``).

        :param config_file: path to the configuration file.
        :type config_file: ``str``.
        :returns: A ``FixtureConfig`` initialised from ``config_file``.
        :rtype: ``FixtureConfig``
        :raises GoldfixConfigError: If the file contains invalid values.
        """
        if not exists(config_file):
            return default_config()

        _log_debug_config("Loading configuration from '%s'", config_file)
        cfg = ConfigParser()
        cfg.read([config_file])
        if not cfg.has_section(_GOLDFIX_CFG_SECTION):
            return default_config()

        section = cfg[_GOLDFIX_CFG_SECTION]
        env_name = section.get(_GOLDFIX_CFG_ENV, DEFAULT_ENV_NAME)
        try:
            ignore_unexpected = section.getboolean(
                _GOLDFIX_CFG_IGNORE_UNEXPECTED, fallback=False
            )
        except ValueError as err:
            raise GoldfixConfigError(
                f"Invalid {_GOLDFIX_CFG_IGNORE_UNEXPECTED} value in "
                f"{config_file}: {err}"
            ) from err

        base = env_config(env_name)
        return replace(
            base,
            dir=section.get(_GOLDFIX_CFG_DIR, base.dir),
            hint=section.get(_GOLDFIX_CFG_HINT, base.hint),
            ignore_unexpected=ignore_unexpected,
        )


def env_config(name: str) -> FixtureConfig:
    """
    Return a new ``FixtureConfig`` that reads mode flags from the environment
    variable ``name``, e.g. ``GOLDFIX=update`` or ``GOLDFIX=diff``.

    :param name: The environment variable name.
    :type name: ``str``
    :returns: A new ``FixtureConfig`` instance with defaults applied.
    :rtype: ``FixtureConfig``
    """
    return FixtureConfig(
        flags=lambda: os.environ.get(name, ""),
        hint=f"{name}=update python3 -m pytest",
    ).with_defaults()


def default_config() -> FixtureConfig:
    """
    Return ``env_config(DEFAULT_ENV_NAME)``: the recommended way to
    integrate golden fixtures into a test suite.

    :returns: A new ``FixtureConfig`` instance.
    :rtype: ``FixtureConfig``
    """
    return env_config(DEFAULT_ENV_NAME)


#: Process-wide parser holding registered fixture flags
_flag_parser = ArgumentParser(add_help=False, allow_abbrev=False)
#: Map of registered flag names to their argparse destinations
_flag_dests: Dict[str, str] = {}
_flag_lock = threading.Lock()


def _register_flag(name: str) -> str:
    """
    Register ``--name`` and ``--name-flags`` with the process-wide fixture
    flag parser unless already registered and return the destination
    attribute of ``--name``.
    """
    # Registering the same option twice makes argparse raise, and test
    # modules may be imported concurrently.
    with _flag_lock:
        if name not in _flag_dests:
            dest = f"goldfix_{len(_flag_dests)}"
            add_flag_options(_flag_parser.add_argument, name, dest)
            _flag_dests[name] = dest
            _log_debug_config("Registered fixture flag --%s", name)
        return _flag_dests[name]


def _explicit_flags_arg(arg: str, names: List[str]) -> str:
    """
    Rewrite ``--name=value`` as ``--name-flags=value`` for any registered
    flag ``name``.
    """
    option, sep, value = arg.partition("=")
    if sep and option.startswith("--") and option[2:] in names:
        return f"{option}{FLAGS_OPTION_SUFFIX}={value}"
    return arg


def flag_config(name: str) -> FixtureConfig:
    """
    Return a new ``FixtureConfig`` that reads mode flags from the command
    line of the running process: a bare ``--name`` enables update mode and
    ``--name=update,diff`` or ``--name-flags update,diff`` sets flags
    explicitly.

    Registration is idempotent and thread safe; the command line is parsed
    each time flags are queried. When running under pytest the options must
    also be known to pytest: ``--goldfix`` is registered by the goldfix
    pytest plugin and other names can be added from a ``conftest.py``
    ``pytest_addoption`` hook with ``add_flag_option()`` from
    ``goldfix.fixtures.pytest_plugin``.

    :param name: The option name without leading dashes.
    :type name: ``str``
    :returns: A new ``FixtureConfig`` instance with defaults applied.
    :rtype: ``FixtureConfig``
    """
    dest = _register_flag(name)

    def _flags() -> str:
        with _flag_lock:
            names = list(_flag_dests)
        argv = [_explicit_flags_arg(arg, names) for arg in sys.argv[1:]]
        args, _ = _flag_parser.parse_known_args(argv)
        return getattr(args, flags_dest(dest)) or getattr(args, dest) or ""

    return FixtureConfig(
        flags=_flags,
        hint=f"python3 -m pytest --{name}",
    ).with_defaults()


__all__ = [
    "FixtureConfig",
    "FlagsFunc",
    "default_config",
    "env_config",
    "flag_config",
]
