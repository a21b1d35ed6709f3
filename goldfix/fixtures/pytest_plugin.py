# Copyright Red Hat
#
# goldfix/fixtures/pytest_plugin.py - Golden fixture pytest integration
#
# This file is part of the goldfix project.
#
# SPDX-License-Identifier: Apache-2.0
"""
pytest plugin registering the golden fixture mode flag options.

The plugin is loaded automatically through the ``pytest11`` entry point and
adds ``--goldfix`` and ``--goldfix-flags`` so that ``python3 -m pytest
--goldfix`` works with ``flag_config("goldfix")``. Projects using another
flag name register it from their ``conftest.py``::

    from goldfix.fixtures.pytest_plugin import add_flag_option

    def pytest_addoption(parser):
        add_flag_option(parser, "golden")
"""
import logging

from goldfix import DEFAULT_FLAG_NAME, GOLDFIX_SUBSYSTEM_CONFIG

from .options import add_flag_options

_log = logging.getLogger(__name__)


def _log_debug_config(msg, *args, **kwargs):
    """A wrapper for config subsystem debug logs."""
    _log.debug(msg, *args, extra={"subsystem": GOLDFIX_SUBSYSTEM_CONFIG}, **kwargs)


_PYTEST_GROUP = "goldfix"


def add_flag_option(parser, name):
    """
    Register ``--name`` and ``--name-flags`` with the pytest option parser
    ``parser``.

    :param parser: The ``pytest.Parser`` passed to ``pytest_addoption``.
    :param name: The option name without leading dashes.
    :type name: ``str``
    """
    group = parser.getgroup(_PYTEST_GROUP, "golden fixtures")
    dest = "goldfix_pytest_" + name.replace("-", "_")
    add_flag_options(group.addoption, name, dest)
    _log_debug_config("Registered pytest option --%s", name)


def pytest_addoption(parser):
    """
    pytest hook: register the default golden fixture flag options.
    """
    add_flag_option(parser, DEFAULT_FLAG_NAME)


__all__ = [
    "add_flag_option",
    "pytest_addoption",
]
