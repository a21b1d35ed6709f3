# Copyright Red Hat
#
# goldfix/command.py - Golden fixture command interface
#
# This file is part of the goldfix project.
#
# SPDX-License-Identifier: Apache-2.0
"""The ``goldfix.command`` module provides the goldfix command line
interface for comparing a directory of test results with a directory of
golden fixtures, and for updating the golden fixtures to match.

The procedural functions ``diff_fixtures()`` and ``update_fixtures()`` may
also be used directly by scripts.
"""
from argparse import ArgumentParser
from os.path import basename
import logging
import errno
import sys
import os

from goldfix import (
    GOLDFIX_DEBUG_FIXTURES,
    GOLDFIX_DEBUG_CONFIG,
    GOLDFIX_DEBUG_COMMAND,
    GOLDFIX_DEBUG_ALL,
    GOLDFIX_SUBSYSTEM_COMMAND,
    GoldfixError,
    GoldfixLoadError,
    SubsystemFilter,
    set_debug_mask,
    __version__,
)
from .fixtures import (
    Diff,
    DiffKind,
    GoldenFixtures,
    FLAG_UPDATE,
    is_dotfile,
    load_fixtures,
)
from .fixtures.byteset import fixture_path
from .fixtures.golden import format_compare_failure

_log = logging.getLogger(__name__)

_log_debug = _log.debug
_log_info = _log.info
_log_warn = _log.warning
_log_error = _log.error


def _log_debug_command(msg, *args, **kwargs):
    """A wrapper for command subsystem debug logs."""
    _log.debug(msg, *args, extra={"subsystem": GOLDFIX_SUBSYSTEM_COMMAND}, **kwargs)


_DEFAULT_LOG_LEVEL = logging.WARNING
_CONSOLE_HANDLER = None

DIFF_CMD = "diff"
UPDATE_CMD = "update"


def _no_exclude(_path):
    return False


def _relative_paths(fixtures, root):
    """
    Return a ``{relative path: content}`` dictionary for ``fixtures`` loaded
    from ``root``.
    """
    return {
        fixture_path(os.path.relpath(path, root)): data
        for path, data in fixtures.items()
    }


def _load_result_fixtures(golden_dir, result_dir, exclude):
    """
    Load the fixtures in ``result_dir`` into a new ``GoldenFixtures`` bound
    to ``golden_dir``. Unlike a golden directory, ``result_dir`` must exist.
    """
    if not os.path.isdir(result_dir):
        raise GoldfixLoadError(
            result_dir, NotADirectoryError(errno.ENOTDIR, "Result directory not found")
        )
    gf = GoldenFixtures(golden_dir, exclude=exclude)
    results = load_fixtures(result_dir, exclude)
    for path, data in _relative_paths(results, result_dir).items():
        gf.add(data, path)
    return gf


def diff_fixtures(
    golden_dir: str,
    result_dir: str,
    ignore_unexpected: bool = False,
    include_dotfiles: bool = False,
) -> Diff:
    """
    Compare the files in ``result_dir`` with the golden fixtures in
    ``golden_dir``.

    :param golden_dir: The golden fixture directory.
    :type golden_dir: ``str``
    :param result_dir: The directory of results to check.
    :type result_dir: ``str``
    :param ignore_unexpected: Ignore golden fixtures with no result.
    :type ignore_unexpected: ``bool``
    :param include_dotfiles: Do not exclude dotfiles.
    :type include_dotfiles: ``bool``
    :returns: The differences, keyed by golden fixture path.
    :rtype: ``Diff``
    :raises GoldfixLoadError: If ``result_dir`` is not a directory.
    """
    exclude = _no_exclude if include_dotfiles else is_dotfile
    gf = _load_result_fixtures(golden_dir, result_dir, exclude)
    gf.ignore_unexpected = ignore_unexpected
    return gf.diff()


def update_fixtures(
    golden_dir: str, result_dir: str, include_dotfiles: bool = False
) -> Diff:
    """
    Update the golden fixtures in ``golden_dir`` to match the files in
    ``result_dir``, removing golden fixtures with no matching result.

    :param golden_dir: The golden fixture directory.
    :type golden_dir: ``str``
    :param result_dir: The directory of results to install.
    :type result_dir: ``str``
    :param include_dotfiles: Do not exclude dotfiles.
    :type include_dotfiles: ``bool``
    :returns: The differences that were applied.
    :rtype: ``Diff``
    :raises GoldfixLoadError: If ``result_dir`` is not a directory.
    :raises GoldfixUpdateError: If any golden fixture could not be updated.
    """
    exclude = _no_exclude if include_dotfiles else is_dotfile
    gf = _load_result_fixtures(golden_dir, result_dir, exclude)
    gf.flags = FLAG_UPDATE
    diff = gf.diff()
    gf.test()
    return diff


def _diff_cmd(cmd_args):
    """
    Diff command handler.

    :param cmd_args: Command line arguments for the command
    :returns: integer status code returned from ``main()``
    """
    diff = diff_fixtures(
        cmd_args.golden_dir,
        cmd_args.result_dir,
        ignore_unexpected=cmd_args.ignore_unexpected,
        include_dotfiles=cmd_args.include_dotfiles,
    )
    if not diff:
        _log_info("Fixtures in %s match %s", cmd_args.result_dir, cmd_args.golden_dir)
        return 0
    hint = f"goldfix update {cmd_args.golden_dir} {cmd_args.result_dir}"
    print(format_compare_failure(diff, hint, show_diff=cmd_args.diff))
    return 1


def _update_cmd(cmd_args):
    """
    Update command handler.

    :param cmd_args: Command line arguments for the command
    :returns: integer status code returned from ``main()``
    """
    diff = update_fixtures(
        cmd_args.golden_dir,
        cmd_args.result_dir,
        include_dotfiles=cmd_args.include_dotfiles,
    )
    for entry in diff:
        verb = "removed" if entry.kind == DiffKind.UNEXPECTED else "updated"
        print(f"{verb} {entry.kind.value} file: {entry.path}")
    _log_info("Applied %d changes (%s)", len(diff), diff.summary())
    return 0


def setup_logging(cmd_args):
    """
    Set up goldfix logging.
    """
    # pylint: disable=global-statement
    global _CONSOLE_HANDLER
    level = _DEFAULT_LOG_LEVEL
    if cmd_args.verbose and cmd_args.verbose > 1:
        level = logging.DEBUG
    elif cmd_args.verbose and cmd_args.verbose > 0:
        level = logging.INFO

    goldfix_log = logging.getLogger("goldfix")
    formatter = logging.Formatter("%(levelname)s - %(message)s")
    goldfix_log.setLevel(level)
    if goldfix_log.hasHandlers():
        goldfix_log.handlers.clear()

    _CONSOLE_HANDLER = logging.StreamHandler(sys.stderr)
    _CONSOLE_HANDLER.setLevel(level)
    _CONSOLE_HANDLER.setFormatter(formatter)
    _CONSOLE_HANDLER.addFilter(SubsystemFilter("goldfix"))

    goldfix_log.addHandler(_CONSOLE_HANDLER)


def shutdown_logging():
    """
    Shut down goldfix logging.
    """
    logging.shutdown()


def set_debug(debug_arg):
    """
    Set debugging mask from command line argument.
    """
    if not debug_arg:
        return

    mask_map = {
        "fixtures": GOLDFIX_DEBUG_FIXTURES,
        "config": GOLDFIX_DEBUG_CONFIG,
        "command": GOLDFIX_DEBUG_COMMAND,
        "all": GOLDFIX_DEBUG_ALL,
    }

    mask = 0
    for name in debug_arg.split(","):
        if name not in mask_map:
            raise ValueError(f"Unknown debug option: {name}")
        mask |= mask_map[name]
    set_debug_mask(mask)


def _add_dir_args(parser):
    """
    Add golden and result directory arguments.
    """
    parser.add_argument(
        "golden_dir",
        metavar="GOLDEN_DIR",
        type=str,
        help="The directory containing golden fixtures",
    )
    parser.add_argument(
        "result_dir",
        metavar="RESULT_DIR",
        type=str,
        help="The directory containing test results",
    )
    parser.add_argument(
        "--include-dotfiles",
        action="store_true",
        help="Do not exclude files whose name begins with '.'",
    )


def main(args):
    """
    Main entry point for goldfix.
    """
    parser = ArgumentParser(description="Golden fixture tool", prog=basename(args[0]))

    # Global arguments
    parser.add_argument(
        "-d",
        "--debug",
        metavar="DEBUGOPTS",
        type=str,
        help="A list of debug options to enable",
    )
    parser.add_argument("-v", "--verbose", help="Enable verbose output", action="count")
    parser.add_argument(
        "-V",
        "--version",
        action="version",
        help="Report the version number of goldfix",
        version=__version__,
    )
    subparser = parser.add_subparsers(dest="command", help="Command")

    diff_parser = subparser.add_parser(
        DIFF_CMD, help="Compare test results with golden fixtures"
    )
    _add_dir_args(diff_parser)
    diff_parser.add_argument(
        "--diff",
        action="store_true",
        help="Show content diffs for changed files",
    )
    diff_parser.add_argument(
        "--ignore-unexpected",
        action="store_true",
        help="Ignore golden fixtures that have no matching result",
    )
    diff_parser.set_defaults(func=_diff_cmd)

    update_parser = subparser.add_parser(
        UPDATE_CMD, help="Update golden fixtures to match test results"
    )
    _add_dir_args(update_parser)
    update_parser.set_defaults(func=_update_cmd)

    cmd_args = parser.parse_args(args[1:])

    status = 1

    try:
        set_debug(cmd_args.debug)
    except ValueError as err:
        print(err)
        parser.print_help()
        return status

    setup_logging(cmd_args)

    _log_debug_command("Parsed %s", " ".join(args[1:]))

    if "func" not in cmd_args:
        parser.print_help()
        return status

    try:
        status = cmd_args.func(cmd_args)
    except KeyboardInterrupt:  # pragma: no cover
        _log_info("Exiting on user cancel")
    except GoldfixError as err:
        _log_error("Command failed: %s", err)

    shutdown_logging()
    return status


def console_main():
    """
    Console script entry point.
    """
    sys.exit(main(sys.argv))


# vim: set et ts=4 sw=4 :
