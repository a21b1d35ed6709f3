# Copyright Red Hat
#
# goldfix/fixtures/golden.py - Golden fixture reconciliation
#
# This file is part of the goldfix project.
#
# SPDX-License-Identifier: Apache-2.0
"""
Golden fixture sets: compare in-memory fixtures with those on disk, or
update the fixtures on disk to match.
"""
from typing import List, Optional, Tuple
import tempfile
import logging
import os

from goldfix import (
    GOLDFIX_SUBSYSTEM_FIXTURES,
    FIXTURE_DIR_MODE,
    FIXTURE_FILE_MODE,
    GoldfixCompareError,
    GoldfixUpdateError,
)

from .byteset import Diff, Fixtures, fixture_path
from .contentdiff import ContentDifferManager
from .difftypes import DiffKind
from .loader import ExcludeFunc, is_dotfile, load_fixtures
from .options import FixtureOptions

_log = logging.getLogger(__name__)

_log_debug = _log.debug
_log_info = _log.info
_log_warn = _log.warning
_log_error = _log.error


def _log_debug_fixtures(msg, *args, **kwargs):
    """A wrapper for fixtures subsystem debug logs."""
    _log.debug(msg, *args, extra={"subsystem": GOLDFIX_SUBSYSTEM_FIXTURES}, **kwargs)


def _write_fixture(path: str, data: bytes):
    """
    Atomically replace the file at ``path`` with ``data``. The parent
    directory must exist.

    :param path: The fixture file to write.
    :type path: ``str``
    :param data: The new content.
    :type data: ``bytes``
    """
    fd, tmp_path = tempfile.mkstemp(dir=os.path.dirname(path) or ".", prefix=".tmp_")
    renamed = False
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        os.chmod(tmp_path, FIXTURE_FILE_MODE)
        os.replace(tmp_path, path)
        renamed = True
    finally:
        if not renamed:
            try:
                os.unlink(tmp_path)
            except OSError as err:
                _log_warn("Could not remove temporary file %s: %s", tmp_path, err)


# pylint: disable=too-many-instance-attributes
class GoldenFixtures:
    """
    A set of fixture files that can be compared with the golden fixtures in
    a directory on disk, or used to update them. Most users should create
    instances using ``FixtureConfig.golden_fixtures()``.
    """

    def __init__(
        self,
        dirpath: str,
        flags: str = "",
        hint: str = "",
        ignore_unexpected: bool = False,
        exclude: Optional[ExcludeFunc] = None,
    ):
        """
        Initialise a new ``GoldenFixtures`` object.

        :param dirpath: The golden fixture directory to compare or update.
        :type dirpath: ``str``
        :param flags: Comma separated mode flags (``update``, ``diff``),
                      parsed each time ``test()`` is called.
        :type flags: ``str``
        :param hint: Message appended to compare failures telling the user
                     how to update the golden fixtures.
        :type hint: ``str``
        :param ignore_unexpected: Ignore files found in ``dirpath`` that were
                                  not added to this set.
        :type ignore_unexpected: ``bool``
        :param exclude: Predicate excluding on-disk files from comparison and
                        update. Defaults to ``is_dotfile``.
        :type exclude: ``Optional[Callable[[str], bool]]``
        """
        #: The golden fixture directory
        self.dir = fixture_path(dirpath)
        #: The in-memory fixtures added by the test
        self.fixtures = Fixtures()
        #: Mode flags string
        self.flags = flags
        #: Update hint shown by compare failures
        self.hint = hint
        #: Ignore unexpected files on disk
        self.ignore_unexpected = ignore_unexpected
        #: Exclusion predicate for on-disk files
        self.exclude = exclude or is_dotfile

    def __repr__(self):
        return (
            f"GoldenFixtures({self.dir!r}, flags={self.flags!r}, "
            f"hint={self.hint!r}, ignore_unexpected={self.ignore_unexpected!r})"
        )

    @property
    def options(self) -> FixtureOptions:
        """
        The options parsed from the current mode flags.

        :raises GoldfixConfigError: If ``flags`` contains an unknown flag.
        """
        return FixtureOptions.from_flags(self.flags)

    @property
    def update(self) -> bool:
        """
        ``True`` if ``test()`` will update the golden fixtures.
        """
        return self.options.update

    @property
    def show_diff(self) -> bool:
        """
        ``True`` if compare failures include content diffs.
        """
        return self.options.show_diff

    def add(self, data: bytes, *path: str):
        """
        Add a fixture with content ``data`` at ``path`` relative to the golden
        fixture directory.

        :param data: The fixture content.
        :type data: ``bytes``
        :param path: Path segments relative to ``self.dir``.
        :type path: ``str``
        :raises GoldfixDuplicatePathError: If the path was already added.
        """
        self.fixtures.add(data, self.dir, *path)

    def diff(self) -> Diff:
        """
        Return the differences between the in-memory fixtures and the golden
        fixtures on disk. Unexpected files are dropped if
        ``ignore_unexpected`` is set.

        :returns: The differences found.
        :rtype: ``Diff``
        :raises GoldfixLoadError: If the golden fixtures cannot be read.
        """
        golden = load_fixtures(self.dir, self.exclude)
        diff = self.fixtures.diff(golden)
        if self.ignore_unexpected:
            diff = diff.without(DiffKind.UNEXPECTED)
        return diff

    def test(self):
        """
        Compare the in-memory fixtures with the golden fixtures on disk and
        raise ``GoldfixCompareError`` if they differ. In update mode the
        golden fixtures are instead overwritten to match and an error is only
        raised if the update fails.

        :raises GoldfixConfigError: If the mode flags are invalid.
        :raises GoldfixLoadError: If the golden fixtures cannot be read.
        :raises GoldfixCompareError: If the fixtures differ in compare mode.
        :raises GoldfixUpdateError: If updating any golden fixture fails.
        """
        options = self.options
        diff = self.diff()
        if options.update:
            self._update(diff)
        else:
            self._compare(diff, options)

    def _update(self, diff: Diff):
        """
        Apply ``diff`` to the golden fixture directory. Every entry is
        attempted; failures are collected into a single error.
        """
        failures: List[Tuple[str, str, str]] = []
        for entry in diff:
            if entry.kind == DiffKind.UNEXPECTED:
                _log_info("Removing unexpected golden fixture %s", entry.path)
                try:
                    os.unlink(entry.path)
                except OSError as err:
                    failures.append(("remove", entry.path, str(err)))
                continue

            dirpath = os.path.dirname(entry.path)
            try:
                if dirpath:
                    os.makedirs(dirpath, mode=FIXTURE_DIR_MODE, exist_ok=True)
            except OSError as err:
                failures.append(("mkdir", dirpath, str(err)))
                continue

            _log_info("Writing %s golden fixture %s", entry.kind.value, entry.path)
            try:
                _write_fixture(entry.path, self.fixtures[entry.path])
            except OSError as err:
                failures.append(("write", entry.path, str(err)))

        if failures:
            _log_error(
                "Failed to update %d golden fixtures in %s", len(failures), self.dir
            )
            raise GoldfixUpdateError(failures)
        _log_debug_fixtures("Updated %d golden fixtures in %s", len(diff), self.dir)

    def _compare(self, diff: Diff, options: FixtureOptions):
        """
        Raise ``GoldfixCompareError`` describing ``diff`` unless it is empty.
        """
        if not diff:
            return
        raise GoldfixCompareError(
            format_compare_failure(diff, self.hint, show_diff=options.show_diff),
            diff,
        )


def format_compare_failure(diff: Diff, hint: str, show_diff: bool = False) -> str:
    """
    Format the report for a failed comparison.

    :param diff: The non-empty ``Diff`` to report.
    :type diff: ``Diff``
    :param hint: Command that updates the golden fixtures.
    :type hint: ``str``
    :param show_diff: Render a content diff below each changed fixture.
    :type show_diff: ``bool``
    :returns: The formatted report.
    :rtype: ``str``
    """
    manager = ContentDifferManager() if show_diff else None
    lines = []
    for entry in diff:
        lines.append(str(entry))
        if manager and entry.kind == DiffKind.CHANGED:
            rendered = manager.render(entry.path, entry.expected, entry.actual)
            lines.extend("    " + line for line in rendered.splitlines())
    return (
        f"{len(diff)} errors:\n"
        + "\n".join(lines)
        + f"\n\nrun `{hint}` to automatically update all files above"
    )


__all__ = [
    "GoldenFixtures",
    "format_compare_failure",
]
