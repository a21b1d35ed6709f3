# Copyright Red Hat
#
# tests/fixtures/test_golden.py - Golden fixture reconciliation tests.
#
# This file is part of the goldfix project.
#
# SPDX-License-Identifier: Apache-2.0
from itertools import product
from unittest.mock import patch
import unittest
import tempfile
import logging
import shutil
import stat
import os

from goldfix import (
    GoldfixCompareError,
    GoldfixConfigError,
    GoldfixDuplicatePathError,
    GoldfixUpdateError,
)
from goldfix.fixtures import DiffKind, Fixtures, GoldenFixtures
from goldfix.fixtures import golden
from goldfix.fixtures.golden import format_compare_failure

from ._util import read_tree, write_tree

log = logging.getLogger()

_HINT = "GOLDFIX=update python3 -m pytest"


def _failure(lines):
    return (
        f"{len(lines)} errors:\n"
        + "\n".join(lines)
        + f"\n\nrun `{_HINT}` to automatically update all files above"
    )


class GoldenTestBase(unittest.TestCase):
    def setUp(self):
        log.debug("Preparing %s", self._testMethodName)
        self.tmpdir = tempfile.mkdtemp(prefix="goldfix_test_")
        self.golden = os.path.join(self.tmpdir, "golden")

    def tearDown(self):
        shutil.rmtree(self.tmpdir)

    def _golden_fixtures(self, flags="", ignore_unexpected=False):
        return GoldenFixtures(
            self.golden, flags=flags, hint=_HINT, ignore_unexpected=ignore_unexpected
        )


class TestGoldenFixtures(GoldenTestBase):
    def test_empty_set_empty_dir(self):
        os.makedirs(self.golden)
        self._golden_fixtures().test()

    def test_empty_set_no_dir(self):
        self._golden_fixtures().test()
        self.assertFalse(os.path.exists(self.golden))

    def test_missing_compare(self):
        gf = self._golden_fixtures()
        gf.add(b"X", "a.txt")
        with self.assertRaises(GoldfixCompareError) as cm:
            gf.test()
        self.assertEqual(
            str(cm.exception), _failure([f"missing file: {self.golden}/a.txt"])
        )
        self.assertEqual(len(cm.exception.diff), 1)
        self.assertEqual(cm.exception.diff[0].kind, DiffKind.MISSING)

    def test_compare_error_is_assertion_error(self):
        gf = self._golden_fixtures()
        gf.add(b"X", "a.txt")
        with self.assertRaises(AssertionError):
            gf.test()

    def test_missing_update(self):
        gf = self._golden_fixtures(flags="update")
        gf.add(b"X", "a.txt")
        gf.test()
        self.assertEqual(read_tree(self.golden), {"a.txt": b"X"})

    def test_update_permissions(self):
        gf = self._golden_fixtures(flags="update")
        gf.add(b"X", "sub", "a.txt")
        gf.test()
        sub = os.path.join(self.golden, "sub")
        self.assertEqual(stat.S_IMODE(os.stat(sub).st_mode), 0o700)
        self.assertEqual(
            stat.S_IMODE(os.stat(os.path.join(sub, "a.txt")).st_mode), 0o600
        )

    def test_update_leaves_no_temporary_files(self):
        gf = self._golden_fixtures(flags="update")
        gf.add(b"X", "a.txt")
        gf.test()
        self.assertEqual(os.listdir(self.golden), ["a.txt"])

    def test_changed_compare(self):
        write_tree(self.golden, {"a.txt": b"old"})
        gf = self._golden_fixtures()
        gf.add(b"new", "a.txt")
        with self.assertRaises(GoldfixCompareError) as cm:
            gf.test()
        self.assertEqual(
            str(cm.exception), _failure([f"changed file: {self.golden}/a.txt"])
        )
        entry = cm.exception.diff[0]
        self.assertEqual(entry.expected, b"old")
        self.assertEqual(entry.actual, b"new")

    def test_unexpected_compare(self):
        write_tree(self.golden, {"a.txt": b"X", "b.txt": b"Y"})
        gf = self._golden_fixtures()
        gf.add(b"X", "a.txt")
        with self.assertRaises(GoldfixCompareError) as cm:
            gf.test()
        self.assertEqual(
            str(cm.exception), _failure([f"unexpected file: {self.golden}/b.txt"])
        )

    def test_unexpected_ignored(self):
        write_tree(self.golden, {"a.txt": b"X", "b.txt": b"Y"})
        gf = self._golden_fixtures(ignore_unexpected=True)
        gf.add(b"X", "a.txt")
        gf.test()

    def test_ignore_unexpected_filters_only_unexpected(self):
        write_tree(self.golden, {"a.txt": b"old", "b.txt": b"Y"})
        gf = self._golden_fixtures()
        gf.add(b"new", "a.txt")
        gf.add(b"Z", "c.txt")
        full = gf.diff()
        gf.ignore_unexpected = True
        filtered = gf.diff()
        self.assertEqual(filtered, full.without(DiffKind.UNEXPECTED))
        self.assertEqual(
            [e.kind for e in filtered], [DiffKind.CHANGED, DiffKind.MISSING]
        )

    def test_dotfiles_on_disk_ignored(self):
        write_tree(self.golden, {"a.txt": b"X", ".a.txt.swp": b"junk"})
        gf = self._golden_fixtures()
        gf.add(b"X", "a.txt")
        gf.test()

    def test_update_keeps_dotfiles(self):
        write_tree(self.golden, {".keep": b"", "old.txt": b"old"})
        gf = self._golden_fixtures(flags="update")
        gf.add(b"X", "a.txt")
        gf.test()
        self.assertEqual(read_tree(self.golden), {".keep": b"", "a.txt": b"X"})

    def test_update_ignore_unexpected_keeps_unexpected(self):
        write_tree(self.golden, {"b.txt": b"Y"})
        gf = self._golden_fixtures(flags="update", ignore_unexpected=True)
        gf.add(b"X", "a.txt")
        gf.test()
        self.assertEqual(read_tree(self.golden), {"a.txt": b"X", "b.txt": b"Y"})

    def test_update_idempotent(self):
        write_tree(self.golden, {"a.txt": b"old", "b.txt": b"gone"})

        def _update():
            gf = self._golden_fixtures(flags="update")
            gf.add(b"new", "a.txt")
            gf.add(b"C", "sub", "c.txt")
            gf.test()

        _update()
        first = read_tree(self.golden)
        with patch(
            "goldfix.fixtures.golden._write_fixture", wraps=golden._write_fixture
        ) as write_mock:
            _update()
        write_mock.assert_not_called()
        self.assertEqual(read_tree(self.golden), first)
        self.assertEqual(first, {"a.txt": b"new", "sub/c.txt": b"C"})

        gf = self._golden_fixtures()
        gf.add(b"new", "a.txt")
        gf.add(b"C", "sub/c.txt")
        gf.test()

    def test_add_duplicate(self):
        gf = self._golden_fixtures()
        gf.add(b"X", "a.txt")
        with self.assertRaises(GoldfixDuplicatePathError):
            gf.add(b"Y", "./a.txt")

    def test_options(self):
        gf = self._golden_fixtures(flags="diff,update")
        self.assertTrue(gf.update)
        self.assertTrue(gf.show_diff)
        gf.flags = ""
        self.assertFalse(gf.update)
        self.assertFalse(gf.show_diff)

    def test_invalid_flags_before_disk_access(self):
        gf = self._golden_fixtures(flags="update,invalid")
        gf.add(b"X", "a.txt")
        with patch("goldfix.fixtures.golden.load_fixtures") as load_mock:
            with self.assertRaises(GoldfixConfigError) as cm:
                gf.test()
            load_mock.assert_not_called()
        self.assertEqual(str(cm.exception), 'unknown flag: "invalid"')
        self.assertFalse(os.path.exists(self.golden))

    def test_show_diff(self):
        write_tree(self.golden, {"a.txt": b"line1\nline2\n"})
        gf = self._golden_fixtures(flags="diff")
        gf.add(b"line1\nline2 modified\n", "a.txt")
        with self.assertRaises(GoldfixCompareError) as cm:
            gf.test()
        lines = str(cm.exception).splitlines()
        self.assertEqual(lines[0], "1 errors:")
        self.assertEqual(lines[1], f"changed file: {self.golden}/a.txt")
        self.assertIn("    -line2", lines)
        self.assertIn("    +line2 modified", lines)
        self.assertTrue(
            str(cm.exception).endswith(
                f"run `{_HINT}` to automatically update all files above"
            )
        )

    def test_show_diff_only_for_changed(self):
        gf = self._golden_fixtures(flags="diff")
        gf.add(b"X", "a.txt")
        with self.assertRaises(GoldfixCompareError) as cm:
            gf.test()
        self.assertEqual(
            str(cm.exception), _failure([f"missing file: {self.golden}/a.txt"])
        )

    def test__repr__(self):
        gf = self._golden_fixtures(flags="update")
        self.assertEqual(
            repr(gf),
            f"GoldenFixtures('{self.golden}', flags='update', "
            f"hint='{_HINT}', ignore_unexpected=False)",
        )


class TestGoldenFixturesUpdateErrors(GoldenTestBase):
    def test_update_failures_aggregated(self):
        write_tree(self.golden, {"a.txt": b"old", "c.txt": b"gone"})
        gf = self._golden_fixtures(flags="update")
        gf.add(b"new", "a.txt")
        gf.add(b"B", "b.txt")

        with patch(
            "goldfix.fixtures.golden._write_fixture", side_effect=OSError("disk full")
        ) as write_mock, patch(
            "goldfix.fixtures.golden.os.unlink", side_effect=OSError("read-only")
        ) as unlink_mock:
            with self.assertRaises(GoldfixUpdateError) as cm:
                gf.test()

        self.assertEqual(write_mock.call_count, 2)
        self.assertEqual(unlink_mock.call_count, 1)
        self.assertEqual(
            str(cm.exception),
            "3 errors:\n"
            f"could not write: {self.golden}/a.txt: disk full\n"
            f"could not write: {self.golden}/b.txt: disk full\n"
            f"could not remove: {self.golden}/c.txt: read-only",
        )
        self.assertEqual(
            cm.exception.paths,
            [f"{self.golden}/{name}" for name in ("a.txt", "b.txt", "c.txt")],
        )

    def test_update_mkdir_failure(self):
        gf = self._golden_fixtures(flags="update")
        gf.add(b"X", "sub", "a.txt")
        with patch(
            "goldfix.fixtures.golden.os.makedirs", side_effect=OSError("no space")
        ), patch("goldfix.fixtures.golden._write_fixture") as write_mock:
            with self.assertRaises(GoldfixUpdateError) as cm:
                gf.test()
        write_mock.assert_not_called()
        self.assertEqual(
            str(cm.exception),
            f"1 errors:\ncould not mkdir: {self.golden}/sub: no space",
        )

    def test_update_partial_failure_continues(self):
        gf = self._golden_fixtures(flags="update")
        gf.add(b"A", "a.txt")
        gf.add(b"B", "b.txt")

        real_write = golden._write_fixture

        def _write(path, data):
            if path.endswith("a.txt"):
                raise OSError("bad sector")
            real_write(path, data)

        with patch("goldfix.fixtures.golden._write_fixture", side_effect=_write):
            with self.assertRaises(GoldfixUpdateError) as cm:
                gf.test()
        self.assertEqual(cm.exception.paths, [f"{self.golden}/a.txt"])
        self.assertEqual(read_tree(self.golden), {"b.txt": b"B"})


class TestWriteFixture(GoldenTestBase):
    def setUp(self):
        super().setUp()
        os.makedirs(self.golden)
        self.path = os.path.join(self.golden, "a.txt")

    def test_write_fixture(self):
        golden._write_fixture(self.path, b"X")
        self.assertEqual(read_tree(self.golden), {"a.txt": b"X"})
        self.assertEqual(stat.S_IMODE(os.stat(self.path).st_mode), 0o600)

    def test_write_fixture_replaces(self):
        write_tree(self.golden, {"a.txt": b"old"})
        golden._write_fixture(self.path, b"new")
        self.assertEqual(read_tree(self.golden), {"a.txt": b"new"})

    def test_write_fixture_cleanup_on_any_error(self):
        with patch(
            "goldfix.fixtures.golden.os.replace", side_effect=RuntimeError("boom")
        ):
            with self.assertRaises(RuntimeError):
                golden._write_fixture(self.path, b"X")
        self.assertEqual(os.listdir(self.golden), [])

    def test_write_fixture_cleanup_failure_keeps_error(self):
        with patch(
            "goldfix.fixtures.golden.os.replace", side_effect=OSError("rename failed")
        ), patch(
            "goldfix.fixtures.golden.os.unlink", side_effect=OSError("unlink failed")
        ) as unlink_mock:
            with self.assertRaises(OSError) as cm:
                golden._write_fixture(self.path, b"X")
        unlink_mock.assert_called_once()
        self.assertEqual(str(cm.exception), "rename failed")


class TestGoldenFixturesMatrix(unittest.TestCase):
    """
    Every combination of base, changed, ignore, missing and unexpected
    fixture states: compare, then update, then compare again.
    """

    def _run_case(self, golden, base, changed, ignore, missing, unexpected):
        disk = {}
        added = {}
        if base:
            disk["base.txt"] = b"base"
            disk[".hidden.txt"] = b"hidden"
            added["base.txt"] = b"base"
        if changed:
            disk["changed.txt"] = b"old"
            added["changed.txt"] = b"new"
        if missing:
            added["missing.txt"] = b"missing"
        if unexpected:
            disk["unexpected.txt"] = b"unexpected"

        write_tree(golden, disk)

        def _golden_fixtures(flags):
            gf = GoldenFixtures(
                golden, flags=flags, hint=_HINT, ignore_unexpected=ignore
            )
            for name, data in added.items():
                gf.add(data, name)
            return gf

        want_error = changed or missing or (unexpected and not ignore)
        if want_error:
            with self.assertRaises(GoldfixCompareError):
                _golden_fixtures("").test()
        else:
            _golden_fixtures("").test()

        _golden_fixtures("update").test()
        _golden_fixtures("").test()

        on_disk = read_tree(golden)
        for name, data in added.items():
            self.assertEqual(on_disk[name], data)
        if base:
            self.assertEqual(on_disk[".hidden.txt"], b"hidden")
        self.assertEqual("unexpected.txt" in on_disk, bool(unexpected and ignore))

    def test_state_matrix(self):
        states = ("base", "changed", "ignore", "missing", "unexpected")
        for values in product((False, True), repeat=len(states)):
            case = dict(zip(states, values))
            with self.subTest(**case):
                tmpdir = tempfile.mkdtemp(prefix="goldfix_matrix_")
                try:
                    self._run_case(os.path.join(tmpdir, "golden"), **case)
                finally:
                    shutil.rmtree(tmpdir)


class TestFormatCompareFailure(unittest.TestCase):
    def test_format_compare_failure(self):
        gf = GoldenFixtures("golden")
        gf.add(b"X", "a.txt")
        diff = gf.fixtures.diff(Fixtures({"golden/b.txt": b"Y"}))
        self.assertEqual(
            format_compare_failure(diff, "make update"),
            "2 errors:\n"
            "missing file: golden/a.txt\n"
            "unexpected file: golden/b.txt\n"
            "\n"
            "run `make update` to automatically update all files above",
        )
