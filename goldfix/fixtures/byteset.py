# Copyright Red Hat
#
# goldfix/fixtures/byteset.py - Golden fixture sets and diffs
#
# This file is part of the goldfix project.
#
# SPDX-License-Identifier: Apache-2.0
"""
In-memory fixture sets and the differences between them.
"""
from typing import Dict, Iterator, List, Optional, Sequence
from collections.abc import Mapping
from dataclasses import dataclass
import logging
import os

from goldfix import GOLDFIX_SUBSYSTEM_FIXTURES, GoldfixDuplicatePathError

from .difftypes import DiffKind

_log = logging.getLogger(__name__)

_log_debug = _log.debug
_log_info = _log.info
_log_warn = _log.warning
_log_error = _log.error


def _log_debug_fixtures(msg, *args, **kwargs):
    """A wrapper for fixtures subsystem debug logs."""
    _log.debug(msg, *args, extra={"subsystem": GOLDFIX_SUBSYSTEM_FIXTURES}, **kwargs)


def fixture_path(*path: str) -> str:
    """
    Join and normalise fixture path segments into a fixture set key.

    Keys always use ``/`` as the separator so that sets built on different
    platforms compare equal.

    :param path: One or more path segments.
    :type path: ``str``
    :returns: The normalised path key.
    :rtype: ``str``
    """
    if not path:
        raise ValueError("At least one path segment is required")
    joined = os.path.normpath(os.path.join(*path))
    return joined.replace(os.sep, "/")


def path_sort_key(path: str) -> bytes:
    """
    Return the sort key for a fixture path: its file system encoding, so
    that names containing undecodable bytes order by their original bytes.

    :param path: The fixture path.
    :type path: ``str``
    :returns: The encoded path.
    :rtype: ``bytes``
    """
    return os.fsencode(path)


@dataclass(frozen=True)
class DiffEntry:
    """
    The difference for one path between two fixture sets.
    """

    #: Path key of the differing fixture
    path: str
    #: How the fixture differs
    kind: DiffKind
    #: Content of the golden fixture, or ``None`` if it is not on disk
    expected: Optional[bytes] = None
    #: Content of the in-memory fixture, or ``None`` if it was not added
    actual: Optional[bytes] = None

    def __str__(self):
        return f"{self.kind.value} file: {self.path}"


class Diff:
    """
    Ordered, read-only sequence of ``DiffEntry`` objects sorted by path.
    """

    def __init__(self, entries: Sequence[DiffEntry] = ()):
        """
        Initialise a new ``Diff`` from ``entries``.

        :param entries: The entries to include. At most one entry is allowed
                        per path.
        :type entries: ``Sequence[DiffEntry]``
        """
        paths = set()
        for entry in entries:
            if entry.path in paths:
                raise ValueError(f"Duplicate diff entry for path: {entry.path}")
            paths.add(entry.path)
        self._entries = tuple(sorted(entries, key=lambda e: path_sort_key(e.path)))

    def __repr__(self) -> str:
        return f"Diff({list(self._entries)!r})"

    def __str__(self) -> str:
        return "\n".join(str(entry) for entry in self._entries)

    # List-like interface
    def __iter__(self) -> Iterator[DiffEntry]:
        """
        Implement iter(self).
        """
        return iter(self._entries)

    def __len__(self):
        """
        Implement len(self).
        """
        return len(self._entries)

    def __getitem__(self, index: int) -> DiffEntry:
        """
        Return self[index]

        :param index: The index to return.
        :type index: ``int``
        """
        return self._entries[index]

    def __eq__(self, other):
        if not isinstance(other, Diff):
            return NotImplemented
        return self._entries == other._entries

    def __hash__(self):
        return hash(self._entries)

    def paths(self) -> List[str]:
        """
        Return the paths in this ``Diff`` in ascending order.

        :returns: Path list.
        :rtype: ``List[str]``
        """
        return [entry.path for entry in self._entries]

    def by_kind(self, kind: DiffKind) -> List[DiffEntry]:
        """
        Return the entries of this ``Diff`` with kind ``kind``.

        :param kind: The kind of entry to select.
        :type kind: ``DiffKind``
        :returns: Matching entries in path order.
        :rtype: ``List[DiffEntry]``
        """
        return [entry for entry in self._entries if entry.kind == kind]

    def without(self, kind: DiffKind) -> "Diff":
        """
        Return a new ``Diff`` with all entries of kind ``kind`` removed.

        :param kind: The kind of entry to drop.
        :type kind: ``DiffKind``
        :returns: The filtered ``Diff``.
        :rtype: ``Diff``
        """
        return Diff([entry for entry in self._entries if entry.kind != kind])

    def summary(self) -> str:
        """
        Return a one line count of entries by kind.

        :returns: A string such as ``"1 missing, 0 changed, 2 unexpected"``.
        :rtype: ``str``
        """
        return ", ".join(
            f"{len(self.by_kind(kind))} {kind.value}"
            for kind in (DiffKind.MISSING, DiffKind.CHANGED, DiffKind.UNEXPECTED)
        )


class Fixtures(Mapping):
    """
    A set of fixture files mapping path keys to their contents.

    The mapping interface is read-only: fixtures are only ever inserted via
    ``add()``, which refuses to overwrite an existing path.
    """

    def __init__(self, data: Optional[Dict[str, bytes]] = None):
        """
        Initialise a new ``Fixtures`` set.

        :param data: Optional initial ``{path: content}`` mapping. Keys are
                     normalised with ``fixture_path()``.
        :type data: ``Optional[Dict[str, bytes]]``
        """
        self._files: Dict[str, bytes] = {}
        for path, content in (data or {}).items():
            self.add(content, path)

    def __getitem__(self, path: str) -> bytes:
        return self._files[path]

    def __iter__(self) -> Iterator[str]:
        return iter(self.paths())

    def __len__(self):
        return len(self._files)

    def __repr__(self) -> str:
        return f"Fixtures({self._files!r})"

    def add(self, data: bytes, *path: str):
        """
        Add a fixture with content ``data`` at the path formed by joining the
        ``path`` segments.

        :param data: The fixture content.
        :type data: ``bytes``
        :param path: One or more path segments.
        :type path: ``str``
        :raises GoldfixDuplicatePathError: If the path is already present.
        """
        if not isinstance(data, (bytes, bytearray, memoryview)):
            raise TypeError(
                f"Fixture data must be bytes, not {type(data).__name__}"
            )
        key = fixture_path(*path)
        if key in self._files:
            raise GoldfixDuplicatePathError(key)
        self._files[key] = bytes(data)

    def paths(self) -> List[str]:
        """
        Return all path keys in ascending order.

        :returns: Sorted path list.
        :rtype: ``List[str]``
        """
        return sorted(self._files, key=path_sort_key)

    def diff(self, other: "Fixtures") -> Diff:
        """
        Compare this set with ``other`` and return the ``Diff``.

        Paths only present in this set are ``MISSING``, paths only present in
        ``other`` are ``UNEXPECTED`` and paths present in both with different
        content are ``CHANGED``. If the sets are equal the returned ``Diff``
        is empty.

        :param other: The golden set to compare against.
        :type other: ``Fixtures``
        :returns: The differences between the two sets.
        :rtype: ``Diff``
        """
        entries = []
        for path, data in self._files.items():
            if path not in other:
                entries.append(DiffEntry(path, DiffKind.MISSING, actual=data))
            elif other[path] != data:
                entries.append(
                    DiffEntry(path, DiffKind.CHANGED, expected=other[path], actual=data)
                )
        for path in other:
            if path not in self._files:
                entries.append(
                    DiffEntry(path, DiffKind.UNEXPECTED, expected=other[path])
                )
        diff = Diff(entries)
        _log_debug_fixtures(
            "Compared %d fixtures with %d fixtures: %s",
            len(self),
            len(other),
            diff.summary(),
        )
        return diff


__all__ = [
    "Diff",
    "DiffEntry",
    "Fixtures",
    "fixture_path",
]
