# Copyright Red Hat
#
# goldfix/fixtures/contentdiff.py - Golden fixture content diffs
#
# This file is part of the goldfix project.
#
# SPDX-License-Identifier: Apache-2.0
"""
Content-aware diff support for rendering changed fixtures.
"""
from typing import List, NamedTuple, Optional
from abc import ABC, abstractmethod
from hashlib import sha256
import logging
import difflib
import codecs
import json
import os

import magic

from goldfix import GOLDFIX_SUBSYSTEM_FIXTURES

_log = logging.getLogger(__name__)

_log_debug = _log.debug
_log_info = _log.info
_log_warn = _log.warning
_log_error = _log.error


def _log_debug_fixtures(msg, *args, **kwargs):
    """A wrapper for fixtures subsystem debug logs."""
    _log.debug(msg, *args, extra={"subsystem": GOLDFIX_SUBSYSTEM_FIXTURES}, **kwargs)


#: Extensions treated as text when libmagic cannot identify content.
_TEXT_EXTENSIONS = (
    ".txt",
    ".md",
    ".rst",
    ".csv",
    ".json",
    ".xml",
    ".yaml",
    ".yml",
    ".toml",
    ".ini",
    ".html",
    ".py",
)

#: Number of leading bytes inspected by the NUL byte heuristic
_SNIFF_SIZE = 8192


class ContentType(NamedTuple):
    """
    Detected content type for a fixture blob.
    """

    mime_type: str
    encoding: str

    @property
    def is_text_like(self) -> bool:
        """
        ``True`` if this content can be rendered as a line diff.
        """
        return self.encoding != "binary" and (
            self.mime_type.startswith("text/")
            or self.mime_type
            in ("application/json", "application/xml", "inode/x-empty")
        )


def _guess_content_type(path: str, data: bytes) -> ContentType:
    """
    Guess a content type from the fixture path and a NUL byte check.

    :param path: The fixture path.
    :type path: ``str``
    :param data: The fixture content.
    :type data: ``bytes``
    :returns: A best-effort ``ContentType``.
    :rtype: ``ContentType``
    """
    if not data:
        return ContentType("inode/x-empty", "binary")
    if b"\x00" in data[:_SNIFF_SIZE]:
        return ContentType("application/octet-stream", "binary")
    ext = os.path.splitext(path)[1].lower()
    if ext == ".json":
        return ContentType("application/json", "utf-8")
    if ext in _TEXT_EXTENSIONS:
        return ContentType("text/plain", "utf-8")
    try:
        data[:_SNIFF_SIZE].decode("utf-8")
    except UnicodeDecodeError:
        return ContentType("application/octet-stream", "binary")
    return ContentType("text/plain", "utf-8")


def detect_content_type(path: str, data: bytes) -> ContentType:
    """
    Detect the content type of ``data`` using libmagic, falling back to a
    path and content based guess if detection fails.

    :param path: The fixture path, used by the fallback guess.
    :type path: ``str``
    :param data: The fixture content.
    :type data: ``bytes``
    :returns: The detected ``ContentType``.
    :rtype: ``ContentType``
    """
    if not data:
        return ContentType("inode/x-empty", "binary")

    # c9s magic does not have magic.error
    if hasattr(magic, "error"):
        magic_errors = (magic.error, OSError, ValueError)
    else:
        magic_errors = (OSError, ValueError)

    try:
        fm = magic.detect_from_content(data)
    except magic_errors as err:
        _log_warn("Error detecting content type for %s: %s", path, err)
        return _guess_content_type(path, data)

    mime_type = fm.mime_type or "application/octet-stream"
    # libmagic reports JSON in text/plain when it is not pretty-printed
    if mime_type == "text/plain" and path.endswith(".json"):
        mime_type = "application/json"
    return ContentType(mime_type, fm.encoding or "binary")


def _decode(data: Optional[bytes], encoding: str) -> str:
    """
    Decode ``data`` using ``encoding``, replacing undecodable bytes.
    """
    if not data:
        return ""
    # UTF-8 is a superset of ASCII and the other side may not be ASCII
    if encoding in ("us-ascii", "binary"):
        encoding = "utf-8"
    try:
        codecs.lookup(encoding)
    except LookupError:
        encoding = "utf-8"
    return data.decode(encoding, errors="replace")


class ContentDiff:
    """
    Represents a content-aware diff between two versions of a fixture.
    """

    def __init__(self, diff_type: str, summary: str = ""):
        """
        Initialise a new ``ContentDiff`` object.

        :param diff_type: The type of diff: 'unified', 'json' or 'binary'.
        :type diff_type: ``str``
        :param summary: A summary of the difference.
        :type summary: ``str``
        """
        self.diff_type = diff_type
        self.diff_data: List[str] = []
        self.summary = summary
        self.has_changes = False

    def __str__(self):
        """
        Render this ``ContentDiff`` for display: the diff lines if present,
        otherwise the summary.

        :returns: A human readable string representing this instance.
        :rtype: ``str``
        """
        if self.diff_data:
            return "\n".join(line.rstrip("\n") for line in self.diff_data)
        return self.summary


class ContentDifferBase(ABC):
    """
    Base class for content-aware diff implementations.
    """

    @abstractmethod
    def can_handle(self, content_type: ContentType) -> bool:
        """
        Return True if this differ can handle the given content type.

        :param content_type: Detected type of the fixture content.
        :type content_type: ``ContentType``
        :returns: ``True`` if this content differ can handle this fixture.
        :rtype: ``bool``
        """

    @abstractmethod
    def generate_diff(
        self,
        path: str,
        expected: Optional[bytes],
        actual: Optional[bytes],
        content_type: ContentType,
    ) -> ContentDiff:
        """
        Generate content diff between the golden and in-memory content.

        :param path: The fixture path.
        :type path: ``str``
        :param expected: The golden content, or ``None``.
        :type expected: ``Optional[bytes]``
        :param actual: The in-memory content, or ``None``.
        :type actual: ``Optional[bytes]``
        :param content_type: Detected type of the fixture content.
        :type content_type: ``ContentType``
        :returns: A diff of the two versions.
        :rtype: ``ContentDiff``
        """

    @property
    @abstractmethod
    def priority(self) -> int:
        """
        Priority for selection when multiple differs match (higher = preferred)

        :returns: Integer priority level.
        :rtype: ``int``
        """


def _unified_diff(path: str, old_lines: List[str], new_lines: List[str]) -> List[str]:
    return list(
        difflib.unified_diff(
            old_lines,
            new_lines,
            fromfile=f"{path} (golden)",
            tofile=f"{path} (got)",
            lineterm="\n",
        )
    )


class TextContentDiffer(ContentDifferBase):
    """
    Default text-based content differ.
    """

    def can_handle(self, content_type: ContentType) -> bool:
        return content_type.is_text_like

    def generate_diff(self, path, expected, actual, content_type) -> ContentDiff:
        """
        Generate unified diff for text fixtures.
        """
        old_lines = _decode(expected, content_type.encoding).splitlines(keepends=True)
        new_lines = _decode(actual, content_type.encoding).splitlines(keepends=True)

        content_diff = ContentDiff("unified")
        content_diff.diff_data = _unified_diff(path, old_lines, new_lines)
        content_diff.has_changes = len(content_diff.diff_data) > 0

        def diff_summary(lines, prefix, desc):
            """
            Generate a summary of diff lines ``lines``.

            :param lines: Lines to summarize.
            :param prefix: Diff prefix ("-" or "+")
            :param desc: Description ("additions" or "deletions")
            """
            count = len(
                [
                    ln
                    for ln in lines
                    if ln.startswith(prefix) and not ln.startswith(3 * prefix)
                ]
            )
            return f"{count} {desc}"

        content_diff.summary = ", ".join(
            (
                diff_summary(content_diff.diff_data, "-", "deletions"),
                diff_summary(content_diff.diff_data, "+", "additions"),
            )
        )
        return content_diff

    @property
    def priority(self) -> int:
        return 10  # Default priority


class JsonContentDiffer(ContentDifferBase):
    """
    JSON-aware content differ.
    """

    def can_handle(self, content_type: ContentType) -> bool:
        return content_type.mime_type.startswith("application/json")

    def generate_diff(self, path, expected, actual, content_type) -> ContentDiff:
        """
        Generate a unified diff of the pretty-printed JSON documents, falling
        back to a plain text diff if either side does not parse.
        """
        if not expected or not actual:
            return TextContentDiffer().generate_diff(
                path, expected, actual, content_type
            )
        try:
            old_pretty = json.dumps(json.loads(expected), indent=2, sort_keys=True)
            new_pretty = json.dumps(json.loads(actual), indent=2, sort_keys=True)
        except ValueError as err:
            _log_debug_fixtures(
                "JsonContentDiffer error parsing %s as JSON (%s), "
                "falling back to TextContentDiffer",
                path,
                err,
            )
            return TextContentDiffer().generate_diff(
                path, expected, actual, content_type
            )

        content_diff = ContentDiff("json")
        content_diff.diff_data = _unified_diff(
            path,
            (old_pretty + "\n").splitlines(keepends=True),
            (new_pretty + "\n").splitlines(keepends=True),
        )
        content_diff.has_changes = len(content_diff.diff_data) > 0
        content_diff.summary = (
            "JSON structure changes detected"
            if content_diff.has_changes
            else "JSON documents are equivalent, formatting changed"
        )
        return content_diff

    @property
    def priority(self) -> int:
        return 50  # Higher than text differ


class BinaryContentDiffer(ContentDifferBase):
    """
    Binary fixture content differ.
    """

    def can_handle(self, content_type: ContentType) -> bool:
        return not content_type.is_text_like

    def generate_diff(self, path, expected, actual, content_type) -> ContentDiff:
        """
        Generate binary diff summary from sizes and content hashes.
        """
        content_diff = ContentDiff("binary")
        old_size = len(expected) if expected is not None else 0
        new_size = len(actual) if actual is not None else 0
        size_diff = new_size - old_size
        content_diff.has_changes = expected != actual

        if size_diff != 0:
            content_diff.summary = (
                f"Binary file ({content_type.mime_type}) size changed by "
                f"{size_diff:+d} bytes"
            )
        elif content_diff.has_changes:
            content_diff.summary = (
                f"Binary file ({content_type.mime_type}) content changed "
                f"(same size), sha256 "
                f"{sha256(expected or b'').hexdigest()[:12]} -> "
                f"{sha256(actual or b'').hexdigest()[:12]}"
            )
        else:
            content_diff.summary = "Binary file unchanged"
        return content_diff

    @property
    def priority(self) -> int:
        return 5  # Lower than text differ


class ContentDifferManager:
    """
    Manager for content-aware diff implementations.
    """

    def __init__(self):
        """
        Initialise a new ``ContentDifferManager`` instance.
        """
        self.differs = []
        self._register_default_differs()

    def _register_default_differs(self):
        """
        Register built-in content differs.
        """
        self.register_differ(JsonContentDiffer())
        self.register_differ(TextContentDiffer())
        self.register_differ(BinaryContentDiffer())

    def register_differ(self, differ: ContentDifferBase):
        """
        Register a new content differ.
        """
        self.differs.append(differ)
        # Sort by priority (highest first)
        self.differs.sort(key=lambda d: d.priority, reverse=True)

    def get_differ(self, content_type: ContentType) -> ContentDifferBase:
        """
        Get the best content differ for a content type.

        :param content_type: The content type to find a differ for.
        :type content_type: ``ContentType``
        :returns: An appropriate differ for ``content_type``.
        :rtype: A ``ContentDifferBase`` subclass.
        """
        for differ in self.differs:
            if differ.can_handle(content_type):
                return differ
        return BinaryContentDiffer()

    def generate_content_diff(
        self, path: str, expected: Optional[bytes], actual: Optional[bytes]
    ) -> ContentDiff:
        """
        Generate content diff for one fixture using the appropriate differ.

        The content type is detected from the in-memory version if present,
        otherwise from the golden version.

        :param path: The fixture path.
        :type path: ``str``
        :param expected: The golden content, or ``None``.
        :type expected: ``Optional[bytes]``
        :param actual: The in-memory content, or ``None``.
        :type actual: ``Optional[bytes]``
        :returns: A diff of the two versions.
        :rtype: ``ContentDiff``
        """
        sample = actual if actual else expected
        content_type = detect_content_type(path, sample or b"")
        if content_type.mime_type == "inode/x-empty" and expected:
            content_type = detect_content_type(path, expected)
        differ = self.get_differ(content_type)
        _log_debug_fixtures(
            "Using %s for %s (mime_type=%s, encoding=%s)",
            differ.__class__.__name__,
            path,
            content_type.mime_type,
            content_type.encoding,
        )
        return differ.generate_diff(path, expected, actual, content_type)

    def render(
        self, path: str, expected: Optional[bytes], actual: Optional[bytes]
    ) -> str:
        """
        Return a display string describing how ``actual`` differs from
        ``expected``.

        :param path: The fixture path.
        :type path: ``str``
        :param expected: The golden content, or ``None``.
        :type expected: ``Optional[bytes]``
        :param actual: The in-memory content, or ``None``.
        :type actual: ``Optional[bytes]``
        :returns: The rendered diff.
        :rtype: ``str``
        """
        return str(self.generate_content_diff(path, expected, actual))


__all__ = [
    "BinaryContentDiffer",
    "ContentDiff",
    "ContentDifferBase",
    "ContentDifferManager",
    "ContentType",
    "JsonContentDiffer",
    "TextContentDiffer",
    "detect_content_type",
]
