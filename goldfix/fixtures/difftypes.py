# Copyright Red Hat
#
# goldfix/fixtures/difftypes.py - Golden fixture diff types
#
# This file is part of the goldfix project.
#
# SPDX-License-Identifier: Apache-2.0
"""
Fixture diff types
"""
from enum import Enum


class DiffKind(Enum):
    """
    Enum for the ways a fixture path can differ between the in-memory set
    and the golden set on disk.
    """

    #: Only present in the in-memory set
    MISSING = "missing"
    #: Only present on disk
    UNEXPECTED = "unexpected"
    #: Present in both with different content
    CHANGED = "changed"
