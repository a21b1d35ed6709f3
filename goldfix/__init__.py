# Copyright Red Hat
#
# goldfix/__init__.py - Golden fixture package initialisation
#
# This file is part of the goldfix project.
#
# SPDX-License-Identifier: Apache-2.0
"""
Goldfix top-level package.
"""
from ._goldfix import *  # noqa: F401, F403
from ._goldfix import __all__  # noqa: F401

__version__ = "0.1.0"
