# Copyright Red Hat
#
# tests/fixtures/__init__.py - Golden fixture package tests
#
# This file is part of the goldfix project.
#
# SPDX-License-Identifier: Apache-2.0
