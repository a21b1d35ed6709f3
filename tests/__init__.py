# Copyright Red Hat
#
# tests/__init__.py - Golden fixture test package
#
# This file is part of the goldfix project.
#
# SPDX-License-Identifier: Apache-2.0
import logging
from os.path import abspath, dirname, join, normpath

log = logging.getLogger()
log.setLevel(logging.DEBUG)
formatter = logging.Formatter('%(asctime)s %(levelname)s %(name)s %(message)s')
file_handler = logging.FileHandler("test.log")
file_handler.setFormatter(formatter)
console_handler = logging.StreamHandler()
console_handler.setFormatter(formatter)
log.addHandler(file_handler)
log.addHandler(console_handler)

#: Static input fixtures shipped with the test suite
TEST_FIXTURES_DIR = normpath(join(dirname(abspath(__file__)), "test-fixtures"))
