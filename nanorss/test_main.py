#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# Time-stamp: <2026-10-19 23:57:12 krylon>
#
# /data/code/python/nanorss/test_main.py
# created on 19. 10. 2026
# (c) 2026 Benjamin Walkenhorst
#
# This file is part of the nanorss feed reader. It is distributed under the
# terms of the GNU General Public License 3. See the file LICENSE for details
# or find a copy online at https://www.gnu.org/licenses/gpl-3.0

"""
nanorss.test_main

(c) 2026 Benjamin Walkenhorst
"""

import os
import shutil
import unittest
from datetime import datetime
from typing import Final, Optional

from nanorss import common
from nanorss.database import Database
from nanorss.main import DefaultPassword, DefaultUsername, create_default_user
from nanorss.model import User

test_dir: Final[str] = os.path.join(
    "/tmp",
    datetime.now().strftime(f"{common.AppName.lower()}_test_main_%Y%m%d_%H%M%S"))


class TestMain(unittest.TestCase):
    """Test the startup helpers."""

    @classmethod
    def setUpClass(cls) -> None:
        """Prepare the testing environment."""
        common.set_basedir(test_dir)

    @classmethod
    def tearDownClass(cls) -> None:
        """Clean up afterwards."""
        shutil.rmtree(test_dir, ignore_errors=True)

    def test_default_user(self) -> None:
        """Test that the default user is only created in an empty database."""
        with Database(os.path.join(test_dir, "db"), interval=0) as db:
            create_default_user(db)
            user: Optional[User] = db.user_get(DefaultUsername)
            assert user is not None
            self.assertTrue(user.validate_password(DefaultPassword))

            user.set_password("secret")
            db.user_save(user)
            create_default_user(db)
            user = db.user_get(DefaultUsername)
            assert user is not None
            self.assertTrue(user.validate_password("secret"))
            self.assertEqual(db.user_get_all(), [DefaultUsername])

# Local Variables: #
# python-indent: 4 #
# End: #
