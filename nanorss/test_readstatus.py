#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# Time-stamp: <2026-10-19 22:27:51 krylon>
#
# /data/code/python/nanorss/test_readstatus.py
# created on 19. 10. 2026
# (c) 2026 Benjamin Walkenhorst
#
# This file is part of the nanorss feed reader. It is distributed under the
# terms of the GNU General Public License 3. See the file LICENSE for details
# or find a copy online at https://www.gnu.org/licenses/gpl-3.0

"""
nanorss.test_readstatus

(c) 2026 Benjamin Walkenhorst
"""

import os
import shutil
import unittest
from datetime import datetime
from typing import Final, Optional
from unittest import mock

from nanorss import common, keys
from nanorss.database import Database
from nanorss.model import FeeditemKey, Feeditem, PagemonitorPage, User, UserPagemonitor
from nanorss.store import Store

test_dir: Final[str] = os.path.join(
    "/tmp",
    datetime.now().strftime(f"{common.AppName.lower()}_test_readstatus_%Y%m%d_%H%M%S"))

item1: Final[FeeditemKey] = FeeditemKey(feed_url="http://feed1", guid="g1")
item2: Final[FeeditemKey] = FeeditemKey(feed_url="http://feed1", guid="g2")
site1: Final[UserPagemonitor] = UserPagemonitor(url="http://site1")


class TestReadStatus(unittest.TestCase):
    """Test keeping track of what Users have read."""

    conn: Optional[Database] = None

    @classmethod
    def setUpClass(cls) -> None:
        """Prepare the testing environment."""
        common.set_basedir(test_dir)
        db: Final[Database] = Database(os.path.join(test_dir, "db"), interval=0)
        cls.conn = db
        for name in ("u01", "u02"):
            db.user_save(User(username=name))
        db.feeditems_save(Feeditem(title="One", key=item1),
                          Feeditem(title="Two", key=item2))
        db.page_save(PagemonitorPage(contents="site", config=site1))

    @classmethod
    def tearDownClass(cls) -> None:
        """Clean up afterwards."""
        if cls.conn is not None:
            cls.conn.close()
        shutil.rmtree(test_dir, ignore_errors=True)

    @classmethod
    def db(cls) -> Database:
        """Return the database."""
        if cls.conn is None:
            raise ValueError("No Database connection exists")
        return cls.conn

    def test_01_set_get(self) -> None:
        """Test marking items as read and unread."""
        db: Final[Database] = self.db()
        u1: Final[User] = User(username="u01")
        subject: Final[bytes] = item1.create_key()

        self.assertFalse(db.readstatus_get(u1, subject))
        self.assertEqual(db.readstatus_get_all(u1), [])

        db.readstatus_set(u1, subject, True)
        db.readstatus_set(u1, subject, True)
        db.readstatus_set(u1, site1.create_key(), True)
        self.assertTrue(db.readstatus_get(u1, subject))
        self.assertEqual(db.readstatus_get_all(u1), [subject, site1.create_key()])
        self.assertFalse(db.readstatus_get(User(username="u02"), subject))

        db.readstatus_set(u1, site1.create_key(), False)
        db.readstatus_set(u1, site1.create_key(), False)
        self.assertFalse(db.readstatus_get(u1, site1.create_key()))
        self.assertEqual(db.readstatus_get_all(u1), [subject])

    def test_02_rename(self) -> None:
        """Test that read statuses follow a User to its new name."""
        db: Final[Database] = self.db()
        user: Optional[User] = db.user_get("u01")
        assert user is not None
        user.set_username("u03")
        db.user_save(user)

        self.assertTrue(db.readstatus_get(user, item1.create_key()))
        self.assertEqual(db.readstatus_get_all(user), [item1.create_key()])
        old: Final[User] = User(username="u01")
        self.assertFalse(db.readstatus_get(old, item1.create_key()))
        self.assertEqual(db.readstatus_get_all(old), [])
        self.assertEqual(db.store.keys(keys.create_readstatus_index_key("u01") + b":"), [])

    def test_03_set_for_all(self) -> None:
        """Test marking a page as unread for everybody."""
        db: Final[Database] = self.db()
        subject: Final[bytes] = site1.create_key()
        db.readstatus_set_for_all(subject, True)
        for name in ("u02", "u03"):
            self.assertTrue(db.readstatus_get(User(username=name), subject))

        db.readstatus_set_for_all(subject, False)
        for name in ("u02", "u03"):
            self.assertFalse(db.readstatus_get(User(username=name), subject))

    def test_04_stale(self) -> None:
        """Test that read statuses of vanished items are removed."""
        db: Final[Database] = self.db()
        u2: Final[User] = User(username="u02")
        db.readstatus_set(u2, item1.create_key(), True)
        db.readstatus_set(u2, item2.create_key(), True)

        db.store.delete(item2.create_key())
        db.delete_stale_read_statuses()

        self.assertEqual(db.readstatus_get_all(u2), [item1.create_key()])
        self.assertFalse(db.readstatus_get(u2, item2.create_key()))
        self.assertEqual(db.readstatus_get_all(User(username="u03")), [item1.create_key()])

    def test_05_rename_many(self) -> None:
        """Test that renaming a User with many read items stays proportional in size."""
        db: Final[Database] = self.db()
        user: Final[User] = User(username="u05")
        db.user_save(user)
        subjects: Final[list[bytes]] = [
            FeeditemKey(feed_url="http://feed3", guid=f"g{i:04d}").create_key()
            for i in range(300)]
        for subject in subjects:
            db.readstatus_set(user, subject, True)

        records: list[int] = []
        real_put = Store.put

        def put(self_: Store, key: bytes, value: bytes) -> None:
            if key.startswith(keys.prefix_of(keys.TxKeyPrefix)):
                records.append(len(value))
            real_put(self_, key, value)

        user.set_username("u06")
        with mock.patch.object(Store, "put", autospec=True, side_effect=put):
            db.user_save(user)

        idx_size: Final[int] = len(db.store.get(keys.create_readstatus_index_key("u06")) or b"")
        self.assertEqual(len(records), 1)
        self.assertLess(records[0], 10 * idx_size)
        self.assertEqual(db.readstatus_get_all(user), subjects)
        self.assertTrue(all(db.readstatus_get(user, s) for s in subjects))
        self.assertEqual(db.readstatus_get_all(User(username="u05")), [])

# Local Variables: #
# python-indent: 4 #
# End: #
