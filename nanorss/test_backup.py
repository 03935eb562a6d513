#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# Time-stamp: <2026-10-19 22:58:30 krylon>
#
# /data/code/python/nanorss/test_backup.py
# created on 19. 10. 2026
# (c) 2026 Benjamin Walkenhorst
#
# This file is part of the nanorss feed reader. It is distributed under the
# terms of the GNU General Public License 3. See the file LICENSE for details
# or find a copy online at https://www.gnu.org/licenses/gpl-3.0

"""
nanorss.test_backup

(c) 2026 Benjamin Walkenhorst
"""

import json
import os
import shutil
import unittest
from datetime import datetime, timedelta, timezone
from typing import Any, Final

from nanorss import common
from nanorss.backup import ZeroTime, backup, format_time, parse_time, restore
from nanorss.common import InvalidError
from nanorss.database import AggregateError, Database
from nanorss.model import (FeeditemKey, Feeditem, PagemonitorPage, User,
                           UserPagemonitor)

test_dir: Final[str] = os.path.join(
    "/tmp",
    datetime.now().strftime(f"{common.AppName.lower()}_test_backup_%Y%m%d_%H%M%S"))

opml: Final[str] = """<?xml version="1.0" encoding="UTF-8"?>
<opml version="1.0"><body><outline text="Feed 1" xmlUrl="http://feed1"/></body></opml>"""

pages: Final[str] = """<pages><page url="http://site1" match="m1" replace="r1"/></pages>"""


def dump_items(db: Database) -> list[Feeditem]:
    """Return all feed items, in key order."""
    items: list[Feeditem] = []

    def collect(_key: bytes, item: Feeditem) -> bool:
        items.append(item)
        return True

    db.feeditem_read_all(collect)
    return items


def dump_pages(db: Database) -> list[PagemonitorPage]:
    """Return all pages, in key order."""
    result: list[PagemonitorPage] = []

    def collect(_key: bytes, page: PagemonitorPage) -> bool:
        result.append(page)
        return True

    db.page_read_all(collect)
    return result


class TestBackup(unittest.TestCase):
    """Test backing up and restoring a Database."""

    @classmethod
    def setUpClass(cls) -> None:
        """Prepare the testing environment."""
        common.set_basedir(test_dir)

    @classmethod
    def tearDownClass(cls) -> None:
        """Clean up afterwards."""
        shutil.rmtree(test_dir, ignore_errors=True)

    def populate(self, db: Database) -> None:
        """Fill <db> with two users, three items, two pages and some config."""
        u1: Final[User] = User(username="u01", opml=opml, pagemonitor=pages)
        u1.set_password("pass1")
        db.user_save(u1)
        u2: Final[User] = User(username="u02")
        db.user_save(u2)

        plus2: Final[timezone] = timezone(timedelta(hours=2))
        g1: Final[FeeditemKey] = FeeditemKey(feed_url="http://feed1", guid="g1")
        g2: Final[FeeditemKey] = FeeditemKey(feed_url="http://feed1", guid="g2")
        g3: Final[FeeditemKey] = FeeditemKey(feed_url="http://feed2", guid="g1")
        db.feeditems_save(
            Feeditem(title="One", url="http://feed1/1", contents="<p>one</p>",
                     date=datetime(2026, 10, 18, 9, 30, 15, 250, tzinfo=plus2), key=g1),
            Feeditem(title="Two", url="http://feed1/2", contents="two", key=g2),
            Feeditem(title="Three", url="http://feed2/1", contents="three",
                     date=datetime(2026, 10, 17, tzinfo=timezone.utc), key=g3),
        )

        site1: Final[UserPagemonitor] = UserPagemonitor(url="http://site1", match="m1", replace="r1")
        site2: Final[UserPagemonitor] = UserPagemonitor(url="http://site2")
        db.page_save(PagemonitorPage(contents="site one", delta="+site one\n", config=site1))
        db.page_save(PagemonitorPage(contents="site two", config=site2))

        db.config_set("k1", "v1")
        db.config_set("k2", "v2")

        db.readstatus_set(u1, g2.create_key(), True)
        db.readstatus_set(u1, g1.create_key(), True)
        db.readstatus_set(u1, site1.create_key(), True)
        db.readstatus_set(u2, g3.create_key(), True)

    def test_round_trip(self) -> None:
        """Test that restoring a backup into an empty Database reproduces the original."""
        with Database(os.path.join(test_dir, "src"), interval=0) as src, \
                Database(os.path.join(test_dir, "dst"), interval=0) as dst:
            self.populate(src)
            text: Final[str] = backup(src)
            restore(dst, text)

            self.assertEqual(sorted(dst.user_get_all()), ["u01", "u02"])
            for name in ("u01", "u02"):
                self.assertEqual(dst.user_get(name), src.user_get(name))
                user = User(username=name)
                self.assertEqual(dst.readstatus_get_all(user), src.readstatus_get_all(user))

            u1 = dst.user_get("u01")
            assert u1 is not None
            self.assertTrue(u1.validate_password("pass1"))

            self.assertEqual(dump_items(dst), dump_items(src))
            self.assertEqual([i.key for i in dump_items(dst)], [i.key for i in dump_items(src)])
            self.assertEqual(dump_pages(dst), dump_pages(src))
            self.assertEqual([p.config for p in dump_pages(dst)],
                             [p.config for p in dump_pages(src)])
            self.assertEqual(dst.config_get_all(), {"k1": "v1", "k2": "v2"})

            self.assertEqual(sorted(i.title for i in dst.feeditem_get_for_user(u1)),
                             ["One", "Two"])

    def test_format(self) -> None:
        """Test the layout of the backup."""
        with Database(os.path.join(test_dir, "format"), interval=0) as db:
            self.populate(db)
            data: Final[dict[str, Any]] = json.loads(backup(db))

        self.assertEqual(list(data.keys()), ["Users", "Feeds", "Pagemonitor", "ServerConfig"])
        u1: Final[dict[str, Any]] = data["Users"][0]
        self.assertEqual(u1["Username"], "u01")
        self.assertEqual(len(u1["ReadItems"]), 3)
        self.assertEqual(u1["ReadItems"][0], "feeditem:http%3A%2F%2Ffeed1:g2")

        item: Final[dict[str, Any]] = data["Feeds"][0]
        self.assertEqual(item["FeedURL"], "http://feed1")
        self.assertEqual(item["GUID"], "g1")
        self.assertEqual(item["Date"], "2026-10-18T07:30:15.000250Z")

        page: Final[dict[str, Any]] = data["Pagemonitor"][0]
        self.assertEqual((page["URL"], page["Match"], page["Replace"]),
                         ("http://site1", "m1", "r1"))
        self.assertEqual(data["ServerConfig"], {"k1": "v1", "k2": "v2"})

    def test_times(self) -> None:
        """Test formatting and parsing timestamps."""
        self.assertEqual(format_time(None), ZeroTime)
        self.assertIsNone(parse_time(ZeroTime))
        self.assertIsNone(parse_time(""))
        self.assertEqual(format_time(datetime(2026, 1, 2, 3, 4, 5)), "2026-01-02T03:04:05Z")
        self.assertEqual(parse_time("2026-01-02T03:04:05Z"),
                         datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc))
        with self.assertRaises(InvalidError):
            parse_time("yesterday")

    def test_restore_errors(self) -> None:
        """Test that bad records do not keep the rest from being restored."""
        text: Final[str] = json.dumps({
            "Users": [{"Username": ""}, {"Username": "u05"}],
            "Feeds": [
                {"FeedURL": "http://feed1", "GUID": "g1", "Title": "One"},
                {"FeedURL": "http://feed1", "GUID": "http://example.com/" + "a/" * 300},
                {"FeedURL": "http://feed1", "GUID": "g2", "Title": "Two"},
                {"FeedURL": "http://feed2", "GUID": "g1", "Title": "Three"},
            ],
            "Pagemonitor": [{"URL": "http://site1", "Updated": "garbage"}],
            "ServerConfig": {"k1": "v1"},
        })
        with Database(os.path.join(test_dir, "errors"), interval=0) as db:
            with self.assertRaises(InvalidError):
                restore(db, "{not json")

            with self.assertRaises(AggregateError) as ctx:
                restore(db, text)
            self.assertEqual(len(ctx.exception.failures), 3)
            self.assertEqual(db.user_get_all(), ["u05"])
            for feed_url, guid, title in (("http://feed1", "g1", "One"),
                                          ("http://feed1", "g2", "Two"),
                                          ("http://feed2", "g1", "Three")):
                item = db.feeditem_get(FeeditemKey(feed_url=feed_url, guid=guid))
                assert item is not None
                self.assertEqual(item.title, title)
            self.assertEqual(db.config_get_all(), {"k1": "v1"})

# Local Variables: #
# python-indent: 4 #
# End: #
