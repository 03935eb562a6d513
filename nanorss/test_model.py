#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# Time-stamp: <2026-10-19 21:58:02 krylon>
#
# /data/code/python/nanorss/test_model.py
# created on 19. 10. 2026
# (c) 2026 Benjamin Walkenhorst
#
# This file is part of the nanorss feed reader. It is distributed under the
# terms of the GNU General Public License 3. See the file LICENSE for details
# or find a copy online at https://www.gnu.org/licenses/gpl-3.0

"""
nanorss.test_model

(c) 2026 Benjamin Walkenhorst
"""

import json
import unittest
from datetime import datetime, timedelta, timezone
from typing import Final

from nanorss.common import InvalidError
from nanorss.model import (FeeditemKey, Feeditem, FetchStatus, PagemonitorPage,
                           User, UserFeed, UserPagemonitor)

opml_nested: Final[str] = """<?xml version="1.0" encoding="UTF-8"?>
<opml version="1.0">
  <head><title>Subscriptions</title></head>
  <body>
    <outline text="News" title="News">
      <outline text="Feed 1" title="Feed 1" type="rss" xmlUrl="http://feed1"/>
      <outline text="Only text" type="rss" xmlUrl="http://feed2"/>
    </outline>
    <outline text="Top level" title="Top" type="rss" xmlUrl="http://feed3"/>
  </body>
</opml>
"""

pages_doc: Final[str] = """<pages>
  <page url="http://site1" match="m1" replace="r1">Site 1</page>
  <page url="http://site2"/>
</pages>
"""


class TestUser(unittest.TestCase):
    """Test the User type."""

    def test_get_feeds(self) -> None:
        """Test parsing an OPML document with nested outlines."""
        user: Final[User] = User(username="u01", opml=opml_nested)
        feeds: Final[list[UserFeed]] = user.get_feeds()
        self.assertEqual([f.url for f in feeds],
                         ["http://feed1", "http://feed2", "http://feed3"])
        self.assertEqual([f.title for f in feeds], ["Feed 1", "Only text", "Top"])
        self.assertEqual(feeds[0].create_key(), b"feed:http%3A%2F%2Ffeed1")

    def test_get_feeds_empty(self) -> None:
        """Test that an empty OPML document means no feeds."""
        self.assertEqual(User(username="u01").get_feeds(), [])
        self.assertEqual(User(username="u01", opml="  \n").get_feeds(), [])

    def test_get_feeds_invalid(self) -> None:
        """Test that broken OPML documents are rejected."""
        for doc in ("<opml><body>", "<pages/>", "not xml at all"):
            with self.subTest(doc=doc):
                user = User(username="u01", opml=doc)
                with self.assertRaises(InvalidError):
                    user.get_feeds()

    def test_get_pages(self) -> None:
        """Test parsing a pagemonitor document."""
        user: Final[User] = User(username="u01", pagemonitor=pages_doc)
        pages: Final[list[UserPagemonitor]] = user.get_pages()
        self.assertEqual(len(pages), 2)
        self.assertEqual(pages[0], UserPagemonitor(url="http://site1", match="m1", replace="r1"))
        self.assertEqual(pages[0].title, "Site 1")
        self.assertEqual(pages[1], UserPagemonitor(url="http://site2"))
        self.assertEqual(pages[1].title, "")

        self.assertEqual(User(username="u01").get_pages(), [])
        with self.assertRaises(InvalidError):
            User(username="u01", pagemonitor="<opml/>").get_pages()

    def test_page_title_is_not_identity(self) -> None:
        """Test that two configurations differing only in title are equal."""
        a: Final[UserPagemonitor] = UserPagemonitor(url="http://x", title="A")
        b: Final[UserPagemonitor] = UserPagemonitor(url="http://x", title="B")
        self.assertEqual(a, b)
        self.assertEqual(a.create_key(), b.create_key())
        self.assertEqual(UserPagemonitor.from_key(a.create_key()), a)

    def test_set_username(self) -> None:
        """Test staging a new username."""
        user: Final[User] = User(username="u01")
        user.set_username("  u02 ")
        self.assertEqual(user.username, "u01")
        self.assertEqual(user.new_username, "u02")

        with self.assertRaises(InvalidError):
            user.set_username("   ")

    def test_password(self) -> None:
        """Test hashing and validating passwords."""
        user: Final[User] = User(username="u01")
        self.assertFalse(user.validate_password(""))
        user.set_password("pass1")
        self.assertNotEqual(user.password, "pass1")
        self.assertTrue(user.validate_password("pass1"))
        self.assertFalse(user.validate_password("pass2"))

        user.password = "garbage"
        self.assertFalse(user.validate_password("garbage"))

    def test_encode(self) -> None:
        """Test that the username is not part of the serialized User."""
        user: Final[User] = User(username="u01", password="x", opml="o", pagemonitor="p")
        rec: Final[dict] = json.loads(user.encode())
        self.assertEqual(rec, {"Password": "x", "Opml": "o", "Pagemonitor": "p"})
        self.assertEqual(User.decode(user.encode(), "u01"), user)

        with self.assertRaises(InvalidError):
            User.decode(b"[1, 2]", "u01")
        with self.assertRaises(InvalidError):
            User.decode(b"\xff\xfe", "u01")


class TestFeeditem(unittest.TestCase):
    """Test Feeditem and friends."""

    def test_encode(self) -> None:
        """Test that the key is a back-reference only."""
        key: Final[FeeditemKey] = FeeditemKey(feed_url="http://feed1", guid="g1")
        stamp: Final[datetime] = datetime(2026, 10, 19, 12, 0, tzinfo=timezone(timedelta(hours=2)))
        item: Final[Feeditem] = Feeditem(title="t",
                                         url="http://feed1/1",
                                         date=stamp,
                                         contents="c",
                                         key=key)
        rec: Final[dict] = json.loads(item.encode())
        self.assertEqual(set(rec.keys()), {"Title", "URL", "Date", "Contents", "Updated"})
        self.assertIsNone(rec["Updated"])

        copy: Final[Feeditem] = Feeditem.decode(item.encode())
        self.assertIsNone(copy.key)
        self.assertEqual(copy, item)
        self.assertEqual(copy.date.utcoffset(), timedelta(hours=2))  # type: ignore

        self.assertEqual(FeeditemKey.from_key(key.create_key()), key)
        self.assertEqual(key.feed_key(), b"feed:http%3A%2F%2Ffeed1")

    def test_naive_times(self) -> None:
        """Test that naive timestamps are taken as UTC."""
        item: Final[Feeditem] = Feeditem(date=datetime(2026, 1, 1))
        self.assertEqual(item.date, datetime(2026, 1, 1, tzinfo=timezone.utc))

    def test_same_content(self) -> None:
        """Test comparing items by their content."""
        a: Final[Feeditem] = Feeditem(title="t", url="u", contents="c",
                                      date=datetime(2026, 1, 1))
        b: Final[Feeditem] = Feeditem(title="t", url="u", contents="c",
                                      date=datetime(2026, 2, 1))
        self.assertTrue(a.same_content(b))
        b.contents = "d"
        self.assertFalse(a.same_content(b))

    def test_page_encode(self) -> None:
        """Test serializing a page."""
        page: Final[PagemonitorPage] = PagemonitorPage(
            contents="text",
            delta="-a\n+b\n",
            updated=datetime(2026, 10, 19, tzinfo=timezone.utc),
            config=UserPagemonitor(url="http://site1"))
        rec: Final[dict] = json.loads(page.encode())
        self.assertEqual(set(rec.keys()), {"Contents", "Delta", "Updated"})
        self.assertEqual(PagemonitorPage.decode(page.encode()), page)


class TestFetchStatus(unittest.TestCase):
    """Test the FetchStatus."""

    def test_merge(self) -> None:
        """Test that merging only replaces the timestamps that are set."""
        t1: Final[datetime] = datetime(2026, 10, 1, tzinfo=timezone.utc)
        t2: Final[datetime] = datetime(2026, 10, 2, tzinfo=timezone.utc)
        t3: Final[datetime] = datetime(2026, 10, 3, tzinfo=timezone.utc)

        status: FetchStatus = FetchStatus()
        self.assertIsNone(status.last_activity)

        status = status.merge(FetchStatus(last_success=t1))
        self.assertEqual(status, FetchStatus(last_success=t1))
        status = status.merge(FetchStatus(last_failure=t2))
        self.assertEqual(status, FetchStatus(last_success=t1, last_failure=t2))
        self.assertEqual(status.last_activity, t2)
        status = status.merge(FetchStatus(last_success=t3))
        self.assertEqual(status, FetchStatus(last_success=t3, last_failure=t2))
        self.assertEqual(status.last_activity, t3)

        self.assertEqual(FetchStatus.decode(status.encode()), status)

# Local Variables: #
# python-indent: 4 #
# End: #
