#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# Time-stamp: <2026-10-19 19:48:03 krylon>
#
# /data/code/python/nanorss/feedlist.py
# created on 19. 10. 2026
# (c) 2026 Benjamin Walkenhorst
#
# This file is part of the nanorss feed reader. It is distributed under the
# terms of the GNU General Public License 3. See the file LICENSE for details
# or find a copy online at https://www.gnu.org/licenses/gpl-3.0

"""
nanorss.feedlist

(c) 2026 Benjamin Walkenhorst
"""


from datetime import datetime, timezone
from typing import Any, Final, Optional
from urllib.parse import quote

from nanorss.backup import format_time
from nanorss.database import Database
from nanorss.model import User

_oldest: Final[datetime] = datetime.min.replace(tzinfo=timezone.utc)


def fetch_url(key: bytes) -> str:
    """Return the (relative) API URL for the item or page stored under <key>."""
    return "api/items/" + quote(key.decode(), safe="")


def get_all_items(db: Database, user: User) -> list[dict[str, Any]]:
    """Assemble the feed list of a User, newest first.

    Feed items carry the title of their feed as origin, pages the title from
    the User's pagemonitor document.
    """
    titles: Final[dict[str, str]] = {f.url: f.title for f in user.get_feeds()}
    page_titles: Final[dict[bytes, str]] = {p.create_key(): p.title for p in user.get_pages()}
    items: list[tuple[Optional[datetime], dict[str, Any]]] = []

    for item in db.feeditem_get_for_user(user):
        assert item.key is not None
        if item.key.feed_url not in titles:
            continue
        key = item.key.create_key()
        items.append((item.updated, {
            "Title": item.title,
            "Origin": titles[item.key.feed_url],
            "FetchURL": fetch_url(key),
            "IsRead": db.readstatus_get(user, key),
        }))

    for page in db.page_get_for_user(user):
        assert page.config is not None
        key = page.config.create_key()
        items.append((page.updated, {
            "Title": "",
            "Origin": page_titles.get(key, page.config.url),
            "FetchURL": fetch_url(key),
            "IsRead": db.readstatus_get(user, key),
        }))

    items.sort(key=lambda x: x[0] or _oldest, reverse=True)
    result: list[dict[str, Any]] = []
    for stamp, rec in items:
        rec["SortDate"] = format_time(stamp) if stamp is not None else None
        result.append(rec)
    return result

# Local Variables: #
# python-indent: 4 #
# End: #
