#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# Time-stamp: <2026-10-19 18:02:11 krylon>
#
# /data/code/python/nanorss/backup.py
# created on 19. 10. 2026
# (c) 2026 Benjamin Walkenhorst
#
# This file is part of the nanorss feed reader. It is distributed under the
# terms of the GNU General Public License 3. See the file LICENSE for details
# or find a copy online at https://www.gnu.org/licenses/gpl-3.0

"""
nanorss.backup

(c) 2026 Benjamin Walkenhorst

Backup and restore of the complete database as a JSON document.

The backup format does not depend on how we store things internally, so a
backup made by an older version can be restored into a newer one. Restoring
goes through the regular Database operations, which rebuild all indexes.
"""


import json
from collections import defaultdict
from datetime import datetime, timezone
from typing import Any, Final, Optional

from nanorss import common
from nanorss.common import InvalidError
from nanorss.database import AggregateError, Database, DatabaseError
from nanorss.model import (FeeditemKey, Feeditem, PagemonitorPage, User,
                           UserPagemonitor)

ZeroTime: Final[str] = "0001-01-01T00:00:00Z"


def format_time(stamp: Optional[datetime]) -> str:
    """Format a timestamp as RFC 3339 in UTC. None is the zero time."""
    if stamp is None:
        return ZeroTime
    if stamp.tzinfo is None:
        stamp = stamp.replace(tzinfo=timezone.utc)
    return stamp.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def parse_time(raw: Optional[str]) -> Optional[datetime]:
    """Parse a timestamp written by format_time."""
    if raw is None or raw == "" or raw == ZeroTime:
        return None
    try:
        stamp: Final[datetime] = datetime.fromisoformat(raw)
    except ValueError as err:
        raise InvalidError(f"Invalid timestamp in backup: {raw!r}") from err
    if stamp.tzinfo is None:
        return stamp.replace(tzinfo=timezone.utc)
    return stamp


def backup(db: Database) -> str:
    """Serialize all users, feed items, pages and server configuration."""
    log: Final = common.get_logger("backup")
    users: list[dict[str, Any]] = []
    feeds: list[dict[str, Any]] = []
    pages: list[dict[str, Any]] = []

    for username in db.user_get_all():
        user = db.user_get(username)
        if user is None:
            log.error("User %s is in the users index, but does not exist", username)
            continue
        users.append({
            "Password": user.password,
            "Opml": user.opml,
            "Pagemonitor": user.pagemonitor,
            "Username": user.username,
            "ReadItems": [k.decode() for k in db.readstatus_get_all(user)],
        })

    def add_item(_key: bytes, item: Feeditem) -> bool:
        assert item.key is not None
        feeds.append({
            "Title": item.title,
            "URL": item.url,
            "Date": format_time(item.date),
            "Contents": item.contents,
            "Updated": format_time(item.updated),
            "FeedURL": item.key.feed_url,
            "GUID": item.key.guid,
        })
        return True

    def add_page(_key: bytes, page: PagemonitorPage) -> bool:
        assert page.config is not None
        pages.append({
            "Contents": page.contents,
            "Delta": page.delta,
            "Updated": format_time(page.updated),
            "URL": page.config.url,
            "Title": page.config.title,
            "Match": page.config.match,
            "Replace": page.config.replace,
        })
        return True

    db.feeditem_read_all(add_item)
    db.page_read_all(add_page)

    data: Final[dict[str, Any]] = {
        "Users": users,
        "Feeds": feeds,
        "Pagemonitor": pages,
        "ServerConfig": db.config_get_all(),
    }

    log.info("Backed up %d users, %d feed items, %d pages",
             len(users),
             len(feeds),
             len(pages))
    return json.dumps(data, indent=2, ensure_ascii=False)


def _restore_items(db: Database, feed_url: str, items: list[Feeditem]) -> list[Exception]:
    """Save the items of one feed. If the batch fails, save them one by one."""
    log: Final = common.get_logger("backup")
    try:
        db.feeditems_save(*items)
        return []
    except (DatabaseError, InvalidError) as err:
        log.error("Error saving %d items of %s, saving them one by one: %s",
                  len(items),
                  feed_url,
                  err)

    failures: list[Exception] = []
    for item in items:
        try:
            db.feeditems_save(item)
        except (DatabaseError, InvalidError) as err:
            log.error("Error saving feed item %s: %s", item.key, err)
            failures.append(err)
    return failures


def restore(db: Database, text: str) -> None:
    """Load a backup into <db>.

    Restoring carries on past records that fail to save, and raises an
    AggregateError at the end if there were any.
    """
    log: Final = common.get_logger("backup")
    try:
        data: Final[dict[str, Any]] = json.loads(text)
    except json.JSONDecodeError as err:
        raise InvalidError(f"Cannot parse backup: {err}") from err

    failures: list[Exception] = []

    for rec in data.get("Users") or []:
        user = User(username=rec.get("Username", ""),
                    password=rec.get("Password", ""),
                    opml=rec.get("Opml", ""),
                    pagemonitor=rec.get("Pagemonitor", ""))
        try:
            db.user_save(user)
        except (DatabaseError, InvalidError) as err:
            log.error("Error saving User %s: %s", user.username, err)
            failures.append(err)
            continue
        for item_key in rec.get("ReadItems") or []:
            try:
                db.readstatus_set(user, item_key.encode(), True)
            except (DatabaseError, InvalidError) as err:
                log.error("Error saving read status of %s for %s: %s",
                          item_key,
                          user.username,
                          err)
                failures.append(err)

    feeds: dict[str, list[Feeditem]] = defaultdict(list)
    for rec in data.get("Feeds") or []:
        try:
            feeds[rec.get("FeedURL", "")].append(Feeditem(
                title=rec.get("Title", ""),
                url=rec.get("URL", ""),
                date=parse_time(rec.get("Date")),
                contents=rec.get("Contents", ""),
                updated=parse_time(rec.get("Updated")),
                key=FeeditemKey(feed_url=rec.get("FeedURL", ""), guid=rec.get("GUID", "")),
            ))
        except InvalidError as err:
            log.error("Error reading feed item %s: %s", rec.get("GUID"), err)
            failures.append(err)
    for feed_url, items in feeds.items():
        failures.extend(_restore_items(db, feed_url, items))

    for rec in data.get("Pagemonitor") or []:
        config = UserPagemonitor(url=rec.get("URL", ""),
                                 match=rec.get("Match", ""),
                                 replace=rec.get("Replace", ""),
                                 title=rec.get("Title", ""))
        try:
            db.page_save(PagemonitorPage(contents=rec.get("Contents", ""),
                                         delta=rec.get("Delta", ""),
                                         updated=parse_time(rec.get("Updated")),
                                         config=config))
        except (DatabaseError, InvalidError) as err:
            log.error("Error saving page %s: %s", config.url, err)
            failures.append(err)

    for name, value in (data.get("ServerConfig") or {}).items():
        try:
            db.config_set(name, value)
        except DatabaseError as err:
            log.error("Error saving config variable %s: %s", name, err)
            failures.append(err)

    if len(failures) > 0:
        raise AggregateError("Failed to restore at least one item", failures)

# Local Variables: #
# python-indent: 4 #
# End: #
