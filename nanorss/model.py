#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# Time-stamp: <2026-10-19 16:03:54 krylon>
#
# /data/code/python/nanorss/model.py
# created on 19. 10. 2026
# (c) 2026 Benjamin Walkenhorst
#
# This file is part of the nanorss feed reader. It is distributed under the
# terms of the GNU General Public License 3. See the file LICENSE for details
# or find a copy online at https://www.gnu.org/licenses/gpl-3.0

"""
nanorss.model

(c) 2026 Benjamin Walkenhorst

Feed items, monitored pages, users and their serialization. Back-references
(Feeditem.key, PagemonitorPage.config) are never serialized, they are
derived from the store key when a record is loaded.
"""


import json
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Final, Optional

from passlib.context import CryptContext

from nanorss import keys
from nanorss.common import InvalidError

passwords: Final[CryptContext] = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def aware(stamp: Optional[datetime]) -> Optional[datetime]:
    """Return <stamp> with a timezone attached. Naive timestamps are taken to be UTC."""
    if stamp is None or stamp.tzinfo is not None:
        return stamp
    return stamp.replace(tzinfo=timezone.utc)


def encode_time(stamp: Optional[datetime]) -> Optional[str]:
    """Serialize a timestamp, keeping its UTC offset."""
    if stamp is None:
        return None
    return aware(stamp).isoformat()  # type: ignore


def decode_time(raw: Optional[str]) -> Optional[datetime]:
    """Reverse encode_time."""
    if raw is None or raw == "":
        return None
    try:
        return aware(datetime.fromisoformat(raw))
    except ValueError as err:
        raise InvalidError(f"Invalid timestamp {raw!r}: {err}") from err


def _load(raw: bytes, what: str) -> dict[str, Any]:
    try:
        rec = json.loads(raw)
    except (UnicodeDecodeError, json.JSONDecodeError) as err:
        raise InvalidError(f"Cannot decode {what}: {err}") from err
    if not isinstance(rec, dict):
        raise InvalidError(f"Cannot decode {what}: not an object")
    return rec


def _dump(rec: dict[str, Any]) -> bytes:
    return json.dumps(rec, ensure_ascii=False, separators=(",", ":")).encode("utf-8")


@dataclass(kw_only=True, slots=True, frozen=True)
class FeeditemKey:
    """FeeditemKey identifies a feed item: the feed it came from plus its GUID."""

    feed_url: str
    guid: str

    def create_key(self) -> bytes:
        """Return the store key of the item."""
        return keys.create_feeditem_key(self.feed_url, self.guid)

    def feed_key(self) -> bytes:
        """Return the store key of the feed the item belongs to."""
        return keys.create_feed_key(self.feed_url)

    @classmethod
    def from_key(cls, key: bytes) -> 'FeeditemKey':
        """Decode a FeeditemKey from a store key."""
        feed_url, guid = keys.decode_feeditem_key(key)
        return cls(feed_url=feed_url, guid=guid)


@dataclass(kw_only=True, slots=True)
class Feeditem:
    """Feeditem is a single entry of an RSS/Atom/RDF feed."""

    title: str = ""
    url: str = ""
    date: Optional[datetime] = None
    contents: str = ""
    updated: Optional[datetime] = None
    key: Optional[FeeditemKey] = field(default=None, compare=False)

    def __post_init__(self) -> None:
        self.date = aware(self.date)
        self.updated = aware(self.updated)

    def same_content(self, other: 'Feeditem') -> bool:
        """Return True if title, URL and contents of both items are equal."""
        return (self.title, self.url, self.contents) == \
            (other.title, other.url, other.contents)

    def encode(self) -> bytes:
        """Serialize the item. The key is not part of the value."""
        return _dump({
            "Title": self.title,
            "URL": self.url,
            "Date": encode_time(self.date),
            "Contents": self.contents,
            "Updated": encode_time(self.updated),
        })

    @classmethod
    def decode(cls, raw: bytes, key: Optional[FeeditemKey] = None) -> 'Feeditem':
        """Deserialize an item, attaching <key> as its back-reference."""
        rec: Final[dict[str, Any]] = _load(raw, "feed item")
        return cls(
            title=rec.get("Title", ""),
            url=rec.get("URL", ""),
            date=decode_time(rec.get("Date")),
            contents=rec.get("Contents", ""),
            updated=decode_time(rec.get("Updated")),
            key=key,
        )


@dataclass(kw_only=True, slots=True)
class UserFeed:
    """UserFeed is a feed subscription from a user's OPML document."""

    url: str
    title: str = ""

    def create_key(self) -> bytes:
        """Return the store key of the feed."""
        return keys.create_feed_key(self.url)


@dataclass(kw_only=True, slots=True)
class UserPagemonitor:
    """UserPagemonitor is a page configuration from a user's pagemonitor document.

    The title is not part of the page's identity.
    """

    url: str
    match: str = ""
    replace: str = ""
    title: str = field(default="", compare=False)

    def create_key(self) -> bytes:
        """Return the store key of the page."""
        return keys.create_pagemonitor_key(self.url, self.match, self.replace)

    @classmethod
    def from_key(cls, key: bytes) -> 'UserPagemonitor':
        """Decode a page configuration from a store key."""
        url, match, replace = keys.decode_pagemonitor_key(key)
        return cls(url=url, match=match, replace=replace)


@dataclass(kw_only=True, slots=True)
class PagemonitorPage:
    """PagemonitorPage is the latest state of a monitored web page and its diff."""

    contents: str = ""
    delta: str = ""
    updated: Optional[datetime] = None
    config: Optional[UserPagemonitor] = field(default=None, compare=False)

    def __post_init__(self) -> None:
        self.updated = aware(self.updated)

    def encode(self) -> bytes:
        """Serialize the page. The configuration is not part of the value."""
        return _dump({
            "Contents": self.contents,
            "Delta": self.delta,
            "Updated": encode_time(self.updated),
        })

    @classmethod
    def decode(cls, raw: bytes, config: Optional[UserPagemonitor] = None) -> 'PagemonitorPage':
        """Deserialize a page, attaching <config> as its back-reference."""
        rec: Final[dict[str, Any]] = _load(raw, "page")
        return cls(
            contents=rec.get("Contents", ""),
            delta=rec.get("Delta", ""),
            updated=decode_time(rec.get("Updated")),
            config=config,
        )


@dataclass(kw_only=True, slots=True)
class FetchStatus:
    """FetchStatus records the last successful and the last failed fetch of a feed or page.

    None means "never", or, when passed to Database.fetch_status_set, "no change".
    """

    last_success: Optional[datetime] = None
    last_failure: Optional[datetime] = None

    def __post_init__(self) -> None:
        self.last_success = aware(self.last_success)
        self.last_failure = aware(self.last_failure)

    @property
    def last_activity(self) -> Optional[datetime]:
        """Return the more recent of both timestamps."""
        stamps: Final[list[datetime]] = [x for x in (self.last_success, self.last_failure)
                                         if x is not None]
        return max(stamps) if len(stamps) > 0 else None

    def merge(self, update: 'FetchStatus') -> 'FetchStatus':
        """Return a copy of self with the timestamps set in <update> replaced."""
        return FetchStatus(
            last_success=update.last_success or self.last_success,
            last_failure=update.last_failure or self.last_failure,
        )

    def encode(self) -> bytes:
        """Serialize the FetchStatus."""
        return _dump({
            "LastSuccess": encode_time(self.last_success),
            "LastFailure": encode_time(self.last_failure),
        })

    @classmethod
    def decode(cls, raw: bytes) -> 'FetchStatus':
        """Deserialize a FetchStatus."""
        rec: Final[dict[str, Any]] = _load(raw, "fetch status")
        return cls(
            last_success=decode_time(rec.get("LastSuccess")),
            last_failure=decode_time(rec.get("LastFailure")),
        )


@dataclass(kw_only=True, slots=True)
class User:
    """User holds a user's credentials and configuration.

    To rename a User, call set_username and then save it; the username only
    changes once the Database has moved the user's data.
    """

    username: str = ""
    password: str = ""
    opml: str = ""
    pagemonitor: str = ""
    new_username: str = field(default="", compare=False)

    def encode(self) -> bytes:
        """Serialize the User. The username is part of the key, not the value."""
        return _dump({
            "Password": self.password,
            "Opml": self.opml,
            "Pagemonitor": self.pagemonitor,
        })

    @classmethod
    def decode(cls, raw: bytes, username: str) -> 'User':
        """Deserialize the User stored for <username>."""
        rec: Final[dict[str, Any]] = _load(raw, f"user {username}")
        return cls(
            username=username,
            password=rec.get("Password", ""),
            opml=rec.get("Opml", ""),
            pagemonitor=rec.get("Pagemonitor", ""),
        )

    def create_key(self) -> bytes:
        """Return the store key of the User under its current name."""
        return keys.create_user_key(self.username)

    def set_username(self, username: str) -> None:
        """Stage a new username, to be applied by Database.user_save."""
        username = username.strip()
        if username == "":
            raise InvalidError("Cannot set username to an empty string")
        self.new_username = username

    def set_password(self, password: str) -> None:
        """Hash and store a new password."""
        self.password = passwords.hash(password)

    def validate_password(self, password: str) -> bool:
        """Return True if <password> matches the stored hash."""
        if self.password == "":
            return False
        try:
            return passwords.verify(password, self.password)
        except ValueError:
            # Not a hash passlib knows about.
            return False

    def get_feeds(self) -> list[UserFeed]:
        """Parse the OPML document and return all feeds, nested outlines included."""
        if self.opml.strip() == "":
            return []
        try:
            root: Final[ET.Element] = ET.fromstring(self.opml)
        except ET.ParseError as err:
            raise InvalidError(f"Cannot parse opml xml: {err}") from err
        if root.tag != "opml":
            raise InvalidError(f"Cannot parse opml xml: unexpected root element {root.tag}")

        feeds: list[UserFeed] = []
        for body in root.findall("body"):
            for outline in body.iter("outline"):
                url = outline.get("xmlUrl", "")
                if url != "":
                    feeds.append(UserFeed(url=url,
                                          title=outline.get("title", outline.get("text", ""))))
        return feeds

    def get_pages(self) -> list[UserPagemonitor]:
        """Parse the pagemonitor document and return all page configurations."""
        if self.pagemonitor.strip() == "":
            return []
        try:
            root: Final[ET.Element] = ET.fromstring(self.pagemonitor)
        except ET.ParseError as err:
            raise InvalidError(f"Cannot parse pagemonitor xml: {err}") from err
        if root.tag != "pages":
            raise InvalidError(
                f"Cannot parse pagemonitor xml: unexpected root element {root.tag}")

        return [UserPagemonitor(url=page.get("url", ""),
                                match=page.get("match", ""),
                                replace=page.get("replace", ""),
                                title=page.text or "")
                for page in root.findall("page")]

# Local Variables: #
# python-indent: 4 #
# End: #
