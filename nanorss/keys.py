#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# Time-stamp: <2026-10-19 14:20:37 krylon>
#
# /data/code/python/nanorss/keys.py
# created on 19. 10. 2026
# (c) 2026 Benjamin Walkenhorst
#
# This file is part of the nanorss feed reader. It is distributed under the
# terms of the GNU General Public License 3. See the file LICENSE for details
# or find a copy online at https://www.gnu.org/licenses/gpl-3.0

"""
nanorss.keys

(c) 2026 Benjamin Walkenhorst

Encoding and decoding of the keys we use in the store.

Every key starts with a namespace prefix, followed by one or more components
separated by a colon. Variable components are percent-encoded, so they never
contain the separator, and an empty component simply encodes to an empty
token.
"""


from typing import Final
from urllib.parse import quote, unquote

from nanorss.common import InvalidError

separator: Final[bytes] = b":"

UserKeyPrefix: Final[str] = "user"
FeeditemKeyPrefix: Final[str] = "feeditem"
FeedKeyPrefix: Final[str] = "feed"
PagemonitorKeyPrefix: Final[str] = "pagemonitor"
FetchStatusKeyPrefix: Final[str] = "fetchstatus"
LastSeenKeyPrefix: Final[str] = "lastseen"
ReadStatusKeyPrefix: Final[str] = "readstatus"
ServerConfigKeyPrefix: Final[str] = "serverconfig"
TxKeyPrefix: Final[str] = "tx"

# The users index lives under the bare namespace name, so a scan over
# "user:" never sees it.
UsersIndexKey: Final[bytes] = UserKeyPrefix.encode()
SchemaVersionKey: Final[bytes] = b"schemaversion"


def encode_part(value: str) -> bytes:
    """Percent-encode a single key component."""
    return quote(value, safe="").encode("ascii")


def decode_part(value: bytes) -> str:
    """Reverse encode_part."""
    try:
        return unquote(value.decode("ascii"), errors="strict")
    except UnicodeDecodeError as err:
        raise InvalidError(f"Cannot decode key component {value!r}: {err}") from err


def prefix_of(ns: str) -> bytes:
    """Return the prefix (namespace plus separator) shared by all keys in <ns>."""
    return ns.encode() + separator


def _join(ns: str, *parts: bytes) -> bytes:
    return separator.join([ns.encode(), *parts])


def _split(ns: str, key: bytes, cnt: int) -> list[bytes]:
    """Split <key> into <cnt> components after the prefix, check the prefix matches."""
    if not key.startswith(prefix_of(ns)):
        raise InvalidError(f"Key {key!r} does not start with {ns}")
    parts: Final[list[bytes]] = key.split(separator, cnt)
    if len(parts) != cnt + 1:
        raise InvalidError(f"Key {key!r} does not have {cnt} components")
    return parts[1:]


def _split_encoded(ns: str, key: bytes, cnt: int) -> list[str]:
    parts: Final[list[bytes]] = _split(ns, key, cnt)
    if separator in parts[-1]:
        raise InvalidError(f"Key {key!r} has too many components")
    return [decode_part(p) for p in parts]


def create_user_key(username: str) -> bytes:
    """Return the key a User is stored under."""
    return _join(UserKeyPrefix, encode_part(username))


def decode_user_key(key: bytes) -> str:
    """Return the username encoded in a user key."""
    return _split_encoded(UserKeyPrefix, key, 1)[0]


def create_feeditem_key(feed_url: str, guid: str) -> bytes:
    """Return the key of a feed item."""
    return _join(FeeditemKeyPrefix, encode_part(feed_url), encode_part(guid))


def decode_feeditem_key(key: bytes) -> tuple[str, str]:
    """Return the feed URL and GUID encoded in a feed item key."""
    feed_url, guid = _split_encoded(FeeditemKeyPrefix, key, 2)
    return feed_url, guid


def create_feed_key(feed_url: str) -> bytes:
    """Return the key of a feed: its item index and the subject of its fetch status."""
    return _join(FeedKeyPrefix, encode_part(feed_url))


def decode_feed_key(key: bytes) -> str:
    """Return the feed URL encoded in a feed key."""
    return _split_encoded(FeedKeyPrefix, key, 1)[0]


def create_pagemonitor_key(url: str, match: str, replace: str) -> bytes:
    """Return the key of a monitored page."""
    return _join(PagemonitorKeyPrefix,
                 encode_part(url),
                 encode_part(match),
                 encode_part(replace))


def decode_pagemonitor_key(key: bytes) -> tuple[str, str, str]:
    """Return URL, match and replace encoded in a pagemonitor key."""
    url, match, replace = _split_encoded(PagemonitorKeyPrefix, key, 3)
    return url, match, replace


def create_fetchstatus_key(subject: bytes) -> bytes:
    """Return the key of the fetch status for <subject>."""
    return _join(FetchStatusKeyPrefix, subject)


def decode_fetchstatus_key(key: bytes) -> bytes:
    """Return the subject key of a fetch status key."""
    return _split(FetchStatusKeyPrefix, key, 1)[0]


def create_lastseen_key(subject: bytes) -> bytes:
    """Return the key of the last-seen time for <subject>."""
    return _join(LastSeenKeyPrefix, subject)


def decode_lastseen_key(key: bytes) -> bytes:
    """Return the subject key of a last-seen key."""
    return _split(LastSeenKeyPrefix, key, 1)[0]


def create_readstatus_index_key(username: str) -> bytes:
    """Return the key of the reference list of items <username> has read."""
    return _join(ReadStatusKeyPrefix, encode_part(username))


def create_readstatus_key(username: str, item_key: bytes) -> bytes:
    """Return the key of the marker saying <username> has read <item_key>."""
    return _join(ReadStatusKeyPrefix, encode_part(username), item_key)


def decode_readstatus_key(key: bytes) -> tuple[str, bytes]:
    """Return the username and the item key of a read status marker."""
    user, item_key = _split(ReadStatusKeyPrefix, key, 2)
    return decode_part(user), item_key


def create_config_key(name: str) -> bytes:
    """Return the key a server configuration variable is stored under."""
    return _join(ServerConfigKeyPrefix, encode_part(name))


def decode_config_key(key: bytes) -> str:
    """Return the name of a server configuration variable."""
    return _split_encoded(ServerConfigKeyPrefix, key, 1)[0]


def create_tx_key(name: bytes) -> bytes:
    """Return the key a transaction log entry is stored under."""
    return _join(TxKeyPrefix, name)


def decode_tx_key(key: bytes) -> bytes:
    """Return the transaction name of a transaction log key."""
    return _split(TxKeyPrefix, key, 1)[0]

# Local Variables: #
# python-indent: 4 #
# End: #
